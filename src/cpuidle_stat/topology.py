"""Discover how many CPUs and cpuidle states the machine exposes.

Probes ``cpu1, cpu2, ...`` and ``cpu0/cpuidle/state1, state2, ...`` under
the sysfs CPU directory and stops at the first index that does not exist.
Index 0 is assumed to be present in both cases; a missing ``state0`` shows
up later as a counter read failure.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .config import DEFAULT_SYSFS_ROOT

if TYPE_CHECKING:
    from .config import SamplerConfig

log = logging.getLogger(__name__)

CPU_LIMIT = 128
STATE_LIMIT = 32


@dataclass(frozen=True)
class Topology:
    """Shape of the counter tables, discovered once per run."""

    cpu_count: int
    state_count: int

    def __post_init__(self) -> None:
        if self.cpu_count < 1 or self.state_count < 1:
            raise ValueError(
                f"Topology needs at least one CPU and one state, got "
                f"{self.cpu_count} CPUs and {self.state_count} states"
            )


def _probe(make_path: Callable[[int], Path], limit: int) -> int:
    """Return the first index in [1, limit) whose path is missing."""
    index = 1
    while index < limit:
        if not make_path(index).exists():
            break
        index += 1
    return index


def discover_cpu_count(
    sysfs_root: str | Path = DEFAULT_SYSFS_ROOT, limit: int = CPU_LIMIT
) -> int:
    """Count CPUs by probing ``cpu{N}`` directories.

    Args:
        sysfs_root: Base path to the CPU sysfs directory.
        limit: Hard upper bound on the returned count.

    Returns:
        The first missing CPU index, i.e. the number of CPUs present.
    """
    root = Path(sysfs_root)
    return _probe(lambda i: root / f"cpu{i}", limit)


def discover_state_count(
    sysfs_root: str | Path = DEFAULT_SYSFS_ROOT, limit: int = STATE_LIMIT
) -> int:
    """Count idle states by probing ``cpu0/cpuidle/state{N}`` directories.

    Args:
        sysfs_root: Base path to the CPU sysfs directory.
        limit: Hard upper bound on the returned count.

    Returns:
        The first missing state index under CPU 0.
    """
    cpuidle_dir = Path(sysfs_root) / "cpu0" / "cpuidle"
    return _probe(lambda j: cpuidle_dir / f"state{j}", limit)


def discover_topology(config: SamplerConfig) -> Topology:
    """Run both probes and freeze the result."""
    topology = Topology(
        cpu_count=discover_cpu_count(config.sysfs_root, config.max_cpus),
        state_count=discover_state_count(config.sysfs_root, config.max_states),
    )
    log.debug(
        "Discovered %d CPUs with %d idle states under %s",
        topology.cpu_count,
        topology.state_count,
        config.sysfs_root,
    )
    return topology
