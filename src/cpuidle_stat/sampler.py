"""Two-snapshot idle sampling.

Reads every counter, sleeps for the sampling window, reads again, and turns
the two snapshots into a :class:`~cpuidle_stat.report.Report`.

The window length is the requested sleep, not a measured interval, so time
spent reading counters slightly skews the ratios.  The topology is taken at
construction and never re-probed; CPUs or states that disappear between the
two snapshots are not detected.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from .report import CpuStats, Report, StateStats
from .sensors.counters import CachedCounterSource, ReopenCounterSource
from .snapshot import build_snapshot
from .topology import discover_topology

if TYPE_CHECKING:
    from .config import SamplerConfig
    from .sensors.counters import CounterSource
    from .snapshot import Snapshot
    from .topology import Topology

log = logging.getLogger(__name__)

US_PER_SECOND = 1_000_000


def average_residency(time_us: int, usage: int) -> int:
    """Mean microseconds per entry, or 0 for a state never entered."""
    if usage == 0:
        return 0
    return time_us // usage


def compute_report(
    before: Snapshot, after: Snapshot, duration: int, topology: Topology
) -> Report:
    """Build the Report for a window of ``duration`` seconds.

    Idle ratios use the difference of the per-CPU totals between the two
    snapshots.  The per-state average and total are taken from ``after``
    alone and stay cumulative since boot.
    """
    window_us = duration * US_PER_SECOND
    cpus: list[CpuStats] = []
    idle_delta_sum = 0

    for cpu in range(topology.cpu_count):
        idle_delta = after.total[cpu] - before.total[cpu]
        idle_delta_sum += idle_delta
        per_state = tuple(
            StateStats(
                avg_residency=average_residency(
                    after.time[cpu][state], after.usage[cpu][state]
                ),
                total_time=after.time[cpu][state],
            )
            for state in range(topology.state_count)
        )
        cpus.append(
            CpuStats(
                cpu_index=cpu,
                idle_ratio=idle_delta / window_us,
                per_state=per_state,
            )
        )

    return Report(
        duration=duration,
        cpus=tuple(cpus),
        idle_ratio=idle_delta_sum / (window_us * topology.cpu_count),
    )


class Sampler:
    """Take two snapshots a fixed number of seconds apart.

    Args:
        topology: Discovered shape, captured for the sampler's lifetime.
        source: Counter reader; must already be open.
        sleep: Blocking sleep function, ``time.sleep`` by default.
    """

    def __init__(
        self,
        topology: Topology,
        source: CounterSource,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._topology = topology
        self._source = source
        self._sleep = sleep if sleep is not None else time.sleep

    @property
    def topology(self) -> Topology:
        """The topology every snapshot of this sampler is sized to."""
        return self._topology

    def run(self, duration: int) -> Report:
        """Sample for ``duration`` seconds and return the computed Report.

        Raises:
            ValueError: If ``duration`` is less than 1.
            CounterReadError: If any counter read fails in either snapshot.
        """
        if duration < 1:
            raise ValueError(f"duration must be at least 1 second, got {duration}")

        start = time.monotonic()
        before = build_snapshot(self._topology, self._source, include_usage=False)
        log.debug("First snapshot read in %.3fs", time.monotonic() - start)

        self._sleep(duration)

        start = time.monotonic()
        after = build_snapshot(self._topology, self._source)
        log.debug("Second snapshot read in %.3fs", time.monotonic() - start)

        return compute_report(before, after, duration, self._topology)


def run_sampler(config: SamplerConfig) -> Report:
    """Discover the topology, open the counters and sample once."""
    topology = discover_topology(config)

    source: CachedCounterSource | ReopenCounterSource
    if config.reopen:
        source = ReopenCounterSource(config.sysfs_root)
    else:
        source = CachedCounterSource(topology, config.sysfs_root)
    log.debug("Using %s", type(source).__name__)

    with source:
        return Sampler(topology, source).run(config.duration)
