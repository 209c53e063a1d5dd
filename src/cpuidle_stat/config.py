"""Configuration for the cpuidle sampler."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_SYSFS_ROOT = "/sys/devices/system/cpu"


@dataclass
class SamplerConfig:
    """Runtime configuration for a single sampling run."""

    # Sampling window in seconds
    duration: int = 1

    # Base path to the CPU sysfs directory
    sysfs_root: Path = field(default_factory=lambda: Path(DEFAULT_SYSFS_ROOT))

    # Re-open every counter file on each read instead of keeping it open
    reopen: bool = False

    # Upper bounds for topology probing
    max_cpus: int = 128
    max_states: int = 32

    # Report format: "text" or "json"
    output_format: str = "text"

    # Emit debug logging on stderr
    verbose: bool = False

    def __post_init__(self) -> None:
        self.sysfs_root = Path(self.sysfs_root)
