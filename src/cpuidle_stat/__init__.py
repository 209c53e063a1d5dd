"""Sample cpuidle residency counters and report per-CPU idle ratios."""

from cpuidle_stat.report import CpuStats, Report, StateStats
from cpuidle_stat.sampler import Sampler, compute_report, run_sampler
from cpuidle_stat.snapshot import Snapshot, build_snapshot
from cpuidle_stat.topology import Topology, discover_topology

__all__ = [
    "CpuStats",
    "Report",
    "Sampler",
    "Snapshot",
    "StateStats",
    "Topology",
    "build_snapshot",
    "compute_report",
    "discover_topology",
    "run_sampler",
]
