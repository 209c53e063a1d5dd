"""Computed idle statistics and their text and JSON renderings."""

from __future__ import annotations

import json
import sys
from dataclasses import asdict, dataclass
from typing import TextIO

SEPARATOR = "-" * 26


@dataclass(frozen=True)
class StateStats:
    """Per-(cpu, state) figures.

    Both values come from the second snapshot and are cumulative since boot,
    not limited to the sampling window.
    """

    avg_residency: int  # time / usage, 0 if never entered
    total_time: int  # microseconds


@dataclass(frozen=True)
class CpuStats:
    """Idle figures for one CPU."""

    cpu_index: int
    idle_ratio: float  # fraction of the window spent in any idle state
    per_state: tuple[StateStats, ...]


@dataclass(frozen=True)
class Report:
    """Result of one sampling run."""

    duration: int  # seconds
    cpus: tuple[CpuStats, ...]
    idle_ratio: float  # system-wide

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable dict of the whole report."""
        return asdict(self)


def render_text(report: Report, stream: TextIO | None = None) -> None:
    """Write the per-CPU blocks followed by the system-wide total."""
    out = stream if stream is not None else sys.stdout
    for cpu in report.cpus:
        print(f"\tCPU {cpu.cpu_index}", file=out)
        print(f"idle ratio: {cpu.idle_ratio:.4f}", file=out)
        for state_index, state in enumerate(cpu.per_state):
            print(f"- state {state_index}", file=out)
            print(f"  avg: {state.avg_residency}", file=out)
            print(f"  total: {state.total_time}", file=out)
        print(SEPARATOR, file=out)
    print("\tTotal", file=out)
    print(f"idle ratio: {report.idle_ratio:.4f}", file=out)


def render_json(report: Report, stream: TextIO | None = None) -> None:
    """Write the report as an indented JSON document."""
    out = stream if stream is not None else sys.stdout
    json.dump(report.to_dict(), out, indent=2)
    out.write("\n")


RENDERERS = {
    "text": render_text,
    "json": render_json,
}
