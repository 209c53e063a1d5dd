"""Shared fixtures: fake /sys/devices/system/cpu trees."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

FakeSysfs = Callable[..., Path]


def write_counters(
    root: Path,
    time: list[list[int]],
    usage: list[list[int]] | None = None,
) -> Path:
    """Create or overwrite cpuidle counter files under ``root``.

    ``time[cpu][state]`` and ``usage[cpu][state]`` become the contents of
    ``cpu{cpu}/cpuidle/state{state}/time`` and ``.../usage``.  Missing usage
    values default to 0.
    """
    for cpu_idx, row in enumerate(time):
        for state_idx, time_us in enumerate(row):
            state_dir = root / f"cpu{cpu_idx}" / "cpuidle" / f"state{state_idx}"
            state_dir.mkdir(parents=True, exist_ok=True)
            count = usage[cpu_idx][state_idx] if usage is not None else 0
            (state_dir / "name").write_text(f"C{state_idx}\n")
            (state_dir / "time").write_text(f"{time_us}\n")
            (state_dir / "usage").write_text(f"{count}\n")
    return root


@pytest.fixture()
def fake_sysfs(tmp_path: Path) -> FakeSysfs:
    """Return a writer that lays out counters in a fresh fake sysfs tree."""
    root = tmp_path / "cpu"
    root.mkdir()
    # Siblings present on real systems that must not be mistaken for CPUs
    (root / "cpufreq").mkdir()
    (root / "cpuidle").mkdir()
    (root / "online").write_text("0-1\n")

    def _write(
        time: list[list[int]], usage: list[list[int]] | None = None
    ) -> Path:
        return write_counters(root, time, usage)

    return _write
