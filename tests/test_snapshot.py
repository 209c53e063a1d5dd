"""Tests for Snapshot and build_snapshot()."""

from __future__ import annotations

import pytest

from cpuidle_stat.sensors.counters import (
    CounterKind,
    CounterReadError,
    ReopenCounterSource,
)
from cpuidle_stat.snapshot import Snapshot, build_snapshot
from cpuidle_stat.topology import Topology


class RecordingSource:
    """Counter source over in-memory tables that logs every read."""

    def __init__(self, time: list[list[int]], usage: list[list[int]]) -> None:
        self._tables = {CounterKind.TIME: time, CounterKind.USAGE: usage}
        self.reads: list[tuple[int, int, CounterKind]] = []

    def read_counter(self, cpu: int, state: int, kind: CounterKind) -> int:
        self.reads.append((cpu, state, kind))
        return self._tables[kind][cpu][state]

    def close(self) -> None:
        pass


class TestSnapshotFromTables:
    """Tests for Snapshot.from_tables()."""

    def test_totals_sum_states(self) -> None:
        snap = Snapshot.from_tables([[1, 2, 3], [10, 20, 30]])
        assert snap.total == (6, 60)

    def test_missing_usage_is_zero(self) -> None:
        snap = Snapshot.from_tables([[1, 2], [3, 4]])
        assert snap.usage == ((0, 0), (0, 0))

    def test_tables_are_copied(self) -> None:
        time = [[1, 2]]
        snap = Snapshot.from_tables(time, [[1, 1]])
        time[0][0] = 999
        assert snap.time == ((1, 2),)

    def test_shape_mismatch_rejected(self) -> None:
        with pytest.raises(ValueError):
            Snapshot.from_tables([[1, 2]], [[1]])

    def test_snapshot_is_frozen(self) -> None:
        snap = Snapshot.from_tables([[1]])
        with pytest.raises(AttributeError):
            snap.total = (0,)  # type: ignore[misc]

    def test_cpu_count(self) -> None:
        assert Snapshot.from_tables([[0], [0], [0]]).cpu_count == 3


class TestBuildSnapshot:
    """Tests for build_snapshot()."""

    def test_reads_every_counter(self) -> None:
        source = RecordingSource([[5, 6], [7, 8]], [[1, 2], [3, 4]])
        snap = build_snapshot(Topology(cpu_count=2, state_count=2), source)
        assert snap.time == ((5, 6), (7, 8))
        assert snap.usage == ((1, 2), (3, 4))
        assert snap.total == (11, 15)
        assert len(source.reads) == 8

    def test_time_only_skips_usage_reads(self) -> None:
        source = RecordingSource([[5, 6]], [[1, 2]])
        snap = build_snapshot(
            Topology(cpu_count=1, state_count=2), source, include_usage=False
        )
        assert all(kind is CounterKind.TIME for _, _, kind in source.reads)
        assert snap.time == ((5, 6),)
        assert snap.usage == ((0, 0),)
        assert snap.total == (11,)

    def test_sized_to_topology_not_tree(self, fake_sysfs) -> None:
        root = fake_sysfs([[1, 2, 3]] * 3)
        snap = build_snapshot(
            Topology(cpu_count=2, state_count=2), ReopenCounterSource(root)
        )
        assert snap.time == ((1, 2), (1, 2))

    def test_read_failure_aborts(self, fake_sysfs) -> None:
        root = fake_sysfs([[1, 2], [3, 4]])
        (root / "cpu1" / "cpuidle" / "state1" / "time").unlink()
        with pytest.raises(CounterReadError):
            build_snapshot(
                Topology(cpu_count=2, state_count=2), ReopenCounterSource(root)
            )

    def test_missing_usage_fails_only_when_read(self, fake_sysfs) -> None:
        root = fake_sysfs([[1]])
        (root / "cpu0" / "cpuidle" / "state0" / "usage").unlink()
        topology = Topology(cpu_count=1, state_count=1)
        source = ReopenCounterSource(root)
        assert build_snapshot(topology, source, include_usage=False).total == (1,)
        with pytest.raises(CounterReadError):
            build_snapshot(topology, source)
