"""Point-in-time capture of every cpuidle counter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .sensors.counters import CounterKind

if TYPE_CHECKING:
    from .sensors.counters import CounterSource
    from .topology import Topology


@dataclass(frozen=True)
class Snapshot:
    """Dense (cpu, state) tables of cumulative time and usage counters.

    ``time[cpu][state]`` is in microseconds since boot, ``usage[cpu][state]``
    is the entry count since boot.  ``total[cpu]`` sums ``time`` over all
    states of that CPU.
    """

    time: tuple[tuple[int, ...], ...]
    usage: tuple[tuple[int, ...], ...]
    total: tuple[int, ...]

    @classmethod
    def from_tables(
        cls,
        time: list[list[int]],
        usage: list[list[int]] | None = None,
    ) -> Snapshot:
        """Freeze raw tables and derive the per-CPU totals.

        A missing usage table is filled with zeros of the same shape.
        """
        frozen_time = tuple(tuple(row) for row in time)
        if usage is None:
            frozen_usage = tuple(tuple(0 for _ in row) for row in frozen_time)
        else:
            frozen_usage = tuple(tuple(row) for row in usage)
        if [len(r) for r in frozen_usage] != [len(r) for r in frozen_time]:
            raise ValueError("time and usage tables differ in shape")
        return cls(
            time=frozen_time,
            usage=frozen_usage,
            total=tuple(sum(row) for row in frozen_time),
        )

    @property
    def cpu_count(self) -> int:
        return len(self.time)


def build_snapshot(
    topology: Topology,
    source: CounterSource,
    *,
    include_usage: bool = True,
) -> Snapshot:
    """Read every counter of the topology into a new Snapshot.

    Args:
        topology: Shape of the tables to fill.
        source: Counter reader bound to the same topology.
        include_usage: Read the ``usage`` counters too.  When False they are
            recorded as 0; the first snapshot of a run never needs them.

    Raises:
        CounterReadError: If any single read fails; nothing is returned.
    """
    time_table: list[list[int]] = []
    usage_table: list[list[int]] | None = [] if include_usage else None

    for cpu in range(topology.cpu_count):
        time_table.append(
            [
                source.read_counter(cpu, state, CounterKind.TIME)
                for state in range(topology.state_count)
            ]
        )

    if usage_table is not None:
        for cpu in range(topology.cpu_count):
            usage_table.append(
                [
                    source.read_counter(cpu, state, CounterKind.USAGE)
                    for state in range(topology.state_count)
                ]
            )

    return Snapshot.from_tables(time_table, usage_table)
