"""Cumulative cpuidle counters from sysfs.

Each idle state of each CPU exposes two monotonically increasing counters
under /sys/devices/system/cpu/cpu{N}/cpuidle/state{S}/:

- ``time``: microseconds spent in the state since boot
- ``usage``: number of times the state was entered since boot

Two readers implement the same contract.  :class:`CachedCounterSource`
opens every file once and rewinds it on each read, while
:class:`ReopenCounterSource` opens the file fresh every time.
"""

from __future__ import annotations

import enum
import errno
import logging
import os
import re
from pathlib import Path
from typing import IO, TYPE_CHECKING, Protocol

from ..config import DEFAULT_SYSFS_ROOT

if TYPE_CHECKING:
    from ..topology import Topology

log = logging.getLogger(__name__)

# Width of 18446744073709551615, the largest unsigned 64-bit value.
COUNTER_WIDTH = 20
UINT64_MAX = 2**64 - 1

_NUMBER_RE = re.compile(r"\s*([+-]?)(\d*)")


class CounterKind(enum.Enum):
    """Which of the two per-state counters to read."""

    TIME = "time"
    USAGE = "usage"


class CounterReadError(OSError):
    """A counter file could not be opened or read.

    Formats as ``<path>: <system error text>``.
    """

    def __str__(self) -> str:
        return f"{self.filename}: {self.strerror}"


def _wrap_os_error(exc: OSError, path: Path) -> CounterReadError:
    code = exc.errno if exc.errno is not None else errno.EIO
    return CounterReadError(code, exc.strerror or os.strerror(code), str(path))


def counter_path(
    sysfs_root: str | Path, cpu: int, state: int, kind: CounterKind
) -> Path:
    """Return the sysfs file holding one counter."""
    return Path(sysfs_root) / f"cpu{cpu}" / "cpuidle" / f"state{state}" / kind.value


def parse_counter(raw: str | bytes) -> int:
    """Parse counter text the way ``strtoull(raw, NULL, 10)`` does.

    Leading whitespace is skipped and parsing stops at the first non-digit,
    so ``"123\\n"`` and ``"123abc"`` both give 123.  Text with no leading
    digits gives 0.  Values beyond the 64-bit range saturate, and a leading
    minus sign wraps modulo 2**64.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("ascii", errors="replace")
    match = _NUMBER_RE.match(raw)
    sign, digits = match.groups()  # type: ignore[union-attr]
    if not digits:
        return 0
    value = int(digits)
    if value > UINT64_MAX:
        return UINT64_MAX
    if sign == "-":
        value = -value % 2**64
    return value


class CounterSource(Protocol):
    """Protocol for the cpuidle counter readers."""

    def read_counter(self, cpu: int, state: int, kind: CounterKind) -> int: ...

    def close(self) -> None: ...


class ReopenCounterSource:
    """Open the counter file on every read.

    Holds no file handles between reads, so :meth:`close` is a no-op.
    """

    def __init__(self, sysfs_root: str | Path = DEFAULT_SYSFS_ROOT) -> None:
        self._root = Path(sysfs_root)

    def read_counter(self, cpu: int, state: int, kind: CounterKind) -> int:
        """Read one counter.

        Raises:
            CounterReadError: If the file is missing, unreadable, or empty.
        """
        path = counter_path(self._root, cpu, state, kind)
        try:
            with path.open("rb") as f:
                raw = f.read(COUNTER_WIDTH)
        except OSError as exc:
            raise _wrap_os_error(exc, path) from exc
        if not raw:
            raise CounterReadError(
                errno.ENODATA, os.strerror(errno.ENODATA), str(path)
            )
        return parse_counter(raw)

    def close(self) -> None:
        pass

    def __enter__(self) -> ReopenCounterSource:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()


class CachedCounterSource:
    """Open every counter file of the topology once and rewind on each read.

    All files are opened up front by :meth:`open`, so a missing or
    unreadable counter fails the run before the first snapshot.

    Two descriptors are held per (cpu, state) pair.  Large machines can
    exceed the per-process open file limit (``ulimit -n``, often 1024),
    which fails with ``EMFILE``; use :class:`ReopenCounterSource`
    (``--reopen`` on the command line) there.
    """

    def __init__(
        self,
        topology: Topology,
        sysfs_root: str | Path = DEFAULT_SYSFS_ROOT,
    ) -> None:
        self._topology = topology
        self._root = Path(sysfs_root)
        self._files: dict[tuple[int, int, CounterKind], IO[bytes]] = {}

    @property
    def is_open(self) -> bool:
        """Whether the counter files are currently held open."""
        return bool(self._files)

    def open(self) -> None:
        """Open the time and usage files of every (cpu, state) pair.

        Raises:
            CounterReadError: On the first file that cannot be opened.  Any
                files opened before it are closed again.
        """
        try:
            for cpu in range(self._topology.cpu_count):
                for state in range(self._topology.state_count):
                    for kind in CounterKind:
                        path = counter_path(self._root, cpu, state, kind)
                        try:
                            f = path.open("rb", buffering=0)
                        except OSError as exc:
                            raise _wrap_os_error(exc, path) from exc
                        self._files[(cpu, state, kind)] = f
        except CounterReadError:
            self.close()
            raise
        log.debug("Opened %d counter files under %s", len(self._files), self._root)

    def read_counter(self, cpu: int, state: int, kind: CounterKind) -> int:
        """Rewind and read one counter.

        Raises:
            CounterReadError: If the read fails or returns no data.
            KeyError: If (cpu, state) lies outside the topology or the
                source has not been opened.
        """
        f = self._files[(cpu, state, kind)]
        path = counter_path(self._root, cpu, state, kind)
        try:
            f.seek(0)
            raw = f.read(COUNTER_WIDTH)
        except OSError as exc:
            raise _wrap_os_error(exc, path) from exc
        if not raw:
            raise CounterReadError(
                errno.ENODATA, os.strerror(errno.ENODATA), str(path)
            )
        return parse_counter(raw)

    def close(self) -> None:
        """Close every held file handle."""
        for f in self._files.values():
            f.close()
        self._files.clear()

    def __enter__(self) -> CachedCounterSource:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()
