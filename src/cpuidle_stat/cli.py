"""Command-line interface for cpuidle-stat."""

from __future__ import annotations

import argparse
import logging
import re
import sys
from typing import NoReturn

from .config import DEFAULT_SYSFS_ROOT, SamplerConfig
from .report import RENDERERS
from .sensors.counters import CounterReadError

DEFAULT_DURATION = 1
INT_MAX = 2**31 - 1
LONG_MIN = -(2**63)
LONG_MAX = 2**63 - 1

_INTEGER_RE = re.compile(r"[ \t\n\v\f\r]*[+-]?[0-9]+", re.ASCII)


class UsageError(ValueError):
    """The command line cannot be turned into a SamplerConfig."""


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on bad usage."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def parse_duration(raw: str | None) -> int:
    """Turn the positional argument into a sample duration in seconds.

    Integers outside ``[1, INT_MAX]`` fall back to the default with a
    warning on stderr.  Follows ``strtol``: values are clamped to the C
    ``long`` range before the warning is printed, and an empty string
    reads as 0.

    Raises:
        UsageError: If ``raw`` is not an integer.
    """
    if raw is None:
        return DEFAULT_DURATION
    if raw == "":
        # strtol converts an empty string to 0 with nothing left over
        value = 0
    elif _INTEGER_RE.fullmatch(raw):
        value = min(max(int(raw), LONG_MIN), LONG_MAX)
    else:
        raise UsageError("Sample duration should be an integer")
    if value < 1 or value > INT_MAX:
        print(f"Value {value} is out of range, using default", file=sys.stderr)
        return DEFAULT_DURATION
    return value


def parse_args(argv: list[str] | None = None) -> SamplerConfig:
    """Parse command-line arguments and return a SamplerConfig."""
    parser = _ArgumentParser(
        prog="cpuidle-stat",
        description=(
            "Report per-CPU idle ratios and cpuidle state residency "
            "over a sampling window"
        ),
    )
    parser.add_argument(
        "duration",
        nargs="?",
        default=None,
        metavar="DURATION",
        help=f"Sample duration in seconds (default: {DEFAULT_DURATION})",
    )
    parser.add_argument(
        "--sysfs-root",
        default=DEFAULT_SYSFS_ROOT,
        help=f"Base path of the CPU sysfs tree (default: {DEFAULT_SYSFS_ROOT})",
    )
    parser.add_argument(
        "--reopen",
        action="store_true",
        help="Re-open counter files on every read instead of keeping them open",
    )
    parser.add_argument(
        "-f",
        "--format",
        dest="output_format",
        choices=sorted(RENDERERS),
        default="text",
        help="Report format (default: text)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log discovery and timing details to stderr",
    )

    args = parser.parse_args(argv)

    return SamplerConfig(
        duration=parse_duration(args.duration),
        sysfs_root=args.sysfs_root,
        reopen=args.reopen,
        output_format=args.output_format,
        verbose=args.verbose,
    )


def main(argv: list[str] | None = None) -> int:
    """Entry point for the cpuidle-stat CLI. Returns the exit status."""
    try:
        config = parse_args(argv)
    except UsageError as e:
        print(e, file=sys.stderr)
        return 1
    except SystemExit as e:
        # argparse exits on --help and on bad usage
        return e.code if isinstance(e.code, int) else 1

    if config.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )

    # Import here so --help works without touching sysfs
    from .sampler import run_sampler

    try:
        report = run_sampler(config)
    except CounterReadError as e:
        print(e, file=sys.stderr)
        return e.errno or 1
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130

    RENDERERS[config.output_format](report)
    return 0
