"""Accurate system CPU counts, independent of process affinity."""

from __future__ import annotations

import logging
import os
import re
import sys

logger = logging.getLogger(__name__)

_ONLINE_PATH = "/sys/devices/system/cpu/online"
_PRESENT_PATH = "/sys/devices/system/cpu/present"
_PRESENT_ENV = "LINUX_CPU_COUNT_PRESENT"

_RANGE_RE = re.compile(r"\s*([+-]?\d+)-([+-]?\d+)")


def parse_cpu_range(cpu_range: str) -> int:
    """Return the number of CPUs in a sysfs range such as ``"4-31"``."""
    match = _RANGE_RE.match(cpu_range)
    if match is None:
        raise ValueError(f"error reading from range {cpu_range!r}")
    first, last = int(match.group(1)), int(match.group(2))
    return (last - first) + 1


def parse_cpu_list(raw: str) -> int:
    """Count the CPUs described by a sysfs CPU list such as ``"0-1,3"``."""
    count = 0
    for part in raw.split(","):
        if "-" in part:
            try:
                count += parse_cpu_range(part)
            except ValueError as exc:
                raise ValueError(f"error parsing line {part!r}: {exc}") from exc
        else:
            count += 1
    return count


def _linux_cpu_count() -> int | None:
    path = _PRESENT_PATH if _PRESENT_ENV in os.environ else _ONLINE_PATH
    try:
        with open(path, encoding="utf-8") as handle:
            raw = handle.read()
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise OSError(f"error reading file {path}: {exc}") from exc
    try:
        return parse_cpu_list(raw)
    except ValueError as exc:
        raise ValueError(f"error parsing file {path}: {exc}") from exc


def _native_cpu_count() -> int | None:
    count = os.cpu_count()
    if count is None or count <= 0:
        if sys.platform == "win32":
            raise OSError("received an error while fetching cpu count")
        return None
    return count


def get_cpu() -> int | None:
    """Return the system CPU count, or None where the platform offers no accurate count.

    Raises OSError or ValueError when the count exists but cannot be read.
    """
    if sys.platform.startswith("linux"):
        return _linux_cpu_count()
    if sys.platform == "win32" or sys.platform.startswith(("freebsd", "openbsd")):
        return _native_cpu_count()
    return None


def _runtime_cpu_count() -> int:
    if hasattr(os, "sched_getaffinity"):
        try:
            return len(os.sched_getaffinity(0))
        except OSError:
            pass
    return os.cpu_count() or 1


def num_cpu() -> int:
    """Return the system CPU count, falling back to the CPUs usable by this process."""
    try:
        count = get_cpu()
    except (OSError, ValueError) as exc:
        logger.debug("Error fetching CPU count: %s", exc)
        return _runtime_cpu_count()
    if count is None:
        logger.debug(
            "Accurate CPU counts not available on platform, "
            "falling back to the process CPU count for metrics"
        )
        return _runtime_cpu_count()
    return count