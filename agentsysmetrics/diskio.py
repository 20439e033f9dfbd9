"""Disk I/O counters and iostat-style statistics derived from them."""

from __future__ import annotations

import math
import os
import sys
from dataclasses import dataclass, field, fields, replace

from agentsysmetrics.numcpu import num_cpu

_UINT32_MAX = 0xFFFFFFFF
_UINT64_MASK = (1 << 64) - 1
_SECTOR_SIZE = 512
_MIN_DISKSTATS_FIELDS = 14


def _host_proc(*parts: str) -> str:
    return os.path.join(os.environ.get("HOST_PROC", "/proc"), *parts)


def _sub_u64(current: int, prev: int) -> int:
    """Subtract as unsigned 64-bit counters, wrapping like the kernel values do."""
    return (current - prev) & _UINT64_MASK


def _round(value: float) -> float:
    """Round half up to four decimal places."""
    digit = value * 10_000
    frac = digit - math.floor(digit)
    rounded = math.ceil(digit) if frac >= 0.5 else math.floor(digit)
    return rounded / 10_000


def get_clk_tck() -> int:
    """Return the clock ticks per second used for CPU time accounting."""
    return 100


@dataclass
class IOCountersStat:
    """Cumulative I/O counters of one block device."""

    name: str = ""
    read_count: int = 0
    merged_read_count: int = 0
    write_count: int = 0
    merged_write_count: int = 0
    read_bytes: int = 0
    write_bytes: int = 0
    read_time: int = 0
    write_time: int = 0
    iops_in_progress: int = 0
    io_time: int = 0
    weighted_io: int = 0


@dataclass
class IOMetric:
    """Per-second rates and averages as reported by ``iostat -x``."""

    read_request_merge_count_per_sec: float = 0.0
    write_request_merge_count_per_sec: float = 0.0
    read_request_count_per_sec: float = 0.0
    write_request_count_per_sec: float = 0.0
    read_bytes_per_sec: float = 0.0
    write_bytes_per_sec: float = 0.0
    avg_request_size: float = 0.0
    avg_queue_size: float = 0.0
    avg_await_time: float = 0.0
    avg_read_await_time: float = 0.0
    avg_write_await_time: float = 0.0
    avg_service_time: float = 0.0
    busy_pct: float = 0.0


@dataclass
class CpuTimes:
    """Aggregate CPU times in clock ticks."""

    user: int = 0
    nice: int = 0
    sys: int = 0
    idle: int = 0
    wait: int = 0
    irq: int = 0
    soft_irq: int = 0
    stolen: int = 0

    def total(self) -> int:
        """Return the sum of all CPU times."""
        return sum(getattr(self, f.name) for f in fields(self))


def read_cpu_times(path: str | None = None) -> CpuTimes:
    """Read the aggregate ``cpu`` line of a /proc/stat file."""
    if path is None:
        path = _host_proc("stat")
    with open(path, encoding="utf-8") as handle:
        for line in handle:
            parts = line.split()
            if parts and parts[0] == "cpu":
                values = [int(v) for v in parts[1:9]]
                values += [0] * (8 - len(values))
                return CpuTimes(*values)
    raise ValueError(f"no cpu line found in {path}")


def io_counters(*names: str) -> dict[str, IOCountersStat]:
    """Read per-device counters from diskstats, optionally restricted to ``names``."""
    path = _host_proc("diskstats")
    with open(path, encoding="utf-8") as handle:
        lines = handle.read().splitlines()

    result: dict[str, IOCountersStat] = {}
    for line in lines:
        parts = line.split()
        if len(parts) < _MIN_DISKSTATS_FIELDS:
            continue
        name = parts[2]
        if names and name not in names:
            continue
        try:
            values = [int(v) for v in parts[3:14]]
        except ValueError as exc:
            raise ValueError(f"error parsing diskstats line for {name}: {exc}") from exc
        (
            reads,
            merged_reads,
            read_sectors,
            read_time,
            writes,
            merged_writes,
            write_sectors,
            write_time,
            in_progress,
            io_time,
            weighted_io,
        ) = values
        result[name] = IOCountersStat(
            name=name,
            read_count=reads,
            merged_read_count=merged_reads,
            write_count=writes,
            merged_write_count=merged_writes,
            read_bytes=read_sectors * _SECTOR_SIZE,
            write_bytes=write_sectors * _SECTOR_SIZE,
            read_time=read_time,
            write_time=write_time,
            iops_in_progress=in_progress,
            io_time=io_time,
            weighted_io=weighted_io,
        )
    return result


def return_or_fix_32bit_rollover(current: int, prev: int) -> int:
    """Return ``current - prev``, compensating for a 32-bit kernel counter rollover."""
    if current >= prev:
        return current - prev
    if prev > _UINT32_MAX:
        return 0
    return (_UINT32_MAX - prev) + current


@dataclass
class IOStat:
    """Tracks disk counters between samples to derive per-second statistics.

    Statistics are only computed on Linux; ``platform`` selects the behaviour.
    """

    last_disk_io_counters: dict[str, IOCountersStat] = field(default_factory=dict)
    last_cpu: CpuTimes = field(default_factory=CpuTimes)
    cur_cpu: CpuTimes = field(default_factory=CpuTimes)
    platform: str = field(default_factory=lambda: sys.platform)

    @property
    def _is_linux(self) -> bool:
        return self.platform.startswith("linux")

    def open_sampling(self) -> None:
        """Take the current CPU sample; call right after reading the I/O counters."""
        if self._is_linux:
            self.cur_cpu = read_cpu_times()

    def calc_io_statistics(self, counter: IOCountersStat) -> IOMetric:
        """Compute statistics for ``counter`` relative to its previous sample."""
        if not self._is_linux:
            if self.platform == "win32":
                raise OSError("iostat is not implemented for Windows")
            raise OSError("iostat is not implemented out of linux")

        last = self.last_disk_io_counters.get(counter.name)
        if last is None:
            self.last_disk_io_counters[counter.name] = counter
            return IOMetric()

        cpu_delta = _sub_u64(self.cur_cpu.total(), self.last_cpu.total())
        delta_ms = 1000.0 * cpu_delta / num_cpu() / get_clk_tck()
        if delta_ms <= 0:
            raise ValueError(
                "the delta cpu time between close sampling and open sampling "
                "is less or equal to 0"
            )

        rd_ios = _sub_u64(counter.read_count, last.read_count)
        rd_merges = _sub_u64(counter.merged_read_count, last.merged_read_count)
        rd_bytes = _sub_u64(counter.read_bytes, last.read_bytes)
        rd_ticks = return_or_fix_32bit_rollover(counter.read_time, last.read_time)
        wr_ios = _sub_u64(counter.write_count, last.write_count)
        wr_merges = _sub_u64(counter.merged_write_count, last.merged_write_count)
        wr_bytes = _sub_u64(counter.write_bytes, last.write_bytes)
        wr_ticks = return_or_fix_32bit_rollover(counter.write_time, last.write_time)
        ticks = return_or_fix_32bit_rollover(counter.io_time, last.io_time)
        aveq = return_or_fix_32bit_rollover(counter.weighted_io, last.weighted_io)

        n_ios = (rd_ios + wr_ios) & _UINT64_MASK
        n_ticks = (rd_ticks + wr_ticks) & _UINT64_MASK
        n_bytes = (rd_bytes + wr_bytes) & _UINT64_MASK
        size = wait = svct = 0.0
        if n_ios > 0:
            size = n_bytes / n_ios
            wait = n_ticks / n_ios
            svct = ticks / n_ios

        def per_sec(value: int) -> float:
            return _round(1000.0 * value / delta_ms)

        result = IOMetric(
            read_request_merge_count_per_sec=per_sec(rd_merges),
            write_request_merge_count_per_sec=per_sec(wr_merges),
            read_request_count_per_sec=per_sec(rd_ios),
            write_request_count_per_sec=per_sec(wr_ios),
            read_bytes_per_sec=per_sec(rd_bytes),
            write_bytes_per_sec=per_sec(wr_bytes),
            avg_request_size=_round(size),
            avg_queue_size=_round(aveq / delta_ms),
            avg_await_time=_round(wait),
            avg_service_time=_round(svct),
            busy_pct=min(_round(100.0 * ticks / delta_ms), 100.0),
        )
        if rd_ios > 0:
            result.avg_read_await_time = _round(rd_ticks / rd_ios)
        if wr_ios > 0:
            result.avg_write_await_time = _round(wr_ticks / wr_ios)

        self.last_disk_io_counters[counter.name] = counter
        return result

    def close_sampling(self) -> None:
        """Keep the current CPU sample as the baseline for the next round."""
        if self._is_linux:
            self.last_cpu = replace(self.cur_cpu)