import pytest

from agentsysmetrics.diskio import (
    CpuTimes,
    IOCountersStat,
    IOMetric,
    IOStat,
    get_clk_tck,
    io_counters,
    read_cpu_times,
    return_or_fix_32bit_rollover,
)

MAX_UINT32 = 4_294_967_295

DISKSTATS = (
    "   8       0 sda 100 5 2000 30 200 6 4000 40 0 50 70 0 0 0 0\n"
    "   8       1 sda1 10 1 20 3 20 2 40 4 0 5 7\n"
    "   7       0 loop0 1 2 3\n"
)

PROC_STAT = (
    "cpu  10 20 30 40 50 60 70 80 0 0\n"
    "cpu0 1 2 3 4 5 6 7 8 0 0\n"
    "intr 12345\n"
)


@pytest.fixture
def host_proc(tmp_path, monkeypatch):
    (tmp_path / "diskstats").write_text(DISKSTATS)
    (tmp_path / "stat").write_text(PROC_STAT)
    monkeypatch.setenv("HOST_PROC", str(tmp_path))
    return tmp_path


def test_get_clk_tck():
    assert get_clk_tck() == 100


def test_32bit_rollover():
    prev = MAX_UINT32 - 100_000
    current32 = 1000
    current64 = MAX_UINT32 + current32
    correct = current64 - prev
    assert return_or_fix_32bit_rollover(current32, prev) == return_or_fix_32bit_rollover(
        current64, prev
    )
    assert return_or_fix_32bit_rollover(current32, prev) == correct
    assert return_or_fix_32bit_rollover(current32, current32) == 0


def test_rollover_past_uint32_gives_zero():
    assert return_or_fix_32bit_rollover(5, MAX_UINT32 + 10) == 0


def test_calc_io_statistics():
    counter = IOCountersStat(
        name="iostat", read_count=13, write_count=17, read_time=19, write_time=23
    )
    stat = IOStat(
        last_disk_io_counters={
            "iostat": IOCountersStat(
                name="iostat", read_count=3, write_count=5, read_time=7, write_time=11
            )
        },
        last_cpu=CpuTimes(idle=100),
        cur_cpu=CpuTimes(idle=1),
        platform="linux",
    )
    got = stat.calc_io_statistics(counter)
    assert got.avg_await_time == pytest.approx(1.0909)
    assert got.avg_read_await_time == pytest.approx(1.2)
    assert got.avg_write_await_time == pytest.approx(1.0)
    assert stat.last_disk_io_counters["iostat"] is counter


def test_first_sample_returns_zero_metric():
    stat = IOStat(platform="linux")
    counter = IOCountersStat(name="sdb", read_count=42)
    assert stat.calc_io_statistics(counter) == IOMetric()
    assert stat.last_disk_io_counters["sdb"] == counter


def test_zero_cpu_delta_raises():
    stat = IOStat(
        last_disk_io_counters={"sda": IOCountersStat(name="sda")},
        last_cpu=CpuTimes(idle=5),
        cur_cpu=CpuTimes(idle=5),
        platform="linux",
    )
    with pytest.raises(ValueError):
        stat.calc_io_statistics(IOCountersStat(name="sda", read_count=1))


def test_busy_pct_is_clamped():
    stat = IOStat(
        last_disk_io_counters={"sda": IOCountersStat(name="sda")},
        last_cpu=CpuTimes(),
        cur_cpu=CpuTimes(idle=1),
        platform="linux",
    )
    got = stat.calc_io_statistics(IOCountersStat(name="sda", write_count=1, io_time=1000))
    assert got.busy_pct == 100.0


@pytest.mark.parametrize("platform", ["win32", "darwin", "freebsd13"])
def test_other_platforms_raise(platform):
    stat = IOStat(platform=platform)
    with pytest.raises(OSError):
        stat.calc_io_statistics(IOCountersStat(name="sda"))


def test_cpu_times_total():
    assert CpuTimes(1, 2, 3, 4, 5, 6, 7, 8).total() == 36


def test_read_cpu_times(host_proc):
    times = read_cpu_times(str(host_proc / "stat"))
    assert times == CpuTimes(10, 20, 30, 40, 50, 60, 70, 80)
    assert read_cpu_times() == times


def test_read_cpu_times_without_cpu_line(tmp_path):
    path = tmp_path / "stat"
    path.write_text("intr 1\n")
    with pytest.raises(ValueError):
        read_cpu_times(str(path))


def test_io_counters(host_proc):
    counters = io_counters()
    assert sorted(counters) == ["sda", "sda1"]
    sda = counters["sda"]
    assert sda.read_count == 100
    assert sda.merged_read_count == 5
    assert sda.read_bytes == 2000 * 512
    assert sda.read_time == 30
    assert sda.write_count == 200
    assert sda.merged_write_count == 6
    assert sda.write_bytes == 4000 * 512
    assert sda.write_time == 40
    assert sda.io_time == 50
    assert sda.weighted_io == 70


def test_io_counters_filtered(host_proc):
    counters = io_counters("sda1")
    assert list(counters) == ["sda1"]
    assert counters["sda1"].write_bytes == 40 * 512


def test_sampling_moves_cpu_baseline(host_proc):
    stat = IOStat(platform="linux")
    stat.open_sampling()
    assert stat.cur_cpu.total() == 360
    assert stat.last_cpu.total() == 0
    stat.close_sampling()
    assert stat.last_cpu == stat.cur_cpu


def test_sampling_is_noop_elsewhere(host_proc):
    stat = IOStat(platform="win32")
    stat.open_sampling()
    stat.close_sampling()
    assert stat.cur_cpu == CpuTimes()
    assert stat.last_cpu == CpuTimes()