# agentsysmetrics

A small, dependency-free library for collecting host system metrics the way a
monitoring agent needs them: accurate CPU counts, `iostat -x` style disk
statistics, filesystem usage, host identity, network protocol counters and
hardware-monitor (hwmon) sensor readings.

Most collectors read `/proc` and `/sys` directly, so they are meant for Linux
hosts, including monitoring a host from inside a container that mounts the
host's root filesystem under a prefix.

## Modules

| Module | What it provides |
| --- | --- |
| `agentsysmetrics.numcpu` | `num_cpu()`, `get_cpu()`, `parse_cpu_list()` and `parse_cpu_range()` |
| `agentsysmetrics.diskio` | `io_counters()`, `read_cpu_times()`, `IOCountersStat`, `CpuTimes`, `IOStat`, `IOMetric`, `get_clk_tck()` and `return_or_fix_32bit_rollover()` |
| `agentsysmetrics.filesystem` | `get_filesystems()`, `parse_mounts()`, `FSStat` and `UsedVals`, and the filters `build_filter_with_list()`, `build_default_filters()`, `default_ignored_types()`, `avoid_file_system()` and `filter_duplicates()` |
| `agentsysmetrics.host` | `HostInfo`, `OSInfo`, `gather_host_info()`, `map_host_info()` and `report_info()` |
| `agentsysmetrics.network` | `SNMP`, `Netstat`, `NetworkCountersInfo`, `map_proc_net_counters()`, `map_proc_net_counters_with_filter()`, `combine_map()` and `check_max_conn()` |
| `agentsysmetrics.hwmon` | `detect_hwmon()`, `report_sensors()`, `Device`, `Sensor`, `SensorType`, `SensorMetrics`, `get_sensor_type()` and `NoMetricError` |

## CPU count

```python
from agentsysmetrics.numcpu import num_cpu, parse_cpu_list

print(num_cpu())
print(parse_cpu_list("0-1,3"))  # 3
```

On Linux `get_cpu()` counts the CPUs listed in
`/sys/devices/system/cpu/online`; with the environment variable
`LINUX_CPU_COUNT_PRESENT` set it reads `/sys/devices/system/cpu/present`
instead. On Windows, FreeBSD and OpenBSD it uses `os.cpu_count()`; elsewhere it
returns `None`. `num_cpu()` never raises: when `get_cpu()` fails or returns
`None`, it falls back to the number of CPUs this process may run on.

## Disk I/O statistics

`io_counters(*names)` reads per-device counters from `diskstats` under
`$HOST_PROC` (default `/proc`), optionally restricted to the given device
names. `IOStat` turns two samples of those counters into rates. The first call
for a device records a baseline and returns an all-zero `IOMetric`; later calls
return rates over the CPU time elapsed between samples:

```python
from agentsysmetrics.diskio import IOStat, io_counters

stat = IOStat()
for _ in range(2):
    counters = io_counters()
    stat.open_sampling()
    for name, counter in counters.items():
        print(name, stat.calc_io_statistics(counter))
    stat.close_sampling()
```

`open_sampling()` reads the aggregate `cpu` line of `$HOST_PROC/stat` with
`read_cpu_times()`. If no CPU time passed between samples,
`calc_io_statistics()` raises `ValueError`. Some kernel disk counters are 32-bit
and wrap around; their deltas are corrected with
`return_or_fix_32bit_rollover()`. Rates are computed only when
`IOStat.platform` is Linux; otherwise `calc_io_statistics()` raises `OSError`.

## Filesystems

```python
from agentsysmetrics.filesystem import build_filter_with_list, get_filesystems

for fs in get_filesystems(None, build_filter_with_list(["tmpfs", "overlay"])):
    fs.get_usage()
    print(fs.directory, fs.device, fs.type, fs.total, fs.used.pct)
```

The first argument, `hostfs`, is a path prefix for the host's root filesystem,
or `None` (or `""`) to read the local system. Without a prefix the mounts come
from `/proc/self/mounts`; with one, from `<hostfs>/proc/mounts`. With no filter
the types marked `nodev` in `/proc/filesystems` are skipped. Mounts with
relative mount points, and bind mounts whose device is a directory, are always
dropped; a block device mounted several times is kept once, at its shortest
mount point. `get_usage()` fills `total`, `free`, `avail`, `files`,
`free_files` and `used` (bytes and a fraction of used plus available space,
rounded to four places).

## Host information

```python
from agentsysmetrics.host import gather_host_info, map_host_info

doc = map_host_info(gather_host_info(), "")
print(doc["host"]["name"], doc["host"]["os"]["kernel"])
```

A non-empty fully qualified domain name as the second argument is used, lower
cased, as `host.name`; otherwise the lower-cased host name is. `id`,
`containerized`, `os.codename`, `os.build` and `os.type` appear only when set.
`report_info(fqdn)` returns a function that gathers the host information on
each call and returns a flat monitoring dictionary of it.

## Network counters

`map_proc_net_counters(info)` groups a `NetworkCountersInfo` into `ip`, `tcp`,
`udp`, `udp_lite` and `icmp`, merging the netstat extension counters with the
SNMP ones. `map_proc_net_counters_with_filter(info, names)` keeps only the
named counters in `ip`, `tcp` and `icmp` (a filter of `["all"]` or an empty one
keeps everything). `MaxConn` is reported as a signed 64-bit integer.

## Hardware sensors

```python
from agentsysmetrics.hwmon import detect_hwmon, report_sensors

for device in detect_hwmon(None):
    for label, metrics in report_sensors(device).items():
        print(device.name, label, metrics.fold())
```

`detect_hwmon(hostfs)` scans `/sys/class/hwmon` (under the `hostfs` prefix, if
given) for temperature, voltage and fan sensors. Sensors without an input value
are skipped by `report_sensors()`. Temperatures are converted from
millidegrees to whole degrees Celsius. `SensorMetrics.fold()` returns each
value keyed by its units, with the input value under the sensor's file prefix
(`temp`, `in` or `fan`).

## What the package does not do

It is a library only: it has no command-line program and does not ship,
store or serve the metrics it collects. Disk I/O counters are read from
`diskstats`, so there are no disk counters on systems without it, and
filesystem discovery reads a Linux-style mounts table.

## Running the tests

Install the package with its `test` extra and run `pytest` from the project
directory.