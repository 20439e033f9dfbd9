"""Hardware monitoring sensors exposed by the Linux hwmon sysfs interface."""

from __future__ import annotations

import enum
import os
import re
from dataclasses import dataclass, field
from typing import Any

from agentsysmetrics.filesystem import _resolve_host_fs

BASE_DIR = "/sys/class/hwmon"

_SENSOR_TYPE_RE = re.compile(r"([a-z]*)([0-9]*)")
_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_UINT64_MASK = (1 << 64) - 1


class NoMetricError(Exception):
    """A sensor has no metric values, only metadata such as a label."""

    def __init__(self, message: str = "no Metrics exist in this device") -> None:
        super().__init__(message)


class SensorType(enum.Enum):
    """Kinds of hwmon sensors, with their file prefix and units."""

    TEMP = ("temp", "celsius")
    VOLT = ("in", "millivolts")
    FAN = ("fan", "rpm")

    @property
    def file_key(self) -> str:
        """The prefix of the sensor's sysfs files."""
        return self.value[0]

    @property
    def units(self) -> str:
        """The units its values are reported in."""
        return self.value[1]


_SENSOR_TYPES = {st.file_key: st for st in SensorType}


def get_sensor_type(prefix: str) -> SensorType | None:
    """Return the sensor type for a file prefix, or None if unsupported."""
    return _SENSOR_TYPES.get(prefix)


def _string_strip(name: str, path: str) -> str:
    full_path = os.path.join(path, name)
    try:
        with open(full_path, encoding="utf-8") as handle:
            raw = handle.read()
    except FileNotFoundError:
        raise
    except OSError as exc:
        raise OSError(f"error reading file: {exc}") from exc
    return raw.strip()


def _string_strip_int(name: str, path: str) -> int:
    raw = _string_strip(name, path)
    if not _INT_RE.fullmatch(raw):
        raise ValueError(f"error converting value {raw!r}")
    value = int(raw)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"error converting value {raw!r}: value out of range")
    return value & _UINT64_MASK


def _value_for_sensor(name: str, path: str, sensor_type: SensorType) -> int:
    value = _string_strip_int(name, path)
    if sensor_type is SensorType.TEMP:
        value //= 1000
    return value


def _optional_value(name: str, path: str, sensor_type: SensorType) -> int | None:
    try:
        return _value_for_sensor(name, path, sensor_type)
    except (OSError, ValueError):
        return None


@dataclass
class SensorMetrics:
    """Values read from one sensor."""

    label: str = ""
    sensor_type: SensorType = SensorType.TEMP
    critical: int | None = None
    max: int | None = None
    lowest: int | None = None
    average: int | None = None
    value: int | None = None

    def fold(self) -> dict[str, Any]:
        """Return the nested event form, each value keyed by its units.

        The input value is keyed by the sensor type's file prefix.
        """
        units = self.sensor_type.units
        entries = (
            ("critical", self.critical),
            ("max", self.max),
            ("lowest", self.lowest),
            ("average", self.average),
            (self.sensor_type.file_key, self.value),
        )
        return {key: {units: value} for key, value in entries if value is not None}


@dataclass(frozen=True)
class Sensor:
    """One metric of a hwmon chip, such as ``temp7_*``."""

    dev_type: SensorType
    sensor_num: int

    def _name(self, file: str) -> str:
        return f"{self.dev_type.file_key}{self.sensor_num}_{file}"

    def fetch(self, path: str) -> SensorMetrics:
        """Read the sensor's metrics from the device directory ``path``."""
        label_name = self._name("label")
        try:
            label = _string_strip(label_name, path)
        except FileNotFoundError:
            label = f"{self.dev_type.file_key}_{self.sensor_num}"
        except OSError as exc:
            raise OSError(
                f"error fetching label for {label_name} in {path}: {exc}"
            ) from exc

        # Virtual machines often expose labels without any values.
        input_name = self._name("input")
        try:
            value = _value_for_sensor(input_name, path, self.dev_type)
        except FileNotFoundError as exc:
            raise NoMetricError() from exc
        except (OSError, ValueError) as exc:
            raise type(exc)(
                f"error fetching input for {input_name} in {path}: {exc}"
            ) from exc

        return SensorMetrics(
            label=label,
            sensor_type=self.dev_type,
            value=value,
            critical=_optional_value(self._name("crit"), path, self.dev_type),
            max=_optional_value(self._name("max"), path, self.dev_type),
            lowest=_optional_value(self._name("lowest"), path, self.dev_type),
            average=_optional_value(self._name("average"), path, self.dev_type),
        )


@dataclass
class Device:
    """A sensor chip, usually exposed as /sys/class/hwmon/hwmon*."""

    name: str
    abs_path: str
    sensors: list[Sensor] = field(default_factory=list)


def report_sensors(dev: Device) -> dict[str, SensorMetrics]:
    """Return the metrics of every sensor of ``dev`` that has any, keyed by label."""
    metrics: dict[str, SensorMetrics] = {}
    for sensor in dev.sensors:
        try:
            data = sensor.fetch(dev.abs_path)
        except NoMetricError:
            continue
        except (OSError, ValueError) as exc:
            raise type(exc)(
                f"error fetching sensor data for {sensor.dev_type.file_key}: {exc}"
            ) from exc
        metrics[data.label.replace(" ", "_").lower()] = data
    return metrics


def _find_sensors_in_path(path: str) -> list[Sensor]:
    try:
        entries = sorted(os.scandir(path), key=lambda entry: entry.name)
    except OSError as exc:
        raise OSError(f"error reading from hwmon path {path}: {exc}") from exc

    sensors: list[Sensor] = []
    found: set[str] = set()
    for entry in entries:
        if entry.is_dir(follow_symlinks=False) or "_" not in entry.name:
            continue
        match = _SENSOR_TYPE_RE.match(entry.name)
        if match is None or match.group(0) in found:
            continue
        sensor_type = get_sensor_type(match.group(1))
        if sensor_type is None:
            continue
        number = match.group(2)
        if not number:
            raise ValueError(f"error parsing int {number!r} in {entry.name}")
        found.add(match.group(0))
        sensors.append(Sensor(dev_type=sensor_type, sensor_num=int(number)))
    return sensors


def detect_hwmon(hostfs: str | None) -> list[Device]:
    """Return the hwmon devices found under the (host) sysfs tree."""
    full_path = _resolve_host_fs(hostfs, BASE_DIR)
    if not os.path.exists(full_path):
        raise FileNotFoundError(f"hwmon path {full_path} does not exist")

    try:
        names = sorted(os.listdir(full_path))
    except OSError as exc:
        raise OSError(f"error reading directory {full_path}: {exc}") from exc

    devices: list[Device] = []
    for entry_name in names:
        name = os.path.join(full_path, entry_name)
        is_link = os.path.islink(name)
        apath = name
        if is_link:
            try:
                apath = os.readlink(name)
            except OSError as exc:
                raise OSError(f"error reading path link {name}: {exc}") from exc
            if not os.path.isabs(apath):
                apath = os.path.join(BASE_DIR, apath)

        sensors = _find_sensors_in_path(apath)

        name_path = os.path.join(apath, "name")
        try:
            with open(name_path, encoding="utf-8") as handle:
                sensor_name = handle.read().strip()
        except OSError as exc:
            raise OSError(
                f"error reading sensor name file {name_path}: {exc}"
            ) from exc
        devices.append(Device(name=sensor_name, abs_path=apath, sensors=sensors))

    if not devices:
        raise OSError(f"no hwmon devices found in {full_path}")
    return devices