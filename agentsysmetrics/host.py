"""Host information gathering and its mapping to event fields."""

from __future__ import annotations

import datetime as _dt
import os
import platform
import socket
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass
class OSInfo:
    """Operating system details."""

    type: str = ""
    family: str = ""
    platform: str = ""
    name: str = ""
    version: str = ""
    major: int = 0
    minor: int = 0
    patch: int = 0
    build: str = ""
    codename: str = ""


@dataclass
class HostInfo:
    """Details describing a host."""

    architecture: str = ""
    boot_time: _dt.datetime | None = None
    containerized: bool | None = None
    hostname: str = ""
    ips: list[str] = field(default_factory=list)
    kernel_version: str = ""
    macs: list[str] = field(default_factory=list)
    os: OSInfo = field(default_factory=OSInfo)
    timezone: str = ""
    timezone_offset_sec: int = 0
    unique_id: str = ""


def map_host_info(info: HostInfo, fqdn: str = "") -> dict[str, Any]:
    """Map host information to ECS ``host`` fields."""
    name = fqdn or info.hostname
    os_fields: dict[str, Any] = {
        "platform": info.os.platform,
        "version": info.os.version,
        "family": info.os.family,
        "name": info.os.name,
        "kernel": info.kernel_version,
    }
    host: dict[str, Any] = {
        "name": name.lower(),
        "hostname": info.hostname,
        "architecture": info.architecture,
        "os": os_fields,
    }
    if info.unique_id:
        host["id"] = info.unique_id
    if info.containerized is not None:
        host["containerized"] = info.containerized
    if info.os.codename:
        os_fields["codename"] = info.os.codename
    if info.os.build:
        os_fields["build"] = info.os.build
    if info.os.type:
        os_fields["type"] = info.os.type
    return {"host": host}


def _read_text(path: str) -> str | None:
    try:
        with open(path, encoding="utf-8") as handle:
            return handle.read()
    except OSError:
        return None


def _version_parts(version: str) -> tuple[int, int, int]:
    numbers: list[int] = []
    for part in version.replace("-", ".").split("."):
        digits = "".join(ch for ch in part if ch.isdigit())
        if not digits or not part[0].isdigit():
            break
        numbers.append(int(digits))
        if len(numbers) == 3:
            break
    numbers += [0] * (3 - len(numbers))
    return numbers[0], numbers[1], numbers[2]


def _linux_os_info() -> OSInfo:
    try:
        release = platform.freedesktop_os_release()
    except OSError:
        release = {}
    os_id = release.get("ID", "linux")
    id_like = release.get("ID_LIKE", "").split()
    version = release.get("VERSION_ID", "")
    major, minor, patch = _version_parts(version)
    return OSInfo(
        type="linux",
        family=id_like[0] if id_like else os_id,
        platform=os_id,
        name=release.get("NAME", "Linux"),
        version=release.get("VERSION", version),
        major=major,
        minor=minor,
        patch=patch,
        codename=release.get("VERSION_CODENAME", ""),
    )


def _other_os_info() -> OSInfo:
    if sys.platform == "darwin":
        version = platform.mac_ver()[0]
        major, minor, patch = _version_parts(version)
        return OSInfo(
            type="macos", family="darwin", platform="darwin", name="macOS",
            version=version, major=major, minor=minor, patch=patch,
        )
    if sys.platform == "win32":
        version = platform.version()
        major, minor, patch = _version_parts(version)
        return OSInfo(
            type="windows", family="windows", platform="windows",
            name=f"Windows {platform.release()}", version=version,
            major=major, minor=minor, patch=patch, build=platform.win32_ver()[1],
        )
    system = platform.system().lower()
    version = platform.release()
    major, minor, patch = _version_parts(version)
    return OSInfo(
        type=system, family=system, platform=system, name=platform.system(),
        version=version, major=major, minor=minor, patch=patch,
    )


def _boot_time() -> _dt.datetime | None:
    raw = _read_text("/proc/stat")
    if raw is None:
        return None
    for line in raw.splitlines():
        parts = line.split()
        if len(parts) == 2 and parts[0] == "btime" and parts[1].isdigit():
            return _dt.datetime.fromtimestamp(int(parts[1]), tz=_dt.timezone.utc)
    return None


def _host_ips(hostname: str) -> list[str]:
    try:
        infos = socket.getaddrinfo(hostname, None)
    except OSError:
        return []
    ips: list[str] = []
    for info in infos:
        address = str(info[4][0])
        if address not in ips:
            ips.append(address)
    return ips


def _host_macs() -> list[str]:
    base = "/sys/class/net"
    try:
        interfaces = sorted(os.listdir(base))
    except OSError:
        return []
    macs: list[str] = []
    for iface in interfaces:
        address = (_read_text(os.path.join(base, iface, "address")) or "").strip()
        if address and address != "00:00:00:00:00:00" and address not in macs:
            macs.append(address)
    return macs


def _containerized() -> bool | None:
    if not sys.platform.startswith("linux"):
        return None
    if os.path.exists("/.dockerenv") or os.path.exists("/run/.containerenv"):
        return True
    cgroup = _read_text("/proc/1/cgroup") or ""
    return any(marker in cgroup for marker in ("docker", "kubepods", "containerd", "lxc"))


def gather_host_info() -> HostInfo:
    """Collect information about the running host."""
    hostname = socket.gethostname()
    is_linux = sys.platform.startswith("linux")
    local = time.localtime()
    offset = -(time.altzone if local.tm_isdst > 0 else time.timezone)
    unique_id = ""
    if is_linux:
        for path in ("/etc/machine-id", "/var/lib/dbus/machine-id"):
            unique_id = (_read_text(path) or "").strip()
            if unique_id:
                break
    return HostInfo(
        architecture=platform.machine(),
        boot_time=_boot_time() if is_linux else None,
        containerized=_containerized(),
        hostname=hostname,
        ips=_host_ips(hostname),
        kernel_version=platform.release(),
        macs=_host_macs() if is_linux else [],
        os=_linux_os_info() if is_linux else _other_os_info(),
        timezone=time.tzname[1 if local.tm_isdst > 0 else 0],
        timezone_offset_sec=offset,
        unique_id=unique_id,
    )


def report_info(fqdn: str = "") -> Callable[[], dict[str, Any]]:
    """Return a reporter producing the monitoring view of the host information."""

    def _report() -> dict[str, Any]:
        try:
            info = gather_host_info()
        except OSError:
            return {}
        os_fields: dict[str, Any] = {
            "platform": info.os.platform,
            "version": info.os.version,
            "family": info.os.family,
            "name": info.os.name,
            "kernel": info.kernel_version,
        }
        if info.os.codename:
            os_fields["codename"] = info.os.codename
        if info.os.build:
            os_fields["build"] = info.os.build
        report: dict[str, Any] = {
            "hostname": fqdn or info.hostname,
            "architecture": info.architecture,
            "os": os_fields,
        }
        if info.unique_id:
            report["id"] = info.unique_id
        if info.containerized is not None:
            report["containerized"] = info.containerized
        return report

    return _report