"""Discovery of mounted filesystems and their space usage."""

from __future__ import annotations

import logging
import os
import shutil
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from agentsysmetrics.diskio import _round

logger = logging.getLogger(__name__)

FilterFunc = Callable[["FSStat"], bool]


def _hostfs_is_set(hostfs: str | None) -> bool:
    return bool(hostfs)


def _resolve_host_fs(hostfs: str | None, path: str) -> str:
    """Place an absolute system path under the host filesystem root, if one is set."""
    if _hostfs_is_set(hostfs):
        return os.path.join(hostfs, path.lstrip("/"))
    return path


def _fs_path(hostfs: str | None) -> str:
    # Inside containers /etc/mtab may be missing; /proc/self/mounts is its target.
    # With a host root set, the host's own /proc/mounts is more trustworthy.
    if _hostfs_is_set(hostfs):
        return _resolve_host_fs(hostfs, "/proc/mounts")
    return _resolve_host_fs(hostfs, "/proc/self/mounts")


@dataclass
class UsedVals:
    """The ``used`` part of filesystem metrics."""

    pct: float | None = None
    bytes: int | None = None

    def is_zero(self) -> bool:
        """Return True when neither value is set."""
        return self.pct is None and self.bytes is None


@dataclass
class FSStat:
    """Metadata and usage metrics of one mounted filesystem."""

    directory: str = ""
    device: str = ""
    type: str = ""
    options: str = ""
    flags: int | None = None
    total: int | None = None
    free: int | None = None
    avail: int | None = None
    used: UsedVals = field(default_factory=UsedVals)
    files: int | None = None
    free_files: int | None = None

    def get_usage(self) -> None:
        """Fill in the space and inode metrics for this mount point."""
        if hasattr(os, "statvfs"):
            try:
                stat = os.statvfs(self.directory)
            except OSError as exc:
                raise OSError(f"error in Statfs syscall: {exc}") from exc
            block_size = stat.f_frsize or stat.f_bsize
            self.total = stat.f_blocks * block_size
            self.free = stat.f_bfree * block_size
            self.avail = stat.f_bavail * block_size
            self.files = stat.f_files
            self.free_files = stat.f_ffree
        else:
            try:
                usage = shutil.disk_usage(self.directory)
            except OSError as exc:
                raise OSError(f"error reading disk usage: {exc}") from exc
            self.total = usage.total
            self.free = usage.free
            self.avail = usage.free
        self.fill_metrics()

    def fill_metrics(self) -> None:
        """Compute the derived ``used`` values from total, free and available space."""
        if self.total is None or self.free is None:
            self.used.bytes = None
        else:
            self.used.bytes = self.total - self.free

        # Percentage is relative to used + available rather than total.
        perc_total = (self.used.bytes or 0) + (self.avail or 0)
        if perc_total == 0:
            return
        self.used.pct = _round((self.used.bytes or 0) / perc_total)


def default_ignored_types(hostfs: str | None) -> list[str]:
    """Return the filesystem types that /proc/filesystems marks as ``nodev``."""
    path = _resolve_host_fs(hostfs, "/proc/filesystems")
    types: list[str] = []
    try:
        with open(path, encoding="utf-8") as handle:
            for line in handle:
                parts = line.split()
                if len(parts) == 2 and parts[0] == "nodev":
                    types.append(parts[1])
    except OSError:
        pass
    return types


def build_filter_with_list(ignored: Iterable[str]) -> FilterFunc:
    """Return a filter rejecting filesystems whose type is in ``ignored``."""
    ignored_types = frozenset(ignored)

    def _filter(fs: FSStat) -> bool:
        return fs.type not in ignored_types

    return _filter


def build_default_filters(hostfs: str | None) -> FilterFunc:
    """Return the filter used when no filter is supplied."""
    return build_filter_with_list(default_ignored_types(hostfs))


def filter_duplicates(fs_list: Iterable[FSStat]) -> list[FSStat]:
    """Keep each block device once, at its shortest mount point."""
    devices: dict[str, FSStat] = {}
    filtered: list[FSStat] = []
    for fs in fs_list:
        if not os.path.isabs(fs.device):
            filtered.append(fs)
            continue
        seen = devices.get(fs.device)
        if seen is None or len(fs.directory) < len(seen.directory):
            devices[fs.device] = fs
    filtered.extend(devices.values())
    return filtered


def avoid_file_system(fs: FSStat) -> bool:
    """Return False for mounts that should never be reported."""
    # Relative mount points show up in /proc/mounts with network namespaces.
    if not os.path.isabs(fs.directory):
        logger.debug("Filtering filesystem with relative mountpoint %r", fs)
        return False

    if not os.path.isabs(fs.device):
        return True

    if sys.platform != "win32":
        # A directory as device means a bind mount or nullfs: its parent is counted already.
        try:
            if os.path.isdir(fs.device):
                return False
        except OSError as exc:
            logger.debug("error stating filesystem: %s", exc)
    return True


def parse_mounts(path: str, filter: FilterFunc) -> list[FSStat]:
    """Read a mounts table and return the entries accepted by ``filter``."""
    try:
        with open(path, encoding="utf-8") as handle:
            raw = handle.read()
    except OSError as exc:
        raise OSError(f"error reading mount file {path}: {exc}") from exc

    fs_list: list[FSStat] = []
    for line in raw.split("\n"):
        parts = line.split()
        if not parts:
            continue
        if len(parts) < 4:
            raise ValueError(f"malformed line in mount file {path}: {line!r}")
        fs = FSStat(
            device=parts[0], directory=parts[1], type=parts[2], options=parts[3]
        )
        if filter(fs):
            fs_list.append(fs)
    return fs_list


def get_filesystems(
    hostfs: str | None, filter: FilterFunc | None = None
) -> list[FSStat]:
    """Return the mounted filesystems accepted by ``filter`` and the built-in checks."""
    path = _fs_path(hostfs)
    user_filter = filter if filter is not None else build_default_filters(hostfs)

    def _combined(fs: FSStat) -> bool:
        return avoid_file_system(fs) and user_filter(fs)

    try:
        mounts = parse_mounts(path, _combined)
    except (OSError, ValueError) as exc:
        raise type(exc)(f"error reading mounts: {exc}") from exc
    return filter_duplicates(mounts)