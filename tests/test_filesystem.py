import os

import pytest

from agentsysmetrics.filesystem import (
    FSStat,
    UsedVals,
    avoid_file_system,
    build_default_filters,
    build_filter_with_list,
    default_ignored_types,
    filter_duplicates,
    get_filesystems,
    parse_mounts,
)


def _key(fs):
    return (fs.directory, fs.device, fs.type)


def _filter_file_system_list(stats, hostfs):
    default_filter = build_default_filters(hostfs)
    kept = [s for s in stats if avoid_file_system(s) and default_filter(s)]
    return filter_duplicates(kept)


def test_filter():
    fss = [FSStat(type="nfs"), FSStat(type="ext4"), FSStat(type="proc"), FSStat(type="smb")]
    keep = build_filter_with_list(["nfs", "smb", "proc"])
    out = [fs for fs in fss if keep(fs)]
    assert len(out) == 1
    assert out[0].type == "ext4"


def _cases(fake_dev_dir):
    return [
        (
            [FSStat(directory="/", device="/dev/sda1"), FSStat(directory="/", device="/dev/sda1")],
            [FSStat(directory="/", device="/dev/sda1")],
        ),
        (
            [FSStat(directory="/", device="/dev/sda1"), FSStat(directory="/bind", device="/dev/sda1")],
            [FSStat(directory="/", device="/dev/sda1")],
        ),
        (
            [FSStat(directory="/bind", device="/dev/sda1"), FSStat(directory="/", device="/dev/sda1")],
            [FSStat(directory="/", device="/dev/sda1")],
        ),
        (
            [FSStat(directory="/run", device="tmpfs"), FSStat(directory="/tmp", device="tmpfs")],
            [FSStat(directory="/run", device="tmpfs"), FSStat(directory="/tmp", device="tmpfs")],
        ),
        (
            [
                FSStat(directory="/", device="/dev/sda1"),
                FSStat(directory="/bind", device="/dev/sda1"),
                FSStat(directory="/run", device="tmpfs"),
            ],
            [FSStat(directory="/", device="/dev/sda1"), FSStat(directory="/run", device="tmpfs")],
        ),
        (
            [FSStat(directory="/", device="/dev/sda1"), FSStat(directory="/bind", device=fake_dev_dir)],
            [FSStat(directory="/", device="/dev/sda1")],
        ),
        (
            [FSStat(directory="/srv/data", device="192.168.42.42:/exports/nfs1")],
            [FSStat(directory="/srv/data", device="192.168.42.42:/exports/nfs1")],
        ),
    ]


@pytest.mark.parametrize("index", range(7))
def test_file_system_list_filtering(tmp_path, index):
    fake_dev_dir = tmp_path / "fakedev"
    fake_dev_dir.mkdir()
    hostfs = tmp_path / "hostfs"
    hostfs.mkdir()
    fss, expected = _cases(str(fake_dev_dir))[index]
    filtered = _filter_file_system_list(fss, str(hostfs))
    assert sorted(filtered, key=_key) == sorted(expected, key=_key)


def test_used_vals_is_zero():
    assert UsedVals().is_zero() is True
    assert UsedVals(bytes=0).is_zero() is False
    assert UsedVals(pct=0.5).is_zero() is False


def test_fill_metrics():
    fs = FSStat(total=100, free=40, avail=30)
    fs.fill_metrics()
    assert fs.used.bytes == 60
    assert fs.used.pct == pytest.approx(0.6667)


def test_fill_metrics_without_totals():
    fs = FSStat()
    fs.fill_metrics()
    assert fs.used.bytes is None
    assert fs.used.pct is None


def test_get_usage(tmp_path):
    fs = FSStat(directory=str(tmp_path))
    fs.get_usage()
    assert fs.total > 0
    assert fs.total >= fs.free
    assert fs.used.bytes == fs.total - fs.free
    assert 0.0 <= fs.used.pct <= 1.0


def test_get_usage_missing_directory(tmp_path):
    fs = FSStat(directory=str(tmp_path / "missing"))
    with pytest.raises(OSError):
        fs.get_usage()


def test_default_ignored_types(tmp_path):
    proc = tmp_path / "proc"
    proc.mkdir()
    (proc / "filesystems").write_text("nodev\tsysfs\nnodev\ttmpfs\n\text4\nnodev\tproc\n")
    assert default_ignored_types(str(tmp_path)) == ["sysfs", "tmpfs", "proc"]


def test_default_ignored_types_missing_file(tmp_path):
    assert default_ignored_types(str(tmp_path)) == []


def test_parse_mounts(tmp_path):
    mounts = tmp_path / "mounts"
    mounts.write_text("tmpfs /run tmpfs rw,nosuid 0 0\n\nproc /proc proc rw 0 0\n")
    result = parse_mounts(str(mounts), lambda fs: fs.type != "proc")
    assert result == [FSStat(device="tmpfs", directory="/run", type="tmpfs", options="rw,nosuid")]


def test_parse_mounts_missing_file(tmp_path):
    with pytest.raises(OSError, match="error reading mount file"):
        parse_mounts(str(tmp_path / "nope"), lambda fs: True)


def test_parse_mounts_malformed_line(tmp_path):
    mounts = tmp_path / "mounts"
    mounts.write_text("tmpfs /run\n")
    with pytest.raises(ValueError):
        parse_mounts(str(mounts), lambda fs: True)


def _make_hostfs(tmp_path):
    hostfs = tmp_path / "hostfs"
    proc = hostfs / "proc"
    proc.mkdir(parents=True)
    device = os.path.join(str(tmp_path), "devices", "sda1")
    (proc / "mounts").write_text(
        f"{device} / ext4 rw,relatime 0 0\n"
        "tmpfs /run tmpfs rw 0 0\n"
        "proc /proc proc rw 0 0\n"
        f"{device} /mnt/bind ext4 rw 0 0\n"
        "nsfs net:[4026532] nsfs rw 0 0\n"
    )
    (proc / "filesystems").write_text("nodev\ttmpfs\nnodev\tproc\nnodev\tnsfs\n\text4\n")
    return str(hostfs), device


def test_get_filesystems_default_filter(tmp_path):
    hostfs, device = _make_hostfs(tmp_path)
    result = get_filesystems(hostfs)
    assert result == [FSStat(device=device, directory="/", type="ext4", options="rw,relatime")]


def test_get_filesystems_custom_filter(tmp_path):
    hostfs, device = _make_hostfs(tmp_path)
    result = get_filesystems(hostfs, build_filter_with_list(["proc"]))
    assert sorted(_key(fs) for fs in result) == [("/", device, "ext4"), ("/run", "tmpfs", "tmpfs")]


def test_get_filesystems_missing_mounts(tmp_path):
    with pytest.raises(OSError, match="error reading mounts"):
        get_filesystems(str(tmp_path))