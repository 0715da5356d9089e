import subprocess

import pytest

from swift_exporter.collectors import sources as sources_mod
from swift_exporter.collectors.drives import drive_label
from swift_exporter.collectors.sources import HostSources, block_device_name
from swift_exporter.utils.exceptions import DataSourceError


@pytest.mark.parametrize("device, expected", [
    ("/dev/sdb1", "sdb"),
    ("/dev/sdaa12", "sdaa"),
    ("/dev/sdc", "sdc"),
    ("/dev/nvme0n1p2", "nvme0n1"),
    ("/dev/mmcblk0p1", "mmcblk0"),
    ("/dev/mapper/vg-lv", "vg-lv"),
])
def test_block_device_name(device, expected):
    assert block_device_name(device) == expected


@pytest.mark.parametrize("mountpoint, expected", [
    ("/srv/node/d1", "d1"),
    ("/srv/node/d1/", "d1"),
    ("/srv/node", None),
    ("/srv/node/d1/nested", None),
    ("/srv/nodes/d1", None),
])
def test_drive_label(mountpoint, expected):
    assert drive_label(mountpoint, "/srv/node/") == expected


def test_drive_type_from_rotational_flag(tmp_path):
    for dev, flag in (("sdb", "1"), ("sdc", "0"), ("sdd", "x")):
        queue = tmp_path / dev / "queue"
        queue.mkdir(parents=True)
        (queue / "rotational").write_text(flag + "\n")
    src = HostSources(sys_block_root=str(tmp_path))
    assert src.drive_type("/dev/sdb1") == "HDD"
    assert src.drive_type("/dev/sdc1") == "SSD"
    assert src.drive_type("/dev/sdd1") == "unknown"
    assert src.drive_type("/dev/sde1") == "unknown"


def _fake_run(returncode=0, stdout="", stderr="", exc=None, seen=None):
    def run(args, **kw):
        if seen is not None:
            seen.append((args, kw))
        if exc is not None:
            raise exc
        return subprocess.CompletedProcess(args, returncode, stdout, stderr)
    return run


def test_commands_carry_timeout(monkeypatch):
    seen = []
    monkeypatch.setattr(sources_mod.subprocess, "run", _fake_run(stdout="123\t/srv/node/d1/objects\n", seen=seen))
    src = HostSources(command_timeout=7)
    assert src.directory_size_kib("/srv/node/d1/objects") == 123.0
    args, kw = seen[0]
    assert args == ["du", "-s", "/srv/node/d1/objects"]
    assert kw["timeout"] == 7


@pytest.mark.parametrize("exc, match", [
    (FileNotFoundError(2, "No such file"), "command not found"),
    (subprocess.TimeoutExpired(["du"], 7), "timed out"),
])
def test_command_failures_become_data_source_errors(monkeypatch, exc, match):
    monkeypatch.setattr(sources_mod.subprocess, "run", _fake_run(exc=exc))
    with pytest.raises(DataSourceError, match=match):
        HostSources(command_timeout=7).directory_size_kib("/srv/node/d1")


def test_non_zero_exit_raises(monkeypatch):
    monkeypatch.setattr(sources_mod.subprocess, "run", _fake_run(returncode=1, stderr="du: cannot access"))
    with pytest.raises(DataSourceError, match="status 1"):
        HostSources().fqdn()


@pytest.mark.parametrize("status, fails", [(0, False), (4, False), (64, False), (1, True), (2, True), (66, True)])
def test_smartctl_exit_bits(monkeypatch, status, fails):
    monkeypatch.setattr(sources_mod.subprocess, "run", _fake_run(returncode=status, stdout="ID# ATTRIBUTE_NAME\n"))
    src = HostSources()
    if fails:
        with pytest.raises(DataSourceError):
            src.smartctl("smartctl", "-A", "/dev/sdb")
    else:
        assert src.smartctl("smartctl", "-A", "/dev/sdb").startswith("ID#")


def test_service_active(monkeypatch):
    monkeypatch.setattr(sources_mod.subprocess, "run", _fake_run(returncode=3, stdout="inactive\n"))
    assert HostSources().service_active("ssswift-proxy") is False
    monkeypatch.setattr(sources_mod.subprocess, "run", _fake_run(stdout="active\n"))
    assert HostSources().service_active("ssswift-proxy") is True


def test_file_helpers(tmp_path):
    (tmp_path / "b").write_text("xyz")
    (tmp_path / "a").mkdir()
    src = HostSources()
    assert src.read_text(str(tmp_path / "b")) == "xyz"
    assert src.file_size(str(tmp_path / "b")) == 3.0
    assert src.list_dir(str(tmp_path)) == ["a", "b"]
    with pytest.raises(DataSourceError, match="read"):
        src.read_text(str(tmp_path / "missing"))
    with pytest.raises(DataSourceError, match="stat"):
        src.file_size(str(tmp_path / "missing"))


def test_walk_missing_root_raises(tmp_path):
    with pytest.raises(DataSourceError, match="not a directory"):
        list(HostSources().walk(str(tmp_path / "gone")))


def test_walk_unlistable_subdirectory_raises_after_walk(monkeypatch, tmp_path):
    def fake_walk(root, onerror=None):
        yield root, ["d1", "d2"], []
        onerror(PermissionError(13, "Permission denied", f"{root}/d2"))
        yield f"{root}/d1", [], ["a.db"]

    monkeypatch.setattr(sources_mod.os, "walk", fake_walk)
    seen = []
    with pytest.raises(DataSourceError, match="Permission denied"):
        for entry in HostSources().walk(str(tmp_path)):
            seen.append(entry[0])
    assert seen == [str(tmp_path), f"{tmp_path}/d1"]
