"""Tests for mount point discovery."""

from __future__ import annotations

from pathlib import Path

from bitferry import discovery
from bitferry.discovery import discover_mounts, parse_mount_output, parse_proc_mounts

PROC_MOUNTS = """\
sysfs /sys sysfs rw,nosuid,nodev,noexec,relatime 0 0
proc /proc proc rw,nosuid,nodev,noexec,relatime 0 0
/dev/sda1 / ext4 rw,relatime 0 0
tmpfs /run tmpfs rw,nosuid,nodev 0 0
/dev/sdb1 /media/usb\\040stick vfat rw,relatime 0 0
"""

LINUX_MOUNT = """\
/dev/sda1 on / type ext4 (rw,relatime)
proc on /proc type proc (rw,nosuid)
/dev/sdb1 on /media/usb stick type vfat (rw)
"""

DARWIN_MOUNT = """\
/dev/disk3s1s1 on / (apfs, sealed, local, read-only, journaled)
devfs on /dev (devfs, local, nobrowse)
/dev/disk4s1 on /Volumes/Backup Drive (exfat, local, nodev, nosuid)
"""


class TestParsers:
    def test_proc_mounts(self):
        assert parse_proc_mounts(PROC_MOUNTS) == [Path("/"), Path("/media/usb stick")]

    def test_linux_mount_output(self):
        assert parse_mount_output(LINUX_MOUNT) == [Path("/"), Path("/media/usb stick")]

    def test_darwin_mount_output(self):
        assert parse_mount_output(DARWIN_MOUNT) == [Path("/"), Path("/Volumes/Backup Drive")]

    def test_garbage(self):
        assert parse_proc_mounts("nonsense\n") == []
        assert parse_mount_output("nonsense\n") == []


class TestDiscoverMounts:
    def test_never_raises(self, monkeypatch, tmp_path):
        def broken(*args, **kwargs):
            raise OSError("no mount(8) here")

        monkeypatch.setattr(discovery, "PROC_MOUNTS", tmp_path / "mounts")
        monkeypatch.setattr(discovery.subprocess, "run", broken)
        if discovery.os.name != "nt":
            assert discover_mounts() == []

    def test_returns_paths(self):
        assert all(isinstance(p, Path) for p in discover_mounts())
