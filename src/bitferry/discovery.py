"""
Mount point discovery.

Tells the orchestrator where volumes might live. Purely advisory:
every failure degrades to "no mounts" rather than an error.
"""

from __future__ import annotations

import logging
import os
import re
import string
import subprocess
from pathlib import Path

logger = logging.getLogger("bitferry.discovery")

PSEUDO_FILESYSTEMS = {
    "autofs", "binfmt_misc", "bpf", "cgroup", "cgroup2", "configfs",
    "debugfs", "devpts", "devtmpfs", "efivarfs", "fusectl", "hugetlbfs",
    "mqueue", "nsfs", "overlay", "proc", "pstore", "rpc_pipefs",
    "securityfs", "squashfs", "sysfs", "tmpfs", "tracefs",
}

# `/dev/disk1s1 on /Volumes/Data (apfs, local)` or `... on /mnt type ext4 (rw)`
_MOUNT_LINE = re.compile(r"^\S+ on (?P<path>.+?) (?:type (?P<type>\S+) )?\((?P<opts>[^)]*)\)$")

PROC_MOUNTS = Path("/proc/mounts")


def _unescape(field: str) -> str:
    """Decode the octal escapes of /proc/mounts (``\\040`` for space)."""
    return re.sub(r"\\([0-7]{3})", lambda m: chr(int(m.group(1), 8)), field)


def parse_proc_mounts(text: str) -> list[Path]:
    """Extract real filesystem mount points from /proc/mounts content."""
    mounts: list[Path] = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 3 or parts[2] in PSEUDO_FILESYSTEMS:
            continue
        mounts.append(Path(_unescape(parts[1])))
    return mounts


def parse_mount_output(text: str) -> list[Path]:
    """Extract mount points from mount(8) output (BSD and Linux flavours)."""
    mounts: list[Path] = []
    for line in text.splitlines():
        m = _MOUNT_LINE.match(line.strip())
        if m is None:
            continue
        fstype = m.group("type") or m.group("opts").split(",")[0].strip()
        if fstype in PSEUDO_FILESYSTEMS or fstype == "devfs":
            continue
        mounts.append(Path(m.group("path")))
    return mounts


def discover_mounts() -> list[Path]:
    """Currently mounted filesystem roots.

    Returns:
        Mount points, possibly empty; never raises.
    """
    if os.name == "nt":
        return [Path(f"{d}:\\") for d in string.ascii_uppercase if os.path.exists(f"{d}:\\")]

    if PROC_MOUNTS.exists():
        try:
            return parse_proc_mounts(PROC_MOUNTS.read_text(encoding="utf-8"))
        except OSError as exc:
            logger.debug("Cannot read %s: %s", PROC_MOUNTS, exc)
            return []

    try:
        result = subprocess.run(["mount"], capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired, OSError) as exc:
        logger.debug("Mount discovery failed: %s", exc)
        return []
    return parse_mount_output(result.stdout)
