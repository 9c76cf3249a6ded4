"""Readers and writers for cgroup v2 control files and /proc statistics."""

from __future__ import annotations

import enum
import errno
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Union

from cgroupkit.errors import SystemFailure, system_error
from cgroupkit.fs import (
    CGROUP_FREEZE,
    CGROUP_KILL,
    CGROUP_STAT_FILE,
    CONTROLLERS_FILE,
    DEVICE_TYPE_DIR,
    DEVICE_TYPE_FILE,
    EVENTS_FILE,
    IO_PRESSURE_FILE,
    IO_STAT_FILE,
    MEM_CURRENT_FILE,
    MEM_HIGH_FILE,
    MEM_HIGH_TMP_FILE,
    MEM_LOW_FILE,
    MEM_MAX_FILE,
    MEM_MIN_FILE,
    MEM_OOM_GROUP_FILE,
    MEM_PRESSURE_FILE,
    MEM_RECLAIM_FILE,
    MEM_STAT_FILE,
    MEM_SWAP_CURRENT_FILE,
    MEM_SWAP_MAX_FILE,
    OOMD_SYSTEM_AVOID_XATTR,
    OOMD_SYSTEM_PREFER_XATTR,
    OOMD_USER_AVOID_XATTR,
    OOMD_USER_PREFER_XATTR,
    PIDS_CURRENT_FILE,
    PROCS_FILE,
    DirFd,
    Fd,
    has_xattr_at,
    read_fd_by_line,
    read_file_by_line,
)
from cgroupkit.util import split, starts_with, write_full

INT64_MAX = 2**63 - 1

_LEADING_INT_RE = re.compile(r"\s*[+-]?\d+")
_MEMSTAT_LINE_RE = re.compile(r"\s*(\S+)\s+(\d+)")
_MEMINFO_LINE_RE = re.compile(r"([^:]{1,255}):[ \t]+(\d+)")
_IOSTAT_LINE_RE = re.compile(
    r"\s*([+-]?\d+):([+-]?\d+)"
    r"\s+rbytes=\s*([+-]?\d+)"
    r"\s+wbytes=\s*([+-]?\d+)"
    r"\s+rios=\s*([+-]?\d+)"
    r"\s+wios=\s*([+-]?\d+)"
    r"\s+dbytes=\s*([+-]?\d+)"
    r"\s+dios=\s*([+-]?\d+)"
)


class PressureType(enum.Enum):
    """Which PSI line to read."""

    SOME = 0
    FULL = 1


_PRESSURE_TYPE_NAMES = {
    PressureType.SOME: "some",
    PressureType.FULL: "full",
}


@dataclass
class ResourcePressure:
    """Pressure averages over 10, 60 and 300 seconds, plus total stall time."""

    sec_10: float = 0.0
    sec_60: float = 0.0
    sec_300: float = 0.0
    total_us: Optional[int] = None


@dataclass
class DeviceIOStat:
    """One device's line of io.stat."""

    dev_id: str = ""
    rbytes: int = 0
    wbytes: int = 0
    rios: int = 0
    wios: int = 0
    dbytes: int = 0
    dios: int = 0


class DeviceType(enum.Enum):
    SSD = 0
    HDD = 1


class KillPreference(enum.Enum):
    PREFER = 1
    NORMAL = 0
    AVOID = -1


class _PsiFormat(enum.Enum):
    MISSING = 0
    INVALID = 1
    EXPERIMENTAL = 2
    UPSTREAM = 3


def _psi_format(lines: list[str]) -> _PsiFormat:
    if not lines:
        return _PsiFormat.MISSING
    first = lines[0]
    if starts_with("some", first) and len(lines) >= 2:
        return _PsiFormat.UPSTREAM
    if starts_with("aggr", first) and len(lines) >= 3:
        return _PsiFormat.EXPERIMENTAL
    return _PsiFormat.INVALID


def _leading_int(text: str) -> int:
    match = _LEADING_INT_RE.match(text)
    if match is None:
        raise ValueError(f"no integer in {text!r}")
    return int(match.group())


def _first_line(lines: list[str], name: str) -> str:
    if not lines:
        raise system_error(errno.EINVAL, name, " is empty")
    return lines[0]


def _read_lines_at(dirfd: DirFd, name: str) -> list[str]:
    return read_fd_by_line(Fd.openat(dirfd, name))


def _write_control_file_at(dirfd: DirFd, name: str, content: str) -> None:
    with Fd.openat(dirfd, name, read_only=False) as fd:
        try:
            write_full(fd.fileno(), content.encode())
        except OSError as e:
            raise system_error(e.errno or errno.EIO, name) from e


def pressure_type_to_string(kind: PressureType) -> str:
    """Return the PSI line label for kind: "some" or "full"."""
    try:
        return _PRESSURE_TYPE_NAMES[kind]
    except KeyError:
        raise ValueError(f"unknown pressure type: {kind!r}") from None


def _key_value(token: str, key: str) -> str:
    parts = split(token, "=")
    if len(parts) < 2 or parts[0] != key:
        raise system_error(errno.EINVAL, "expected ", key)
    return parts[1]


def read_respressure_from_lines(
    lines: list[str], kind: PressureType = PressureType.FULL
) -> ResourcePressure:
    """Parse PSI file contents in the upstream or the old experimental format."""
    type_name = pressure_type_to_string(kind)
    index = 0 if kind is PressureType.SOME else 1
    fmt = _psi_format(lines)

    if fmt is _PsiFormat.UPSTREAM:
        toks = split(lines[index], " ")
        if len(toks) < 5 or toks[0] != type_name:
            raise system_error(errno.EINVAL, "bad pressure line")
        return ResourcePressure(
            float(_key_value(toks[1], "avg10")),
            float(_key_value(toks[2], "avg60")),
            float(_key_value(toks[3], "avg300")),
            int(_key_value(toks[4], "total")),
        )
    if fmt is _PsiFormat.EXPERIMENTAL:
        toks = split(lines[index + 1], " ")
        if len(toks) < 4 or toks[0] != type_name:
            raise system_error(errno.EINVAL, "bad pressure line")
        return ResourcePressure(float(toks[1]), float(toks[2]), float(toks[3]), None)
    if fmt is _PsiFormat.MISSING:
        raise system_error(errno.ENOENT, "pressure file is empty")
    raise system_error(errno.EINVAL, "unrecognised pressure format")


def read_controllers_at(dirfd: DirFd) -> list[str]:
    """Return the controllers enabled for the cgroup."""
    lines = _read_lines_at(dirfd, CONTROLLERS_FILE)
    return split(_first_line(lines, CONTROLLERS_FILE), " ")


def get_pids_at(dirfd: DirFd) -> list[int]:
    """Return the pids in the cgroup."""
    return [_leading_int(line) for line in _read_lines_at(dirfd, PROCS_FILE)]


def read_is_populated_at(dirfd: DirFd) -> bool:
    """Return the "populated" flag from cgroup.events."""
    for line in _read_lines_at(dirfd, EVENTS_FILE):
        toks = split(line, " ")
        if len(toks) == 2 and toks[0] == "populated":
            if toks[1] == "1":
                return True
            if toks[1] == "0":
                return False
            raise system_error(errno.EINVAL, EVENTS_FILE)
    raise system_error(errno.EINVAL, EVENTS_FILE)


def read_root_memcurrent() -> int:
    """Return system memory in use: MemTotal minus MemFree."""
    meminfo = get_meminfo("/proc/meminfo")
    if "MemTotal" not in meminfo or "MemFree" not in meminfo:
        raise system_error(errno.EINVAL, "/proc/meminfo")
    return meminfo["MemTotal"] - meminfo["MemFree"]


def read_memcurrent_at(dirfd: DirFd) -> int:
    lines = _read_lines_at(dirfd, MEM_CURRENT_FILE)
    return _leading_int(_first_line(lines, MEM_CURRENT_FILE))


def read_root_mempressure(kind: PressureType = PressureType.FULL) -> ResourcePressure:
    """Return the system-wide memory pressure."""
    try:
        lines = read_file_by_line("/proc/pressure/memory")
    except SystemFailure:
        lines = read_file_by_line("/proc/mempressure")
    return read_respressure_from_lines(lines, kind)


def read_mempressure_at(
    dirfd: DirFd, kind: PressureType = PressureType.FULL
) -> ResourcePressure:
    return read_respressure_from_lines(_read_lines_at(dirfd, MEM_PRESSURE_FILE), kind)


def read_min_max_low_high_from_lines(lines: list[str]) -> int:
    """Parse a single-line limit file; "max" means the largest 64-bit value."""
    if len(lines) != 1:
        raise system_error(errno.EINVAL, "expected a single line")
    if lines[0] == "max":
        return INT64_MAX
    return _leading_int(lines[0])


def read_memhightmp_from_lines(lines: list[str]) -> int:
    """Parse memory.high.tmp ("<value> <duration>") and return the value."""
    if len(lines) != 1:
        raise system_error(errno.ENOENT, MEM_HIGH_TMP_FILE)
    fields = split(lines[0], " ")
    if len(fields) != 2:
        raise system_error(errno.EINVAL, MEM_HIGH_TMP_FILE)
    if fields[0] == "max":
        return INT64_MAX
    return _leading_int(fields[0])


def read_memlow_at(dirfd: DirFd) -> int:
    return read_min_max_low_high_from_lines(_read_lines_at(dirfd, MEM_LOW_FILE))


def read_memhigh_at(dirfd: DirFd) -> int:
    return read_min_max_low_high_from_lines(_read_lines_at(dirfd, MEM_HIGH_FILE))


def read_memmax_at(dirfd: DirFd) -> int:
    return read_min_max_low_high_from_lines(_read_lines_at(dirfd, MEM_MAX_FILE))


def read_memhightmp_at(dirfd: DirFd) -> int:
    return read_memhightmp_from_lines(_read_lines_at(dirfd, MEM_HIGH_TMP_FILE))


def read_memmin_at(dirfd: DirFd) -> int:
    return read_min_max_low_high_from_lines(_read_lines_at(dirfd, MEM_MIN_FILE))


def read_swap_current_at(dirfd: DirFd) -> int:
    lines = _read_lines_at(dirfd, MEM_SWAP_CURRENT_FILE)
    return _leading_int(_first_line(lines, MEM_SWAP_CURRENT_FILE))


def read_swap_max_at(dirfd: DirFd) -> int:
    return read_min_max_low_high_from_lines(_read_lines_at(dirfd, MEM_SWAP_MAX_FILE))


def read_root_iopressure(kind: PressureType = PressureType.FULL) -> ResourcePressure:
    """Return the system-wide IO pressure."""
    return read_respressure_from_lines(read_file_by_line("/proc/pressure/io"), kind)


def read_iopressure_at(
    dirfd: DirFd, kind: PressureType = PressureType.FULL
) -> ResourcePressure:
    return read_respressure_from_lines(_read_lines_at(dirfd, IO_PRESSURE_FILE), kind)


def read_pids_current_at(dirfd: DirFd) -> int:
    lines = _read_lines_at(dirfd, PIDS_CURRENT_FILE)
    return _leading_int(_first_line(lines, PIDS_CURRENT_FILE))


def write_memhigh_at(dirfd: DirFd, value: int) -> None:
    _write_control_file_at(dirfd, MEM_HIGH_FILE, str(value))


def write_memhightmp_at(
    dirfd: DirFd, value: int, duration: Union[timedelta, int]
) -> None:
    """Write a temporary memory.high; duration is a timedelta or microseconds."""
    if isinstance(duration, timedelta):
        micros = duration // timedelta(microseconds=1)
    else:
        micros = int(duration)
    _write_control_file_at(dirfd, MEM_HIGH_TMP_FILE, f"{value} {micros}")


def write_mem_reclaim_at(
    dirfd: DirFd, value: int, swappiness: Optional[int] = None
) -> None:
    content = str(value)
    if swappiness is not None:
        content += f" swappiness={swappiness}"
    _write_control_file_at(dirfd, MEM_RECLAIM_FILE, content)


def write_freeze_at(dirfd: DirFd, freeze: int) -> None:
    _write_control_file_at(dirfd, CGROUP_FREEZE, str(int(freeze)))


def write_kill_at(dirfd: DirFd) -> None:
    _write_control_file_at(dirfd, CGROUP_KILL, "1")


def _memstat_like_from_lines(lines: list[str]) -> dict[str, int]:
    result: dict[str, int] = {}
    for line in lines:
        match = _MEMSTAT_LINE_RE.match(line)
        if match:
            result[match.group(1)] = int(match.group(2))
    return result


def get_nr_dying_descendants_at(dirfd: DirFd) -> int:
    """Return nr_dying_descendants from cgroup.stat, 0 when absent."""
    stats = _memstat_like_from_lines(_read_lines_at(dirfd, CGROUP_STAT_FILE))
    return stats.get("nr_dying_descendants", 0)


def read_kill_preference_at(dirfd: DirFd) -> KillPreference:
    """Derive the kill preference from the cgroup's oomd xattrs."""
    checks = (
        (OOMD_SYSTEM_PREFER_XATTR, KillPreference.PREFER),
        (OOMD_USER_PREFER_XATTR, KillPreference.PREFER),
        (OOMD_SYSTEM_AVOID_XATTR, KillPreference.AVOID),
        (OOMD_USER_AVOID_XATTR, KillPreference.AVOID),
    )
    for attr, preference in checks:
        if has_xattr_at(dirfd, attr):
            return preference
    return KillPreference.NORMAL


def read_memory_oom_group_at(dirfd: DirFd) -> bool:
    return _read_lines_at(dirfd, MEM_OOM_GROUP_FILE) == ["1"]


def read_iostat_at(dirfd: DirFd) -> list[DeviceIOStat]:
    """Parse io.stat into one DeviceIOStat per device."""
    stats: list[DeviceIOStat] = []
    for line in _read_lines_at(dirfd, IO_STAT_FILE):
        match = _IOSTAT_LINE_RE.match(line)
        if match is None:
            raise system_error(errno.EINVAL, IO_STAT_FILE)
        major, minor, *values = (int(g) for g in match.groups())
        stats.append(DeviceIOStat(f"{major}:{minor}", *values))
    return stats


def get_vmstat(path: str = "/proc/vmstat") -> dict[str, int]:
    """Parse a vmstat-format file into a dict."""
    result: dict[str, int] = {}
    for line in read_file_by_line(path):
        key, sep, item = line.partition(" ")
        if not sep:
            raise system_error(errno.EINVAL, "Invalid vmstat line format: ", line)
        result[key] = _leading_int(item)
    return result


def get_meminfo(path: str = "/proc/meminfo") -> dict[str, int]:
    """Parse a meminfo-format file; values are returned in bytes."""
    result: dict[str, int] = {}
    for line in read_file_by_line(path):
        match = _MEMINFO_LINE_RE.match(line)
        if match:
            result[match.group(1)] = int(match.group(2)) * 1024
    return result


def get_memstat_at(dirfd: DirFd) -> dict[str, int]:
    return _memstat_like_from_lines(_read_lines_at(dirfd, MEM_STAT_FILE))


def get_device_type(dev_id: str, path: str = "/sys/dev/block") -> DeviceType:
    """Return whether a <major>:<minor> block device is an SSD or an HDD."""
    device_type_file = f"{path}/{dev_id}/{DEVICE_TYPE_DIR}/{DEVICE_TYPE_FILE}"
    lines = read_file_by_line(device_type_file)
    if len(lines) == 1:
        if lines[0] == "1":
            return DeviceType.HDD
        if lines[0] == "0":
            return DeviceType.SSD
    raise system_error(errno.EINVAL, device_type_file)