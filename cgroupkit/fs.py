"""File-descriptor wrappers and general filesystem helpers."""

from __future__ import annotations

import enum
import errno
import glob as _globlib
import os
import re
from dataclasses import dataclass, field
from typing import Optional

from cgroupkit.errors import system_error
from cgroupkit.util import split, write_full

CONTROLLERS_FILE = "cgroup.controllers"
SUBTREE_CONTROL_FILE = "cgroup.subtree_control"
PROCS_FILE = "cgroup.procs"
EVENTS_FILE = "cgroup.events"
CGROUP_FREEZE = "cgroup.freeze"
MEM_CURRENT_FILE = "memory.current"
MEM_PRESSURE_FILE = "memory.pressure"
MEM_LOW_FILE = "memory.low"
MEM_HIGH_FILE = "memory.high"
MEM_MAX_FILE = "memory.max"
MEM_HIGH_TMP_FILE = "memory.high.tmp"
MEM_RECLAIM_FILE = "memory.reclaim"
MEM_MIN_FILE = "memory.min"
MEM_STAT_FILE = "memory.stat"
CGROUP_STAT_FILE = "cgroup.stat"
MEM_SWAP_CURRENT_FILE = "memory.swap.current"
MEM_SWAP_MAX_FILE = "memory.swap.max"
MEM_OOM_GROUP_FILE = "memory.oom.group"
IO_PRESSURE_FILE = "io.pressure"
IO_STAT_FILE = "io.stat"
DEVICE_TYPE_DIR = "queue"
DEVICE_TYPE_FILE = "rotational"
OOMD_SYSTEM_PREFER_XATTR = "trusted.oomd_prefer"
OOMD_USER_PREFER_XATTR = "user.oomd_prefer"
OOMD_SYSTEM_AVOID_XATTR = "trusted.oomd_avoid"
OOMD_USER_AVOID_XATTR = "user.oomd_avoid"
PIDS_CURRENT_FILE = "pids.current"
CGROUP_KILL = "cgroup.kill"

_LEADING_INT_RE = re.compile(r"\s*[+-]?\d+")


@dataclass
class DirEnts:
    """Names of the directories and regular files found in a directory."""

    dirs: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)


class DirEntFlags(enum.IntFlag):
    """Which kinds of directory entries to return."""

    DE_FILE = 1
    DE_DIR = 1 << 1


class Fd:
    """An owned file descriptor that is closed when released."""

    def __init__(self, fd: int = -1) -> None:
        self._fd = fd

    @classmethod
    def openat(cls, dirfd: "DirFd", path: str, read_only: bool = True) -> "Fd":
        """Open path relative to dirfd, read-only or write-only."""
        flags = os.O_RDONLY if read_only else os.O_WRONLY
        try:
            return Fd(os.open(path, flags, dir_fd=dirfd.fileno()))
        except OSError as e:
            raise system_error(e.errno or errno.EIO, path) from e

    @classmethod
    def open(cls, path: str, read_only: bool = True) -> "Fd":
        """Open path, read-only or write-only."""
        flags = os.O_RDONLY if read_only else os.O_WRONLY
        try:
            return Fd(os.open(path, flags))
        except OSError as e:
            raise system_error(e.errno or errno.EIO, path) from e

    def fileno(self) -> int:
        return self._fd

    def detach(self) -> int:
        """Give up ownership of the descriptor and return it."""
        fd, self._fd = self._fd, -1
        return fd

    def inode(self) -> int:
        """Return the inode number of the open file."""
        try:
            return os.fstat(self._fd).st_ino
        except OSError as e:
            raise system_error(e.errno or errno.EBADF) from e

    def close(self) -> None:
        if self._fd != -1:
            try:
                os.close(self._fd)
            finally:
                self._fd = -1

    def __enter__(self) -> "Fd":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    def __del__(self) -> None:
        try:
            self.close()
        except OSError:
            pass


class DirFd(Fd):
    """An owned descriptor of an open directory."""

    @classmethod
    def open(cls, path: str) -> "DirFd":  # type: ignore[override]
        """Open the directory at path."""
        try:
            return cls(os.open(path, os.O_RDONLY | os.O_DIRECTORY))
        except OSError as e:
            raise system_error(e.errno or errno.EIO, path) from e

    def open_child_dir(self, path: str) -> "DirFd":
        """Open a directory relative to this one."""
        try:
            return DirFd(
                os.open(path, os.O_RDONLY | os.O_DIRECTORY, dir_fd=self.fileno())
            )
        except OSError as e:
            raise system_error(e.errno or errno.EIO, path) from e


def is_cgroup_valid(dirfd: DirFd) -> bool:
    """A cgroup is still valid while its cgroup.controllers file exists."""
    return os.access(CONTROLLERS_FILE, os.F_OK, dir_fd=dirfd.fileno())


def _collect(target, flags: int) -> DirEnts:
    ents = DirEnts()
    with os.scandir(target) as entries:
        for entry in entries:
            if entry.name.startswith("."):
                continue
            if flags & DirEntFlags.DE_FILE and entry.is_file(follow_symlinks=False):
                ents.files.append(entry.name)
            elif flags & DirEntFlags.DE_DIR and entry.is_dir(follow_symlinks=False):
                ents.dirs.append(entry.name)
    return ents


def read_dir(path: str, flags: int) -> DirEnts:
    """List the requested entry kinds of a directory, skipping dotfiles."""
    try:
        return _collect(path, flags)
    except OSError as e:
        raise system_error(e.errno or errno.EIO, path) from e


def read_dir_at(dirfd: DirFd, flags: int) -> DirEnts:
    """Like read_dir, for an already open directory."""
    try:
        return _collect(dirfd.fileno(), flags)
    except OSError as e:
        raise system_error(e.errno or errno.EIO) from e


def is_dir(path: str) -> bool:
    """Return True if path names a directory."""
    return os.path.isdir(path)


def _split_top_level(body: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in body:
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        if ch == "{":
            depth += 1
        elif ch == "}" and depth:
            depth -= 1
        current.append(ch)
    parts.append("".join(current))
    return parts


def _expand_braces(pattern: str) -> list[str]:
    depth = 0
    start = 0
    for i, ch in enumerate(pattern):
        if ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth:
            depth -= 1
            if depth == 0:
                prefix, suffix = pattern[:start], pattern[i + 1 :]
                return [
                    expanded
                    for alt in _split_top_level(pattern[start + 1 : i])
                    for expanded in _expand_braces(prefix + alt + suffix)
                ]
    return [pattern]


def glob(pattern: str, dir_only: bool = False) -> list[str]:
    """Resolve a wildcarded path (with brace expansion) to matching paths."""
    results: list[str] = []
    for expanded in _expand_braces(pattern):
        for path in _globlib.glob(expanded):
            if dir_only and not is_dir(path):
                continue
            results.append(path)
    return results


def remove_prefix(text: str, prefix: str) -> str:
    """Strip prefix from text, also dropping a leading "./" when present."""
    if prefix in text:
        if text.startswith("./") and not prefix.startswith("./"):
            text = text[2:]
        text = text[len(prefix) :]
    return text


def _split_lines(content: str, delim: str) -> list[str]:
    if not content:
        return []
    parts = content.split(delim)
    if parts[-1] == "":
        parts.pop()
    return parts


def read_file_by_line(path: str, delim: str = "\n") -> list[str]:
    """Read a file and return its lines, split on delim."""
    try:
        handle = open(path, "rb")
    except OSError as e:
        raise system_error(errno.ENOENT, path) from e
    with handle:
        try:
            data = handle.read()
        except OSError as e:
            raise system_error(errno.EINVAL, path) from e
    return _split_lines(data.decode("utf-8", "surrogateescape"), delim)


def read_fd_by_line(fd: Fd) -> list[str]:
    """Read all lines from fd, taking ownership of it and closing it."""
    raw = fd.detach()
    try:
        with os.fdopen(raw, "rb") as handle:
            data = handle.read()
    except OSError as e:
        raise system_error(e.errno or errno.EIO) from e
    return _split_lines(data.decode("utf-8", "surrogateescape"), "\n")


def check_exist_at(dirfd: DirFd, name: str) -> None:
    """Raise SystemFailure unless name exists relative to dirfd."""
    if not os.access(name, os.F_OK, dir_fd=dirfd.fileno()):
        raise system_error(errno.ENOENT, name)


def _write_control_file(fd: Fd, content: str) -> None:
    with fd:
        try:
            write_full(fd.fileno(), content.encode())
        except OSError as e:
            raise system_error(e.errno or errno.EIO) from e


def set_xattr(path: str, attr: str, value: str) -> None:
    """Set an extended attribute on path."""
    try:
        os.setxattr(path, attr, value.encode())
    except OSError as e:
        raise system_error(e.errno or errno.EIO, path) from e


def get_xattr(path: str, attr: str) -> str:
    """Return an extended attribute's value, or "" when it is not set."""
    try:
        return os.getxattr(path, attr).decode("utf-8", "surrogateescape")
    except OSError as e:
        if e.errno == errno.ENODATA:
            return ""
        raise system_error(e.errno or errno.EIO, path) from e


def has_xattr_at(dirfd: DirFd, attr: str) -> bool:
    """Return True if the open directory carries the extended attribute."""
    try:
        os.getxattr(dirfd.fileno(), attr)
    except OSError as e:
        if e.errno in (errno.ENODATA, errno.EOPNOTSUPP):
            return False
        raise system_error(e.errno or errno.EIO) from e
    return True


def is_under_parent_path(parent_path: str, path: str) -> bool:
    """Return True if path is parent_path or lies somewhere beneath it."""
    if not parent_path or not path:
        return False
    parent_parts = split(parent_path, "/")
    path_parts = split(path, "/")
    if len(path_parts) < len(parent_parts):
        return False
    return path_parts[: len(parent_parts)] == parent_parts


def get_cgroup2_mount_point(path: str = "/proc/mounts") -> str:
    """Return the cgroup2 mount point listed in a mounts file."""
    for line in read_file_by_line(path):
        parts = split(line, " ")
        if len(parts) > 2 and parts[2] == "cgroup2":
            return parts[1] + "/"
    raise system_error(errno.EINVAL, path)


def _leading_int(text: str) -> int:
    match = _LEADING_INT_RE.match(text)
    if match is None:
        raise ValueError(f"no integer in {text!r}")
    return int(match.group())


def get_swappiness(path: str = "/proc/sys/vm/swappiness") -> int:
    """Return the system swappiness."""
    lines = read_fd_by_line(Fd.open(path))
    if len(lines) != 1:
        raise system_error(errno.EINVAL, path, " malformed")
    return _leading_int(lines[0])


def set_swappiness(swappiness: int, path: str = "/proc/sys/vm/swappiness") -> None:
    """Set the system swappiness."""
    _write_control_file(Fd.open(path, read_only=False), str(swappiness))