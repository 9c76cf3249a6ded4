"""Describe directory trees of test fixtures and create them on disk."""

from __future__ import annotations

import errno
import os
import shutil
import stat
import tempfile
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional, Tuple, Union

from cgroupkit.errors import system_error
from cgroupkit.util import split, write_full

_FIXTURES_DIR_PREFIX = "__fixtures_"
_TEMP_ENV_VARS = ("TMPDIR", "TMP", "TEMP", "TEMPDIR")

MaterializeFunc = Callable[[str, str], None]


@dataclass(frozen=True)
class DirEntry:
    """A file or directory that can be created under a given path and name."""

    create: MaterializeFunc

    def materialize(self, path: str, name: str) -> None:
        """Create this entry as path/name."""
        self.create(path, name)


DirEntryPair = Tuple[str, DirEntry]
Entries = Union[Mapping[str, DirEntry], Iterable[DirEntryPair]]


def make_file(name: str, content: str = "") -> DirEntryPair:
    """Describe a regular file holding content."""

    def create(path: str, entry_name: str) -> None:
        write_checked(f"{path}/{entry_name}", content)

    return name, DirEntry(create)


def make_dir(name: str, entries: Optional[Entries] = None) -> DirEntryPair:
    """Describe a directory holding the given named entries."""
    children = dict(entries or {})

    def create(path: str, entry_name: str) -> None:
        mkdirs_checked(entry_name, path)
        new_path = f"{path}/{entry_name}"
        for child_name, child in children.items():
            child.materialize(new_path, child_name)

    return name, DirEntry(create)


def materialize(pair: DirEntryPair, path: str = "") -> None:
    """Create the described entry under path."""
    name, entry = pair
    entry.materialize(path, name)


def _temp_dir() -> str:
    for var in _TEMP_ENV_VARS:
        value = os.environ.get(var)
        if value is not None:
            return value
    return "/tmp"


def mkdtemp_checked() -> str:
    """Create a fresh, uniquely named directory in the temporary directory."""
    base = _temp_dir()
    try:
        return tempfile.mkdtemp(prefix=_FIXTURES_DIR_PREFIX, dir=base)
    except OSError as e:
        raise system_error(
            e.errno or errno.EIO, base, "/", _FIXTURES_DIR_PREFIX, ": mkdtemp failed"
        ) from e


def mkdirs_checked(path: str, prefix: str = "") -> None:
    """Create every directory along path, relative to prefix unless absolute."""
    if path.startswith("/"):
        current = "/"
    elif prefix:
        current = prefix + "/"
    else:
        current = ""
    for part in split(path, "/"):
        current += part + "/"
        try:
            os.mkdir(current, 0o777)
        except FileExistsError:
            continue
        except OSError as e:
            raise system_error(e.errno or errno.EIO, current, ": mkdir failed") from e


def write_checked(path: str, content: str) -> None:
    """Create or truncate the file at path and write all of content to it."""
    try:
        fd = os.open(path, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o666)
    except OSError as e:
        raise system_error(e.errno or errno.EIO, path, ": open failed") from e
    data = content.encode()
    try:
        written = write_full(fd, data)
    except OSError as e:
        raise system_error(e.errno or errno.EIO, path, ": write failed") from e
    finally:
        os.close(fd)
    if written != len(data):
        raise system_error(
            errno.EIO, path, ": write failed: not all bytes are written"
        )


def rmr_checked(path: str) -> None:
    """Remove path and everything beneath it; a missing path is not an error."""
    try:
        mode = os.lstat(path).st_mode
        if stat.S_ISDIR(mode):
            shutil.rmtree(path)
        else:
            os.remove(path)
    except FileNotFoundError:
        return
    except OSError as e:
        raise system_error(e.errno or errno.EIO, path, ": remove failed") from e