# cgroupkit

Utilities for working with the Linux cgroup v2 filesystem. The package reads
memory, swap and I/O control files, parses pressure-stall (PSI) data, writes
limits, and parses plugin-style key/value arguments. It has no dependencies
outside the standard library.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `cgroupkit.util`: size parsing with `parse_size` and `parse_size_or_percent`
  (both raise `ValueError` on bad input), plus `split` (drops empty tokens),
  `starts_with`, `trim`, `read_full`, `write_full` and `generate_uuid`.
- `cgroupkit.errors`: `SystemFailure` is an `OSError` subclass that carries an
  errno `code` and a message. `system_error` builds one. `chain_error` adds
  context to an existing error and keeps its code.
- `cgroupkit.scopeguard`: `ScopeGuard` and `scope_exit`. Each is a context
  manager that runs a callback when its block is left, whether by normal exit,
  by return or by an exception.
- `cgroupkit.fs`: the owned descriptors `Fd` (with `open`, `openat`,
  `fileno`, `detach`, `inode` and `close`) and `DirFd` (with `open` and
  `open_child_dir`). Both work as context managers. The module also holds:
  - directory listing with `read_dir` and `read_dir_at`, using `DirEntFlags`
    and returning `DirEnts`;
  - `is_dir`, `is_cgroup_valid` and `check_exist_at`;
  - `glob`, which supports brace expansion and an optional `dir_only` filter;
  - `remove_prefix`, `read_file_by_line` and `read_fd_by_line`;
  - the xattr helpers `set_xattr`, `get_xattr` and `has_xattr_at`;
  - `is_under_parent_path`, `get_cgroup2_mount_point`, `get_swappiness` and
    `set_swappiness`;
  - constants that name the cgroup control files, such as `MEM_HIGH_FILE`.
- `cgroupkit.cgroupfs`: readers and writers for cgroup control files and
  `/proc` statistics.
  - Memory and swap: `read_memcurrent_at`, `read_memlow_at`,
    `read_memhigh_at`, `read_memmax_at`, `read_memmin_at`,
    `read_memhightmp_at`, `read_swap_current_at`, `read_swap_max_at`.
  - Pressure: `read_mempressure_at`, `read_iopressure_at`,
    `read_root_mempressure`, `read_root_iopressure`,
    `read_respressure_from_lines`.
  - Cgroup state: `read_controllers_at`, `get_pids_at`,
    `read_is_populated_at`, `read_pids_current_at`,
    `get_nr_dying_descendants_at`, `read_kill_preference_at`,
    `read_memory_oom_group_at`, `read_iostat_at`.
  - Statistics files: `get_memstat_at`, `get_meminfo` (values in bytes),
    `get_vmstat`, `read_root_memcurrent`, `get_device_type`.
  - Writers: `write_memhigh_at`, `write_memhightmp_at`,
    `write_mem_reclaim_at`, `write_freeze_at`, `write_kill_at`.
  - Types: `PressureType`, `ResourcePressure`, `DeviceIOStat`, `DeviceType`
    and `KillPreference`.

  A limit file that holds `max` reads as the largest signed 64-bit value.
- `cgroupkit.fixture`: describe directory trees with `make_dir` and
  `make_file`, then create them with `materialize`. The module also has the
  checked filesystem helpers `mkdtemp_checked`, `mkdirs_checked`,
  `write_checked` and `rmr_checked`.
- `cgroupkit.argparser`: `PluginArgParser` registers arguments with
  `add_argument` or `add_argument_custom`, and `parse` returns a dict of the
  converted values. `parse_value` converts to `int`, `float`, `bool`, `str`,
  `timedelta` (milliseconds) or `ResourceType`. `parse_unsigned_int` rejects
  negative values.

## Example

```python
from cgroupkit import util
from cgroupkit.fs import DirFd
from cgroupkit.cgroupfs import read_mempressure_at, PressureType
from cgroupkit.argparser import PluginArgParser, ResourceType

util.parse_size("1.5M 32K 512")          # 1606144
util.parse_size_or_percent("10%", 1000)  # 100

with DirFd.open("/sys/fs/cgroup/system.slice") as cg:
    pressure = read_mempressure_at(cg, PressureType.SOME)
    print(pressure.sec_10, pressure.sec_60, pressure.sec_300)

parser = PluginArgParser("pressure_check")
parser.add_argument("resource", ResourceType, required=True)
parser.add_argument("threshold", int, required=True)
parser.parse({"resource": "memory", "threshold": "80"})
# {'resource': <ResourceType.MEMORY: 'memory'>, 'threshold': 80}
```

Functions that touch the system raise `cgroupkit.errors.SystemFailure` when
they fail. The exception carries the errno value as `code`. `PluginArgParser.parse`
raises `SystemFailure` with `EINVAL` in three cases: a required argument is
missing, an unknown argument is given, or a value fails to convert.

## What it does not do

This is a library of building blocks. It has no command-line program, no
monitoring loop or daemon, and no policy of its own. It never decides to
kill, freeze or restart anything. Such decisions are left to the code that
uses these helpers.