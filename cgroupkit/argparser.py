"""Declarative parsing of string-valued plugin arguments."""

from __future__ import annotations

import enum
import errno
import re
from datetime import timedelta
from typing import Any, Callable, Mapping

from cgroupkit.errors import system_error

_INT_RE = re.compile(r"\s*[+-]?\d+")
_FLOAT_RE = re.compile(
    r"\s*[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)
_INT32_RANGE = (-(2**31), 2**31 - 1)
_INT64_RANGE = (-(2**63), 2**63 - 1)


class ResourceType(enum.Enum):
    """Which resource a pressure argument refers to."""

    IO = "io"
    MEMORY = "memory"


def _leading_int(text: str, bounds: tuple[int, int]) -> int:
    match = _INT_RE.match(text)
    if match is None:
        raise ValueError(f"invalid integer: {text!r}")
    value = int(match.group())
    low, high = bounds
    if not low <= value <= high:
        raise ValueError(f"integer out of range: {text!r}")
    return value


def _leading_float(text: str) -> float:
    match = _FLOAT_RE.match(text)
    if match is None:
        raise ValueError(f"invalid number: {text!r}")
    return float(match.group())


def _parse_bool(text: str) -> bool:
    if text in ("true", "True", "1"):
        return True
    if text in ("false", "False", "0"):
        return False
    raise ValueError("Invalid resource value, must be true/false, True/False, 1/0.")


def _parse_resource_type(text: str) -> ResourceType:
    if text == "io":
        return ResourceType.IO
    if text == "memory":
        return ResourceType.MEMORY
    raise ValueError("Invalid resource value, must be either 'io' or 'memory'.")


def parse_unsigned_int(text: str) -> int:
    """Parse a non-negative 32-bit integer."""
    value = _leading_int(text, _INT32_RANGE)
    if value < 0:
        raise ValueError("must be non-negative")
    return value


def parse_value(kind: type, text: str) -> Any:
    """Convert text to kind: int, float, bool, str, timedelta or ResourceType."""
    if kind is bool:
        return _parse_bool(text)
    if kind is int:
        return _leading_int(text, _INT64_RANGE)
    if kind is float:
        return _leading_float(text)
    if kind is str:
        return text
    if kind is timedelta:
        return timedelta(milliseconds=_leading_int(text, _INT64_RANGE))
    if kind is ResourceType:
        return _parse_resource_type(text)
    raise TypeError(f"unsupported argument type: {kind!r}")


class PluginArgParser:
    """Registers named arguments and converts a plugin's raw arguments."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._parsers: dict[str, Callable[[str], Any]] = {}
        self._required: set[str] = set()

    def add_argument(self, name: str, kind: type, required: bool = False) -> None:
        """Register an argument converted with parse_value(kind, ...)."""
        self.add_argument_custom(
            name, lambda text: parse_value(kind, text), required
        )

    def add_argument_custom(
        self, name: str, func: Callable[[str], Any], required: bool = False
    ) -> None:
        """Register an argument converted by func."""
        if required:
            self._required.add(name)
        self._parsers[name] = func

    def parse(self, args: Mapping[str, str]) -> dict[str, Any]:
        """Convert args; return the parsed values keyed by argument name.

        Raises SystemFailure (EINVAL) when a required argument is missing,
        an unknown argument is given, or a value fails to convert.
        """
        for arg_name in sorted(self._required):
            if arg_name not in args:
                raise system_error(
                    errno.EINVAL,
                    'Required arg "',
                    arg_name,
                    '" missing in plugin "',
                    self.name,
                    '"',
                )

        parsed: dict[str, Any] = {}
        for arg_name, raw in args.items():
            func = self._parsers.get(arg_name)
            if func is None:
                raise system_error(
                    errno.EINVAL,
                    'Unknown arg "',
                    arg_name,
                    '" in plugin "',
                    self.name,
                    '"',
                )
            try:
                parsed[arg_name] = func(raw)
            except Exception as e:
                inner = system_error(
                    errno.EINVAL,
                    'Failed to parse argument "',
                    arg_name,
                    '", error: ',
                    e,
                )
                raise system_error(
                    errno.EINVAL,
                    'Failed parsing arg for plugin "',
                    self.name,
                    '", error: ',
                    inner,
                ) from e
        return parsed

    def valid_arg_names(self) -> set[str]:
        """Return the names of all registered arguments."""
        return set(self._parsers)