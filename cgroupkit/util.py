"""Small parsing, string and file-descriptor helpers."""

from __future__ import annotations

import os
import random
import re

_WHITESPACE = " \t\n\r"
_UNITS = "kmgt"
_UNIT_SHIFT = {"": 0, "k": 10, "m": 20, "g": 30, "t": 40}
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:e[+-]?\d+)?")
_INT_PREFIX_RE = re.compile(r"[ \t\n\r\f\v]*[+-]?\d+")

_INT32_RANGE = (-(2**31), 2**31 - 1)
_INT64_RANGE = (-(2**63), 2**63 - 1)

_uuid_rng = random.SystemRandom()


def _parse_int_prefix(text: str, bounds: tuple[int, int]) -> tuple[int, int]:
    """Parse a leading integer the way strtol does; return (value, end index)."""
    match = _INT_PREFIX_RE.match(text)
    if match is None:
        raise ValueError(f"no integer at start of {text!r}")
    value = int(match.group())
    low, high = bounds
    if not low <= value <= high:
        raise ValueError(f"integer out of range: {text!r}")
    return value, match.end()


def _truncating_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator >= 0) else -quotient


def parse_size(text: str) -> int:
    """Parse a size such as "1.5G", "1G 128M" or "4K 2048" into bytes.

    Supports k, m, g and t suffixes (case-insensitive). Raises ValueError
    when the text is not a valid size.
    """
    compact = "".join(ch for ch in text.lower() if not ch.isspace())

    negative = False
    pos = 0
    if compact[:1] == "+":
        pos = 1
    elif compact[:1] == "-":
        negative = True
        pos = 1

    size = 0
    while pos < len(compact):
        unit_pos = next(
            (i for i in range(pos, len(compact)) if compact[i] in _UNITS),
            len(compact),
        )
        if unit_pos == pos:
            raise ValueError(f"invalid size: {text!r}")

        number = compact[pos:unit_pos]
        unit = compact[unit_pos : unit_pos + 1]
        if not _DECIMAL_RE.fullmatch(number):
            raise ValueError(f"invalid size: {text!r}")
        value = float(number)
        if value < 0:
            raise ValueError(f"invalid size: {text!r}")

        value *= 1 << _UNIT_SHIFT[unit]
        size = int(size + value)
        pos = unit_pos + 1

    return -size if negative else size


def parse_size_or_percent(text: str, total: int) -> int:
    """Parse "<n>%" of total, a bare number of megabytes, or a size string.

    Raises ValueError when none of the forms applies.
    """
    if text.endswith("%"):
        pct, _ = _parse_int_prefix(text[:-1], _INT32_RANGE)
        if pct < 0 or pct > 100:
            raise ValueError(f"percentage out of range: {text!r}")
        return _truncating_div(total * pct, 100)

    value, end = _parse_int_prefix(text, _INT64_RANGE)
    if end == len(text):
        return value << 20
    return parse_size(text)


def split(line: str, delim: str) -> list[str]:
    """Split on delim, dropping empty tokens."""
    return [token for token in line.split(delim) if token]


def starts_with(prefix: str, to_search: str) -> bool:
    """Return True if to_search begins with prefix."""
    return to_search.startswith(prefix)


def trim(text: str) -> str:
    """Strip spaces, tabs, carriage returns and newlines from both ends."""
    return text.strip(_WHITESPACE)


def read_full(fd: int, count: int) -> bytes:
    """Read up to count bytes from fd, stopping early only at end of file."""
    chunks: list[bytes] = []
    remaining = count
    while remaining:
        chunk = os.read(fd, remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def write_full(fd: int, data: bytes) -> int:
    """Write all of data to fd; return the number of bytes written."""
    view = memoryview(data)
    written = 0
    while written < len(view):
        n = os.write(fd, view[written:])
        if n == 0:
            break
        written += n
    return written


def generate_uuid() -> str:
    """Return a random hex identifier built from two 64-bit numbers."""
    return f"{_uuid_rng.getrandbits(64):x}{_uuid_rng.getrandbits(64):x}"