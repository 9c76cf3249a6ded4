import os
import string
import tempfile

import pytest

from cgroupkit.util import (
    generate_uuid,
    parse_size,
    parse_size_or_percent,
    read_full,
    split,
    starts_with,
    trim,
    write_full,
)


def test_parse_size_plain_and_suffix():
    assert parse_size("8192") == 8192
    assert parse_size("8K") == 8192


def test_parse_size_compound():
    assert parse_size("1.5M 32K 512") == (1 << 20) * 3 // 2 + (1 << 10) * 32 + 512


def test_parse_size_case_insensitive_matches():
    assert parse_size("8k") == parse_size("8K")


def test_parse_size_negative_sign():
    assert parse_size("-8K") == -parse_size("8K")


@pytest.mark.parametrize("bad", ["1.5MK", "??", "+-123M"])
def test_parse_size_errors(bad):
    with pytest.raises(ValueError):
        parse_size(bad)


def test_parse_size_or_percent():
    assert parse_size_or_percent("1%", 100) == 1
    assert parse_size_or_percent("5M", 100) == 5 << 20
    assert parse_size_or_percent("5", 100) == 5 << 20
    assert parse_size_or_percent("5K", 100) == 5 << 10


@pytest.mark.parametrize("bad", ["5%z", "101%", "-1%", "abc"])
def test_parse_size_or_percent_errors(bad):
    with pytest.raises(ValueError):
        parse_size_or_percent(bad, 100)


def test_split():
    assert split("one by two", " ") == ["one", "by", "two"]
    assert split(" by two", " ") == ["by", "two"]
    assert split("     by        two", " ") == ["by", "two"]
    assert split("one two three", ",") == ["one two three"]
    assert split("", ",") == []
    assert split("     ", " ") == []
    assert split("one two three   ", " ") == ["one", "two", "three"]


def test_starts_with():
    assert starts_with("prefix", "prefixThis!")
    assert starts_with("x", "xx")
    assert starts_with("", "xx")
    assert starts_with("", "")
    assert not starts_with("prefix", "prefiyThat!")
    assert not starts_with("xx", "x")
    assert not starts_with("x", "")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  sdf  ", "sdf"),
        ("  as df  ", "as df"),
        ("  asdf", "asdf"),
        ("asdf ", "asdf"),
        ("asdf", "asdf"),
        ("", ""),
        (" \t   \n", ""),
    ],
)
def test_trim(raw, expected):
    assert trim(raw) == expected


def test_read_write_full_round_trip():
    data = b"z" * 1234567
    with tempfile.TemporaryFile() as handle:
        fd = handle.fileno()
        assert write_full(fd, data) == len(data)
        os.lseek(fd, 0, os.SEEK_SET)
        assert read_full(fd, len(data)) == data


def test_read_full_stops_at_eof():
    with tempfile.TemporaryFile() as handle:
        fd = handle.fileno()
        write_full(fd, b"abc")
        os.lseek(fd, 0, os.SEEK_SET)
        assert read_full(fd, 100) == b"abc"


def test_generate_uuid_is_hex_and_random():
    first = generate_uuid()
    second = generate_uuid()
    assert set(first) <= set(string.hexdigits.lower())
    assert 2 <= len(first) <= 32
    assert first != second