import errno
from datetime import timedelta

import pytest

from cgroupkit.argparser import (
    PluginArgParser,
    ResourceType,
    parse_unsigned_int,
    parse_value,
)
from cgroupkit.errors import SystemFailure


def test_unsigned_int_parsing():
    assert parse_unsigned_int("123") == 123
    with pytest.raises(ValueError):
        parse_unsigned_int("-123")


def test_plugin_name():
    p = PluginArgParser("test_plugin")
    assert p.name == "test_plugin"
    p.name = "new_plugin_name"
    assert p.name == "new_plugin_name"


def test_arg_parsing_success():
    p = PluginArgParser("test_plugin")
    p.add_argument("arg_long_int", int)
    p.add_argument("arg_double", float)
    p.add_argument("arg_bool", bool)
    p.add_argument("arg_string", str)
    p.add_argument("arg_milli_second", timedelta)
    p.add_argument("arg_resource_type", ResourceType)
    p.add_argument_custom("arg_strs", lambda s: [s + "-1", s + "-2"])

    assert p.valid_arg_names() == {
        "arg_long_int",
        "arg_double",
        "arg_bool",
        "arg_string",
        "arg_milli_second",
        "arg_resource_type",
        "arg_strs",
    }

    res = p.parse(
        {
            "arg_long_int": "1234",
            "arg_double": "1.234",
            "arg_bool": "true",
            "arg_string": "foo",
            "arg_milli_second": "456",
            "arg_resource_type": "io",
            "arg_strs": "some_str",
        }
    )
    assert res["arg_long_int"] == 1234
    assert res["arg_double"] == 1.234
    assert res["arg_bool"] is True
    assert res["arg_string"] == "foo"
    assert res["arg_milli_second"] == timedelta(milliseconds=456)
    assert res["arg_resource_type"] is ResourceType.IO
    assert res["arg_strs"] == ["some_str-1", "some_str-2"]


def test_resource_type_parsing():
    p = PluginArgParser("test_plugin")
    p.add_argument("arg_resource_type_io", ResourceType)
    p.add_argument("arg_resource_type_mem", ResourceType)
    assert p.valid_arg_names() == {"arg_resource_type_io", "arg_resource_type_mem"}
    res = p.parse(
        {"arg_resource_type_io": "io", "arg_resource_type_mem": "memory"}
    )
    assert res["arg_resource_type_io"] is ResourceType.IO
    assert res["arg_resource_type_mem"] is ResourceType.MEMORY


def test_invalid_resource_type():
    p = PluginArgParser("test_plugin")
    p.add_argument("arg_resource_type_io", ResourceType)
    with pytest.raises(SystemFailure) as info:
        p.parse({"arg_resource_type_io": "kidding"})
    assert 'Failed to parse argument "arg_resource_type_io", error' in str(info.value)
    assert info.value.code == errno.EINVAL


@pytest.mark.parametrize(
    "text,expected",
    [("true", True), ("True", True), ("1", True),
     ("false", False), ("False", False), ("0", False)],
)
def test_bool_values(text, expected):
    p = PluginArgParser("test_plugin")
    p.add_argument("arg", bool)
    assert p.parse({"arg": text})["arg"] is expected


def test_invalid_bool():
    p = PluginArgParser("test_plugin")
    p.add_argument("arg_bool", bool)
    with pytest.raises(SystemFailure) as info:
        p.parse({"arg_bool": "kidding"})
    assert 'Failed to parse argument "arg_bool", error' in str(info.value)


def test_unknown_arg():
    p = PluginArgParser("test_plugin")
    p.add_argument("arg", int)
    assert p.valid_arg_names() == {"arg"}
    with pytest.raises(SystemFailure) as info:
        p.parse({"arg": "1234", "unknown_arg": "4321"})
    assert (
        'Unknown arg "unknown_arg" in plugin "test_plugin": Invalid argument'
        in str(info.value)
    )


def test_missing_required():
    p = PluginArgParser("test_plugin")
    p.add_argument("arg1", int)
    p.add_argument("arg2", int, True)
    assert p.valid_arg_names() == {"arg1", "arg2"}
    with pytest.raises(SystemFailure) as info:
        p.parse({"arg1": "1234"})
    assert (
        'Required arg "arg2" missing in plugin "test_plugin": Invalid argument'
        in str(info.value)
    )


def test_invalid_value_string():
    p = PluginArgParser("test_plugin")
    p.add_argument("bad_arg", int)
    assert p.valid_arg_names() == {"bad_arg"}
    with pytest.raises(SystemFailure) as info:
        p.parse({"bad_arg": "abcdefg"})
    assert 'Failed to parse argument "bad_arg", error' in str(info.value)


def test_optional_args_absent_from_result():
    p = PluginArgParser("p")
    p.add_argument("a", int)
    p.add_argument("b", str, True)
    assert p.parse({"b": "x"}) == {"b": "x"}


def test_custom_parser_exception_reported():
    p = PluginArgParser("p")
    p.add_argument_custom("n", parse_unsigned_int, True)
    assert p.parse({"n": "15"}) == {"n": 15}
    with pytest.raises(SystemFailure) as info:
        p.parse({"n": "-1"})
    assert "must be non-negative" in str(info.value)


def test_parse_value_unsupported_kind():
    with pytest.raises(TypeError):
        parse_value(list, "x")


def test_parse_value_string_identity():
    assert parse_value(str, " keep as is ") == " keep as is "