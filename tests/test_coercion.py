"""
Tests for tiny_console.coercion: token -> typed value conversion.
"""

from __future__ import annotations

import math

import pytest

from tiny_console.coercion import coerce_args, parse_single_arg, parse_vector_arg
from tiny_console.errors import CoercionError
from tiny_console.registry import CommandDescriptor, Param
from tiny_console.values import ArgType, Vector2, Vector3, Vector4


@pytest.fixture
def bool_float_vec3() -> CommandDescriptor:
    return CommandDescriptor.of(
        ("flag", ArgType.BOOL),
        ("speed", ArgType.FLOAT),
        ("pos", ArgType.VECTOR3),
    )


# ----------------------------------------------------------------
# coerce_args
# ----------------------------------------------------------------


def test_coerce_mixed_types(bool_float_vec3):
    values = coerce_args(["true", "3.5", "(1,2,3)"], bool_float_vec3)
    assert values == [True, 3.5, Vector3(1.0, 2.0, 3.0)]
    assert isinstance(values[2], Vector3)


def test_coerce_too_many_arguments(bool_float_vec3):
    with pytest.raises(CoercionError, match="Too many arguments."):
        coerce_args(["1", "2", "3", "4"], bool_float_vec3)


def test_coerce_missing_arguments(bool_float_vec3):
    with pytest.raises(CoercionError, match="Missing arguments."):
        coerce_args(["true"], bool_float_vec3)


def test_coerce_defaults_make_trailing_args_optional():
    desc = CommandDescriptor.of(Param("n", ArgType.INT), Param("m", ArgType.INT, 5))
    assert coerce_args(["1"], desc) == [1]
    assert coerce_args(["1", "2"], desc) == [1, 2]


def test_single_string_shortcut_joins_all_tokens():
    desc = CommandDescriptor.of(("text", ArgType.STRING))
    assert coerce_args(["hello", "big", "world"], desc) == ["hello big world"]
    assert coerce_args(['"quoted', 'words"'], desc) == ["quoted words"]
    assert coerce_args([], desc) == [""]


def test_single_string_shortcut_respects_bound_args():
    desc = CommandDescriptor(
        params=(Param("who", ArgType.STRING), Param("text", ArgType.STRING)),
        bound=1,
    )
    assert coerce_args(["a", "b"], desc) == ["a b"]


def test_string_param_strips_quotes_per_token():
    desc = CommandDescriptor.of(("a", ArgType.STRING), ("b", ArgType.STRING))
    assert coerce_args(['"x y"', "z"], desc) == ["x y", "z"]


def test_variadic_accepts_extra_tokens():
    desc = CommandDescriptor(params=(Param("first", ArgType.INT),), variadic=True)
    assert coerce_args(["1", "2", "yes"], desc) == [1, 2, True]


def test_no_descriptor_passes_tokens_through():
    assert coerce_args(["1", '"a"'], None) == ["1", '"a"']


# ----------------------------------------------------------------
# parse_single_arg
# ----------------------------------------------------------------


@pytest.mark.parametrize(
    "token,expected",
    [
        ("42", 42),
        ("-7", -7),
        ("3.5", 3.5),
        ("1e3", 1000.0),
        ("0x1F", 31),
        ("0XfF", 255),
        ("true", True),
        ("Yes", True),
        ("FALSE", False),
        ("no", False),
        ('"hi there"', "hi there"),
        ("word", "word"),
    ],
)
def test_parse_single_arg_priority(token, expected):
    value = parse_single_arg(token)
    assert value == expected
    assert type(value) is type(expected)


def test_parse_single_arg_int_vs_float():
    assert isinstance(parse_single_arg("10"), int)
    assert isinstance(parse_single_arg("10."), float)
    assert isinstance(parse_single_arg("10E2"), float)


def test_parse_single_arg_inf_and_nan():
    assert parse_single_arg("inf") == math.inf
    assert math.isnan(parse_single_arg("nan"))


def test_parse_single_arg_string_type_keeps_numbers_as_text():
    assert parse_single_arg("42", ArgType.STRING) == "42"
    assert parse_single_arg('"42"', ArgType.STRING) == "42"


# ----------------------------------------------------------------
# Vectors
# ----------------------------------------------------------------


def test_parse_vector_sizes():
    assert parse_vector_arg("(1, 2)") == Vector2(1.0, 2.0)
    assert parse_vector_arg("(1 2 3)") == Vector3(1.0, 2.0, 3.0)
    assert parse_vector_arg("(1,2,3,4)") == Vector4(1.0, 2.0, 3.0, 4.0)


def test_parse_vector_empty_slot_is_zero():
    assert parse_vector_arg("(,5)") == Vector2(0.0, 5.0)


def test_parse_vector_negative_and_fraction():
    assert parse_vector_arg("(-1.5, .5)") == Vector2(-1.5, 0.5)


def test_parse_vector_bad_formatting():
    with pytest.raises(CoercionError, match="Bad formatting"):
        parse_vector_arg("(1, a)")


def test_parse_vector_not_a_number():
    with pytest.raises(CoercionError, match='Not a number: "1-2"'):
        parse_vector_arg("(1-2, 3)")


def test_parse_vector_unsupported_count():
    with pytest.raises(CoercionError) as exc:
        parse_vector_arg("(1)")
    assert str(exc.value) == 'Supports 2,3,4-element vectors, but 1-element given: "(1)"'

    with pytest.raises(CoercionError, match="but 5-element given"):
        parse_vector_arg("(1,2,3,4,5)")
    with pytest.raises(CoercionError) as exc:
        parse_vector_arg("(1,2,3,4,5)")
    assert exc.value.args[0].endswith('"(1,2,3,4,5)"')


def test_coerce_reports_vector_errors():
    desc = CommandDescriptor.of(("pos", ArgType.VECTOR2), ("n", ArgType.INT))
    with pytest.raises(CoercionError):
        coerce_args(["(1,x)", "1"], desc)
