# TinyConsole — In-Application Command Console
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Argument value types.

A coerced argument is one of: str, bool, int, float, Vector2, Vector3,
Vector4. Handlers declare the tag they expect per parameter with ArgType.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple, Union


class Vector2(NamedTuple):
    x: float
    y: float


class Vector3(NamedTuple):
    x: float
    y: float
    z: float


class Vector4(NamedTuple):
    x: float
    y: float
    z: float
    w: float


Value = Union[str, bool, int, float, Vector2, Vector3, Vector4]


class ArgType(Enum):
    """Declared parameter type tag."""

    ANY = "any"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "str"
    VECTOR2 = "Vector2"
    VECTOR3 = "Vector3"
    VECTOR4 = "Vector4"

    @property
    def display_name(self) -> str:
        return self.value


# Python annotation -> tag
_ANNOTATION_TAGS: dict[object, ArgType] = {
    str: ArgType.STRING,
    bool: ArgType.BOOL,
    int: ArgType.INT,
    float: ArgType.FLOAT,
    Vector2: ArgType.VECTOR2,
    Vector3: ArgType.VECTOR3,
    Vector4: ArgType.VECTOR4,
}


def arg_type_for_annotation(annotation: object) -> ArgType:
    """Map a type annotation to an ArgType (ANY if unknown).

    Unresolved string annotations ("str", "Vector3") are matched by name.
    """
    if isinstance(annotation, str):
        for tp, tag in _ANNOTATION_TAGS.items():
            if getattr(tp, "__name__", None) == annotation:
                return tag
        return ArgType.ANY
    try:
        return _ANNOTATION_TAGS.get(annotation, ArgType.ANY)
    except TypeError:
        # unhashable annotation objects
        return ArgType.ANY


def make_vector(components: list[float]) -> Vector2 | Vector3 | Vector4 | None:
    """Build a vector of matching arity, or None for unsupported counts."""
    if len(components) == 2:
        return Vector2(*components)
    if len(components) == 3:
        return Vector3(*components)
    if len(components) == 4:
        return Vector4(*components)
    return None
