# TinyConsole — In-Application Command Console
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Argument coercion: residual string tokens -> typed handler arguments.

Only the STRING tag changes how a token is read. Every other token goes
through a fixed priority order: vector literal, number, hex integer,
boolean, and finally a quote-stripped string.
"""

from __future__ import annotations

import re

from .errors import CoercionError
from .registry import CommandDescriptor
from .utils import strip_quotes
from .values import ArgType, Value, make_vector

_NUMBER = re.compile(
    r"^[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf|infinity|nan)$",
    re.IGNORECASE,
)
_HEX = re.compile(r"^0[xX]([0-9a-fA-F]+)$")

_TRUE_WORDS = ("true", "yes")
_FALSE_WORDS = ("false", "no")

_VECTOR_CHARS = set("0123456789.-")


def _parse_component(token: str) -> float:
    try:
        return float(token)
    except ValueError:
        raise CoercionError(
            f'Failed to parse vector: Not a number: "{token}"'
        ) from None


def parse_vector_arg(text: str) -> Value:
    """Parse "(x, y[, z[, w]])" into a Vector2/3/4.

    Components are separated by commas and/or spaces. An empty slot
    before a comma reads as 0.

    Raises:
        CoercionError: bad characters, non-numeric component, or an
            unsupported number of components
    """
    inner = text[1:-1]
    components: list[float] = []
    token = ""

    for ch in inner:
        if ch in _VECTOR_CHARS:
            token += ch
        elif ch in (',', ' '):
            if not token and ch == ',':
                token = "0"
            if token:
                components.append(_parse_component(token))
                token = ""
        else:
            raise CoercionError(f'Failed to parse vector: Bad formatting: "{text}"')

    if token:
        components.append(_parse_component(token))

    vector = make_vector(components)
    if vector is None:
        raise CoercionError(
            f'Supports 2,3,4-element vectors, but {len(components)}-element given: "{text}"'
        )
    return vector


def parse_single_arg(arg: str, expected_type: ArgType = ArgType.ANY) -> Value:
    """Coerce one token."""
    if expected_type is ArgType.STRING:
        return strip_quotes(arg)

    if arg.startswith('(') and arg.endswith(')'):
        return parse_vector_arg(arg)

    if _NUMBER.match(arg):
        if '.' not in arg and 'e' not in arg and 'E' not in arg:
            try:
                return int(arg)
            except ValueError:
                pass
        return float(arg)

    hex_match = _HEX.match(arg)
    if hex_match:
        return int(hex_match.group(1), 16)

    lowered = arg.lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False

    return strip_quotes(arg)


def coerce_args(
    args: list[str], descriptor: CommandDescriptor | None
) -> list[Value]:
    """Convert residual tokens into the handler's positional arguments.

    Args:
        args: Tokens after the command name
        descriptor: Handler signature; None passes tokens through

    Returns:
        Values to call the handler with

    Raises:
        CoercionError: arity mismatch or malformed token
    """
    if descriptor is None:
        return list(args)

    remaining = descriptor.remaining

    # A lone string parameter takes the whole rest of the line
    if (
        len(remaining) == 1
        and remaining[0].type is ArgType.STRING
        and not descriptor.variadic
    ):
        return [strip_quotes(" ".join(args))]

    supplied = len(args) + descriptor.bound
    if supplied < descriptor.required_count:
        raise CoercionError("Missing arguments.")
    if not descriptor.variadic and supplied > len(descriptor.params):
        raise CoercionError("Too many arguments.")

    values: list[Value] = []
    for i, token in enumerate(args):
        expected = remaining[i].type if i < len(remaining) else ArgType.ANY
        values.append(parse_single_arg(token, expected))
    return values
