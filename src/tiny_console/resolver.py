# TinyConsole — In-Application Command Console
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Resolution: alias expansion interleaved with multi-word subcommand joining.

The subcommand join is retried after every alias substitution, so an alias
may target a multi-word command ("cc" -> "cache clear") and a multi-word
name may itself be an alias.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from .errors import AliasDepthError

if TYPE_CHECKING:
    from .registry import CommandRegistry  # pragma: no cover

MAX_SUBCOMMANDS = 4
MAX_ALIAS_DEPTH = 1000


def join_subcommands(
    argv: list[str], is_known: Callable[[str], bool]
) -> list[str]:
    """Collapse the longest known multi-word prefix into one token.

    Tries spans of MAX_SUBCOMMANDS tokens down to 2.
    """
    for num_parts in range(MAX_SUBCOMMANDS, 1, -1):
        if len(argv) >= num_parts:
            cmd = " ".join(argv[:num_parts])
            if is_known(cmd):
                return [cmd] + argv[num_parts:]
    return list(argv)


def expand_alias(
    argv: list[str],
    registry: CommandRegistry,
    max_depth: int = MAX_ALIAS_DEPTH,
) -> list[str]:
    """Expand aliases at the head of argv until the head is not an alias.

    Alias target arguments are spliced in front of the typed arguments.

    Raises:
        AliasDepthError: more than max_depth substitutions (alias cycle)
    """
    argv = join_subcommands(argv, registry.is_known)
    depth = 0

    while argv and argv[0] in registry.aliases:
        depth += 1
        if depth > max_depth:
            raise AliasDepthError(max_depth, argv)
        argv = registry.aliases[argv[0]] + argv[1:]
        argv = join_subcommands(argv, registry.is_known)

    return argv


def resolve(
    argv: list[str],
    registry: CommandRegistry,
    max_depth: int = MAX_ALIAS_DEPTH,
) -> tuple[str, list[str]]:
    """Canonical command name and residual arguments.

    The name may be unknown; the caller decides how to report it.
    """
    expanded = expand_alias(argv, registry, max_depth)
    if not expanded:
        return "", []
    return expanded[0], expanded[1:]
