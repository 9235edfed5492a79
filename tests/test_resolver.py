"""
Tests for tiny_console.resolver: alias expansion + subcommand joining.
"""

from __future__ import annotations

import pytest

from tiny_console.errors import AliasDepthError
from tiny_console.registry import CommandRegistry
from tiny_console.resolver import expand_alias, join_subcommands, resolve


def _noop(*args) -> None:
    pass


@pytest.fixture
def registry() -> CommandRegistry:
    reg = CommandRegistry()
    for name in ("quit", "help", "cache clear", "cache clear all", "spawn"):
        reg.register_command(_noop, name)
    return reg


def test_alias_resolves_to_canonical_command(registry):
    registry.add_alias("exit", "quit")
    assert resolve(["exit"], registry) == ("quit", [])


def test_alias_target_args_are_prepended(registry):
    registry.add_alias("orcs", "spawn orc 3")
    assert resolve(["orcs", "fast"], registry) == ("spawn", ["orc", "3", "fast"])


def test_chained_aliases(registry):
    registry.add_alias("bye", "exit")
    registry.add_alias("exit", "quit")
    assert resolve(["bye"], registry) == ("quit", [])


def test_subcommand_join(registry):
    assert resolve(["cache", "clear", "now"], registry) == ("cache clear", ["now"])


def test_subcommand_join_prefers_longest(registry):
    assert resolve(["cache", "clear", "all", "x"], registry) == (
        "cache clear all",
        ["x"],
    )


def test_alias_to_multiword_command(registry):
    registry.add_alias("cc", "cache clear")
    assert resolve(["cc", "now"], registry) == ("cache clear", ["now"])


def test_multiword_alias(registry):
    registry.add_alias("wipe cache", "cache clear all")
    assert resolve(["wipe", "cache"], registry) == ("cache clear all", [])


def test_direct_alias_cycle_raises(registry):
    registry.add_alias("loop", "loop")
    with pytest.raises(AliasDepthError) as exc:
        resolve(["loop"], registry)
    assert exc.value.max_depth == 1000
    assert "Loop in aliasing" in str(exc.value)


def test_transitive_alias_cycle_raises(registry):
    registry.add_alias("ping", "pong")
    registry.add_alias("pong", "ping")
    with pytest.raises(AliasDepthError):
        resolve(["ping"], registry, max_depth=10)


def test_unknown_command_passes_through(registry):
    assert resolve(["nope", "a"], registry) == ("nope", ["a"])


def test_empty_argv(registry):
    assert resolve([], registry) == ("", [])


def test_only_head_is_expanded(registry):
    registry.add_alias("exit", "quit")
    assert expand_alias(["help", "exit"], registry) == ["help", "exit"]


def test_join_subcommands_with_plain_predicate():
    known = {"a b"}
    assert join_subcommands(["a", "b", "c"], known.__contains__) == ["a b", "c"]
    assert join_subcommands(["a", "c"], known.__contains__) == ["a", "c"]
