"""
Tests for tiny_console.autocomplete: candidate sources, hint, cycling.
"""

from __future__ import annotations

import pytest

from tiny_console.autocomplete import AutocompleteEngine
from tiny_console.history import CommandHistory
from tiny_console.registry import CommandRegistry


def _noop(*args) -> None:
    pass


@pytest.fixture
def registry() -> CommandRegistry:
    reg = CommandRegistry()
    for name in ("help", "history", "quit", "spawn", "cache clear", "cache stats"):
        reg.register_command(_noop, name)
    reg.add_alias("exit", "quit")
    return reg


@pytest.fixture
def engine(registry) -> AutocompleteEngine:
    return AutocompleteEngine(registry, CommandHistory())


# ----------------------------------------------------------------
# Sources
# ----------------------------------------------------------------


def test_first_word_candidates_sorted(engine):
    hint = engine.update("h")
    assert engine.matches == ["help", "history"]
    assert hint == "elp"


def test_first_word_candidates_include_aliases_and_subcommand_heads(engine):
    engine.update("e")
    assert engine.matches == ["exit"]

    engine.clear()
    engine.update("ca")
    assert engine.matches == ["cache"]


def test_argument_source_candidates(registry, engine):
    registry.add_argument_autocomplete_source("spawn", 0, lambda: ["orc", "ogre", "elf"])
    engine.update("spawn o")
    assert engine.matches == ["spawn ogre", "spawn orc"]


def test_argument_source_after_trailing_space(registry, engine):
    registry.add_argument_autocomplete_source("spawn", 0, lambda: ["orc", "elf"])
    hint = engine.update("spawn ")
    assert engine.matches == ["spawn elf", "spawn orc"]
    assert hint == "elf"


def test_argument_source_through_alias(registry, engine):
    registry.add_alias("mk", "spawn")
    registry.add_argument_autocomplete_source("spawn", 0, lambda: ["orc"])
    engine.update("mk o")
    assert engine.matches == ["mk orc"]


def test_failing_source_yields_no_candidates(registry, engine, caplog):
    def broken():
        raise RuntimeError("boom")

    registry.add_argument_autocomplete_source("spawn", 0, broken)
    engine.update("spawn o")
    assert engine.matches == []
    assert "Autocomplete source failed" in caplog.text


def test_subcommand_candidates(engine):
    engine.update("cache ")
    assert engine.matches == ["cache clear", "cache stats"]

    engine.clear()
    engine.update("cache c")
    assert engine.matches == ["cache clear"]


def test_history_candidates_newest_first(registry):
    history = CommandHistory()
    for line in ("spawn orc", "help", "spawn elf"):
        history.push_entry(line)
    engine = AutocompleteEngine(registry, history)
    engine.update("spawn ")
    assert engine.matches == ["spawn elf", "spawn orc"]


def test_history_candidates_only_when_empty_unless_configured(registry):
    history = CommandHistory()
    history.push_entry("spawn zombie")
    registry.add_argument_autocomplete_source("spawn", 0, lambda: ["orc"])

    engine = AutocompleteEngine(registry, history, use_history_with_matches=False)
    engine.update("spawn ")
    assert engine.matches == ["spawn orc"]

    engine = AutocompleteEngine(registry, history, use_history_with_matches=True)
    engine.update("spawn ")
    assert engine.matches == ["spawn orc", "spawn zombie"]


def test_alias_cycle_gives_no_candidates(registry, engine):
    registry.add_alias("loop", "loop")
    assert engine.update("loop x") == ""
    assert engine.matches == []


def test_update_keeps_existing_queue(engine):
    engine.push("quit")
    engine.update("h")
    assert engine.matches == ["quit"]


def test_empty_text_has_no_candidates(engine):
    assert engine.update("") == ""
    assert engine.matches == []


# ----------------------------------------------------------------
# Hint + cycling
# ----------------------------------------------------------------


def test_hint_only_when_head_extends_text(engine):
    engine.push("help")
    assert engine.hint("he") == "lp"
    assert engine.hint("help") == ""
    assert engine.hint("x") == ""


def test_next_rotates_head_to_tail(engine):
    for m in ("a", "b", "c"):
        engine.push(m)
    assert engine.next() == "a"
    assert engine.matches == ["b", "c", "a"]
    assert engine.next() == "b"


def test_prev_rotates_tail_to_head(engine):
    for m in ("a", "b", "c"):
        engine.push(m)
    assert engine.prev() == "b"
    assert engine.matches == ["c", "a", "b"]


def test_next_and_prev_are_inverse(engine):
    for m in ("a", "b", "c"):
        engine.push(m)
    engine.next()
    engine.prev()
    assert engine.matches == ["a", "b", "c"]


def test_cycling_empty_queue(engine):
    assert engine.next() is None
    assert engine.prev() is None
