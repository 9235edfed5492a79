# TinyConsole — In-Application Command Console
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Autocomplete engine.

Candidates are full input lines kept in a rotating queue. They are computed
once per edit; cycling rotates the queue instead of recomputing, so Tab and
Shift+Tab are exact inverses of each other.

Sources, in order:
- first token: command and alias first words
- argument positions: per-argument autocomplete sources
- multi-word subcommand prefixes
- history lines starting with the typed text
"""

from __future__ import annotations

import logging

from .errors import AliasDepthError
from .history import CommandHistory
from .registry import CommandRegistry
from .resolver import expand_alias
from .utils import parse_command_line

logger = logging.getLogger(__name__)


class AutocompleteEngine:
    def __init__(
        self,
        registry: CommandRegistry,
        history: CommandHistory,
        use_history_with_matches: bool = True,
    ) -> None:
        self.registry = registry
        self.history = history
        self.use_history_with_matches = use_history_with_matches
        self.matches: list[str] = []

    # ---------- queue ----------

    def clear(self) -> None:
        self.matches.clear()

    def push(self, candidate: str) -> None:
        """Append an externally computed candidate (e.g. 'did you mean')."""
        self.matches.append(candidate)

    def next(self) -> str | None:
        """Move the head to the tail and return it."""
        if not self.matches:
            return None
        match = self.matches.pop(0)
        self.matches.append(match)
        return match

    def prev(self) -> str | None:
        """Move the tail to the head and return the new tail."""
        if not self.matches:
            return None
        last = self.matches.pop()
        self.matches.insert(0, last)
        return self.matches[-1]

    def hint(self, text: str) -> str:
        """Untyped suffix of the head candidate, if it still continues text."""
        if self.matches:
            first = self.matches[0]
            if len(first) > len(text) and first.startswith(text):
                return first[len(text):]
        return ""

    # ---------- computation ----------

    def update(self, text: str) -> str:
        """Fill the queue for text if it is empty; return the hint."""
        if not self.matches and text:
            raw = parse_command_line(text)
            if len(raw) == 1 and not text.endswith(' '):
                if ' ' not in raw[0]:
                    self._add_first_input_autocompletes(raw[0])
            else:
                try:
                    argv = expand_alias(raw, self.registry)
                except AliasDepthError:
                    argv = []
                if argv:
                    if text.endswith(' '):
                        argv.append("")
                    if len(argv) > 1:
                        self._add_argument_autocompletes(argv, text)
                        self._add_subcommand_autocompletes(text)
                        self._add_history_autocompletes(text)

        return self.hint(text)

    def _add_first_input_autocompletes(self, command_name: str) -> None:
        matches: list[str] = []
        for cmd_name in self.registry.get_command_names(include_aliases=True):
            first_input = cmd_name.split(' ')[0]
            if first_input.startswith(command_name) and first_input not in matches:
                matches.append(first_input)
        matches.sort()
        self.matches.extend(matches)

    def _add_argument_autocompletes(self, argv: list[str], text: str) -> None:
        last_arg = len(argv) - 1
        try:
            values = self.registry.get_autocomplete_values(argv[0], last_arg - 1)
        except Exception:
            logger.exception(
                "Autocomplete source failed for %s argument %d", argv[0], last_arg - 1
            )
            return
        if values is None:
            return

        typed_arg = argv[last_arg]
        prefix = text[:len(text) - len(typed_arg)]
        matches = [prefix + value for value in values if value.startswith(typed_arg)]
        matches.sort()
        self.matches.extend(matches)

    def _add_subcommand_autocompletes(self, text: str) -> None:
        typed_tokens = text.split(' ')
        result: list[str] = []

        for cmd in self.registry.get_command_names(include_aliases=True):
            cmd_tokens = cmd.split(' ')
            if len(cmd_tokens) < len(typed_tokens):
                continue

            last_match = 0
            for typed, token in zip(typed_tokens, cmd_tokens):
                if typed != token:
                    break
                last_match += 1

            if last_match < len(typed_tokens) - 1:
                continue

            if (
                last_match < len(cmd_tokens)
                and cmd_tokens[last_match].startswith(typed_tokens[-1])
            ):
                partial = " ".join(cmd_tokens[:last_match + 1])
                if partial not in result:
                    result.append(partial)

        result.sort()
        self.matches.extend(result)

    def _add_history_autocompletes(self, text: str) -> None:
        if not (self.use_history_with_matches or not self.matches):
            return
        for entry in reversed(self.history.entries):
            if entry.startswith(text):
                self.matches.append(entry)
