# TinyConsole — In-Application Command Console
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Command history: ordered, deduplicating log of executed lines.

Handles:
- push with move-to-end deduplication
- plain-text persistence (one entry per line, oldest first)
- fuzzy search used by the interactive history browser
- WrappingCursor for Up/Down navigation
"""

from __future__ import annotations

import logging
from pathlib import Path

from .utils import split_lines

logger = logging.getLogger(__name__)

EXACT_MATCH_SCORE = 99999
CHAR_MATCH_SCORE = 10
WORD_START_BONUS = 5


def compute_match_score(query: str, target: str) -> int:
    """Score target against query for fuzzy history search.

    Identical strings score EXACT_MATCH_SCORE. Otherwise each query char
    found in order scores CHAR_MATCH_SCORE, plus WORD_START_BONUS when it
    lands at the start of the line or right after a space. Targets that do
    not contain the query as an ordered subsequence score 0.
    """
    if query == target:
        return EXACT_MATCH_SCORE

    score = 0
    query_index = 0

    for i, ch in enumerate(target):
        if query_index < len(query) and ch == query[query_index]:
            score += CHAR_MATCH_SCORE
            if i == 0 or target[i - 1] == ' ':
                score += WORD_START_BONUS
            query_index += 1
            if query_index == len(query):
                break

    if query_index == len(query):
        return score
    return 0


class WrappingCursor:
    """Circular cursor over a snapshot of history entries.

    Index -1 is the "not browsing" sentinel and maps to an empty line.
    Moving past either end wraps around through the sentinel.
    """

    def __init__(self, entries: list[str] | None = None):
        self.idx = -1
        self.entries: list[str] = list(entries or [])

    def prev(self) -> str:
        if not self.entries:
            return ""
        self.idx -= 1
        if self.idx < -1:
            self.idx = len(self.entries) - 1
        return self.current()

    def next(self) -> str:
        if not self.entries:
            return ""
        self.idx += 1
        if self.idx >= len(self.entries):
            self.idx = -1
        return self.current()

    def current(self) -> str:
        if self.idx < 0 or self.idx >= len(self.entries):
            return ""
        return self.entries[self.idx]

    def reset(self) -> None:
        self.idx = -1


class CommandHistory:
    """History store (most recent last)."""

    def __init__(self) -> None:
        self._entries: list[str] = []
        self.is_dirty = False

    def _insert(self, entry: str) -> None:
        try:
            self._entries.remove(entry)
        except ValueError:
            pass
        self._entries.append(entry)

    def push_entry(self, entry: str) -> None:
        """Add an entry; an existing equal entry is moved to the end."""
        self._insert(entry)
        self.is_dirty = True

    def get_entry(self, index: int) -> str:
        """Entry at index, clamped to the last entry."""
        if not self._entries:
            return ""
        return self._entries[max(0, min(index, len(self._entries) - 1))]

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    def trim(self, max_size: int) -> None:
        """Drop the oldest entries beyond max_size."""
        if max_size < 0:
            return
        excess = len(self._entries) - max_size
        if excess > 0:
            del self._entries[:excess]
            self.is_dirty = True

    def clear(self) -> None:
        self._entries.clear()
        self.is_dirty = True

    # -----------------------
    # Persistence
    # -----------------------

    def load(self, path: Path) -> None:
        """Load entries from a newline-delimited file.

        Lines are trimmed, blank lines skipped, duplicates collapsed with
        the same move-to-end rule as push_entry. A missing file is not an
        error.
        """
        path = Path(path)
        if not path.exists():
            return
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("Failed to load console history from %s: %s", path, e)
            return

        for raw in split_lines(text):
            line = raw.strip()
            if line:
                self._insert(line)
        self.is_dirty = False
        logger.debug("Loaded %d history entries from %s", len(self._entries), path)

    def save(self, path: Path, max_lines: int | None = None) -> None:
        """Write entries to path (oldest first). No-op unless dirty.

        Args:
            path: Destination file
            max_lines: If given, keep only the newest max_lines entries
        """
        if max_lines is not None:
            self.trim(max_lines)
        if not self.is_dirty:
            return

        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as f:
                for line in self._entries:
                    f.write(line + "\n")
        except OSError as e:
            logger.error("Failed to save console history to %s: %s", path, e)
            return
        self.is_dirty = False

    # -----------------------
    # Search + navigation
    # -----------------------

    def fuzzy_match(self, query: str) -> list[str]:
        """Entries matching query, best first.

        An empty query returns every entry, most recent first.
        """
        if not query:
            return list(reversed(self._entries))

        query_lower = query.lower()
        scored: list[tuple[str, int]] = []
        for entry in self._entries:
            score = compute_match_score(query_lower, entry.lower())
            if score > 0:
                scored.append((entry, score))

        scored.sort(key=lambda item: item[1], reverse=True)
        return [entry for entry, _score in scored]

    def create_cursor(self) -> WrappingCursor:
        return WrappingCursor(self._entries)

    def reassign_cursor(self, cursor: WrappingCursor) -> None:
        """Point cursor at a fresh snapshot and reset it to the sentinel."""
        cursor.idx = -1
        cursor.entries = list(self._entries)
