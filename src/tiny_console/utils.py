# TinyConsole — In-Application Command Console
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Utility functions for TinyConsole: tokenizing, name validation,
edit-distance matching and text helpers.
"""

import re

DEFAULT_MAX_EDIT_DISTANCE = 2

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


def parse_command_line(line: str) -> list[str]:
    """Split a command line into tokens.

    Rules:
    - leading/trailing whitespace is trimmed first
    - spaces separate tokens, except inside double quotes or parentheses
    - a double quote toggles the quoted region
    - '(' suspends splitting until ')' (vector literals)
    - balance is not validated; an open region runs to end of line
    - quote characters are kept in the tokens

    Args:
        line: Raw input line

    Returns:
        List of tokens (exact substrings of the trimmed line)
    """
    argv: list[str] = []
    line = line.strip()
    if not line:
        return argv

    in_quotes = False
    in_brackets = False
    start = 0

    for cur, ch in enumerate(line):
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == '(':
            in_brackets = True
        elif ch == ')':
            in_brackets = False
        elif ch == ' ' and not in_quotes and not in_brackets:
            if cur > start:
                argv.append(line[start:cur])
            start = cur + 1

    if len(line) > start:
        argv.append(line[start:])

    return argv


def strip_quotes(text: str) -> str:
    """Remove one pair of surrounding double quotes, if present."""
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        return text[1:-1]
    return text


def split_lines(text: str) -> list[str]:
    """Split file text on '\\n' only (a trailing '\\r' is dropped per line).

    Other Unicode line boundaries stay inside the line.
    """
    lines = [line[:-1] if line.endswith('\r') else line for line in text.split('\n')]
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def is_valid_identifier(text: str) -> bool:
    """ASCII identifier: letters, digits, underscore; not digit-first."""
    if not text or text[0].isdigit():
        return False
    return all(
        (ch.isascii() and ch.isalnum()) or ch == '_' for ch in text
    )


def is_valid_command_sequence(text: str) -> bool:
    """True for one or more identifiers separated by single spaces."""
    if not text:
        return False
    return all(is_valid_identifier(part) for part in text.split(' '))


def osa_distance(s1: str, s2: str) -> int:
    """Optimal String Alignment distance between two strings.

    Levenshtein distance plus transposition of two adjacent characters,
    where no substring is edited more than once.
    """
    len2 = len(s2)

    # three rolling rows: i-2, i-1, i
    row0 = [0] * (len2 + 1)
    row1 = list(range(len2 + 1))
    row2 = [0] * (len2 + 1)

    for i, c1 in enumerate(s1):
        row2[0] = i + 1
        for j, c2 in enumerate(s2):
            deletion = row1[j + 1] + 1
            insertion = row2[j] + 1
            substitution = row1[j] + (0 if c1 == c2 else 1)
            best = min(deletion, insertion, substitution)

            if i > 0 and j > 0 and c1 == s2[j - 1] and s1[i - 1] == c2:
                best = min(best, row0[j - 1] + 1)

            row2[j + 1] = best

        row0, row1, row2 = row1, row2, row0

    return row1[len2]


def fuzzy_match_string(
    needle: str,
    max_edit_distance: int,
    haystack: list[str],
) -> str | None:
    """Return the closest haystack entry within max_edit_distance.

    Ties are won by the first entry encountered.

    Args:
        needle: String to look for
        max_edit_distance: Largest accepted distance
        haystack: Candidate strings

    Returns:
        Best match, or None if nothing is close enough
    """
    best_distance: int | None = None
    best_match: str | None = None

    for candidate in haystack:
        dist = osa_distance(needle, candidate)
        if best_distance is None or dist < best_distance:
            best_distance = dist
            best_match = candidate

    if best_distance is not None and best_distance <= max_edit_distance:
        return best_match
    return None


def strip_ansi(text: str) -> str:
    """Remove ANSI color sequences (used for plain-text mirroring)."""
    return _ANSI_ESCAPE.sub("", text)


def sentence_case(text: str) -> str:
    """Capitalize the first character and ensure a trailing period."""
    if not text:
        return text
    out = text[0].upper() + text[1:]
    if not out.endswith('.'):
        out += '.'
    return out
