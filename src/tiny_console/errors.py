# TinyConsole — In-Application Command Console
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Exception types raised by the console core.

Every error here is reported to the user through the output sink by the
kernel; none of them is allowed to take the engine down.
"""

from __future__ import annotations


class ConsoleError(Exception):
    """Base class for console errors."""


class CoercionError(ConsoleError):
    """An argument token could not be converted for the handler.

    The message is user-facing (e.g. "Missing arguments.").
    """


class AliasDepthError(ConsoleError):
    """Alias expansion exceeded the depth bound (likely an alias cycle)."""

    def __init__(self, max_depth: int, argv: list[str] | None = None):
        self.max_depth = max_depth
        self.argv = list(argv or [])
        super().__init__(
            f"Max depth for alias reached ({max_depth}). Loop in aliasing?"
        )


class ReentrancyError(ConsoleError):
    """Exclusive access to console state was requested while already held."""
