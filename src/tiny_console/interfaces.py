# TinyConsole — In-Application Command Console
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Protocol definitions for dependency injection.

These interfaces keep the console kernel independent of the front-end
that displays its output and of the loader that produced its config.
"""

from __future__ import annotations

from typing import Any, Protocol


class ConsoleFrontEnd(Protocol):
    """Protocol for REPL front-ends (terminal UI, test fakes)."""

    def read(self, prompt: str | None = None) -> str:
        """Block until the user submits a line."""
        ...

    def write(self, text: str) -> None:
        """Write text exactly as received."""
        ...

    def clear(self) -> None:
        """Clear the visible output."""
        ...


class ConfigModel(Protocol):
    """Protocol for configuration access."""

    @property
    def console(self) -> dict[str, Any]:
        """Console behavior configuration."""
        ...

    @property
    def ui(self) -> dict[str, Any]:
        """Terminal UI configuration."""
        ...

    def get_path(self, path: str, default: Any = None) -> Any:
        """Nested lookup using a dot-separated path."""
        ...
