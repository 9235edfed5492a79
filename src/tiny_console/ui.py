# TinyConsole — In-Application Command Console
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggest, Suggestion
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.filters import Condition
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import clear as pt_clear
from prompt_toolkit.shortcuts import print_formatted_text
from prompt_toolkit.styles import Style

if TYPE_CHECKING:
    from .interfaces import ConfigModel  # pragma: no cover
    from .kernel import Console  # pragma: no cover


# ----------------------------
# Config helpers (values come from config.py facade via get_path)
# ----------------------------


def _cfg_get_path(config: ConfigModel | None, path: str, default: Any) -> Any:
    if config is None or not hasattr(config, "get_path"):
        return default
    return config.get_path(path, default)


def _cfg_dict(config: ConfigModel | None, path: str, default: dict) -> dict:
    val = _cfg_get_path(config, path, default)
    return val if isinstance(val, dict) else default


def _cfg_str(config: ConfigModel | None, path: str, default: str) -> str:
    val = _cfg_get_path(config, path, default)
    return str(val) if val is not None else default


# ----------------------------
# Theme / Style
# ----------------------------


def _default_style_dict() -> dict[str, str]:
    return {
        # completion menu (history search)
        "completion-menu": "bg:#111111 #d0d0d0",
        "completion-menu.completion": "bg:#111111 #d0d0d0",
        "completion-menu.completion.current": "bg:#303030 #ffffff bold",
        "completion-menu.meta.completion": "bg:#111111 #808080",
        "completion-menu.meta.completion.current": "bg:#303030 #a0a0a0",
        "scrollbar.background": "bg:#202020",
        "scrollbar.button": "bg:#505050",
        # autocomplete hint
        "auto-suggestion": "#666666 italic",
        "bottom-toolbar": "bg:#0b0b0b #d0d0d0",
    }


def _build_style(config: ConfigModel | None) -> Style:
    base = _default_style_dict()
    overrides = _cfg_dict(config, "ui.theme.style", {})
    # only keep string->string
    for k, v in list(overrides.items()):
        if isinstance(k, str) and isinstance(v, str):
            base[k] = v
    return Style.from_dict(base)


# ----------------------------
# Autocomplete hint + history search
# ----------------------------


class ConsoleAutoSuggest(AutoSuggest):
    """Shows the console's autocomplete hint as a grey suffix.

    Only a user edit (text differing from the console's entry line)
    recomputes candidates; text filled in by Tab or history navigation
    keeps the current candidate queue.
    """

    def __init__(self, console: Console) -> None:
        self.console = console

    def get_suggestion(self, buffer, document) -> Suggestion | None:
        text = document.text or ""
        if text != self.console.entry_text:
            hint = self.console.on_entry_text_changed(text)
        else:
            hint = self.console.autocomplete_engine.hint(text)
        return Suggestion(hint) if hint else None


class HistorySearchCompleter(Completer):
    """Fuzzy history matches, active while history search is toggled on."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def get_completions(self, document, complete_event) -> Iterable[Completion]:
        if not self.console.history_search_open:
            return
        text = document.text or ""
        for entry in self.console.search_history(text):
            yield Completion(
                entry, start_position=-len(text), display_meta="history"
            )


# ----------------------------
# PromptSession UI
# ----------------------------


class PromptToolkitUI:
    """
    Terminal-friendly console front-end:
      - Keeps normal terminal scrollback + drag-select copy.
      - Autocomplete hint rendered as an auto-suggestion.
      - Hotkeys:
          * Tab / Shift+Tab: cycle autocomplete candidates
          * Up / Down: browse history
          * Ctrl+R: toggle fuzzy history search
          * Ctrl+L: clear screen
    """

    def __init__(
        self, console: Console | None = None, config: ConfigModel | None = None
    ) -> None:
        self.console = console
        self.config = config
        self.session: PromptSession[str] | None = None
        self._style = _build_style(config)

        # Track whether we ended on a newline (to prevent prompt mangling)
        self._needs_newline_before_prompt = False

    @property
    def prompt_text(self) -> str:
        return _cfg_str(self.config, "ui.prompt", ">")

    # ---------- session ----------

    def _ensure_session(self) -> None:
        if self.session is not None:
            return

        if self.console is None:
            self.session = PromptSession(style=self._style)
            return

        console = self.console
        self.session = PromptSession(
            key_bindings=self.build_key_bindings(console),
            completer=HistorySearchCompleter(console),
            complete_while_typing=Condition(lambda: console.history_search_open),
            auto_suggest=ConsoleAutoSuggest(console),
            style=self._style,
        )

    # ---------- public API ----------

    def read(self, prompt: str | None = None) -> str:
        self._ensure_session()
        assert self.session is not None

        # If last output didn't end with newline, insert one
        # before prompt redraw
        if self._needs_newline_before_prompt:
            print_formatted_text(ANSI("\n"), style=self._style, end="")
            self._needs_newline_before_prompt = False

        with patch_stdout():
            return self.session.prompt(ANSI((prompt or self.prompt_text) + " "))

    def write(self, text: str) -> None:
        """Write EXACTLY what we receive (no extra newline).

        Track prompt safety.
        """
        if not text:
            return
        print_formatted_text(ANSI(text), style=self._style, end="")
        self._needs_newline_before_prompt = not text.endswith("\n")

    def write_line(self, line: str) -> None:
        """Console output hook: one formatted line per call."""
        self.write(line + "\n")

    def clear(self) -> None:
        pt_clear()

    # ---------- keybindings ----------

    def build_key_bindings(self, console: Console) -> KeyBindings:
        kb = KeyBindings()
        browsing = Condition(lambda: not console.history_search_open)

        def _fill(buf, text: str) -> None:
            buf.text = text
            buf.cursor_position = len(text)

        @kb.add("tab")
        def _(event):
            _fill(event.current_buffer, console.autocomplete())

        @kb.add("s-tab")
        def _(event):
            _fill(event.current_buffer, console.reverse_autocomplete())

        @kb.add("up", filter=browsing)
        def _(event):
            _fill(event.current_buffer, console.history_up())

        @kb.add("down", filter=browsing)
        def _(event):
            _fill(event.current_buffer, console.history_down())

        @kb.add("c-r")
        def _(event):
            buf = event.current_buffer
            if console.toggle_history_search():
                buf.start_completion(select_first=False)
            else:
                buf.cancel_completion()

        @kb.add("c-l")
        def _(event):
            console.output_lines.clear()
            event.app.renderer.clear()
            event.app.invalidate()

        return kb
