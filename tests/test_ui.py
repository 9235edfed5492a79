# tests/test_ui.py
from __future__ import annotations

import importlib

import pytest

prompt_toolkit = pytest.importorskip("prompt_toolkit")

from prompt_toolkit.document import Document  # noqa: E402
from prompt_toolkit.keys import Keys  # noqa: E402

from tiny_console.config import ConsoleOptions, YAMLConfig  # noqa: E402
from tiny_console.kernel import Console  # noqa: E402


class FakeBuffer:
    def __init__(self, text: str = ""):
        self.text = text
        self.cursor_position = len(text)
        self.completing = None

    def start_completion(self, select_first: bool = False) -> None:
        self.completing = True

    def cancel_completion(self) -> None:
        self.completing = False


class FakeEvent:
    def __init__(self, buffer: FakeBuffer):
        self.current_buffer = buffer


def make_console() -> Console:
    c = Console(options=ConsoleOptions(greet_user=False))
    for name in ("help", "history", "quit"):
        c.register_command(lambda: None, name)
    return c


def _binding_for(kb, key):
    for b in kb.bindings:
        if tuple(b.keys) == (key,):
            return b
    raise AssertionError(f"no binding for {key}")


def test_ui_module_exports_prompt_toolkit_ui() -> None:
    ui = importlib.import_module("tiny_console.ui")
    assert hasattr(ui, "PromptToolkitUI")


def test_prompt_toolkit_ui_contract_surface() -> None:
    ui = importlib.import_module("tiny_console.ui")
    inst = ui.PromptToolkitUI()

    assert callable(getattr(inst, "read", None))
    assert callable(getattr(inst, "write", None))
    assert callable(getattr(inst, "write_line", None))
    assert callable(getattr(inst, "clear", None))
    assert callable(getattr(inst, "build_key_bindings", None))


# -------------------------------------------------------------------
# Config-driven prompt + theme
# -------------------------------------------------------------------


def test_prompt_text_from_config() -> None:
    ui = importlib.import_module("tiny_console.ui")
    assert ui.PromptToolkitUI().prompt_text == ">"
    cfg = YAMLConfig({"ui": {"prompt": "$"}})
    assert ui.PromptToolkitUI(config=cfg).prompt_text == "$"


def test_style_overrides_keep_only_string_pairs() -> None:
    ui = importlib.import_module("tiny_console.ui")
    cfg = YAMLConfig(
        {"ui": {"theme": {"style": {"auto-suggestion": "#ff0000", "bad": 3}}}}
    )
    style = ui._build_style(cfg)
    rules = dict(style.style_rules)
    assert rules["auto-suggestion"] == "#ff0000"
    assert "bad" not in rules
    assert "completion-menu" in rules


# -------------------------------------------------------------------
# Autocomplete hint + history completer
# -------------------------------------------------------------------


def test_auto_suggest_shows_hint_for_user_edit() -> None:
    ui = importlib.import_module("tiny_console.ui")
    c = make_console()
    suggest = ui.ConsoleAutoSuggest(c)

    suggestion = suggest.get_suggestion(None, Document("he"))
    assert suggestion is not None
    assert suggestion.text == "lp"
    assert c.entry_text == "he"


def test_auto_suggest_keeps_queue_after_tab_fill() -> None:
    ui = importlib.import_module("tiny_console.ui")
    c = make_console()
    suggest = ui.ConsoleAutoSuggest(c)

    suggest.get_suggestion(None, Document("h"))
    filled = c.autocomplete()
    assert filled == "help"

    # the filled text equals the entry line, so candidates survive
    assert suggest.get_suggestion(None, Document(filled)) is None
    assert c.autocomplete() == "history"


def test_history_completer_only_while_search_open() -> None:
    ui = importlib.import_module("tiny_console.ui")
    c = make_console()
    for line in ("spawn orc", "help", "spawn elf"):
        c.history.push_entry(line)
    completer = ui.HistorySearchCompleter(c)

    assert list(completer.get_completions(Document("sp"), None)) == []

    c.toggle_history_search()
    completions = list(completer.get_completions(Document("sp"), None))
    assert [comp.text for comp in completions] == ["spawn orc", "spawn elf"]
    assert all(comp.start_position == -2 for comp in completions)


# -------------------------------------------------------------------
# Key bindings
# -------------------------------------------------------------------


def test_key_bindings_registered() -> None:
    ui = importlib.import_module("tiny_console.ui")
    kb = ui.PromptToolkitUI().build_key_bindings(make_console())

    keys = {tuple(b.keys) for b in kb.bindings}
    for key in (Keys.Tab, Keys.BackTab, Keys.Up, Keys.Down, Keys.ControlR, Keys.ControlL):
        assert (key,) in keys


def test_tab_and_shift_tab_fill_buffer() -> None:
    ui = importlib.import_module("tiny_console.ui")
    c = make_console()
    kb = ui.PromptToolkitUI().build_key_bindings(c)
    c.on_entry_text_changed("h")
    buf = FakeBuffer("h")

    _binding_for(kb, Keys.Tab).handler(FakeEvent(buf))
    assert buf.text == "help"
    assert buf.cursor_position == 4

    _binding_for(kb, Keys.Tab).handler(FakeEvent(buf))
    assert buf.text == "history"

    _binding_for(kb, Keys.BackTab).handler(FakeEvent(buf))
    assert buf.text == "help"


def test_up_down_browse_history() -> None:
    ui = importlib.import_module("tiny_console.ui")
    c = make_console()
    c.history.push_entry("first")
    c.history.push_entry("second")
    c.history.reassign_cursor(c.cursor)
    kb = ui.PromptToolkitUI().build_key_bindings(c)
    buf = FakeBuffer()

    _binding_for(kb, Keys.Up).handler(FakeEvent(buf))
    assert buf.text == "second"
    _binding_for(kb, Keys.Up).handler(FakeEvent(buf))
    assert buf.text == "first"
    _binding_for(kb, Keys.Down).handler(FakeEvent(buf))
    assert buf.text == "second"


def test_ctrl_r_toggles_history_search() -> None:
    ui = importlib.import_module("tiny_console.ui")
    c = make_console()
    kb = ui.PromptToolkitUI().build_key_bindings(c)
    buf = FakeBuffer()

    _binding_for(kb, Keys.ControlR).handler(FakeEvent(buf))
    assert c.history_search_open
    assert buf.completing is True

    _binding_for(kb, Keys.ControlR).handler(FakeEvent(buf))
    assert not c.history_search_open
    assert buf.completing is False


# -------------------------------------------------------------------
# Output
# -------------------------------------------------------------------


def test_write_line_appends_newline(monkeypatch: pytest.MonkeyPatch) -> None:
    ui = importlib.import_module("tiny_console.ui")
    written: list[str] = []

    def fake_print(text, style=None, end="\n"):
        written.append(str(text.value) + end)

    monkeypatch.setattr(ui, "print_formatted_text", fake_print)
    inst = ui.PromptToolkitUI()

    inst.write("")
    inst.write("partial")
    assert inst._needs_newline_before_prompt
    inst.write_line("done")
    assert not inst._needs_newline_before_prompt
    assert written == ["partial", "done\n"]
