# TinyConsole — In-Application Command Console
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
TinyConsole kernel.

Core implementation of the console engine:
- three-phase command execution (prepare / invoke / finish)
- deferred command queue drained by the per-frame tick
- output formatting + optional stdout mirroring
- history navigation and autocomplete state for the entry line
- lifecycle (initialize / cleanup) and the process-wide singleton

Important boundary:
- Kernel does not load YAML or discover defaults.
- Kernel consumes injected ConsoleOptions.

Re-entrancy:
- Console state is only touched inside the exclusive-access guard.
- The guard is released while a command handler runs, so handlers may
  print, register commands or execute further commands. A nested
  execute_command runs to completion inside the outer handler call.
"""

from __future__ import annotations

import logging
import traceback
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .autocomplete import AutocompleteEngine
from .builtins import BuiltinCommands
from .coercion import coerce_args
from .config import ANSI_COLORS, ConsoleOptions
from .errors import AliasDepthError, CoercionError, ConsoleError, ReentrancyError
from .history import CommandHistory, WrappingCursor
from .registry import CommandDescriptor, CommandRegistry, Param
from .resolver import join_subcommands, resolve
from .utils import (
    DEFAULT_MAX_EDIT_DISTANCE,
    fuzzy_match_string,
    parse_command_line,
    sentence_case,
    split_lines,
    strip_ansi,
)
from .values import Value

logger = logging.getLogger(__name__)


def write_crash_log(
    error: BaseException,
    data_dir: Path | None,
    raw_command: str = "",
    resolved_command: str = "",
) -> None:
    """Write an entry to the crash log.

    Logs exceptions raised by command handlers.
    Only creates the directory when actually needed.
    Appends to crash.log (never overwrites).
    """
    if data_dir is None:
        return

    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        crash_log_path = data_dir / "crash.log"

        timestamp = datetime.now().isoformat()
        lines = [f"{timestamp}"]

        if raw_command:
            lines.append(f"raw={raw_command}")
        if resolved_command:
            lines.append(f"resolved={resolved_command}")

        lines.append(f"error={type(error).__name__}: {error}")
        lines.append("traceback:")
        lines.append(
            "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        )
        lines.append("----")

        with crash_log_path.open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

    except OSError as e:
        logger.warning("Failed to write crash log in %s: %s", data_dir, e)


@dataclass
class PendingCommand:
    """Output of the prepare phase, consumed by invoke and finish."""

    handler: Callable[..., Any]
    args: list[Value]
    argv: list[str]
    silent: bool
    previous_silent: bool


@dataclass
class Console:
    """TinyConsole session engine."""

    options: ConsoleOptions = field(default_factory=ConsoleOptions)

    # ---- Output hooks (wired by UI/CLI) ----
    output_fn: Callable[[str], None] | None = None
    stdout_fn: Callable[[str], None] = print
    clear_fn: Callable[[], None] | None = None
    quit_fn: Callable[[], None] | None = None

    registry: CommandRegistry = field(init=False)
    history: CommandHistory = field(default_factory=CommandHistory)
    cursor: WrappingCursor = field(init=False)
    autocomplete_engine: AutocompleteEngine = field(init=False)

    output_lines: list[str] = field(default_factory=list)
    entry_text: str = ""
    history_search_open: bool = False
    silent: bool = False
    enabled: bool = True
    initialized: bool = False
    running: bool = False

    # Names visible to the eval built-in; "_base_instance" is the fallback object
    eval_inputs: dict[str, Any] = field(default_factory=dict)

    _pending: deque[str] = field(default_factory=deque)
    _held: bool = False
    _builtins: BuiltinCommands | None = None

    def __post_init__(self) -> None:
        self.registry = CommandRegistry(
            disabled_in_release=set(self.options.commands_disabled_in_release),
            debug_build=self.options.debug_build,
        )

        history_file = self.options.history_file
        if self.options.persist_history and history_file is not None:
            self.history.load(history_file)

        self.cursor = self.history.create_cursor()
        self.autocomplete_engine = AutocompleteEngine(
            self.registry,
            self.history,
            use_history_with_matches=self.options.autocomplete_use_history_with_matches,
        )

    # -----------------------
    # Exclusive access
    # -----------------------

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        if self._held:
            raise ReentrancyError("Console state is already exclusively held")
        self._held = True
        try:
            yield
        finally:
            self._held = False

    @property
    def is_exclusive(self) -> bool:
        """True while prepare or finish holds console state."""
        return self._held

    # -----------------------
    # Lifecycle
    # -----------------------

    def initialize(self) -> None:
        """Register built-ins, greet, add configured aliases, run autoexec."""
        if self.initialized:
            return
        self.initialized = True
        self.running = True

        if self.options.disable_in_release_build:
            self.enabled = self.options.debug_build

        self._builtins = BuiltinCommands(self)
        self._builtins.register()

        if self.options.greet_user:
            self.greet()

        self._add_aliases_from_config()
        self._run_autoexec()
        logger.info("Console initialized (%d commands)", len(self.registry.commands))

    def cleanup(self) -> None:
        """Persist history and drop every reference to external handlers."""
        history_file = self.options.history_file
        if self.options.persist_history and history_file is not None:
            self.history.save(history_file, max_lines=self.options.history_lines)

        self.initialized = False
        self.running = False
        self.registry.clear()
        self._pending.clear()
        self.autocomplete_engine.clear()
        self._builtins = None
        logger.info("Console cleaned up")

    def greet(self) -> None:
        message = self.options.greeting_message
        if message:
            bold = ANSI_COLORS["bold"]
            reset = ANSI_COLORS["reset"]
            self.print_line(f"{bold}{message}{reset}")

        self.print_help_tips()
        self.print_line(self.format_tip("-----"))

    def print_help_tips(self) -> None:
        self.print_line(
            self.format_tip(
                f"Type {self.format_name('commands')} to list all available commands."
            )
        )
        self.print_line(
            self.format_tip(
                f"Type {self.format_name('help command')} "
                f"to get more info about the command."
            )
        )

    def _add_aliases_from_config(self) -> None:
        for alias, target in self.options.aliases.items():
            if self.registry.has_command(alias):
                logger.error(
                    "Config error: Alias or command already registered: %s", alias
                )
            elif not self.registry.has_command(target):
                logger.error("Config error: Alias target not found: %s", target)
            else:
                self.registry.add_alias(alias, target)

    def _run_autoexec(self) -> None:
        path = self.options.resolve_script(self.options.autoexec_script)
        if path is None:
            return

        if (
            self.options.autoexec_auto_create
            and self.options.data_dir is not None
            and not path.exists()
        ):
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.touch()
            except OSError as e:
                logger.error("Failed to create autoexec script %s: %s", path, e)

        if path.exists():
            self.execute_script(path, silent=True)

    # -----------------------
    # Registration passthroughs
    # -----------------------

    def register_command(
        self,
        handler: Callable[..., Any],
        name: str = "",
        description: str = "",
        params: CommandDescriptor | Iterable[Param] | None = None,
    ) -> bool:
        return self.registry.register_command(handler, name, description, params)

    def unregister_command(self, name: str) -> bool:
        return self.registry.unregister_command(name)

    def has_command(self, name: str) -> bool:
        return self.registry.has_command(name)

    def has_alias(self, name: str) -> bool:
        return self.registry.has_alias(name)

    def get_command_names(self, include_aliases: bool = False) -> list[str]:
        return self.registry.get_command_names(include_aliases)

    def get_command_description(self, name: str) -> str:
        return self.registry.get_command_description(name)

    def add_alias(self, alias: str, command_to_run: str) -> bool:
        return self.registry.add_alias(alias, command_to_run)

    def remove_alias(self, alias: str) -> bool:
        return self.registry.remove_alias(alias)

    def get_aliases(self) -> list[str]:
        return self.registry.get_aliases()

    def get_alias_argv(self, alias: str) -> list[str]:
        return self.registry.get_alias_argv(alias)

    def add_argument_autocomplete_source(
        self, command: str, argument: int, source: Callable[[], Iterable[str]]
    ) -> bool:
        return self.registry.add_argument_autocomplete_source(command, argument, source)

    def add_eval_input(self, name: str, value: Any) -> None:
        self.eval_inputs[name] = value

    def remove_eval_input(self, name: str) -> None:
        self.eval_inputs.pop(name, None)

    def get_eval_input_names(self) -> list[str]:
        return [k for k in self.eval_inputs if k != "_base_instance"]

    def set_eval_base_instance(self, obj: Any) -> None:
        self.eval_inputs["_base_instance"] = obj

    def get_eval_base_instance(self) -> Any:
        return self.eval_inputs.get("_base_instance")

    # -----------------------
    # Output
    # -----------------------

    def _color(self, role: str) -> str:
        return ANSI_COLORS.get(self.options.colors.get(role, ""), "")

    def _print_line_internal(self, line: str, stdout: bool) -> None:
        if self.silent:
            return
        self.output_lines.append(line)
        if self.output_fn is not None:
            self.output_fn(line)
        if stdout:
            self.stdout_fn(strip_ansi(line))

    def print_line(self, line: str) -> None:
        self._print_line_internal(line, self.options.print_to_stdout)

    def print_line_ex(self, line: str, stdout: bool) -> None:
        self._print_line_internal(line, stdout)

    def info(self, line: str) -> None:
        self._print_line_internal(line, self.options.print_to_stdout)

    def error(self, line: str) -> None:
        color = self._color("error")
        reset = ANSI_COLORS["reset"]
        self._print_line_internal(
            f"{color}ERROR:{reset} {line}", self.options.print_to_stdout
        )

    def warn(self, line: str) -> None:
        color = self._color("warning")
        reset = ANSI_COLORS["reset"]
        self._print_line_internal(
            f"{color}WARNING:{reset} {line}", self.options.print_to_stdout
        )

    def debug(self, line: str) -> None:
        color = self._color("debug")
        reset = ANSI_COLORS["reset"]
        self._print_line_internal(
            f"{color}DEBUG: {line}{reset}", self.options.print_to_stdout
        )

    def format_tip(self, text: str) -> str:
        italic = ANSI_COLORS["italic"]
        reset = ANSI_COLORS["reset"]
        return f"{italic}{self._color('debug')}{text}{reset}"

    def format_name(self, name: str) -> str:
        reset = ANSI_COLORS["reset"]
        return f"{self._color('mention')}{name}{reset}"

    def clear_console(self) -> None:
        self.output_lines.clear()
        if self.clear_fn is not None:
            self.clear_fn()

    def erase_history(self) -> None:
        """Clear in-memory history and truncate the history file."""
        self.history.clear()
        self.history.reassign_cursor(self.cursor)
        history_file = self.options.history_file
        if history_file is None:
            return
        try:
            history_file.parent.mkdir(parents=True, exist_ok=True)
            history_file.write_text("", encoding="utf-8")
        except OSError as e:
            logger.error("Failed to erase history file %s: %s", history_file, e)
        self.history.is_dirty = False

    def quit(self) -> None:
        self.running = False
        if self.quit_fn is not None:
            self.quit_fn()

    # -----------------------
    # Execution protocol
    # -----------------------

    def prepare_command(
        self, command_line: str, silent: bool = False
    ) -> PendingCommand | None:
        """Phase 1: tokenize, resolve, echo, record history, coerce.

        Returns None when the command terminates early (empty line,
        comment, unknown command, bad arguments). The silent flag is
        already restored in that case.
        """
        with self._exclusive():
            command_line = command_line.strip()
            if not command_line or command_line.startswith('#'):
                return None

            argv = parse_command_line(command_line)
            if not argv:
                return None

            previous_silent = self.silent
            self.silent = silent

            if not silent:
                self.history.push_entry(" ".join(argv))
                self.history.reassign_cursor(self.cursor)
                self._echo(argv)

            try:
                command_name, residual = resolve(argv, self.registry)
            except AliasDepthError as e:
                self.error(str(e))
                self.silent = previous_silent
                return None

            expanded_argv = [command_name] + residual

            entry = self.registry.get_entry(command_name)
            if entry is None:
                self.error(f"Unknown command: {command_name}")
                self.suggest_similar_command(expanded_argv)
                self.silent = previous_silent
                return None

            handler = entry.handler
            if handler is None:
                self.error(f"Command handler is no longer available: {command_name}")
                self.registry.unregister_command(command_name)
                self.silent = previous_silent
                return None

            try:
                args = coerce_args(residual, entry.descriptor)
            except CoercionError as e:
                self.error(str(e))
                self.usage(join_subcommands(argv, self.registry.is_known)[0])
                self.silent = previous_silent
                return None

            return PendingCommand(
                handler=handler,
                args=args,
                argv=expanded_argv,
                silent=silent,
                previous_silent=previous_silent,
            )

    def _invoke(self, pending: PendingCommand, raw_command: str) -> Any:
        """Phase 2: call the handler with no console state held."""
        try:
            return pending.handler(*pending.args)
        except Exception as e:
            logger.exception("Unhandled exception in command: %s", raw_command)
            write_crash_log(
                e,
                self.options.data_dir,
                raw_command=raw_command,
                resolved_command=" ".join(pending.argv),
            )
            self.error(f"Unhandled exception: {type(e).__name__}: {e}")
            return None

    def finish_command(self, pending: PendingCommand, result: Any) -> None:
        """Phase 3: react to the handler result and restore the silent flag."""
        with self._exclusive():
            if isinstance(result, int) and not isinstance(result, bool) and result > 0:
                self.suggest_argument_corrections(pending.argv)

            if self.options.sparse_mode:
                self.print_line("")

            self.silent = pending.previous_silent

    def execute_command(self, command_line: str, silent: bool = False) -> None:
        """Run one command line through the full protocol, synchronously."""
        pending = self.prepare_command(command_line, silent)
        if pending is None:
            return
        result = self._invoke(pending, command_line.strip())
        self.finish_command(pending, result)

    def execute_command_silent(self, command_line: str) -> None:
        self.execute_command(command_line, silent=True)

    def execute_script(self, file: str | Path, silent: bool = False) -> None:
        """Run every line of a script file through execute_command."""
        path = Path(file)
        if not path.exists():
            self.error(f"File not found: {path}")
            return

        try:
            lines = split_lines(path.read_text(encoding="utf-8"))
        except OSError as e:
            self.error(f"Can't open file: {path}")
            logger.error("Failed to read script %s: %s", path, e)
            return

        if not silent:
            self.print_line(f"Executing {path}")
        for line in lines:
            self.execute_command(line, silent)

    def submit_command(self, command_line: str) -> None:
        """Queue a line for the next process_frame()."""
        self._pending.append(command_line)

    def process_frame(self) -> None:
        """Per-frame tick: run the lines queued before this frame started."""
        for _ in range(len(self._pending)):
            command_line = self._pending.popleft()
            self.execute_command(command_line)
            self.update_autocomplete()

    def _echo(self, argv: list[str]) -> None:
        color = self._color("command")
        bold = ANSI_COLORS["bold"]
        reset = ANSI_COLORS["reset"]
        rest = " ".join(argv[1:])
        self.print_line(f"{color}{bold}>{reset}{color} {argv[0]}{reset} {rest}".rstrip())

    # -----------------------
    # Help + suggestions
    # -----------------------

    def usage(self, command: str) -> int:
        """Print usage for a command or alias. Returns 0, or 1 if unknown."""
        actual = command
        if self.registry.has_alias(command):
            alias_argv = self.registry.get_alias_argv(command)
            actual = alias_argv[0]
            rest = " ".join(alias_argv[1:])
            self.print_line(f"Alias of: {self.format_name(actual)} {rest}".rstrip())

        entry = self.registry.get_entry(actual)
        if entry is None:
            self.error(f"Command not found: {actual}")
            return 1

        descriptor = entry.descriptor
        if descriptor is None:
            self.print_line(f"Usage: {actual} ???")
        else:
            usage_line = f"Usage: {actual}"
            arg_lines: list[str] = []
            value_lines: list[str] = []
            for i, param in enumerate(descriptor.remaining):
                if param.has_default:
                    usage_line += f" [{param.name}]"
                    default = param.default
                    shown = repr(default) if isinstance(default, str) else default
                    arg_lines.append(
                        f"  {param.name}: {param.type.display_name} = {shown}"
                    )
                else:
                    usage_line += f" {param.name}"
                    arg_lines.append(f"  {param.name}: {param.type.display_name}")

                values = self._source_values(actual, i)
                if values:
                    value_lines.append(f"  {param.name}: {', '.join(values)}")
            if descriptor.variadic:
                usage_line += " ..."
            self.print_line(usage_line)

        if entry.description:
            self.print_line(sentence_case(entry.description))

        if descriptor is not None and arg_lines:
            self.print_line("Arguments:")
            for line in arg_lines:
                self.print_line(line)
        if descriptor is not None and value_lines:
            self.print_line("Values:")
            for line in value_lines:
                self.print_line(line)

        return 0

    def _source_values(self, command: str, argument: int) -> list[str]:
        try:
            return self.registry.get_autocomplete_values(command, argument) or []
        except Exception:
            logger.exception(
                "Autocomplete source failed for %s argument %d", command, argument
            )
            return []

    def suggest_similar_command(self, argv: list[str]) -> None:
        """Print a "did you mean" tip and queue the corrected line for Tab."""
        if self.silent or not argv:
            return
        all_names = self.registry.get_command_names(include_aliases=True)
        fuzzy_hit = fuzzy_match_string(argv[0], DEFAULT_MAX_EDIT_DISTANCE, all_names)
        if fuzzy_hit is None:
            return

        self.print_line(
            self.format_tip(
                f"Did you mean {self.format_name(fuzzy_hit)}? (TAB to fill)"
            )
        )
        suggestion = " ".join([fuzzy_hit] + argv[1:]).strip()
        self.autocomplete_engine.push(suggestion)

    def suggest_argument_corrections(self, argv: list[str]) -> None:
        """Fuzzy-match each argument against its autocomplete source."""
        if self.silent or not argv:
            return
        command = argv[0]
        if self.registry.has_alias(command):
            command = self.registry.get_alias_argv(command)[0]

        corrected = [command] + argv[1:]
        any_corrected = False
        for i in range(1, len(argv)):
            values = self._source_values(command, i - 1)
            if not values:
                continue
            hit = fuzzy_match_string(argv[i], DEFAULT_MAX_EDIT_DISTANCE, values)
            if hit is not None:
                corrected[i] = hit
                any_corrected = True

        if not any_corrected:
            return

        args_str = " ".join(corrected[1:])
        self.print_line(
            self.format_tip(
                f'Did you mean "{self.format_name(command)} {args_str}"? (TAB to fill)'
            )
        )
        self.autocomplete_engine.push(" ".join(corrected).strip())

    # -----------------------
    # Entry line (UI hooks)
    # -----------------------

    def update_autocomplete(self) -> str:
        """Recompute candidates for the entry line; returns the hint."""
        return self.autocomplete_engine.update(self.entry_text)

    def on_entry_text_changed(self, text: str) -> str:
        self.entry_text = text
        self.autocomplete_engine.clear()
        if text:
            return self.update_autocomplete()
        self.cursor.reset()
        return ""

    def on_entry_text_submitted(self, text: str) -> None:
        """Queue the entry line and reset entry state."""
        self.history_search_open = False
        self.autocomplete_engine.clear()
        self.entry_text = ""
        self.submit_command(text)

    def _fill_entry(self, text: str) -> str:
        self.entry_text = text
        self.update_autocomplete()
        return text

    def autocomplete(self) -> str:
        """Tab: fill the entry with the next candidate."""
        match = self.autocomplete_engine.next()
        if match is None:
            return self.entry_text
        return self._fill_entry(match)

    def reverse_autocomplete(self) -> str:
        """Shift+Tab: fill the entry with the previous candidate."""
        match = self.autocomplete_engine.prev()
        if match is None:
            return self.entry_text
        return self._fill_entry(match)

    def history_up(self) -> str:
        text = self.cursor.prev()
        self.autocomplete_engine.clear()
        return self._fill_entry(text)

    def history_down(self) -> str:
        text = self.cursor.next()
        self.autocomplete_engine.clear()
        return self._fill_entry(text)

    def toggle_history_search(self) -> bool:
        self.history_search_open = not self.history_search_open
        return self.history_search_open

    def search_history(self, query: str) -> list[str]:
        """Fuzzy history search, best match first."""
        return self.history.fuzzy_match(query)


# -----------------------
# Process-wide instance
# -----------------------

_console: Console | None = None


def init_console(options: ConsoleOptions | None = None, **kwargs: Any) -> Console:
    """Create and initialize the application console."""
    global _console
    if _console is not None:
        raise ConsoleError("Console is already initialized")
    console = Console(options=options or ConsoleOptions(), **kwargs)
    _console = console
    console.initialize()
    return console


def get_console() -> Console:
    if _console is None:
        raise ConsoleError("Console is not initialized")
    return _console


def shutdown_console() -> None:
    """Clean up and drop the application console (no-op if absent)."""
    global _console
    if _console is None:
        return
    console = _console
    _console = None
    console.cleanup()
