# TinyConsole — In-Application Command Console
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Built-in console commands.

Commands are bound methods of BuiltinCommands, so their parameter names,
annotations and defaults drive argument coercion and `help` output just
like any user-registered handler. The console keeps the instance alive;
the registry only holds weak references to the methods.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from simpleeval import SimpleEval

from .config import SCRIPT_EXTENSION
from .utils import split_lines

if TYPE_CHECKING:
    from .kernel import Console  # pragma: no cover

logger = logging.getLogger(__name__)


class _EvalNamespace(dict):
    """Eval locals: explicit inputs first, then attributes of a base object."""

    def __init__(self, inputs: dict[str, Any], base: Any = None):
        super().__init__(inputs)
        self._base = base

    def __missing__(self, key: str) -> Any:
        if self._base is not None and hasattr(self._base, key):
            return getattr(self._base, key)
        raise KeyError(key)


class BuiltinCommands:
    def __init__(self, console: Console):
        self.console = console

    def register(self) -> None:
        c = self.console
        c.register_command(self.cmd_alias, "alias", "add command alias")
        c.register_command(self.cmd_aliases, "aliases", "list all aliases")
        c.register_command(self.cmd_commands, "commands", "list all commands")
        c.register_command(self.cmd_eval, "eval", "evaluate an expression")
        c.register_command(self.cmd_exec, "exec", "execute commands from file")
        c.register_command(self.cmd_help, "help", "show command info")
        c.register_command(self.cmd_log, "log", "show recent log entries")
        c.register_command(self.cmd_quit, "quit", "exit the application")
        c.register_command(self.cmd_unalias, "unalias", "remove command alias")

        # Console methods that are part of the public API
        c.register_command(c.clear_console, "clear", "clear console")
        c.register_command(c.info, "echo", "display a line of text")
        c.register_command(
            c.erase_history,
            "erase_history",
            "erases current history and persisted history",
        )

        c.add_argument_autocomplete_source("help", 0, self._command_names)
        c.add_argument_autocomplete_source("unalias", 0, c.get_aliases)
        c.add_argument_autocomplete_source("exec", 0, self._script_names)

    # ---------- autocomplete sources ----------

    def _command_names(self) -> list[str]:
        return self.console.get_command_names(include_aliases=True)

    def _script_names(self) -> list[str]:
        data_dir = self.console.options.data_dir
        if data_dir is None or not data_dir.is_dir():
            return []
        return sorted(p.stem for p in data_dir.glob(f"*{SCRIPT_EXTENSION}"))

    # ---------- commands ----------

    def cmd_alias(self, alias: str, command: str) -> None:
        c = self.console
        c.print_line(f"Adding {c.format_name(alias)} => {command}")
        if not c.add_alias(alias, command):
            c.error(f"Failed to add alias: {alias}")

    def cmd_aliases(self) -> None:
        c = self.console
        for alias in c.get_aliases():
            argv = c.get_alias_argv(alias)
            cmd_name = argv[0]
            desc = c.get_command_description(cmd_name)
            if not desc:
                c.print_line(c.format_name(alias))
                continue
            rest = " ".join(argv[1:])
            target = f"{c.format_name(cmd_name)} {rest}".rstrip()
            c.print_line(
                f"{c.format_name(alias)} is alias of: {target} "
                f"{c.format_tip('// ' + desc)}"
            )

    def cmd_commands(self) -> None:
        c = self.console
        c.print_line("Available commands:")
        for name in c.get_command_names():
            desc = c.get_command_description(name)
            if desc:
                c.print_line(f"{c.format_name(name)} -- {desc}")
            else:
                c.print_line(c.format_name(name))

    def cmd_eval(self, expression: str) -> None:
        """Evaluate an expression against the registered eval inputs.

        Only eval inputs, attributes of the base instance and simpleeval's
        default functions resolve; builtins and private attributes do not.
        """
        c = self.console
        names = {k: v for k, v in c.eval_inputs.items() if k != "_base_instance"}
        namespace = _EvalNamespace(names, c.get_eval_base_instance())
        evaluator = SimpleEval(names=namespace)
        try:
            result = evaluator.eval(expression)
        except Exception as e:
            c.error(f"{type(e).__name__}: {e}")
            return
        if result is not None:
            c.print_line(str(result))

    def cmd_exec(self, file: str) -> None:
        c = self.console
        if not file.endswith(SCRIPT_EXTENSION):
            file += SCRIPT_EXTENSION
        path = Path(file)
        if not path.exists() and c.options.data_dir is not None:
            path = c.options.data_dir / file
        c.execute_script(path, silent=True)

    def cmd_help(self, command_name: str = "") -> None:
        c = self.console
        if not command_name:
            c.print_help_tips()
        else:
            c.usage(command_name)

    def cmd_log(self, num_lines: int = 10) -> None:
        c = self.console
        log_file = c.options.log_file
        if log_file is None or not log_file.exists():
            c.error(f"Can't open file: {log_file}")
            return
        try:
            lines = split_lines(log_file.read_text(encoding="utf-8"))
        except OSError as e:
            logger.error("Failed to read log file %s: %s", log_file, e)
            c.error(f"Can't open file: {log_file}")
            return
        if num_lines <= 0:
            return
        for line in lines[-num_lines:]:
            c.print_line(line)

    def cmd_quit(self) -> None:
        self.console.quit()

    def cmd_unalias(self, alias: str) -> None:
        c = self.console
        if c.remove_alias(alias):
            c.print_line("Alias removed.")
        else:
            c.warn("Alias not found.")
