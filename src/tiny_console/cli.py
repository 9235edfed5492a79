# TinyConsole — In-Application Command Console
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
TinyConsole CLI entry point and REPL loop.

Design:
- CLI owns process startup, config loading and logging setup.
- Console is the session engine (options injected).
- UI is terminal-friendly PromptSession (keeps scrollback + copy/select).
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Callable
from pathlib import Path

from . import config
from .interfaces import ConsoleFrontEnd
from .kernel import Console, init_console, shutdown_console
from .ui import PromptToolkitUI

logger = logging.getLogger(__name__)


def setup_logging(log_file: Path | None) -> None:
    """Send package logs to console.log (append)."""
    if log_file is None:
        return
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root = logging.getLogger("tiny_console")
    root.setLevel(logging.INFO)
    root.addHandler(handler)


def run_repl(
    console: Console,
    ui: ConsoleFrontEnd | None = None,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> None:
    """Run the standard TinyConsole REPL loop."""
    while console.running:
        try:
            if ui is not None:
                line = ui.read()
            else:
                line = input_fn("> ")

            console.on_entry_text_submitted(line or "")
            console.process_frame()

        except (KeyboardInterrupt, EOFError):
            msg = "\nBye!\n"
            if ui is not None:
                ui.write(msg)
            else:
                output_fn(msg)
            break


def join_args(args: list[str]) -> str:
    """Rebuild a command line from shell arguments.

    Arguments containing spaces are wrapped in double quotes so they stay
    one token; vector literals and already-quoted arguments are kept as is.
    """
    parts = []
    for arg in args:
        if " " in arg and not arg.startswith(('"', "(")):
            arg = f'"{arg}"'
        parts.append(arg)
    return " ".join(parts)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for TinyConsole CLI."""
    args = sys.argv[1:] if argv is None else argv

    data_root = config.get_data_root()
    cfg = config.load_system_config(data_root)
    options = config.ConsoleOptions.from_config(cfg, data_root)
    setup_logging(options.log_file)

    # One-shot mode: run the arguments as a single command line and exit
    if args:
        options.greet_user = False
        console = init_console(options, output_fn=print)
        try:
            console.execute_command(join_args(args))
        finally:
            shutdown_console()
        return

    # If user explicitly disables prompt_toolkit UI:
    if os.environ.get("TINY_CONSOLE_LEGACY_UI") == "1":
        console = init_console(options, output_fn=print)
        try:
            run_repl(console)
        finally:
            shutdown_console()
        return

    # Default: PromptToolkitUI (keeps terminal scrollback/copy/select)
    ui = PromptToolkitUI(config=cfg)
    console = init_console(options, output_fn=ui.write_line, clear_fn=ui.clear)
    ui.console = console
    if not console.enabled:
        logger.info("Console disabled in release build")
        shutdown_console()
        return

    try:
        run_repl(console, ui=ui)
    finally:
        shutdown_console()
