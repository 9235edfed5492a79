# TinyConsole — In-Application Command Console
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Configuration and filesystem locations for TinyConsole.

Handles:
- Data root resolution (TINY_CONSOLE_DATA_HOME, ~/.local/share)
- Console file paths (history, log, crash log, scripts)
- Packaged YAML defaults loading (tiny_console.defaults/*.yaml)
- User config.yaml override, deep-merged over the defaults
- ConsoleOptions: typed view of the "console" section
- ANSI coloring constants for console output
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from importlib import resources as importlib_resources
from pathlib import Path
from typing import Any

import yaml


# -----------------------
# Output colors
# -----------------------

ANSI_COLORS: dict[str, str] = {
    "cyan": "\033[38;5;69;1m",
    "pink": "\033[38;5;169;1m",
    "magenta": "\033[38;5;126;1m",
    "yellow": "\033[38;5;226;1m",
    "orange": "\033[38;2;255;165;1;1m",
    "reset": "\033[0m",
    "dim": "\033[2m",
    "bold": "\033[1m",
    "italic": "\033[3m",
    "green": "\033[32m",
    "red": "\033[31m",
}

# Semantic role -> color name (overridable via console.colors)
DEFAULT_ROLE_COLORS: dict[str, str] = {
    "command": "green",
    "mention": "cyan",
    "error": "red",
    "warning": "yellow",
    "debug": "dim",
}

SCRIPT_EXTENSION = ".lcs"
HISTORY_FILE_NAME = "history.log"
LOG_FILE_NAME = "console.log"


# -----------------------
# Config model wrapper
# -----------------------


class YAMLConfig:
    """Simple config wrapper that implements ConfigModel protocol."""

    def __init__(self, config_dict: dict[str, Any]):
        self._config = config_dict

    @property
    def console(self) -> dict[str, Any]:
        cfg = self._config.get("console", {})
        return cfg if isinstance(cfg, dict) else {}

    @property
    def ui(self) -> dict[str, Any]:
        ui_cfg = self._config.get("ui", {})
        return ui_cfg if isinstance(ui_cfg, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def get_path(self, path: str, default: Any = None) -> Any:
        """
        Nested lookup using dot-separated path.
        Example: get_path("ui.theme.style", {}) -> dict style mapping
        """
        if not path:
            return default

        cur: Any = self._config
        for part in path.split("."):
            if not isinstance(cur, dict):
                return default
            if part not in cur:
                return default
            cur = cur[part]
        return cur


# -----------------------
# Data root + file helpers
# -----------------------


def get_data_root() -> Path:
    """Get the data root directory.

    Resolution order:
    1. TINY_CONSOLE_DATA_HOME environment variable (if set)
    2. ~/.local/share (default, XDG_DATA_HOME is ignored)
    """
    data_home = os.getenv("TINY_CONSOLE_DATA_HOME")
    if data_home:
        root = Path(data_home)
    else:
        root = Path.home() / ".local" / "share"

    root.mkdir(parents=True, exist_ok=True)
    return root


def console_dir(data_root: Path) -> Path:
    """<data_root>/tiny_console"""
    return data_root / "tiny_console"


def user_config_path(data_root: Path) -> Path:
    """<data_root>/tiny_console/config.yaml"""
    return console_dir(data_root) / "config.yaml"


def is_debug_build() -> bool:
    """Debug unless running with -O or TINY_CONSOLE_RELEASE=1."""
    if os.getenv("TINY_CONSOLE_RELEASE") == "1":
        return False
    return __debug__


# -----------------------
# Packaged defaults loading
# -----------------------


def _defaults_dir() -> Path:
    """Return the installed path to packaged defaults directory."""
    return Path(
        importlib_resources.files("tiny_console.defaults")
    )  # type: ignore[arg-type]


def _read_yaml_mapping(path: Path, label: str) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{label} {path.name} must load to a mapping/dict.")
    return data


def load_defaults_yaml(filename: str) -> dict[str, Any]:
    """
    Load a YAML file from tiny_console/defaults/.
    """
    defaults_dir = _defaults_dir()
    path = defaults_dir / filename
    if not path.exists():
        raise FileNotFoundError(
            f"Missing defaults YAML: {filename} "
            f"(looked in {defaults_dir})"
        )
    return _read_yaml_mapping(path, "Defaults YAML")


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base (override wins)."""
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = deep_merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def load_system_config(data_root: Path | None = None) -> YAMLConfig:
    """
    Load console.yaml from packaged defaults, merge the user's
    config.yaml over it when present, and return a YAMLConfig wrapper.
    """
    cfg = load_defaults_yaml("console.yaml")
    if data_root is not None:
        user_path = user_config_path(data_root)
        if user_path.exists():
            cfg = deep_merge(cfg, _read_yaml_mapping(user_path, "User config"))
    return YAMLConfig(cfg)


# -----------------------
# Typed options
# -----------------------


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    if value is None:
        return default
    return bool(value)


@dataclass
class ConsoleOptions:
    """Console behavior settings (the "console" config section)."""

    aliases: dict[str, str] = field(
        default_factory=lambda: {"exit": "quit", "source": "exec", "usage": "help"}
    )
    disable_in_release_build: bool = False
    print_to_stdout: bool = False
    commands_disabled_in_release: list[str] = field(default_factory=lambda: ["eval"])
    sparse_mode: bool = False

    greet_user: bool = True
    greeting_message: str = "Tiny Console"

    persist_history: bool = True
    history_lines: int = 1000

    autocomplete_use_history_with_matches: bool = True

    autoexec_script: str = "autoexec" + SCRIPT_EXTENSION
    autoexec_auto_create: bool = True

    colors: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ROLE_COLORS))

    # Filesystem locations (resolved by from_config / the CLI)
    data_dir: Path | None = None
    debug_build: bool = field(default_factory=is_debug_build)

    @property
    def history_file(self) -> Path | None:
        if self.data_dir is None:
            return None
        return self.data_dir / HISTORY_FILE_NAME

    @property
    def log_file(self) -> Path | None:
        if self.data_dir is None:
            return None
        return self.data_dir / LOG_FILE_NAME

    def resolve_script(self, name: str) -> Path | None:
        """Script path: absolute/existing as given, else under data_dir."""
        if not name:
            return None
        path = Path(name)
        if path.is_absolute() or path.exists() or self.data_dir is None:
            return path
        return self.data_dir / path

    @classmethod
    def from_config(
        cls, cfg: YAMLConfig, data_root: Path | None = None
    ) -> ConsoleOptions:
        section = cfg.console
        defaults = cls()

        aliases = section.get("aliases", defaults.aliases)
        if not isinstance(aliases, dict):
            aliases = defaults.aliases
        disabled = section.get(
            "commands_disabled_in_release", defaults.commands_disabled_in_release
        )
        if not isinstance(disabled, list):
            disabled = defaults.commands_disabled_in_release
        colors = dict(DEFAULT_ROLE_COLORS)
        user_colors = section.get("colors", {})
        if isinstance(user_colors, dict):
            colors.update({str(k): str(v) for k, v in user_colors.items()})

        try:
            history_lines = int(section.get("history_lines", defaults.history_lines))
        except (TypeError, ValueError):
            history_lines = defaults.history_lines

        return cls(
            aliases={str(k): str(v) for k, v in aliases.items()},
            disable_in_release_build=_as_bool(
                section.get("disable_in_release_build"),
                defaults.disable_in_release_build,
            ),
            print_to_stdout=_as_bool(
                section.get("print_to_stdout"), defaults.print_to_stdout
            ),
            commands_disabled_in_release=[str(n) for n in disabled],
            sparse_mode=_as_bool(section.get("sparse_mode"), defaults.sparse_mode),
            greet_user=_as_bool(section.get("greet_user"), defaults.greet_user),
            greeting_message=str(
                section.get("greeting_message", defaults.greeting_message) or ""
            ),
            persist_history=_as_bool(
                section.get("persist_history"), defaults.persist_history
            ),
            history_lines=history_lines,
            autocomplete_use_history_with_matches=_as_bool(
                section.get("autocomplete_use_history_with_matches"),
                defaults.autocomplete_use_history_with_matches,
            ),
            autoexec_script=str(
                section.get("autoexec_script", defaults.autoexec_script) or ""
            ),
            autoexec_auto_create=_as_bool(
                section.get("autoexec_auto_create"), defaults.autoexec_auto_create
            ),
            colors=colors,
            data_dir=console_dir(data_root) if data_root is not None else None,
        )
