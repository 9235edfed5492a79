# TinyConsole — In-Application Command Console
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Command registry: names -> handlers, descriptions, parameter descriptors,
per-argument autocomplete sources, and the alias table.

Handlers are borrowed, not owned: bound methods are kept through
weakref.WeakMethod so registering a command never extends the lifetime of
the object that implements it.
"""

from __future__ import annotations

import functools
import inspect
import logging
import typing
import weakref
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from .utils import is_valid_command_sequence, parse_command_line
from .values import ArgType, arg_type_for_annotation

logger = logging.getLogger(__name__)

MAX_AUTOCOMPLETE_ARGUMENT = 4

_MISSING = object()


@dataclass(frozen=True)
class Param:
    """One declared handler parameter."""

    name: str
    type: ArgType = ArgType.ANY
    default: Any = _MISSING

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING


@dataclass(frozen=True)
class CommandDescriptor:
    """Explicit handler signature.

    Attributes:
        params: All declared positional parameters, in order
        bound: Leading parameters already supplied (e.g. functools.partial)
        variadic: Handler accepts any number of extra positional args
    """

    params: tuple[Param, ...] = ()
    bound: int = 0
    variadic: bool = False

    @property
    def remaining(self) -> tuple[Param, ...]:
        """Parameters the user still has to supply."""
        return self.params[self.bound:]

    @property
    def required_count(self) -> int:
        return sum(1 for p in self.params if not p.has_default)

    @classmethod
    def of(cls, *params: Param | tuple[str, ArgType] | str) -> CommandDescriptor:
        """Shorthand: CommandDescriptor.of(("name", ArgType.STRING), "other")."""
        out: list[Param] = []
        for p in params:
            if isinstance(p, Param):
                out.append(p)
            elif isinstance(p, tuple):
                out.append(Param(*p))
            else:
                out.append(Param(str(p)))
        return cls(params=tuple(out))


def descriptor_from_handler(handler: Callable[..., Any]) -> CommandDescriptor | None:
    """Derive a descriptor from a handler's signature and annotations.

    Returns None when the signature cannot be inspected (some builtins),
    in which case the kernel passes tokens through as raw strings.
    """
    bound = 0
    target = handler
    if isinstance(handler, functools.partial):
        bound = len(handler.args)
        target = handler.func

    try:
        sig = inspect.signature(target)
    except (TypeError, ValueError):
        return None

    hint_target = getattr(target, "__func__", target)
    try:
        hints = typing.get_type_hints(hint_target)
    except Exception:
        hints = {}

    params: list[Param] = []
    variadic = False
    for p in sig.parameters.values():
        if p.kind is inspect.Parameter.VAR_POSITIONAL:
            variadic = True
            continue
        if p.kind not in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            continue
        arg_type = arg_type_for_annotation(hints.get(p.name, p.annotation))
        default = _MISSING if p.default is inspect.Parameter.empty else p.default
        params.append(Param(p.name, arg_type, default))

    return CommandDescriptor(params=tuple(params), bound=bound, variadic=variadic)


class CommandEntry:
    """A registered command. The handler is held weakly when possible."""

    def __init__(
        self,
        name: str,
        handler: Callable[..., Any],
        description: str = "",
        descriptor: CommandDescriptor | None = None,
    ):
        self.name = name
        self.description = description
        self.descriptor = descriptor
        if inspect.ismethod(handler):
            self._ref: Callable[[], Callable[..., Any] | None] = weakref.WeakMethod(handler)
        else:
            self._ref = lambda: handler

    @property
    def handler(self) -> Callable[..., Any] | None:
        """The live handler, or None if its owner was collected."""
        return self._ref()


@dataclass
class CommandRegistry:
    """Commands, aliases and argument autocomplete sources."""

    commands: dict[str, CommandEntry] = field(default_factory=dict)
    aliases: dict[str, list[str]] = field(default_factory=dict)
    autocomplete_sources: dict[tuple[str, int], Callable[[], Iterable[str]]] = field(
        default_factory=dict
    )

    # Names skipped at registration outside debug builds
    disabled_in_release: set[str] = field(default_factory=set)
    debug_build: bool = True

    # -----------------------
    # Commands
    # -----------------------

    def register_command(
        self,
        handler: Callable[..., Any],
        name: str = "",
        description: str = "",
        params: CommandDescriptor | Iterable[Param] | None = None,
    ) -> bool:
        """Register a command handler.

        Args:
            handler: Callable invoked with coerced arguments
            name: Command name; derived from handler.__name__ if empty
            description: One-line description for help output
            params: Explicit descriptor (or Param list); derived from the
                handler signature when omitted

        Returns:
            True if the command was added
        """
        if name and not is_valid_command_sequence(name):
            logger.error(
                "Failed to register command: %s. Name must use valid identifiers.",
                name,
            )
            return False

        if not name:
            target = handler.func if isinstance(handler, functools.partial) else handler
            method = getattr(target, "__name__", "")
            if not method or method == "<lambda>":
                logger.error(
                    "Failed to register command: no method name and no name provided"
                )
                return False
            name = method.lstrip("_")
            if name.startswith("cmd_"):
                name = name[len("cmd_"):]
            if not is_valid_command_sequence(name):
                logger.error(
                    "Failed to register command: %s. Name must use valid identifiers.",
                    name,
                )
                return False

        if not self.debug_build and name in self.disabled_in_release:
            logger.debug("Command disabled outside debug builds: %s", name)
            return False

        if name in self.commands:
            logger.error("Command already registered: %s", name)
            return False

        if name in self.aliases:
            logger.error(
                "Failed to register command: %s. Name is already an alias.", name
            )
            return False

        if params is None:
            descriptor = descriptor_from_handler(handler)
        elif isinstance(params, CommandDescriptor):
            descriptor = params
        else:
            descriptor = CommandDescriptor(params=tuple(params))

        self.commands[name] = CommandEntry(name, handler, description, descriptor)
        logger.debug("Registered command: %s", name)
        return True

    def unregister_command(self, name: str) -> bool:
        if name not in self.commands:
            logger.error("Unregister failed - command not found: %s", name)
            return False
        del self.commands[name]
        for i in range(MAX_AUTOCOMPLETE_ARGUMENT + 1):
            self.autocomplete_sources.pop((name, i), None)
        return True

    def has_command(self, name: str) -> bool:
        return name in self.commands

    def get_entry(self, name: str) -> CommandEntry | None:
        return self.commands.get(name)

    def get_command_description(self, name: str) -> str:
        entry = self.commands.get(name)
        return entry.description if entry else ""

    def get_command_names(self, include_aliases: bool = False) -> list[str]:
        names = list(self.commands)
        if include_aliases:
            names.extend(self.aliases)
        return sorted(names)

    def is_known(self, name: str) -> bool:
        """Command or alias name."""
        return name in self.commands or name in self.aliases

    # -----------------------
    # Aliases
    # -----------------------

    def add_alias(self, alias: str, command_to_run: str) -> bool:
        """Map alias to a command line (tokenized now, expanded at run time)."""
        if not is_valid_command_sequence(alias):
            logger.error("Failed to add alias: %s. Name must use valid identifiers.", alias)
            return False
        if alias in self.commands:
            logger.error("Alias or command already registered: %s", alias)
            return False
        argv = parse_command_line(command_to_run)
        if not argv:
            logger.error("Failed to add alias: %s. Target command is empty.", alias)
            return False
        self.aliases[alias] = argv
        return True

    def remove_alias(self, alias: str) -> bool:
        return self.aliases.pop(alias, None) is not None

    def has_alias(self, alias: str) -> bool:
        return alias in self.aliases

    def get_aliases(self) -> list[str]:
        return sorted(self.aliases)

    def get_alias_argv(self, alias: str) -> list[str]:
        """Target argv of alias; [alias] itself if not an alias."""
        argv = self.aliases.get(alias)
        return list(argv) if argv is not None else [alias]

    # -----------------------
    # Argument autocomplete sources
    # -----------------------

    def add_argument_autocomplete_source(
        self, command: str, argument: int, source: Callable[[], Iterable[str]]
    ) -> bool:
        if not callable(source):
            logger.error("Can't add autocomplete source: callable is not valid")
            return False
        if command not in self.commands:
            logger.error(
                "Can't add autocomplete source: command doesn't exist: %s", command
            )
            return False
        if argument < 0 or argument > MAX_AUTOCOMPLETE_ARGUMENT:
            logger.error("Can't add autocomplete source: argument index out of bounds")
            return False
        self.autocomplete_sources[(command, argument)] = source
        return True

    def get_autocomplete_values(self, command: str, argument: int) -> list[str] | None:
        """Call the source for (command, argument); None if there is none."""
        source = self.autocomplete_sources.get((command, argument))
        if source is None:
            return None
        values = source()
        if values is None:
            return []
        return [str(v) for v in values]

    def clear(self) -> None:
        self.commands.clear()
        self.aliases.clear()
        self.autocomplete_sources.clear()
