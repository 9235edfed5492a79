# TinyConsole — In-Application Command Console
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
TinyConsole core package.

An in-application command console: register handlers, type commands,
get typed arguments, aliases, autocomplete and fuzzy history search.
"""
from .kernel import Console as Console  # noqa: F401 (re-export)
from .kernel import get_console as get_console  # noqa: F401 (re-export)
from .kernel import init_console as init_console  # noqa: F401 (re-export)
from .kernel import shutdown_console as shutdown_console  # noqa: F401 (re-export)
