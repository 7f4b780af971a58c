# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Miruken - polymorphic callback dispatch.

Handlers declare bindings with policy decorators (``handles``, ``provides``,
``creates``, ``maps``, ``validates``, ``authorizes``). Callbacks are
dispatched to the first compatible binding, or to every compatible binding
when greedy. Handlers compose into chains, contexts and batches, and
bindings are wrapped by ordered filter pipelines.

Key Components:
    - Handler / Context: Dispatch targets and the context hierarchy
    - handles / provides / creates / maps: Binding decorators
    - Promise: Thread based asynchronous results
    - setup: Feature based construction of the root context
    - api: Messaging (send, post, publish), scheduling and routing

Subpackages ``miruken.api``, ``miruken.validates``, ``miruken.setup``,
``miruken.errors``, ``miruken.models`` and ``miruken.protocols`` export
their own members.
"""

from miruken.batch import batch, get_batch, no_batch
from miruken.composition import add_handlers, build_up, to_handler, with_handlers
from miruken.constraints import Metadata, Named, Qualifier
from miruken.context import Context
from miruken.creates import create, create_all, creates
from miruken.filter import Filter, Next, with_filters
from miruken.handle_result import (
    HANDLED,
    HANDLED_AND_STOP,
    NOT_HANDLED,
    NOT_HANDLED_AND_STOP,
    HandleResult,
)
from miruken.handler import Handler
from miruken.handles import Handles, command, command_all, execute, execute_all, handles
from miruken.lifestyle import Scoped, Single
from miruken.maps import Format, map_to, maps
from miruken.options import ModelOptions, get_options, with_options
from miruken.promise import CancellationToken, Deferred, Promise
from miruken.provides import For, Provides, provides, resolve, resolve_all
from miruken.semantics import best_effort, broadcast, notify
from miruken.setup import setup

__all__: list[str] = [
    "HANDLED",
    "HANDLED_AND_STOP",
    "NOT_HANDLED",
    "NOT_HANDLED_AND_STOP",
    "CancellationToken",
    "Context",
    "Deferred",
    "Filter",
    "For",
    "Format",
    "HandleResult",
    "Handler",
    "Handles",
    "Metadata",
    "ModelOptions",
    "Named",
    "Next",
    "Promise",
    "Provides",
    "Qualifier",
    "Scoped",
    "Single",
    "add_handlers",
    "batch",
    "best_effort",
    "broadcast",
    "build_up",
    "command",
    "command_all",
    "create",
    "create_all",
    "creates",
    "execute",
    "execute_all",
    "get_batch",
    "get_options",
    "handles",
    "map_to",
    "maps",
    "no_batch",
    "notify",
    "provides",
    "resolve",
    "resolve_all",
    "setup",
    "to_handler",
    "with_filters",
    "with_handlers",
    "with_options",
]
