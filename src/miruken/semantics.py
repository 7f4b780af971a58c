# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Call semantics: broadcast and best effort dispatch.

A handler built with ``call_with(flags)`` applies the flags to every
callback dispatched through it:

    - BROADCAST dispatches greedily
    - BEST_EFFORT reports unhandled and rejected callbacks as handled

``notify`` combines both and is the basis of publishing to a context tree.
Nested semantics merge outward: a flag specified by an inner builder is kept
unless an outer builder already specified it.

Example:
    >>> notify(handler).handle(OrderPlaced(42))
    Handled
"""

from __future__ import annotations

from typing import Any, Optional

from miruken.composition import (
    Builder,
    Composition,
    DecoratedHandler,
    initialize_composer,
)
from miruken.enums import EnumSemanticFlags
from miruken.errors import NotHandledError, RejectedError
from miruken.handle_result import HANDLED, NOT_HANDLED, HandleResult
from miruken.handler import Handler, SuppressDispatch

__all__ = [
    "CallSemantics",
    "CallbackSemantics",
    "best_effort",
    "broadcast",
    "call_with",
    "get_semantics",
    "notify",
]


class CallbackSemantics:
    """Callback collecting the semantics of a handler chain."""

    def __init__(
        self,
        options: EnumSemanticFlags = EnumSemanticFlags.NONE,
        specified: EnumSemanticFlags = EnumSemanticFlags.NONE,
    ) -> None:
        self.options = options
        self.specified = specified

    def can_infer(self) -> bool:
        return False

    def can_filter(self) -> bool:
        return False

    def has_option(self, options: EnumSemanticFlags) -> bool:
        return (self.options & options) == options

    def set_option(self, options: EnumSemanticFlags, enabled: bool) -> None:
        if enabled:
            self.options |= options
        else:
            self.options &= ~options
        self.specified |= options

    def is_specified(self, options: EnumSemanticFlags) -> bool:
        return (self.specified & options) == options

    def merge_into(self, semantics: CallbackSemantics) -> None:
        for option in (EnumSemanticFlags.BEST_EFFORT, EnumSemanticFlags.BROADCAST):
            if self.is_specified(option) and not semantics.is_specified(option):
                semantics.set_option(option, self.has_option(option))

    def dispatch(
        self,
        handler: Any,
        greedy: bool,
        composer: Optional[Handler],
    ) -> HandleResult:
        return NOT_HANDLED

    def __repr__(self) -> str:
        return f"CallbackSemantics({self.options!r})"


class CallSemantics(DecoratedHandler, SuppressDispatch):
    """Applies fixed call semantics to every callback."""

    def __init__(self, handler: Handler, semantics: CallbackSemantics) -> None:
        super().__init__(handler)
        self._semantics = semantics

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        if callback is None:
            return NOT_HANDLED
        composer = initialize_composer(composer, self)
        semantics = self._semantics
        if isinstance(callback, CallbackSemantics):
            semantics.merge_into(callback)
            if greedy:
                self._handler.handle(callback, greedy, composer)
            return HANDLED
        if isinstance(callback, Composition):
            if isinstance(callback.callback, CallbackSemantics):
                return NOT_HANDLED
            return self._handler.handle(callback, greedy, composer)
        if semantics.is_specified(EnumSemanticFlags.BROADCAST):
            greedy = semantics.has_option(EnumSemanticFlags.BROADCAST)
        if semantics.is_specified(EnumSemanticFlags.BEST_EFFORT) and (
            semantics.has_option(EnumSemanticFlags.BEST_EFFORT)
        ):
            result = self._handler.handle(callback, greedy, composer)
            if result.is_error and not isinstance(
                result.error, (NotHandledError, RejectedError)
            ):
                return result
            return HANDLED
        return self._handler.handle(callback, greedy, composer)


def call_with(flags: EnumSemanticFlags) -> Builder:
    """Builder applying ``flags`` to every callback."""

    def builder(handler: Handler) -> Handler:
        return CallSemantics(handler, CallbackSemantics(flags, flags))

    return builder


def get_semantics(handler: Handler) -> Optional[CallbackSemantics]:
    """Collect the call semantics applied by ``handler``, if any."""
    if handler is None:
        raise ValueError("handler cannot be None")
    semantics = CallbackSemantics()
    if handler.handle(semantics, True, handler).handled:
        return semantics
    return None


broadcast = call_with(EnumSemanticFlags.BROADCAST)
best_effort = call_with(EnumSemanticFlags.BEST_EFFORT)
notify = call_with(EnumSemanticFlags.NOTIFY)
