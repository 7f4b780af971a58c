# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Handler composition: adapters, composites, builders and the composition scope.

Builders are plain callables ``Handler -> Handler`` that decorate a handler.
They combine with ``compose`` (the first builder ends up outermost) and
``pipe`` (the last builder ends up outermost); ``build_up`` applies a list of
builders in order.

Composite handlers never dispatch to themselves (SuppressDispatch); they
forward callbacks to their children and combine the results.

Composition Scope:
    Handlers that receive no composer create a CompositionScope around
    themselves. Callbacks dispatched through the scope are wrapped in a
    Composition so nested handlers can recognize composed dispatches.

Example:
    >>> handler = build_up(HandlerAdapter(Repository()), with_handlers(Audit()))
    >>> handler.handle(SaveOrder(42))
    Handled
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any, Optional

from miruken.callback import Trampoline
from miruken.handle_result import NOT_HANDLED, HandleResult
from miruken.handler import Handler, SuppressDispatch, dispatch_callback

__all__ = [
    "Builder",
    "Composition",
    "CompositionScope",
    "DecoratedHandler",
    "FilterHandler",
    "HandlerAdapter",
    "MutableHandlers",
    "WithHandler",
    "WithHandlers",
    "add_handlers",
    "build_up",
    "compose",
    "initialize_composer",
    "pipe",
    "to_handler",
    "with_filter",
    "with_handlers",
]

logger = logging.getLogger(__name__)

Builder = Callable[[Handler], Handler]

FilterFunc = Callable[[Any, Handler, Callable[[], HandleResult]], HandleResult]


def build_up(handler: Handler, *builders: Optional[Builder]) -> Handler:
    """Apply ``builders`` to ``handler`` in order."""
    for builder in builders:
        if builder is not None:
            handler = builder(handler)
    return handler


def _identity(handler: Handler) -> Handler:
    return handler


def _compose2(outer: Builder, inner: Builder) -> Builder:
    def builder(handler: Handler) -> Handler:
        return outer(inner(handler))

    return builder


def compose(*builders: Builder) -> Builder:
    """Combine builders so the first one wraps the result of the rest."""
    if not builders:
        return _identity
    combined = builders[0]
    for builder in builders[1:]:
        combined = _compose2(combined, builder)
    return combined


def pipe(*builders: Builder) -> Builder:
    """Combine builders so they apply left to right."""
    if not builders:
        return _identity
    combined = builders[-1]
    for builder in reversed(builders[:-1]):
        combined = _compose2(combined, builder)
    return combined


class Composition(Trampoline):
    """Marks a callback as dispatched through a composer."""


def initialize_composer(composer: Optional[Handler], receiver: Handler) -> Handler:
    """Return ``composer`` or a CompositionScope around ``receiver``."""
    if composer is None:
        return CompositionScope(receiver)
    return composer


class DecoratedHandler(Handler):
    """Handler forwarding to an inner handler; base for handler decorators."""

    def __init__(self, handler: Handler) -> None:
        if handler is None:
            raise ValueError("handler cannot be None")
        self._handler = handler

    @property
    def decoratee(self) -> Handler:
        return self._handler

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        if callback is None:
            return NOT_HANDLED
        composer = initialize_composer(composer, self)
        return self._handler.handle(callback, greedy, composer)


class CompositionScope(DecoratedHandler, SuppressDispatch):
    """Wraps callbacks in a Composition and supplies itself as composer."""

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        if callback is None:
            return NOT_HANDLED
        if composer is None:
            composer = self
        if not isinstance(callback, Composition):
            callback = Composition(callback)
        return self._handler.handle(callback, greedy, composer)


class HandlerAdapter(Handler, SuppressDispatch):
    """Adapts any object into a Handler dispatching through its descriptor."""

    def __init__(self, handler: Any) -> None:
        if handler is None:
            raise ValueError("handler cannot be None")
        self._target = handler

    @property
    def target(self) -> Any:
        return self._target

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        if callback is None:
            return NOT_HANDLED
        composer = initialize_composer(composer, self)
        return dispatch_callback(self._target, callback, greedy, composer)

    def __repr__(self) -> str:
        return f"HandlerAdapter({self._target!r})"


def to_handler(value: Any) -> Handler:
    """Return ``value`` if it is a Handler, otherwise adapt it."""
    if isinstance(value, Handler):
        return value
    return HandlerAdapter(value)


class WithHandler(DecoratedHandler, SuppressDispatch):
    """Tries ``handler`` first and falls back to the parent."""

    def __init__(self, parent: Handler, handler: Handler) -> None:
        super().__init__(parent)
        self._child = handler

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        if callback is None:
            return NOT_HANDLED
        composer = initialize_composer(composer, self)
        return self._child.handle(callback, greedy, composer).otherwise_if(
            greedy,
            lambda _: self._handler.handle(callback, greedy, composer),
        )


class WithHandlers(DecoratedHandler, SuppressDispatch):
    """Tries each child in order and falls back to the parent."""

    def __init__(self, parent: Handler, handlers: Iterable[Handler]) -> None:
        super().__init__(parent)
        self._children = tuple(handlers)

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        if callback is None:
            return NOT_HANDLED
        composer = initialize_composer(composer, self)
        result = NOT_HANDLED
        for child in self._children:
            if result.stop or (result.handled and not greedy):
                return result
            result = result.or_(child.handle(callback, greedy, composer))
        return result.otherwise_if(
            greedy,
            lambda _: self._handler.handle(callback, greedy, composer),
        )


def _register_specs(parent: Handler, handlers: Iterable[Any]) -> None:
    # Import at runtime to avoid circular import
    from miruken.descriptor import current_descriptor_factory

    factory = None
    for handler in handlers:
        if isinstance(handler, (Handler, SuppressDispatch)):
            continue
        if factory is None:
            factory = current_descriptor_factory(parent)
        factory.register_spec(handler)


def add_handlers(parent: Handler, *handlers: Any) -> Handler:
    """Compose ``handlers`` in front of ``parent``.

    Plain objects are registered with the descriptor factory (raising
    HandlerDescriptorError when invalid) and adapted into handlers.
    """
    if parent is None:
        raise ValueError("cannot add handlers to a None parent")
    handlers = tuple(h for h in handlers if h is not None)
    _register_specs(parent, handlers)
    adapted = [to_handler(h) for h in handlers]
    if len(adapted) == 1:
        return WithHandler(parent, adapted[0])
    if len(adapted) > 1:
        return WithHandlers(parent, adapted)
    return parent


def with_handlers(*handlers: Any) -> Builder:
    def builder(handler: Handler) -> Handler:
        return add_handlers(handler, *handlers)

    return builder


class MutableHandlers(Handler, SuppressDispatch):
    """Composite whose children may change while dispatching.

    Mutations take the lock; dispatch iterates a snapshot.
    """

    def __init__(self, *handlers: Any) -> None:
        self._lock = threading.Lock()
        self._handlers: list[Handler] = [to_handler(h) for h in handlers]

    @property
    def handlers(self) -> list[Handler]:
        with self._lock:
            return list(self._handlers)

    def targets(self) -> list[Any]:
        """Snapshot of the children with adapters unwrapped."""
        return [
            h.target if isinstance(h, HandlerAdapter) else h for h in self.handlers
        ]

    def add_handlers(self, *handlers: Any) -> MutableHandlers:
        return self.insert_handlers(-1, *handlers)

    def insert_handlers(self, index: int, *handlers: Any) -> MutableHandlers:
        adapted = [to_handler(h) for h in handlers if h is not None]
        with self._lock:
            if index < 0 or index >= len(self._handlers):
                self._handlers.extend(adapted)
            else:
                self._handlers[index:index] = adapted
        return self

    def remove_handlers(self, *handlers: Any) -> MutableHandlers:
        with self._lock:
            self._handlers = [
                h
                for h in self._handlers
                if h not in handlers
                and not (isinstance(h, HandlerAdapter) and h.target in handlers)
            ]
        return self

    def replace_handlers(self, *handlers: Any) -> MutableHandlers:
        adapted = [to_handler(h) for h in handlers if h is not None]
        with self._lock:
            self._handlers = adapted
        return self

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        if callback is None:
            return NOT_HANDLED
        composer = initialize_composer(composer, self)
        result = NOT_HANDLED
        for handler in self.handlers:
            result = result.or_(handler.handle(callback, greedy, composer))
            if result.stop or (result.handled and not greedy):
                break
        return result


class FilterHandler(DecoratedHandler, SuppressDispatch):
    """Intercepts callbacks with ``filter(callback, composer, proceed)``.

    Composed callbacks bypass the filter unless ``reentrant``.
    """

    def __init__(
        self,
        handler: Handler,
        filter_func: FilterFunc,
        reentrant: bool = False,
    ) -> None:
        super().__init__(handler)
        self._filter = filter_func
        self._reentrant = reentrant

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        if callback is None:
            return NOT_HANDLED
        composer = initialize_composer(composer, self)
        if not self._reentrant and isinstance(callback, Composition):
            return self._handler.handle(callback, greedy, composer)
        return self._filter(
            callback,
            composer,
            lambda: self._handler.handle(callback, greedy, composer),
        )


def with_filter(filter_func: FilterFunc, reentrant: bool = False) -> Builder:
    """Builder installing a FilterHandler."""
    if filter_func is None:
        raise ValueError("filter cannot be None")

    def builder(handler: Handler) -> Handler:
        return FilterHandler(handler, filter_func, reentrant)

    return builder
