# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Context tree: scoped handler composites with a lifecycle.

A Context is a mutable handler composite that is also a node of a tree.
Callbacks not handled by a context (or dispatched greedily) continue to its
parent. Every context provides itself for the ``Context`` key.

Lifecycle:
    ACTIVE -> ENDING -> ENDED. ``end`` notifies ``context_ending`` observers,
    ends the children in reverse order, then becomes ENDED and notifies
    ``context_ended`` observers. ``unwind`` ends the children only.
    ``dispose`` (or leaving a ``with`` block) ends with reason DISPOSED.

Observers:
    Observers implement any of ``context_ending``, ``context_ended``,
    ``child_context_ending`` and ``child_context_ended``. ``observe``
    returns a subscription whose ``dispose`` unsubscribes. Observing a
    context that already started ending fires the missed notification
    immediately with reason ALREADY_ENDED.

Axes:
    ``handle_axis`` dispatches along a traversal axis. The axis builders
    (``self_axis``, ``child_axis``, ...) wrap a context so every dispatch
    uses the axis; ``publish`` notifies the context and all descendants.

Thread Safety:
    Children, observers and the state transition are guarded by a per
    context lock. Notifications run outside the lock on a snapshot.

Example:
    >>> with Context(Repository()) as root:
    ...     child = root.new_child().store(UserSession("alice"))
    ...     resolve(child, Repository)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any, Optional

from miruken.composition import (
    Builder,
    Composition,
    CompositionScope,
    DecoratedHandler,
    MutableHandlers,
    pipe,
)
from miruken.enums import EnumContextEndReason, EnumContextState, EnumTraversingAxis
from miruken.errors import ContextInactiveError, InvalidOperationError
from miruken.graph import traverse_axis
from miruken.handle_result import NOT_HANDLED, HandleResult
from miruken.handler import Handler, SuppressDispatch
from miruken.protocols import (
    ProtocolChildContextEndedObserver,
    ProtocolChildContextEndingObserver,
    ProtocolContextEndedObserver,
    ProtocolContextEndingObserver,
    ProtocolContextualChangedObserver,
    ProtocolContextualChangingObserver,
    ProtocolTraversing,
)
from miruken.provides import ProviderHandler, resolve
from miruken.semantics import notify

__all__ = [
    "Context",
    "ContextualBase",
    "ancestor_axis",
    "axis",
    "child_axis",
    "descendant_axis",
    "descendant_reverse_axis",
    "publish",
    "publish_from_root",
    "root_axis",
    "self_axis",
    "self_or_ancestor_axis",
    "self_or_child_axis",
    "self_or_descendant_axis",
    "self_or_descendant_reverse_axis",
    "self_or_sibling_axis",
    "self_sibling_or_ancestor_axis",
    "sibling_axis",
]

logger = logging.getLogger(__name__)

_ENDING = "ending"
_ENDED = "ended"
_CHILD_ENDING = "child_ending"
_CHILD_ENDED = "child_ended"
_CHANGING = "changing"
_CHANGED = "changed"


class _Subscription:
    """Removes an observer when disposed."""

    def __init__(self, unsubscribe: Optional[Callable[[], None]] = None) -> None:
        self._unsubscribe = unsubscribe

    def dispose(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()


class _Observers:
    """Observer lists by notification kind, replaced on write."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_kind: dict[str, tuple[Any, ...]] = {}

    def add(self, kinds: Sequence[str], observer: Any) -> None:
        with self._lock:
            for kind in kinds:
                self._by_kind[kind] = (*self._by_kind.get(kind, ()), observer)

    def remove(self, kinds: Sequence[str], observer: Any) -> None:
        with self._lock:
            for kind in kinds:
                current = list(self._by_kind.get(kind, ()))
                for index, existing in enumerate(current):
                    if existing is observer:
                        del current[index]
                        break
                self._by_kind[kind] = tuple(current)

    def get(self, kind: str) -> tuple[Any, ...]:
        return self._by_kind.get(kind, ())


class Context(MutableHandlers):
    """Handler composite forming a tree of scopes.

    Args:
        handlers: Initial handlers of the context.
    """

    def __init__(self, *handlers: Any) -> None:
        super().__init__(*handlers)
        self._parent: Optional[Context] = None
        self._state = EnumContextState.ACTIVE
        self._children: list[Context] = []
        self._observers = _Observers()
        self._state_lock = threading.RLock()
        self.add_handlers(ProviderHandler(self))

    @property
    def parent(self) -> Optional[Context]:
        return self._parent

    @property
    def children(self) -> list[Context]:
        with self._state_lock:
            return list(self._children)

    @property
    def has_children(self) -> bool:
        with self._state_lock:
            return bool(self._children)

    @property
    def state(self) -> EnumContextState:
        return self._state

    @property
    def root(self) -> Context:
        root = self
        while root._parent is not None:
            root = root._parent
        return root

    def _ensure_active(self) -> None:
        if self._state is not EnumContextState.ACTIVE:
            raise ContextInactiveError(self)

    def new_child(self) -> Context:
        """Create an active child context."""
        with self._state_lock:
            self._ensure_active()
            child = Context()
            child._parent = self
            self._children.append(child)
        return child

    def store(self, *values: Any) -> Context:
        """Provide ``values`` from this context."""
        self.add_handlers(*(ProviderHandler(v) for v in values if v is not None))
        return self

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        if callback is None:
            return NOT_HANDLED
        if composer is None:
            composer = CompositionScope(self)
        result = super().handle(callback, greedy, composer)
        parent = self._parent
        if parent is None:
            return result
        return result.otherwise_if(
            greedy, lambda _: parent.handle(callback, greedy, composer)
        )

    def handle_axis(
        self,
        axis: EnumTraversingAxis,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        """Dispatch ``callback`` to the contexts selected by ``axis``."""
        if callback is None:
            return NOT_HANDLED
        if composer is None:
            composer = CompositionScope(self)
        if axis == EnumTraversingAxis.SELF:
            return MutableHandlers.handle(self, callback, greedy, composer)
        result = NOT_HANDLED

        def visit(node: ProtocolTraversing) -> bool:
            nonlocal result
            if node is self:
                result = result.or_(
                    MutableHandlers.handle(self, callback, greedy, composer)
                )
            elif isinstance(node, Context):
                own = node.handle_axis(
                    EnumTraversingAxis.SELF, callback, greedy, composer
                )
                result = result.or_(own)
            return result.stop or (result.handled and not greedy)

        try:
            traverse_axis(self, axis, visit)
        except Exception as e:
            return result.with_error(e)
        return result

    def traverse(
        self,
        axis: EnumTraversingAxis,
        visitor: Callable[[ProtocolTraversing], bool],
    ) -> bool:
        return traverse_axis(self, axis, visitor)

    def observe(self, observer: Any) -> _Subscription:
        """Subscribe ``observer`` to the lifecycle notifications it implements.

        Returns:
            Subscription whose ``dispose`` removes the observer.
        """
        if observer is None:
            return _Subscription()
        kinds: list[str] = []
        with self._state_lock:
            state = self._state
            if isinstance(observer, ProtocolContextEndingObserver):
                if state is EnumContextState.ACTIVE:
                    kinds.append(_ENDING)
            if isinstance(observer, ProtocolContextEndedObserver):
                if state is not EnumContextState.ENDED:
                    kinds.append(_ENDED)
            if state is not EnumContextState.ENDED:
                if isinstance(observer, ProtocolChildContextEndingObserver):
                    kinds.append(_CHILD_ENDING)
                if isinstance(observer, ProtocolChildContextEndedObserver):
                    kinds.append(_CHILD_ENDED)
            self._observers.add(kinds, observer)
        reason = EnumContextEndReason.ALREADY_ENDED
        if state is not EnumContextState.ACTIVE:
            if isinstance(observer, ProtocolContextEndingObserver):
                observer.context_ending(self, reason)
            if state is EnumContextState.ENDED and isinstance(
                observer, ProtocolContextEndedObserver
            ):
                observer.context_ended(self, reason)
        if not kinds:
            return _Subscription()
        return _Subscription(lambda: self._observers.remove(kinds, observer))

    def unwind(self, reason: Optional[EnumContextEndReason] = None) -> Context:
        """End every child (newest first) leaving this context active."""
        if reason is None:
            reason = EnumContextEndReason.UNWINDED
        for child in reversed(self.children):
            child.end(reason)
        return self

    def unwind_to_root(self, reason: Optional[EnumContextEndReason] = None) -> Context:
        return self.root.unwind(reason)

    def end(self, reason: Optional[EnumContextEndReason] = None) -> None:
        """End this context and all of its descendants."""
        with self._state_lock:
            if self._state is not EnumContextState.ACTIVE:
                return
            self._state = EnumContextState.ENDING
        logger.debug("Ending context %r (%s)", self, reason)
        self._notify(_ENDING, reason)
        parent = self._parent
        if parent is not None:
            parent._notify_child(_CHILD_ENDING, self, reason)
        try:
            self.unwind()
        finally:
            with self._state_lock:
                self._state = EnumContextState.ENDED
            self._notify(_ENDED, reason)
            if parent is not None:
                parent._remove_child(self)
                parent._notify_child(_CHILD_ENDED, self, reason)

    def dispose(self) -> None:
        self.end(EnumContextEndReason.DISPOSED)

    def __enter__(self) -> Context:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.dispose()

    def _remove_child(self, child: Context) -> None:
        with self._state_lock:
            self._children = [c for c in self._children if c is not child]

    def _notify(self, kind: str, reason: Optional[EnumContextEndReason]) -> None:
        for observer in self._observers.get(kind):
            if kind == _ENDING:
                observer.context_ending(self, reason)
            else:
                observer.context_ended(self, reason)

    def _notify_child(
        self,
        kind: str,
        child: Context,
        reason: Optional[EnumContextEndReason],
    ) -> None:
        for observer in self._observers.get(kind):
            if kind == _CHILD_ENDING:
                observer.child_context_ending(child, reason)
            else:
                observer.child_context_ended(child, reason)

    def __repr__(self) -> str:
        return f"Context({id(self):#x}, {self._state})"


class ContextualBase:
    """Base for objects bound to a context.

    Assigning ``context`` moves the object into the new context's handlers
    (at the front) after notifying ``contextual_changing`` observers, which
    may raise to veto the change.
    """

    _context: Optional[Context] = None

    @property
    def _contextual_lock(self) -> threading.RLock:
        lock = self.__dict__.get("_context_lock")
        if lock is None:
            lock = self.__dict__.setdefault("_context_lock", threading.RLock())
        return lock

    @property
    def _contextual_observers(self) -> _Observers:
        observers = self.__dict__.get("_observers_by_kind")
        if observers is None:
            observers = self.__dict__.setdefault("_observers_by_kind", _Observers())
        return observers

    @property
    def context(self) -> Optional[Context]:
        return self._context

    @context.setter
    def context(self, context: Optional[Context]) -> None:
        self.change_context(context)

    def change_context(self, context: Optional[Context]) -> None:
        with self._contextual_lock:
            old = self._context
            if context is old:
                return
            for observer in self._contextual_observers.get(_CHANGING):
                observer.contextual_changing(self, old, context)
            if old is not None:
                old.remove_handlers(self)
            self._context = context
            if context is not None:
                context.insert_handlers(0, self)
            for observer in self._contextual_observers.get(_CHANGED):
                observer.contextual_changed(self, old, context)

    def end_context(self) -> None:
        context = self._context
        if context is not None:
            context.end()

    def observe(self, observer: Any) -> _Subscription:
        """Subscribe ``observer`` to context change notifications."""
        if observer is None:
            return _Subscription()
        kinds: list[str] = []
        if isinstance(observer, ProtocolContextualChangingObserver):
            kinds.append(_CHANGING)
        if isinstance(observer, ProtocolContextualChangedObserver):
            kinds.append(_CHANGED)
        if not kinds:
            return _Subscription()
        self._contextual_observers.add(kinds, observer)
        return _Subscription(
            lambda: self._contextual_observers.remove(kinds, observer)
        )


class _AxisScope(DecoratedHandler, SuppressDispatch):
    """Dispatches every callback along a fixed axis."""

    def __init__(self, context: Context, axis_: EnumTraversingAxis) -> None:
        super().__init__(context)
        self._context = context
        self._axis = axis_

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        if callback is None:
            return NOT_HANDLED
        if composer is None:
            composer = CompositionScope(self)
        if isinstance(callback, Composition):
            return self._context.handle(callback, greedy, composer)
        return self._context.handle_axis(self._axis, callback, greedy, composer)


def axis(axis_: EnumTraversingAxis) -> Builder:
    """Builder dispatching through a context along ``axis_``.

    Handlers that are not contexts are returned unchanged.
    """

    def builder(handler: Handler) -> Handler:
        if isinstance(handler, Context):
            return _AxisScope(handler, axis_)
        return handler

    return builder


self_axis = axis(EnumTraversingAxis.SELF)
root_axis = axis(EnumTraversingAxis.ROOT)
child_axis = axis(EnumTraversingAxis.CHILD)
sibling_axis = axis(EnumTraversingAxis.SIBLING)
ancestor_axis = axis(EnumTraversingAxis.ANCESTOR)
descendant_axis = axis(EnumTraversingAxis.DESCENDANT)
descendant_reverse_axis = axis(EnumTraversingAxis.DESCENDANT_REVERSE)
self_or_child_axis = axis(EnumTraversingAxis.SELF_OR_CHILD)
self_or_sibling_axis = axis(EnumTraversingAxis.SELF_OR_SIBLING)
self_or_ancestor_axis = axis(EnumTraversingAxis.SELF_OR_ANCESTOR)
self_or_descendant_axis = axis(EnumTraversingAxis.SELF_OR_DESCENDANT)
self_or_descendant_reverse_axis = axis(EnumTraversingAxis.SELF_OR_DESCENDANT_REVERSE)
self_sibling_or_ancestor_axis = axis(EnumTraversingAxis.SELF_SIBLING_OR_ANCESTOR)

publish = pipe(self_or_descendant_axis, notify)


def publish_from_root(handler: Handler) -> Handler:
    """Builder publishing from the root of the context ``handler`` resolves.

    Raises:
        InvalidOperationError: If no context can be resolved.
    """
    context = resolve(handler, Context)
    if not isinstance(context, Context):
        raise InvalidOperationError("root context could not be found")
    return publish(context.root)
