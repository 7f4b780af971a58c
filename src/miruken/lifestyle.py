# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Lifestyles controlling the caching of provided instances.

A lifestyle is both a required filter provider and the filter it provides.
It applies to Provides callbacks only and runs at the LIFESTYLE stage, just
before the initializer.

Lifestyles:
    Single: One instance per requested key for the lifetime of the binding.
        A failed or empty construction is not cached and is retried.
    Scoped: One instance per requested key and context. ``rooted`` maps
        every context to its root. Instances are evicted and disposed when
        their context ends. A scoped instance is never injected into a
        parent binding with a longer lifestyle.

Example:
    >>> class Cache:
    ...     @provides(Single)
    ...     def __init__(self): ...
    >>> class UnitOfWork:
    ...     @provides(Scoped)
    ...     def __init__(self): ...
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional

from miruken.constraints import Qualifier
from miruken.enums import EnumFilterStage
from miruken.errors import ContextInactiveError, InvalidOperationError
from miruken.filter import Filter
from miruken.promise import Promise
from miruken.protocols import ProtocolDisposable

if TYPE_CHECKING:
    from miruken.context import Context
    from miruken.enums import EnumContextEndReason
    from miruken.filter import Next
    from miruken.handler import HandleContext, Handler

__all__ = [
    "Lifestyle",
    "Scoped",
    "ScopedQualifier",
    "Single",
]

logger = logging.getLogger(__name__)


class Lifestyle(Filter):
    """Base class for lifestyles."""

    order = EnumFilterStage.LIFESTYLE
    required = True

    def applies_to(self, callback: Any) -> bool:
        # Import at runtime to avoid circular import
        from miruken.provides import Provides

        return isinstance(callback, Provides)

    def filters(
        self,
        binding: Any,
        callback: Any,
        composer: Handler,
    ) -> Sequence[Any]:
        return (self,)


class _Entry:
    __slots__ = ("lock", "outputs", "resolved", "unsubscribe")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.outputs: Any = None
        self.resolved: Optional[list[Any]] = None
        self.unsubscribe: Any = None


def _cacheable(outputs: Any) -> bool:
    return bool(outputs) and outputs[0] is not None


def _dispose(instance: Any) -> None:
    if isinstance(instance, ProtocolDisposable):
        instance.dispose()


class Single(Lifestyle):
    """Caches one instance per requested key."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[Any, _Entry] = {}

    def _entry(self, key: Any) -> _Entry:
        entry = self._entries.get(key)
        if entry is None:
            with self._lock:
                entry = self._entries.setdefault(key, _Entry())
        return entry

    def next(
        self,
        next_: Next,
        ctx: HandleContext,
        provider: Any,
    ) -> Any:
        entry = self._entry(ctx.callback.key)
        with entry.lock:
            if entry.outputs is not None:
                return entry.outputs
            outputs = next_.pipe()
            if isinstance(outputs, Promise):
                entry.outputs = _cache_pending(entry, outputs)
            elif _cacheable(outputs):
                entry.outputs = outputs
            return entry.outputs if entry.outputs is not None else outputs

    def __repr__(self) -> str:
        return "Single()"


def _cache_pending(
    entry: _Entry,
    outputs: Promise[Any],
    settled: Any = None,
) -> Promise[Any]:
    """Cache ``outputs`` in ``entry`` until it fails or yields nothing."""
    pending: Promise[Any]

    def reset() -> None:
        with entry.lock:
            if entry.outputs is pending:
                entry.outputs = None

    def fulfilled(out: list[Any]) -> list[Any]:
        if not _cacheable(out):
            reset()
        elif settled is not None:
            settled(out)
        return out

    def rejected(error: BaseException) -> Any:
        reset()
        raise error

    pending = outputs.then(fulfilled).catch(rejected)
    return pending


class ScopedQualifier(Qualifier):
    """Qualifies bindings with a scoped lifestyle."""


class _ScopeEviction:
    """Evicts a scoped cache when its context ends."""

    def __init__(self, scoped: Scoped) -> None:
        self._scoped = scoped

    def context_ended(self, context: Context, reason: EnumContextEndReason) -> None:
        self._scoped._evict(context)


class Scoped(Lifestyle):
    """Caches one instance per requested key and context.

    Args:
        rooted: Cache in the root context instead of the current one.
    """

    def __init__(self, rooted: bool = False) -> None:
        self.rooted = rooted
        self.constraints = (ScopedQualifier(),)
        self._lock = threading.Lock()
        self._cache: dict[Context, dict[Any, _Entry]] = {}

    def next(
        self,
        next_: Next,
        ctx: HandleContext,
        provider: Any,
    ) -> Any:
        # Import at runtime to avoid circular import
        from miruken.context import Context
        from miruken.enums import EnumContextState
        from miruken.provides import resolve

        callback = ctx.callback
        key = callback.key
        if key is Context:
            return []
        if not self._compatible_with_parent(callback):
            return []
        context = resolve(ctx.composer, Context)
        if context is None:
            return next_.abort()
        if context.state is not EnumContextState.ACTIVE:
            raise ContextInactiveError(context)
        if self.rooted:
            context = context.root

        entry = self._entry(context, key)
        with entry.lock:
            if entry.outputs is not None:
                return entry.outputs
            outputs = next_.pipe()
            if isinstance(outputs, Promise):
                entry.outputs = _cache_pending(
                    entry, outputs, lambda out: self._manage(context, entry, out)
                )
            elif _cacheable(outputs):
                entry.outputs = outputs
                self._manage(context, entry, outputs)
            return entry.outputs if entry.outputs is not None else outputs

    def _entry(self, context: Context, key: Any) -> _Entry:
        with self._lock:
            entries = self._cache.get(context)
            if entries is None:
                entries = self._cache[context] = {}
                context.observe(_ScopeEviction(self))
            entry = entries.get(key)
            if entry is None:
                entry = entries[key] = _Entry()
            return entry

    def _manage(self, context: Context, entry: _Entry, outputs: list[Any]) -> None:
        # Import at runtime to avoid circular import
        from miruken.context import ContextualBase

        entry.resolved = outputs
        instance = outputs[0]
        if isinstance(instance, ContextualBase):
            instance.context = context
            entry.unsubscribe = instance.observe(self)

    def _evict(self, context: Context) -> None:
        with self._lock:
            entries = self._cache.pop(context, None)
        if not entries:
            return
        logger.debug("Evicting %d scoped instance(s) from %r", len(entries), context)
        for entry in entries.values():
            self._release(entry)

    def _release(self, entry: _Entry) -> None:
        outputs, resolved = entry.outputs, entry.resolved
        entry.outputs = entry.resolved = None
        if resolved:
            self._release_instance(entry, resolved)
        elif isinstance(outputs, Promise):
            # Still being created, dispose once it arrives
            outputs.then(lambda out: self._release_instance(entry, out))

    def _release_instance(self, entry: _Entry, outputs: list[Any]) -> None:
        # Import at runtime to avoid circular import
        from miruken.context import ContextualBase

        entry.outputs = entry.resolved = None
        if not _cacheable(outputs):
            return
        instance = outputs[0]
        if entry.unsubscribe is not None:
            entry.unsubscribe.dispose()
            entry.unsubscribe = None
        _dispose(instance)
        if isinstance(instance, ContextualBase):
            instance.context = None

    def contextual_changing(
        self,
        contextual: Any,
        old_context: Optional[Context],
        new_context: Optional[Context],
    ) -> None:
        if old_context is new_context:
            return
        if new_context is not None:
            raise InvalidOperationError("managed instances cannot change context")
        with self._lock:
            entries = self._cache.get(old_context, {})
            for key, entry in list(entries.items()):
                outputs = entry.resolved
                if outputs and outputs[0] is contextual:
                    del entries[key]
                    break
            else:
                return
        if entry.unsubscribe is not None:
            entry.unsubscribe.dispose()
            entry.unsubscribe = None
        entry.outputs = entry.resolved = None
        _dispose(contextual)

    def _compatible_with_parent(self, callback: Any) -> bool:
        parent = getattr(callback, "parent", None)
        binding = getattr(parent, "binding", None) if parent is not None else None
        if binding is None:
            return True
        for provider in binding.filters:
            if not isinstance(provider, Lifestyle):
                continue
            if not isinstance(provider, Scoped):
                return False
            if provider.rooted and not self.rooted:
                return False
        return True

    def __repr__(self) -> str:
        return f"Scoped(rooted={self.rooted})"
