# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Callback base classes.

CallbackBase holds the state shared by every callback kind: the ``many``
flag, binding constraints, and the accepted results. Results may be
synchronous values or Promises; ``result()`` returns a Promise whenever any
accepted result is still pending.

Trampoline wraps another callback and forwards dispatch to it; composition
and batching wrappers build on it.

Thread Safety:
    Result acceptance is guarded by a per-callback lock so asynchronous
    bindings may settle concurrently.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, Optional

from miruken.handle_result import HANDLED, NOT_HANDLED, HandleResult
from miruken.handler import dispatch_callback, dispatch_policy
from miruken.promise import Promise

if TYPE_CHECKING:
    from miruken.handler import Handler
    from miruken.policy import Policy

__all__ = [
    "CallbackBase",
    "Trampoline",
    "no_reset",
]


def no_reset() -> None:
    """Reset function returned by guards that approve without state."""


class CallbackBase(ABC):
    """Base class for callbacks dispatched through a policy.

    Args:
        many: Collect every result instead of only the first.
        constraints: Constraints a binding must satisfy to be selected.
    """

    def __init__(
        self,
        many: bool = False,
        constraints: Iterable[Any] = (),
    ) -> None:
        self._many = many
        self._constraints = tuple(constraints)
        self._results: list[Any] = []
        self._promises: list[Promise[Any]] = []
        self._lock = threading.RLock()

    @property
    @abstractmethod
    def policy(self) -> Policy:
        """Variance policy selecting the bindings for this callback."""

    @property
    @abstractmethod
    def key(self) -> Any:
        """Key matched against binding keys."""

    @property
    def source(self) -> Any:
        return None

    @property
    def many(self) -> bool:
        return self._many

    def constraints(self) -> tuple[Any, ...]:
        return self._constraints

    def can_infer(self) -> bool:
        return True

    def can_filter(self) -> bool:
        return True

    def can_batch(self) -> bool:
        return True

    def can_dispatch(
        self,
        handler: Any,
        binding: Any,
    ) -> Optional[Callable[[], None]]:
        """Approve ``binding`` returning a reset function, or None to deny."""
        return no_reset

    @property
    def result_count(self) -> int:
        with self._lock:
            return len(self._results) + len(self._promises)

    def results(self) -> list[Any]:
        """Snapshot of the synchronously accepted results."""
        with self._lock:
            return list(self._results)

    def result(self, many: Optional[bool] = None) -> Any:
        """Project the accepted results.

        Returns the first result (or None) unless ``many``, in which case a
        list is returned. Returns a Promise of the projection when any
        accepted result is pending.
        """
        many = self._many if many is None else many
        with self._lock:
            promises = list(self._promises)
        if promises:
            return Promise.all(*promises).then(lambda _: self._project(many))
        return self._project(many)

    def _project(self, many: bool) -> Any:
        with self._lock:
            if many:
                return list(self._results)
            return self._results[0] if self._results else None

    def add_result(self, result: Any) -> None:
        with self._lock:
            self._results.append(result)

    def receive_result(
        self,
        result: Any,
        strict: bool,
        composer: Optional[Handler],
    ) -> HandleResult:
        """Accept a binding output into this callback."""
        if result is None:
            return NOT_HANDLED
        if isinstance(result, Promise):
            promise = self._accept_promise(result).then(
                lambda value: self._accept_settled(value, strict, composer)
            )
            with self._lock:
                self._promises.append(promise)
            return HANDLED
        if self._accept(result, strict, composer):
            return HANDLED
        return NOT_HANDLED

    def _accept_settled(
        self,
        result: Any,
        strict: bool,
        composer: Optional[Handler],
    ) -> bool:
        if result is None:
            return False
        return self._accept(result, strict, composer)

    def _accept_promise(self, promise: Promise[Any]) -> Promise[Any]:
        return promise

    def _accept(
        self,
        result: Any,
        strict: bool,
        composer: Optional[Handler],
    ) -> bool:
        self.add_result(result)
        return True

    def dispatch(
        self,
        handler: Any,
        greedy: bool,
        composer: Optional[Handler],
    ) -> HandleResult:
        count = self.result_count
        return dispatch_policy(handler, self, greedy, composer).otherwise_handled(
            self.result_count > count
        )


class Trampoline:
    """Wraps a callback and forwards dispatch and capabilities to it."""

    def __init__(self, callback: Any) -> None:
        self._callback = callback

    @property
    def callback(self) -> Any:
        return self._callback

    @property
    def policy(self) -> Optional[Policy]:
        return getattr(self._callback, "policy", None)

    def can_infer(self) -> bool:
        check = getattr(self._callback, "can_infer", None)
        return check() if callable(check) else True

    def can_filter(self) -> bool:
        check = getattr(self._callback, "can_filter", None)
        return check() if callable(check) else True

    def can_batch(self) -> bool:
        check = getattr(self._callback, "can_batch", None)
        return check() if callable(check) else True

    def can_dispatch(
        self,
        handler: Any,
        binding: Any,
    ) -> Optional[Callable[[], None]]:
        guard = getattr(self._callback, "can_dispatch", None)
        if callable(guard):
            return guard(handler, binding)
        return no_reset

    def dispatch(
        self,
        handler: Any,
        greedy: bool,
        composer: Optional[Handler],
    ) -> HandleResult:
        return dispatch_callback(handler, self._callback, greedy, composer)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._callback!r})"
