# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Resolves: provide a handler, then dispatch a callback to it.

Inference uses Resolves to locate (or construct) an instance of a handler
type on demand and forward the original callback to every instance
resolved. Unless greedy, forwarding stops at the first instance that
handles the callback.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Optional

from miruken.handle_result import HANDLED, NOT_HANDLED, HandleResult
from miruken.handler import Handler, dispatch_callback
from miruken.promise import Promise
from miruken.provides import Provides

__all__ = ["Resolves"]


class Resolves(Provides):
    """Provides ``key`` and dispatches ``callback`` to each instance.

    Args:
        key: Handler type to resolve.
        callback: Callback forwarded to the resolved handlers.
        greedy: Forward to every resolved handler.
        parent: Provides callback being inferred, if any.
    """

    def __init__(
        self,
        key: Any,
        callback: Any,
        greedy: bool = False,
        parent: Optional[Provides] = None,
    ) -> None:
        super().__init__(key, many=True, parent=parent)
        self._callback = callback
        self._greedy = greedy
        self._succeeded = False

    @property
    def callback(self) -> Any:
        return self._callback

    @property
    def succeeded(self) -> bool:
        """True once a resolved handler handled the callback."""
        return self._succeeded

    def can_dispatch(
        self,
        handler: Any,
        binding: Any,
    ) -> Optional[Callable[[], None]]:
        outer = super().can_dispatch(handler, binding)
        if outer is None:
            return None
        guard = getattr(self._callback, "can_dispatch", None)
        if not callable(guard):
            return outer
        inner = guard(handler, binding)
        if inner is None:
            outer()
            return None

        def reset() -> None:
            inner()
            outer()

        return reset

    def receive_result(
        self,
        result: Any,
        strict: bool,
        composer: Optional[Handler],
    ) -> HandleResult:
        if result is None or isinstance(result, Promise):
            return super().receive_result(result, strict, composer)
        return self._forward(result, composer)

    def _accept(
        self,
        result: Any,
        strict: bool,
        composer: Optional[Handler],
    ) -> bool:
        forwarded = self._forward(result, composer)
        if forwarded.is_error:
            raise forwarded.error
        return forwarded.handled

    def _forward(self, handler: Any, composer: Optional[Handler]) -> HandleResult:
        if not self._greedy and self._succeeded:
            return HANDLED
        if handler is None:
            return NOT_HANDLED
        result = dispatch_callback(handler, self._callback, self._greedy, composer)
        self._succeeded = self._succeeded or result.handled
        return result

    def __repr__(self) -> str:
        return f"resolves {self.key!r} => {self._callback!r}"
