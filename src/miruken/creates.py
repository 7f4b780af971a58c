# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Creates: covariant factory dispatch.

Creates resolves like Provides but always asks a binding to build a new
instance. Only explicit ``@creates`` bindings answer, so classes opt in by
decorating ``__init__`` (or a factory method).

Example:
    >>> class Report:
    ...     @creates
    ...     def __init__(self, clock: Clock): ...
    >>> create(handler, Report)
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Optional

from miruken.binding import binding_decorator
from miruken.callback import CallbackBase
from miruken.errors import NotHandledError
from miruken.handle_result import HandleResult
from miruken.handler import Handler, dispatch_policy
from miruken.policy import CovariantPolicy, Policy

__all__ = [
    "Creates",
    "CreatesPolicy",
    "create",
    "create_all",
    "create_key",
    "creates",
]


class CreatesPolicy(CovariantPolicy):
    """Covariant policy for factory bindings."""


creates = binding_decorator(CreatesPolicy("creates"))


class Creates(CallbackBase):
    """Callback requesting a new instance of ``key``."""

    def __init__(
        self,
        key: Any,
        many: bool = False,
        constraints: Iterable[Any] = (),
    ) -> None:
        if key is None:
            raise ValueError("key cannot be None")
        super().__init__(many, constraints)
        self._key = key

    @property
    def policy(self) -> Policy:
        return creates.policy

    @property
    def key(self) -> Any:
        return self._key

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

    def __repr__(self) -> str:
        return f"creates => {self._key!r}"


def create_key(handler: Handler, key: Any, *constraints: Any) -> Any:
    """Create an instance of ``key``.

    Returns:
        The instance, or a Promise of it.

    Raises:
        NotHandledError: If no binding created an instance.
    """
    if handler is None:
        raise ValueError("handler cannot be None")
    request = Creates(key, constraints=constraints)
    result = handler.handle(request, False, None)
    if result.is_error:
        raise result.error
    if not result.handled:
        raise NotHandledError(request)
    return request.result(False)


def create(handler: Handler, key: Any, *constraints: Any) -> Any:
    """Create an instance of the type ``key``."""
    return create_key(handler, key, *constraints)


def create_all(handler: Handler, key: Any, *constraints: Any) -> Any:
    """Create instances of ``key`` from every matching binding."""
    if handler is None:
        raise ValueError("handler cannot be None")
    request = Creates(key, many=True, constraints=constraints)
    result = handler.handle(request, True, None)
    if result.is_error:
        raise result.error
    return request.result(True)
