# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Handles: contravariant command and event dispatch.

Any object dispatched to a handler that is not itself a callback is wrapped
in a Handles callback. Bindings declared with ``@handles`` receive the
message as their first parameter and match every message assignable to the
parameter's type.

Example:
    >>> class Orders:
    ...     @handles
    ...     def place(self, order: PlaceOrder) -> Confirmation:
    ...         return Confirmation(order.id)
    >>> execute(handler, PlaceOrder(42))
    Confirmation(id=42)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Optional

from miruken.binding import binding_decorator
from miruken.callback import CallbackBase, no_reset
from miruken.errors import NotHandledError
from miruken.handler import Handler
from miruken.keys import is_instance_of
from miruken.policy import ContravariantPolicy, Policy
from miruken.promise import Promise

__all__ = [
    "Handles",
    "command",
    "command_all",
    "execute",
    "execute_all",
    "handles",
]

handles = binding_decorator(ContravariantPolicy("handles"))


class Handles(CallbackBase):
    """Callback dispatching a message contravariantly.

    Args:
        callback: The message being handled.
        many: Collect every result.
        constraints: Constraints a binding must satisfy.
    """

    def __init__(
        self,
        callback: Any,
        many: bool = False,
        constraints: Iterable[Any] = (),
    ) -> None:
        if callback is None:
            raise ValueError("callback cannot be None")
        super().__init__(many, constraints)
        self._callback = callback

    @property
    def policy(self) -> Policy:
        return handles.policy

    @property
    def key(self) -> Any:
        return type(self._callback)

    @property
    def source(self) -> Any:
        return self._callback

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

    def __repr__(self) -> str:
        return f"Handles => {self._callback!r}"


def _dispatch(
    handler: Handler,
    callback: Any,
    many: bool,
    constraints: Iterable[Any],
) -> Handles:
    if handler is None:
        raise ValueError("handler cannot be None")
    handles_ = Handles(callback, many=many, constraints=constraints)
    result = handler.handle(handles_, many, None)
    if result.is_error:
        raise result.error
    if not result.handled:
        raise NotHandledError(callback)
    return handles_


def _void(result: Any) -> Optional[Promise[Any]]:
    if isinstance(result, Promise):
        return result.then(lambda _: None)
    return None


def command(
    handler: Handler,
    callback: Any,
    *constraints: Any,
) -> Optional[Promise[Any]]:
    """Dispatch ``callback`` to the first accepting binding.

    Returns:
        None, or a Promise settling when asynchronous handling completes.

    Raises:
        NotHandledError: If no binding accepted the callback.
    """
    return _void(_dispatch(handler, callback, False, constraints).result())


def command_all(
    handler: Handler,
    callback: Any,
    *constraints: Any,
) -> Optional[Promise[Any]]:
    """Dispatch ``callback`` to every accepting binding."""
    return _void(_dispatch(handler, callback, True, constraints).result())


def _coerce(value: Any, result_type: Any) -> Any:
    if result_type is not None and value is not None:
        if not is_instance_of(value, result_type):
            raise TypeError(f"expected {result_type!r} result, got {value!r}")
    return value


def execute(
    handler: Handler,
    callback: Any,
    *constraints: Any,
    result_type: Any = None,
) -> Any:
    """Dispatch ``callback`` and return the first result.

    Returns:
        The result, or a Promise of it when handling is asynchronous.

    Raises:
        NotHandledError: If no binding accepted the callback.
        TypeError: If the result is not a ``result_type``.
    """
    result = _dispatch(handler, callback, False, constraints).result()
    if isinstance(result, Promise):
        return result.then(lambda value: _coerce(value, result_type))
    return _coerce(result, result_type)


def execute_all(
    handler: Handler,
    callback: Any,
    *constraints: Any,
    result_type: Any = None,
) -> Any:
    """Dispatch ``callback`` to every accepting binding and collect the results."""

    def coerce_all(values: list[Any]) -> list[Any]:
        return [_coerce(v, result_type) for v in values]

    results = _dispatch(handler, callback, True, constraints).result(True)
    if isinstance(results, Promise):
        return results.then(coerce_all)
    return coerce_all(results)
