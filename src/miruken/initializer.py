# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Post-construction initialization of provided handlers.

Methods decorated with ``@initialize`` run on every instance created by a
constructor binding, after ``__init__``. Their parameters are resolved from
the dispatch graph like any binding argument. The initializer filter runs at
the INITIALIZER stage, after lifestyles, so cached instances are initialized
exactly once.

Example:
    >>> class Repository:
    ...     @initialize
    ...     def connect(self, pool: ConnectionPool) -> None:
    ...         self.pool = pool
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from miruken.args import ArgPlan, build_plan
from miruken.enums import EnumFilterStage
from miruken.filter import Filter
from miruken.promise import Promise

if TYPE_CHECKING:
    from miruken.filter import Next
    from miruken.handler import HandleContext, Handler

__all__ = [
    "INITIALIZE_ATTR",
    "InitializerFilter",
    "InitializerProvider",
    "initialize",
    "initializer_methods",
]

INITIALIZE_ATTR = "__miruken_initialize__"


def initialize(method: Callable[..., Any]) -> Callable[..., Any]:
    """Mark ``method`` to run on instances built by constructor bindings."""
    setattr(method, INITIALIZE_ATTR, True)
    return method


def initializer_methods(cls: type) -> list[Callable[..., Any]]:
    """Return the ``@initialize`` methods of ``cls``, base classes first."""
    methods: dict[str, Callable[..., Any]] = {}
    for klass in reversed(cls.__mro__):
        for name, value in vars(klass).items():
            if callable(value) and getattr(value, INITIALIZE_ATTR, False):
                methods[name] = value
    return list(methods.values())


class InitializerFilter(Filter):
    """Calls the initialize methods on the constructed instance.

    Methods run one after another in the given order. An asynchronous
    method delays the next one until it completes.
    """

    order = EnumFilterStage.INITIALIZER

    def __init__(self, methods: Sequence[Callable[..., Any]]) -> None:
        self._methods = tuple(methods)
        self._plans: tuple[ArgPlan, ...] = tuple(build_plan(m, 1) for m in methods)

    def next(
        self,
        next_: Next,
        ctx: HandleContext,
        provider: Any,
    ) -> Any:
        outputs = next_.pipe()
        if isinstance(outputs, Promise):
            return outputs.then(lambda out: self._initialize(ctx, out, 0))
        return self._initialize(ctx, outputs, 0)

    def _initialize(self, ctx: HandleContext, outputs: list[Any], index: int) -> Any:
        if not outputs or outputs[0] is None:
            return outputs
        instance = outputs[0]
        while index < len(self._methods):
            method, plan = self._methods[index], self._plans[index]
            index += 1
            resolved = plan.resolve(ctx)
            if isinstance(resolved, Promise):
                return resolved.then(
                    lambda ak, m=method, i=index: self._resume(
                        ctx, outputs, i, m(instance, *ak[0], **ak[1])
                    )
                )
            args, kwargs = resolved
            value = method(instance, *args, **kwargs)
            if inspect.iscoroutine(value):
                value = Promise.from_coroutine(value)
            if isinstance(value, Promise):
                return value.then(
                    lambda _, i=index: self._initialize(ctx, outputs, i)
                )
        return outputs

    def _resume(
        self, ctx: HandleContext, outputs: list[Any], index: int, value: Any
    ) -> Any:
        if inspect.iscoroutine(value):
            value = Promise.from_coroutine(value)
        if isinstance(value, Promise):
            return value.then(lambda _: self._initialize(ctx, outputs, index))
        return self._initialize(ctx, outputs, index)

    def __repr__(self) -> str:
        names = ", ".join(m.__qualname__ for m in self._methods)
        return f"InitializerFilter({names})"


class InitializerProvider:
    """Required provider of the initializer filter for provides and creates."""

    required = True

    def __init__(self, methods: Sequence[Callable[..., Any]]) -> None:
        self._filters = (InitializerFilter(methods),)

    def applies_to(self, callback: Any) -> bool:
        # Import at runtime to avoid circular import
        from miruken.creates import Creates
        from miruken.provides import Provides

        return isinstance(callback, (Provides, Creates))

    def filters(
        self,
        binding: Any,
        callback: Any,
        composer: Handler,
    ) -> Sequence[Any]:
        return self._filters
