# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Argument plans resolving binding parameters from the dispatch graph.

Each binding owns an ArgPlan built once from its signature. Parameters are
declared with ordinary annotations, refined through ``typing.Annotated``
markers:

    ``Annotated[T, Optional]`` / ``Optional[T]`` / a default value
        Unresolved dependencies become None (or the default).
    ``Annotated[list[T], Strict]``
        Resolve the key ``list[T]`` itself instead of every ``T``.
    ``Annotated[T, Named("x")]``, ``Annotated[T, Metadata(...)]``, qualifiers
        Constrain the dependency request.
    ``Annotated[T, Of("key")]``
        Resolve an opaque key instead of the type.
    ``Annotated[T, FromOptions]``
        Collect options of type ``T`` from the composer.
    ``Annotated[T, Lazy]``
        Receive a zero-argument callable resolving at call time.
    ``Promise[T]``
        Receive the (possibly pending) promise instead of waiting for it.

Parameters typed HandleContext or Handler receive the dispatch context or the
composer; parameters typed as the callback class receive the callback.

Pending dependencies make the call deferred: every argument resolves first
and the call runs once all promises fulfil.
"""

from __future__ import annotations

import inspect
import logging
import typing
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from miruken.constraints import Constraint
from miruken.errors import MethodBindingError, UnresolvedArgError
from miruken.handler import HandleContext, Handler
from miruken.keys import (
    element_type,
    is_optional,
    resolve_type_hints,
    strip_deferred,
    unwrap_annotated,
)
from miruken.promise import Promise

__all__ = [
    "ArgPlan",
    "ArgResolver",
    "CallbackArg",
    "ComposerArg",
    "DependencyArg",
    "FromOptions",
    "HandleContextArg",
    "Lazy",
    "LazyArg",
    "Of",
    "OptionsArg",
    "RawCallbackArg",
    "Strict",
    "ZeroArg",
    "build_plan",
    "infer_arg",
]

logger = logging.getLogger(__name__)

_EMPTY = inspect.Parameter.empty


class Strict:
    """Marker resolving collection keys without expanding elements."""


class FromOptions:
    """Marker binding a parameter to options collected from the composer."""


class Lazy:
    """Marker deferring dependency resolution until the callable is invoked."""


@dataclass(frozen=True)
class Of:
    """Marker resolving an opaque key instead of the annotated type."""

    key: Any


def _has_marker(metadata: Sequence[Any], marker: type) -> bool:
    return any(m is marker or isinstance(m, marker) for m in metadata)


class ArgResolver(ABC):
    """Resolves one parameter from the HandleContext."""

    is_async: bool = False

    @abstractmethod
    def resolve(self, ctx: HandleContext) -> Any:
        """Return the argument value or a Promise of it."""


class ZeroArg(ArgResolver):
    def resolve(self, ctx: HandleContext) -> Any:
        return None


class _DefaultArg(ArgResolver):
    def __init__(self, default: Any) -> None:
        self.default = default

    def resolve(self, ctx: HandleContext) -> Any:
        return self.default


class HandleContextArg(ArgResolver):
    def resolve(self, ctx: HandleContext) -> Any:
        return ctx


class ComposerArg(ArgResolver):
    def resolve(self, ctx: HandleContext) -> Any:
        return ctx.composer


class RawCallbackArg(ArgResolver):
    """Supplies the callback itself."""

    def resolve(self, ctx: HandleContext) -> Any:
        return ctx.callback


class CallbackArg(ArgResolver):
    """Supplies the callback's source, falling back to the callback."""

    def __init__(self, expected: Any = Any) -> None:
        self.expected = expected

    def resolve(self, ctx: HandleContext) -> Any:
        source = getattr(ctx.callback, "source", None)
        if source is not None:
            return source
        return ctx.callback


class OptionsArg(ArgResolver):
    def __init__(self, name: str, options_type: type, optional: bool) -> None:
        self.name = name
        self.options_type = options_type
        self.optional = optional

    def resolve(self, ctx: HandleContext) -> Any:
        # Import at runtime to avoid circular import
        from miruken.options import get_options

        options = get_options(ctx.composer, self.options_type)
        if options is None and not self.optional:
            raise UnresolvedArgError(
                self.name,
                LookupError(f"options {self.options_type.__name__} not found"),
            )
        return options


class DependencyArg(ArgResolver):
    """Resolves a dependency through a Provides callback on the composer.

    Args:
        name: Parameter name, reported on failure.
        key: Key to resolve (a type or an opaque key).
        many: Resolve every match into a list.
        optional: Tolerate an unresolved dependency.
        default: Value used when unresolved (implies optional).
        constraints: Constraints carried by the Provides callback.
    """

    def __init__(
        self,
        name: str,
        key: Any,
        many: bool = False,
        optional: bool = False,
        default: Any = _EMPTY,
        constraints: Sequence[Constraint] = (),
    ) -> None:
        self.name = name
        self.key = key
        self.many = many
        self.optional = optional or default is not _EMPTY
        self.default = None if default is _EMPTY else default
        self.constraints = tuple(constraints)

    def resolve(self, ctx: HandleContext) -> Any:
        callback = ctx.callback
        if isinstance(self.key, type) and not self.constraints:
            if isinstance(callback, self.key):
                return callback
            source = getattr(callback, "source", None)
            if source is not None and type(source) is self.key:
                return source

        # Import at runtime to avoid circular import
        from miruken.provides import Provides

        parent = callback if isinstance(callback, Provides) else None
        provides = Provides(
            self.key,
            many=self.many,
            parent=parent,
            constraints=self.constraints,
        )
        try:
            result = ctx.composer.handle(provides, self.many, None)
        except Exception as e:
            raise UnresolvedArgError(self.name, e) from e
        if result.is_error:
            raise UnresolvedArgError(self.name, result.error) from result.error
        value = provides.result(self.many)
        if isinstance(value, Promise):
            return value.then(self._complete)
        return self._complete(value)

    def _complete(self, value: Any) -> Any:
        if self.many:
            return list(value or ())
        if value is None:
            if self.optional:
                return self.default
            raise UnresolvedArgError(
                self.name,
                LookupError(f"unable to resolve dependency {self.key!r}"),
            )
        return value

    def __repr__(self) -> str:
        return f"DependencyArg({self.name}: {self.key!r})"


class LazyArg(ArgResolver):
    """Supplies a callable resolving the wrapped argument when invoked."""

    def __init__(self, inner: ArgResolver) -> None:
        self.inner = inner

    def resolve(self, ctx: HandleContext) -> Any:
        return lambda: self.inner.resolve(ctx)


class _AsyncArg(ArgResolver):
    """Lifts the wrapped argument into a Promise."""

    is_async = True

    def __init__(self, inner: ArgResolver) -> None:
        self.inner = inner

    def resolve(self, ctx: HandleContext) -> Any:
        try:
            return Promise.lift(self.inner.resolve(ctx))
        except UnresolvedArgError as e:
            return Promise.reject(e)


def infer_arg(
    name: str,
    annotation: Any,
    default: Any = _EMPTY,
    callback_types: Sequence[type] = (),
) -> ArgResolver:
    """Build the resolver for one parameter from its annotation."""
    tp, metadata = unwrap_annotated(annotation)
    optional, tp = is_optional(tp)
    if typing.Optional in metadata:
        optional = True
    tp, wants_promise = strip_deferred(tp)
    tp, nested = unwrap_annotated(tp)
    metadata = (*metadata, *nested)

    resolver: ArgResolver
    if tp is _EMPTY:
        if default is _EMPTY:
            raise TypeError("dependency requires an annotation or a default")
        resolver = _DefaultArg(default)
    elif tp is HandleContext:
        resolver = HandleContextArg()
    elif tp is Handler:
        resolver = ComposerArg()
    elif _has_marker(metadata, FromOptions):
        if not isinstance(tp, type):
            raise TypeError(f"FromOptions requires a class, got {tp!r}")
        resolver = OptionsArg(name, tp, optional or default is not _EMPTY)
    elif isinstance(tp, type) and any(issubclass(tp, c) for c in callback_types):
        resolver = RawCallbackArg()
    else:
        constraints = [
            m() if isinstance(m, type) else m
            for m in metadata
            if isinstance(m, Constraint)
            or (isinstance(m, type) and issubclass(m, Constraint))
        ]
        of = next((m for m in metadata if isinstance(m, Of)), None)
        key: Any = tp
        many = False
        if of is not None:
            key = of.key
        elif not _has_marker(metadata, Strict):
            element = element_type(key)
            if element is not None:
                key, many = element, True
        resolver = DependencyArg(
            name,
            key,
            many=many,
            optional=optional,
            default=default,
            constraints=constraints,
        )

    if _has_marker(metadata, Lazy):
        resolver = LazyArg(resolver)
    if wants_promise:
        resolver = _AsyncArg(resolver)
    return resolver


@dataclass(frozen=True)
class _PlannedArg:
    name: str
    keyword: bool
    resolver: ArgResolver


@dataclass(frozen=True)
class ArgPlan:
    """Immutable list of resolvers for a callable's parameters."""

    args: tuple[_PlannedArg, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.args)

    def resolve(self, ctx: HandleContext) -> Any:
        """Resolve ``(args, kwargs)``, or a Promise of them if any is pending."""
        values: list[Any] = []
        pending: list[tuple[int, Promise[Any]]] = []
        for index, planned in enumerate(self.args):
            value = planned.resolver.resolve(ctx)
            if isinstance(value, Promise) and not planned.resolver.is_async:
                pending.append((index, value))
            values.append(value)
        if not pending:
            return self._split(values)

        def assign(settled: list[Any]) -> tuple[list[Any], dict[str, Any]]:
            for (index, _), value in zip(pending, settled):
                values[index] = value
            return self._split(values)

        return Promise.all(*(p for _, p in pending)).then(assign)

    def _split(self, values: list[Any]) -> tuple[list[Any], dict[str, Any]]:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for planned, value in zip(self.args, values):
            if planned.keyword:
                kwargs[planned.name] = value
            else:
                args.append(value)
        return args, kwargs


def build_plan(
    fn: Callable[..., Any],
    skip: int = 0,
    first: Optional[ArgResolver] = None,
    callback_types: Sequence[type] = (),
) -> ArgPlan:
    """Build the ArgPlan for ``fn``.

    Args:
        fn: Function to plan.
        skip: Leading parameters supplied by the caller (e.g. ``self``).
        first: Resolver for the first planned parameter, if fixed.
        callback_types: Classes whose instances are passed as the callback.

    Raises:
        MethodBindingError: If a parameter cannot be planned.
    """
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError) as e:
        raise MethodBindingError(fn, f"no signature: {e}") from e
    hints = resolve_type_hints(fn)
    planned: list[_PlannedArg] = []
    errors: list[Exception] = []
    parameters = list(signature.parameters.values())[skip:]
    for index, param in enumerate(parameters):
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        keyword = param.kind is param.KEYWORD_ONLY
        if index == 0 and first is not None:
            planned.append(_PlannedArg(param.name, keyword, first))
            continue
        annotation = hints.get(param.name, param.annotation)
        try:
            resolver = infer_arg(
                param.name, annotation, param.default, callback_types
            )
        except TypeError as e:
            errors.append(MethodBindingError(fn, f"parameter '{param.name}': {e}"))
            continue
        planned.append(_PlannedArg(param.name, keyword, resolver))
    if errors:
        if len(errors) == 1:
            raise errors[0]
        raise MethodBindingError(
            fn, "; ".join(str(e) for e in errors)
        ) from ExceptionGroup("invalid parameters", errors)
    return ArgPlan(tuple(planned))
