# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Type inspection helpers shared by policies, bindings and argument plans.

Binding keys are either types (classes, parameterized generics, unions,
``typing.Any``) or opaque hashable tags such as strings. Only types
participate in variance; opaque keys match by equality.
"""

from __future__ import annotations

import collections.abc
import inspect
import types
import typing
from collections.abc import Callable
from typing import Annotated, Any, Optional, Union, get_args, get_origin

from miruken.promise import Promise

__all__ = [
    "element_type",
    "is_assignable",
    "is_instance_of",
    "is_optional",
    "is_type_key",
    "key_name",
    "resolve_type_hints",
    "strip_deferred",
    "unwrap_annotated",
]

_SEQUENCE_ORIGINS = (
    list,
    tuple,
    collections.abc.Sequence,
    collections.abc.Iterable,
    collections.abc.Collection,
)

_DEFERRED_ORIGINS = (
    Promise,
    collections.abc.Awaitable,
    collections.abc.Coroutine,
)


def is_type_key(key: object) -> bool:
    """Return True if ``key`` participates in variance."""
    return (
        key is Any
        or isinstance(key, type)
        or get_origin(key) is not None
    )


def key_name(key: object) -> str:
    if isinstance(key, type):
        return key.__qualname__
    return repr(key)


def unwrap_annotated(tp: Any) -> tuple[Any, tuple[Any, ...]]:
    """Split ``Annotated[T, *meta]`` into ``(T, meta)``."""
    if get_origin(tp) is Annotated:
        base, *metadata = get_args(tp)
        inner, nested = unwrap_annotated(base)
        return inner, (*nested, *metadata)
    return tp, ()


def is_optional(tp: Any) -> tuple[bool, Any]:
    """Return ``(True, T)`` for ``Optional[T]`` / ``T | None``."""
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        args = get_args(tp)
        remaining = [arg for arg in args if arg is not type(None)]
        if len(remaining) < len(args):
            if len(remaining) == 1:
                return True, remaining[0]
            return True, Union[tuple(remaining)]
    return False, tp


def strip_deferred(tp: Any) -> tuple[Any, bool]:
    """Strip a ``Promise[T]`` or coroutine wrapper returning ``(T, is_async)``."""
    if tp is Promise:
        return Any, True
    origin = get_origin(tp)
    if origin in _DEFERRED_ORIGINS:
        args = get_args(tp)
        if not args:
            return Any, True
        return args[-1], True
    return tp, False


def element_type(tp: Any) -> Optional[Any]:
    """Return ``T`` for ``list[T]``, ``Sequence[T]`` or ``tuple[T, ...]``."""
    if tp in (list, tuple):
        return Any
    origin = get_origin(tp)
    if origin in _SEQUENCE_ORIGINS:
        args = get_args(tp)
        if origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return args[0]
            return None
        return args[0] if args else Any
    return None


def resolve_type_hints(fn: Callable[..., Any]) -> dict[str, Any]:
    """Resolve annotations of ``fn`` keeping ``Annotated`` metadata.

    Falls back to the raw annotations when forward references cannot be
    evaluated.
    """
    target = fn.__init__ if inspect.isclass(fn) else fn
    try:
        return typing.get_type_hints(target, include_extras=True)
    except (NameError, TypeError, AttributeError):
        return dict(getattr(target, "__annotations__", {}))


def is_assignable(target: Any, source: Any) -> bool:
    """Return True if a value typed ``source`` can be used as ``target``."""
    if target is Any or target == source:
        return True
    if source is Any:
        return False
    target = unwrap_annotated(target)[0]
    source = unwrap_annotated(source)[0]

    origin = get_origin(target)
    if origin is Union or origin is types.UnionType:
        return any(is_assignable(arg, source) for arg in get_args(target))

    source_origin = get_origin(source)
    if source_origin is Union or source_origin is types.UnionType:
        return all(is_assignable(target, arg) for arg in get_args(source))

    if origin is not None:
        if source_origin is None:
            return _is_subclass(source, origin) and not get_args(target)
        if not _is_subclass(source_origin, origin):
            return False
        target_args, source_args = get_args(target), get_args(source)
        if len(target_args) != len(source_args):
            return not target_args
        return all(
            t is Any or t == s or is_assignable(t, s)
            for t, s in zip(target_args, source_args)
        )

    if source_origin is not None:
        return _is_subclass(source_origin, target)

    if isinstance(target, type) and isinstance(source, type):
        return _is_subclass(source, target)
    return False


def is_instance_of(value: object, tp: Any) -> bool:
    """Return True if ``value`` is an instance of the type key ``tp``."""
    if tp is Any:
        return True
    tp = unwrap_annotated(tp)[0]
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        return any(is_instance_of(value, arg) for arg in get_args(tp))
    if origin is not None:
        tp = origin
    if not isinstance(tp, type):
        return False
    try:
        return isinstance(value, tp)
    except TypeError:
        return False


def _is_subclass(source: Any, target: Any) -> bool:
    if not isinstance(source, type) or not isinstance(target, type):
        return False
    try:
        return issubclass(source, target)
    except TypeError:
        return False
