# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Variance policies matching callback keys against binding keys.

A policy decides which bindings answer a callback, in what order they are
visited, and how a binding's outputs are accepted.

Policies:
    ContravariantPolicy: A binding keyed ``B`` answers callback key ``A``
        when ``A`` is assignable to ``B`` (commands and events).
    CovariantPolicy: A binding keyed ``B`` answers callback key ``A`` when
        ``B`` is assignable to ``A``; ``Any`` bindings answer every request
        (dependency resolution and creation).
    BivariantPolicy: DiKey(in_, out) keys, contravariant on ``in_`` and
        covariant on ``out`` (mapping).

Keys that are not types (strings and other hashable tags) only match by
equality.

Output Acceptance:
    Contravariant: no output is handled; one output may be the result, an
    exception or a HandleResult; two outputs carry the result followed by an
    exception or a HandleResult.
    Covariant: a None (or missing) result is not handled; otherwise as
    contravariant.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional, get_args, get_origin

from miruken.args import CallbackArg, RawCallbackArg, build_plan
from miruken.binding import (
    Binding,
    BuiltSpec,
    ConstructorBinding,
    FuncBinding,
    MethodBinding,
)
from miruken.callback import CallbackBase
from miruken.errors import MethodBindingError
from miruken.filter import FilteredScope
from miruken.handle_result import HANDLED, NOT_HANDLED, HandleResult
from miruken.keys import (
    element_type,
    is_assignable,
    is_type_key,
    resolve_type_hints,
    strip_deferred,
    unwrap_annotated,
)

__all__ = [
    "BivariantPolicy",
    "ContravariantPolicy",
    "CovariantPolicy",
    "DiKey",
    "Policy",
]

logger = logging.getLogger(__name__)

_EMPTY = inspect.Parameter.empty


@dataclass(frozen=True)
class DiKey:
    """Bivariant key with an input and an output part."""

    in_: Any = Any
    out: Any = Any


def _is_side_output_type(tp: Any) -> bool:
    if not isinstance(tp, type):
        return False
    if issubclass(tp, (HandleResult, BaseException)):
        return True
    return callable(getattr(tp, "apply", None))


def _output_info(fn: Callable[..., Any]) -> tuple[Any, bool, bool]:
    """Return ``(logical output type, is_async, spread)`` for ``fn``.

    The logical output type is None when ``fn`` declares no output.
    """
    hints = resolve_type_hints(fn)
    is_async = inspect.iscoroutinefunction(fn)
    output = hints.get("return", _EMPTY)
    if output is _EMPTY or output is None or output is type(None):
        return None, is_async, False
    output, deferred = strip_deferred(unwrap_annotated(output)[0])
    output = unwrap_annotated(output)[0]
    spread = False
    if get_origin(output) is tuple:
        args = get_args(output)
        if (
            len(args) > 1
            and args[1] is not Ellipsis
            and all(_is_side_output_type(a) for a in args[1:])
        ):
            output, spread = args[0], True
    if output is None or output is type(None):
        output = None
    return output, is_async or deferred, spread


def _first_param(fn: Callable[..., Any], skip: int) -> Optional[inspect.Parameter]:
    params = list(inspect.signature(fn).parameters.values())[skip:]
    return params[0] if params else None


class Policy(FilteredScope, ABC):
    """Base class for variance policies."""

    strict: bool = False

    def __init__(self, name: Optional[str] = None) -> None:
        super().__init__()
        self._name = name or type(self).__name__

    @abstractmethod
    def variant_key(self, key: Any) -> tuple[bool, bool]:
        """Return ``(variant, unknown)`` for a binding or callback key."""

    @abstractmethod
    def matches_key(self, key: Any, other: Any, strict: bool) -> tuple[bool, bool]:
        """Return ``(matches, exact)`` for binding ``key`` and callback ``other``."""

    def less(self, binding: Binding, other: Binding) -> bool:
        """Return True if ``binding`` is visited before ``other``."""
        if binding is None or other is None:
            raise ValueError("bindings cannot be None")
        matches, exact = self.matches_key(other.key, binding.key, other.strict)
        return matches and not exact

    @abstractmethod
    def accept_results(self, results: list[Any]) -> tuple[Any, HandleResult]:
        """Split binding outputs into ``(result, HandleResult)``."""

    @abstractmethod
    def new_method_binding(
        self,
        method: Callable[..., Any],
        spec: BuiltSpec,
        key: Any,
    ) -> Binding:
        ...

    @abstractmethod
    def new_func_binding(
        self,
        func: Callable[..., Any],
        spec: BuiltSpec,
        key: Any,
    ) -> Binding:
        ...

    def new_constructor_binding(
        self,
        handler_type: type,
        constructor: Optional[Callable[..., Any]],
        spec: BuiltSpec,
        key: Any = None,
    ) -> Binding:
        raise MethodBindingError(
            handler_type, f"{self} does not support constructor bindings"
        )

    def __repr__(self) -> str:
        return self._name


class ContravariantPolicy(Policy):
    """Policy for related input values."""

    def variant_key(self, key: Any) -> tuple[bool, bool]:
        if is_type_key(key):
            return True, key is Any
        return False, False

    def matches_key(self, key: Any, other: Any, strict: bool) -> tuple[bool, bool]:
        if key == other:
            return True, True
        if strict:
            return False, False
        if is_type_key(key) and is_type_key(other):
            return is_assignable(key, other), False
        return False, False

    def accept_results(self, results: list[Any]) -> tuple[Any, HandleResult]:
        if not results:
            return None, HANDLED
        first = results[0]
        if len(results) == 1:
            if isinstance(first, BaseException):
                return None, NOT_HANDLED.with_error(first)
            if isinstance(first, HandleResult):
                return None, first
            return first, HANDLED
        if len(results) == 2:
            second = results[1]
            if isinstance(second, BaseException):
                return first, NOT_HANDLED.with_error(second)
            if isinstance(second, HandleResult):
                return first, second
        return None, NOT_HANDLED.with_error(
            ValueError("contravariant policy: cannot accept more than 2 results")
        )

    def _plan(
        self,
        fn: Callable[..., Any],
        key: Any,
        skip: int,
    ) -> tuple[Any, Any]:
        param = _first_param(fn, skip)
        if param is None:
            raise MethodBindingError(fn, "contravariant: missing callback argument")
        hints = resolve_type_hints(fn)
        annotation, _ = unwrap_annotated(hints.get(param.name, _EMPTY))
        if isinstance(annotation, type) and issubclass(annotation, CallbackBase):
            first = RawCallbackArg()
            if key is None:
                key = Any
        else:
            first = CallbackArg(annotation)
            if key is None:
                key = Any if annotation is _EMPTY else annotation
        return build_plan(fn, skip, first), key

    def new_method_binding(
        self,
        method: Callable[..., Any],
        spec: BuiltSpec,
        key: Any,
    ) -> Binding:
        plan, key = self._plan(method, key, 1)
        output, is_async, spread = _output_info(method)
        return MethodBinding(method, plan, key, spec, output, is_async, spread)

    def new_func_binding(
        self,
        func: Callable[..., Any],
        spec: BuiltSpec,
        key: Any,
    ) -> Binding:
        plan, key = self._plan(func, key, 0)
        output, is_async, spread = _output_info(func)
        return FuncBinding(func, plan, key, spec, output, is_async, spread)


class CovariantPolicy(Policy):
    """Policy for related output values."""

    def variant_key(self, key: Any) -> tuple[bool, bool]:
        if is_type_key(key):
            return True, key is Any
        return False, False

    def matches_key(self, key: Any, other: Any, strict: bool) -> tuple[bool, bool]:
        if key == other:
            return True, True
        if strict:
            return False, False
        if is_type_key(key):
            if key is Any:
                return True, False
            if is_type_key(other):
                return is_assignable(other, key), False
        return False, False

    def accept_results(self, results: list[Any]) -> tuple[Any, HandleResult]:
        if not results:
            return None, NOT_HANDLED
        first = results[0]
        if len(results) == 1:
            if first is None:
                return None, NOT_HANDLED
            if isinstance(first, BaseException):
                return None, NOT_HANDLED.with_error(first)
            if isinstance(first, HandleResult):
                return None, first
            return first, HANDLED
        if len(results) == 2:
            second = results[1]
            if isinstance(second, BaseException):
                return first, NOT_HANDLED.with_error(second)
            if isinstance(second, HandleResult):
                if first is None:
                    return None, second.and_(NOT_HANDLED)
                return first, second
            if first is None:
                return None, NOT_HANDLED
            return first, HANDLED
        return None, NOT_HANDLED.with_error(
            ValueError("covariant policy: cannot accept more than 2 results")
        )

    def _key(
        self,
        fn: Callable[..., Any],
        spec: BuiltSpec,
        key: Any,
    ) -> tuple[Any, Any, bool, bool]:
        output, is_async, spread = _output_info(fn)
        if output is None:
            raise MethodBindingError(fn, "covariant: must have a return value")
        if not spec.strict:
            element = element_type(output)
            if element is not None:
                output = element
        return (output if key is None else key), output, is_async, spread

    def new_method_binding(
        self,
        method: Callable[..., Any],
        spec: BuiltSpec,
        key: Any,
    ) -> Binding:
        plan = build_plan(method, 1)
        key, output, is_async, spread = self._key(method, spec, key)
        return MethodBinding(method, plan, key, spec, output, is_async, spread)

    def new_func_binding(
        self,
        func: Callable[..., Any],
        spec: BuiltSpec,
        key: Any,
    ) -> Binding:
        plan = build_plan(func, 0)
        key, output, is_async, spread = self._key(func, spec, key)
        return FuncBinding(func, plan, key, spec, output, is_async, spread)

    def new_constructor_binding(
        self,
        handler_type: type,
        constructor: Optional[Callable[..., Any]],
        spec: BuiltSpec,
        key: Any = None,
    ) -> Binding:
        plan = build_plan(constructor, 1) if constructor is not None else None
        return ConstructorBinding(handler_type, plan, spec, key)


class BivariantPolicy(Policy):
    """Policy for DiKey keys relating an input and an output."""

    strict = True

    def __init__(self, name: Optional[str] = None) -> None:
        super().__init__(name)
        self._in = ContravariantPolicy()
        self._out = CovariantPolicy()

    def variant_key(self, key: Any) -> tuple[bool, bool]:
        return isinstance(key, DiKey), False

    def matches_key(self, key: Any, other: Any, strict: bool) -> tuple[bool, bool]:
        if not isinstance(key, DiKey) or not isinstance(other, DiKey):
            raise TypeError("bivariant keys must be DiKey")
        if key == other:
            return True, True
        if strict:
            return False, False
        matches, _ = self._in.matches_key(key.in_, other.in_, False)
        if matches:
            matches, _ = self._out.matches_key(key.out, other.out, False)
        return matches, False

    def accept_results(self, results: list[Any]) -> tuple[Any, HandleResult]:
        return self._out.accept_results(results)

    def _plan(
        self,
        fn: Callable[..., Any],
        spec: BuiltSpec,
        key: Any,
        skip: int,
    ) -> tuple[Any, Any, Any, bool, bool]:
        param = _first_param(fn, skip)
        if param is None:
            raise MethodBindingError(fn, "bivariant: missing callback argument")
        hints = resolve_type_hints(fn)
        annotation, _ = unwrap_annotated(hints.get(param.name, _EMPTY))
        in_ = Any
        if isinstance(annotation, type) and issubclass(annotation, CallbackBase):
            first = RawCallbackArg()
        else:
            first = CallbackArg(annotation)
            if annotation is not _EMPTY:
                in_ = annotation
        output, is_async, spread = _output_info(fn)
        if output is None:
            raise MethodBindingError(fn, "bivariant: must have a return value")
        if key is None:
            key = DiKey(in_, output)
        elif not isinstance(key, DiKey):
            key = DiKey(in_, key)
        return build_plan(fn, skip, first), key, output, is_async, spread

    def new_method_binding(
        self,
        method: Callable[..., Any],
        spec: BuiltSpec,
        key: Any,
    ) -> Binding:
        plan, key, output, is_async, spread = self._plan(method, spec, key, 1)
        return MethodBinding(method, plan, key, spec, output, is_async, spread)

    def new_func_binding(
        self,
        func: Callable[..., Any],
        spec: BuiltSpec,
        key: Any,
    ) -> Binding:
        plan, key, output, is_async, spread = self._plan(func, spec, key, 0)
        return FuncBinding(func, plan, key, spec, output, is_async, spread)
