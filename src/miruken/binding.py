# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Bindings: addressable callables attached to handler specs.

Bindings are declared with binding decorators (``@handles``, ``@provides``,
``@creates``, ``@maps``, ``@validates``, ``@authorizes``). Each decorator
records a BindingSpec on the decorated function; the handler descriptor
turns specs into bindings through the spec's policy.

Decorator Members:
    Positional members classify as follows:
        - Constraint instances (or Constraint classes) constrain the binding
        - Filter instances become a FilterInstanceProvider
        - Filter classes become a FilterSpecProvider resolved on demand
        - Filter providers (lifestyles included) are added as is; providers
          exposing ``constraints`` contribute them too
        - Anything else is kept as binding metadata
    Keyword flags: ``key=``, ``strict=``, ``skip_filters=``.

Example:
    >>> class Inventory:
    ...     @handles(LogProvider(verbosity=1))
    ...     def place(self, order: PlaceOrder) -> Confirmation: ...
    ...
    ...     @provides(Single, key="warehouse")
    ...     def warehouse(self) -> Warehouse: ...

Invocation:
    ``invoke(ctx)`` returns the list of outputs, or a Promise of them when
    the call (or any argument) is asynchronous. A returned tuple is spread
    into several outputs when it carries side outputs (effects, a
    HandleResult or an exception) after the primary value, or when the
    declared return is ``tuple[T, <side output types>]``.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from miruken.args import ArgPlan
from miruken.constraints import Constraint, ConstraintProvider
from miruken.filter import (
    Filter,
    FilteredScope,
    FilterInstanceProvider,
    FilterSpecProvider,
)
from miruken.handle_result import HandleResult
from miruken.handler import HandleContext
from miruken.promise import Promise

if TYPE_CHECKING:
    from miruken.policy import Policy

__all__ = [
    "BINDINGS_ATTR",
    "Binding",
    "BindingSpec",
    "ConstructorBinding",
    "FuncBinding",
    "MethodBinding",
    "binding_decorator",
    "binding_specs",
    "is_side_output",
]

logger = logging.getLogger(__name__)

BINDINGS_ATTR = "__miruken_bindings__"


def is_side_output(value: Any) -> bool:
    """Return True for outputs following the primary value."""
    if isinstance(value, (HandleResult, BaseException)):
        return True
    return callable(getattr(value, "apply", None))


def _is_provider(member: Any) -> bool:
    return callable(getattr(member, "filters", None)) and hasattr(member, "required")


@dataclass
class BindingSpec:
    """Declared binding options recorded by a binding decorator."""

    policy: Policy
    members: tuple[Any, ...] = ()
    key: Any = None
    strict: bool = False
    skip_filters: bool = False

    def build(self) -> BuiltSpec:
        """Classify the members into filters, constraints and metadata."""
        built = BuiltSpec(
            key=self.key,
            strict=self.strict,
            skip_filters=self.skip_filters,
        )
        for member in self.members:
            built.add_member(member)
        return built.complete()


@dataclass
class BuiltSpec:
    key: Any = None
    strict: bool = False
    skip_filters: bool = False
    filters: list[Any] = field(default_factory=list)
    constraints: list[Constraint] = field(default_factory=list)
    metadata: list[Any] = field(default_factory=list)

    def add_member(self, member: Any) -> None:
        if member is None:
            raise ValueError("binding member cannot be None")
        if isinstance(member, type):
            if issubclass(member, Filter) and not _is_provider(member):
                self.add_filter_provider(FilterSpecProvider(member))
                return
            member = member()
        if isinstance(member, Constraint):
            self.add_constraint(member)
        elif _is_provider(member):
            self.add_filter_provider(member)
        elif isinstance(member, Filter):
            self.add_filter_provider(FilterInstanceProvider(member))
        else:
            self.metadata.append(member)

    def add_filter_provider(self, provider: Any) -> None:
        self.filters.append(provider)
        for constraint in getattr(provider, "constraints", ()) or ():
            self.add_constraint(constraint)

    def add_constraint(self, constraint: Constraint) -> None:
        for existing in self.constraints:
            merge = getattr(existing, "merge", None)
            if callable(merge) and merge(constraint):
                return
        self.constraints.append(constraint)

    def complete(self) -> BuiltSpec:
        self.filters.append(ConstraintProvider(self.constraints))
        return self


def _is_target(value: Any) -> bool:
    return inspect.isfunction(value) or isinstance(value, (staticmethod, classmethod))


def binding_decorator(policy: Policy) -> Callable[..., Any]:
    """Create a binding decorator declaring bindings for ``policy``.

    The decorator may be applied bare or called with members and flags.
    """

    def decorate(target: Any, spec: BindingSpec) -> Any:
        specs = list(getattr(target, BINDINGS_ATTR, ()))
        for existing in specs:
            if existing.policy is spec.policy and existing.key == spec.key:
                raise TypeError(
                    f"duplicate {policy} binding key {spec.key!r} on {target!r}"
                )
        specs.append(spec)
        if isinstance(target, (staticmethod, classmethod)):
            setattr(target.__func__, BINDINGS_ATTR, specs)
        else:
            setattr(target, BINDINGS_ATTR, specs)
        return target

    def decorator(
        *members: Any,
        key: Any = None,
        strict: bool = False,
        skip_filters: bool = False,
    ) -> Any:
        if (
            len(members) == 1
            and _is_target(members[0])
            and key is None
            and not strict
            and not skip_filters
        ):
            return decorate(members[0], BindingSpec(policy))
        spec = BindingSpec(policy, members, key, strict, skip_filters)
        return lambda target: decorate(target, spec)

    decorator.policy = policy  # type: ignore[attr-defined]
    return decorator


def binding_specs(target: Any) -> list[BindingSpec]:
    """Return the BindingSpecs recorded on ``target``."""
    if isinstance(target, (staticmethod, classmethod)):
        target = target.__func__
    return list(getattr(target, BINDINGS_ATTR, ()))


class Binding(FilteredScope, ABC):
    """Addressable callable selected by policy and key."""

    def __init__(
        self,
        key: Any,
        spec: BuiltSpec,
        logical_output_type: Any = None,
        is_async: bool = False,
        spread: bool = False,
    ) -> None:
        super().__init__(spec.filters)
        self._key = key
        self._strict = spec.strict
        self._skip_filters = spec.skip_filters
        self._constraints = tuple(spec.constraints)
        self._metadata = tuple(spec.metadata)
        self._logical_output_type = logical_output_type
        self._is_async = is_async
        self._spread = spread

    @property
    def key(self) -> Any:
        return self._key

    @property
    def strict(self) -> bool:
        return self._strict

    @property
    def skip_filters(self) -> bool:
        return self._skip_filters

    @property
    def is_async(self) -> bool:
        return self._is_async

    @property
    def constraints(self) -> tuple[Constraint, ...]:
        return self._constraints

    @property
    def metadata(self) -> tuple[Any, ...]:
        return self._metadata

    @property
    def logical_output_type(self) -> Any:
        return self._logical_output_type

    @abstractmethod
    def invoke(self, ctx: HandleContext, *init_args: Any) -> Any:
        """Call the target returning outputs or a Promise of outputs."""

    def _call(
        self,
        fn: Callable[..., Any],
        plan: ArgPlan,
        ctx: HandleContext,
        init_args: Sequence[Any],
    ) -> Any:
        resolved = plan.resolve(ctx)
        if isinstance(resolved, Promise):
            return resolved.then(
                lambda ak: self._outputs(fn(*init_args, *ak[0], **ak[1]))
            )
        args, kwargs = resolved
        return self._outputs(fn(*init_args, *args, **kwargs))

    def _outputs(self, value: Any) -> Any:
        if inspect.iscoroutine(value):
            return Promise.from_coroutine(value).then(self._outputs)
        if isinstance(value, Promise):
            return value.then(self._outputs)
        if isinstance(value, tuple) and (
            self._spread or any(is_side_output(v) for v in value[1:])
        ):
            outputs = list(value)
            if outputs and isinstance(outputs[0], Promise):
                rest = outputs[1:]
                return outputs[0].then(lambda first: [first, *rest])
            return outputs
        return [value]


class MethodBinding(Binding):
    """Binding to a method; the handler is passed as receiver."""

    def __init__(
        self,
        method: Callable[..., Any],
        plan: ArgPlan,
        key: Any,
        spec: BuiltSpec,
        logical_output_type: Any = None,
        is_async: bool = False,
        spread: bool = False,
    ) -> None:
        super().__init__(key, spec, logical_output_type, is_async, spread)
        self._method = method
        self._plan = plan

    @property
    def method(self) -> Callable[..., Any]:
        return self._method

    def invoke(self, ctx: HandleContext, *init_args: Any) -> Any:
        return self._call(self._method, self._plan, ctx, (ctx.handler, *init_args))

    def __repr__(self) -> str:
        return f"MethodBinding({self._method.__qualname__}, key={self._key!r})"


class FuncBinding(Binding):
    """Binding to a free function; no receiver."""

    def __init__(
        self,
        func: Callable[..., Any],
        plan: ArgPlan,
        key: Any,
        spec: BuiltSpec,
        logical_output_type: Any = None,
        is_async: bool = False,
        spread: bool = False,
    ) -> None:
        super().__init__(key, spec, logical_output_type, is_async, spread)
        self._func = func
        self._plan = plan

    @property
    def func(self) -> Callable[..., Any]:
        return self._func

    def invoke(self, ctx: HandleContext, *init_args: Any) -> Any:
        return self._call(self._func, self._plan, ctx, init_args)

    def __repr__(self) -> str:
        return f"FuncBinding({self._func.__qualname__}, key={self._key!r})"


class ConstructorBinding(Binding):
    """Binding constructing the handler class through its ``__init__`` plan.

    Construction is skipped (no outputs) when the handler being dispatched
    already is an instance of exactly that class.
    """

    def __init__(
        self,
        handler_type: type,
        plan: Optional[ArgPlan],
        spec: BuiltSpec,
        key: Any = None,
    ) -> None:
        super().__init__(
            key if key is not None else handler_type,
            spec,
            logical_output_type=handler_type,
        )
        self._handler_type = handler_type
        self._plan = plan

    @property
    def handler_type(self) -> type:
        return self._handler_type

    @property
    def strict(self) -> bool:
        return False

    def invoke(self, ctx: HandleContext, *init_args: Any) -> Any:
        if type(ctx.handler) is self._handler_type:
            return []
        if self._plan is None:
            return [self._handler_type()]
        return self._call(self._handler_type, self._plan, ctx, init_args)

    def __repr__(self) -> str:
        return f"ConstructorBinding({self._handler_type.__qualname__})"
