# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Handler descriptors: the cached bindings of a handler spec.

A handler spec is a class or a decorated free function. The descriptor
factory describes each spec once and caches the descriptor by identity.

Describing a Class:
    1. ``__init__`` decorated with a binding decorator declares constructor
       bindings. Unless the class is marked ``@no_constructor`` (or is
       abstract) an implicit provides constructor binding is added as well;
       without an explicit constructor spec it is a Single.
    2. Every other decorated method (or static/class method) yields one
       binding per declared policy and key.
    3. ``@initialize`` methods are attached to the constructor bindings.
    4. Observers receive ``binding_created`` and ``descriptor_created``.

    Invalid bindings are collected and raised together as a
    HandlerDescriptorError.

Binding Order:
    For each policy, bindings with variant keys are kept in a list sorted by
    ``policy.less`` (more specific keys first, ``Any`` last). Invariant keys
    (strings and other tags) are indexed by equality and fall back to the
    ``Any`` bindings.

Thread Safety:
    The factory guards registration with an RLock. Descriptors are immutable
    once published; lookups read the cache without taking the lock.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any, Optional

from miruken.binding import Binding, BindingSpec, BuiltSpec, binding_specs
from miruken.errors import (
    HandlerDescriptorError,
    MethodBindingError,
    NotHandledError,
    RejectedError,
    UnresolvedArgError,
)
from miruken.filter import (
    Filter,
    FilteredScope,
    FilterInstanceProvider,
    ordered_filters,
    pipeline,
)
from miruken.handle_result import HANDLED, NOT_HANDLED, HandleResult
from miruken.handler import HandleContext, Handler, SuppressDispatch
from miruken.initializer import InitializerProvider, initializer_methods
from miruken.policy import Policy
from miruken.promise import Promise

__all__ = [
    "CurrentDescriptorFactory",
    "DescriptorFactoryProvider",
    "HandlerDescriptor",
    "HandlerDescriptorFactory",
    "PolicyBindings",
    "current_descriptor_factory",
    "default_descriptor_factory",
    "filtered",
    "no_constructor",
]

logger = logging.getLogger(__name__)

NO_CONSTRUCTOR_ATTR = "__miruken_no_constructor__"
FILTERS_ATTR = "__miruken_filters__"

Reducer = Callable[[Binding, HandleResult], tuple[HandleResult, bool]]


def no_constructor(cls: type) -> type:
    """Class decorator suppressing the implicit constructor binding."""
    setattr(cls, NO_CONSTRUCTOR_ATTR, True)
    return cls


def filtered(*members: Any) -> Callable[[type], type]:
    """Class decorator attaching filter providers to every binding of a class.

    Members are classified like binding decorator members.
    """
    built = BuiltSpec()
    for member in members:
        built.add_member(member)

    def decorate(cls: type) -> type:
        setattr(cls, FILTERS_ATTR, tuple(built.filters))
        return cls

    return decorate


class PolicyBindings:
    """Bindings of one policy ordered for dispatch."""

    def __init__(self, policy: Policy) -> None:
        self._policy = policy
        self._variant: list[Binding] = []
        self._index: dict[Any, Binding] = {}
        self._invariant: dict[Any, list[Binding]] = {}

    @property
    def policy(self) -> Policy:
        return self._policy

    @property
    def bindings(self) -> list[Binding]:
        """Every binding: variant list order, then invariant keys."""
        invariant = [b for bs in self._invariant.values() for b in bs]
        return [*self._variant, *invariant]

    def _position(self, binding: Binding) -> int:
        for index, candidate in enumerate(self._variant):
            if candidate is binding:
                return index
        return 0

    def insert(self, binding: Binding) -> None:
        key = binding.key
        variant, unknown = self._policy.variant_key(key)
        if not variant:
            self._invariant.setdefault(key, []).append(binding)
            return
        indexed = self._index.get(key)
        if unknown:
            self._variant.append(binding)
        else:
            position = self._position(indexed) if indexed is not None else 0
            while position < len(self._variant) and not self._policy.less(
                binding, self._variant[position]
            ):
                position += 1
            self._variant.insert(position, binding)
        if indexed is None:
            self._index[key] = binding

    def representatives(self) -> list[tuple[Binding, bool]]:
        """One binding per distinct key, paired with whether it is indexed.

        The trailing ``Any`` binding of the variant list is included unindexed
        when it is not already the first binding for its key.
        """
        heads: list[tuple[Binding, bool]] = [(b, True) for b in self._index.values()]
        heads.extend((bs[0], True) for bs in self._invariant.values() if bs)
        if self._variant:
            last = self._variant[-1]
            if last.key is Any and not any(b is last for b, _ in heads):
                heads.append((last, False))
        return heads

    def reduce(self, key: Any, reducer: Reducer) -> HandleResult:
        """Fold ``reducer`` over the candidate bindings for ``key``."""
        result = NOT_HANDLED
        variant, _ = self._policy.variant_key(key)
        if variant:
            indexed = self._index.get(key)
            start = self._position(indexed) if indexed is not None else 0
            for binding in self._variant[start:]:
                result, done = reducer(binding, result)
                if done:
                    break
            return result
        for binding in list(self._invariant.get(key, ())):
            result, done = reducer(binding, result)
            if done:
                return result
        unknown = self._index.get(Any)
        if unknown is not None:
            for binding in self._variant[self._position(unknown):]:
                result, done = reducer(binding, result)
                if done:
                    break
        return result


def _raise_if_error(policy: Policy, outputs: list[Any]) -> Any:
    result, accepted = policy.accept_results(outputs)
    if accepted.is_error:
        raise accepted.error
    return result


class HandlerDescriptor(FilteredScope):
    """Cached bindings of a handler spec grouped by policy."""

    def __init__(
        self,
        spec: Any,
        bindings: Optional[dict[Policy, PolicyBindings]] = None,
        filters: Iterable[Any] = (),
    ) -> None:
        super().__init__(filters)
        self._spec = spec
        self._bindings: dict[Policy, PolicyBindings] = bindings or {}

    @property
    def spec(self) -> Any:
        return self._spec

    @property
    def policies(self) -> list[Policy]:
        return list(self._bindings)

    def policy_bindings(self, policy: Policy) -> Optional[PolicyBindings]:
        return self._bindings.get(policy)

    def bindings(self, policy: Policy) -> list[Binding]:
        bindings = self._bindings.get(policy)
        return bindings.bindings if bindings is not None else []

    def for_policy(self, policy: Policy) -> PolicyBindings:
        bindings = self._bindings.get(policy)
        if bindings is None:
            bindings = self._bindings[policy] = PolicyBindings(policy)
        return bindings

    def dispatch(
        self,
        policy: Policy,
        handler: Any,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
        guard: Any = None,
    ) -> HandleResult:
        """Dispatch ``callback`` to the matching bindings of ``handler``.

        Args:
            policy: Policy selecting the bindings.
            handler: Receiver of method bindings.
            callback: Callback being dispatched.
            greedy: Visit every matching binding.
            composer: Handler resolving dependencies.
            guard: Optional handler guard approving each binding.
        """
        policy_bindings = self._bindings.get(policy)
        if policy_bindings is None:
            return NOT_HANDLED
        key = callback.key

        def reduce(
            binding: Binding,
            result: HandleResult,
        ) -> tuple[HandleResult, bool]:
            if result.stop or (result.handled and not greedy):
                return result, True
            matches, _ = policy.matches_key(binding.key, key, False)
            if matches:
                result = self._invoke(
                    policy, binding, handler, callback, greedy, composer, guard,
                    result,
                )
            return result, result.stop or (result.handled and not greedy)

        return policy_bindings.reduce(key, reduce)

    def _invoke(
        self,
        policy: Policy,
        binding: Binding,
        handler: Any,
        callback: Any,
        greedy: bool,
        composer: Any,
        guard: Any,
        result: HandleResult,
    ) -> HandleResult:
        resets: list[Callable[[], None]] = []
        try:
            for check in (guard, callback):
                can_dispatch = getattr(check, "can_dispatch", None)
                if not callable(can_dispatch):
                    continue
                reset = can_dispatch(handler, binding)
                if reset is None:
                    return result
                resets.append(reset)

            filters: list[Any] = []
            can_filter = getattr(callback, "can_filter", None)
            if not callable(can_filter) or can_filter():
                handler_filters = (
                    [FilterInstanceProvider(handler, required=True)]
                    if isinstance(handler, Filter)
                    else None
                )
                provided = ordered_filters(
                    composer,
                    binding,
                    callback,
                    binding.filters,
                    self.filters,
                    policy.filters,
                    handler_filters,
                )
                if provided is None:
                    return result
                filters = provided

            ctx = HandleContext(handler, callback, binding, composer, greedy)
            try:
                out = pipeline(ctx, filters, _complete)
            except (RejectedError, NotHandledError, UnresolvedArgError) as e:
                logger.debug("Binding %r declined %r: %s", binding, callback, e)
                return result
            except Exception as e:
                logger.debug("Binding %r failed for %r: %s", binding, callback, e)
                return result.with_error(e)

            if isinstance(out, Promise):
                out = [out.then(lambda outputs: _raise_if_error(policy, outputs))]
            value, accepted = policy.accept_results(out)
            if value is not None and accepted.handled:
                strict = policy.strict or binding.strict
                accepted = accepted.and_(
                    callback.receive_result(value, strict, composer)
                )
            return result.or_(accepted)
        finally:
            for reset in reversed(resets):
                reset()

    def __repr__(self) -> str:
        return f"HandlerDescriptor({self._spec!r})"


def _complete(ctx: HandleContext) -> Any:
    # Import at runtime to avoid circular import
    from miruken.effect import apply_effects

    outputs = ctx.binding.invoke(ctx)
    if isinstance(outputs, Promise):
        return outputs.then(lambda out: apply_effects(ctx, out))
    return apply_effects(ctx, outputs)


def _is_binding_target(value: Any) -> bool:
    return inspect.isfunction(value) or isinstance(value, (staticmethod, classmethod))


class _DescriptorBuilder:
    """Describes one spec, collecting every binding error."""

    def __init__(self, spec: Any, observers: Iterable[Any]) -> None:
        self.spec = spec
        self.observers = list(observers)
        self.errors: list[Exception] = []
        filters = getattr(spec, FILTERS_ATTR, ()) if isinstance(spec, type) else ()
        self.descriptor = HandlerDescriptor(spec, filters=filters)

    def add(self, policy: Policy, create: Callable[[], Binding]) -> Optional[Binding]:
        try:
            binding = create()
        except (MethodBindingError, TypeError, ValueError) as e:
            self.errors.append(e)
            return None
        for observer in self.observers:
            observer.binding_created(policy, self.descriptor, binding)
        self.descriptor.for_policy(policy).insert(binding)
        return binding

    def build(self) -> HandlerDescriptor:
        if isinstance(self.spec, type):
            self._describe_class(self.spec)
        else:
            self._describe_func(self.spec)
        if self.errors:
            reason: BaseException = (
                self.errors[0]
                if len(self.errors) == 1
                else ExceptionGroup("invalid bindings", self.errors)
            )
            raise HandlerDescriptorError(self.spec, reason)
        for observer in self.observers:
            observer.descriptor_created(self.descriptor)
        return self.descriptor

    def _describe_func(self, func: Callable[..., Any]) -> None:
        specs = binding_specs(func)
        if not specs:
            self.errors.append(
                MethodBindingError(
                    func, "function handlers require a binding decorator"
                )
            )
            return
        for spec in specs:
            built = spec.build()
            self.add(
                spec.policy,
                lambda spec=spec, built=built: spec.policy.new_func_binding(
                    func, built, spec.key
                ),
            )

    def _describe_class(self, cls: type) -> None:
        self._describe_constructors(cls)
        seen: set[str] = {"__init__"}
        for klass in cls.__mro__:
            if klass is object:
                continue
            for name, value in vars(klass).items():
                if name in seen:
                    continue
                seen.add(name)
                if not _is_binding_target(value):
                    continue
                for spec in binding_specs(value):
                    self._describe_member(cls, name, value, spec)

    def _describe_member(
        self,
        cls: type,
        name: str,
        value: Any,
        spec: BindingSpec,
    ) -> None:
        built = spec.build()
        policy = spec.policy
        if isinstance(value, (staticmethod, classmethod)):
            target = getattr(cls, name)
            self.add(policy, lambda: policy.new_func_binding(target, built, spec.key))
        else:
            self.add(policy, lambda: policy.new_method_binding(value, built, spec.key))

    def _describe_constructors(self, cls: type) -> None:
        # Import at runtime to avoid circular import
        from miruken.provides import provides

        init = cls.__init__
        constructor = None if init is object.__init__ else init
        specs = binding_specs(constructor) if constructor is not None else []
        suppressed = bool(cls.__dict__.get(NO_CONSTRUCTOR_ATTR, False))
        if suppressed and specs:
            self.errors.append(
                MethodBindingError(
                    cls,
                    "handler declares both a constructor binding and @no_constructor",
                )
            )
            return

        initializers = initializer_methods(cls)
        initializer = InitializerProvider(initializers) if initializers else None

        def constructor_binding(policy: Policy, built: Optional[BuiltSpec], key: Any):
            binding = policy.new_constructor_binding(cls, constructor, built, key)
            if initializer is not None:
                binding.add_filters(initializer)
            return binding

        for spec in specs:
            built = spec.build()
            self.add(
                spec.policy,
                lambda spec=spec, built=built: constructor_binding(
                    spec.policy, built, spec.key
                ),
            )

        policy = provides.policy
        if (
            suppressed
            or inspect.isabstract(cls)
            or any(spec.policy is policy for spec in specs)
        ):
            return
        built = specs[0].build() if specs else None
        try:
            binding = constructor_binding(policy, built, None)
        except (MethodBindingError, TypeError) as e:
            logger.debug("No implicit constructor for %s: %s", cls.__qualname__, e)
            return
        self.add(policy, lambda: binding)


class HandlerDescriptorFactory:
    """Describes handler specs on demand and caches the descriptors.

    Args:
        observers: Binding and descriptor observers notified on creation.
    """

    def __init__(self, observers: Iterable[Any] = ()) -> None:
        self._lock = threading.RLock()
        self._descriptors: dict[Any, HandlerDescriptor] = {}
        self._observers: list[Any] = list(observers)

    @property
    def observers(self) -> list[Any]:
        return list(self._observers)

    def add_observers(self, *observers: Any) -> None:
        with self._lock:
            self._observers.extend(o for o in observers if o is not None)

    def spec(self, value: Any) -> Any:
        """Return the handler spec of ``value``, or None if not dispatchable."""
        if value is None:
            return None
        if isinstance(value, type):
            return None if issubclass(value, SuppressDispatch) else value
        if isinstance(value, SuppressDispatch):
            return None
        if inspect.isfunction(value):
            return value
        return type(value)

    def descriptor(self, value: Any) -> Optional[HandlerDescriptor]:
        """Return the descriptor of ``value``, describing it if necessary.

        Raises:
            HandlerDescriptorError: If the spec is invalid.
        """
        spec = self.spec(value)
        if spec is None:
            return None
        descriptor = self._descriptors.get(spec)
        if descriptor is not None:
            return descriptor
        return self.register_spec(spec)[0]

    def register_spec(self, value: Any) -> tuple[Optional[HandlerDescriptor], bool]:
        """Describe ``value`` returning ``(descriptor, added)``.

        Raises:
            HandlerDescriptorError: If the spec is invalid.
        """
        spec = self.spec(value)
        if spec is None:
            return None, False
        with self._lock:
            descriptor = self._descriptors.get(spec)
            if descriptor is not None:
                return descriptor, False
            descriptor = _DescriptorBuilder(spec, self._observers).build()
            self._descriptors[spec] = descriptor
        logger.debug(
            "Described %r with policies %s",
            spec,
            ", ".join(map(repr, descriptor.policies)),
        )
        return descriptor, True

    def specs(self) -> list[Any]:
        with self._lock:
            return list(self._descriptors)


_default_factory = HandlerDescriptorFactory()


def default_descriptor_factory() -> HandlerDescriptorFactory:
    """Process-wide factory used when no composer supplies one."""
    return _default_factory


class CurrentDescriptorFactory:
    """Requests the descriptor factory installed in a handler chain."""

    def __init__(self) -> None:
        self.factory: Optional[HandlerDescriptorFactory] = None

    def can_infer(self) -> bool:
        return False

    def can_filter(self) -> bool:
        return False

    def can_batch(self) -> bool:
        return False

    def dispatch(
        self,
        handler: Any,
        greedy: bool,
        composer: Optional[Handler],
    ) -> HandleResult:
        if isinstance(handler, DescriptorFactoryProvider):
            self.factory = handler.factory
            return HANDLED
        return NOT_HANDLED

    def __repr__(self) -> str:
        return "current descriptor factory"


class DescriptorFactoryProvider(Handler, SuppressDispatch):
    """Handler answering CurrentDescriptorFactory with ``factory``."""

    def __init__(self, factory: HandlerDescriptorFactory) -> None:
        if factory is None:
            raise ValueError("factory cannot be None")
        self._factory = factory

    @property
    def factory(self) -> HandlerDescriptorFactory:
        return self._factory

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        request = getattr(callback, "callback", callback)
        if isinstance(request, CurrentDescriptorFactory):
            request.factory = self._factory
            return HANDLED
        return NOT_HANDLED


def current_descriptor_factory(
    composer: Optional[Handler] = None,
) -> HandlerDescriptorFactory:
    """Return the factory installed in ``composer`` or the process default."""
    if composer is not None:
        request = CurrentDescriptorFactory()
        composer.handle(request, False, None)
        if request.factory is not None:
            return request.factory
    return _default_factory
