# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Provides: covariant dependency resolution.

A Provides callback requests instances of a key. Bindings declared with
``@provides`` on methods answer with their return value; classes answer
through their constructor binding (implicitly a Single unless declared
otherwise). A handler that already is an instance of the requested type
answers with itself.

Dependency Chains:
    Arguments of a binding are resolved with a nested Provides whose
    ``parent`` is the callback being handled. The chain lets lifestyles
    check compatibility and ``For[T]`` constraints select a dependency by
    the binding that requested it. A binding already in progress on the
    chain is never re-entered.

Example:
    >>> class Services:
    ...     @provides(Named("primary"))
    ...     def database(self) -> Database: ...
    >>> resolve(handler, Database, Named("primary"))
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, Optional

from miruken.binding import Binding, BuiltSpec, binding_decorator
from miruken.callback import CallbackBase
from miruken.composition import Builder, Composition, add_handlers
from miruken.constraints import Constraint
from miruken.handle_result import NOT_HANDLED, HandleResult
from miruken.handler import Handler, SuppressDispatch, dispatch_policy
from miruken.keys import is_assignable, is_instance_of, is_type_key
from miruken.policy import CovariantPolicy, Policy
from miruken.promise import Promise

__all__ = [
    "For",
    "ProviderHandler",
    "Provides",
    "ProvidesPolicy",
    "provides",
    "resolve",
    "resolve_all",
    "resolve_key",
    "with_provider",
]

logger = logging.getLogger(__name__)


class ProvidesPolicy(CovariantPolicy):
    """Covariant policy whose implicit constructors are singletons."""

    def new_constructor_binding(
        self,
        handler_type: type,
        constructor: Optional[Callable[..., Any]],
        spec: Optional[BuiltSpec],
        key: Any = None,
    ) -> Binding:
        if spec is None:
            # Import at runtime to avoid circular import
            from miruken.lifestyle import Single

            spec = BuiltSpec(filters=[Single()]).complete()
        return super().new_constructor_binding(handler_type, constructor, spec, key)


provides = binding_decorator(ProvidesPolicy("provides"))


class Provides(CallbackBase):
    """Callback resolving instances of ``key`` covariantly.

    Args:
        key: Type or opaque key to resolve.
        many: Collect every instance.
        parent: Provides callback whose binding requested this one.
        constraints: Constraints a binding must satisfy.
    """

    def __init__(
        self,
        key: Any,
        many: bool = False,
        parent: Optional[Provides] = None,
        constraints: Iterable[Any] = (),
    ) -> None:
        if key is None:
            raise ValueError("key cannot be None")
        super().__init__(many, constraints)
        self._key = key
        self._parent = parent
        self._handler: Any = None
        self._binding: Optional[Binding] = None

    @property
    def policy(self) -> Policy:
        return provides.policy

    @property
    def key(self) -> Any:
        return self._key

    @property
    def parent(self) -> Optional[Provides]:
        return self._parent

    @property
    def binding(self) -> Optional[Binding]:
        """Binding currently answering this callback."""
        return self._binding

    def can_dispatch(
        self,
        handler: Any,
        binding: Any,
    ) -> Optional[Callable[[], None]]:
        if self._in_progress(handler, binding):
            return None
        previous = self._handler, self._binding
        self._handler, self._binding = handler, binding

        def reset() -> None:
            self._handler, self._binding = previous

        return reset

    def _in_progress(self, handler: Any, binding: Any) -> bool:
        provides_: Optional[Provides] = self
        while provides_ is not None:
            if provides_._handler is handler and provides_._binding is binding:
                return True
            provides_ = provides_._parent
        return False

    def _accept_promise(self, promise: Promise[Any]) -> Promise[Any]:
        def ignore(error: BaseException) -> None:
            logger.debug("Ignoring failed async provide of %r: %s", self._key, error)

        return promise.catch(ignore)

    def dispatch(
        self,
        handler: Any,
        greedy: bool,
        composer: Optional[Handler],
    ) -> HandleResult:
        result = NOT_HANDLED
        count = self.result_count
        key = self._key
        if (
            not self.constraints()
            and isinstance(key, type)
            and isinstance(handler, key)
        ):
            result = result.or_(self.receive_result(handler, False, composer))
            if result.stop or (result.handled and not greedy):
                return result
        return result.or_(
            dispatch_policy(handler, self, greedy, composer)
        ).otherwise_handled(self.result_count > count)

    def __repr__(self) -> str:
        return f"provides {self._key!r}"


class For(Constraint):
    """Selects a dependency by the type of the binding requesting it.

    ``For[Service]`` matches only when some binding up the Provides chain
    produces a ``Service``.
    """

    required = True
    implied = True

    def __init__(self, target: Any) -> None:
        self.target = target

    def __class_getitem__(cls, target: Any) -> For:
        return cls(target)

    def satisfies(self, required: Optional[Constraint], callback: Any) -> bool:
        if required is not None:
            return False
        if not isinstance(callback, Provides):
            return True
        parent = callback.parent
        while parent is not None:
            binding = parent.binding
            if binding is not None:
                output = binding.logical_output_type
                if output is not None and is_assignable(self.target, output):
                    return True
            parent = parent.parent
        return False

    def __eq__(self, other: object) -> bool:
        return isinstance(other, For) and other.target == self.target

    def __hash__(self) -> int:
        return hash((For, self.target))

    def __repr__(self) -> str:
        return f"For[{self.target!r}]"


def _provide(
    handler: Handler,
    key: Any,
    many: bool,
    constraints: Iterable[Any],
) -> Any:
    if handler is None:
        raise ValueError("handler cannot be None")
    request = Provides(key, many=many, constraints=constraints)
    result = handler.handle(request, many, None)
    if result.is_error:
        raise result.error
    if not result.handled:
        return [] if many else None
    return request.result(many)


def resolve_key(handler: Handler, key: Any, *constraints: Any) -> Any:
    """Resolve the first instance of ``key``.

    Returns:
        The instance, a Promise of it, or None when unresolved.
    """
    return _provide(handler, key, False, constraints)


def resolve(handler: Handler, key: Any, *constraints: Any) -> Any:
    """Resolve the first instance of the type ``key``."""
    if not is_type_key(key):
        raise TypeError(f"resolve expects a type, got {key!r}")
    return _provide(handler, key, False, constraints)


def resolve_all(handler: Handler, key: Any, *constraints: Any) -> Any:
    """Resolve every instance of ``key`` into a list (or a Promise of one)."""
    return _provide(handler, key, True, constraints)


class ProviderHandler(Handler, SuppressDispatch):
    """Answers Provides requests with a fixed value."""

    def __init__(self, value: Any) -> None:
        if value is None:
            raise ValueError("value cannot be None")
        self._value = value

    @property
    def value(self) -> Any:
        return self._value

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        if isinstance(callback, Composition):
            callback = callback.callback
        if isinstance(callback, Provides):
            key = callback.key
            if is_type_key(key) and is_instance_of(self._value, key):
                return callback.receive_result(self._value, True, composer)
        return NOT_HANDLED

    def __repr__(self) -> str:
        return f"ProviderHandler({self._value!r})"


def with_provider(*values: Any) -> Builder:
    """Builder answering Provides requests with ``values``."""
    providers = [ProviderHandler(v) for v in values if v is not None]

    def builder(handler: Handler) -> Handler:
        return add_handlers(handler, *providers)

    return builder
