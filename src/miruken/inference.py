# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Inference: dispatch to handler types that have no instance yet.

The inference handler owns a single virtual descriptor assembled from every
registered handler spec. For each policy it holds one representative binding
per distinct key of each spec:

    - constructor bindings are linked as-is, so types can be provided
    - function bindings are linked as-is and invoked directly
    - method bindings are linked through an intercept that resolves an
      instance of the declaring type and forwards the callback to it

A per-dispatch guard lets each handler type be inferred at most once, no
matter how many of its keys match.

Example:
    >>> handler = InferenceHandler(factory, [Orders, Inventory])
    >>> execute(handler, PlaceOrder(42))  # constructs Orders on demand
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, Optional

from miruken.binding import Binding, BuiltSpec, ConstructorBinding, MethodBinding
from miruken.callback import no_reset
from miruken.descriptor import HandlerDescriptor, HandlerDescriptorFactory
from miruken.errors import NotHandledError
from miruken.handle_result import NOT_HANDLED, HandleResult
from miruken.handler import HandleContext, Handler, SuppressDispatch, dispatch_callback
from miruken.policy import Policy
from miruken.promise import Promise
from miruken.provides import Provides
from miruken.resolves import Resolves

__all__ = ["InferenceHandler"]

logger = logging.getLogger(__name__)


class _MethodIntercept(Binding):
    """Stands in for a method binding of a handler type without an instance."""

    def __init__(self, binding: MethodBinding, handler_type: type) -> None:
        super().__init__(
            binding.key,
            BuiltSpec(strict=binding.strict, skip_filters=True),
            logical_output_type=binding.logical_output_type,
            is_async=binding.is_async,
        )
        self._binding = binding
        self._handler_type = handler_type

    @property
    def binding(self) -> MethodBinding:
        return self._binding

    @property
    def handler_type(self) -> type:
        return self._handler_type

    def invoke(self, ctx: HandleContext, *init_args: Any) -> Any:
        callback = ctx.callback
        parent = callback if isinstance(callback, Provides) else None
        resolves = Resolves(self._handler_type, callback, ctx.greedy, parent)
        result = ctx.composer.handle(resolves, True, None)
        if result.is_error:
            raise result.error
        pending = resolves.result(False)
        if isinstance(pending, Promise):

            def settled(_: Any) -> list[Any]:
                if not resolves.succeeded:
                    raise NotHandledError(callback)
                return []

            return pending.then(settled)
        return [result]

    def __repr__(self) -> str:
        return f"infer {self._handler_type.__qualname__} => {self._binding!r}"


class _InferenceGuard:
    """Approves each intercepted handler type once per dispatch."""

    def __init__(self) -> None:
        self._resolved: set[type] = set()

    def can_dispatch(
        self,
        handler: Any,
        binding: Any,
    ) -> Optional[Callable[[], None]]:
        if isinstance(binding, _MethodIntercept):
            if binding.handler_type in self._resolved:
                return None
            self._resolved.add(binding.handler_type)
        return no_reset


class InferenceHandler(Handler, SuppressDispatch):
    """Dispatches to registered handler specs through a virtual descriptor.

    Args:
        factory: Descriptor factory the specs are registered with.
        specs: Handler classes and decorated functions.
    """

    def __init__(
        self,
        factory: HandlerDescriptorFactory,
        specs: Iterable[Any],
    ) -> None:
        if factory is None:
            raise ValueError("factory cannot be None")
        self._descriptor = HandlerDescriptor(type(self))
        seen: set[int] = set()
        for spec in specs:
            descriptor, _ = factory.register_spec(spec)
            if descriptor is None or id(descriptor) in seen:
                continue
            seen.add(id(descriptor))
            self._link(descriptor)
        logger.debug(
            "Inference over %d handler spec(s), policies %s",
            len(seen),
            self._descriptor.policies,
        )

    @property
    def descriptor(self) -> HandlerDescriptor:
        return self._descriptor

    def _link(self, descriptor: HandlerDescriptor) -> None:
        spec = descriptor.spec
        handler_type = spec if isinstance(spec, type) else None
        for policy in descriptor.policies:
            policy_bindings = descriptor.policy_bindings(policy)
            if policy_bindings is None:
                continue
            target = self._descriptor.for_policy(policy)
            for binding, indexed in policy_bindings.representatives():
                linked = self._infer(binding, handler_type, indexed)
                if linked is not None:
                    target.insert(linked)

    @staticmethod
    def _infer(
        binding: Binding,
        handler_type: Optional[type],
        add_constructor: bool,
    ) -> Optional[Binding]:
        if isinstance(binding, ConstructorBinding):
            return binding if add_constructor else None
        if isinstance(binding, MethodBinding):
            if handler_type is None:
                return None
            return _MethodIntercept(binding, handler_type)
        return binding

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        return dispatch_callback(self, callback, greedy, composer)

    def dispatch_policy(
        self,
        callback: Any,
        greedy: bool,
        composer: Optional[Handler],
    ) -> HandleResult:
        can_infer = getattr(callback, "can_infer", None)
        if callable(can_infer) and not can_infer():
            return NOT_HANDLED
        policy: Optional[Policy] = getattr(callback, "policy", None)
        if policy is None:
            return NOT_HANDLED
        return self._descriptor.dispatch(
            policy, self, callback, greedy, composer, _InferenceGuard()
        )

    def __repr__(self) -> str:
        return f"InferenceHandler({len(self._descriptor.policies)} policies)"
