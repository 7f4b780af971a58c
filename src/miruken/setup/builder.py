# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""SetupBuilder: assembles the root context of an application.

Setup collects features, handler specs, explicit handlers and builders,
then builds the handler chain:

1. Features are installed level by level (a feature's dependencies are
   installed after every feature of the current level), collecting errors.
2. A descriptor factory is created and made current for the chain.
3. Handler specs (plus the Bootstrapper) are registered; unless inference
   is disabled an InferenceHandler dispatches to them.
4. Explicit handlers are added in front, then the builders are applied.
5. The root Context is created and ``after_install`` hooks run.

``context()`` additionally starts every ProtocolBootstrap.

Example:
    >>> ctx = (
    ...     setup(api.feature(), validates.feature())
    ...     .specs(QuoteHandler, ApproveQuote)
    ...     .options(ModelSetupOptions(startup_timeout=5))
    ...     .context()
    ... )
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterable
from typing import Any, Optional

from pydantic import BaseModel

from miruken.composition import Builder, add_handlers, build_up
from miruken.context import Context
from miruken.descriptor import DescriptorFactoryProvider, HandlerDescriptorFactory
from miruken.errors import ModelMirukenErrorContext, SetupError
from miruken.filter import with_filter_providers
from miruken.handler import Handler
from miruken.inference import InferenceHandler
from miruken.options import with_options
from miruken.promise import Promise
from miruken.provides import resolve, with_provider
from miruken.setup.bootstrap import Bootstrapper

__all__ = ["SetupBuilder", "setup"]

logger = logging.getLogger(__name__)

SpecPredicate = Callable[[Any], bool]
FactoryFunc = Callable[[Iterable[Any]], HandlerDescriptorFactory]


class SetupBuilder:
    """Fluent builder of the root context.

    Args:
        features: Initial features to install.
    """

    def __init__(self, *features: Any) -> None:
        self._features: list[Any] = [f for f in features if f is not None]
        self._handlers: list[Any] = []
        self._specs: list[Any] = []
        self._builders: list[Builder] = []
        self._excludes: list[SpecPredicate] = []
        self._observers: list[Any] = []
        self._factory: Optional[FactoryFunc] = None
        self._no_inference = False
        self._tags: set[Any] = set()

    def features(self, *features: Any) -> SetupBuilder:
        self._features.extend(f for f in features if f is not None)
        return self

    def handlers(self, *handlers: Any) -> SetupBuilder:
        """Add explicit handler instances, consulted before inferred specs."""
        self._handlers.extend(h for h in handlers if h is not None)
        return self

    def specs(self, *specs: Any) -> SetupBuilder:
        """Add handler classes or decorated functions for inference."""
        self._specs.extend(s for s in specs if s is not None)
        return self

    def exclude_specs(self, *predicates: SpecPredicate) -> SetupBuilder:
        """Skip specs matching any of ``predicates``."""
        self._excludes.extend(p for p in predicates if p is not None)
        return self

    def filters(self, *providers: Any) -> SetupBuilder:
        """Apply filter providers to every dispatch through the context."""
        return self.builders(with_filter_providers(*providers))

    def builders(self, *builders: Builder) -> SetupBuilder:
        self._builders.extend(b for b in builders if b is not None)
        return self

    def with_(self, *values: Any) -> SetupBuilder:
        """Provide ``values`` directly to Provides requests."""
        return self.builders(with_provider(*values))

    def options(self, *options: BaseModel | Builder) -> SetupBuilder:
        """Contribute options models (or ready-made builders)."""
        for option in options:
            if isinstance(option, BaseModel):
                self._builders.append(with_options(option))
            elif callable(option):
                self._builders.append(option)
        return self

    def observers(self, *observers: Any) -> SetupBuilder:
        """Observe bindings and descriptors as the factory creates them."""
        self._observers.extend(o for o in observers if o is not None)
        return self

    def factory(self, factory: FactoryFunc) -> SetupBuilder:
        """Override how the descriptor factory is created from observers."""
        self._factory = factory
        return self

    def without_inference(self) -> SetupBuilder:
        """Register specs without inferring dispatch to them."""
        self._no_inference = True
        return self

    def can_install(self, tag: Any) -> bool:
        """Return True the first time ``tag`` is seen."""
        if tag in self._tags:
            return False
        self._tags.add(tag)
        return True

    def handler(self) -> Handler:
        """Build the context without starting bootstraps.

        Raises:
            SetupError: If any feature failed to install.
        """
        return self._build()

    def context(self) -> Context:
        """Build the context and start its bootstraps.

        Raises:
            SetupError: If any feature failed to install.
        """
        ctx = self._build()
        bootstrapper = resolve(ctx, Bootstrapper)
        if bootstrapper is not None:
            bootstrapper.bootstrap(ctx).await_()
        return ctx

    def context_async(self) -> Promise[Context]:
        """Build the context and return a Promise settling once it started."""
        try:
            ctx = self._build()
            bootstrapper = resolve(ctx, Bootstrapper)
        except Exception as e:
            return Promise.reject(e)
        if bootstrapper is None:
            return Promise.resolve(ctx)
        return bootstrapper.bootstrap(ctx).then(lambda _: ctx)

    def _build(self) -> Context:
        errors = self._install_graph()

        factory = self._factory(self._observers) if self._factory else None
        if factory is None:
            factory = HandlerDescriptorFactory(self._observers)
        handler: Handler = DescriptorFactoryProvider(factory)

        inferred = []
        for spec in [*self._specs, Bootstrapper]:
            if factory.spec(spec) is None or self._excluded(spec):
                continue
            if self._no_inference:
                factory.register_spec(spec)
            else:
                inferred.append(spec)
        if inferred:
            handler = add_handlers(handler, InferenceHandler(factory, inferred))

        if self._handlers:
            handler = add_handlers(handler, *self._handlers)
        if self._builders:
            handler = build_up(handler, *self._builders)

        ctx = Context(handler)
        for feature in self._features:
            after_install = getattr(feature, "after_install", None)
            if not callable(after_install):
                continue
            try:
                after_install(self, ctx)
            except Exception as e:
                logger.debug("Feature %r failed after install: %s", feature, e)
                errors.append(e)

        if errors:
            ctx.end()
            raise SetupError(
                errors, context=ModelMirukenErrorContext(operation="setup")
            )
        logger.debug(
            "Built context with %d spec(s) and %d handler(s)",
            len(inferred),
            len(self._handlers),
        )
        return ctx

    def _excluded(self, spec: Any) -> bool:
        return any(exclude(spec) for exclude in self._excludes)

    def _install_graph(self) -> list[Exception]:
        errors: list[Exception] = []
        queue = deque(self._features)
        while queue:
            feature = queue.popleft()
            depends_on = getattr(feature, "depends_on", None)
            if callable(depends_on):
                queue.extend(d for d in depends_on() if d is not None)
            try:
                feature.install(self)
            except Exception as e:
                logger.debug("Feature %r failed to install: %s", feature, e)
                errors.append(e)
        return errors


def setup(*features: Any) -> SetupBuilder:
    """Start a SetupBuilder with ``features``."""
    return SetupBuilder(*features)
