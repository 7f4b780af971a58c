# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Filter pipeline wrapping binding invocation.

Filters are collected from filter providers attached to the binding, the
handler descriptor, the policy, the handler itself (when it is a filter) and
the composer's ModelFilterOptions. They run in ascending stage order (see
EnumFilterStage); ties keep insertion order and negative stages run last.

Each filter receives a Next to continue the pipeline:
    - ``pipe()`` / ``pipe_composer(composer)`` proceed to the next stage
    - ``abort()`` rejects the callback with RejectedError
    - ``fail(error)`` raises ``error``
    - ``handle(callback)`` dispatches another callback through the composer

Filters return the binding outputs (a list), a Promise of them, or raise.

Opt-out:
    ModelFilterOptions.skip_filters True removes every provider that is not
    required; unset honours the binding's ``skip_filters`` flag; False keeps
    all providers. A required provider yielding no filters skips the binding.
"""

from __future__ import annotations

import dataclasses
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Any, NamedTuple, Optional

from pydantic import Field

from miruken.composition import Builder, build_up
from miruken.enums import EnumFilterStage
from miruken.errors import RejectedError
from miruken.handle_result import HandleResult
from miruken.handler import HandleContext, Handler
from miruken.options import ModelOptions, get_options, with_options

if TYPE_CHECKING:
    from miruken.binding import Binding

__all__ = [
    "Filter",
    "FilterInstanceProvider",
    "FilterSpecProvider",
    "FilteredScope",
    "ModelFilterOptions",
    "Next",
    "ProvidedFilter",
    "enable_filters",
    "ordered_filters",
    "pipeline",
    "skip_filters",
    "with_filter_providers",
    "with_filters",
    "with_required_filters",
]

logger = logging.getLogger(__name__)


class Filter(ABC):
    """Base class for pipeline stages."""

    order: int = EnumFilterStage.USER

    @abstractmethod
    def next(
        self,
        next_: Next,
        ctx: HandleContext,
        provider: Any,
    ) -> Any:
        """Run this stage; usually by calling ``next_.pipe()``."""


class ProvidedFilter(NamedTuple):
    filter: Any
    provider: Any


class FilterInstanceProvider:
    """Provides a fixed list of filter instances."""

    def __init__(self, *filters: Any, required: bool = False) -> None:
        self._filters = tuple(filters)
        self._required = required

    @property
    def required(self) -> bool:
        return self._required

    def filters(
        self,
        binding: Binding,
        callback: Any,
        composer: Handler,
    ) -> Sequence[Any]:
        return self._filters

    def __repr__(self) -> str:
        return f"FilterInstanceProvider({', '.join(map(repr, self._filters))})"


class FilterSpecProvider:
    """Resolves a filter of ``filter_type`` from the composer on demand.

    Args:
        filter_type: Filter class to resolve.
        required: Survive filter opt-out and skip the binding if unresolved.
        order: Optional stage overriding the resolved filter's order.
    """

    def __init__(
        self,
        filter_type: type,
        required: bool = False,
        order: Optional[int] = None,
    ) -> None:
        self._filter_type = filter_type
        self._required = required
        self._order = order

    @property
    def required(self) -> bool:
        return self._required

    @property
    def filter_type(self) -> type:
        return self._filter_type

    def filters(
        self,
        binding: Binding,
        callback: Any,
        composer: Handler,
    ) -> Sequence[Any]:
        # Import at runtime to avoid circular import
        from miruken.provides import resolve

        filter_ = resolve(composer, self._filter_type)
        if filter_ is None:
            return ()
        if self._order is not None:
            filter_.order = self._order
        return (filter_,)


class FilteredScope:
    """Mutable, de-duplicated list of filter providers."""

    def __init__(self, providers: Iterable[Any] = ()) -> None:
        self._providers: list[Any] = []
        self.add_filters(*providers)

    @property
    def filters(self) -> list[Any]:
        return list(self._providers)

    def add_filters(self, *providers: Any) -> None:
        for provider in providers:
            if provider is None:
                raise ValueError("provider cannot be None")
            if not any(p is provider for p in self._providers):
                self._providers.append(provider)

    def remove_filters(self, *providers: Any) -> None:
        self._providers = [
            p for p in self._providers if not any(p is r for r in providers)
        ]

    def remove_all_filters(self) -> None:
        self._providers = []


class ModelFilterOptions(ModelOptions):
    """Options controlling filter collection for a composer."""

    providers: list[Any] = Field(
        default_factory=list,
        description="Additional filter providers applied to every binding",
    )
    skip_filters: Optional[bool] = Field(
        default=None,
        description="True skips non-required providers; None defers to the binding",
    )


_skip_filters = with_options(ModelFilterOptions(skip_filters=True))
_enable_filters = with_options(ModelFilterOptions(skip_filters=False))


def skip_filters(handler: Handler) -> Handler:
    """Builder skipping all providers that are not required."""
    return _skip_filters(handler)


def enable_filters(handler: Handler) -> Handler:
    """Builder keeping every provider, including for skip-filter bindings."""
    return _enable_filters(handler)


def with_filters(*filters: Any) -> Builder:
    return with_options(
        ModelFilterOptions(providers=[FilterInstanceProvider(*filters)])
    )


def with_required_filters(*filters: Any) -> Builder:
    return with_options(
        ModelFilterOptions(
            providers=[FilterInstanceProvider(*filters, required=True)]
        )
    )


def with_filter_providers(*providers: Any) -> Builder:
    return with_options(ModelFilterOptions(providers=list(providers)))


def _applies(provider: Any, callback: Any) -> bool:
    applies_to = getattr(provider, "applies_to", None)
    return applies_to is None or bool(applies_to(callback))


def _stage_key(provided: ProvidedFilter) -> tuple[int, int]:
    order = int(getattr(provided.filter, "order", EnumFilterStage.USER))
    return (1, 0) if order < 0 else (0, order)


def ordered_filters(
    composer: Handler,
    binding: Binding,
    callback: Any,
    *provider_lists: Optional[Iterable[Any]],
) -> Optional[list[ProvidedFilter]]:
    """Materialize and order the filters for one binding invocation.

    Returns:
        The ordered filters, or None if the binding must be skipped.
    """
    options = get_options(composer, ModelFilterOptions) or ModelFilterOptions()
    skip = options.skip_filters
    binding_skip = binding.skip_filters
    providers: list[Any] = []

    def add(provider: Any) -> None:
        if not provider.required:
            if skip is True or (skip is None and binding_skip):
                return
        if not any(p is provider for p in providers):
            providers.append(provider)

    for provider_list in provider_lists:
        for provider in provider_list or ():
            if provider is not None and _applies(provider, callback):
                add(provider)
    for provider in options.providers:
        if provider is not None and _applies(provider, callback):
            add(provider)

    if skip is not True:
        composer = build_up(composer, skip_filters)

    provided: list[ProvidedFilter] = []
    for provider in providers:
        try:
            filters = provider.filters(binding, callback, composer)
        except Exception as e:
            logger.debug(
                "Filter provider %r failed for %r: %s", provider, binding, e
            )
            return None
        filters = [f for f in filters or () if f is not None]
        if not filters and provider.required:
            return None
        provided.extend(ProvidedFilter(f, provider) for f in filters)
    provided.sort(key=_stage_key)
    return provided


class Next:
    """Continuation handed to each filter."""

    __slots__ = ("_complete", "_ctx", "_filters", "_index")

    def __init__(
        self,
        ctx: HandleContext,
        filters: Sequence[ProvidedFilter],
        index: int,
        complete: Callable[[HandleContext], Any],
    ) -> None:
        self._ctx = ctx
        self._filters = filters
        self._index = index
        self._complete = complete

    @property
    def context(self) -> HandleContext:
        return self._ctx

    def pipe(self) -> Any:
        return self.pipe_composer(None)

    def pipe_composer(self, composer: Optional[Handler]) -> Any:
        ctx = self._ctx
        if composer is not None:
            ctx = dataclasses.replace(ctx, composer=composer)
        if self._index < len(self._filters):
            provided = self._filters[self._index]
            following = Next(ctx, self._filters, self._index + 1, self._complete)
            return provided.filter.next(following, ctx, provided.provider)
        return self._complete(ctx)

    def abort(self) -> Any:
        raise RejectedError(self._ctx.callback)

    def fail(self, error: BaseException) -> Any:
        raise error

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        return (composer or self._ctx.composer).handle(callback, greedy, None)


def pipeline(
    ctx: HandleContext,
    filters: Sequence[ProvidedFilter],
    complete: Callable[[HandleContext], Any],
) -> Any:
    """Run ``filters`` around ``complete``."""
    return Next(ctx, filters, 0, complete).pipe()
