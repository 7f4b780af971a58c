# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for the filter pipeline.

Tests cover:
    - Stage ordering, insertion-order ties and negative stages
    - Binding, class and composer filter providers
    - skip_filters / enable_filters opt-out
    - Required providers yielding no filters skip the binding
    - Next.abort, failures and asynchronous filters
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest

from miruken.composition import build_up
from miruken.context import Context
from miruken.descriptor import filtered
from miruken.enums import EnumFilterStage
from miruken.errors import NotHandledError
from miruken.filter import (
    Filter,
    FilterSpecProvider,
    enable_filters,
    skip_filters,
    with_filters,
    with_required_filters,
)
from miruken.handles import command, execute, handles
from miruken.promise import Promise

# =============================================================================
# Filters
# =============================================================================


@dataclass
class Trace:
    trail: list[str] = field(default_factory=list)


@dataclass
class Amount:
    value: int


class Mark(Filter):
    """Appends its name to the trail of the message."""

    def __init__(self, name: str, order: int = EnumFilterStage.USER) -> None:
        self.name = name
        self.order = order

    def next(self, next_: Any, ctx: Any, provider: Any) -> Any:
        ctx.callback.source.trail.append(self.name)
        return next_.pipe()


class Audit(Filter):
    def __init__(self) -> None:
        self.seen: list[Any] = []

    def next(self, next_: Any, ctx: Any, provider: Any) -> Any:
        self.seen.append(ctx.callback.source)
        return next_.pipe()


class Reject(Filter):
    def next(self, next_: Any, ctx: Any, provider: Any) -> Any:
        return next_.abort()


class Explode(Filter):
    def next(self, next_: Any, ctx: Any, provider: Any) -> Any:
        return next_.fail(RuntimeError("filter exploded"))


class Double(Filter):
    def next(self, next_: Any, ctx: Any, provider: Any) -> Any:
        return [output * 2 for output in next_.pipe()]


class Deferred(Filter):
    def next(self, next_: Any, ctx: Any, provider: Any) -> Any:
        return Promise.resolve(None).then(lambda _: next_.pipe())


# =============================================================================
# Handlers
# =============================================================================


class StagedHandler:
    @handles(
        Mark("user"),
        Mark("last", -1),
        Mark("early", EnumFilterStage.LOGGING),
        Mark("user2"),
    )
    def trace(self, trace: Trace) -> None:
        trace.trail.append("handler")


class OptionalHandler:
    @handles(Mark("optional"), skip_filters=True)
    def trace(self, trace: Trace) -> None:
        trace.trail.append("handler")


@filtered(Mark("class"))
class ClassFilteredHandler:
    @handles(Mark("method"))
    def trace(self, trace: Trace) -> None:
        trace.trail.append("handler")


class AuditedHandler:
    @handles(FilterSpecProvider(Audit, required=True))
    def trace(self, trace: Trace) -> None:
        trace.trail.append("handler")


class OptionallyAuditedHandler:
    @handles(Audit)
    def trace(self, trace: Trace) -> None:
        trace.trail.append("handler")


class RejectingHandler:
    @handles(Reject())
    def trace(self, trace: Trace) -> None:
        trace.trail.append("handler")


class ExplodingHandler:
    @handles(Explode())
    def trace(self, trace: Trace) -> None:
        trace.trail.append("handler")


class AmountHandler:
    @handles(Double())
    def amount(self, amount: Amount) -> int:
        return amount.value

    @handles(Deferred(), Double())
    def trace(self, trace: Trace) -> int:
        trace.trail.append("handler")
        return len(trace.trail)


class SelfFilteringHandler(Filter):
    """Handler that is also the filter of its own bindings."""

    def __init__(self) -> None:
        self.filtered: list[Any] = []

    def next(self, next_: Any, ctx: Any, provider: Any) -> Any:
        self.filtered.append(ctx.callback.source)
        return next_.pipe()

    @handles
    def trace(self, trace: Trace) -> None:
        trace.trail.append("handler")


# =============================================================================
# Ordering
# =============================================================================


class TestFilterOrdering:
    """Tests for the order filters run in."""

    def test_stage_order_with_ties_and_negative_last(self) -> None:
        trace = Trace()
        command(Context(StagedHandler()), trace)
        assert trace.trail == ["early", "user", "user2", "last", "handler"]

    def test_composer_filters_follow_binding_filters(self) -> None:
        trace = Trace()
        handler = build_up(Context(StagedHandler()), with_filters(Mark("global")))
        command(handler, trace)
        assert trace.trail == [
            "early",
            "user",
            "user2",
            "global",
            "last",
            "handler",
        ]

    def test_class_filters_follow_method_filters(self) -> None:
        trace = Trace()
        command(Context(ClassFilteredHandler()), trace)
        assert trace.trail == ["method", "class", "handler"]

    def test_handler_filters_its_own_bindings(self) -> None:
        handler = SelfFilteringHandler()
        trace = Trace()
        command(Context(handler), trace)
        assert handler.filtered == [trace]
        assert trace.trail == ["handler"]


# =============================================================================
# Opt-out
# =============================================================================


class TestSkipFilters:
    """Tests for skipping optional filter providers."""

    def test_binding_skip_filters(self) -> None:
        trace = Trace()
        command(Context(OptionalHandler()), trace)
        assert trace.trail == ["handler"]

    def test_enable_filters_overrides_binding(self) -> None:
        trace = Trace()
        command(build_up(Context(OptionalHandler()), enable_filters), trace)
        assert trace.trail == ["optional", "handler"]

    def test_skip_filters_builder(self) -> None:
        trace = Trace()
        command(build_up(Context(StagedHandler()), skip_filters), trace)
        assert trace.trail == ["handler"]

    def test_required_filters_survive_skip(self) -> None:
        trace = Trace()
        handler = build_up(
            Context(StagedHandler()),
            with_required_filters(Mark("required")),
            skip_filters,
        )
        command(handler, trace)
        assert trace.trail == ["required", "handler"]


# =============================================================================
# Providers
# =============================================================================


class TestFilterProviders:
    """Tests for providers resolving their filters."""

    def test_required_provider_without_filters_skips_binding(self) -> None:
        with pytest.raises(NotHandledError):
            command(Context(AuditedHandler()), Trace())

    def test_required_provider_resolves_filter(self) -> None:
        audit = Audit()
        trace = Trace()
        command(Context(AuditedHandler()).store(audit), trace)
        assert audit.seen == [trace]
        assert trace.trail == ["handler"]

    def test_optional_provider_without_filters_runs_binding(self) -> None:
        trace = Trace()
        command(Context(OptionallyAuditedHandler()), trace)
        assert trace.trail == ["handler"]


# =============================================================================
# Outcomes
# =============================================================================


class TestFilterOutcomes:
    """Tests for filters shaping the binding outcome."""

    def test_abort_declines_binding(self) -> None:
        trace = Trace()
        with pytest.raises(NotHandledError):
            command(Context(RejectingHandler()), trace)
        assert trace.trail == []

    def test_fail_propagates_error(self) -> None:
        with pytest.raises(RuntimeError, match="filter exploded"):
            command(Context(ExplodingHandler()), Trace())

    def test_filter_transforms_outputs(self) -> None:
        assert execute(Context(AmountHandler()), Amount(21)) == 42

    def test_asynchronous_filter(self) -> None:
        result = execute(Context(AmountHandler()), Trace())
        assert isinstance(result, Promise)
        assert result.await_(5) == 2
