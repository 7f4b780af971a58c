# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for scheduling request batches.

Tests cover:
    - Sequential batches succeeding and stopping at the first failure
    - Concurrent batches reporting every outcome in request order
    - Asynchronous responses and published messages
"""

from __future__ import annotations

import random
from dataclasses import dataclass

import pytest

from miruken import api
from miruken.api import (
    ConcurrentBatch,
    Published,
    ScheduledResult,
    concurrent,
    send,
    sequential,
)
from miruken.context import Context
from miruken.either import Left, Right
from miruken.errors import NotHandledError
from miruken.handles import handles
from miruken.promise import Promise
from miruken.setup import setup

# =============================================================================
# Fixtures
# =============================================================================


@dataclass(frozen=True)
class GetQuote:
    symbol: str


@dataclass(frozen=True)
class GetQuoteLater:
    symbol: str


@dataclass(frozen=True)
class Quote:
    symbol: str
    value: float


@dataclass(frozen=True)
class MarketClosed:
    pass


class QuoteHandler:
    def __init__(self) -> None:
        self.requested: list[str] = []
        self.closed = 0

    @handles
    def quote(self, quote: GetQuote) -> Quote:
        self.requested.append(quote.symbol)
        if quote.symbol == "EX":
            raise Exception("stock exchange is down")
        return Quote(quote.symbol, random.uniform(1, 100))

    @handles
    def quote_later(self, quote: GetQuoteLater) -> Promise[Quote]:
        return Promise.resolve(Quote(quote.symbol, 10.0))

    @handles
    def market_closed(self, closed: MarketClosed) -> None:
        self.closed += 1


@pytest.fixture
def quotes() -> QuoteHandler:
    return QuoteHandler()


@pytest.fixture
def ctx(quotes: QuoteHandler) -> Context:
    return setup(api.feature()).handlers(quotes).context()


def assert_quote(response: object, symbol: str) -> None:
    assert isinstance(response, Right)
    assert response.value.symbol == symbol
    assert response.value.value > 0


def assert_failure(response: object, message: str) -> None:
    assert isinstance(response, Left)
    assert str(response.value) == message


# =============================================================================
# Sequential
# =============================================================================


class TestSequential:
    """Tests for sequential batches."""

    def test_all_succeed(self, ctx: Context) -> None:
        responses = sequential(
            ctx, GetQuote("APPL"), GetQuote("MSFT"), GetQuote("GOOGL")
        ).await_(5)
        assert len(responses) == 3
        for response, symbol in zip(responses, ("APPL", "MSFT", "GOOGL")):
            assert_quote(response, symbol)

    def test_stops_at_first_failure(
        self, ctx: Context, quotes: QuoteHandler
    ) -> None:
        responses = sequential(
            ctx, GetQuote("APPL"), GetQuote("EX"), GetQuote("EX")
        ).await_(5)
        assert len(responses) == 2
        assert_quote(responses[0], "APPL")
        assert_failure(responses[1], "stock exchange is down")
        assert quotes.requested == ["APPL", "EX"]

    def test_unhandled_request_is_a_failure(self, ctx: Context) -> None:
        responses = sequential(ctx, object(), GetQuote("APPL")).await_(5)
        assert len(responses) == 1
        assert isinstance(responses[0], Left)

    def test_empty(self, ctx: Context) -> None:
        assert sequential(ctx).await_(5) == []


# =============================================================================
# Concurrent
# =============================================================================


class TestConcurrent:
    """Tests for concurrent batches."""

    def test_single_failure(self, ctx: Context) -> None:
        responses = concurrent(
            ctx, GetQuote("APPL"), GetQuote("EX"), GetQuote("GOOGL")
        ).await_(5)
        assert len(responses) == 3
        assert_quote(responses[0], "APPL")
        assert_failure(responses[1], "stock exchange is down")
        assert_quote(responses[2], "GOOGL")

    def test_asynchronous_responses(self, ctx: Context) -> None:
        responses = concurrent(
            ctx, GetQuoteLater("MSFT"), GetQuote("APPL")
        ).await_(5)
        assert responses[0] == Right(Quote("MSFT", 10.0))
        assert_quote(responses[1], "APPL")

    def test_send_batch_directly(self, ctx: Context) -> None:
        result = send(ctx, ConcurrentBatch((GetQuote("APPL"),))).await_(5)
        assert isinstance(result, ScheduledResult)
        assert_quote(result.responses[0], "APPL")

    def test_without_scheduler(self) -> None:
        with pytest.raises(NotHandledError):
            concurrent(Context(QuoteHandler()), GetQuote("APPL")).await_(5)

    def test_requires_handler(self) -> None:
        with pytest.raises(ValueError):
            concurrent(None, GetQuote("APPL"))  # type: ignore[arg-type]


# =============================================================================
# Published
# =============================================================================


class TestPublished:
    """Tests for publishing through the scheduler."""

    def test_published_reaches_every_receiver(self) -> None:
        first, second = QuoteHandler(), QuoteHandler()
        ctx = setup(api.feature()).handlers(first, second).context()
        send(ctx, Published(MarketClosed()))
        assert (first.closed, second.closed) == (1, 1)

    def test_published_without_receivers(self, ctx: Context) -> None:
        assert send(ctx, Published(object())) is None
