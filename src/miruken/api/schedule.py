# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Scheduling of request batches and published messages.

Batches report every response as an Either: ``Right(response)`` on success
and ``Left(error)`` on failure.

- ConcurrentBatch runs every request at once and reports every outcome.
- SequentialBatch runs requests in order and stops after the first failure,
  reporting the successes and that failure.
- Published delivers its message to every handler accepting it.

Example:
    >>> concurrent(handler, GetQuote("AAPL"), GetQuote("EX")).await_()
    [Right(value=Quote('AAPL', ...)), Left(value=Exception('exchange down'))]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from miruken.api.message import publish, send
from miruken.either import Either, Left, Right
from miruken.handler import Handler
from miruken.handles import handles
from miruken.lifestyle import Single
from miruken.promise import Promise
from miruken.provides import provides

__all__ = [
    "ConcurrentBatch",
    "Published",
    "ScheduledResult",
    "Scheduler",
    "SequentialBatch",
    "concurrent",
    "sequential",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConcurrentBatch:
    """Requests executed concurrently."""

    requests: tuple[Any, ...] = ()


@dataclass(frozen=True)
class SequentialBatch:
    """Requests executed in order until the first failure."""

    requests: tuple[Any, ...] = ()


@dataclass(frozen=True)
class Published:
    """Marks a message to be published to all consumers."""

    message: Any


@dataclass(frozen=True)
class ScheduledResult:
    """Responses of a scheduled batch in request order."""

    responses: list[Either[BaseException, Any]] = field(default_factory=list)


def _process(request: Any, composer: Handler) -> Either[BaseException, Any]:
    try:
        response = send(composer, request)
        if isinstance(response, Promise):
            response = response.await_()
    except Exception as e:
        logger.debug("Scheduled request %r failed: %s", request, e)
        return Left(e)
    return Right(response)


class Scheduler:
    """Handles batches and published messages."""

    @provides(Single)
    def __init__(self) -> None:
        pass

    @handles
    def concurrent(
        self,
        batch: ConcurrentBatch,
        composer: Handler,
    ) -> Promise[ScheduledResult]:
        processing = [
            Promise(
                lambda resolve, _, request=request: resolve(
                    _process(request, composer)
                )
            )
            for request in batch.requests
        ]
        return Promise.all(*processing).then(ScheduledResult)

    @handles
    def sequential(
        self,
        batch: SequentialBatch,
        composer: Handler,
    ) -> Promise[ScheduledResult]:
        def run(resolve: Any, _: Any) -> None:
            responses: list[Either[BaseException, Any]] = []
            for request in batch.requests:
                response = _process(request, composer)
                responses.append(response)
                if isinstance(response, Left):
                    break
            resolve(ScheduledResult(responses))

        return Promise(run)

    @handles
    def published(
        self,
        published: Published,
        composer: Handler,
    ) -> Optional[Promise[Any]]:
        return publish(composer, published.message)


def _send_batch(handler: Handler, batch: Any) -> Promise[list[Either[Any, Any]]]:
    try:
        result = send(handler, batch)
    except Exception as e:
        return Promise.reject(e)
    return Promise.lift(result).then(lambda scheduled: list(scheduled.responses))


def sequential(handler: Handler, *requests: Any) -> Promise[list[Either[Any, Any]]]:
    """Send ``requests`` in order, stopping after the first failure."""
    if handler is None:
        raise ValueError("handler cannot be None")
    return _send_batch(handler, SequentialBatch(requests))


def concurrent(handler: Handler, *requests: Any) -> Promise[list[Either[Any, Any]]]:
    """Send ``requests`` concurrently, reporting every outcome."""
    if handler is None:
        raise ValueError("handler cannot be None")
    return _send_batch(handler, ConcurrentBatch(requests))
