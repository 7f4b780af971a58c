# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Routing of messages to destinations identified by a route.

``route_to(message, route)`` wraps a message in a Routed envelope. Handlers
declare the schemes they serve with the Routes filter provider:

    >>> class TrashHandler:
    ...     @handles(Routes("trash"))
    ...     def trash(self, routed: Routed, trash: Trash) -> None: ...

The scheme of a route is the text before the first ``:`` (or the whole
route). Bindings whose schemes do not match are skipped, so a message routed
nowhere is not handled.

Inside a batch, routed requests are not sent immediately. They are grouped
by route and, when the batch completes, each group is sent to its route as
one ConcurrentBatch. Each request then settles with its own response, or
with MissingResponseError when the route returned too few responses.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from miruken.api.schedule import ConcurrentBatch, ScheduledResult
from miruken.batch import get_batch, no_batch
from miruken.either import Left, Right
from miruken.enums import EnumFilterStage
from miruken.errors import MissingResponseError
from miruken.filter import Filter
from miruken.handler import Handler
from miruken.handles import Handles, execute, handles
from miruken.promise import Deferred, Promise

if TYPE_CHECKING:
    from miruken.filter import Next
    from miruken.handler import HandleContext

__all__ = [
    "BatchRouter",
    "PassThroughRouter",
    "RouteReply",
    "Routed",
    "Routes",
    "RoutesFilter",
    "route_to",
    "scheme",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Routed:
    """A message addressed to ``route``."""

    message: Any
    route: str


def route_to(message: Any, route: str) -> Routed:
    """Address ``message`` to ``route``."""
    if message is None:
        raise ValueError("message cannot be None")
    if not route:
        raise ValueError("route cannot be None or empty")
    return Routed(message, route)


def scheme(route: str) -> str:
    """Return the scheme of ``route``."""
    return route.split(":", 1)[0]


@dataclass(frozen=True)
class RouteReply:
    """Responses a route returned for one batch."""

    uri: str
    responses: list[Any] = field(default_factory=list)


class _Pending:
    __slots__ = ("deferred", "message")

    def __init__(self, message: Any) -> None:
        self.message = message
        self.deferred: Deferred[Any] = Deferred()


class BatchRouter:
    """Batch participant grouping routed requests by route."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._groups: dict[str, list[_Pending]] = {}

    def route(self, routed: Routed) -> Promise[Any]:
        """Defer ``routed`` until the batch completes."""
        pending = _Pending(routed.message)
        with self._lock:
            self._groups.setdefault(routed.route, []).append(pending)
        return pending.deferred.promise

    def complete_batch(self, composer: Handler) -> Promise[list[RouteReply]]:
        with self._lock:
            groups, self._groups = self._groups, {}
        logger.debug("Completing %d routed group(s)", len(groups))
        return Promise.all(
            *(self._send(composer, uri, group) for uri, group in groups.items())
        )

    def _send(
        self,
        composer: Handler,
        uri: str,
        group: list[_Pending],
    ) -> Promise[RouteReply]:
        batch = ConcurrentBatch(tuple(p.message for p in group))
        try:
            result = execute(no_batch(composer), Routed(batch, uri))
        except Exception as e:
            return Promise.reject(_fail(group, e))

        def replied(scheduled: Any) -> RouteReply:
            responses = (
                list(scheduled.responses)
                if isinstance(scheduled, ScheduledResult)
                else []
            )
            for index, pending in enumerate(group):
                if index >= len(responses):
                    pending.deferred.reject(MissingResponseError(pending.message))
                    continue
                response = responses[index]
                if isinstance(response, Left):
                    pending.deferred.reject(response.value)
                elif isinstance(response, Right):
                    pending.deferred.resolve(response.value)
                else:
                    pending.deferred.resolve(response)
            return RouteReply(uri, responses)

        def failed(error: BaseException) -> Any:
            raise _fail(group, error)

        return Promise.lift(result).then(replied).catch(failed)


def _fail(group: list[_Pending], error: BaseException) -> BaseException:
    for pending in group:
        pending.deferred.reject(error)
    return error


class RoutesFilter(Filter):
    """Collects routed requests into an active batch."""

    order = EnumFilterStage.USER

    def next(
        self,
        next_: Next,
        ctx: HandleContext,
        provider: Any,
    ) -> Any:
        router = get_batch(ctx.composer, BatchRouter)
        if router is None:
            return next_.pipe()
        return router.route(ctx.callback.source).then(lambda response: [response])

    def __repr__(self) -> str:
        return "RoutesFilter()"


_FILTERS = (RoutesFilter(),)


class Routes:
    """Required filter provider restricting a binding to route schemes.

    Args:
        schemes: The schemes served.
    """

    required = True

    def __init__(self, *schemes: str) -> None:
        if not schemes:
            raise ValueError("at least one scheme required")
        self.schemes = frozenset(schemes)

    def applies_to(self, callback: Any) -> bool:
        return isinstance(callback, Handles) and isinstance(callback.source, Routed)

    def satisfies(self, routed: Routed) -> bool:
        return scheme(routed.route) in self.schemes

    def filters(
        self,
        binding: Any,
        callback: Any,
        composer: Handler,
    ) -> Sequence[Any]:
        return _FILTERS if self.satisfies(callback.source) else ()

    def __repr__(self) -> str:
        return f"Routes({', '.join(sorted(self.schemes))})"


class PassThroughRouter:
    """Routes ``pass-through`` messages back through the composer."""

    @handles(Routes("pass-through"))
    def pass_through(self, routed: Routed, composer: Handler) -> Any:
        return execute(composer, routed.message)
