# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Batching: collect callbacks and complete them together.

``batch(handler, configure)`` installs a batch for the duration of
``configure``. Callbacks dispatched through the batch handler are offered to
the batch participants first; a participant that handles a callback (without
stopping) keeps it for completion. Completing the batch asks every
participant implementing ProtocolBatching to ``complete_batch`` and returns a
Promise of all their results in participant order.

Participants are located with ``get_batch(handler, batcher_type)``, which
creates and registers the participant on first use. Tags restrict a batch to
cooperating participants. ``no_batch`` opts dispatch out of any active batch.

Example:
    >>> def configure(handler):
    ...     send(handler, route_to(GetQuote("GOOGL"), "trash"))
    >>> results = batch(context, configure).await_()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, Optional, TypeVar

from miruken.callback import Trampoline
from miruken.composition import (
    Composition,
    DecoratedHandler,
    MutableHandlers,
    initialize_composer,
)
from miruken.errors import InvalidOperationError
from miruken.handle_result import NOT_HANDLED, HandleResult
from miruken.handler import Handler, SuppressDispatch
from miruken.promise import Promise
from miruken.protocols import ProtocolBatching
from miruken.provides import Provides, resolve

__all__ = [
    "Batch",
    "BatchHandler",
    "NoBatch",
    "batch",
    "get_batch",
    "no_batch",
]

logger = logging.getLogger(__name__)

TBatcher = TypeVar("TBatcher")


class Batch(MutableHandlers):
    """Participants of one batch operation."""

    def __init__(self, *tags: Any) -> None:
        super().__init__()
        self._tags = frozenset(tags)

    @property
    def tags(self) -> frozenset[Any]:
        return self._tags

    def should_batch(self, tag: Any) -> bool:
        return not self._tags or tag in self._tags

    def complete(self, composer: Handler) -> Promise[list[Any]]:
        """Complete every participant, preserving participant order."""
        results: list[Any] = []
        for participant in self.targets():
            if isinstance(participant, ProtocolBatching):
                try:
                    results.append(participant.complete_batch(composer))
                except Exception as e:
                    return Promise.reject(e)
        logger.debug("Completing batch with %d participant(s)", len(results))
        return Promise.all(*results)


def _is_batcher_type(key: Any) -> bool:
    return isinstance(key, type) and callable(getattr(key, "complete_batch", None))


class BatchHandler(DecoratedHandler, SuppressDispatch):
    """Offers callbacks to the active batch before the decorated handler."""

    def __init__(self, handler: Handler, batch_: Batch) -> None:
        super().__init__(handler)
        self._batch: Optional[Batch] = batch_
        self._completed = False
        self._lock = threading.Lock()

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        if callback is None:
            return NOT_HANDLED
        composer = initialize_composer(composer, self)
        current = self._batch
        inner = callback.callback if isinstance(callback, Composition) else callback
        if isinstance(inner, Provides):
            key = inner.key
            if current is not None and key is Batch:
                return inner.receive_result(current, True, composer)
            if current is not None and _is_batcher_type(key):
                participant = _participant(current, key)
                if participant is not None:
                    return inner.receive_result(participant, True, composer)
        elif current is not None:
            can_batch = getattr(callback, "can_batch", None)
            if not callable(can_batch) or can_batch():
                result = current.handle(callback, greedy, composer)
                if result.handled and not result.stop:
                    return result
        return self._handler.handle(callback, greedy, composer)

    def complete(self, *promises: Promise[Any]) -> Promise[list[Any]]:
        """Complete the batch, then wait for ``promises``.

        Raises:
            InvalidOperationError: If the batch already completed.
        """
        with self._lock:
            if self._completed:
                raise InvalidOperationError("batch has already completed")
            self._completed = True
            current, self._batch = self._batch, None
        results = current.complete(self)
        if not promises:
            return results
        return results.then(lambda res: Promise.all(*promises).then(lambda _: res))


def _participant(current: Batch, batcher_type: type) -> Any:
    for target in current.targets():
        if isinstance(target, batcher_type):
            return target
    try:
        participant = batcher_type()
    except TypeError:
        logger.debug("Batch participant %s needs arguments", batcher_type.__name__)
        return None
    current.add_handlers(participant)
    return participant


class NoBatch(Trampoline):
    """Marks a callback as excluded from batching."""

    def can_batch(self) -> bool:
        return False


class _NoBatchHandler(DecoratedHandler, SuppressDispatch):
    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        if callback is None:
            return NOT_HANDLED
        composer = initialize_composer(composer, self)
        inner = callback.callback if isinstance(callback, Composition) else callback
        if isinstance(inner, Provides) and inner.key is Batch:
            return NOT_HANDLED
        return self._handler.handle(NoBatch(callback), greedy, composer)


def no_batch(handler: Handler) -> Handler:
    """Builder excluding callbacks from any active batch."""
    return _NoBatchHandler(handler)


def batch(
    handler: Handler,
    configure: Callable[[Handler], Any],
    *tags: Any,
) -> Promise[list[Any]]:
    """Batch the callbacks dispatched by ``configure``.

    ``configure`` receives the batching handler. When it returns a Promise,
    the returned Promise settles after both the batch and that Promise.

    Returns:
        Promise of the results of every participant.
    """
    if handler is None:
        raise ValueError("handler cannot be None")
    if configure is None:
        raise ValueError("configure cannot be None")
    batch_handler = BatchHandler(handler, Batch(*tags))
    pending = configure(batch_handler)
    if isinstance(pending, Promise):
        return batch_handler.complete(pending)
    return batch_handler.complete()


def get_batch(
    handler: Handler,
    batcher_type: type[TBatcher],
    *tags: Any,
) -> Optional[TBatcher]:
    """Return the ``batcher_type`` participant of the active batch, if any."""
    current = resolve(handler, Batch)
    if not isinstance(current, Batch):
        return None
    if not all(current.should_batch(tag) for tag in tags):
        return None
    return _participant(current, batcher_type)
