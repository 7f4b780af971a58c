# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Dispatch outcome combining handled, stop and an optional error.

HandleResult values are immutable. Combination follows two laws:

    or_  (``|``): handled if either operand is handled, stop if either stops
    and_ (``&``): handled only if both operands are handled, stop if either stops

In both cases errors are joined; two errors become an ExceptionGroup.
Attaching an error always sets stop.

Example:
    >>> (NOT_HANDLED | HANDLED).handled
    True
    >>> (HANDLED & NOT_HANDLED).handled
    False
    >>> NOT_HANDLED.with_error(ValueError("boom")).stop
    True
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Optional

__all__ = [
    "HANDLED",
    "HANDLED_AND_STOP",
    "HandleResult",
    "NOT_HANDLED",
    "NOT_HANDLED_AND_STOP",
]


def _combine_errors(
    first: Optional[BaseException],
    second: Optional[BaseException],
) -> Optional[BaseException]:
    if first is not None and second is not None:
        if first is second:
            return first
        return BaseExceptionGroup("multiple dispatch errors", [first, second])
    return first if first is not None else second


class HandleResult:
    """Immutable dispatch outcome."""

    __slots__ = ("_error", "_handled", "_stop")

    def __init__(
        self,
        handled: bool,
        stop: bool,
        error: Optional[BaseException] = None,
    ) -> None:
        self._handled = handled
        self._stop = stop or error is not None
        self._error = error

    @property
    def handled(self) -> bool:
        return self._handled

    @property
    def stop(self) -> bool:
        return self._stop

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    @property
    def is_error(self) -> bool:
        return self._error is not None

    def with_error(self, error: Optional[BaseException]) -> HandleResult:
        """Attach ``error`` (joined with any existing one) and set stop."""
        if error is None:
            return self
        return HandleResult(self._handled, True, _combine_errors(self._error, error))

    def without_error(self) -> HandleResult:
        if self._error is None:
            return self
        return HandleResult(self._handled, self._stop)

    def then(self, block: Callable[[HandleResult], HandleResult]) -> HandleResult:
        """Combine with ``block(self)`` unless already stopped."""
        if self._stop:
            return self
        return self.or_(block(self))

    def then_if(
        self,
        condition: bool,
        block: Callable[[HandleResult], HandleResult],
    ) -> HandleResult:
        if self._stop or not condition:
            return self
        return self.or_(block(self))

    def otherwise(
        self,
        block: Callable[[HandleResult], HandleResult],
    ) -> HandleResult:
        """Replace with ``block(self)`` when neither handled nor stopped."""
        if self._handled or self._stop:
            return self
        return block(self)

    def otherwise_if(
        self,
        condition: bool,
        block: Callable[[HandleResult], HandleResult],
    ) -> HandleResult:
        if (self._handled or self._stop) and not condition:
            return self
        return self.or_(block(self))

    def otherwise_handled(self, handled: bool) -> HandleResult:
        """Mark handled when ``handled`` is True, keeping stop and error."""
        if handled or self._handled:
            return self.or_(HANDLED_AND_STOP if self._stop else HANDLED)
        return self.or_(NOT_HANDLED_AND_STOP if self._stop else NOT_HANDLED)

    def or_(self, other: HandleResult) -> HandleResult:
        error = _combine_errors(self._error, other._error)
        return HandleResult(
            self._handled or other._handled,
            self._stop or other._stop,
            error,
        )

    def and_(self, other: HandleResult) -> HandleResult:
        error = _combine_errors(self._error, other._error)
        return HandleResult(
            self._handled and other._handled,
            self._stop or other._stop,
            error,
        )

    __or__ = or_
    __and__ = and_

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HandleResult):
            return NotImplemented
        return (
            self._handled == other._handled
            and self._stop == other._stop
            and self._error is other._error
        )

    def __hash__(self) -> int:
        return hash((self._handled, self._stop, id(self._error)))

    def __repr__(self) -> str:
        text = "Handled" if self._handled else "NotHandled"
        if self._stop:
            text += "AndStop"
        if self._error is not None:
            text += f"({self._error!r})"
        return text


HANDLED = HandleResult(True, False)
HANDLED_AND_STOP = HandleResult(True, True)
NOT_HANDLED = HandleResult(False, False)
NOT_HANDLED_AND_STOP = HandleResult(False, True)
