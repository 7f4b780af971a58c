# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for HandleResult combination laws."""

from __future__ import annotations

import pytest

from miruken.handle_result import (
    HANDLED,
    HANDLED_AND_STOP,
    NOT_HANDLED,
    NOT_HANDLED_AND_STOP,
    HandleResult,
)


class TestHandleResult:
    """Tests for or_, and_ and error attachment."""

    @pytest.mark.parametrize(
        ("left", "right", "handled", "stop"),
        [
            (NOT_HANDLED, NOT_HANDLED, False, False),
            (NOT_HANDLED, HANDLED, True, False),
            (HANDLED, NOT_HANDLED_AND_STOP, True, True),
            (NOT_HANDLED_AND_STOP, NOT_HANDLED, False, True),
        ],
    )
    def test_or(
        self,
        left: HandleResult,
        right: HandleResult,
        handled: bool,
        stop: bool,
    ) -> None:
        result = left | right
        assert result.handled is handled
        assert result.stop is stop

    @pytest.mark.parametrize(
        ("left", "right", "handled", "stop"),
        [
            (HANDLED, HANDLED, True, False),
            (HANDLED, NOT_HANDLED, False, False),
            (HANDLED_AND_STOP, HANDLED, True, True),
            (NOT_HANDLED, HANDLED_AND_STOP, False, True),
        ],
    )
    def test_and(
        self,
        left: HandleResult,
        right: HandleResult,
        handled: bool,
        stop: bool,
    ) -> None:
        result = left & right
        assert result.handled is handled
        assert result.stop is stop

    def test_error_sets_stop(self) -> None:
        error = ValueError("boom")
        result = HANDLED.with_error(error)
        assert result.stop
        assert result.handled
        assert result.error is error
        assert result.without_error() == HANDLED_AND_STOP

    def test_errors_are_joined(self) -> None:
        first, second = ValueError("a"), KeyError("b")
        result = NOT_HANDLED.with_error(first) | NOT_HANDLED.with_error(second)
        assert isinstance(result.error, BaseExceptionGroup)
        assert list(result.error.exceptions) == [first, second]

    def test_with_error_joins_existing(self) -> None:
        first, second = ValueError("a"), KeyError("b")
        result = HANDLED.with_error(first).with_error(second)
        assert result.stop
        assert isinstance(result.error, BaseExceptionGroup)
        assert list(result.error.exceptions) == [first, second]

    def test_same_error_not_duplicated(self) -> None:
        error = ValueError("a")
        result = HANDLED.with_error(error) | NOT_HANDLED.with_error(error)
        assert result.error is error

    def test_otherwise(self) -> None:
        assert NOT_HANDLED.otherwise(lambda _: HANDLED) == HANDLED
        assert HANDLED.otherwise(lambda _: NOT_HANDLED_AND_STOP) == HANDLED

    def test_then_skipped_when_stopped(self) -> None:
        assert HANDLED_AND_STOP.then(lambda _: NOT_HANDLED) == HANDLED_AND_STOP
        assert NOT_HANDLED.then(lambda _: HANDLED) == HANDLED

    def test_otherwise_handled(self) -> None:
        assert NOT_HANDLED.otherwise_handled(True) == HANDLED
        assert NOT_HANDLED_AND_STOP.otherwise_handled(True) == HANDLED_AND_STOP
        assert NOT_HANDLED.otherwise_handled(False) == NOT_HANDLED
