# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Either: a value that is a Left (usually a failure) or a Right.

Batched requests report each response as an Either so one failure does not
reject the whole batch.

Example:
    >>> fold(Right(2), lambda e: 0, lambda v: v * 2)
    4
    >>> map_(Left("boom"), lambda v: v + 1)
    Left(value='boom')
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

__all__ = [
    "Either",
    "Left",
    "Right",
    "apply",
    "flat_map",
    "fold",
    "map_",
    "map_left",
    "match",
]

L = TypeVar("L")
R = TypeVar("R")
A = TypeVar("A")


@dataclass(frozen=True)
class Left(Generic[L]):
    value: L


@dataclass(frozen=True)
class Right(Generic[R]):
    value: R


Either = Union[Left[L], Right[R]]


def _check(either: Any) -> None:
    if not isinstance(either, (Left, Right)):
        raise TypeError(f"invalid either: {either!r}")


def map_(either: Either[L, R], fn: Callable[[R], Any]) -> Either[L, Any]:
    """Apply ``fn`` to a Right value; a Left passes through."""
    _check(either)
    if isinstance(either, Right):
        return Right(fn(either.value))
    return either


def map_left(either: Either[L, R], fn: Callable[[L], Any]) -> Either[Any, R]:
    """Apply ``fn`` to a Left value; a Right passes through."""
    _check(either)
    if isinstance(either, Left):
        return Left(fn(either.value))
    return either


def flat_map(
    either: Either[L, R],
    fn: Callable[[R], Either[L, Any]],
) -> Either[L, Any]:
    """Chain ``fn`` returning an Either onto a Right value."""
    _check(either)
    if isinstance(either, Right):
        return fn(either.value)
    return either


def apply(
    either_fn: Either[L, Callable[[R], Any]],
    either: Either[L, R],
) -> Either[L, Any]:
    """Apply a Right function to a Right value."""
    _check(either_fn)
    if isinstance(either_fn, Right):
        return map_(either, either_fn.value)
    return either_fn


def fold(
    either: Either[L, R],
    left: Optional[Callable[[L], A]],
    right: Optional[Callable[[R], A]],
) -> Optional[A]:
    """Reduce to a single value with the function for the side present."""
    _check(either)
    if isinstance(either, Left):
        return left(either.value) if left is not None else None
    return right(either.value) if right is not None else None


def match(
    either: Either[L, R],
    left: Optional[Callable[[L], Any]],
    right: Optional[Callable[[R], Any]],
) -> None:
    """Run the function for the side present."""
    fold(either, left, right)
