# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Validates: contravariant dispatch of validation requests.

Validators declare ``@validates`` bindings taking the object to validate
and the Validates callback, and record failures in the callback's outcome.
Every matching validator runs (validation is dispatched greedily).

Groups restrict which validators run: a validator carrying a Group only
runs when the request names one of its groups (``"*"`` matches all).

Example:
    >>> class UserValidator:
    ...     @validates
    ...     def check(self, user: CreateUser, v: Validates) -> None:
    ...         if not user.name:
    ...             v.outcome.add_error("Name", ValueError("required"))
    >>> validate(handler, CreateUser()).valid
    False
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Optional

from miruken.binding import binding_decorator
from miruken.callback import CallbackBase
from miruken.constraints import Constraint
from miruken.handler import Handler
from miruken.policy import ContravariantPolicy, Policy
from miruken.promise import Promise
from miruken.validates.outcome import Outcome

__all__ = [
    "ANY_GROUP",
    "Group",
    "Validates",
    "groups",
    "validate",
    "validates",
]

ANY_GROUP = "*"

validates = binding_decorator(ContravariantPolicy("validates"))


class Validates(CallbackBase):
    """Callback collecting the validation outcome of ``source``."""

    def __init__(
        self,
        source: Any,
        constraints: Iterable[Any] = (),
    ) -> None:
        if source is None:
            raise ValueError("source cannot be None")
        super().__init__(True, constraints)
        self._source = source
        self._outcome = Outcome()

    @property
    def policy(self) -> Policy:
        return validates.policy

    @property
    def key(self) -> Any:
        return type(self._source)

    @property
    def source(self) -> Any:
        return self._source

    @property
    def outcome(self) -> Outcome:
        return self._outcome

    @property
    def groups(self) -> frozenset[Any]:
        found: set[Any] = set()
        for constraint in self.constraints():
            if isinstance(constraint, Group):
                found |= constraint.groups
        return frozenset(found)

    def in_group(self, group: Any) -> bool:
        return group in self.groups

    def __repr__(self) -> str:
        return f"validates {self._source!r}"


class Group(Constraint):
    """Names the validation groups a validator belongs to."""

    required = True

    def __init__(self, *names: Any) -> None:
        if not names:
            raise ValueError("at least one group required")
        self.groups: set[Any] = set(names)

    def merge(self, constraint: Any) -> bool:
        if isinstance(constraint, Group):
            self.groups |= constraint.groups
            return True
        return False

    def satisfies(self, required: Optional[Constraint], callback: Any) -> bool:
        if not isinstance(required, Group):
            return False
        if ANY_GROUP in self.groups or ANY_GROUP in required.groups:
            return True
        return bool(self.groups & required.groups)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Group) and other.groups == self.groups

    def __hash__(self) -> int:
        return hash((Group, frozenset(self.groups)))

    def __repr__(self) -> str:
        return f"Group({', '.join(map(repr, sorted(self.groups, key=repr)))})"


def groups(*names: Any) -> Group:
    """Build a Group constraint."""
    return Group(*names)


def _publish_outcome(source: Any, outcome: Outcome) -> Outcome:
    setter = getattr(source, "set_validation_outcome", None)
    if callable(setter):
        setter(outcome)
    return outcome


def validate(handler: Handler, source: Any, *constraints: Any) -> Any:
    """Run every validator of ``source``.

    Objects defining ``set_validation_outcome`` receive the outcome.

    Returns:
        The Outcome, or a Promise of it when a validator is asynchronous.
    """
    if handler is None:
        raise ValueError("handler cannot be None")
    request = Validates(source, constraints)
    result = handler.handle(request, True, None)
    if result.is_error:
        raise result.error
    if result.handled:
        pending = request.result(False)
        if isinstance(pending, Promise):
            return pending.then(
                lambda _: _publish_outcome(source, request.outcome)
            )
    return _publish_outcome(source, request.outcome)
