# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Binding constraints and the filter enforcing them.

Bindings declare constraints as decorator members; callbacks carry the
constraints they require. The constraint filter (stage CONSTRAINT) runs on
every binding and aborts the pipeline when the two sides disagree.

Matching Rules:
    - Implied constraints are always evaluated against the callback alone
    - A callback without constraints rejects bindings with required ones
    - A callback with constraints rejects bindings without explicit ones
    - Every callback constraint must be satisfied by a binding constraint
    - Every required binding constraint must satisfy a callback constraint

Example:
    >>> class LocalSettings:
    ...     @provides(Named("local"))
    ...     def __init__(self): ...
    >>> resolve(handler, LocalSettings, Named("local"))
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Optional, TypeVar

from miruken.enums import EnumFilterStage
from miruken.filter import Filter

if TYPE_CHECKING:
    from miruken.binding import Binding
    from miruken.filter import Next
    from miruken.handler import HandleContext, Handler

__all__ = [
    "Constraint",
    "ConstraintFilter",
    "ConstraintProvider",
    "Metadata",
    "Named",
    "Qualifier",
    "first_constraint",
]

TConstraint = TypeVar("TConstraint", bound="Constraint")


class Constraint(ABC):
    """Declarative predicate relating a binding to a callback.

    Attributes:
        required: The binding is only selected when the callback carries a
            matching constraint.
        implied: The constraint inspects the callback itself and is checked
            even when the callback carries no constraints.
    """

    required: bool = False
    implied: bool = False

    @abstractmethod
    def satisfies(self, required: Optional[Constraint], callback: Any) -> bool:
        """Return True if this binding constraint satisfies ``required``.

        ``required`` is None when evaluating an implied constraint.
        """


class Named(Constraint):
    """Matches callbacks requesting the same name."""

    def __init__(self, name: str) -> None:
        if not name or not name.strip():
            raise ValueError("Named constraint requires a non-empty name")
        self.name = name

    def satisfies(self, required: Optional[Constraint], callback: Any) -> bool:
        return isinstance(required, Named) and required.name == self.name

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Named) and other.name == self.name

    def __hash__(self) -> int:
        return hash((Named, self.name))

    def __repr__(self) -> str:
        return f"Named({self.name!r})"


class Metadata(Constraint):
    """Matches callbacks requesting identical key/value metadata."""

    def __init__(
        self,
        metadata: Optional[Mapping[Any, Any]] = None,
        **kwargs: Any,
    ) -> None:
        self.metadata: dict[Any, Any] = {**(metadata or {}), **kwargs}

    def satisfies(self, required: Optional[Constraint], callback: Any) -> bool:
        return isinstance(required, Metadata) and required.metadata == self.metadata

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Metadata) and other.metadata == self.metadata

    def __hash__(self) -> int:
        return hash((Metadata, tuple(sorted(map(repr, self.metadata.items())))))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.metadata!r})"


class Qualifier(Constraint):
    """Matches callbacks requesting the same qualifier type.

    Subclass to declare a qualifier:

        >>> class Programmer(Qualifier): ...
    """

    def satisfies(self, required: Optional[Constraint], callback: Any) -> bool:
        return required is not None and type(required) is type(self)

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self)

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ConstraintFilter(Filter):
    """Aborts bindings whose constraints disagree with the callback."""

    order = EnumFilterStage.CONSTRAINT

    def next(
        self,
        next_: Next,
        ctx: HandleContext,
        provider: Any,
    ) -> Any:
        constraints: Sequence[Constraint] = getattr(provider, "constraints", ())
        callback = ctx.callback
        if not _satisfied(constraints, callback):
            return next_.abort()
        return next_.pipe()


def _callback_constraints(callback: Any) -> tuple[Any, ...]:
    get = getattr(callback, "constraints", None)
    return tuple(get()) if callable(get) else ()


def _satisfied(constraints: Sequence[Constraint], callback: Any) -> bool:
    explicit = []
    for constraint in constraints:
        if constraint.implied:
            if not constraint.satisfies(None, callback):
                return False
        else:
            explicit.append(constraint)

    requested = _callback_constraints(callback)
    if not requested:
        return not any(c.required for c in explicit)
    if not explicit:
        return False

    matched: set[int] = set()
    for request in requested:
        for constraint in explicit:
            if constraint.satisfies(request, callback):
                if constraint.required:
                    matched.add(id(constraint))
                break
        else:
            return False
    return all(id(c) in matched for c in explicit if c.required)


_CONSTRAINT_FILTERS = (ConstraintFilter(),)


class ConstraintProvider:
    """Required filter provider carrying a binding's constraints."""

    required = True

    def __init__(self, constraints: Iterable[Constraint] = ()) -> None:
        self.constraints: tuple[Constraint, ...] = tuple(constraints)

    def filters(
        self,
        binding: Binding,
        callback: Any,
        composer: Handler,
    ) -> Sequence[Any]:
        return _CONSTRAINT_FILTERS

    def __repr__(self) -> str:
        return f"ConstraintProvider({list(self.constraints)!r})"


def first_constraint(
    source: Any,
    constraint_type: type[TConstraint],
) -> Optional[TConstraint]:
    """Return the first constraint of ``constraint_type`` carried by ``source``.

    ``source`` may be a callback, a binding or a sequence of constraints.
    """
    if isinstance(source, (list, tuple)):
        candidates: Iterable[Any] = source
    else:
        candidates = _callback_constraints(source) or getattr(source, "constraints", ())
        if callable(candidates):
            candidates = candidates()
    for constraint in candidates:
        if isinstance(constraint, constraint_type):
            return constraint
    return None
