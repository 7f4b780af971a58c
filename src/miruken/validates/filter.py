# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Validation filter for Handles bindings.

The filter validates the message before the binding runs and raises the
Outcome when it is invalid, so the binding is never invoked. With
``output=True`` the first output is validated as well.

Example:
    >>> class Users:
    ...     @handles(ValidateProvider)
    ...     def create(self, command: CreateUser) -> User: ...
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from miruken.enums import EnumFilterStage
from miruken.filter import Filter
from miruken.handles import Handles
from miruken.promise import Promise
from miruken.validates.outcome import Outcome
from miruken.validates.validates import validate

if TYPE_CHECKING:
    from miruken.filter import Next
    from miruken.handler import HandleContext, Handler

__all__ = ["ValidateFilter", "ValidateProvider"]


def _check(outcome: Outcome) -> Outcome:
    if not outcome.valid:
        raise outcome
    return outcome


def _validated(composer: Handler, target: Any) -> Any:
    """Validate ``target`` returning None, or a Promise when asynchronous.

    Raises:
        Outcome: If ``target`` is synchronously found invalid.
    """
    outcome = validate(composer, target)
    if isinstance(outcome, Promise):
        return outcome.then(_check)
    _check(outcome)
    return None


class ValidateFilter(Filter):
    """Validates the input (and optionally the output) of a binding."""

    order = EnumFilterStage.VALIDATION

    def next(
        self,
        next_: Next,
        ctx: HandleContext,
        provider: Any,
    ) -> Any:
        composer = ctx.composer
        output = bool(getattr(provider, "output", False))

        def validate_output(outputs: list[Any]) -> Any:
            if not output or not outputs or outputs[0] is None:
                return outputs
            pending = _validated(composer, outputs[0])
            if pending is None:
                return outputs
            return pending.then(lambda _: outputs)

        def proceed(_: Any = None) -> Any:
            outputs = next_.pipe()
            if isinstance(outputs, Promise):
                return outputs.then(validate_output)
            return validate_output(outputs)

        pending = _validated(composer, ctx.callback.source)
        if pending is None:
            return proceed()
        return pending.then(proceed)

    def __repr__(self) -> str:
        return "ValidateFilter()"


_FILTERS = (ValidateFilter(),)


class ValidateProvider:
    """Filter provider validating Handles messages.

    Args:
        output: Also validate the first output of the binding.
    """

    required = False

    def __init__(self, output: bool = False) -> None:
        self.output = output

    def applies_to(self, callback: Any) -> bool:
        return isinstance(callback, Handles) and callback.source is not None

    def filters(
        self,
        binding: Any,
        callback: Any,
        composer: Handler,
    ) -> Sequence[Any]:
        return _FILTERS

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ValidateProvider) and other.output == self.output

    def __hash__(self) -> int:
        return hash((ValidateProvider, self.output))

    def __repr__(self) -> str:
        return f"ValidateProvider(output={self.output})"
