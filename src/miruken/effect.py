# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Effects: side behaviors returned from handlers.

A binding may return effects next to its primary output, either as a tuple
``(value, effect, ...)`` or as the only output. Effects are applied once the
binding completes and are removed from the outputs before the policy accepts
them. An effect returning a Promise makes the dispatch wait for it; an effect
raising (or rejecting) fails the dispatch.

Effects:
    - CascadeEffect (``cascade(...)``): dispatch further commands
    - EffectGroup (``group(...)``): apply several effects together

Example:
    >>> @handles
    ... def place(self, order: PlaceOrder) -> tuple[Confirmation, CascadeEffect]:
    ...     return Confirmation(order.id), cascade(ReserveStock(order.items))
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional

from miruken.promise import Promise

if TYPE_CHECKING:
    from miruken.handler import HandleContext, Handler

__all__ = [
    "CascadeEffect",
    "Effect",
    "EffectGroup",
    "apply_effects",
    "cascade",
    "group",
    "make_effect",
]

logger = logging.getLogger(__name__)


class Effect(ABC):
    """Side behavior applied after a binding completes."""

    @abstractmethod
    def apply(self, ctx: HandleContext) -> Optional[Promise[Any]]:
        """Apply the effect, optionally returning a Promise to wait on."""


class _EffectAdapter(Effect):
    """Adapts an object exposing ``apply(ctx)``."""

    def __init__(self, target: Any) -> None:
        self._target = target

    def apply(self, ctx: HandleContext) -> Optional[Promise[Any]]:
        return self._target.apply(ctx)

    def __repr__(self) -> str:
        return f"Effect({self._target!r})"


def make_effect(value: Any) -> Optional[Effect]:
    """Return ``value`` as an Effect, or None if it is not one."""
    if value is None:
        return None
    if isinstance(value, Effect):
        return value
    if isinstance(value, type):
        return None
    if callable(getattr(value, "apply", None)):
        return _EffectAdapter(value)
    return None


def apply_effects(ctx: HandleContext, outputs: Sequence[Any]) -> Any:
    """Apply the effects in ``outputs`` and return the remaining outputs.

    The first output is only treated as an effect when it is an Effect
    instance; later outputs may be any object exposing ``apply``.

    Returns:
        The outputs without effects, or a Promise of them when an effect is
        asynchronous.
    """
    if not outputs:
        return list(outputs)
    remaining: list[Any] = []
    pending: list[Promise[Any]] = []
    for index, output in enumerate(outputs):
        if index == 0:
            effect = output if isinstance(output, Effect) else None
        else:
            effect = make_effect(output)
        if effect is None:
            remaining.append(output)
            continue
        applied = effect.apply(ctx)
        if isinstance(applied, Promise):
            pending.append(applied)
    if pending:
        return Promise.all(*pending).then(lambda _: remaining)
    return remaining


class CascadeEffect(Effect):
    """Dispatches callbacks as commands when applied.

    Commands go to ``handler`` when set, otherwise to the composer of the
    binding that returned the effect.
    """

    def __init__(self, *callbacks: Any) -> None:
        self._callbacks = tuple(callbacks)
        self._constraints: tuple[Any, ...] = ()
        self._handler: Optional[Handler] = None
        self._greedy = False

    @property
    def callbacks(self) -> tuple[Any, ...]:
        return self._callbacks

    def with_constraints(self, *constraints: Any) -> CascadeEffect:
        self._constraints = constraints
        return self

    def with_handler(self, handler: Handler) -> CascadeEffect:
        self._handler = handler
        return self

    def greedy(self, greedy: bool = True) -> CascadeEffect:
        self._greedy = greedy
        return self

    def apply(self, ctx: HandleContext) -> Optional[Promise[Any]]:
        # Import at runtime to avoid circular import
        from miruken.handles import command, command_all

        if not self._callbacks:
            return None
        handler = self._handler or ctx.composer
        send = command_all if self._greedy else command
        promises = []
        for callback in self._callbacks:
            pending = send(handler, callback, *self._constraints)
            if pending is not None:
                promises.append(pending)
        if not promises:
            return None
        if len(promises) == 1:
            return promises[0]
        return Promise.all(*promises)

    def __repr__(self) -> str:
        return f"CascadeEffect({', '.join(map(repr, self._callbacks))})"


class EffectGroup(Effect):
    """Applies several effects, waiting for all of them."""

    def __init__(self, *effects: Any) -> None:
        resolved = []
        for effect in effects:
            made = make_effect(effect)
            if made is None:
                raise TypeError(f"{effect!r} is not an effect")
            resolved.append(made)
        self._effects = tuple(resolved)

    @property
    def effects(self) -> tuple[Effect, ...]:
        return self._effects

    def apply(self, ctx: HandleContext) -> Optional[Promise[Any]]:
        promises = [
            applied
            for applied in (effect.apply(ctx) for effect in self._effects)
            if isinstance(applied, Promise)
        ]
        if not promises:
            return None
        if len(promises) == 1:
            return promises[0]
        return Promise.all(*promises)


def cascade(*callbacks: Any) -> CascadeEffect:
    """Effect dispatching ``callbacks`` as commands."""
    return CascadeEffect(*callbacks)


def group(*effects: Any) -> EffectGroup:
    """Effect applying ``effects`` together."""
    return EffectGroup(*effects)
