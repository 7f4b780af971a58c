# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Context lifecycle observer protocols.

Observers implement any subset of the notifications below; a context checks
each protocol separately before notifying.

Notifications:
    - context_ending / context_ended: the observed context itself
    - child_context_ending / child_context_ended: a child of the observed context
    - contextual_changing / contextual_changed: a Contextual switching contexts
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from miruken.context import Context, ContextualBase
    from miruken.enums import EnumContextEndReason


@runtime_checkable
class ProtocolContextEndingObserver(Protocol):
    def context_ending(self, context: Context, reason: EnumContextEndReason) -> None:
        ...


@runtime_checkable
class ProtocolContextEndedObserver(Protocol):
    def context_ended(self, context: Context, reason: EnumContextEndReason) -> None:
        ...


@runtime_checkable
class ProtocolChildContextEndingObserver(Protocol):
    def child_context_ending(
        self, child: Context, reason: EnumContextEndReason
    ) -> None:
        ...


@runtime_checkable
class ProtocolChildContextEndedObserver(Protocol):
    def child_context_ended(
        self, child: Context, reason: EnumContextEndReason
    ) -> None:
        ...


@runtime_checkable
class ProtocolContextualChangingObserver(Protocol):
    def contextual_changing(
        self,
        contextual: ContextualBase,
        old_context: Optional[Context],
        new_context: Optional[Context],
    ) -> None:
        ...


@runtime_checkable
class ProtocolContextualChangedObserver(Protocol):
    def contextual_changed(
        self,
        contextual: ContextualBase,
        old_context: Optional[Context],
        new_context: Optional[Context],
    ) -> None:
        ...


__all__ = [
    "ProtocolChildContextEndedObserver",
    "ProtocolChildContextEndingObserver",
    "ProtocolContextEndedObserver",
    "ProtocolContextEndingObserver",
    "ProtocolContextualChangedObserver",
    "ProtocolContextualChangingObserver",
]
