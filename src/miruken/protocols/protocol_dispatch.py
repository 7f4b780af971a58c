# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Dispatch customization protocols.

Callbacks implementing ProtocolCustomizeDispatch take over how they are
dispatched to a handler. Handlers implementing ProtocolPolicyDispatch take
over policy dispatch instead of using their handler descriptor. Guards
implementing ProtocolCallbackGuard can veto a binding; they return a reset
function (possibly a no-op) to approve or None to deny.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from miruken.handle_result import HandleResult
    from miruken.handler import Handler


@runtime_checkable
class ProtocolCustomizeDispatch(Protocol):
    def dispatch(
        self,
        handler: Any,
        greedy: bool,
        composer: Optional[Handler],
    ) -> HandleResult:
        ...


@runtime_checkable
class ProtocolPolicyDispatch(Protocol):
    def dispatch_policy(
        self,
        callback: Any,
        greedy: bool,
        composer: Optional[Handler],
    ) -> HandleResult:
        ...


@runtime_checkable
class ProtocolCallbackGuard(Protocol):
    def can_dispatch(
        self,
        handler: Any,
        binding: Any,
    ) -> Optional[Callable[[], None]]:
        ...


__all__ = [
    "ProtocolCallbackGuard",
    "ProtocolCustomizeDispatch",
    "ProtocolPolicyDispatch",
]
