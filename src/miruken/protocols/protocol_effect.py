# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Side-effect protocol for additional handler outputs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from miruken.handler import HandleContext
    from miruken.promise import Promise


@runtime_checkable
class ProtocolEffect(Protocol):
    """Protocol for behaviors applied after the primary output is accepted."""

    def apply(self, ctx: HandleContext) -> Optional[Promise[object]]:
        """Apply the effect, optionally returning a Promise to wait on."""
        ...


__all__ = ["ProtocolEffect"]
