# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Batch participant protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from miruken.handler import Handler


@runtime_checkable
class ProtocolBatching(Protocol):
    """Protocol for handlers that collect work and complete it as a batch."""

    def complete_batch(self, composer: Handler) -> Any:
        """Complete collected work returning a value, a Promise, or raising."""
        ...


__all__ = ["ProtocolBatching"]
