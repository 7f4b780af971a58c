# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Traversable graph node protocol.

Nodes expose their parent and children and can walk themselves along an
EnumTraversingAxis. The context tree is the primary implementation.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from miruken.enums import EnumTraversingAxis


@runtime_checkable
class ProtocolTraversing(Protocol):
    """Protocol for nodes of a traversal graph."""

    @property
    def parent(self) -> Optional[ProtocolTraversing]:
        """Parent node, or None for a root."""
        ...

    @property
    def children(self) -> Sequence[ProtocolTraversing]:
        """Snapshot of the child nodes in insertion order."""
        ...

    def traverse(
        self,
        axis: EnumTraversingAxis,
        visitor: Callable[[ProtocolTraversing], bool],
    ) -> bool:
        """Visit nodes along ``axis``; the visitor returns True to stop."""
        ...


__all__ = ["ProtocolTraversing"]
