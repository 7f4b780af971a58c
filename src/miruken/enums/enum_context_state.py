# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""
Context State and End Reason Enumerations.

A context moves through ACTIVE -> ENDING -> ENDED exactly once. The end
reason accompanies ending/ended notifications so observers can tell an
explicit disposal from an unwind of the parent.

Thread Safety:
    All enums in this module are immutable and thread-safe.
"""

from __future__ import annotations

from enum import Enum, unique


@unique
class EnumContextState(str, Enum):
    """Lifecycle state of a context node."""

    ACTIVE = "active"
    """The context accepts children, handlers and observers."""

    ENDING = "ending"
    """The context is notifying observers and ending its children."""

    ENDED = "ended"
    """The context has ended and released its scoped instances."""

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


@unique
class EnumContextEndReason(str, Enum):
    """Reason attached to context ending/ended notifications."""

    ALREADY_ENDED = "already_ended"
    """Observer subscribed after the context started ending."""

    UNWINDED = "unwinded"
    """Context was ended because an ancestor unwound or ended."""

    DISPOSED = "disposed"
    """Context was explicitly disposed."""

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


__all__ = ["EnumContextEndReason", "EnumContextState"]
