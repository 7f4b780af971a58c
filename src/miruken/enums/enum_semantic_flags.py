# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""
Callback Semantic Flags.

Flags adjusting how a callback is dispatched through a handler built with
``call_with`` (see ``miruken.semantics``).

Thread Safety:
    All enums in this module are immutable and thread-safe.
"""

from __future__ import annotations

from enum import IntFlag


class EnumSemanticFlags(IntFlag):
    """Dispatch semantics applied to every callback."""

    NONE = 0

    BROADCAST = 1
    """Dispatch greedily to every handler."""

    BEST_EFFORT = 2
    """Report unhandled or rejected callbacks as handled."""

    NOTIFY = BROADCAST | BEST_EFFORT


__all__ = ["EnumSemanticFlags"]
