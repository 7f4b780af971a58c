# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""
Filter Stage Enumeration.

Well-known stage numbers for filter pipelines. Filters run in ascending
stage order with ties kept in insertion order; negative stages run last.
Custom filters may use any integer, typically relative to USER.

Thread Safety:
    All enums in this module are immutable and thread-safe.
"""

from __future__ import annotations

from enum import IntEnum, unique

_MAX_INT32 = 2**31 - 1


@unique
class EnumFilterStage(IntEnum):
    """Ordering of filter pipeline stages (lowest first)."""

    CONSTRAINT = 0
    """Binding constraint enforcement."""

    LOGGING = 10
    VALIDATION = 20
    AUTHORIZATION = 30

    USER = 100
    """Default stage for application filters."""

    LIFESTYLE = _MAX_INT32 - 1000
    """Instance caching (single, scoped)."""

    INITIALIZER = _MAX_INT32
    """Post construction initialization."""


__all__ = ["EnumFilterStage"]
