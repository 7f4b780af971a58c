# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""
Mapping Format Enumerations.

Direction and matching rule of a mapping ``Format`` constraint
(see ``miruken.maps``).

Thread Safety:
    All enums in this module are immutable and thread-safe.
"""

from __future__ import annotations

from enum import Enum, unique


@unique
class EnumFormatDirection(str, Enum):
    """Direction a format applies in."""

    NONE = "none"
    """Format names the representation itself (``as``)."""

    TO = "to"
    """Mapping produces the format."""

    FROM = "from"
    """Mapping consumes the format."""

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


@unique
class EnumFormatRule(str, Enum):
    """How a format identifier is compared."""

    EQUALS = "equals"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    PATTERN = "pattern"

    ALL = "all"
    """Wildcard ``*`` matching every identifier."""

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


__all__ = ["EnumFormatDirection", "EnumFormatRule"]
