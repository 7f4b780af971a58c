# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""
Traversing Axis Enumeration.

Names every axis a traversal graph can be walked along. The axis decides
which nodes are visited and in which order (see ``miruken.graph``).

Thread Safety:
    All enums in this module are immutable and thread-safe.
"""

from __future__ import annotations

from enum import Enum, unique


@unique
class EnumTraversingAxis(str, Enum):
    """Axis of traversal relative to a starting node."""

    SELF = "self"
    """Only the starting node."""

    ROOT = "root"
    """The root of the starting node's tree."""

    CHILD = "child"
    """Direct children of the starting node."""

    SIBLING = "sibling"
    """Other children of the starting node's parent."""

    ANCESTOR = "ancestor"
    """Parent, grandparent, ... up to the root."""

    DESCENDANT = "descendant"
    """All descendants in level order."""

    DESCENDANT_REVERSE = "descendant_reverse"
    """All descendants in reverse level order."""

    SELF_OR_CHILD = "self_or_child"
    SELF_OR_SIBLING = "self_or_sibling"
    SELF_OR_ANCESTOR = "self_or_ancestor"
    SELF_OR_DESCENDANT = "self_or_descendant"
    SELF_OR_DESCENDANT_REVERSE = "self_or_descendant_reverse"

    SELF_SIBLING_OR_ANCESTOR = "self_sibling_or_ancestor"
    """Self, then siblings, then ancestors."""

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


__all__ = ["EnumTraversingAxis"]
