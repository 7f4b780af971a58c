# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Axis-scoped traversal over graphs of ProtocolTraversing nodes.

Every walk keeps a visited set keyed by node identity and raises
TraversalCircularityError as soon as a node is encountered twice.

Visitors receive one node at a time and return True to stop the walk.
Raising inside a visitor aborts the walk and propagates to the caller.
All traversal functions return True when the walk was stopped by a visitor.

Example:
    >>> visited = []
    >>> traverse_axis(
    ...     node, EnumTraversingAxis.SELF_OR_DESCENDANT,
    ...     lambda n: visited.append(n) or False,
    ... )
    False
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from typing import Optional

from miruken.enums import EnumTraversingAxis
from miruken.errors import TraversalCircularityError
from miruken.protocols import ProtocolTraversing

__all__ = [
    "Visitor",
    "traverse_axis",
    "traverse_level_order",
    "traverse_post_order",
    "traverse_pre_order",
    "traverse_reverse_level_order",
]

Visitor = Callable[[ProtocolTraversing], bool]


def _check_circularity(node: ProtocolTraversing, visited: set[int]) -> None:
    key = id(node)
    if key in visited:
        raise TraversalCircularityError(node)
    visited.add(key)


def traverse_axis(
    node: ProtocolTraversing,
    axis: EnumTraversingAxis,
    visitor: Optional[Visitor],
) -> bool:
    """Visit the nodes selected by ``axis`` relative to ``node``.

    Raises:
        TraversalCircularityError: If the graph contains a cycle.
        ValueError: If ``axis`` is not recognized.
    """
    if visitor is None:
        return False
    if axis == EnumTraversingAxis.SELF:
        return bool(visitor(node))
    if axis == EnumTraversingAxis.ROOT:
        return _traverse_root(node, visitor)
    if axis == EnumTraversingAxis.CHILD:
        return _traverse_children(node, visitor, with_self=False)
    if axis == EnumTraversingAxis.SELF_OR_CHILD:
        return _traverse_children(node, visitor, with_self=True)
    if axis == EnumTraversingAxis.SIBLING:
        return _traverse_self_sibling_or_ancestor(node, visitor, False, False)
    if axis == EnumTraversingAxis.SELF_OR_SIBLING:
        return _traverse_self_sibling_or_ancestor(node, visitor, True, False)
    if axis == EnumTraversingAxis.SELF_SIBLING_OR_ANCESTOR:
        return _traverse_self_sibling_or_ancestor(node, visitor, True, True)
    if axis == EnumTraversingAxis.ANCESTOR:
        return _traverse_ancestors(node, visitor, with_self=False)
    if axis == EnumTraversingAxis.SELF_OR_ANCESTOR:
        return _traverse_ancestors(node, visitor, with_self=True)
    if axis == EnumTraversingAxis.DESCENDANT:
        return _traverse_descendants(node, visitor, False, traverse_level_order)
    if axis == EnumTraversingAxis.SELF_OR_DESCENDANT:
        return _traverse_descendants(node, visitor, True, traverse_level_order)
    if axis == EnumTraversingAxis.DESCENDANT_REVERSE:
        return _traverse_descendants(
            node, visitor, False, traverse_reverse_level_order
        )
    if axis == EnumTraversingAxis.SELF_OR_DESCENDANT_REVERSE:
        return _traverse_descendants(
            node, visitor, True, traverse_reverse_level_order
        )
    raise ValueError(f"unrecognized axis {axis!r}")


def _traverse_root(node: ProtocolTraversing, visitor: Visitor) -> bool:
    visited: set[int] = set()
    root = node
    _check_circularity(root, visited)
    parent = root.parent
    while parent is not None:
        _check_circularity(parent, visited)
        root = parent
        parent = root.parent
    return bool(visitor(root))


def _traverse_children(
    node: ProtocolTraversing,
    visitor: Visitor,
    with_self: bool,
) -> bool:
    if with_self and visitor(node):
        return True
    for child in node.children:
        if visitor(child):
            return True
    return False


def _traverse_ancestors(
    node: ProtocolTraversing,
    visitor: Visitor,
    with_self: bool,
) -> bool:
    visited: set[int] = set()
    _check_circularity(node, visited)
    if with_self and visitor(node):
        return True
    parent = node.parent
    while parent is not None:
        _check_circularity(parent, visited)
        if visitor(parent):
            return True
        parent = parent.parent
    return False


def _traverse_self_sibling_or_ancestor(
    node: ProtocolTraversing,
    visitor: Visitor,
    with_self: bool,
    with_ancestors: bool,
) -> bool:
    if with_self and visitor(node):
        return True
    parent = node.parent
    if parent is None:
        return False
    for sibling in parent.children:
        if sibling is node:
            continue
        if visitor(sibling):
            return True
    if with_ancestors:
        return _traverse_ancestors(parent, visitor, with_self=True)
    return False


def _traverse_descendants(
    node: ProtocolTraversing,
    visitor: Visitor,
    with_self: bool,
    walk: Callable[[ProtocolTraversing, Visitor], bool],
) -> bool:
    def visit(child: ProtocolTraversing) -> bool:
        if child is not node or with_self:
            return bool(visitor(child))
        return False

    return walk(node, visit)


def traverse_pre_order(node: ProtocolTraversing, visitor: Visitor) -> bool:
    """Visit ``node`` before its children, depth first."""
    return _pre_order(node, visitor, set())


def _pre_order(
    node: ProtocolTraversing,
    visitor: Visitor,
    visited: set[int],
) -> bool:
    _check_circularity(node, visited)
    if visitor(node):
        return True
    for child in node.children:
        if _pre_order(child, visitor, visited):
            return True
    return False


def traverse_post_order(node: ProtocolTraversing, visitor: Visitor) -> bool:
    """Visit the children of ``node`` depth first before ``node`` itself."""
    return _post_order(node, visitor, set())


def _post_order(
    node: ProtocolTraversing,
    visitor: Visitor,
    visited: set[int],
) -> bool:
    _check_circularity(node, visited)
    for child in node.children:
        if _post_order(child, visitor, visited):
            return True
    return bool(visitor(node))


def traverse_level_order(node: ProtocolTraversing, visitor: Visitor) -> bool:
    """Visit breadth first, one level at a time."""
    visited: set[int] = set()
    queue: deque[ProtocolTraversing] = deque([node])
    while queue:
        current = queue.popleft()
        _check_circularity(current, visited)
        if visitor(current):
            return True
        queue.extend(child for child in current.children if child is not None)
    return False


def traverse_reverse_level_order(
    node: ProtocolTraversing,
    visitor: Visitor,
) -> bool:
    """Visit the deepest level first, each level in reverse order."""
    visited: set[int] = set()
    queue: deque[ProtocolTraversing] = deque([node])
    stack: list[ProtocolTraversing] = []
    while queue:
        current = queue.popleft()
        _check_circularity(current, visited)
        stack.append(current)
        queue.extend(
            child for child in reversed(current.children) if child is not None
        )
    while stack:
        if visitor(stack.pop()):
            return True
    return False
