# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for axis traversal over ProtocolTraversing graphs.

Tests cover:
    - Every traversal axis over a small tree
    - Pre, post, level and reverse level order walks
    - Visitor stop and visitor errors
    - Circularity detection
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Optional

import pytest

from miruken.enums import EnumTraversingAxis
from miruken.errors import TraversalCircularityError
from miruken.graph import (
    traverse_axis,
    traverse_level_order,
    traverse_post_order,
    traverse_pre_order,
    traverse_reverse_level_order,
)
from miruken.protocols import ProtocolTraversing


class TreeNode:
    """Minimal traversable node."""

    def __init__(self, name: str, *children: TreeNode) -> None:
        self.name = name
        self._parent: Optional[TreeNode] = None
        self._children: list[TreeNode] = []
        self.add(*children)

    @property
    def parent(self) -> Optional[TreeNode]:
        return self._parent

    @property
    def children(self) -> list[TreeNode]:
        return list(self._children)

    def add(self, *children: TreeNode) -> TreeNode:
        for child in children:
            child._parent = self
            self._children.append(child)
        return self

    def traverse(
        self,
        axis: EnumTraversingAxis,
        visitor: Callable[[ProtocolTraversing], bool],
    ) -> bool:
        return traverse_axis(self, axis, visitor)

    def __repr__(self) -> str:
        return self.name


def _names(node: TreeNode, axis: EnumTraversingAxis) -> list[str]:
    visited: list[str] = []
    node.traverse(axis, lambda n: visited.append(n.name) or False)
    return visited


@pytest.fixture
def tree() -> dict[str, TreeNode]:
    """root -> (child1 -> (child1_1), child2, child3 -> (child3_1, child3_2))."""
    nodes = {
        name: TreeNode(name)
        for name in (
            "root",
            "child1",
            "child1_1",
            "child2",
            "child3",
            "child3_1",
            "child3_2",
        )
    }
    nodes["child1"].add(nodes["child1_1"])
    nodes["child3"].add(nodes["child3_1"], nodes["child3_2"])
    nodes["root"].add(nodes["child1"], nodes["child2"], nodes["child3"])
    return nodes


# =============================================================================
# Axes
# =============================================================================


class TestTraverseAxis:
    """Tests for traverse_axis."""

    def test_protocol_conformance(self, tree: dict[str, TreeNode]) -> None:
        assert isinstance(tree["root"], ProtocolTraversing)

    def test_self(self, tree: dict[str, TreeNode]) -> None:
        assert _names(tree["child2"], EnumTraversingAxis.SELF) == ["child2"]

    def test_root(self, tree: dict[str, TreeNode]) -> None:
        assert _names(tree["child3_2"], EnumTraversingAxis.ROOT) == ["root"]
        assert _names(tree["root"], EnumTraversingAxis.ROOT) == ["root"]

    def test_child(self, tree: dict[str, TreeNode]) -> None:
        assert _names(tree["root"], EnumTraversingAxis.CHILD) == [
            "child1",
            "child2",
            "child3",
        ]

    def test_self_or_child(self, tree: dict[str, TreeNode]) -> None:
        assert _names(tree["child3"], EnumTraversingAxis.SELF_OR_CHILD) == [
            "child3",
            "child3_1",
            "child3_2",
        ]

    def test_sibling(self, tree: dict[str, TreeNode]) -> None:
        assert _names(tree["child2"], EnumTraversingAxis.SIBLING) == [
            "child1",
            "child3",
        ]

    def test_self_or_sibling(self, tree: dict[str, TreeNode]) -> None:
        assert _names(tree["child2"], EnumTraversingAxis.SELF_OR_SIBLING) == [
            "child2",
            "child1",
            "child3",
        ]

    def test_ancestor(self, tree: dict[str, TreeNode]) -> None:
        assert _names(tree["child3_1"], EnumTraversingAxis.ANCESTOR) == [
            "child3",
            "root",
        ]

    def test_self_or_ancestor(self, tree: dict[str, TreeNode]) -> None:
        assert _names(tree["child1_1"], EnumTraversingAxis.SELF_OR_ANCESTOR) == [
            "child1_1",
            "child1",
            "root",
        ]

    def test_self_sibling_or_ancestor(self, tree: dict[str, TreeNode]) -> None:
        axis = EnumTraversingAxis.SELF_SIBLING_OR_ANCESTOR
        assert _names(tree["child3_1"], axis) == [
            "child3_1",
            "child3_2",
            "child3",
            "root",
        ]

    def test_descendant(self, tree: dict[str, TreeNode]) -> None:
        assert _names(tree["root"], EnumTraversingAxis.DESCENDANT) == [
            "child1",
            "child2",
            "child3",
            "child1_1",
            "child3_1",
            "child3_2",
        ]

    def test_self_or_descendant(self, tree: dict[str, TreeNode]) -> None:
        names = _names(tree["child3"], EnumTraversingAxis.SELF_OR_DESCENDANT)
        assert names == ["child3", "child3_1", "child3_2"]

    def test_descendant_reverse(self, tree: dict[str, TreeNode]) -> None:
        names = _names(tree["root"], EnumTraversingAxis.DESCENDANT_REVERSE)
        assert names == [
            "child1_1",
            "child3_1",
            "child3_2",
            "child1",
            "child2",
            "child3",
        ]

    def test_self_or_descendant_reverse(self, tree: dict[str, TreeNode]) -> None:
        axis = EnumTraversingAxis.SELF_OR_DESCENDANT_REVERSE
        assert _names(tree["child3"], axis) == ["child3_1", "child3_2", "child3"]

    def test_visitor_stop(self, tree: dict[str, TreeNode]) -> None:
        """Returning True from the visitor stops the walk."""
        visited: list[str] = []

        def visit(node: ProtocolTraversing) -> bool:
            visited.append(node.name)
            return node.name == "child2"

        stopped = traverse_axis(tree["root"], EnumTraversingAxis.DESCENDANT, visit)
        assert stopped
        assert visited == ["child1", "child2"]

    def test_visitor_error_aborts(self, tree: dict[str, TreeNode]) -> None:
        def visit(node: ProtocolTraversing) -> bool:
            raise RuntimeError(node.name)

        with pytest.raises(RuntimeError, match="child1"):
            traverse_axis(tree["root"], EnumTraversingAxis.CHILD, visit)


# =============================================================================
# Walk Orders
# =============================================================================


class TestWalkOrders:
    """Tests for the depth and breadth first walks."""

    def test_pre_order(self, tree: dict[str, TreeNode]) -> None:
        visited: list[str] = []
        traverse_pre_order(tree["root"], lambda n: visited.append(n.name) or False)
        assert visited == [
            "root",
            "child1",
            "child1_1",
            "child2",
            "child3",
            "child3_1",
            "child3_2",
        ]

    def test_post_order(self, tree: dict[str, TreeNode]) -> None:
        visited: list[str] = []
        traverse_post_order(tree["root"], lambda n: visited.append(n.name) or False)
        assert visited == [
            "child1_1",
            "child1",
            "child2",
            "child3_1",
            "child3_2",
            "child3",
            "root",
        ]

    def test_level_order(self, tree: dict[str, TreeNode]) -> None:
        visited: list[str] = []
        traverse_level_order(tree["root"], lambda n: visited.append(n.name) or False)
        assert visited[0] == "root"
        assert visited[1:4] == ["child1", "child2", "child3"]

    def test_reverse_level_order(self, tree: dict[str, TreeNode]) -> None:
        visited: list[str] = []
        traverse_reverse_level_order(
            tree["root"], lambda n: visited.append(n.name) or False
        )
        assert visited[-1] == "root"
        assert set(visited[:3]) == {"child1_1", "child3_1", "child3_2"}


# =============================================================================
# Circularity
# =============================================================================


class TestCircularity:
    """Cycles fail with TraversalCircularityError."""

    @pytest.fixture
    def cyclic(self) -> TreeNode:
        root = TreeNode("root")
        child = TreeNode("child")
        root.add(child)
        child._children.append(root)
        return root

    @pytest.mark.parametrize(
        "walk",
        [
            traverse_pre_order,
            traverse_post_order,
            traverse_level_order,
            traverse_reverse_level_order,
        ],
    )
    def test_walks_detect_cycles(self, cyclic: TreeNode, walk) -> None:
        visits: dict[str, int] = {}

        def visit(node: ProtocolTraversing) -> bool:
            visits[node.name] = visits.get(node.name, 0) + 1
            return False

        with pytest.raises(TraversalCircularityError):
            walk(cyclic, visit)
        assert all(count <= 1 for count in visits.values())

    def test_ancestors_detect_cycles(self) -> None:
        first = TreeNode("first")
        second = TreeNode("second")
        first._parent = second
        second._parent = first
        with pytest.raises(TraversalCircularityError):
            traverse_axis(first, EnumTraversingAxis.ANCESTOR, lambda n: False)
