# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for the Context tree.

Tests cover:
    - Parent/child structure and dispatch bubbling to ancestors
    - Ending, unwinding and disposal with observer notifications
    - Observers subscribing after the context ended
    - Axis dispatch and publishing to descendants
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from unittest.mock import MagicMock, call

import pytest

from miruken.context import (
    Context,
    ContextualBase,
    child_axis,
    descendant_axis,
    publish,
    publish_from_root,
    self_axis,
)
from miruken.enums import EnumContextEndReason, EnumContextState
from miruken.errors import ContextInactiveError, NotHandledError
from miruken.handles import command, handles
from miruken.provides import resolve

# =============================================================================
# Fixtures
# =============================================================================


class Settings:
    def __init__(self, name: str) -> None:
        self.name = name


@dataclass
class Ping:
    pass


class Listener:
    def __init__(self, name: str) -> None:
        self.name = name
        self.received: list[Ping] = []

    @handles
    def ping(self, ping: Ping) -> None:
        self.received.append(ping)


class Recorder:
    """Records the order contexts end in."""

    def __init__(self, log: list[str], name: str) -> None:
        self.log = log
        self.name = name

    def context_ended(self, context: Context, reason: Any) -> None:
        self.log.append(self.name)


def observer_mock() -> MagicMock:
    return MagicMock(spec=["context_ending", "context_ended"])


@pytest.fixture
def tree() -> dict[str, Context]:
    """root -> (child1 -> grandchild, child2), each with a Listener."""
    root = Context(Listener("root"))
    child1 = root.new_child()
    child1.add_handlers(Listener("child1"))
    grandchild = child1.new_child()
    grandchild.add_handlers(Listener("grandchild"))
    child2 = root.new_child()
    child2.add_handlers(Listener("child2"))
    return {
        "root": root,
        "child1": child1,
        "grandchild": grandchild,
        "child2": child2,
    }


def listener(context: Context) -> Listener:
    return next(t for t in context.targets() if isinstance(t, Listener))


# =============================================================================
# Structure
# =============================================================================


class TestContextStructure:
    """Tests for the shape of the context tree."""

    def test_new_child(self) -> None:
        root = Context()
        child = root.new_child()
        assert child.parent is root
        assert root.children == [child]
        assert root.has_children
        assert child.root is root
        assert root.parent is None

    def test_context_provides_itself(self) -> None:
        root = Context()
        child = root.new_child()
        assert resolve(child, Context) is child

    def test_dispatch_bubbles_to_parent(self) -> None:
        root = Context().store(Settings("root"))
        child = root.new_child()
        assert resolve(child, Settings).name == "root"

    def test_child_shadows_parent(self) -> None:
        root = Context().store(Settings("root"))
        child = root.new_child().store(Settings("child"))
        assert resolve(child, Settings).name == "child"
        assert resolve(root, Settings).name == "root"

    def test_parent_does_not_see_children(self) -> None:
        root = Context()
        root.new_child().store(Settings("child"))
        assert resolve(root, Settings) is None


# =============================================================================
# Lifecycle
# =============================================================================


class TestContextLifecycle:
    """Tests for ending contexts and notifying observers."""

    def test_end_notifies_observer(self) -> None:
        ctx = Context()
        observer = observer_mock()
        ctx.observe(observer)
        ctx.end()
        assert ctx.state is EnumContextState.ENDED
        observer.context_ending.assert_called_once_with(ctx, None)
        observer.context_ended.assert_called_once_with(ctx, None)

    def test_end_is_idempotent(self) -> None:
        ctx = Context()
        observer = observer_mock()
        ctx.observe(observer)
        ctx.end()
        ctx.end()
        assert observer.context_ended.call_count == 1

    def test_children_end_in_reverse_order(self) -> None:
        log: list[str] = []
        root = Context()
        for name in ("first", "second", "third"):
            root.new_child().observe(Recorder(log, name))
        root.observe(Recorder(log, "root"))
        root.end()
        assert log == ["third", "second", "first", "root"]
        assert root.children == []

    def test_child_notifications(self) -> None:
        root = Context()
        child = root.new_child()
        observer = MagicMock(spec=["child_context_ending", "child_context_ended"])
        root.observe(observer)
        child.end()
        observer.child_context_ending.assert_called_once_with(child, None)
        observer.child_context_ended.assert_called_once_with(child, None)
        assert root.children == []
        assert root.state is EnumContextState.ACTIVE

    def test_unwind_keeps_context_active(self) -> None:
        root = Context()
        child = root.new_child()
        observer = observer_mock()
        child.observe(observer)
        assert root.unwind() is root
        assert root.state is EnumContextState.ACTIVE
        assert child.state is EnumContextState.ENDED
        observer.context_ended.assert_called_once_with(
            child, EnumContextEndReason.UNWINDED
        )

    def test_with_block_disposes(self) -> None:
        observer = observer_mock()
        with Context() as ctx:
            ctx.observe(observer)
        observer.context_ended.assert_called_once_with(
            ctx, EnumContextEndReason.DISPOSED
        )

    def test_unsubscribe(self) -> None:
        ctx = Context()
        observer = observer_mock()
        subscription = ctx.observe(observer)
        subscription.dispose()
        ctx.end()
        observer.context_ended.assert_not_called()

    def test_observe_after_end_fires_immediately(self) -> None:
        ctx = Context()
        ctx.end()
        observer = observer_mock()
        ctx.observe(observer)
        reason = EnumContextEndReason.ALREADY_ENDED
        assert observer.mock_calls == [
            call.context_ending(ctx, reason),
            call.context_ended(ctx, reason),
        ]

    def test_ended_context_refuses_children(self) -> None:
        ctx = Context()
        ctx.end()
        with pytest.raises(ContextInactiveError):
            ctx.new_child()

    def test_unwind_to_root(self, tree: dict[str, Context]) -> None:
        tree["grandchild"].unwind_to_root()
        assert tree["root"].state is EnumContextState.ACTIVE
        assert not tree["root"].has_children
        assert tree["grandchild"].state is EnumContextState.ENDED


# =============================================================================
# Axes
# =============================================================================


class TestContextAxes:
    """Tests for dispatching along traversal axes."""

    def test_self_axis_ignores_parent(self) -> None:
        root = Context().store(Settings("root"))
        child = root.new_child()
        assert resolve(self_axis(child), Settings) is None

    def test_child_axis(self, tree: dict[str, Context]) -> None:
        ping = Ping()
        command(child_axis(tree["root"]), ping)
        assert listener(tree["child1"]).received == [ping]
        assert listener(tree["root"]).received == []

    def test_descendant_axis_without_match(self) -> None:
        with pytest.raises(NotHandledError):
            command(descendant_axis(Context(Listener("root"))), Ping())

    def test_publish_reaches_self_and_descendants(
        self, tree: dict[str, Context]
    ) -> None:
        ping = Ping()
        command(publish(tree["child1"]), ping)
        assert listener(tree["child1"]).received == [ping]
        assert listener(tree["grandchild"]).received == [ping]
        assert listener(tree["root"]).received == []
        assert listener(tree["child2"]).received == []

    def test_publish_from_root(self, tree: dict[str, Context]) -> None:
        ping = Ping()
        command(publish_from_root(tree["grandchild"]), ping)
        for ctx in tree.values():
            assert listener(ctx).received == [ping]

    def test_publish_without_listeners(self) -> None:
        assert command(publish(Context()), Ping()) is None


# =============================================================================
# Contextual
# =============================================================================


class Screen(ContextualBase):
    pass


class TestContextual:
    """Tests for objects bound to a context."""

    def test_joins_and_leaves_context(self) -> None:
        context = Context()
        screen = Screen()
        screen.context = context
        assert screen in context.targets()
        screen.context = None
        assert screen not in context.targets()

    def test_instances_do_not_share_locks(self) -> None:
        first, second = Screen(), Screen()
        assert first._contextual_lock is first._contextual_lock
        assert first._contextual_lock is not second._contextual_lock
