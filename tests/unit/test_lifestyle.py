# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for the Single and Scoped lifestyles.

Tests cover:
    - Implicit and explicit singletons, retried after failure or no result
    - Scoped instances per context, rooted scopes and disposal on end
    - Lifestyle compatibility of dependencies
    - Contextual instances leaving their context
"""

from __future__ import annotations

from typing import Optional

import pytest

from miruken.composition import to_handler
from miruken.context import Context, ContextualBase
from miruken.errors import ContextInactiveError, InvalidOperationError
from miruken.handler import Handler
from miruken.lifestyle import Scoped, Single
from miruken.promise import Deferred, Promise
from miruken.provides import provides, resolve
from miruken.setup import setup

# =============================================================================
# Services
# =============================================================================


class Clock:
    pass


class Registry:
    @provides(Single)
    def __init__(self) -> None:
        pass


class Connection:
    pass


class Token:
    pass


class Report:
    pass


class FlakyServices:
    def __init__(self) -> None:
        self.connections = 0
        self.tokens = 0

    @provides(Single)
    def connection(self) -> Connection:
        self.connections += 1
        if self.connections == 1:
            raise ConnectionError("refused")
        return Connection()

    @provides(Single)
    def token(self) -> Token:
        self.tokens += 1
        return None if self.tokens == 1 else Token()  # type: ignore[return-value]

    @provides(Single)
    def report(self) -> Promise[Report]:
        return Promise.resolve(Report())


class Session:
    @provides(Scoped)
    def __init__(self) -> None:
        self.disposed = 0

    def dispose(self) -> None:
        self.disposed += 1


class Tenant:
    @provides(Scoped(rooted=True))
    def __init__(self) -> None:
        pass


class UnitOfWork:
    @provides(Scoped)
    def __init__(self, session: Session) -> None:
        self.session = session


class Singleton:
    @provides(Single)
    def __init__(self, session: Session) -> None:
        self.session = session


class Tracker(ContextualBase):
    @provides(Scoped)
    def __init__(self) -> None:
        self.disposed = False

    def dispose(self) -> None:
        self.disposed = True


class SessionFactory:
    @provides(Scoped)
    def session(self) -> Session:
        return Session()


class AsyncSession:
    def __init__(self) -> None:
        self.disposed = 0

    def dispose(self) -> None:
        self.disposed += 1


class AsyncSessionFactory:
    def __init__(self, pending: Optional[Deferred[AsyncSession]] = None) -> None:
        self.pending = pending

    @provides(Scoped)
    def session(self) -> Promise[AsyncSession]:
        if self.pending is not None:
            return self.pending.promise
        return Promise.resolve(AsyncSession())


@pytest.fixture
def root() -> Context:
    handler = (
        setup()
        .specs(Clock, Registry, Session, Tenant, UnitOfWork, Singleton, Tracker)
        .handler()
    )
    assert isinstance(handler, Context)
    return handler


# =============================================================================
# Single
# =============================================================================


class TestSingle:
    """Tests for the Single lifestyle."""

    def test_implicit_constructor_is_single(self, root: Context) -> None:
        assert resolve(root, Clock) is resolve(root, Clock)

    def test_explicit_single(self, root: Context) -> None:
        registry = resolve(root, Registry)
        assert isinstance(registry, Registry)
        assert resolve(root.new_child(), Registry) is registry

    def test_failure_is_retried(self) -> None:
        services = FlakyServices()
        handler = setup().handlers(services).handler()
        with pytest.raises(ConnectionError):
            resolve(handler, Connection)
        connection = resolve(handler, Connection)
        assert isinstance(connection, Connection)
        assert resolve(handler, Connection) is connection
        assert services.connections == 2

    def test_missing_result_is_retried(self) -> None:
        services = FlakyServices()
        handler = setup().handlers(services).handler()
        assert resolve(handler, Token) is None
        token = resolve(handler, Token)
        assert isinstance(token, Token)
        assert resolve(handler, Token) is token
        assert services.tokens == 2

    def test_async_single(self) -> None:
        handler = setup().handlers(FlakyServices()).handler()
        first = resolve(handler, Report)
        second = resolve(handler, Report)
        assert isinstance(first, Promise)
        assert first.await_(5) is second.await_(5)


# =============================================================================
# Scoped
# =============================================================================


class TestScoped:
    """Tests for the Scoped lifestyle."""

    def test_one_instance_per_context(self, root: Context) -> None:
        child = root.new_child()
        session = resolve(root, Session)
        assert resolve(root, Session) is session
        child_session = resolve(child, Session)
        assert child_session is not session
        assert resolve(child, Session) is child_session

    def test_rooted(self, root: Context) -> None:
        child = root.new_child()
        assert resolve(child, Tenant) is resolve(root, Tenant)

    def test_disposed_once_when_context_ends(self, root: Context) -> None:
        child = root.new_child()
        session = resolve(child, Session)
        child.end()
        child.end()
        assert session.disposed == 1

    def test_async_instance_disposed_when_context_ends(self) -> None:
        root = setup().handlers(AsyncSessionFactory()).context()
        child = root.new_child()
        session = resolve(child, AsyncSession).await_(5)
        assert isinstance(session, AsyncSession)
        child.end()
        child.end()
        assert session.disposed == 1

    def test_pending_instance_disposed_once_created(self) -> None:
        pending: Deferred[AsyncSession] = Deferred()
        root = setup().handlers(AsyncSessionFactory(pending)).context()
        child = root.new_child()
        promise = resolve(child, AsyncSession)
        child.end()
        session = AsyncSession()
        pending.resolve(session)
        assert promise.await_(5) is session
        assert session.disposed == 1

    def test_ending_root_disposes_children(self, root: Context) -> None:
        session = resolve(root, Session)
        child_session = resolve(root.new_child(), Session)
        root.end()
        assert session.disposed == 1
        assert child_session.disposed == 1

    def test_inactive_context_raises(self, root: Context) -> None:
        child = root.new_child()
        child.end()
        with pytest.raises(ContextInactiveError):
            resolve(child, Session)

    def test_requires_context(self) -> None:
        handler: Handler = to_handler(SessionFactory())
        assert resolve(handler, Session) is None

    def test_scoped_dependency_of_scoped(self, root: Context) -> None:
        unit = resolve(root, UnitOfWork)
        assert unit.session is resolve(root, Session)

    def test_scoped_dependency_of_single_is_refused(self, root: Context) -> None:
        assert resolve(root, Singleton) is None


# =============================================================================
# Contextual
# =============================================================================


class TestContextual:
    """Tests for scoped instances bound to their context."""

    def test_instance_joins_context(self, root: Context) -> None:
        tracker = resolve(root, Tracker)
        assert tracker.context is root
        assert tracker in root.targets()

    def test_cannot_move_to_another_context(self, root: Context) -> None:
        tracker = resolve(root, Tracker)
        with pytest.raises(InvalidOperationError):
            tracker.context = root.new_child()
        assert tracker.context is root

    def test_leaving_context_evicts(self, root: Context) -> None:
        tracker = resolve(root, Tracker)
        tracker.context = None
        assert tracker.disposed
        assert tracker.context is None
        assert resolve(root, Tracker) is not tracker
