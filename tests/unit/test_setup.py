# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for setup and bootstrapping.

Tests cover:
    - Feature installation, dependencies and install-once tags
    - Aggregated installation failures
    - Options contributed through setup
    - Bootstrap startup, timeouts and shutdown when the context ends
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Optional

import pytest

from miruken.context import Context
from miruken.enums import EnumContextState
from miruken.errors import CanceledError, SetupError
from miruken.handler import Handler
from miruken.models import ModelSetupOptions
from miruken.options import get_options
from miruken.promise import Deferred, Promise
from miruken.provides import resolve
from miruken.setup import (
    Bootstrapper,
    Feature,
    FeatureFunc,
    SetupBuilder,
    feature_set,
    setup,
)

# =============================================================================
# Features
# =============================================================================


class Service:
    pass


class Recording(Feature):
    """Feature recording installation order into a shared log."""

    def __init__(
        self,
        name: str,
        log: list[str],
        depends: Sequence[Any] = (),
    ) -> None:
        self.name = name
        self.log = log
        self.depends = depends
        self.installed_into: Optional[Handler] = None

    def install(self, setup: SetupBuilder) -> None:
        if setup.can_install(self.name):
            self.log.append(self.name)

    def depends_on(self) -> Sequence[Any]:
        return self.depends

    def after_install(self, setup: SetupBuilder, handler: Handler) -> None:
        self.installed_into = handler


class Failing(Feature):
    def __init__(self, message: str) -> None:
        self.message = message

    def install(self, setup: SetupBuilder) -> None:
        raise RuntimeError(self.message)


class Server:
    def __init__(
        self,
        log: list[str],
        name: str = "server",
        startup: Optional[Promise[Any]] = None,
        fail_shutdown: bool = False,
    ) -> None:
        self.log = log
        self.name = name
        self._startup = startup
        self._fail_shutdown = fail_shutdown

    def startup(self, composer: Handler) -> Optional[Promise[Any]]:
        self.log.append(f"start {self.name}")
        return self._startup

    def shutdown(self) -> Optional[Promise[Any]]:
        if self._fail_shutdown:
            raise RuntimeError(f"{self.name} stuck")
        self.log.append(f"stop {self.name}")
        return None


@pytest.fixture
def log() -> list[str]:
    return []


# =============================================================================
# Installation
# =============================================================================


class TestFeatures:
    """Tests for feature installation."""

    def test_dependencies_install_after_level(self, log: list[str]) -> None:
        leaf = Recording("leaf", log)
        first = Recording("first", log, depends=[leaf])
        second = Recording("second", log)
        setup(first, second).handler()
        assert log == ["first", "second", "leaf"]

    def test_feature_must_implement_install(self) -> None:
        class Incomplete(Feature):
            pass

        with pytest.raises(TypeError):
            Incomplete()  # type: ignore[abstract]

    def test_install_once(self, log: list[str]) -> None:
        shared = Recording("shared", log)
        setup(
            Recording("a", log, depends=[shared]),
            Recording("b", log, depends=[shared]),
        ).handler()
        assert log == ["a", "b", "shared"]

    def test_after_install_receives_context(self, log: list[str]) -> None:
        feature = Recording("after", log)
        ctx = setup(feature).handler()
        assert feature.installed_into is ctx
        assert isinstance(ctx, Context)

    def test_feature_func_and_set(self) -> None:
        installed: list[str] = []
        combined = feature_set(
            FeatureFunc(lambda s: installed.append("one")),
            None,
            FeatureFunc(lambda s: installed.append("two")),
        )
        setup(combined).handler()
        assert installed == ["one", "two"]

    def test_feature_func_requires_install(self) -> None:
        with pytest.raises(ValueError):
            FeatureFunc(None)  # type: ignore[arg-type]

    def test_feature_installs_specs(self) -> None:
        ctx = setup(FeatureFunc(lambda s: s.specs(Service))).handler()
        assert isinstance(resolve(ctx, Service), Service)

    def test_failures_are_aggregated(self, log: list[str]) -> None:
        with pytest.raises(SetupError) as exc_info:
            setup(Failing("first"), Recording("ok", log), Failing("second")).handler()
        errors = exc_info.value.errors
        assert [str(e) for e in errors] == ["first", "second"]
        assert log == ["ok"]
        assert str(exc_info.value) == "first; second"

    def test_options(self) -> None:
        ctx = setup().options(ModelSetupOptions(startup_timeout=2)).handler()
        options = get_options(ctx, ModelSetupOptions)
        assert options is not None
        assert options.startup_timeout == 2
        assert options.shutdown_timeout is None


# =============================================================================
# Bootstrapping
# =============================================================================


class TestBootstrap:
    """Tests for starting and stopping bootstraps with the root context."""

    def test_handler_does_not_start(self, log: list[str]) -> None:
        setup().with_(Server(log)).handler()
        assert log == []

    def test_context_starts_and_end_stops(self, log: list[str]) -> None:
        ctx = setup().with_(Server(log, "a"), Server(log, "b")).context()
        assert log == ["start a", "start b"]
        ctx.end()
        assert log == ["start a", "start b", "stop b", "stop a"]
        assert ctx.state is EnumContextState.ENDED

    def test_bootstrapper_is_scoped_to_root(self, log: list[str]) -> None:
        ctx = setup().with_(Server(log)).context()
        bootstrapper = resolve(ctx, Bootstrapper)
        assert resolve(ctx, Bootstrapper) is bootstrapper
        assert len(bootstrapper.bootstraps) == 1

    def test_context_async(self, log: list[str]) -> None:
        deferred: Deferred[Any] = Deferred()
        pending = setup().with_(Server(log, startup=deferred.promise)).context_async()
        assert pending.is_pending
        deferred.resolve("ready")
        assert isinstance(pending.await_(5), Context)

    def test_startup_timeout(self, log: list[str]) -> None:
        never: Deferred[Any] = Deferred()
        builder = (
            setup()
            .with_(Server(log, startup=never.promise))
            .options(ModelSetupOptions(startup_timeout=0.05))
        )
        with pytest.raises(CanceledError):
            builder.context()

    def test_shutdown_failure_is_logged(
        self, log: list[str], caplog: pytest.LogCaptureFixture
    ) -> None:
        ctx = (
            setup()
            .with_(Server(log, "ok"), Server(log, "stuck", fail_shutdown=True))
            .context()
        )
        with caplog.at_level(logging.WARNING, logger="miruken.setup.bootstrap"):
            ctx.end()
        assert "stop ok" in log
        assert "stuck stuck" in caplog.text
        assert ctx.state is EnumContextState.ENDED

    def test_setup_error_ends_nothing_started(self, log: list[str]) -> None:
        with pytest.raises(SetupError):
            setup(Failing("broken")).with_(Server(log)).context()
        assert log == []
