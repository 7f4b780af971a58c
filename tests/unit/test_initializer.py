# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for @initialize methods."""

from __future__ import annotations

from miruken.initializer import initialize, initializer_methods
from miruken.promise import Promise
from miruken.provides import resolve
from miruken.setup import setup


class Pool:
    pass


class Repository:
    def __init__(self) -> None:
        self.pool: Pool | None = None
        self.steps: list[str] = []

    @initialize
    def connect(self, pool: Pool) -> None:
        self.pool = pool
        self.steps.append("connect")


class AuditedRepository(Repository):
    @initialize
    def audit(self) -> None:
        self.steps.append("audit")


class WarmCache:
    def __init__(self) -> None:
        self.warm = False

    @initialize
    async def load(self) -> None:
        self.warm = True


class StagedCache:
    def __init__(self) -> None:
        self.steps: list[str] = []

    @initialize
    def load(self) -> Promise[None]:
        return Promise.resolve(None).then(lambda _: self.steps.append("load"))


class IndexedCache(StagedCache):
    @initialize
    def index(self) -> None:
        self.steps.append("index")


class TestInitialize:
    """Tests for post-construction initialization."""

    def test_methods_base_first(self) -> None:
        names = [m.__name__ for m in initializer_methods(AuditedRepository)]
        assert names == ["connect", "audit"]

    def test_initialized_with_dependencies(self) -> None:
        handler = setup().specs(Pool, Repository).handler()
        repository = resolve(handler, Repository)
        assert isinstance(repository.pool, Pool)
        assert repository.steps == ["connect"]

    def test_single_initialized_once(self) -> None:
        handler = setup().specs(Pool, Repository).handler()
        repository = resolve(handler, Repository)
        assert resolve(handler, Repository) is repository
        assert repository.steps == ["connect"]

    def test_inherited_initializers(self) -> None:
        handler = setup().specs(Pool, AuditedRepository).handler()
        repository = resolve(handler, AuditedRepository)
        assert repository.steps == ["connect", "audit"]

    def test_async_initializer(self) -> None:
        handler = setup().specs(WarmCache).handler()
        cache = resolve(handler, WarmCache)
        assert isinstance(cache, Promise)
        assert cache.await_(5).warm

    def test_async_base_initializer_runs_first(self) -> None:
        handler = setup().specs(IndexedCache).handler()
        cache = resolve(handler, IndexedCache)
        assert isinstance(cache, Promise)
        assert cache.await_(5).steps == ["load", "index"]
