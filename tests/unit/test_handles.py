# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for Handles dispatch and its helpers.

Tests cover:
    - command, command_all, execute and execute_all
    - Contravariant matching and most-specific-first ordering
    - Greedy and non-greedy dispatch across composite handlers
    - Asynchronous bindings returning Promises or coroutines
    - Errors raised by bindings and NotHandledError
    - Free function handlers
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pytest

from miruken.composition import add_handlers
from miruken.constraints import Named
from miruken.context import Context
from miruken.errors import NotHandledError
from miruken.handle_result import NOT_HANDLED, HandleResult
from miruken.handler import Handler
from miruken.handles import command, command_all, execute, execute_all, handles
from miruken.promise import Promise

# =============================================================================
# Messages and Handlers
# =============================================================================


@dataclass
class Foo:
    count: int = 0


@dataclass
class Bar(Foo):
    pass


@dataclass
class Baz:
    pass


class FooHandler:
    def __init__(self) -> None:
        self.handled: list[Any] = []

    @handles
    def foo(self, foo: Foo) -> None:
        foo.count += 1
        self.handled.append(("foo", foo))


class SpecificHandler:
    def __init__(self) -> None:
        self.calls: list[str] = []

    @handles
    def foo(self, foo: Foo) -> str:
        self.calls.append("foo")
        return "foo"

    @handles
    def bar(self, bar: Bar) -> str:
        self.calls.append("bar")
        return "bar"


class CountingHandler:
    @handles
    def count(self, foo: Foo) -> int:
        foo.count += 1
        return foo.count


class AsyncHandler:
    @handles
    def promised(self, foo: Foo) -> Promise[int]:
        return Promise(lambda resolve, reject: resolve(foo.count * 10))

    @handles
    async def coroutine(self, bar: Bar) -> int:
        return bar.count * 100


class FailingHandler:
    @handles
    def fail(self, foo: Foo) -> None:
        raise ValueError(f"cannot handle {foo.count}")


class DecliningHandler:
    @handles
    def decline(self, foo: Foo) -> HandleResult:
        return NOT_HANDLED


class ComposerHandler:
    @handles
    def forward(self, foo: Foo, composer: Handler) -> Any:
        return execute(composer, Baz())

    @handles
    def baz(self, baz: Baz) -> str:
        return "baz"


class NamedHandler:
    @handles
    def regular(self, foo: Foo) -> str:
        return "regular"

    @handles(Named("special"))
    def special(self, foo: Foo) -> str:
        return "special"


@handles
def handle_baz(baz: Baz) -> str:
    return "function"


# =============================================================================
# Command and Execute
# =============================================================================


class TestCommand:
    """Tests for command and command_all."""

    def test_command(self) -> None:
        handler = FooHandler()
        foo = Foo()
        assert command(Context(handler), foo) is None
        assert foo.count == 1
        assert handler.handled == [("foo", foo)]

    def test_command_not_handled(self) -> None:
        with pytest.raises(NotHandledError) as exc_info:
            command(Context(FooHandler()), Baz())
        assert isinstance(exc_info.value.callback, Baz)

    def test_command_rejects_none_handler(self) -> None:
        with pytest.raises(ValueError):
            command(None, Foo())  # type: ignore[arg-type]

    def test_command_raises_binding_error(self) -> None:
        with pytest.raises(ValueError, match="cannot handle 3"):
            command(Context(FailingHandler()), Foo(3))

    def test_binding_returning_not_handled(self) -> None:
        with pytest.raises(NotHandledError):
            command(Context(DecliningHandler()), Foo())

    def test_command_all_visits_every_handler(self) -> None:
        first, second = FooHandler(), FooHandler()
        foo = Foo()
        command_all(Context(first, second), foo)
        assert foo.count == 2
        assert len(first.handled) == 1
        assert len(second.handled) == 1


class TestExecute:
    """Tests for execute and execute_all."""

    def test_execute_returns_result(self) -> None:
        assert execute(Context(CountingHandler()), Foo(1)) == 2

    def test_execute_result_type(self) -> None:
        assert execute(Context(CountingHandler()), Foo(1), result_type=int) == 2
        with pytest.raises(TypeError):
            execute(Context(CountingHandler()), Foo(1), result_type=str)

    def test_execute_all_collects_results(self) -> None:
        ctx = Context(CountingHandler(), CountingHandler())
        assert execute_all(ctx, Foo()) == [1, 2]

    def test_execute_with_constraint(self) -> None:
        ctx = Context(NamedHandler())
        assert execute(ctx, Foo(), Named("special")) == "special"
        assert execute(ctx, Foo()) == "regular"

    def test_composer_argument(self) -> None:
        """Bindings receive the composer and can dispatch through it."""
        assert execute(Context(ComposerHandler()), Foo()) == "baz"

    def test_function_handler(self) -> None:
        assert execute(Context(handle_baz), Baz()) == "function"


# =============================================================================
# Variance and Ordering
# =============================================================================


class TestContravariance:
    """A binding keyed by a base class answers its subclasses."""

    def test_base_binding_handles_subclass(self) -> None:
        handler = FooHandler()
        command(Context(handler), Bar())
        assert len(handler.handled) == 1

    def test_subclass_binding_ignores_base(self) -> None:
        handler = SpecificHandler()
        assert execute(Context(handler), Foo()) == "foo"
        assert handler.calls == ["foo"]

    def test_most_specific_binding_first(self) -> None:
        handler = SpecificHandler()
        assert execute(Context(handler), Bar()) == "bar"
        assert handler.calls == ["bar"]

    def test_greedy_visits_in_same_order(self) -> None:
        """Dispatching the same callback twice visits bindings identically."""
        handler = SpecificHandler()
        ctx = Context(handler)
        first = execute_all(ctx, Bar())
        second = execute_all(ctx, Bar())
        assert first == second == ["bar", "foo"]


class TestGreedy:
    """Non-greedy dispatch stops at the first handler that handles."""

    def test_non_greedy_stops_at_first_handler(self) -> None:
        first, second = FooHandler(), FooHandler()
        command(Context(first, second), Foo())
        assert len(first.handled) == 1
        assert second.handled == []

    def test_non_greedy_across_add_handlers(self) -> None:
        first, second = FooHandler(), FooHandler()
        handler = add_handlers(Context(second), first)
        command(handler, Foo())
        assert len(first.handled) == 1
        assert second.handled == []

    def test_greedy_across_add_handlers(self) -> None:
        first, second = FooHandler(), FooHandler()
        handler = add_handlers(Context(second), first)
        command_all(handler, Foo())
        assert len(first.handled) == 1
        assert len(second.handled) == 1

    def test_failure_stops_dispatch(self) -> None:
        after = FooHandler()
        with pytest.raises(ValueError):
            command_all(Context(FailingHandler(), after), Foo())
        assert after.handled == []


# =============================================================================
# Asynchronous Bindings
# =============================================================================


class TestAsyncHandles:
    """Asynchronous results are indistinguishable after awaiting."""

    def test_promise_result(self) -> None:
        result = execute(Context(AsyncHandler()), Foo(2))
        assert isinstance(result, Promise)
        assert result.await_(timeout=5) == 20

    def test_coroutine_result(self) -> None:
        result = execute(Context(AsyncHandler()), Bar(3))
        assert isinstance(result, Promise)
        assert result.await_(timeout=5) == 300

    def test_async_command_returns_promise(self) -> None:
        pending = command(Context(AsyncHandler()), Foo(1))
        assert isinstance(pending, Promise)
        assert pending.await_(timeout=5) is None

    def test_sync_and_async_agree(self) -> None:
        sync = execute(Context(CountingHandler()), Foo(9))
        deferred = execute(
            Context(AsyncHandler()), Foo(1)
        ).await_(timeout=5)
        assert sync == deferred == 10

    @pytest.mark.asyncio
    async def test_await_from_asyncio(self) -> None:
        assert await execute(Context(AsyncHandler()), Foo(4)) == 40
