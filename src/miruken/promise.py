# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Deferred values for uniform synchronous and asynchronous results.

A Promise is a single-assignment container for a value or an error that may
still be pending. Handlers may return a Promise (or be ``async def``) and the
dispatch engine treats the eventual value exactly like a synchronous return.

Design:
    - Backed by ``concurrent.futures.Future`` for thread-safe settlement
    - Executors run on daemon threads; an exception raised by the executor
      rejects the promise
    - ``then`` runs only on fulfilment, ``catch`` only on rejection, each
      returning a new Promise that follows the callback's result
    - Continuations run on the settling thread (or immediately when the
      promise is already settled), so ``resolve`` happens-before ``then``
    - Cooperative cancellation through CancellationToken; a canceled token
      rejects every pending promise created with it with CanceledError

Thread Safety:
    Settlement, continuation registration and cancellation are safe to call
    from any thread.

Example:
    >>> p = Promise(lambda resolve, reject: resolve(21)).then(lambda v: v * 2)
    >>> p.await_()
    42
    >>> Promise.all(Promise.resolve(1), 2).await_()
    [1, 2]
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Coroutine
from concurrent.futures import CancelledError, Future, InvalidStateError
from typing import Any, Generic, Optional, TypeVar

from miruken.errors import CanceledError

__all__ = [
    "CancellationToken",
    "Deferred",
    "Promise",
    "is_promise",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Resolve = Callable[[Any], None]
Reject = Callable[[BaseException], None]


def _noop() -> None:
    return None


class CancellationToken:
    """Cooperative cancellation signal carrying an optional cause.

    Tokens can be linked to a parent so canceling the parent cancels the
    child. Callbacks registered with ``on_cancel`` run exactly once.
    """

    def __init__(self, parent: Optional[CancellationToken] = None) -> None:
        self._lock = threading.Lock()
        self._canceled = False
        self._cause: Optional[BaseException] = None
        self._callbacks: list[Callable[[Optional[BaseException]], None]] = []
        if parent is not None:
            parent.on_cancel(self.cancel)

    @classmethod
    def with_timeout(
        cls,
        seconds: float,
        parent: Optional[CancellationToken] = None,
    ) -> CancellationToken:
        """Create a token that cancels itself after ``seconds``."""
        token = cls(parent)
        timer = threading.Timer(
            seconds,
            token.cancel,
            args=(TimeoutError(f"timed out after {seconds}s"),),
        )
        timer.daemon = True
        token.on_cancel(lambda _: timer.cancel())
        timer.start()
        return token

    @property
    def is_canceled(self) -> bool:
        return self._canceled

    @property
    def cause(self) -> Optional[BaseException]:
        return self._cause

    def cancel(self, cause: Optional[BaseException] = None) -> bool:
        """Cancel the token. Returns False if it was already canceled."""
        with self._lock:
            if self._canceled:
                return False
            self._canceled = True
            self._cause = cause
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(cause)
        return True

    def on_cancel(
        self,
        callback: Callable[[Optional[BaseException]], None],
    ) -> Callable[[], None]:
        """Register ``callback`` and return a function that unregisters it.

        The callback runs immediately when the token is already canceled.
        """
        with self._lock:
            if not self._canceled:
                self._callbacks.append(callback)

                def unregister() -> None:
                    with self._lock:
                        if callback in self._callbacks:
                            self._callbacks.remove(callback)

                return unregister
            cause = self._cause
        callback(cause)
        return _noop


def _outcome(future: Future) -> tuple[Any, Optional[BaseException]]:
    try:
        error = future.exception()
    except CancelledError as e:
        return None, CanceledError(cause=e)
    if error is not None:
        return None, error
    return future.result(), None


class Promise(Generic[T]):
    """Single-assignment deferred value.

    Args:
        executor: Optional ``(resolve, reject)`` callable run on a daemon
            thread. Raising inside it rejects the promise.
        token: Optional cancellation token; cancellation rejects the promise
            with CanceledError and propagates to derived promises.
    """

    def __init__(
        self,
        executor: Optional[Callable[[Resolve, Reject], Any]] = None,
        token: Optional[CancellationToken] = None,
    ) -> None:
        self._future: Future = Future()
        self._token = token
        if token is not None:
            unregister = token.on_cancel(self._canceled_by_token)
            self._future.add_done_callback(lambda _: unregister())
        if executor is not None:
            threading.Thread(
                target=self._execute,
                args=(executor,),
                name="miruken-promise",
                daemon=True,
            ).start()

    # -- settlement -------------------------------------------------------

    def _execute(self, executor: Callable[[Resolve, Reject], Any]) -> None:
        try:
            executor(self._resolve, self._reject)
        except Exception as e:
            logger.debug("Promise executor raised %s: %s", type(e).__name__, e)
            self._reject(e)

    def _resolve(self, value: Any = None) -> None:
        if value is self:
            self._reject(TypeError("a promise cannot resolve to itself"))
        elif isinstance(value, Promise):
            value._future.add_done_callback(self._adopt)
        else:
            try:
                self._future.set_result(value)
            except InvalidStateError:
                pass

    def _reject(self, error: BaseException) -> None:
        if not isinstance(error, BaseException):
            error = TypeError(f"promise rejected with non-exception {error!r}")
        try:
            self._future.set_exception(error)
        except InvalidStateError:
            pass

    def _adopt(self, future: Future) -> None:
        value, error = _outcome(future)
        if error is not None:
            self._reject(error)
        else:
            self._resolve(value)

    def _canceled_by_token(self, cause: Optional[BaseException]) -> None:
        self._reject(CanceledError(cause=cause))

    # -- inspection -------------------------------------------------------

    @property
    def token(self) -> Optional[CancellationToken]:
        return self._token

    @property
    def is_pending(self) -> bool:
        return not self._future.done()

    @property
    def is_fulfilled(self) -> bool:
        return self._future.done() and _outcome(self._future)[1] is None

    @property
    def is_rejected(self) -> bool:
        return self._future.done() and _outcome(self._future)[1] is not None

    def __repr__(self) -> str:
        if self.is_pending:
            state = "pending"
        elif self.is_fulfilled:
            state = f"fulfilled {self._future.result()!r}"
        else:
            state = f"rejected {_outcome(self._future)[1]!r}"
        return f"Promise({state})"

    # -- continuations ----------------------------------------------------

    def then(self, on_fulfilled: Callable[[T], Any]) -> Promise[Any]:
        """Map the fulfilled value. Rejections pass through unchanged."""
        child: Promise[Any] = Promise(token=self._token)

        def settle(future: Future) -> None:
            value, error = _outcome(future)
            if error is not None:
                child._reject(error)
                return
            try:
                child._resolve(on_fulfilled(value))
            except Exception as e:
                child._reject(e)

        self._future.add_done_callback(settle)
        return child

    def catch(self, on_rejected: Callable[[BaseException], Any]) -> Promise[Any]:
        """Recover from a rejection with the callback's result."""
        child: Promise[Any] = Promise(token=self._token)

        def settle(future: Future) -> None:
            value, error = _outcome(future)
            if error is None:
                child._resolve(value)
                return
            try:
                child._resolve(on_rejected(error))
            except Exception as e:
                child._reject(e)

        self._future.add_done_callback(settle)
        return child

    def finally_(self, on_settled: Callable[[], Any]) -> Promise[T]:
        """Run ``on_settled`` on either outcome and pass the outcome through."""
        child: Promise[T] = Promise(token=self._token)

        def settle(future: Future) -> None:
            value, error = _outcome(future)
            try:
                on_settled()
            except Exception as e:
                child._reject(e)
                return
            if error is not None:
                child._reject(error)
            else:
                child._resolve(value)

        self._future.add_done_callback(settle)
        return child

    def cancel(self, cause: Optional[BaseException] = None) -> bool:
        """Reject a pending promise with CanceledError carrying ``cause``."""
        if self._future.done():
            return False
        self._reject(CanceledError(cause=cause))
        return True

    # -- awaiting ---------------------------------------------------------

    def await_(
        self,
        timeout: Optional[float] = None,
        token: Optional[CancellationToken] = None,
    ) -> T:
        """Block until settled and return the value or raise the rejection.

        Raises:
            CanceledError: If ``token`` is canceled before settlement.
            TimeoutError: If ``timeout`` elapses before settlement.
        """
        if token is None:
            try:
                return self._future.result(timeout)
            except CancelledError as e:
                raise CanceledError(cause=e) from e

        settled = threading.Event()
        self._future.add_done_callback(lambda _: settled.set())
        unregister = token.on_cancel(lambda _: settled.set())
        try:
            if not settled.wait(timeout):
                raise TimeoutError(f"promise not settled after {timeout}s")
        finally:
            unregister()
        if self._future.done():
            value, error = _outcome(self._future)
            if error is not None:
                raise error
            return value
        raise CanceledError(cause=token.cause)

    def __await__(self):
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()

        def transfer(future: Future) -> None:
            if waiter.cancelled():
                return
            value, error = _outcome(future)
            if error is not None:
                waiter.set_exception(error)
            else:
                waiter.set_result(value)

        self._future.add_done_callback(
            lambda f: loop.call_soon_threadsafe(transfer, f)
        )
        return waiter.__await__()

    # -- constructors -----------------------------------------------------

    @staticmethod
    def resolve(value: Any = None) -> Promise[Any]:
        promise: Promise[Any] = Promise()
        promise._resolve(value)
        return promise

    @staticmethod
    def reject(error: BaseException) -> Promise[Any]:
        promise: Promise[Any] = Promise()
        promise._reject(error)
        return promise

    @staticmethod
    def empty() -> Promise[None]:
        return Promise.resolve(None)

    @staticmethod
    def lift(value: Any) -> Promise[Any]:
        """Return ``value`` if it is a promise, else a fulfilled promise of it."""
        if isinstance(value, Promise):
            return value
        return Promise.resolve(value)

    @staticmethod
    def from_coroutine(
        coroutine: Coroutine[Any, Any, T],
        token: Optional[CancellationToken] = None,
    ) -> Promise[T]:
        """Run ``coroutine`` to completion on a private event loop thread."""
        return Promise(
            lambda resolve, reject: resolve(asyncio.run(coroutine)),
            token,
        )

    @staticmethod
    def all(
        *items: Any,
        token: Optional[CancellationToken] = None,
    ) -> Promise[list[Any]]:
        """Fulfil with every value in input order; reject on the first rejection."""
        if not items:
            return Promise.resolve([])
        result: Promise[list[Any]] = Promise(token=token)
        values: list[Any] = [None] * len(items)
        remaining = [len(items)]
        lock = threading.Lock()

        def collect(index: int) -> Callable[[Future], None]:
            def settle(future: Future) -> None:
                value, error = _outcome(future)
                if error is not None:
                    result._reject(error)
                    return
                with lock:
                    values[index] = value
                    remaining[0] -= 1
                    done = remaining[0] == 0
                if done:
                    result._resolve(list(values))

            return settle

        for index, item in enumerate(items):
            Promise.lift(item)._future.add_done_callback(collect(index))
        return result

    @staticmethod
    def race(
        *items: Any,
        token: Optional[CancellationToken] = None,
    ) -> Promise[Any]:
        """Settle with the first input to settle."""
        result: Promise[Any] = Promise(token=token)
        for item in items:
            Promise.lift(item)._future.add_done_callback(result._adopt)
        return result

    @staticmethod
    def any(
        *items: Any,
        token: Optional[CancellationToken] = None,
    ) -> Promise[Any]:
        """Fulfil with the first fulfilment; reject when every input rejects."""
        if not items:
            return Promise.reject(ValueError("no promises to settle"))
        result: Promise[Any] = Promise(token=token)
        errors: list[Optional[BaseException]] = [None] * len(items)
        remaining = [len(items)]
        lock = threading.Lock()

        def collect(index: int) -> Callable[[Future], None]:
            def settle(future: Future) -> None:
                value, error = _outcome(future)
                if error is None:
                    result._resolve(value)
                    return
                with lock:
                    errors[index] = error
                    remaining[0] -= 1
                    done = remaining[0] == 0
                if done:
                    result._reject(
                        ExceptionGroup(
                            "all promises rejected",
                            [e for e in errors if isinstance(e, Exception)],
                        )
                    )

            return settle

        for index, item in enumerate(items):
            Promise.lift(item)._future.add_done_callback(collect(index))
        return result


class Deferred(Generic[T]):
    """Manually settled promise handle."""

    def __init__(self, token: Optional[CancellationToken] = None) -> None:
        self._promise: Promise[T] = Promise(token=token)

    @property
    def promise(self) -> Promise[T]:
        return self._promise

    def resolve(self, value: Any = None) -> None:
        self._promise._resolve(value)

    def reject(self, error: BaseException) -> None:
        self._promise._reject(error)


def is_promise(value: object) -> bool:
    """Return True if ``value`` is a Promise of any type."""
    return isinstance(value, Promise)
