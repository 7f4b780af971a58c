# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Stash: temporary key/value storage scoped to a request.

Every ``send``/``post``/``publish`` installs a fresh Stash in front of the
handler, so bindings running for that request can share state without
leaking it to other requests. A root Stash behind it answers every lookup
(``None`` when missing) so ``stash_get`` succeeds once the api feature is
installed.

Stashed values are also provided directly: resolving a type that was put in
the stash returns the stashed instance.

Example:
    >>> stash_put(handler, Order(id=1))
    >>> stash_get(handler, Order)
    Order(id=1)
"""

from __future__ import annotations

import threading
from typing import Any, Optional

from miruken.descriptor import no_constructor
from miruken.errors import NotHandledError
from miruken.handle_result import HANDLED, NOT_HANDLED, HandleResult
from miruken.handler import Handler
from miruken.handles import handles
from miruken.provides import Provides, provides

__all__ = [
    "Stash",
    "StashDrop",
    "StashGet",
    "StashPut",
    "stash_drop",
    "stash_get",
    "stash_put",
]


class _StashAction:
    def __init__(self, key: Any) -> None:
        if key is None:
            raise ValueError("key cannot be None")
        self.key = key

    def can_filter(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.key!r})"


class StashGet(_StashAction):
    def __init__(self, key: Any) -> None:
        super().__init__(key)
        self.value: Any = None


class StashPut(_StashAction):
    def __init__(self, key: Any, value: Any) -> None:
        super().__init__(key)
        self.value = value


class StashDrop(_StashAction):
    pass


@no_constructor
class Stash:
    """Key/value storage answering stash actions.

    Args:
        root: Answer lookups of missing keys instead of deferring to the
            next stash.
    """

    def __init__(self, root: bool = False) -> None:
        self._root = root
        self._lock = threading.Lock()
        self._data: dict[Any, Any] = {}

    @property
    def root(self) -> bool:
        return self._root

    @provides(strict=True)
    def provide(self, request: Provides) -> Any:
        with self._lock:
            return self._data.get(request.key)

    @handles
    def get(self, get: StashGet) -> HandleResult:
        with self._lock:
            if get.key in self._data:
                get.value = self._data[get.key]
                return HANDLED
        return HANDLED if self._root else NOT_HANDLED

    @handles
    def put(self, put: StashPut) -> None:
        with self._lock:
            self._data[put.key] = put.value

    @handles
    def drop(self, drop: StashDrop) -> None:
        with self._lock:
            self._data.pop(drop.key, None)

    def __repr__(self) -> str:
        return f"Stash(root={self._root})"


def _stash(handler: Handler, action: _StashAction) -> None:
    if handler is None:
        raise ValueError("handler cannot be None")
    result = handler.handle(action, False, None)
    if result.is_error:
        raise result.error
    if not result.handled:
        raise NotHandledError(action)


def stash_get(handler: Handler, key: Any) -> Any:
    """Return the value stashed under ``key`` (None if absent).

    Raises:
        NotHandledError: If no stash is available.
    """
    get = StashGet(key)
    _stash(handler, get)
    return get.value


def stash_put(handler: Handler, value: Any, key: Optional[Any] = None) -> None:
    """Stash ``value`` under ``key``, defaulting to the value's type."""
    if value is None:
        raise ValueError("value cannot be None")
    _stash(handler, StashPut(key if key is not None else type(value), value))


def stash_drop(handler: Handler, key: Any) -> None:
    """Remove the value stashed under ``key``."""
    _stash(handler, StashDrop(key))
