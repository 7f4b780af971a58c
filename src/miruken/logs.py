# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Logging of Handles bindings and context named loggers.

LogProvider wraps Handles bindings with a filter that logs ``handling``
before the binding runs and ``completed`` or ``failed`` (with the duration)
once its outputs settle. Messages go to a child of the resolved
``logging.Logger`` named after the handler type, at level
``logging.DEBUG - verbosity``, and are skipped entirely when that level is
not enabled.

The logs feature also provides ``logging.Logger`` dependencies: a handler
constructed by the container receives a logger named after its class.

Example:
    >>> ctx = setup(logs.feature(verbosity=1)).specs(Service).context()
    >>> class Service:
    ...     @provides
    ...     def __init__(self, logger: logging.Logger): ...
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional

from miruken.enums import EnumFilterStage
from miruken.filter import Filter
from miruken.handler import Handler
from miruken.handles import Handles
from miruken.promise import Promise
from miruken.provides import Provides, provides, resolve

if TYPE_CHECKING:
    from miruken.filter import Next
    from miruken.handler import HandleContext
    from miruken.setup.builder import SetupBuilder

__all__ = [
    "LogFilter",
    "LogProvider",
    "LoggerFactory",
    "LogsFeature",
    "feature",
]

logger = logging.getLogger(__name__)


class LoggerFactory:
    """Provides loggers named after the class requesting them.

    Args:
        root: Logger the names are derived from; the ``miruken`` logger
            when omitted.
    """

    def __init__(self, root: Optional[logging.Logger] = None) -> None:
        self._root = root or logging.getLogger("miruken")

    @property
    def root(self) -> logging.Logger:
        return self._root

    @provides
    def context_logger(self, request: Provides) -> logging.Logger:
        owner = request.parent.key if request.parent is not None else None
        if isinstance(owner, type):
            return self._root.getChild(owner.__qualname__)
        return self._root


class LogFilter(Filter):
    """Logs the execution of a binding."""

    order = EnumFilterStage.LOGGING

    def next(
        self,
        next_: Next,
        ctx: HandleContext,
        provider: Any,
    ) -> Any:
        level = logging.DEBUG - int(getattr(provider, "verbosity", 0))
        base = resolve(ctx.composer, logging.Logger)
        if not isinstance(base, logging.Logger):
            base = logger
        if not base.isEnabledFor(level):
            return next_.pipe()
        log = base.getChild(type(ctx.handler).__qualname__)
        source = ctx.callback.source
        log.log(
            level,
            "handling %s %s",
            type(source).__name__,
            source,
        )
        start = time.perf_counter()

        def completed(outputs: Any) -> Any:
            log.log(level, "completed in %.6fs", time.perf_counter() - start)
            return outputs

        def failed(error: BaseException) -> Any:
            log.error("failed in %.6fs: %s", time.perf_counter() - start, error)
            raise error

        try:
            outputs = next_.pipe()
        except Exception as e:
            log.error("failed in %.6fs: %s", time.perf_counter() - start, e)
            raise
        if isinstance(outputs, Promise):
            return outputs.then(completed).catch(failed)
        return completed(outputs)

    def __repr__(self) -> str:
        return "LogFilter()"


_FILTERS = (LogFilter(),)


class LogProvider:
    """Filter provider logging Handles bindings.

    Args:
        verbosity: Levels below DEBUG to log at.
        required: Keep logging for bindings that skip filters.
    """

    def __init__(self, verbosity: int = 0, required: bool = False) -> None:
        if verbosity < 0:
            raise ValueError("verbosity cannot be negative")
        self.verbosity = verbosity
        self.required = required

    def applies_to(self, callback: Any) -> bool:
        return isinstance(callback, Handles)

    def filters(
        self,
        binding: Any,
        callback: Any,
        composer: Handler,
    ) -> Sequence[Any]:
        return _FILTERS

    def __repr__(self) -> str:
        return f"LogProvider(verbosity={self.verbosity})"


class LogsFeature:
    """Setup feature providing loggers and logging every Handles binding.

    Args:
        root: Root logger for context loggers.
        verbosity: Levels below DEBUG to log bindings at.
    """

    def __init__(
        self,
        root: Optional[logging.Logger] = None,
        verbosity: int = 0,
    ) -> None:
        self.root = root
        self.verbosity = verbosity

    def install(self, setup: SetupBuilder) -> None:
        if setup.can_install(LogsFeature):
            setup.handlers(LoggerFactory(self.root))
            setup.filters(LogProvider(self.verbosity))


def feature(
    root: Optional[logging.Logger] = None,
    verbosity: int = 0,
) -> LogsFeature:
    return LogsFeature(root, verbosity)
