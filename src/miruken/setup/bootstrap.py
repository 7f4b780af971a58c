# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Bootstrapper: starts and stops every ProtocolBootstrap of a context.

The bootstrapper is a scoped handler resolved from the root context once
setup has built it. Every ProtocolBootstrap the context can provide is
started concurrently, bounded by ``ModelSetupOptions.startup_timeout``.
When the root context ends the scoped bootstrapper is disposed and shuts
the bootstraps down in reverse order, bounded by ``shutdown_timeout``.

Shutdown failures are logged and do not interrupt ending the context.
"""

from __future__ import annotations

import logging
from typing import Annotated, Optional

from miruken.args import FromOptions
from miruken.handler import Handler
from miruken.lifestyle import Scoped
from miruken.models import ModelSetupOptions
from miruken.promise import CancellationToken, Promise
from miruken.protocols import ProtocolBootstrap
from miruken.provides import provides

__all__ = ["Bootstrapper"]

logger = logging.getLogger(__name__)


def _token(timeout: Optional[float]) -> Optional[CancellationToken]:
    if timeout is None:
        return None
    return CancellationToken.with_timeout(timeout)


class Bootstrapper:
    """Coordinates startup and shutdown of the context's bootstraps."""

    @provides(Scoped)
    def __init__(
        self,
        options: Annotated[Optional[ModelSetupOptions], FromOptions] = None,
        bootstraps: Optional[list[ProtocolBootstrap]] = None,
    ) -> None:
        self._options = options or ModelSetupOptions()
        self._bootstraps = list(bootstraps or ())
        self._disposed = False

    @property
    def bootstraps(self) -> list[ProtocolBootstrap]:
        return list(self._bootstraps)

    def bootstrap(self, composer: Handler) -> Promise[list[object]]:
        """Start every bootstrap concurrently.

        Returns:
            Promise settling when every bootstrap started; it rejects with
            CanceledError if the startup timeout elapses first.
        """
        if not self._bootstraps:
            return Promise.resolve([])
        logger.debug("Starting %d bootstrap(s)", len(self._bootstraps))
        started = []
        for bootstrap in self._bootstraps:
            try:
                started.append(bootstrap.startup(composer))
            except Exception as e:
                return Promise.reject(e)
        return Promise.all(
            *started, token=_token(self._options.startup_timeout)
        )

    def dispose(self) -> None:
        if self._disposed or not self._bootstraps:
            return
        self._disposed = True
        stopping = []
        for bootstrap in reversed(self._bootstraps):
            try:
                stopping.append(bootstrap.shutdown())
            except Exception as e:
                logger.warning("Bootstrap %r failed to shut down: %s", bootstrap, e)
        try:
            Promise.all(*stopping).await_(self._options.shutdown_timeout)
        except Exception as e:
            logger.warning("Failed to gracefully shut down: %s", e)
        else:
            logger.debug("Stopped %d bootstrap(s)", len(self._bootstraps))
