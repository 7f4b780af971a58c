# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Startup/shutdown participant protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from miruken.handler import Handler
    from miruken.promise import Promise


@runtime_checkable
class ProtocolBootstrap(Protocol):
    """Protocol for components started and stopped with the root context."""

    def startup(self, composer: Handler) -> Optional[Promise[object]]:
        ...

    def shutdown(self) -> Optional[Promise[object]]:
        ...


__all__ = ["ProtocolBootstrap"]
