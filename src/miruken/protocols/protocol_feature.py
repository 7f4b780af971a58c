# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Installable setup feature protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from miruken.setup.builder import SetupBuilder


@runtime_checkable
class ProtocolFeature(Protocol):
    """Protocol for bundles of specs, handlers and options."""

    def install(self, setup: SetupBuilder) -> None:
        """Register this feature's contributions with ``setup``."""
        ...


__all__ = ["ProtocolFeature"]
