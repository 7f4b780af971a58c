# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Disposable resource protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ProtocolDisposable(Protocol):
    """Protocol for objects releasing resources on ``dispose``."""

    def dispose(self) -> None:
        """Release held resources. Must be safe to call once."""
        ...


__all__ = ["ProtocolDisposable"]
