# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Configuration source protocol."""

from __future__ import annotations

from typing import Protocol, TypeVar, runtime_checkable

TModel = TypeVar("TModel")


@runtime_checkable
class ProtocolConfigProvider(Protocol):
    """Protocol for loading typed configuration by dotted path."""

    def unmarshal(self, path: str, model_type: type[TModel]) -> TModel:
        """Load the section at ``path`` (empty for the root) as ``model_type``.

        Raises:
            ConfigurationError: If the section is missing or invalid.
        """
        ...


__all__ = ["ProtocolConfigProvider"]
