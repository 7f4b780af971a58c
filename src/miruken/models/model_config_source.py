# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Configuration Source Model.

Describes where YAML configuration is read from. Exactly one of ``path``,
``text`` or ``data`` supplies the document; ``root`` selects a section of it
as the configuration root.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ModelConfigSource(BaseModel):
    """Source of YAML configuration.

    Attributes:
        path: YAML file to load
        text: Inline YAML document
        data: Already parsed configuration
        root: Dotted path of the section used as root (empty for the document)
        required: Fail when ``path`` does not exist instead of loading nothing

    Example:
        >>> source = ModelConfigSource(path=Path("app.yaml"), root="app")
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    path: Optional[Path] = Field(
        default=None,
        description="YAML file to load",
    )
    text: Optional[str] = Field(
        default=None,
        description="Inline YAML document",
    )
    data: Optional[dict[str, Any]] = Field(
        default=None,
        description="Already parsed configuration",
    )
    root: str = Field(
        default="",
        description="Dotted path of the section used as the configuration root",
    )
    required: bool = Field(
        default=True,
        description="Fail when the file does not exist",
    )

    @model_validator(mode="after")
    def _one_document(self) -> ModelConfigSource:
        supplied = [v for v in (self.path, self.text, self.data) if v is not None]
        if len(supplied) != 1:
            raise ValueError("exactly one of path, text or data must be given")
        return self


__all__ = ["ModelConfigSource"]
