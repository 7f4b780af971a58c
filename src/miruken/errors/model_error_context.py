# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Dispatch Error Context Configuration Model.

Bundles the structured fields shared by dispatch errors so error
constructors stay small while remaining strongly typed.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ModelMirukenErrorContext(BaseModel):
    """Configuration model for dispatch error context.

    Attributes:
        operation: Operation being performed (dispatch, resolve, describe, etc.)
        callback: Rendered callback the error relates to
        handler: Rendered handler or handler spec the error relates to
        correlation_id: Request correlation ID for tracing

    Example:
        >>> context = ModelMirukenErrorContext(
        ...     operation="resolve",
        ...     callback="provides Foo",
        ... )
        >>> raise MirukenError("Resolution failed", context=context)
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    operation: Optional[str] = Field(
        default=None,
        description="Operation being performed (dispatch, resolve, describe, etc.)",
    )
    callback: Optional[str] = Field(
        default=None,
        description="Rendered callback the error relates to",
    )
    handler: Optional[str] = Field(
        default=None,
        description="Rendered handler or handler spec the error relates to",
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Request correlation ID for tracing",
    )


__all__ = ["ModelMirukenErrorContext"]
