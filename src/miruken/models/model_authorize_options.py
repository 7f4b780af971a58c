# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Authorization Options Model."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from miruken.options import ModelOptions


class ModelAuthorizeOptions(ModelOptions):
    """Options controlling access checks.

    Attributes:
        require_policy: Deny actions no access policy answers. Unset grants.
    """

    require_policy: Optional[bool] = Field(
        default=None,
        description="Deny actions that no access policy answers",
    )


__all__ = ["ModelAuthorizeOptions"]
