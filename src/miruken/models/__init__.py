# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Miruken Models.

This module exports the pydantic models used to configure miruken.
"""

from miruken.models.model_authorize_options import ModelAuthorizeOptions
from miruken.models.model_config_source import ModelConfigSource
from miruken.models.model_setup_options import ModelSetupOptions

__all__: list[str] = [
    "ModelAuthorizeOptions",
    "ModelConfigSource",
    "ModelSetupOptions",
]
