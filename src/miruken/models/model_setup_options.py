# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Setup Options Model.

Options consulted while bootstrapping a context built by SetupBuilder.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from miruken.options import ModelOptions


class ModelSetupOptions(ModelOptions):
    """Timeouts applied to bootstrap startup and shutdown.

    Attributes:
        startup_timeout: Seconds to wait for every bootstrap to start
        shutdown_timeout: Seconds to wait for every bootstrap to stop

    Unset timeouts wait indefinitely.
    """

    startup_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds to wait for every bootstrap to start",
    )
    shutdown_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds to wait for every bootstrap to stop",
    )


__all__ = ["ModelSetupOptions"]
