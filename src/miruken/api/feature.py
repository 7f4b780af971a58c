# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Setup feature installing the messaging api handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from miruken.api.route import PassThroughRouter
from miruken.api.schedule import Scheduler
from miruken.api.stash import Stash

if TYPE_CHECKING:
    from miruken.setup.builder import SetupBuilder

__all__ = ["ApiFeature", "feature"]


class ApiFeature:
    """Installs the scheduler, the pass-through router and a root Stash."""

    def install(self, setup: SetupBuilder) -> None:
        if setup.can_install(ApiFeature):
            setup.specs(Scheduler, PassThroughRouter).handlers(Stash(root=True))


def feature() -> ApiFeature:
    return ApiFeature()
