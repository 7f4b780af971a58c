# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Setup feature enabling validation of every Handles message."""

from __future__ import annotations

from typing import TYPE_CHECKING

from miruken.validates.filter import ValidateProvider

if TYPE_CHECKING:
    from miruken.setup.builder import SetupBuilder

__all__ = ["ValidatesFeature", "feature"]


class ValidatesFeature:
    """Installs ValidateProvider as a global filter provider.

    Args:
        output: Also validate the first output of each binding.
    """

    def __init__(self, output: bool = False) -> None:
        self.output = output

    def install(self, setup: SetupBuilder) -> None:
        if setup.can_install(ValidatesFeature):
            setup.filters(ValidateProvider(self.output))


def feature(output: bool = False) -> ValidatesFeature:
    return ValidatesFeature(output)
