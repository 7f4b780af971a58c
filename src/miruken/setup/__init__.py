# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Application setup: features, bootstrapping and the root context."""

from miruken.setup.bootstrap import Bootstrapper
from miruken.errors import SetupError
from miruken.setup.builder import SetupBuilder, setup
from miruken.setup.feature import Feature, FeatureFunc, feature_set

__all__: list[str] = [
    "Bootstrapper",
    "Feature",
    "FeatureFunc",
    "SetupBuilder",
    "SetupError",
    "feature_set",
    "setup",
]
