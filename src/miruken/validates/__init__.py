# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Validation: validators, outcomes and the validation filter.

Exports:
    - Outcome: Tree of validation errors addressed by property path
    - Validates / validates: Validation callback and binding decorator
    - Group / groups: Validation group constraint
    - validate: Run every validator of an object
    - ValidateProvider / ValidateFilter: Validate Handles messages
    - feature: Setup feature installing the validation filter globally
"""

from miruken.validates.feature import ValidatesFeature, feature
from miruken.validates.filter import ValidateFilter, ValidateProvider
from miruken.validates.outcome import Outcome
from miruken.validates.validates import (
    ANY_GROUP,
    Group,
    Validates,
    groups,
    validate,
    validates,
)

__all__: list[str] = [
    "ANY_GROUP",
    "Group",
    "Outcome",
    "ValidateFilter",
    "ValidateProvider",
    "Validates",
    "ValidatesFeature",
    "feature",
    "groups",
    "validate",
    "validates",
]
