# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Miruken Errors Module.

This module provides the error classes raised by the dispatch engine.

Exports:
    ModelMirukenErrorContext: Configuration model for bundled error context
    MirukenError: Base dispatch error
    NotHandledError: No binding accepted the callback
    RejectedError: A filter or guard vetoed the callback
    UnresolvedArgError: A required argument could not be resolved
    MethodBindingError: A method could not be parsed into a binding
    HandlerDescriptorError: A handler spec could not be described
    TraversalCircularityError: A graph walk detected a cycle
    CanceledError: Cooperative cancellation was observed
    AccessDeniedError: Authorization denied an action
    ContextInactiveError: Scoped instance requested from an inactive context
    MissingResponseError: A batched request received no response
    ConfigurationError: Configuration could not be loaded
    InvalidOperationError: Operation attempted in an invalid state
    SetupError: Setup features failed to install
"""

from miruken.errors.miruken_errors import (
    AccessDeniedError,
    CanceledError,
    ConfigurationError,
    ContextInactiveError,
    HandlerDescriptorError,
    InvalidOperationError,
    MethodBindingError,
    MirukenError,
    MissingResponseError,
    NotHandledError,
    RejectedError,
    SetupError,
    TraversalCircularityError,
    UnresolvedArgError,
)
from miruken.errors.model_error_context import ModelMirukenErrorContext

__all__: list[str] = [
    "AccessDeniedError",
    "CanceledError",
    "ConfigurationError",
    "ContextInactiveError",
    "HandlerDescriptorError",
    "InvalidOperationError",
    "MethodBindingError",
    "MirukenError",
    "MissingResponseError",
    "ModelMirukenErrorContext",
    "NotHandledError",
    "RejectedError",
    "SetupError",
    "TraversalCircularityError",
    "UnresolvedArgError",
]
