# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""
Miruken Error Code Enumeration.

Classifies every error raised by the dispatch engine so callers can branch on
a stable code instead of the exception type or message text.

Thread Safety:
    All enums in this module are immutable and thread-safe.
"""

from __future__ import annotations

from enum import Enum, unique


@unique
class EnumMirukenErrorCode(str, Enum):
    """
    Error classification for the callback dispatch engine.

    Dispatch outcomes:
        - NOT_HANDLED: No binding accepted the callback
        - REJECTED: A filter or guard vetoed the dispatch
        - UNRESOLVED_ARG: A required binding argument could not be resolved

    Descriptor construction:
        - METHOD_BINDING: A method could not be parsed into a binding
        - HANDLER_DESCRIPTOR: A handler spec produced one or more invalid bindings

    Runtime:
        - TRAVERSAL_CIRCULARITY: A graph walk detected a cycle
        - CANCELED: Cooperative cancellation was observed
        - VALIDATION: A validation outcome contains errors
        - ACCESS_DENIED: An authorization policy denied the action
        - CONTEXT_INACTIVE: A scoped instance was requested from an inactive context
        - MISSING_RESPONSE: A batched request received no response
        - CONFIGURATION: Configuration could not be loaded or validated
        - INVALID_OPERATION: An operation was attempted in an invalid state
        - OPERATION_FAILED: Generic failure
    """

    NOT_HANDLED = "not_handled"
    """No matching binding accepted the callback."""

    REJECTED = "rejected"
    """A filter or guard vetoed the dispatch."""

    UNRESOLVED_ARG = "unresolved_arg"
    """A required argument could not be resolved."""

    METHOD_BINDING = "method_binding"
    """A handler method could not be parsed into a binding."""

    HANDLER_DESCRIPTOR = "handler_descriptor"
    """A handler spec could not be described."""

    TRAVERSAL_CIRCULARITY = "traversal_circularity"
    """A graph walk detected a cycle."""

    CANCELED = "canceled"
    """Cooperative cancellation was observed."""

    VALIDATION = "validation"
    """Aggregated validation errors."""

    ACCESS_DENIED = "access_denied"
    """Authorization denied."""

    CONTEXT_INACTIVE = "context_inactive"
    """Scoped instances cannot be bound to an inactive context."""

    MISSING_RESPONSE = "missing_response"
    """A batched request was not answered."""

    CONFIGURATION = "configuration"
    """Configuration loading or validation failed."""

    INVALID_OPERATION = "invalid_operation"
    """Operation attempted in an invalid state."""

    SETUP = "setup"
    """One or more setup features failed to install."""

    OPERATION_FAILED = "operation_failed"
    """Generic operation failure."""

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


__all__ = ["EnumMirukenErrorCode"]
