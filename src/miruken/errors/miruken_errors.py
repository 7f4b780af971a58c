# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Dispatch Error Classes.

This module defines the error classes raised by the miruken dispatch engine.
Every error carries an EnumMirukenErrorCode and optional structured context
so callers can classify failures without parsing messages.

Error Hierarchy:
    MirukenError (base dispatch error)
    ├── NotHandledError
    ├── RejectedError
    ├── UnresolvedArgError
    ├── MethodBindingError
    ├── HandlerDescriptorError
    ├── TraversalCircularityError
    ├── CanceledError
    ├── AccessDeniedError
    ├── ContextInactiveError
    ├── MissingResponseError
    ├── ConfigurationError
    └── InvalidOperationError

All errors:
    - Use EnumMirukenErrorCode for error classification
    - Support proper error chaining with `raise ... from e`
    - Accept ModelMirukenErrorContext for bundled context parameters
    - Accept arbitrary keyword context for debugging
"""

from typing import Optional
from uuid import UUID

from miruken.enums import EnumMirukenErrorCode
from miruken.errors.model_error_context import ModelMirukenErrorContext


class MirukenError(Exception):
    """Base error class for the dispatch engine.

    Structured Fields (via ModelMirukenErrorContext):
        operation: Operation being performed
        callback: Callback the failure relates to
        handler: Handler the failure relates to
        correlation_id: Request correlation ID for tracing

    Example:
        >>> context = ModelMirukenErrorContext(operation="dispatch")
        >>> raise MirukenError("Dispatch failed", context=context, attempt=2)
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[EnumMirukenErrorCode] = None,
        context: Optional[ModelMirukenErrorContext] = None,
        **extra_context: object,
    ) -> None:
        """Initialize MirukenError with structured fields.

        Args:
            message: Human-readable error message
            error_code: Error code (defaults to OPERATION_FAILED)
            context: Bundled dispatch context
            **extra_context: Additional context information
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or EnumMirukenErrorCode.OPERATION_FAILED

        structured_context: dict[str, object] = dict(extra_context)
        correlation_id: Optional[UUID] = None
        if context is not None:
            if context.operation is not None:
                structured_context["operation"] = context.operation
            if context.callback is not None:
                structured_context["callback"] = context.callback
            if context.handler is not None:
                structured_context["handler"] = context.handler
            correlation_id = context.correlation_id
        self.correlation_id = correlation_id
        self.context = structured_context

    def __str__(self) -> str:
        return self.message


class NotHandledError(MirukenError):
    """Raised when no binding accepted a callback.

    Example:
        >>> raise NotHandledError(callback)
    """

    def __init__(self, callback: object, **extra_context: object) -> None:
        self.callback = callback
        super().__init__(
            message=f"callback {callback!r} not handled",
            error_code=EnumMirukenErrorCode.NOT_HANDLED,
            **extra_context,
        )


class RejectedError(MirukenError):
    """Raised when a filter or guard vetoed a callback."""

    def __init__(self, callback: object, **extra_context: object) -> None:
        self.callback = callback
        super().__init__(
            message=f"callback {callback!r} was rejected",
            error_code=EnumMirukenErrorCode.REJECTED,
            **extra_context,
        )


class UnresolvedArgError(MirukenError):
    """Raised when a required binding argument could not be resolved.

    Attributes:
        arg: Name of the parameter that failed
        reason: Underlying failure, if any
    """

    def __init__(
        self,
        arg: str,
        reason: Optional[BaseException] = None,
        **extra_context: object,
    ) -> None:
        self.arg = arg
        self.reason = reason
        message = f"unresolved argument '{arg}'"
        if reason is not None:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            error_code=EnumMirukenErrorCode.UNRESOLVED_ARG,
            **extra_context,
        )


class MethodBindingError(MirukenError):
    """Raised when a handler method cannot be parsed into a binding."""

    def __init__(
        self,
        method: object,
        reason: str,
        **extra_context: object,
    ) -> None:
        self.method = method
        self.reason = reason
        name = getattr(method, "__qualname__", repr(method))
        super().__init__(
            message=f"invalid binding '{name}': {reason}",
            error_code=EnumMirukenErrorCode.METHOD_BINDING,
            **extra_context,
        )


class HandlerDescriptorError(MirukenError):
    """Raised when a handler spec yields one or more invalid bindings.

    The individual failures are available as ``reason`` (an ExceptionGroup
    when more than one binding failed).
    """

    def __init__(
        self,
        spec: object,
        reason: BaseException,
        **extra_context: object,
    ) -> None:
        self.spec = spec
        self.reason = reason
        super().__init__(
            message=f"invalid handler: {spec!r} reason: {reason}",
            error_code=EnumMirukenErrorCode.HANDLER_DESCRIPTOR,
            context=ModelMirukenErrorContext(
                operation="describe",
                handler=repr(spec),
            ),
            **extra_context,
        )
        self.__cause__ = reason


class TraversalCircularityError(MirukenError):
    """Raised when a graph traversal encounters a node twice."""

    def __init__(self, node: object, **extra_context: object) -> None:
        self.node = node
        super().__init__(
            message=f"circularity detected for node {node!r}",
            error_code=EnumMirukenErrorCode.TRAVERSAL_CIRCULARITY,
            **extra_context,
        )


class CanceledError(MirukenError):
    """Raised when cooperative cancellation is observed.

    Attributes:
        cause: The reason supplied to the cancellation, if any
    """

    def __init__(
        self,
        cause: Optional[BaseException] = None,
        **extra_context: object,
    ) -> None:
        self.cause = cause
        message = "operation canceled"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(
            message=message,
            error_code=EnumMirukenErrorCode.CANCELED,
            **extra_context,
        )


class AccessDeniedError(MirukenError):
    """Raised when authorization denies an action."""

    def __init__(self, action: object, **extra_context: object) -> None:
        self.action = action
        super().__init__(
            message=f'access denied: "{type(action).__name__}"',
            error_code=EnumMirukenErrorCode.ACCESS_DENIED,
            **extra_context,
        )


class ContextInactiveError(MirukenError):
    """Raised when a scoped instance is requested from an inactive context."""

    def __init__(self, context: object, **extra_context: object) -> None:
        self.scope = context
        super().__init__(
            message="scoped: cannot scope instances to an inactive context",
            error_code=EnumMirukenErrorCode.CONTEXT_INACTIVE,
            **extra_context,
        )


class MissingResponseError(MirukenError):
    """Raised when a batched request receives no response."""

    def __init__(self, request: object = None, **extra_context: object) -> None:
        self.request = request
        super().__init__(
            message="missing batch response",
            error_code=EnumMirukenErrorCode.MISSING_RESPONSE,
            **extra_context,
        )


class ConfigurationError(MirukenError):
    """Raised when configuration cannot be loaded or validated."""

    def __init__(self, message: str, **extra_context: object) -> None:
        super().__init__(
            message=message,
            error_code=EnumMirukenErrorCode.CONFIGURATION,
            **extra_context,
        )


class InvalidOperationError(MirukenError):
    """Raised when an operation is attempted in an invalid state."""

    def __init__(self, message: str, **extra_context: object) -> None:
        super().__init__(
            message=message,
            error_code=EnumMirukenErrorCode.INVALID_OPERATION,
            **extra_context,
        )


class SetupError(MirukenError):
    """Raised when one or more setup features fail to install.

    Attributes:
        errors: The individual installation failures.
    """

    def __init__(self, errors: list[Exception], **extra_context: object) -> None:
        super().__init__(
            message="; ".join(str(e) for e in errors) or "setup failed",
            error_code=EnumMirukenErrorCode.SETUP,
            failures=len(errors),
            **extra_context,
        )
        self.errors = errors


__all__ = [
    "AccessDeniedError",
    "CanceledError",
    "ConfigurationError",
    "ContextInactiveError",
    "HandlerDescriptorError",
    "InvalidOperationError",
    "MethodBindingError",
    "MirukenError",
    "MissingResponseError",
    "NotHandledError",
    "RejectedError",
    "SetupError",
    "TraversalCircularityError",
    "UnresolvedArgError",
]
