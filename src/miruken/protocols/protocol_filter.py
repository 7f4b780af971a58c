# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Filter and filter provider protocols.

A filter wraps the invocation of a single binding. A filter provider
materializes the filters that apply to a (binding, callback, composer)
triple. Providers may additionally define ``applies_to(callback) -> bool``
to restrict the callbacks they participate in.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from miruken.filter import Next
    from miruken.handler import HandleContext, Handler


@runtime_checkable
class ProtocolFilter(Protocol):
    """Protocol for a single pipeline stage."""

    @property
    def order(self) -> int:
        """Stage number; lower runs first, negative runs last."""
        ...

    def next(
        self,
        next_: Next,
        ctx: HandleContext,
        provider: ProtocolFilterProvider,
    ) -> Any:
        """Run the stage and return outputs, a Promise of outputs, or raise."""
        ...


@runtime_checkable
class ProtocolFilterProvider(Protocol):
    """Protocol for sources of filters."""

    @property
    def required(self) -> bool:
        """True if the provider survives filter opt-out."""
        ...

    def filters(
        self,
        binding: Any,
        callback: Any,
        composer: Handler,
    ) -> Sequence[ProtocolFilter]:
        """Materialize the filters for one binding invocation."""
        ...


__all__ = ["ProtocolFilter", "ProtocolFilterProvider"]
