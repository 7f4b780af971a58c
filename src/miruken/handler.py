# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Handler abstraction and the top-level dispatch entry points.

A Handler accepts callbacks through ``handle(callback, greedy, composer)``
and reports a HandleResult. Plain objects become handlers through their
handler descriptor; composite handlers (see ``miruken.composition``) recurse
into their children.

Dispatch Steps:
    1. ``dispatch_callback`` lets callbacks implementing
       ProtocolCustomizeDispatch (including composition wrappers) dispatch
       themselves; anything else is wrapped in a Handles command.
    2. ``dispatch_policy`` lets handlers implementing ProtocolPolicyDispatch
       dispatch themselves; otherwise the handler descriptor is located
       through the composer's descriptor factory and dispatched.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from miruken.errors import HandlerDescriptorError
from miruken.handle_result import NOT_HANDLED, HandleResult
from miruken.protocols import ProtocolCustomizeDispatch, ProtocolPolicyDispatch

if TYPE_CHECKING:
    from miruken.binding import Binding

__all__ = [
    "HandleContext",
    "Handler",
    "SuppressDispatch",
    "dispatch_callback",
    "dispatch_policy",
]

logger = logging.getLogger(__name__)


class Handler(ABC):
    """Base class for objects that accept callbacks."""

    @abstractmethod
    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        """Dispatch ``callback`` to this handler.

        Args:
            callback: Callback or plain message to dispatch.
            greedy: Continue past the first handler that accepts.
            composer: Handler used to resolve dependencies; defaults to self.
        """


class SuppressDispatch:
    """Marker base class for handlers that are never descriptor dispatched."""


@dataclass(frozen=True)
class HandleContext:
    """Dispatch state visible to filters, resolvers and effects."""

    handler: Any
    callback: Any
    binding: Binding
    composer: Handler
    greedy: bool = False


def dispatch_callback(
    handler: Any,
    callback: Any,
    greedy: bool = False,
    composer: Optional[Handler] = None,
) -> HandleResult:
    """Dispatch ``callback`` to a single ``handler``."""
    if handler is None or callback is None:
        return NOT_HANDLED
    if isinstance(callback, ProtocolCustomizeDispatch):
        return callback.dispatch(handler, greedy, composer)
    # Import at runtime to avoid circular import
    from miruken.handles import Handles

    return Handles(callback).dispatch(handler, greedy, composer)


def dispatch_policy(
    handler: Any,
    callback: Any,
    greedy: bool = False,
    composer: Optional[Handler] = None,
) -> HandleResult:
    """Dispatch ``callback`` to ``handler`` using the callback's policy."""
    if isinstance(handler, ProtocolPolicyDispatch):
        return handler.dispatch_policy(callback, greedy, composer)
    # Import at runtime to avoid circular import
    from miruken.descriptor import current_descriptor_factory

    factory = current_descriptor_factory(composer)
    try:
        descriptor = factory.descriptor(handler)
    except HandlerDescriptorError as e:
        logger.debug("Invalid handler %r: %s", handler, e)
        return NOT_HANDLED.with_error(e)
    if descriptor is None:
        return NOT_HANDLED
    return descriptor.dispatch(
        callback.policy, handler, callback, greedy, composer
    )
