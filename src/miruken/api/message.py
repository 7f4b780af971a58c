# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Request/response messaging with a per-request Stash.

``send`` expects a response, ``post`` sends a message without one and
``publish`` delivers a message to every interested handler. Each installs a
new Stash in front of ``handler`` for transit state.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from miruken.api.stash import Stash
from miruken.composition import add_handlers
from miruken.errors import NotHandledError
from miruken.handler import Handler
from miruken.handles import command, command_all, execute
from miruken.promise import Promise

__all__ = ["post", "publish", "send"]

logger = logging.getLogger(__name__)


def _with_stash(handler: Handler, message: Any) -> Handler:
    if handler is None:
        raise ValueError("handler cannot be None")
    if message is None:
        raise ValueError("message cannot be None")
    return add_handlers(handler, Stash())


def send(handler: Handler, request: Any, result_type: Any = None) -> Any:
    """Send ``request`` and return its response.

    Returns:
        The response, or a Promise of it when handling is asynchronous.

    Raises:
        NotHandledError: If nothing handles ``request``.
    """
    return execute(_with_stash(handler, request), request, result_type=result_type)


def post(handler: Handler, message: Any) -> Optional[Promise[Any]]:
    """Send ``message`` without expecting a response.

    Returns:
        None, or a Promise settling once asynchronous handling completes.

    Raises:
        NotHandledError: If nothing handles ``message``.
    """
    return command(_with_stash(handler, message), message)


def publish(handler: Handler, message: Any) -> Optional[Promise[Any]]:
    """Deliver ``message`` to every handler accepting it.

    A message nobody handles is not an error.
    """
    try:
        return command_all(_with_stash(handler, message), message)
    except NotHandledError:
        logger.debug("Published %r had no receivers", message)
        return None
