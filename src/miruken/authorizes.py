# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Authorizes: access policies for actions performed by a Subject.

Access policies declare ``@authorizes`` bindings taking the action and
returning whether the subject may perform it (a bool, or a Promise of
one). ``access`` asks the policies; a named policy selects only the
bindings carrying that name.

Handles bindings opt into enforcement with the RequireAuthorization
provider, which denies the binding with AccessDeniedError unless access is
granted. The subject is resolved from the composer; without one the
binding is skipped. Principals listed among the binding members must all be
held by the subject, and subjects holding ``SYSTEM`` bypass every check.

Example:
    >>> class TransferPolicy:
    ...     @authorizes
    ...     def transfer(self, action: TransferFunds, subject: Subject) -> bool:
    ...         return action.amount < 10000
    >>> class Account:
    ...     @handles(RequireAuthorization())
    ...     def transfer(self, action: TransferFunds) -> int: ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any, Optional

from miruken.binding import binding_decorator
from miruken.callback import CallbackBase
from miruken.composition import build_up
from miruken.constraints import Named
from miruken.enums import EnumFilterStage
from miruken.errors import AccessDeniedError
from miruken.filter import Filter
from miruken.handler import Handler
from miruken.handles import Handles
from miruken.models import ModelAuthorizeOptions
from miruken.options import get_options
from miruken.policy import ContravariantPolicy, Policy
from miruken.promise import Promise
from miruken.provides import resolve, with_provider
from miruken.security import SYSTEM, Group, Role, Subject, User, has_all_principals

if TYPE_CHECKING:
    from miruken.filter import Next
    from miruken.handler import HandleContext

__all__ = [
    "Authorizes",
    "AuthorizeFilter",
    "RequireAuthorization",
    "access",
    "authorizes",
]

logger = logging.getLogger(__name__)

authorizes = binding_decorator(ContravariantPolicy("authorizes"))


class Authorizes(CallbackBase):
    """Callback asking whether ``subject`` may perform ``action``.

    Args:
        action: The action being authorized.
        subject: Who performs the action.
        constraints: Constraints selecting the access policies.
        key: Key overriding the action's type.
    """

    def __init__(
        self,
        action: Any,
        subject: Subject,
        constraints: Iterable[Any] = (),
        key: Any = None,
    ) -> None:
        if action is None:
            raise ValueError("action cannot be None")
        if subject is None:
            raise ValueError("subject cannot be None")
        super().__init__(False, constraints)
        self._action = action
        self._subject = subject
        self._key = key

    @property
    def policy(self) -> Policy:
        return authorizes.policy

    @property
    def key(self) -> Any:
        return self._key if self._key is not None else type(self._action)

    @property
    def source(self) -> Any:
        return self._action

    @property
    def action(self) -> Any:
        return self._action

    @property
    def subject(self) -> Subject:
        return self._subject

    def __repr__(self) -> str:
        return f"authorizes {self._action!r}"


def _granted(value: Any) -> bool:
    return value is True


def access(
    handler: Handler,
    action: Any,
    policy: Optional[str] = None,
    subject: Optional[Subject] = None,
) -> Any:
    """Check whether ``action`` is permitted.

    Args:
        handler: Handler dispatching to the access policies.
        action: The action to authorize.
        policy: Optional policy name selecting the policies consulted.
        subject: Who performs the action; resolved from ``handler`` when
            omitted, falling back to an anonymous subject.

    Returns:
        True or False, or a Promise of either when a policy is asynchronous.
        Actions no policy answers are granted unless the options require a
        policy.

    Raises:
        Exception: The error of a failing access policy.
    """
    if handler is None:
        raise ValueError("handler cannot be None")
    if subject is None:
        subject = resolve(handler, Subject)
        if not isinstance(subject, Subject):
            subject = Subject()
    constraints = (Named(policy),) if policy else ()
    request = Authorizes(action, subject, constraints)
    handler = build_up(handler, with_provider(subject))
    result = handler.handle(request, True, None)
    if result.is_error:
        raise result.error
    if not result.handled:
        options = get_options(handler, ModelAuthorizeOptions)
        require = bool(options and options.require_policy)
        logger.debug("No access policy for %r, granted=%s", action, not require)
        return not require
    granted = request.result(False)
    if isinstance(granted, Promise):
        return granted.then(_granted)
    return _granted(granted)


class AuthorizeFilter(Filter):
    """Denies the binding unless the subject may perform the action."""

    order = EnumFilterStage.AUTHORIZATION

    def next(
        self,
        next_: Next,
        ctx: HandleContext,
        provider: Any,
    ) -> Any:
        subject = resolve(ctx.composer, Subject)
        if not isinstance(subject, Subject):
            return next_.abort()
        if has_all_principals(subject, SYSTEM):
            return next_.pipe()
        action = ctx.callback.source
        required = [m for m in ctx.binding.metadata if _is_principal(m)]
        if required and not has_all_principals(subject, *required):
            raise AccessDeniedError(action)

        policy = getattr(provider, "policy", None)
        granted = access(ctx.composer, action, policy, subject)

        def proceed(allowed: bool) -> Any:
            if not allowed:
                raise AccessDeniedError(action)
            return next_.pipe()

        if isinstance(granted, Promise):
            return granted.then(proceed)
        return proceed(granted)

    def __repr__(self) -> str:
        return "AuthorizeFilter()"


def _is_principal(member: Any) -> bool:
    return member is SYSTEM or isinstance(member, (Role, Group, User))


_FILTERS = (AuthorizeFilter(),)


class RequireAuthorization:
    """Required filter provider enforcing access to Handles bindings.

    Args:
        policy: Optional policy name the access policies must carry.
    """

    required = True

    def __init__(self, policy: Optional[str] = None) -> None:
        self.policy = policy

    def applies_to(self, callback: Any) -> bool:
        return isinstance(callback, Handles)

    def filters(
        self,
        binding: Any,
        callback: Any,
        composer: Handler,
    ) -> Sequence[Any]:
        return _FILTERS

    def __repr__(self) -> str:
        return f"RequireAuthorization(policy={self.policy!r})"
