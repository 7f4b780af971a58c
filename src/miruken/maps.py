# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Maps: bivariant transformation of a source into a target.

A Maps callback is keyed by ``DiKey(source type, target type)``. Bindings
declared with ``@maps`` take the source as their first parameter and return
the target. The target may be a type or an existing instance to map into
(available to bindings through ``Maps.target``).

Formats:
    ``Format`` constraints select bindings by representation, e.g.
    ``Format.to("application/json")``. Identifiers support the rules
    ``/prefix``, ``suffix/``, ``/regex/`` and the wildcard ``*``.

Example:
    >>> class PlayerMapper:
    ...     @maps(Format.to("application/json"))
    ...     def to_json(self, player: Player) -> str: ...
    >>> map_to(handler, player, str, Format.to("application/json"))
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional

from miruken.binding import binding_decorator
from miruken.callback import CallbackBase
from miruken.constraints import Constraint
from miruken.enums import EnumFormatDirection, EnumFormatRule
from miruken.errors import NotHandledError
from miruken.handle_result import HandleResult
from miruken.handler import Handler, dispatch_policy
from miruken.policy import BivariantPolicy, DiKey, Policy
from miruken.promise import Promise

__all__ = [
    "Format",
    "Maps",
    "map_all",
    "map_key",
    "map_to",
    "maps",
]

maps = binding_decorator(BivariantPolicy("maps"))


class Format(Constraint):
    """Required constraint naming the representation of a mapping.

    Use the ``as_``, ``to`` and ``from_`` constructors.
    """

    required = True

    def __init__(
        self,
        identifier: str,
        direction: EnumFormatDirection = EnumFormatDirection.NONE,
        params: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.direction = direction
        self.params = dict(params or {})
        self.pattern: Optional[re.Pattern[str]] = None
        self.rule = EnumFormatRule.EQUALS
        self.identifier = self._parse(identifier)

    @classmethod
    def as_(cls, identifier: str, params: Optional[Mapping[str, str]] = None) -> Format:
        return cls(identifier, EnumFormatDirection.NONE, params)

    @classmethod
    def to(cls, identifier: str, params: Optional[Mapping[str, str]] = None) -> Format:
        return cls(identifier, EnumFormatDirection.TO, params)

    @classmethod
    def from_(
        cls, identifier: str, params: Optional[Mapping[str, str]] = None
    ) -> Format:
        return cls(identifier, EnumFormatDirection.FROM, params)

    def _parse(self, identifier: str) -> str:
        identifier = (identifier or "").strip()
        if identifier == "*":
            self.rule = EnumFormatRule.ALL
            return identifier
        starts_with = ends_with = False
        start = end = 0
        if identifier.startswith("//"):
            start = 1
        elif identifier.startswith("/"):
            start, starts_with = 1, True
        if len(identifier) > start and identifier.endswith("//"):
            end = 1
        elif len(identifier) > start and identifier.endswith("/"):
            end, ends_with = 1, True
        if start or end:
            identifier = identifier[start : len(identifier) - end].strip()
        if not identifier:
            raise ValueError("empty format identifier")
        if starts_with and ends_with:
            try:
                self.pattern = re.compile(identifier)
            except re.error as e:
                raise ValueError(f"invalid format pattern: {e}") from e
            self.rule = EnumFormatRule.PATTERN
        elif starts_with:
            self.rule = EnumFormatRule.STARTS_WITH
        elif ends_with:
            self.rule = EnumFormatRule.ENDS_WITH
        return identifier

    def merge(self, other: Constraint) -> bool:
        if not isinstance(other, Format):
            return False
        self.__dict__.update(other.__dict__)
        return True

    def flip_direction(self) -> Format:
        flip = copy.copy(self)
        if self.direction is EnumFormatDirection.TO:
            flip.direction = EnumFormatDirection.FROM
        else:
            flip.direction = EnumFormatDirection.TO
        return flip

    def satisfies(self, required: Optional[Constraint], callback: Any) -> bool:
        if not isinstance(required, Format) or self.direction is not required.direction:
            return False
        rule, name = self.rule, self.identifier
        if rule is EnumFormatRule.ALL or required.rule is EnumFormatRule.ALL:
            return True
        wanted = required.identifier
        if required.rule is EnumFormatRule.EQUALS:
            if rule is EnumFormatRule.EQUALS:
                return wanted == name
            if rule is EnumFormatRule.STARTS_WITH:
                return wanted.startswith(name)
            if rule is EnumFormatRule.ENDS_WITH:
                return wanted.endswith(name)
            return self._search(wanted)
        if required.rule is EnumFormatRule.STARTS_WITH:
            if rule in (EnumFormatRule.EQUALS, EnumFormatRule.STARTS_WITH):
                return wanted.startswith(name)
            return rule is EnumFormatRule.PATTERN and self._search(wanted)
        if required.rule is EnumFormatRule.ENDS_WITH:
            if rule is EnumFormatRule.EQUALS:
                return wanted.endswith(name)
            if rule is EnumFormatRule.ENDS_WITH:
                return name.endswith(wanted)
            return rule is EnumFormatRule.PATTERN and self._search(wanted)
        # required is a pattern
        if rule is EnumFormatRule.PATTERN or required.pattern is None:
            return False
        return required.pattern.search(name) is not None

    def _search(self, identifier: str) -> bool:
        return self.pattern is not None and self.pattern.search(identifier) is not None

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, Format)
            and other.direction is self.direction
            and other.rule is self.rule
            and other.identifier == self.identifier
        )

    def __hash__(self) -> int:
        return hash((Format, self.direction, self.rule, self.identifier))

    def __repr__(self) -> str:
        return f"Format({self.direction}:{self.identifier!r})"


class Maps(CallbackBase):
    """Callback mapping ``source`` into ``target``.

    Args:
        source: Value to map; None when mapping by ``key`` alone.
        target: Target type, or an instance to map into.
        key: Input key overriding the source type.
        many: Collect every mapping.
        constraints: Formats and other constraints.
    """

    def __init__(
        self,
        source: Any,
        target: Any,
        key: Any = None,
        many: bool = False,
        constraints: Iterable[Any] = (),
    ) -> None:
        if target is None:
            raise ValueError("target cannot be None")
        if source is None and key is None:
            raise ValueError("source or key is required")
        super().__init__(many, constraints)
        self._source = source
        self._target = target
        self._key = key

    @property
    def policy(self) -> Policy:
        return maps.policy

    @property
    def key(self) -> DiKey:
        in_ = self._key if self._key is not None else type(self._source)
        target = self._target
        out = target if isinstance(target, type) else type(target)
        return DiKey(in_, out)

    @property
    def source(self) -> Any:
        return self._source

    @property
    def target(self) -> Any:
        return self._target

    def dispatch(
        self,
        handler: Any,
        greedy: bool,
        composer: Optional[Handler],
    ) -> HandleResult:
        count = self.result_count
        return dispatch_policy(handler, self, greedy, composer).otherwise_handled(
            self.result_count > count
        )

    def __repr__(self) -> str:
        return f"maps => {self._source!r}"


def _map(handler: Handler, request: Maps) -> Any:
    if handler is None:
        raise ValueError("handler cannot be None")
    result = handler.handle(request, False, None)
    if result.is_error:
        raise result.error
    if not result.handled:
        raise NotHandledError(request)
    return request.result(False)


def map_to(
    handler: Handler,
    source: Any,
    target: Any,
    format: Optional[Format] = None,
    *constraints: Any,
) -> Any:
    """Map ``source`` into ``target`` (a type or an instance).

    Returns:
        The mapped value, or a Promise of it.

    Raises:
        NotHandledError: If no binding mapped the source.
    """
    if source is None:
        raise ValueError("source cannot be None")
    if format is not None:
        constraints = (format, *constraints)
    return _map(handler, Maps(source, target, constraints=constraints))


def map_key(
    handler: Handler,
    key: Any,
    target: Any,
    *constraints: Any,
) -> Any:
    """Map the opaque ``key`` into ``target``."""
    return _map(handler, Maps(None, target, key=key, constraints=constraints))


def map_all(
    handler: Handler,
    sources: Sequence[Any],
    target: Any,
    format: Optional[Format] = None,
    *constraints: Any,
) -> Any:
    """Map each of ``sources`` into the type ``target``.

    Returns:
        A list of mapped values, or a Promise of it when any is asynchronous.
    """
    if sources is None or isinstance(sources, (str, bytes)):
        raise ValueError("sources must be a sequence")
    results = [
        map_to(handler, source, target, format, *constraints) for source in sources
    ]
    if any(isinstance(r, Promise) for r in results):
        return Promise.all(*results)
    return results
