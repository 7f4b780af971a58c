# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Composable options carried by handler decorators.

Options are pydantic models. A handler built with ``with_options(value)``
answers options requests for any options type ``value`` is an instance of
by merging ``value`` into the requested instance.

Merge Rules:
    - Only fields explicitly set on the source are considered
    - A field already set on the target keeps its value (unset wins)
    - List fields set on both are concatenated (target first)

Tri-state flags are modelled as ``Optional[bool]`` fields: unset, False or
True, distinguished through pydantic's ``model_fields_set``.

Example:
    >>> handler = build_up(root, with_options(ModelFilterOptions(skip_filters=True)))
    >>> get_options(handler, ModelFilterOptions).skip_filters
    True
"""

from __future__ import annotations

import logging
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

from miruken.composition import (
    Builder,
    Composition,
    DecoratedHandler,
    initialize_composer,
)
from miruken.handle_result import HANDLED, NOT_HANDLED, HandleResult
from miruken.handler import Handler, SuppressDispatch

__all__ = [
    "ModelOptions",
    "OptionsCallback",
    "OptionsHandler",
    "get_options",
    "merge_options",
    "with_options",
]

logger = logging.getLogger(__name__)

TOptions = TypeVar("TOptions", bound="ModelOptions")


class ModelOptions(BaseModel):
    """Base model for mergeable options."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        extra="forbid",
    )


def merge_options(target: BaseModel, source: BaseModel) -> bool:
    """Merge the explicitly set fields of ``source`` into ``target``.

    Returns:
        True if ``source`` is compatible with ``target`` and was merged.
    """
    if not isinstance(source, type(target)):
        return False
    target_set = set(target.model_fields_set)
    for name in source.model_fields_set:
        value = getattr(source, name)
        if name not in target_set:
            setattr(target, name, list(value) if isinstance(value, list) else value)
            continue
        current = getattr(target, name)
        if isinstance(current, list) and isinstance(value, list):
            setattr(target, name, [*current, *value])
    return True


class OptionsCallback:
    """Requests the options of a given type from a handler chain."""

    def __init__(self, options: BaseModel) -> None:
        self.options = options

    def can_infer(self) -> bool:
        return False

    def can_filter(self) -> bool:
        return False

    def can_batch(self) -> bool:
        return False

    def dispatch(
        self,
        handler: Any,
        greedy: bool,
        composer: Optional[Handler],
    ) -> HandleResult:
        return NOT_HANDLED

    def __repr__(self) -> str:
        return f"options {type(self.options).__name__}"


class OptionsHandler(DecoratedHandler, SuppressDispatch):
    """Decorator contributing ``options`` to matching options requests."""

    def __init__(self, handler: Handler, options: BaseModel) -> None:
        super().__init__(handler)
        self._options = options

    @property
    def options(self) -> BaseModel:
        return self._options

    def handle(
        self,
        callback: Any,
        greedy: bool = False,
        composer: Optional[Handler] = None,
    ) -> HandleResult:
        if callback is None:
            return NOT_HANDLED
        composer = initialize_composer(composer, self)
        request = callback.callback if isinstance(callback, Composition) else callback
        if isinstance(request, OptionsCallback) and merge_options(
            request.options, self._options
        ):
            result = HANDLED
            if greedy:
                result = result.or_(self._handler.handle(callback, greedy, composer))
            return result
        return self._handler.handle(callback, greedy, composer)


def with_options(options: BaseModel) -> Builder:
    """Builder decorating a handler with ``options``."""
    if options is None:
        raise ValueError("options cannot be None")

    def builder(handler: Handler) -> Handler:
        return OptionsHandler(handler, options)

    return builder


def get_options(
    handler: Handler,
    options: type[TOptions] | TOptions,
) -> Optional[TOptions]:
    """Collect the merged options of a type from ``handler``.

    Args:
        handler: Handler chain to ask.
        options: Options type, or an instance to merge into.

    Returns:
        The merged options, or None if no handler contributed any.
    """
    target = options() if isinstance(options, type) else options
    result = handler.handle(OptionsCallback(target), True, None)
    if result.is_error:
        logger.debug("Options request failed: %s", result.error)
    return target if result.handled else None
