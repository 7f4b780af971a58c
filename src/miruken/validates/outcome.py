# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Validation outcome: a tree of errors addressed by property paths.

Paths use dots for members and brackets for indexers. ``a.b[0].c`` and
``a.b.0.c`` address the same node: every segment but the last names a
nested Outcome stored among that segment's errors.

Example:
    >>> outcome = Outcome()
    >>> outcome.add_error("Work[0].Street", ValueError("required"))
    >>> outcome.fields
    ['Work']
    >>> outcome.field_errors("Work.0.Street")
    [ValueError('required')]
"""

from __future__ import annotations

from typing import Any, Optional

from miruken.enums import EnumMirukenErrorCode
from miruken.errors import MirukenError

__all__ = ["Outcome"]


class Outcome(MirukenError):
    """Structured validation errors keyed by property path."""

    def __init__(self) -> None:
        super().__init__(
            message="validation failed",
            error_code=EnumMirukenErrorCode.VALIDATION,
        )
        self._errors: dict[str, list[BaseException]] = {}

    @property
    def valid(self) -> bool:
        return not self._errors

    @property
    def fields(self) -> list[str]:
        return list(self._errors)

    def add_error(self, path: str, error: BaseException) -> None:
        """Record ``error`` at ``path``, creating nested outcomes as needed.

        Raises:
            ValueError: If ``error`` is an Outcome or ``path`` is malformed.
        """
        if error is None:
            raise ValueError("error cannot be None")
        if isinstance(error, Outcome):
            raise ValueError("cannot add an Outcome directly to a path")
        parent, key = self._parse_path(path, require=True)
        parent._errors.setdefault(key, []).append(error)

    def field_errors(self, path: str) -> list[BaseException]:
        parent, key = self._parse_path(path, require=False)
        if parent is None:
            return []
        return list(parent._errors.get(key, ()))

    def path(self, path: str) -> Optional[Outcome]:
        """Return the nested outcome at ``path``, or None if absent."""
        parent, key = self._parse_path(path, require=False)
        if parent is None:
            return None
        return parent._child(key, require=False)

    def require_path(self, path: str) -> Outcome:
        """Return the nested outcome at ``path``, creating it if absent."""
        parent, key = self._parse_path(path, require=True)
        return parent._require_child(key)

    def _child(self, key: str, require: bool) -> Optional[Outcome]:
        for error in self._errors.get(key, ()):
            if isinstance(error, Outcome):
                return error
        return self._require_child(key) if require else None

    def _require_child(self, key: str) -> Outcome:
        for error in self._errors.get(key, ()):
            if isinstance(error, Outcome):
                return error
        child = Outcome()
        self._errors.setdefault(key, []).append(child)
        return child

    def _parse_path(self, path: str, require: bool) -> tuple[Any, str]:
        segments = _split_path(path)
        parent = self
        for segment in segments[:-1]:
            child = parent._child(segment, require)
            if child is None:
                return None, segments[-1]
            parent = child
        return parent, segments[-1]

    def __str__(self) -> str:
        parts = []
        for key in sorted(self._errors):
            rendered = ", ".join(
                f"({error})" if isinstance(error, Outcome) else str(error)
                for error in self._errors[key]
            )
            parts.append(f"{key}: {rendered}")
        return "; ".join(parts)

    def __repr__(self) -> str:
        return f"Outcome({self})"


def _split_path(path: str) -> list[str]:
    """Split ``path`` into segments treating ``[i]`` like ``.i``.

    Raises:
        ValueError: For an empty path, an empty indexer or unbalanced brackets.
    """
    if not path:
        raise ValueError("path cannot be empty")
    segments: list[str] = []
    current = ""
    index = 0
    while index < len(path):
        char = path[index]
        if char == ".":
            if current:
                segments.append(current)
            current = ""
        elif char == "[":
            if current:
                segments.append(current)
            current = ""
            end = path.find("]", index)
            if end < 0:
                raise ValueError(f"invalid property indexer in {path!r}")
            indexer = path[index + 1 : end]
            if not indexer:
                raise ValueError(f"missing property index in {path!r}")
            segments.append(indexer)
            index = end
        elif char == "]":
            raise ValueError(f"invalid property indexer in {path!r}")
        else:
            current += char
        index += 1
    if current:
        segments.append(current)
    if not segments:
        raise ValueError(f"invalid path {path!r}")
    return segments
