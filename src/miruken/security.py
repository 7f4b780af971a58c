# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Subjects and principals used by access checks.

A Subject is whatever requests access (a user, a service, a process); it
carries the principals identifying it. Principals are plain hashable
values compared by equality. The ``SYSTEM`` principal bypasses binding
authorization entirely.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

__all__ = [
    "SYSTEM",
    "Group",
    "Role",
    "Subject",
    "User",
    "has_all_principals",
    "has_any_principals",
]


@dataclass(frozen=True)
class Role:
    name: str


@dataclass(frozen=True)
class Group:
    name: str


@dataclass(frozen=True)
class User:
    name: str


class _System:
    def __repr__(self) -> str:
        return "SYSTEM"


SYSTEM = _System()


class Subject:
    """Entity requesting access, identified by its principals.

    Args:
        principals: Initial principals.
        credentials: Opaque security attributes.
    """

    def __init__(
        self,
        principals: Iterable[Any] = (),
        credentials: Iterable[Any] = (),
    ) -> None:
        self._lock = threading.Lock()
        self._principals: list[Any] = []
        self._credentials = list(credentials)
        self.add_principals(*principals)

    @property
    def principals(self) -> list[Any]:
        with self._lock:
            return list(self._principals)

    @property
    def credentials(self) -> list[Any]:
        return list(self._credentials)

    @property
    def authenticated(self) -> bool:
        return bool(self._principals)

    def add_principals(self, *principals: Any) -> None:
        with self._lock:
            for principal in principals:
                if principal is not None and principal not in self._principals:
                    self._principals.append(principal)

    def __repr__(self) -> str:
        return f"Subject({self.principals!r})"


def has_all_principals(subject: Subject, *principals: Any) -> bool:
    """Return True if ``subject`` holds every one of ``principals``."""
    if subject is None:
        raise ValueError("subject cannot be None")
    held = subject.principals
    return all(p in held for p in principals)


def has_any_principals(subject: Subject, *principals: Any) -> bool:
    """Return True if ``subject`` holds at least one of ``principals``."""
    if subject is None:
        raise ValueError("subject cannot be None")
    held = subject.principals
    return any(p in held for p in principals)
