# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Setup features: installable bundles of specs, handlers and options.

A feature is any object with ``install(setup)``. Features may also expose
``depends_on()`` returning further features (installed after it, level by
level) and ``after_install(setup, handler)``, called once the context has
been built.

Features installing shared contributions should guard them with
``setup.can_install(tag)`` so they install once however often they are
requested.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from miruken.handler import Handler
    from miruken.setup.builder import SetupBuilder

__all__ = ["Feature", "FeatureFunc", "feature_set"]


class Feature(ABC):
    """Base class for setup features."""

    @abstractmethod
    def install(self, setup: SetupBuilder) -> None:
        """Contribute specs, handlers or options to ``setup``."""

    def depends_on(self) -> Sequence[Any]:
        return ()

    def after_install(self, setup: SetupBuilder, handler: Handler) -> None:
        """Hook called with the built context."""


class FeatureFunc(Feature):
    """Adapts a function taking the SetupBuilder into a Feature."""

    def __init__(self, install: Callable[[SetupBuilder], None]) -> None:
        if install is None:
            raise ValueError("install cannot be None")
        self._install = install

    def install(self, setup: SetupBuilder) -> None:
        self._install(setup)

    def __repr__(self) -> str:
        name = getattr(self._install, "__qualname__", repr(self._install))
        return f"FeatureFunc({name})"


def feature_set(*features: Optional[Any]) -> FeatureFunc:
    """Combine ``features`` into a single feature installing each in order."""
    members = [f for f in features if f is not None]

    def install(setup: SetupBuilder) -> None:
        for member in members:
            member.install(setup)

    return FeatureFunc(install)
