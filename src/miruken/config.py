# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Typed configuration loaded from YAML.

A YamlConfigProvider parses a YAML document once and validates sections of
it into pydantic models (or any type pydantic can validate). The config
feature makes the provider available and installs ConfigFactory, which
answers dependencies annotated with ``Load``:

    >>> class Database:
    ...     @provides
    ...     def __init__(self, settings: Annotated[DbSettings, Load("db")]): ...

Sections are addressed by dotted paths; an empty path loads the whole
document.

Security:
    Documents are parsed with ``yaml.safe_load``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any, Optional, TypeVar

import yaml
from pydantic import BaseModel, TypeAdapter, ValidationError

from miruken.constraints import Constraint, first_constraint
from miruken.errors import ConfigurationError, ModelMirukenErrorContext
from miruken.models import ModelConfigSource
from miruken.protocols import ProtocolConfigProvider
from miruken.provides import Provides, provides

__all__ = [
    "ConfigFactory",
    "ConfigFeature",
    "Load",
    "YamlConfigProvider",
    "config_feature",
]

logger = logging.getLogger(__name__)

TModel = TypeVar("TModel")


class Load(Constraint):
    """Requests configuration at ``path``.

    A Load without a path is a wildcard satisfying every Load request.
    """

    required = True

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path

    def satisfies(self, required: Optional[Constraint], callback: Any) -> bool:
        if not isinstance(required, Load):
            return False
        return self.path is None or self.path == required.path

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Load) and other.path == self.path

    def __hash__(self) -> int:
        return hash((Load, self.path))

    def __repr__(self) -> str:
        return f"Load({self.path!r})" if self.path is not None else "Load()"


def _error(message: str, path: str) -> ConfigurationError:
    return ConfigurationError(
        message,
        context=ModelMirukenErrorContext(operation="load_config"),
        path=path,
    )


class YamlConfigProvider:
    """Configuration provider backed by a YAML document.

    Args:
        source: Where the document comes from.

    Raises:
        ConfigurationError: If the document cannot be read or parsed.
    """

    def __init__(self, source: ModelConfigSource) -> None:
        self._source = source
        self._lock = threading.Lock()
        self._document: Optional[Mapping[str, Any]] = None

    @classmethod
    def from_text(cls, text: str, root: str = "") -> YamlConfigProvider:
        return cls(ModelConfigSource(text=text, root=root))

    @classmethod
    def from_data(cls, data: dict[str, Any], root: str = "") -> YamlConfigProvider:
        return cls(ModelConfigSource(data=data, root=root))

    @property
    def source(self) -> ModelConfigSource:
        return self._source

    def _load(self) -> Mapping[str, Any]:
        with self._lock:
            if self._document is None:
                document = self._read()
                if self._source.root:
                    document = _section(document, self._source.root)
                if document is None:
                    document = {}
                if not isinstance(document, Mapping):
                    raise _error(
                        f"configuration root must be a mapping, "
                        f"got {type(document).__name__}",
                        self._source.root,
                    )
                self._document = document
            return self._document

    def _read(self) -> Any:
        source = self._source
        if source.data is not None:
            return source.data
        if source.text is not None:
            return self._parse(source.text, "<text>")
        path = source.path
        if path is None or not path.exists():
            if source.required:
                raise _error(f"configuration file not found: {path}", str(path))
            logger.debug("Optional configuration file %s not found", path)
            return {}
        with path.open() as f:
            return self._parse(f, str(path))

    @staticmethod
    def _parse(stream: Any, origin: str) -> Any:
        try:
            return yaml.safe_load(stream)
        except yaml.YAMLError as e:
            raise _error(f"invalid YAML in {origin}: {e}", origin) from e

    def unmarshal(self, path: str, model_type: type[TModel]) -> TModel:
        """Validate the section at ``path`` into ``model_type``.

        Raises:
            ConfigurationError: If the section is missing or invalid.
        """
        section = _section(self._load(), path) if path else self._load()
        if section is None:
            raise _error(f"configuration section {path!r} not found", path)
        try:
            if isinstance(model_type, type) and issubclass(model_type, BaseModel):
                return model_type.model_validate(section)
            return TypeAdapter(model_type).validate_python(section)
        except ValidationError as e:
            raise _error(f"invalid configuration at {path!r}: {e}", path) from e

    def __repr__(self) -> str:
        return f"YamlConfigProvider({self._source!r})"


def _section(document: Any, path: str) -> Any:
    current = document
    for part in path.split("."):
        if not part:
            continue
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


class ConfigFactory:
    """Provides configuration for dependencies requesting a Load."""

    @provides(Load())
    def load(
        self,
        request: Provides,
        config: ProtocolConfigProvider,
    ) -> Any:
        load = first_constraint(request, Load)
        if load is None or not isinstance(request.key, type):
            return None
        logger.debug("Loading %s from %r", request.key.__name__, load.path)
        return config.unmarshal(load.path or "", request.key)


class ConfigFeature:
    """Setup feature providing configuration from ``provider``."""

    def __init__(self, provider: ProtocolConfigProvider) -> None:
        if provider is None:
            raise ValueError("provider cannot be None")
        self._provider = provider

    @property
    def provider(self) -> ProtocolConfigProvider:
        return self._provider

    def install(self, setup: Any) -> None:
        if setup.can_install(ConfigFeature):
            setup.specs(ConfigFactory).with_(self._provider)


def config_feature(
    source: ModelConfigSource | ProtocolConfigProvider,
) -> ConfigFeature:
    """Build the config feature from a source or an existing provider."""
    if isinstance(source, ModelConfigSource):
        return ConfigFeature(YamlConfigProvider(source))
    return ConfigFeature(source)
