"""Container configuration.

Settings come from flat key/value sources combined with
:func:`configuration`; :func:`load_settings` turns them into
:class:`ContainerSettings`.

Example:
    >>> cfg = configuration(EnvSource(), overrides={"PICO_WIRE_ALLOW_CIRCULAR_REFERENCES": "false"})
    >>> load_settings(cfg).allow_circular_references
    False
"""

import json
import os
import typing
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple

from .constants import LOGGER
from .conversion import SimpleTypeConverter
from .exceptions import ConfigurationError, TypeMismatchError

_SCALARS = (str, int, float, bool)


def _as_text(value: Any) -> Optional[str]:
    # nested mappings and lists are not settings
    return str(value) if isinstance(value, _SCALARS) else None


class ConfigSource(Protocol):
    def get(self, key: str) -> Optional[str]: ...


class EnvSource:
    """Environment variables, looked up as ``prefix + key``."""

    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix

    def get(self, key: str) -> Optional[str]:
        return os.environ.get(f"{self.prefix}{key}")


class FileSource:
    """A JSON document; ``a__b`` looks up ``{"a": {"b": ...}}``.

    A missing file contributes nothing.

    Raises:
        ConfigurationError: If the file exists but is not readable JSON.
    """

    def __init__(self, path: str, prefix: str = "") -> None:
        self.path = path
        self.prefix = prefix
        self._tree: Dict[str, Any] = self._read(path)

    @staticmethod
    def _read(path: str) -> Dict[str, Any]:
        if not os.path.exists(path):
            LOGGER.debug("Configuration file %s not found, using no values from it", path)
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Failed to load JSON config {path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        node: Any = self._tree
        for part in f"{self.prefix}{key}".split("__"):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return _as_text(node)


class FlatDictSource:
    """An in-memory mapping; with ``case_sensitive=False`` keys match in any case."""

    def __init__(self, data: Mapping[str, Any], prefix: str = "", case_sensitive: bool = True) -> None:
        self._fold = (lambda s: s) if case_sensitive else str.upper
        self._prefix = self._fold(prefix)
        self._data = {self._fold(str(k)): v for k, v in data.items()}

    def get(self, key: str) -> Optional[str]:
        if not key:
            return None
        value = self._data.get(self._prefix + self._fold(key))
        return None if value is None else _as_text(value)


_SOURCE_TYPES = (EnvSource, FileSource, FlatDictSource)


@dataclass(frozen=True)
class ContextConfig:
    """Sources in precedence order; *overrides* beat every source."""

    flat_sources: Tuple[ConfigSource, ...]
    overrides: Dict[str, Any]

    def get(self, key: str) -> Optional[str]:
        if key in self.overrides:
            return str(self.overrides[key])
        return next((v for v in (s.get(key) for s in self.flat_sources) if v is not None), None)


def configuration(*sources: Any, overrides: Optional[Dict[str, Any]] = None) -> ContextConfig:
    unknown = [s for s in sources if not isinstance(s, _SOURCE_TYPES)]
    if unknown:
        raise ConfigurationError(f"Unknown configuration source type: {type(unknown[0])}")
    return ContextConfig(flat_sources=tuple(sources), overrides=dict(overrides or {}))


@dataclass(frozen=True)
class ContainerSettings:
    """Switches that change how the container builds components.

    Attributes:
        allow_circular_references: Expose early references of singletons so
            that cycles through properties resolve.
        allow_raw_injection_despite_wrapping: Only warn when a component that
            was handed out raw during a cycle is wrapped afterwards.
        lenient_resolution: Default resolution mode for definitions built
            from classes (type distance instead of strict assignability).
        non_public_access_allowed: Default for considering underscore-prefixed
            constructors and factory methods.
        allow_definition_overriding: Allow registering a definition under a
            name that is already taken.
    """
    allow_circular_references: bool = True
    allow_raw_injection_despite_wrapping: bool = False
    lenient_resolution: bool = True
    non_public_access_allowed: bool = True
    allow_definition_overriding: bool = True


def load_settings(config: Optional[ContextConfig] = None, prefix: str = "PICO_WIRE_") -> ContainerSettings:
    """Read :class:`ContainerSettings` from *config*.

    Each field is looked up as ``prefix`` plus the upper-cased field name;
    missing keys keep the default.
    """
    if config is None:
        return ContainerSettings()
    converter = SimpleTypeConverter()
    hints = typing.get_type_hints(ContainerSettings)
    values: Dict[str, Any] = {}
    for f in fields(ContainerSettings):
        key = prefix + f.name.upper()
        raw = config.get(key)
        if raw is None:
            continue
        try:
            values[f.name] = converter.convert(raw, hints[f.name])
        except TypeMismatchError as e:
            raise ConfigurationError(f"Invalid value for {key}: {raw!r}") from e
    return ContainerSettings(**values)


__all__ = [
    "ConfigSource",
    "EnvSource",
    "FileSource",
    "FlatDictSource",
    "ContextConfig",
    "configuration",
    "ContainerSettings",
    "load_settings",
]
