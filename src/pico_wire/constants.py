"""Constants used throughout the pico-wire engine.

This module defines the attribute names stamped onto decorated classes and
functions, the framework logger, the built-in scope identifiers, the autowire
modes, and the weight bounds used when scoring candidate procedures.
"""

import logging
import sys

LOGGER_NAME: str = "pico_wire"
"""Default logger name for the pico-wire engine."""

LOGGER: logging.Logger = logging.getLogger(LOGGER_NAME)
"""Pre-configured logger instance for pico-wire internal diagnostics."""

PICO_META: str = "_pico_wire_meta"
"""Attribute name storing the metadata dictionary written by the decorators."""

SCOPE_SINGLETON: str = "singleton"
"""Built-in scope: one instance per container lifetime."""

SCOPE_PROTOTYPE: str = "prototype"
"""Built-in scope: a new instance on every request."""

AUTOWIRE_NO: str = "no"
AUTOWIRE_BY_NAME: str = "by_name"
AUTOWIRE_BY_TYPE: str = "by_type"
AUTOWIRE_CONSTRUCTOR: str = "constructor"

DEPENDENCY_CHECK_NONE: str = "none"
DEPENDENCY_CHECK_OBJECTS: str = "objects"
DEPENDENCY_CHECK_SIMPLE: str = "simple"
DEPENDENCY_CHECK_ALL: str = "all"

FACTORY_PREFIX: str = "&"
"""Prefix that addresses a factory component itself instead of its product."""

MAX_WEIGHT: int = sys.maxsize
"""Weight of a candidate whose arguments cannot be assigned to its parameters."""

RAW_WEIGHT_BIAS: int = 1024
"""Bonus given to unconverted arguments so an exact raw match wins ties."""


class _NullObject:
    __slots__ = ()

    def __repr__(self) -> str:
        return "NULL_OBJECT"

    def __bool__(self) -> bool:
        return False


NULL_OBJECT = _NullObject()
"""Placeholder stored in caches for components that legitimately resolved to ``None``."""
