"""Symbolic declared values and the resolver that turns them into objects.

Declared argument and property values may be plain Python objects or one of
the markers below. :class:`DefinitionValueResolver` replaces markers with
concrete values and returns everything else unchanged, so resolving twice is
harmless.

Example:
    >>> definition.argument_values.add_generic(Ref("data_source"))
    >>> definition.property_values.add("timeout", TypedValue("30", int))
"""

import itertools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Union

from .constants import LOGGER
from .exceptions import ComponentCreationError, InvalidReferenceError, PicoError

if TYPE_CHECKING:
    from .conversion import TypeConverter
    from .definition import ComponentDefinition

_inner_ids = itertools.count(1)


@dataclass(frozen=True)
class Ref:
    """Reference to another managed component, by name or by type."""
    target: Union[str, type]


@dataclass(frozen=True)
class NameRef:
    """Resolves to the component name itself, after checking it exists."""
    name: str


@dataclass(frozen=True)
class TypedValue:
    """A raw value to be converted to *target_type* when resolved."""
    value: Any
    target_type: Any = None


@dataclass(frozen=True)
class InnerDefinition:
    """An anonymous component created for a single injection."""
    definition: "ComponentDefinition"
    name: Optional[str] = None


@dataclass(frozen=True)
class ManagedList:
    items: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class ManagedSet:
    items: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class ManagedDict:
    entries: Dict[Any, Any] = field(default_factory=dict)


_SYMBOLIC = (Ref, NameRef, TypedValue, InnerDefinition, ManagedList, ManagedSet, ManagedDict)


def is_symbolic(value: Any) -> bool:
    """Whether *value* must go through a :class:`ValueResolver` before use."""
    return isinstance(value, _SYMBOLIC)


class ValueResolver(Protocol):
    def resolve(self, value: Any, *, context: Optional[str] = None) -> Any: ...


class DefinitionValueResolver:
    """Resolves declared values on behalf of the component *component_name*.

    Args:
        container: The owning :class:`~pico_wire.container.PicoContainer`.
        component_name: Name of the component whose values are resolved.
        definition: Its definition.
        converter: Converter used for :class:`TypedValue` markers.
    """

    def __init__(self, container: Any, component_name: str, definition: "ComponentDefinition", converter: "TypeConverter") -> None:
        self._container = container
        self._name = component_name
        self._definition = definition
        self._converter = converter

    def resolve(self, value: Any, *, context: Optional[str] = None) -> Any:
        where = context or "argument"
        if isinstance(value, Ref):
            return self._resolve_reference(value, where)
        if isinstance(value, NameRef):
            if not self._container.has(value.name):
                raise InvalidReferenceError(self._name, where, value.name)
            return value.name
        if isinstance(value, InnerDefinition):
            return self._resolve_inner(value, where)
        if isinstance(value, TypedValue):
            if value.target_type is None:
                return value.value
            try:
                return self._converter.convert(value.value, value.target_type)
            except PicoError as e:
                raise ComponentCreationError(
                    self._name, f"Error converting typed value for {where}", cause=e, description=self._definition.resource_description
                ) from e
        if isinstance(value, ManagedList):
            return [self.resolve(v, context=where) for v in value.items]
        if isinstance(value, ManagedSet):
            return {self.resolve(v, context=where) for v in value.items}
        if isinstance(value, ManagedDict):
            return {self.resolve(k, context=where): self.resolve(v, context=where) for k, v in value.entries.items()}
        return value

    def _resolve_reference(self, ref: Ref, where: str) -> Any:
        try:
            if isinstance(ref.target, str):
                obj = self._container.get(ref.target)
                self._container.register_dependent(self._container.transformed_name(ref.target), self._name)
                return obj
            name = self._container.name_for_type(ref.target)
            obj = self._container.get(name)
            self._container.register_dependent(name, self._name)
            return obj
        except PicoError as e:
            target = ref.target if isinstance(ref.target, str) else getattr(ref.target, "__name__", ref.target)
            raise ComponentCreationError(
                self._name,
                f"Cannot resolve reference to component '{target}' while setting {where}",
                cause=e,
                description=self._definition.resource_description,
            ) from e

    def _resolve_inner(self, inner: InnerDefinition, where: str) -> Any:
        inner_name = inner.name or f"(inner component)#{next(_inner_ids)}"
        try:
            obj = self._container.create_component(inner_name, inner.definition)
            self._container.register_dependent(inner_name, self._name)
            LOGGER.debug("Created inner component '%s' for %s of '%s'", inner_name, where, self._name)
            return self._container.object_for_instance(obj, inner_name, inner_name, inner.definition)
        except PicoError as e:
            raise ComponentCreationError(
                self._name,
                f"Cannot create inner component '{inner_name}' while setting {where}",
                cause=e,
                description=self._definition.resource_description,
            ) from e

