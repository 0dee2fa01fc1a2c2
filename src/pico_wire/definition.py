"""Component definitions: how to build one logical component.

A :class:`ComponentDefinition` describes the target class, the construction
procedure (constructor or factory method), declared argument and property
values, lifecycle settings, and carries the cached resolution plan that lets
repeated creation skip candidate scoring.
"""

import inspect
import re
import threading
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .arguments import ArgumentValues, PropertyValues
from .constants import (
    AUTOWIRE_BY_NAME,
    AUTOWIRE_BY_TYPE,
    AUTOWIRE_CONSTRUCTOR,
    AUTOWIRE_NO,
    DEPENDENCY_CHECK_ALL,
    DEPENDENCY_CHECK_NONE,
    DEPENDENCY_CHECK_OBJECTS,
    DEPENDENCY_CHECK_SIMPLE,
    SCOPE_PROTOTYPE,
    SCOPE_SINGLETON,
)
from .decorators import get_meta
from .exceptions import ComponentDefinitionError

_AUTOWIRE_MODES = (AUTOWIRE_NO, AUTOWIRE_BY_NAME, AUTOWIRE_BY_TYPE, AUTOWIRE_CONSTRUCTOR)
_DEPENDENCY_CHECKS = (DEPENDENCY_CHECK_NONE, DEPENDENCY_CHECK_OBJECTS, DEPENDENCY_CHECK_SIMPLE, DEPENDENCY_CHECK_ALL)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def default_component_name(cls: type) -> str:
    """``OrderService`` -> ``order_service``; ``HTTPClient`` -> ``http_client``."""
    return _CAMEL_BOUNDARY.sub("_", cls.__name__).lower()


@dataclass(frozen=True)
class MethodOverride:
    method_name: str


@dataclass(frozen=True)
class LookupOverride(MethodOverride):
    """Replace *method_name* with a container lookup.

    With ``component_name`` unset the method's return annotation is looked up
    by type.
    """
    component_name: Optional[str] = None


@dataclass(frozen=True)
class ReplaceOverride(MethodOverride):
    """Route calls of *method_name* to the :class:`~pico_wire.instantiation.MethodReplacer`
    component named *replacer_name*."""
    replacer_name: str = ""


class ComponentDefinition:
    """Mutable description of one component, shared across its creations.

    Args:
        component_type: The class to instantiate, or the class holding a
            static factory method. May be ``None`` for instance factory
            methods whose product type is unknown.
        factory_method_name: Name of the factory procedure, if the component
            is produced by a factory method.
        factory_component_name: Component holding the instance factory method.
        argument_values: Declared argument values.
        property_values: Declared attribute values.
        scope: ``"singleton"``, ``"prototype"`` or a custom scope name.
        autowire: One of the ``AUTOWIRE_*`` modes.
        lenient: Lenient (type distance) vs. strict (assignability) resolution.
        non_public_access_allowed: Consider underscore-prefixed procedures.
        init_method_name: Method called after properties are applied.
        depends_on: Components created before this one.
    """

    def __init__(
        self,
        component_type: Optional[type] = None,
        *,
        factory_method_name: Optional[str] = None,
        factory_component_name: Optional[str] = None,
        argument_values: Optional[ArgumentValues] = None,
        property_values: Optional[PropertyValues] = None,
        scope: str = SCOPE_SINGLETON,
        autowire: str = AUTOWIRE_NO,
        lenient: bool = True,
        non_public_access_allowed: bool = True,
        init_method_name: Optional[str] = None,
        enforce_init_method: bool = True,
        depends_on: Iterable[str] = (),
        primary: bool = False,
        lazy_init: bool = False,
        autowire_candidate: bool = True,
        synthetic: bool = False,
        method_overrides: Iterable[MethodOverride] = (),
        dependency_check: str = DEPENDENCY_CHECK_NONE,
        description: Optional[str] = None,
    ) -> None:
        self.component_type = component_type
        self.factory_method_name = factory_method_name
        self.factory_component_name = factory_component_name
        self.argument_values = argument_values if argument_values is not None else ArgumentValues()
        self.property_values = property_values if property_values is not None else PropertyValues()
        self.scope = scope or SCOPE_SINGLETON
        self.autowire = autowire
        self.lenient = lenient
        self.non_public_access_allowed = non_public_access_allowed
        self.init_method_name = init_method_name
        self.enforce_init_method = enforce_init_method
        self.depends_on: Tuple[str, ...] = tuple(depends_on)
        self.primary = primary
        self.lazy_init = lazy_init
        self.autowire_candidate = autowire_candidate
        self.synthetic = synthetic
        self.method_overrides: List[MethodOverride] = list(method_overrides)
        self.dependency_check = dependency_check
        self.description = description

        self.constructor_argument_lock = threading.Lock()
        self.resolved_procedure: Any = None
        self.arguments_resolved = False
        self.resolved_arguments: Optional[List[Any]] = None
        self.prepared_arguments: Optional[List[Any]] = None
        self.resolved_target_type: Optional[type] = None

        self.post_processing_lock = threading.Lock()
        self.post_processed = False
        self.before_instantiation_resolved: Optional[bool] = None

    @property
    def is_singleton(self) -> bool:
        return self.scope == SCOPE_SINGLETON

    @property
    def is_prototype(self) -> bool:
        return self.scope == SCOPE_PROTOTYPE

    @property
    def has_argument_values(self) -> bool:
        return not self.argument_values.is_empty()

    @property
    def resource_description(self) -> str:
        if self.description:
            return self.description
        if self.component_type is not None:
            return f"{self.component_type.__module__}.{self.component_type.__qualname__}"
        return f"factory method '{self.factory_method_name}' on component '{self.factory_component_name}'"

    def validate(self, name: Optional[str] = None) -> None:
        """Check settings and method overrides; raises :class:`ComponentDefinitionError`."""
        if self.component_type is None and self.factory_component_name is None:
            raise ComponentDefinitionError(name, "declares neither a component type nor a factory component reference")
        if self.component_type is not None and not inspect.isclass(self.component_type):
            raise ComponentDefinitionError(name, f"component type {self.component_type!r} is not a class")
        if self.factory_component_name is not None and self.factory_method_name is None:
            raise ComponentDefinitionError(name, "a factory component reference requires a factory method name")
        if self.autowire not in _AUTOWIRE_MODES:
            raise ComponentDefinitionError(name, f"unknown autowire mode '{self.autowire}'")
        if self.dependency_check not in _DEPENDENCY_CHECKS:
            raise ComponentDefinitionError(name, f"unknown dependency check '{self.dependency_check}'")
        if self.method_overrides:
            if self.factory_method_name is not None:
                raise ComponentDefinitionError(name, "cannot combine method overrides with a factory method")
            for override in self.method_overrides:
                self._check_override(name, override)

    def _check_override(self, name: Optional[str], override: MethodOverride) -> None:
        if self.component_type is None or not callable(getattr(self.component_type, override.method_name, None)):
            raise ComponentDefinitionError(
                name,
                f"invalid method override: no method with name '{override.method_name}' on class "
                f"[{getattr(self.component_type, '__qualname__', self.component_type)}]",
            )

    def override_for(self, method_name: str) -> Optional[MethodOverride]:
        for o in self.method_overrides:
            if o.method_name == method_name:
                return o
        return None

    def clear_cached_plan(self) -> None:
        with self.constructor_argument_lock:
            self.resolved_procedure = None
            self.arguments_resolved = False
            self.resolved_arguments = None
            self.prepared_arguments = None

    def copy(self) -> "ComponentDefinition":
        """A definition with the same settings and an empty plan cache."""
        return ComponentDefinition(
            self.component_type,
            factory_method_name=self.factory_method_name,
            factory_component_name=self.factory_component_name,
            argument_values=self.argument_values.copy(),
            property_values=self.property_values.copy(),
            scope=self.scope,
            autowire=self.autowire,
            lenient=self.lenient,
            non_public_access_allowed=self.non_public_access_allowed,
            init_method_name=self.init_method_name,
            enforce_init_method=self.enforce_init_method,
            depends_on=self.depends_on,
            primary=self.primary,
            lazy_init=self.lazy_init,
            autowire_candidate=self.autowire_candidate,
            synthetic=self.synthetic,
            method_overrides=self.method_overrides,
            dependency_check=self.dependency_check,
            description=self.description,
        )

    def __repr__(self) -> str:
        target = getattr(self.component_type, "__qualname__", None)
        parts = [f"type={target}", f"scope={self.scope}", f"autowire={self.autowire}"]
        if self.factory_method_name:
            parts.append(f"factory_method={self.factory_method_name}")
        if self.factory_component_name:
            parts.append(f"factory_component={self.factory_component_name}")
        return f"ComponentDefinition({', '.join(parts)})"


def _lookup_overrides(cls: type) -> Sequence[MethodOverride]:
    out: List[MethodOverride] = []
    for klass in reversed(cls.__mro__):
        for attr, member in vars(klass).items():
            meta = get_meta(member) if callable(member) else {}
            if "lookup" in meta:
                out = [o for o in out if o.method_name != attr]
                out.append(LookupOverride(attr, meta["lookup"].get("name")))
    return out


def definition_from_class(cls: type, *, lenient: bool = True, non_public_access_allowed: bool = True) -> Tuple[str, ComponentDefinition]:
    """Build a definition from a (possibly ``@component``-decorated) class.

    *lenient* and *non_public_access_allowed* apply when the decorator did
    not set them.

    Returns:
        The component name and its definition.
    """
    if not inspect.isclass(cls):
        raise ComponentDefinitionError(None, f"{cls!r} is not a class")
    meta = get_meta(cls)
    name = meta.get("name") or default_component_name(cls)
    declared_lenient = meta.get("lenient")
    definition = ComponentDefinition(
        cls,
        scope=meta.get("scope", SCOPE_SINGLETON),
        autowire=meta.get("autowire", AUTOWIRE_CONSTRUCTOR),
        lenient=lenient if declared_lenient is None else declared_lenient,
        non_public_access_allowed=non_public_access_allowed,
        primary=meta.get("primary", False),
        lazy_init=meta.get("lazy", False),
        init_method_name=meta.get("init_method"),
        depends_on=meta.get("depends_on", ()),
        method_overrides=_lookup_overrides(cls),
        description=f"class {cls.__module__}.{cls.__qualname__}",
    )
    return name, definition
