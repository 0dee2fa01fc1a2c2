"""Instantiation strategies and the execution context they run under.

The resolver never calls a procedure itself: it hands the chosen procedure and
its arguments to an :class:`InstantiationStrategy`, and every such call runs
inside the container's :class:`ExecutionContext`.
"""

import functools
import threading
from typing import Any, Callable, Dict, Optional, Protocol, Sequence, Tuple, TypeVar

from ._state import current_factory_method, factory_method_scope
from .analysis import KIND_FACTORY_METHOD, KIND_INIT, Procedure, analyze_parameters
from .definition import LookupOverride, ReplaceOverride
from .exceptions import ComponentDefinitionError

T = TypeVar("T")


class ExecutionContext(Protocol):
    def run(self, fn: Callable[[], T]) -> T: ...


class DirectExecution:
    """Runs everything inline."""

    def run(self, fn: Callable[[], T]) -> T:
        return fn()


class InstantiationStrategy(Protocol):
    def instantiate(
        self,
        definition: Any,
        name: Optional[str],
        owner: Any,
        procedure: Optional[Procedure] = None,
        args: Sequence[Any] = (),
        factory_object: Any = None,
    ) -> Any: ...


class MethodReplacer(Protocol):
    """Component that reimplements a method named by a ``ReplaceOverride``."""

    def reimplement(self, obj: Any, method: Callable[..., Any], args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> Any: ...


class SimpleInstantiationStrategy:
    """Calls constructors and factory methods directly.

    Definitions with method overrides are rejected; use
    :class:`SubclassingInstantiationStrategy` for those.
    """

    def instantiate(
        self,
        definition: Any,
        name: Optional[str],
        owner: Any,
        procedure: Optional[Procedure] = None,
        args: Sequence[Any] = (),
        factory_object: Any = None,
    ) -> Any:
        if procedure is not None and procedure.kind == KIND_FACTORY_METHOD:
            target = factory_object if factory_object is not None else procedure.owner
            with factory_method_scope(procedure):
                return procedure.invoke(args, target)
        if definition.method_overrides:
            return self._instantiate_with_overrides(definition, name, owner, procedure, args)
        if procedure is None:
            procedure = self._default_constructor(definition)
        return procedure.invoke(args)

    @staticmethod
    def _default_constructor(definition: Any) -> Procedure:
        cls = definition.component_type
        if cls is None:
            raise ComponentDefinitionError(None, "no component type to instantiate")
        with definition.constructor_argument_lock:
            procedure = definition.resolved_procedure
            if procedure is None:
                procedure = Procedure(owner=cls, name="__init__", kind=KIND_INIT, parameters=(), declaring_type=cls)
                definition.resolved_procedure = procedure
        return procedure

    def _instantiate_with_overrides(
        self, definition: Any, name: Optional[str], owner: Any, procedure: Optional[Procedure], args: Sequence[Any]
    ) -> Any:
        raise ComponentDefinitionError(name, "method injection is not supported by SimpleInstantiationStrategy")


class SubclassingInstantiationStrategy(SimpleInstantiationStrategy):
    """Builds a subclass per definition that implements lookup and replaced methods."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generated: Dict[Tuple[type, Tuple[Any, ...], int], type] = {}

    def _instantiate_with_overrides(
        self, definition: Any, name: Optional[str], owner: Any, procedure: Optional[Procedure], args: Sequence[Any]
    ) -> Any:
        subclass = self.subclass_for(definition, owner)
        if procedure is None:
            return subclass()
        return procedure.invoke(args, subclass)

    def subclass_for(self, definition: Any, owner: Any) -> type:
        cls = definition.component_type
        key = (cls, tuple(definition.method_overrides), id(owner))
        with self._lock:
            generated = self._generated.get(key)
            if generated is None:
                generated = self._generate(cls, definition.method_overrides, owner)
                self._generated[key] = generated
            return generated

    def _generate(self, cls: type, overrides: Sequence[Any], owner: Any) -> type:
        namespace: Dict[str, Any] = {"__module__": cls.__module__, "__qualname__": cls.__qualname__, "_pico_wire_generated": True}
        for override in overrides:
            original = getattr(cls, override.method_name)
            if isinstance(override, LookupOverride):
                namespace[override.method_name] = self._lookup_method(cls, original, override, owner)
            elif isinstance(override, ReplaceOverride):
                namespace[override.method_name] = self._replaced_method(original, override, owner)
        return type(cls.__name__, (cls,), namespace)

    @staticmethod
    def _lookup_method(cls: type, original: Callable[..., Any], override: Any, owner: Any) -> Callable[..., Any]:
        target = override.component_name
        if target is None:
            _, target = analyze_parameters(original, cls)

        @functools.wraps(original)
        def lookup(self, *args):
            return owner.get(target, *args)

        return lookup

    @staticmethod
    def _replaced_method(original: Callable[..., Any], override: Any, owner: Any) -> Callable[..., Any]:
        @functools.wraps(original)
        def replaced(self, *args, **kwargs):
            replacer = owner.get(override.replacer_name)
            return replacer.reimplement(self, original, args, kwargs)

        return replaced


__all__ = [
    "ExecutionContext",
    "current_factory_method",
    "DirectExecution",
    "InstantiationStrategy",
    "MethodReplacer",
    "SimpleInstantiationStrategy",
    "SubclassingInstantiationStrategy",
]
