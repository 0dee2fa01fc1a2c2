# src/pico_wire/container.py
import contextvars
import random
import time
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

from .analysis import DependencyRequest, Procedure, factory_method_candidates
from .config import ContainerSettings
from .constants import (
    AUTOWIRE_BY_NAME,
    AUTOWIRE_BY_TYPE,
    AUTOWIRE_CONSTRUCTOR,
    DEPENDENCY_CHECK_NONE,
    DEPENDENCY_CHECK_OBJECTS,
    FACTORY_PREFIX,
    LOGGER,
    NULL_OBJECT,
    SCOPE_PROTOTYPE,
)
from .container_creation import _CreationMixin
from .conversion import SimpleTypeConverter, TypeConverter
from .definition import ComponentDefinition, default_component_name, definition_from_class
from .exceptions import (
    ComponentCreationError,
    ComponentDefinitionError,
    CurrentlyInCreationError,
    NoSuchComponentError,
    NoUniqueComponentError,
    NotOfRequiredTypeError,
    TypeMismatchError,
)
from .factory import FactoryComponent, FactoryComponentRegistry
from .instantiation import DirectExecution, ExecutionContext, InstantiationStrategy, SubclassingInstantiationStrategy
from .resolver import ConstructorResolver
from .scope import ScopedCaches, ScopeManager, ScopeProtocol
from .typing_utils import is_assignable_type, is_assignable_value
from .values import DefinitionValueResolver

KeyT = Union[str, type]


def _is_factory_class(cls: Any) -> bool:
    if not isinstance(cls, type):
        return False
    try:
        return issubclass(cls, FactoryComponent)
    except TypeError:
        return False


def _is_factory_dereference(name: str) -> bool:
    return isinstance(name, str) and name.startswith(FACTORY_PREFIX)


class PicoContainer(FactoryComponentRegistry, _CreationMixin):
    """Owns the component definitions, the registries and the creation machinery.

    Components are requested by name or by type with :meth:`get`. Singletons
    live in the shared registry, prototypes are created on every request and
    custom-scope instances are cached per active scope id.

    Example:
        >>> container = PicoContainer()
        >>> container.register_class(Database)
        >>> container.register_class(UserRepository)
        >>> container.get(UserRepository).db is container.get("database")
        True
    """

    _container_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("pico_wire_container_id", default=None)
    _container_registry: Dict[str, "PicoContainer"] = {}

    class _Ctx:
        def __init__(self, container_id: str, created_at: float) -> None:
            self.container_id = container_id
            self.created_at = created_at
            self.resolve_count = 0
            self.cache_hit_count = 0

    def __init__(
        self,
        settings: Optional[ContainerSettings] = None,
        *,
        type_converter: Optional[TypeConverter] = None,
        instantiation_strategy: Optional[InstantiationStrategy] = None,
        execution_context: Optional[ExecutionContext] = None,
        scopes: Optional[ScopeManager] = None,
        observers: Optional[List[Any]] = None,
        container_id: Optional[str] = None,
    ) -> None:
        super().__init__()
        self.settings = settings or ContainerSettings()
        self.type_converter = type_converter or SimpleTypeConverter()
        self.instantiation_strategy = instantiation_strategy or SubclassingInstantiationStrategy()
        self.execution_context = execution_context or DirectExecution()
        self.scopes = scopes or ScopeManager()
        self._caches = ScopedCaches()
        self._definitions: Dict[str, ComponentDefinition] = {}
        self._aliases: Dict[str, str] = {}
        self._post_processors: List[Any] = []
        self._observers = list(observers or [])
        self._resolvable: Dict[type, Any] = {PicoContainer: self}
        self._resolver = ConstructorResolver(self)
        self._prototypes_in_creation: contextvars.ContextVar[frozenset] = contextvars.ContextVar(
            "pico_wire_prototypes_in_creation", default=frozenset()
        )
        self._creation_chain: contextvars.ContextVar[Tuple[str, ...]] = contextvars.ContextVar("pico_wire_creation_chain", default=())
        self.container_id = container_id or self._generate_container_id()
        self.context = PicoContainer._Ctx(container_id=self.container_id, created_at=time.time())
        PicoContainer._container_registry[self.container_id] = self

    @staticmethod
    def _generate_container_id() -> str:
        return f"c{time.time_ns():x}{random.randrange(1 << 16):04x}"

    @classmethod
    def get_current(cls) -> Optional["PicoContainer"]:
        cid = cls._container_id_var.get()
        return cls._container_registry.get(cid) if cid else None

    @classmethod
    def all_containers(cls) -> Dict[str, "PicoContainer"]:
        return dict(cls._container_registry)

    @contextmanager
    def as_current(self):
        token = PicoContainer._container_id_var.set(self.container_id)
        try:
            yield self
        finally:
            PicoContainer._container_id_var.reset(token)

    # definitions

    def register_definition(self, name: str, definition: ComponentDefinition) -> None:
        """Register *definition* under *name*, replacing (and resetting) an existing one."""
        if not name:
            raise ComponentDefinitionError(None, "component name must be a non-empty string")
        definition.validate(name)
        existing = self._definitions.get(name)
        if existing is not None:
            if not self.settings.allow_definition_overriding:
                raise ComponentDefinitionError(
                    name, f"cannot register {definition!r}: there is already {existing!r} bound and overriding is disabled"
                )
            LOGGER.debug("Overriding definition for component '%s': replacing %r with %r", name, existing, definition)
        self._definitions[name] = definition
        if existing is not None or self.contains_singleton(name):
            self._reset_definition(name)

    def register_class(self, cls: type, name: Optional[str] = None) -> str:
        """Register *cls* using its ``@component`` metadata. Returns the component name."""
        default_name, definition = definition_from_class(
            cls,
            lenient=self.settings.lenient_resolution,
            non_public_access_allowed=self.settings.non_public_access_allowed,
        )
        name = name or default_name
        self.register_definition(name, definition)
        return name

    def remove_definition(self, name: str) -> None:
        if name not in self._definitions:
            raise NoSuchComponentError(name)
        del self._definitions[name]
        self._reset_definition(name)

    def _reset_definition(self, name: str) -> None:
        self.destroy_singleton(name)
        self._caches.remove(name)

    def get_definition(self, name: str) -> ComponentDefinition:
        canonical = self.transformed_name(name)
        definition = self._definitions.get(canonical)
        if definition is None:
            raise NoSuchComponentError(name)
        return definition

    def contains_definition(self, name: str) -> bool:
        return name in self._definitions

    def definition_names(self) -> List[str]:
        return list(self._definitions)

    def register_alias(self, name: str, alias: str) -> None:
        if alias == name:
            self._aliases.pop(alias, None)
            return
        if self.canonical_name(name) == alias:
            raise ComponentDefinitionError(alias, f"cannot register alias '{alias}' for name '{name}': circular reference")
        if alias in self._aliases and not self.settings.allow_definition_overriding:
            raise ComponentDefinitionError(alias, f"alias is already in use for component '{self._aliases[alias]}'")
        self._aliases[alias] = name

    def aliases_of(self, name: str) -> List[str]:
        return [alias for alias in self._aliases if self.canonical_name(alias) == name]

    def canonical_name(self, name: str) -> str:
        seen: Set[str] = set()
        while name in self._aliases and name not in seen:
            seen.add(name)
            name = self._aliases[name]
        return name

    def transformed_name(self, name: str) -> str:
        """Strip factory dereference prefixes and follow aliases."""
        while name.startswith(FACTORY_PREFIX):
            name = name[len(FACTORY_PREFIX):]
        return self.canonical_name(name)

    def register_resolvable_dependency(self, dependency_type: type, value: Any) -> None:
        """Inject *value* wherever *dependency_type* is autowired, without registering a component."""
        self._resolvable[dependency_type] = value

    # retrieval

    def get(self, key: KeyT, *args: Any, required_type: Any = None) -> Any:
        """Return the component for *key* (a name, ``&name`` or a type), creating it when needed.

        Extra positional *args* are passed to the construction procedure
        instead of resolved arguments.
        """
        if isinstance(key, type):
            if key in self._resolvable:
                return self._resolvable[key]
            name = self.name_for_type(key)
            required_type = required_type or key
        else:
            name = key
        transformed = self.transformed_name(name)
        started = time.perf_counter()

        shared = self.get_singleton(transformed)
        if shared is not None and not args:
            if self.is_singleton_currently_in_creation(transformed):
                LOGGER.debug("Returning eagerly cached instance of singleton component '%s' that is not fully initialized yet", transformed)
            self.context.cache_hit_count += 1
            for o in self._observers:
                o.on_cache_hit(transformed)
            obj = self.object_for_instance(shared, name, transformed, None)
        else:
            if transformed in self._prototypes_in_creation.get():
                raise CurrentlyInCreationError(transformed, self._currently_in_creation_message(transformed))
            definition = self._definitions.get(transformed)
            if definition is None:
                raise NoSuchComponentError(name)
            self._initialize_depends_on(transformed, definition)
            instance = self._create_scoped(transformed, definition, list(args) if args else None)
            obj = self.object_for_instance(instance, name, transformed, definition)
            self.context.resolve_count += 1
            took_ms = (time.perf_counter() - started) * 1000
            for o in self._observers:
                o.on_resolve(transformed, took_ms)
        return self._adapt(obj, transformed, required_type)

    def _initialize_depends_on(self, name: str, definition: ComponentDefinition) -> None:
        for dep in definition.depends_on:
            if self.is_dependent(name, dep):
                raise CurrentlyInCreationError(name, f"Circular depends-on relationship between '{name}' and '{dep}'")
            self.register_dependent(dep, name)
            try:
                self.get(dep)
            except NoSuchComponentError as e:
                raise ComponentCreationError(
                    name, f"'{name}' depends on missing component '{dep}'", cause=e, description=definition.resource_description
                ) from e

    def _create_scoped(self, name: str, definition: ComponentDefinition, args: Optional[Sequence[Any]]) -> Any:
        if definition.is_singleton:
            def create() -> Any:
                try:
                    return self._create_tracked(name, definition, args)
                except Exception:
                    self.destroy_singleton(name)
                    raise
            return self.get_or_create_singleton(name, create)
        if definition.is_prototype:
            return self._create_prototype(name, definition, args)
        cache = self._caches.for_scope(self.scopes, definition.scope)
        existing = cache.get(name)
        if existing is not None:
            return existing
        created = self._create_prototype(name, definition, args)
        cache.put(name, created)
        return created

    def _create_prototype(self, name: str, definition: ComponentDefinition, args: Optional[Sequence[Any]]) -> Any:
        token = self._prototypes_in_creation.set(self._prototypes_in_creation.get() | {name})
        try:
            return self._create_tracked(name, definition, args)
        finally:
            self._prototypes_in_creation.reset(token)

    def _create_tracked(self, name: str, definition: ComponentDefinition, args: Optional[Sequence[Any]]) -> Any:
        token = self._creation_chain.set(self._creation_chain.get() + (name,))
        try:
            return self.create_component(name, definition, args)
        finally:
            self._creation_chain.reset(token)

    def _adapt(self, obj: Any, name: str, required_type: Any) -> Any:
        if obj is NULL_OBJECT:
            return None
        if required_type is None or is_assignable_value(required_type, obj):
            return obj
        try:
            return self.type_converter.convert(obj, required_type)
        except TypeMismatchError as e:
            raise NotOfRequiredTypeError(name, required_type, type(obj)) from e

    def _currently_in_creation_message(self, name: str) -> Optional[str]:
        chain = self._creation_chain.get()
        if not chain:
            return None
        lines = ["Requested component is currently in creation: is there an unresolvable circular reference?", "", "Creation chain:"]
        full = chain + (name,)
        for idx, n in enumerate(full, 1):
            definition = self._definitions.get(n)
            scope = definition.scope if definition is not None else "singleton"
            mark = "  ❌" if idx == len(full) else ""
            lines.append(f"  {idx}. {n} [scope={scope}]{mark}")
        lines.append("")
        lines.append("Hint: move one side of the cycle to property injection on a singleton.")
        return "\n".join(lines)

    def is_actually_in_creation(self, name: str) -> bool:
        return self.is_singleton_currently_in_creation(name) or name in self._prototypes_in_creation.get()

    def object_for_instance(self, instance: Any, name: str, transformed: str, definition: Optional[ComponentDefinition]) -> Any:
        """Return *instance*, or the product when *instance* is a factory component and *name* does not dereference it."""
        if _is_factory_dereference(name):
            if instance is NULL_OBJECT:
                return instance
            if not isinstance(instance, FactoryComponent):
                raise NotOfRequiredTypeError(name, FactoryComponent, type(instance))
            return instance
        if instance is NULL_OBJECT or not isinstance(instance, FactoryComponent):
            return instance
        obj = self.get_cached_object_for_factory(transformed) if definition is None else None
        if obj is None:
            synthetic = definition is not None and definition.synthetic
            obj = self.get_object_from_factory(instance, transformed, not synthetic)
        return obj

    def post_process_object_from_factory(self, obj: Any, name: str) -> Any:
        return self.apply_after_initialization(obj, name)

    # types

    def _determine_target_type(self, name: str, definition: ComponentDefinition) -> Optional[type]:
        target = definition.resolved_target_type
        if target is None:
            if definition.factory_method_name is not None:
                target = self._factory_method_type(definition)
            else:
                target = definition.component_type
            definition.resolved_target_type = target
        return target

    def _factory_method_type(self, definition: ComponentDefinition) -> Optional[type]:
        self._resolver.resolve_factory_method_if_possible(definition)
        procedure = definition.resolved_procedure
        if isinstance(procedure, Procedure):
            return procedure.return_type if isinstance(procedure.return_type, type) else None
        if definition.factory_component_name is not None:
            factory_cls = self.get_type(definition.factory_component_name)
            is_static = False
        else:
            factory_cls = definition.component_type
            is_static = True
        if factory_cls is None:
            return None
        returns = {
            c.return_type
            for c in factory_method_candidates(factory_cls, definition.factory_method_name, is_static, definition.non_public_access_allowed)
        }
        if len(returns) == 1:
            only = returns.pop()
            return only if isinstance(only, type) else None
        return None

    def _predict_type(self, name: str, definition: ComponentDefinition) -> Optional[type]:
        target = self._determine_target_type(name, definition)
        if target is not None:
            for pp in self._smart_post_processors():
                predicted = pp.predict_type(target, name)
                if predicted is not None:
                    return predicted
        return target

    def get_type(self, name: str, allow_init: bool = True) -> Optional[type]:
        """Type of the object :meth:`get` would return for *name*, without creating it where possible."""
        canonical = self.transformed_name(name)
        deref = _is_factory_dereference(name)
        obj = self.get_singleton(canonical, allow_early_reference=False)
        if obj is not None and obj is not NULL_OBJECT:
            if isinstance(obj, FactoryComponent) and not deref:
                return self.get_type_for_factory(obj)
            return obj.__class__
        definition = self._definitions.get(canonical)
        if definition is None:
            return None
        target = self._predict_type(canonical, definition)
        if _is_factory_class(target) and not deref:
            if not allow_init:
                return None
            try:
                factory = self.get(FACTORY_PREFIX + canonical)
            except CurrentlyInCreationError as e:
                LOGGER.debug("Ignoring component creation error when checking the product type of factory '%s': %s", canonical, e)
                return None
            return self.get_type_for_factory(factory)
        return target

    def is_type_match(self, name: str, target: Any) -> bool:
        tp = self.get_type(name)
        return tp is not None and is_assignable_type(tp, target)

    def _known_type(self, name: str, definition: ComponentDefinition) -> Optional[type]:
        obj = self.get_singleton(name, allow_early_reference=False)
        if obj is not None and obj is not NULL_OBJECT and not isinstance(obj, FactoryComponent):
            return obj.__class__
        return self._predict_type(name, definition)

    def names_for_type(self, target: Any) -> List[str]:
        """Names of every component whose object is assignable to *target*, in registration order.

        Factory components match as ``name`` through their product and as
        ``&name`` through their own class.
        """
        result: List[str] = []
        for name, definition in list(self._definitions.items()):
            tp = self._known_type(name, definition)
            if tp is None:
                continue
            if _is_factory_class(tp):
                product = self.get_type(name)
                if product is not None and is_assignable_type(product, target):
                    result.append(name)
                if is_assignable_type(tp, target):
                    result.append(FACTORY_PREFIX + name)
            elif is_assignable_type(tp, target):
                result.append(name)
        for name in self.singleton_names():
            if name in self._definitions:
                continue
            obj = self.get_singleton(name, allow_early_reference=False)
            if obj is None or obj is NULL_OBJECT:
                continue
            if isinstance(obj, FactoryComponent):
                product = self.get_type_for_factory(obj)
                if product is not None and is_assignable_type(product, target):
                    result.append(name)
            elif is_assignable_type(obj.__class__, target):
                result.append(name)
        return result

    def _is_autowire_candidate(self, name: str) -> bool:
        definition = self._definitions.get(self.transformed_name(name))
        return definition is None or definition.autowire_candidate

    def _primary_candidate(self, candidates: Sequence[str], key: Any) -> Optional[str]:
        primaries = [n for n in candidates if self._is_primary(n)]
        if len(primaries) > 1:
            raise NoUniqueComponentError(key, primaries)
        return primaries[0] if primaries else None

    def _is_primary(self, name: str) -> bool:
        definition = self._definitions.get(self.transformed_name(name))
        return definition is not None and definition.primary

    def name_for_type(self, target: Any) -> str:
        """The single autowire candidate for *target*, preferring a primary one."""
        candidates = [n for n in self.names_for_type(target) if self._is_autowire_candidate(n)]
        if not candidates:
            raise NoSuchComponentError(target)
        if len(candidates) == 1:
            return candidates[0]
        primary = self._primary_candidate(candidates, target)
        if primary is not None:
            return primary
        raise NoUniqueComponentError(target, candidates)

    # dependency resolution

    def resolve_dependency(
        self,
        request: DependencyRequest,
        requesting_name: Optional[str],
        autowired_names: Optional[Set[str]] = None,
        converter: Optional[TypeConverter] = None,
    ) -> Any:
        """Find the value for one parameter or property described by *request*.

        Names of the components used are added to *autowired_names*.
        """
        key = request.key
        if isinstance(key, str):
            return self._resolve_by_name(request, requesting_name, autowired_names)
        if not (request.is_list or request.is_dict) and key in self._resolvable:
            return self._resolvable[key]

        names = [
            n
            for n in self.names_for_type(key)
            if self.transformed_name(n) != requesting_name and self._is_autowire_candidate(n)
        ]
        if request.qualifier:
            names = [n for n in names if n == request.qualifier or request.qualifier in self.aliases_of(n)]

        if request.is_list or request.is_dict:
            found = {n: self.get(n) for n in names}
            if autowired_names is not None:
                autowired_names.update(self.transformed_name(n) for n in names)
            value: Any = found if request.is_dict else list(found.values())
            if converter is not None:
                value = converter.convert(value, request.declared_type)
            return value

        if not names:
            if request.is_optional:
                return None
            raise NoSuchComponentError(key, requesting_name)
        if len(names) == 1:
            chosen = names[0]
        else:
            chosen = self._primary_candidate(names, key)
            if chosen is None and request.use_name:
                chosen = next((n for n in names if n == request.parameter_name or request.parameter_name in self.aliases_of(n)), None)
            if chosen is None:
                raise NoUniqueComponentError(key, names, requesting_name)
        if autowired_names is not None:
            autowired_names.add(self.transformed_name(chosen))
        return self.get(chosen)

    def _resolve_by_name(self, request: DependencyRequest, requesting_name: Optional[str], autowired_names: Optional[Set[str]]) -> Any:
        key = request.key
        if self.has(key) and self.transformed_name(key) != requesting_name:
            name = key
        else:
            # unresolved forward references arrive as class names
            matches = [
                n
                for n, definition in self._definitions.items()
                if n != requesting_name
                and definition.autowire_candidate
                and getattr(self._known_type(n, definition), "__name__", None) == key
            ]
            if not matches:
                if request.is_optional:
                    return None
                raise NoSuchComponentError(key, requesting_name)
            if len(matches) > 1:
                name = self._primary_candidate(matches, key)
                if name is None:
                    raise NoUniqueComponentError(key, matches, requesting_name)
            else:
                name = matches[0]
        if autowired_names is not None:
            autowired_names.add(self.transformed_name(name))
        return self.get(name)

    def value_resolver_for(self, name: str, definition: ComponentDefinition) -> DefinitionValueResolver:
        return DefinitionValueResolver(self, name, definition, self.type_converter)

    # queries

    def has(self, key: KeyT) -> bool:
        if isinstance(key, type):
            return key in self._resolvable or any(self._is_autowire_candidate(n) for n in self.names_for_type(key))
        canonical = self.transformed_name(key)
        return canonical in self._definitions or self.contains_singleton(canonical)

    def is_singleton(self, name: str) -> bool:
        canonical = self.transformed_name(name)
        obj = self.get_singleton(canonical, allow_early_reference=False)
        if obj is not None:
            if isinstance(obj, FactoryComponent) and not _is_factory_dereference(name):
                return obj.is_singleton()
            return True
        definition = self._definitions.get(canonical)
        if definition is None:
            raise NoSuchComponentError(name)
        return definition.is_singleton

    def is_prototype(self, name: str) -> bool:
        canonical = self.transformed_name(name)
        definition = self._definitions.get(canonical)
        if definition is None:
            if self.contains_singleton(canonical):
                return False
            raise NoSuchComponentError(name)
        return definition.is_prototype

    # unmanaged objects

    def create(self, cls: type) -> Any:
        """Build a fully initialized, autowired instance of *cls* without registering it."""
        definition = ComponentDefinition(
            cls,
            scope=SCOPE_PROTOTYPE,
            autowire=AUTOWIRE_CONSTRUCTOR,
            lenient=self.settings.lenient_resolution,
            non_public_access_allowed=self.settings.non_public_access_allowed,
            description=f"class {cls.__module__}.{cls.__qualname__}",
        )
        definition.validate(default_component_name(cls))
        return self.create_component(f"{cls.__module__}.{cls.__qualname__}", definition)

    def autowire_existing(self, obj: Any, autowire: str = AUTOWIRE_BY_TYPE, dependency_check: bool = False) -> None:
        """Populate the writable properties of an object the container did not create."""
        if autowire not in (AUTOWIRE_BY_NAME, AUTOWIRE_BY_TYPE):
            raise ComponentDefinitionError(None, f"autowire_existing supports by_name and by_type only, not '{autowire}'")
        cls = type(obj)
        definition = ComponentDefinition(
            cls,
            scope=SCOPE_PROTOTYPE,
            autowire=autowire,
            dependency_check=DEPENDENCY_CHECK_OBJECTS if dependency_check else DEPENDENCY_CHECK_NONE,
        )
        self.populate(f"{cls.__module__}.{cls.__qualname__}", definition, obj)

    def initialize(self, obj: Any, name: str) -> Any:
        """Run aware callbacks, post-processors and init methods on *obj*."""
        return self.initialize_component(name, obj)

    # post-processors

    def add_post_processor(self, post_processor: Any) -> None:
        if post_processor in self._post_processors:
            self._post_processors.remove(post_processor)
        self._post_processors.append(post_processor)

    @property
    def post_processors(self) -> List[Any]:
        return list(self._post_processors)

    def preinstantiate_singletons(self) -> None:
        """Create every non-lazy singleton; factory components are created but not asked for their product."""
        for name in list(self._definitions):
            definition = self._definitions[name]
            if not definition.is_singleton or definition.lazy_init:
                continue
            if _is_factory_class(self._predict_type(name, definition)):
                self.get(FACTORY_PREFIX + name)
            else:
                self.get(name)

    # scopes

    def register_scope(self, name: str, implementation: Optional[ScopeProtocol] = None) -> None:
        self.scopes.register_scope(name, implementation)

    def activate_scope(self, name: str, scope_id: Any):
        return self.scopes.activate(name, scope_id)

    def deactivate_scope(self, name: str, token: Optional[contextvars.Token]) -> None:
        self.scopes.deactivate(name, token)

    @contextmanager
    def scope(self, name: str, scope_id: Any):
        tok = self.activate_scope(name, scope_id)
        try:
            yield self
        finally:
            self.deactivate_scope(name, tok)

    def cleanup_scope(self, name: str, scope_id: Any) -> None:
        """Forget every instance cached for *scope_id* of scope *name*."""
        self._caches.cleanup_scope(name, scope_id)

    # diagnostics

    def info(self, msg: str) -> None:
        LOGGER.info("[%s] %s", self.container_id[:8], msg)

    def stats(self) -> Dict[str, Any]:
        resolves = self.context.resolve_count
        hits = self.context.cache_hit_count
        total = resolves + hits
        return {
            "container_id": self.container_id,
            "uptime_seconds": time.time() - self.context.created_at,
            "total_resolves": resolves,
            "cache_hits": hits,
            "cache_hit_rate": (hits / total) if total > 0 else 0.0,
            "registered_components": len(self._definitions),
            "singletons": self.singleton_count,
        }

    def export_graph(self, path: str, **kwargs: Any) -> None:
        from .graph_export import export_graph

        export_graph(self, path, **kwargs)

    def shutdown(self) -> None:
        """Drop every singleton, factory product and scoped instance; unregister the container."""
        self.destroy_singletons()
        self._caches.clear()
        PicoContainer._container_registry.pop(self.container_id, None)
        self.info("Container shut down")


__all__ = ["PicoContainer"]
