from dataclasses import replace
from typing import Any, List, Optional, Sequence

from ._state import injection_point_scope
from .analysis import InjectionPoint, Procedure, dependency_request, writable_properties
from .arguments import PropertyValue, PropertyValues
from .constants import (
    AUTOWIRE_BY_NAME,
    AUTOWIRE_BY_TYPE,
    AUTOWIRE_CONSTRUCTOR,
    DEPENDENCY_CHECK_ALL,
    DEPENDENCY_CHECK_NONE,
    DEPENDENCY_CHECK_OBJECTS,
    DEPENDENCY_CHECK_SIMPLE,
    LOGGER,
)
from .definition import ComponentDefinition
from .exceptions import (
    ComponentCreationError,
    ComponentDefinitionError,
    PicoError,
    RawIdentityLeakError,
    TypeMismatchError,
    UnsatisfiedDependencyError,
)
from .hooks import (
    ComponentPostProcessor,
    ContainerAware,
    DefinitionPostProcessor,
    InitializingComponent,
    InstantiationAwarePostProcessor,
    NameAware,
    SmartInstantiationAwarePostProcessor,
)
from .typing_utils import is_simple_type
from .values import TypedValue


class _CreationMixin:
    """Builds, populates and initializes one component instance.

    Mixed into :class:`~pico_wire.container.PicoContainer`, which provides the
    registry, the resolver, the settings and the post-processor list.
    """

    # post-processor views

    def _component_post_processors(self) -> List[ComponentPostProcessor]:
        return [pp for pp in self._post_processors if isinstance(pp, ComponentPostProcessor)]

    def _instantiation_aware(self) -> List[InstantiationAwarePostProcessor]:
        return [pp for pp in self._post_processors if isinstance(pp, InstantiationAwarePostProcessor)]

    def _smart_post_processors(self) -> List[SmartInstantiationAwarePostProcessor]:
        return [pp for pp in self._post_processors if isinstance(pp, SmartInstantiationAwarePostProcessor)]

    def _definition_post_processors(self) -> List[DefinitionPostProcessor]:
        return [pp for pp in self._post_processors if isinstance(pp, DefinitionPostProcessor)]

    # creation

    def create_component(self, name: str, definition: ComponentDefinition, args: Optional[Sequence[Any]] = None) -> Any:
        """Create one instance of *name*: short-circuit hooks, construction, population, initialization."""
        LOGGER.debug("Creating instance of component '%s'", name)
        try:
            obj = self.resolve_before_instantiation(name, definition)
        except Exception as e:
            raise ComponentCreationError(
                name, "Post-processor before instantiation of component failed", cause=e, description=definition.resource_description
            ) from e
        if obj is not None:
            return obj
        obj = self._do_create(name, definition, args)
        LOGGER.debug("Finished creating instance of component '%s'", name)
        return obj

    def resolve_before_instantiation(self, name: str, definition: ComponentDefinition) -> Any:
        obj = None
        if definition.before_instantiation_resolved is not False:
            if not definition.synthetic and self._instantiation_aware():
                target = self._determine_target_type(name, definition)
                if target is not None:
                    for pp in self._instantiation_aware():
                        obj = pp.before_instantiation(target, name)
                        if obj is not None:
                            break
                    if obj is not None:
                        obj = self.apply_after_initialization(obj, name)
            definition.before_instantiation_resolved = obj is not None
        return obj

    def _do_create(self, name: str, definition: ComponentDefinition, args: Optional[Sequence[Any]]) -> Any:
        raw = self._create_instance(name, definition, args)

        with definition.post_processing_lock:
            pending = not definition.post_processed
        if pending:
            try:
                for pp in self._definition_post_processors():
                    pp.post_process_definition(definition, type(raw), name)
            except Exception as e:
                raise ComponentCreationError(
                    name, "Post-processing of component definition failed", cause=e, description=definition.resource_description
                ) from e
            with definition.post_processing_lock:
                definition.post_processed = True

        early_exposure = (
            definition.is_singleton
            and self.settings.allow_circular_references
            and self.is_singleton_currently_in_creation(name)
        )
        if early_exposure:
            LOGGER.debug("Eagerly caching component '%s' to allow for resolving potential circular references", name)
            self.add_singleton_factory(name, lambda: self._early_reference(name, definition, raw))

        exposed = raw
        try:
            self.populate(name, definition, raw)
            exposed = self.initialize_component(name, raw, definition)
        except Exception as e:
            if early_exposure:
                self._discard_early_reference(name, definition)
            if isinstance(e, ComponentCreationError) and e.name == name:
                raise
            raise ComponentCreationError(name, "Initialization of component failed", cause=e, description=definition.resource_description) from e

        if early_exposure:
            early = self.get_singleton(name, allow_early_reference=False)
            if early is not None:
                if exposed is raw:
                    exposed = early
                elif self.has_dependents(name):
                    dependents = self.dependents_of(name)
                    if not self.settings.allow_raw_injection_despite_wrapping:
                        raise RawIdentityLeakError(name, dependents)
                    LOGGER.warning(
                        "Component '%s' has been injected into %s in its raw version as part of a circular reference, "
                        "but has eventually been wrapped",
                        name,
                        dependents,
                    )
        return exposed

    def _create_instance(self, name: str, definition: ComponentDefinition, args: Optional[Sequence[Any]]) -> Any:
        cls = definition.component_type
        if cls is not None and not definition.non_public_access_allowed and cls.__name__.startswith("_"):
            raise ComponentCreationError(
                name, f"Component class isn't public, and non-public access not allowed: {cls.__qualname__}",
                description=definition.resource_description,
            )
        if definition.factory_method_name is not None:
            return self._resolver.instantiate_using_factory_method(name, definition, args)

        if args is None:
            with definition.constructor_argument_lock:
                resolved = definition.resolved_procedure is not None
                autowire_necessary = definition.arguments_resolved
            if resolved:
                if autowire_necessary:
                    return self._resolver.autowire_constructor(name, definition)
                return self._instantiate_default(name, definition)

        ctors = self._determine_candidate_constructors(cls, name)
        if ctors is not None or definition.autowire == AUTOWIRE_CONSTRUCTOR or definition.has_argument_values or args:
            return self._resolver.autowire_constructor(name, definition, ctors, args)
        return self._instantiate_default(name, definition)

    def _instantiate_default(self, name: str, definition: ComponentDefinition) -> Any:
        strategy = self.instantiation_strategy
        try:
            return self.execution_context.run(lambda: strategy.instantiate(definition, name, self))
        except Exception as e:
            raise ComponentCreationError(name, "Instantiation of component failed", cause=e, description=definition.resource_description) from e

    def _determine_candidate_constructors(self, cls: Optional[type], name: str) -> Optional[List[Procedure]]:
        if cls is None:
            return None
        for pp in self._smart_post_processors():
            ctors = pp.determine_candidate_constructors(cls, name)
            if ctors is not None:
                return list(ctors)
        return None

    def _early_reference(self, name: str, definition: ComponentDefinition, raw: Any) -> Any:
        exposed = raw
        if not definition.synthetic:
            for pp in self._smart_post_processors():
                exposed = pp.early_reference(exposed, name)
        return exposed

    def _discard_early_reference(self, name: str, definition: ComponentDefinition) -> None:
        if not definition.synthetic:
            for pp in self._smart_post_processors():
                pp.discard_early_reference(name)

    # population

    def populate(self, name: str, definition: ComponentDefinition, obj: Any) -> None:
        """Apply autowired and declared property values to *obj*."""
        if obj is None:
            if definition.property_values:
                raise ComponentCreationError(name, "Cannot apply property values to a None instance", description=definition.resource_description)
            return

        if not definition.synthetic:
            for pp in self._instantiation_aware():
                if not pp.after_instantiation(obj, name):
                    return

        pvs: Optional[PropertyValues] = definition.property_values if definition.property_values else None
        if definition.autowire in (AUTOWIRE_BY_NAME, AUTOWIRE_BY_TYPE):
            new_pvs = PropertyValues(pvs)
            if definition.autowire == AUTOWIRE_BY_NAME:
                self._autowire_by_name(name, definition, obj, new_pvs)
            else:
                self._autowire_by_type(name, definition, obj, new_pvs)
            pvs = new_pvs

        aware = self._instantiation_aware()
        if aware:
            if pvs is None:
                pvs = definition.property_values
            for pp in aware:
                result = pp.process_property_values(pvs, obj, name)
                if result is None:
                    return
                pvs = result

        if definition.dependency_check != DEPENDENCY_CHECK_NONE:
            self._check_dependencies(name, definition, obj, pvs)

        if pvs:
            self.apply_property_values(name, definition, obj, pvs)

    def _unsatisfied_properties(self, obj: Any, pvs: PropertyValues) -> List[str]:
        return [
            prop
            for prop, tp in writable_properties(type(obj)).items()
            if prop not in pvs and not is_simple_type(tp)
        ]

    def _autowire_by_name(self, name: str, definition: ComponentDefinition, obj: Any, pvs: PropertyValues) -> None:
        for prop in self._unsatisfied_properties(obj, pvs):
            if self.has(prop):
                pvs.add(prop, self.get(prop))
                self.register_dependent(prop, name)
                LOGGER.debug("Added autowiring by name from component '%s' via property '%s' to component named '%s'", name, prop, prop)
            else:
                LOGGER.debug("Not autowiring property '%s' of component '%s' by name: no matching component found", prop, name)

    def _autowire_by_type(self, name: str, definition: ComponentDefinition, obj: Any, pvs: PropertyValues) -> None:
        props = writable_properties(type(obj))
        for prop in self._unsatisfied_properties(obj, pvs):
            tp = props[prop]
            if tp is Any or tp is object:
                continue
            request = replace(dependency_request(prop, tp, True), use_name=False)
            point = InjectionPoint(name, f"{type(obj).__qualname__}.{prop}", prop, tp)
            autowired: set = set()
            try:
                with injection_point_scope(point):
                    value = self.resolve_dependency(request, name, autowired, self.type_converter)
            except PicoError as e:
                raise UnsatisfiedDependencyError(name, f"property '{prop}'", str(e), cause=e, description=definition.resource_description) from e
            if value is not None:
                pvs.add(prop, value)
            for autowired_name in sorted(autowired):
                self.register_dependent(autowired_name, name)
                LOGGER.debug("Autowiring by type from component '%s' via property '%s' to component '%s'", name, prop, autowired_name)

    def _check_dependencies(self, name: str, definition: ComponentDefinition, obj: Any, pvs: Optional[PropertyValues]) -> None:
        check = definition.dependency_check
        instance_attrs = getattr(obj, "__dict__", {})
        for prop, tp in writable_properties(type(obj)).items():
            if (pvs is not None and prop in pvs) or prop in instance_attrs:
                continue
            simple = is_simple_type(tp)
            if (
                check == DEPENDENCY_CHECK_ALL
                or (simple and check == DEPENDENCY_CHECK_SIMPLE)
                or (not simple and check == DEPENDENCY_CHECK_OBJECTS)
            ):
                raise UnsatisfiedDependencyError(
                    name,
                    f"property '{prop}'",
                    "Set this property value or disable dependency checking for this component",
                    description=definition.resource_description,
                )

    def apply_property_values(self, name: str, definition: ComponentDefinition, obj: Any, pvs: PropertyValues) -> None:
        """Resolve, convert and assign *pvs*; memoizes conversions that are safe to reuse."""
        if pvs.is_empty():
            return
        if pvs.is_converted:
            self._set_properties(name, definition, obj, list(pvs))
            return

        value_resolver = self.value_resolver_for(name, definition)
        props = writable_properties(type(obj))
        applied: List[PropertyValue] = []
        resolve_necessary = False
        for pv in pvs:
            if pv.is_converted:
                applied.append(pv)
                continue
            original = pv.value
            resolved = value_resolver.resolve(original, context=f"property '{pv.name}'")
            convertible = pv.name in props
            converted = self._convert_for_property(name, definition, resolved, pv.name, props[pv.name]) if convertible else resolved
            if resolved is original:
                if convertible:
                    pv.set_converted_value(converted)
                applied.append(pv)
            elif convertible and isinstance(original, TypedValue) and not isinstance(converted, (list, dict, set, tuple)):
                pv.set_converted_value(converted)
                applied.append(pv)
            else:
                resolve_necessary = True
                applied.append(PropertyValue(pv.name, converted, source=pv))
        if not resolve_necessary:
            pvs.set_converted()
        self._set_properties(name, definition, obj, applied)

    def _convert_for_property(self, name: str, definition: ComponentDefinition, value: Any, prop: str, tp: Any) -> Any:
        try:
            return self.type_converter.convert(value, tp)
        except TypeMismatchError as e:
            raise ComponentCreationError(
                name, f"Error setting property values: failed to convert property '{prop}'", cause=e, description=definition.resource_description
            ) from e

    def _set_properties(self, name: str, definition: ComponentDefinition, obj: Any, values: List[PropertyValue]) -> None:
        for pv in values:
            value = pv.converted_value if pv.is_converted else pv.value
            try:
                setattr(obj, pv.name, value)
            except AttributeError as e:
                raise ComponentCreationError(
                    name, f"Error setting property values: property '{pv.name}' is not writable", cause=e, description=definition.resource_description
                ) from e

    # initialization

    def initialize_component(self, name: str, obj: Any, definition: Optional[ComponentDefinition] = None) -> Any:
        """Aware callbacks, before-init hooks, init methods, after-init hooks. Returns the exposed object."""
        self.execution_context.run(lambda: self._invoke_aware(name, obj))
        synthetic = definition is not None and definition.synthetic
        wrapped = obj
        if not synthetic:
            wrapped = self.apply_before_initialization(wrapped, name)
        try:
            self.execution_context.run(lambda: self._invoke_init_methods(name, wrapped, definition))
        except Exception as e:
            raise ComponentCreationError(
                name, "Invocation of init method failed", cause=e, description=definition.resource_description if definition else None
            ) from e
        if not synthetic:
            wrapped = self.apply_after_initialization(wrapped, name)
        return wrapped

    def _invoke_aware(self, name: str, obj: Any) -> None:
        if isinstance(obj, NameAware):
            obj.set_component_name(name)
        if isinstance(obj, ContainerAware):
            obj.set_container(self)

    def _invoke_init_methods(self, name: str, obj: Any, definition: Optional[ComponentDefinition]) -> None:
        initializing = isinstance(obj, InitializingComponent)
        init_name = definition.init_method_name if definition is not None else None
        if initializing:
            LOGGER.debug("Invoking after_properties_set() on component '%s'", name)
            obj.after_properties_set()
        if init_name and not (initializing and init_name == "after_properties_set"):
            method = getattr(obj, init_name, None)
            if not callable(method):
                if definition.enforce_init_method:
                    raise ComponentDefinitionError(name, f"could not find an init method named '{init_name}'")
                LOGGER.debug("No default init method named '%s' found on component '%s'", init_name, name)
                return
            LOGGER.debug("Invoking init method '%s' on component '%s'", init_name, name)
            method()

    def apply_before_initialization(self, obj: Any, name: str) -> Any:
        result = obj
        for pp in self._component_post_processors():
            current = pp.before_initialization(result, name)
            if current is None:
                return result
            result = current
        return result

    def apply_after_initialization(self, obj: Any, name: str) -> Any:
        result = obj
        for pp in self._component_post_processors():
            current = pp.after_initialization(result, name)
            if current is None:
                return result
            result = current
        return result
