"""Selection of the construction procedure and binding of its arguments.

:class:`ConstructorResolver` scans the candidate constructors (or factory
methods) of a definition, binds declared and autowired values to each
candidate's parameters, scores the bindings and invokes the winner. The chosen
procedure and its arguments are cached on the definition so repeated creation
skips the scan.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Set, Tuple

from ._state import current_injection_point, injection_point_scope
from .analysis import (
    KIND_FACTORY_METHOD,
    InjectionPoint,
    Parameter,
    Procedure,
    constructor_candidates,
    dependency_request,
    factory_method_candidates,
    sort_procedures,
)
from .arguments import ArgumentValues, ValueHolder
from .constants import AUTOWIRE_CONSTRUCTOR, LOGGER, MAX_WEIGHT
from .exceptions import (
    AmbiguousMatchError,
    ComponentCreationError,
    ComponentDefinitionError,
    PicoError,
    TypeMismatchError,
    UnsatisfiedDependencyError,
)
from .typing_utils import assignability_weight, describe_type, is_simple_type, lenient_weight
from .values import TypedValue, is_symbolic


class _AutowiredArgument:
    __slots__ = ()

    def __repr__(self) -> str:
        return "AUTOWIRED_ARGUMENT"


AUTOWIRED_ARGUMENT = _AutowiredArgument()
"""Placeholder in a prepared plan for an argument resolved by autowiring."""


class ArgumentsHolder:
    """Arguments bound to one candidate.

    Attributes:
        raw: Values before conversion.
        arguments: Converted values, passed to the procedure.
        prepared: Cacheable form: converted values, source values that need
            re-resolution, or :data:`AUTOWIRED_ARGUMENT`.
        resolve_necessary: Whether ``prepared`` must be re-resolved on reuse.
    """

    __slots__ = ("raw", "arguments", "prepared", "resolve_necessary")

    def __init__(self, size: int = 0, args: Optional[Sequence[Any]] = None) -> None:
        if args is not None:
            self.raw = list(args)
            self.arguments = self.raw
            self.prepared = self.raw
        else:
            self.raw = [None] * size
            self.arguments = [None] * size
            self.prepared = [None] * size
        self.resolve_necessary = False

    def type_difference_weight(self, param_types: Sequence[Any]) -> int:
        return lenient_weight(param_types, self.arguments, self.raw)

    def assignability_weight(self, param_types: Sequence[Any]) -> int:
        return assignability_weight(param_types, self.arguments, self.raw)

    def store_cache(self, definition: Any, procedure: Procedure) -> None:
        with definition.constructor_argument_lock:
            definition.resolved_procedure = procedure
            definition.arguments_resolved = True
            if self.resolve_necessary:
                definition.prepared_arguments = list(self.prepared)
                definition.resolved_arguments = None
            else:
                definition.resolved_arguments = list(self.arguments)
                definition.prepared_arguments = None


@dataclass(frozen=True)
class CandidateResult:
    """Outcome of binding arguments to one candidate: a holder or a rejection."""
    procedure: Procedure
    holder: Optional[ArgumentsHolder] = None
    error: Optional[UnsatisfiedDependencyError] = None

    @property
    def accepted(self) -> bool:
        return self.holder is not None


def _kind_label(procedure: Procedure) -> str:
    return "factory method" if procedure.kind == KIND_FACTORY_METHOD else "constructor"


def _injection_point(name: str, procedure: Procedure, param: Parameter) -> InjectionPoint:
    return InjectionPoint(name, repr(procedure), param.name, param.annotation)


class ConstructorResolver:
    """Resolves and invokes construction procedures on behalf of *container*.

    The container supplies the collaborators: ``type_converter``,
    ``value_resolver_for``, ``resolve_dependency``, ``register_dependent``,
    ``instantiation_strategy`` and ``execution_context``.
    """

    def __init__(self, container: Any) -> None:
        self._container = container

    # constructors

    def autowire_constructor(
        self,
        name: str,
        definition: Any,
        chosen_ctors: Optional[Sequence[Procedure]] = None,
        explicit_args: Optional[Sequence[Any]] = None,
    ) -> Any:
        """Pick a constructor of ``definition.component_type`` and call it."""
        procedure: Optional[Procedure] = None
        args: Optional[List[Any]] = None
        if explicit_args is not None:
            args = list(explicit_args)
        else:
            procedure, args = self._cached_plan(name, definition)

        if procedure is None or args is None:
            autowiring = chosen_ctors is not None or definition.autowire == AUTOWIRE_CONSTRUCTOR
            resolved_values: Optional[ArgumentValues] = None
            if explicit_args is not None:
                min_args = len(explicit_args)
            else:
                resolved_values = ArgumentValues()
                min_args = self._resolve_declared_arguments(name, definition, resolved_values)

            candidates = list(chosen_ctors) if chosen_ctors is not None else self._constructor_candidates(name, definition)
            procedure, holder, tied = self._select(
                name,
                definition,
                sort_procedures(candidates),
                resolved_values,
                explicit_args,
                min_args,
                autowiring,
                is_factory=False,
                no_match=lambda: UnsatisfiedDependencyError(
                    name, None, "Could not resolve matching constructor", description=definition.resource_description
                ),
            )
            if tied and not definition.lenient:
                raise AmbiguousMatchError(name, tied, definition.resource_description)
            args = holder.arguments
            if explicit_args is None:
                holder.store_cache(definition, procedure)

        return self._instantiate(name, definition, procedure, args)

    def _constructor_candidates(self, name: str, definition: Any) -> List[Procedure]:
        cls = definition.component_type
        try:
            return constructor_candidates(cls, definition.non_public_access_allowed)
        except PicoError as e:
            raise ComponentCreationError(
                name, f"Resolution of declared constructors on class [{cls}] failed", cause=e, description=definition.resource_description
            ) from e

    # factory methods

    def instantiate_using_factory_method(self, name: str, definition: Any, explicit_args: Optional[Sequence[Any]] = None) -> Any:
        """Produce the component by calling its (static or instance) factory method."""
        factory_name = definition.factory_component_name
        if factory_name is not None:
            if factory_name == name:
                raise ComponentDefinitionError(name, "factory component reference points back to the same component definition")
            factory_object = self._container.get(factory_name)
            if factory_object is None:
                raise ComponentCreationError(
                    name, f"factory component '{factory_name}' returned None", description=definition.resource_description
                )
            if definition.is_singleton and self._container.contains_singleton(name):
                raise ComponentCreationError(
                    name,
                    "About-to-be-created singleton instance implicitly appeared through the creation of its factory component",
                    description=definition.resource_description,
                )
            factory_cls = factory_object.__class__
            is_static = False
        else:
            if definition.component_type is None:
                raise ComponentDefinitionError(name, "declares neither a component type nor a factory component reference")
            factory_object = None
            factory_cls = definition.component_type
            is_static = True

        procedure: Optional[Procedure] = None
        args: Optional[List[Any]] = None
        if explicit_args is not None:
            args = list(explicit_args)
        else:
            procedure, args = self._cached_plan(name, definition)

        if procedure is None or args is None:
            candidates = sort_procedures(
                factory_method_candidates(factory_cls, definition.factory_method_name, is_static, definition.non_public_access_allowed)
            )
            autowiring = definition.autowire == AUTOWIRE_CONSTRUCTOR
            resolved_values: Optional[ArgumentValues] = None
            if explicit_args is not None:
                min_args = len(explicit_args)
            else:
                resolved_values = ArgumentValues()
                min_args = self._resolve_declared_arguments(name, definition, resolved_values)

            procedure, holder, tied = self._select(
                name,
                definition,
                candidates,
                resolved_values,
                explicit_args,
                min_args,
                autowiring,
                is_factory=True,
                no_match=lambda: self._no_factory_method(name, definition, factory_cls, resolved_values, explicit_args, is_static),
            )
            if procedure.return_type is None or procedure.return_type is type(None):
                raise ComponentCreationError(
                    name,
                    f"Invalid factory method '{definition.factory_method_name}': needs to have a non-None return type",
                    description=definition.resource_description,
                )
            if tied:
                raise AmbiguousMatchError(name, tied, definition.resource_description)
            args = holder.arguments
            if explicit_args is None:
                holder.store_cache(definition, procedure)

        return self._instantiate(name, definition, procedure, args, factory_object)

    def _no_factory_method(
        self,
        name: str,
        definition: Any,
        factory_cls: type,
        resolved_values: Optional[ArgumentValues],
        explicit_args: Optional[Sequence[Any]],
        is_static: bool,
    ) -> UnsatisfiedDependencyError:
        if explicit_args is not None:
            types = [type(a).__name__ for a in explicit_args]
        elif resolved_values is not None:
            holders = [h for _, h in sorted(resolved_values.indexed.items())] + resolved_values.generic
            types = [
                (h.declared_type if isinstance(h.declared_type, str) else describe_type(h.declared_type))
                if h.declared_type is not None
                else type(h.value).__name__
                for h in holders
            ]
        else:
            types = []
        owner = f"factory component '{definition.factory_component_name}'" if definition.factory_component_name else f"factory class '{factory_cls.__qualname__}'"
        return UnsatisfiedDependencyError(
            name,
            None,
            f"No matching factory method found: {owner}; factory method '{definition.factory_method_name}({', '.join(types)})'. "
            f"Check that a method with the specified name{' and arguments' if types else ''} exists and that it is "
            f"{'static' if is_static else 'non-static'}.",
            description=definition.resource_description,
        )

    def resolve_factory_method_if_possible(self, definition: Any) -> None:
        """Cache the factory method when every same-named candidate shares one parameter list."""
        if definition.factory_component_name is not None:
            factory_cls = self._container.get_type(definition.factory_component_name)
            is_static = False
        else:
            factory_cls = definition.component_type
            is_static = True
        if factory_cls is None:
            return
        unique: Optional[Procedure] = None
        for candidate in factory_method_candidates(factory_cls, definition.factory_method_name, is_static, definition.non_public_access_allowed):
            if unique is None:
                unique = candidate
            elif unique.parameter_types != candidate.parameter_types:
                unique = None
                break
        with definition.constructor_argument_lock:
            if definition.resolved_procedure is None:
                definition.resolved_procedure = unique

    # scanning

    def _select(
        self,
        name: str,
        definition: Any,
        candidates: Sequence[Procedure],
        resolved_values: Optional[ArgumentValues],
        explicit_args: Optional[Sequence[Any]],
        min_args: int,
        autowiring: bool,
        *,
        is_factory: bool,
        no_match: Callable[[], UnsatisfiedDependencyError],
    ) -> Tuple[Procedure, ArgumentsHolder, Optional[List[Procedure]]]:
        best: Optional[Procedure] = None
        best_holder: Optional[ArgumentsHolder] = None
        best_weight = MAX_WEIGHT
        tied: Optional[List[Procedure]] = None
        rejections: List[CandidateResult] = []

        for candidate in candidates:
            count = candidate.parameter_count
            if not is_factory and best_holder is not None and len(best_holder.arguments) > count:
                # candidates are sorted by arity, nothing greedier is left
                break
            if count < min_args:
                continue
            if resolved_values is not None:
                result = self._create_argument_array(name, definition, resolved_values, candidate, autowiring)
            else:
                if count != len(explicit_args):
                    continue
                result = CandidateResult(candidate, ArgumentsHolder(args=explicit_args))
            if not result.accepted:
                LOGGER.debug("Ignoring %s for component '%s': %s", candidate, name, result.error)
                rejections.append(result)
                continue

            holder = result.holder
            if definition.lenient:
                weight = holder.type_difference_weight(candidate.parameter_types)
            else:
                weight = holder.assignability_weight(candidate.parameter_types)
            if weight < best_weight:
                best, best_holder, best_weight, tied = candidate, holder, weight, None
            elif best is not None and weight == best_weight and self._ties(definition, best, candidate, is_factory):
                if tied is None:
                    tied = [best]
                tied.append(candidate)

        if best is None:
            if rejections:
                error = rejections[-1].error
                for other in rejections[:-1]:
                    self._container.on_suppressed_exception(other.error)
                    error.suppressed.append(other.error)
                raise error
            raise no_match()
        return best, best_holder, tied

    @staticmethod
    def _memoizable(original: Any, source: Any, converted: Any) -> bool:
        # containers built by conversion are per instance
        if is_simple_type(type(converted)):
            return original is source or isinstance(source, TypedValue)
        return converted is original and original is source

    @staticmethod
    def _ties(definition: Any, best: Procedure, candidate: Procedure, is_factory: bool) -> bool:
        if not is_factory:
            return True
        return (
            not definition.lenient
            and best.parameter_count == candidate.parameter_count
            and best.parameter_types != candidate.parameter_types
        )

    def _resolve_declared_arguments(self, name: str, definition: Any, resolved_values: ArgumentValues) -> int:
        value_resolver = self._container.value_resolver_for(name, definition)
        declared = definition.argument_values
        min_args = declared.argument_count
        for index, holder in declared.indexed.items():
            if index < 0:
                raise ComponentDefinitionError(name, f"Invalid constructor argument index: {index}")
            if index + 1 > min_args:
                min_args = index + 1
            resolved_values.add_indexed(index, self._resolve_holder(holder, value_resolver))
        for holder in declared.generic:
            resolved_values.add_generic(self._resolve_holder(holder, value_resolver))
        return min_args

    @staticmethod
    def _resolve_holder(holder: ValueHolder, value_resolver: Any) -> ValueHolder:
        if holder.is_converted:
            return holder
        resolved = ValueHolder(value_resolver.resolve(holder.value, context="constructor argument"), holder.declared_type, holder.name)
        resolved.source = holder
        return resolved

    def _create_argument_array(
        self,
        name: str,
        definition: Any,
        resolved_values: ArgumentValues,
        procedure: Procedure,
        autowiring: bool,
    ) -> CandidateResult:
        converter = self._container.type_converter
        params = procedure.parameters
        holder = ArgumentsHolder(len(params))
        used: Set[int] = set()
        autowired_names: Set[str] = set()

        for index, param in enumerate(params):
            value_holder = resolved_values.get_argument_value(index, param.annotation, param.name, used)
            if value_holder is None and (not autowiring or len(params) == resolved_values.argument_count):
                value_holder = resolved_values.get_generic(None, None, used)

            if value_holder is not None:
                used.add(id(value_holder))
                original = value_holder.value
                if value_holder.is_converted:
                    converted = value_holder.converted_value
                    holder.prepared[index] = converted
                else:
                    source = value_holder.source.value if value_holder.source is not None else original
                    try:
                        converted = converter.convert(original, param.annotation)
                    except TypeMismatchError as e:
                        return CandidateResult(
                            procedure,
                            error=UnsatisfiedDependencyError(
                                name,
                                str(_injection_point(name, procedure, param)),
                                f"Could not convert argument value of type [{type(original).__name__}] "
                                f"to required type [{describe_type(param.annotation)}]: {e}",
                                cause=e,
                                description=definition.resource_description,
                            ),
                        )
                    if self._memoizable(original, source, converted):
                        holder.prepared[index] = converted
                    else:
                        holder.resolve_necessary = True
                        holder.prepared[index] = source
                holder.arguments[index] = converted
                holder.raw[index] = original
            elif param.has_default and not autowiring:
                holder.raw[index] = holder.arguments[index] = holder.prepared[index] = param.default
            else:
                point = str(_injection_point(name, procedure, param))
                if not autowiring:
                    return CandidateResult(
                        procedure,
                        error=UnsatisfiedDependencyError(
                            name,
                            point,
                            f"Ambiguous argument values for parameter of type [{describe_type(param.annotation)}] - "
                            "did you specify the correct component references as arguments?",
                            description=definition.resource_description,
                        ),
                    )
                try:
                    value = self.resolve_autowired_argument(name, procedure, param, autowired_names, converter)
                except PicoError as e:
                    return CandidateResult(
                        procedure,
                        error=UnsatisfiedDependencyError(name, point, str(e), cause=e, description=definition.resource_description),
                    )
                holder.raw[index] = holder.arguments[index] = value
                holder.prepared[index] = AUTOWIRED_ARGUMENT
                holder.resolve_necessary = True

        for autowired in sorted(autowired_names):
            self._container.register_dependent(autowired, name)
            LOGGER.debug("Autowiring by type from component '%s' via %s to component '%s'", name, _kind_label(procedure), autowired)
        return CandidateResult(procedure, holder)

    def resolve_autowired_argument(
        self,
        name: str,
        procedure: Procedure,
        param: Parameter,
        autowired_names: Optional[Set[str]],
        converter: Any,
    ) -> Any:
        """Resolve *param* from the container, exposing it as the current injection point."""
        if param.annotation is InjectionPoint:
            point = current_injection_point()
            if point is None:
                raise PicoError(f"No current injection point available for {procedure} parameter '{param.name}'")
            return point
        request = dependency_request(param.name, param.annotation, param.has_default)
        with injection_point_scope(_injection_point(name, procedure, param)):
            value = self._container.resolve_dependency(request, name, autowired_names, converter)
        if value is None and param.has_default:
            return param.default
        return value

    # cached plans

    def _cached_plan(self, name: str, definition: Any) -> Tuple[Optional[Procedure], Optional[List[Any]]]:
        to_resolve: Optional[List[Any]] = None
        args: Optional[List[Any]] = None
        with definition.constructor_argument_lock:
            procedure = definition.resolved_procedure
            if procedure is not None and definition.arguments_resolved:
                args = definition.resolved_arguments
                if args is None:
                    to_resolve = definition.prepared_arguments
        if to_resolve is not None:
            return procedure, self.resolve_prepared_arguments(name, definition, procedure, to_resolve)
        return procedure, (list(args) if args is not None else None)

    def resolve_prepared_arguments(self, name: str, definition: Any, procedure: Procedure, prepared: Sequence[Any]) -> List[Any]:
        """Turn a prepared plan into fresh arguments; *prepared* is left untouched."""
        converter = self._container.type_converter
        value_resolver = self._container.value_resolver_for(name, definition)
        resolved: List[Any] = []
        for param, value in zip(procedure.parameters, prepared):
            if value is AUTOWIRED_ARGUMENT:
                value = self.resolve_autowired_argument(name, procedure, param, None, converter)
            elif is_symbolic(value):
                value = value_resolver.resolve(value, context="constructor argument")
            try:
                resolved.append(converter.convert(value, param.annotation))
            except TypeMismatchError as e:
                raise UnsatisfiedDependencyError(
                    name,
                    str(_injection_point(name, procedure, param)),
                    f"Could not convert argument value of type [{type(value).__name__}] "
                    f"to required type [{describe_type(param.annotation)}]: {e}",
                    cause=e,
                    description=definition.resource_description,
                ) from e
        return resolved

    # invocation

    def _instantiate(self, name: str, definition: Any, procedure: Procedure, args: Sequence[Any], factory_object: Any = None) -> Any:
        strategy = self._container.instantiation_strategy
        try:
            return self._container.execution_context.run(
                lambda: strategy.instantiate(definition, name, self._container, procedure, args, factory_object)
            )
        except Exception as e:
            raise ComponentCreationError(
                name, f"Instantiation via {_kind_label(procedure)} failed", cause=e, description=definition.resource_description
            ) from e


__all__ = ["AUTOWIRED_ARGUMENT", "ArgumentsHolder", "CandidateResult", "ConstructorResolver"]
