"""Exception hierarchy for pico-wire.

All engine exceptions inherit from :class:`PicoError`, making it easy to catch
any pico-wire error with a single ``except PicoError`` clause.
"""

from typing import Any, Iterable, List, Optional, Sequence


def _fmt(key: Any) -> str:
    return getattr(key, "__name__", str(key))


def _next_cause(ex: BaseException) -> Optional[BaseException]:
    return getattr(ex, "cause", None) or ex.__cause__


class PicoError(Exception):
    """Base exception for all pico-wire errors."""

    pass


class ConfigurationError(PicoError):
    """Raised for configuration problems (invalid sources, bad values)."""

    def __init__(self, msg: str):
        super().__init__(msg)


class ScopeError(PicoError):
    """Raised for scope-related errors (unknown scope, inactive scope, reserved name)."""

    def __init__(self, msg: str):
        super().__init__(msg)


class ComponentDefinitionError(PicoError):
    """Raised when a component definition is invalid.

    Attributes:
        name: The component name, if known.
    """

    def __init__(self, name: Optional[str], msg: str):
        prefix = f"Invalid definition for component '{name}': " if name else "Invalid component definition: "
        super().__init__(prefix + msg)
        self.name = name


class TypeMismatchError(PicoError):
    """Raised by a type converter when a value cannot be converted.

    Attributes:
        value: The value that failed conversion.
        required_type: The requested target type.
    """

    def __init__(self, value: Any, required_type: Any, detail: Optional[str] = None):
        msg = f"Cannot convert value of type '{type(value).__name__}' to required type '{_fmt(required_type)}'"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
        self.value = value
        self.required_type = required_type


class NoSuchComponentError(PicoError):
    """Raised when the container has no component for a requested name or type.

    Attributes:
        key: The requested name or type.
        origin: The component that asked for it, if any.
    """

    def __init__(self, key: Any, origin: Optional[str] = None, detail: Optional[str] = None):
        msg = f"No component available for '{_fmt(key)}' (required by: '{origin or 'caller'}')"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
        self.key = key
        self.origin = origin


class InvalidReferenceError(NoSuchComponentError):
    """Raised when a name reference points at a component that does not exist."""

    def __init__(self, component_name: str, where: str, missing: str):
        super().__init__(missing, component_name, detail=f"invalid component name reference while setting {where}")


class NoUniqueComponentError(NoSuchComponentError):
    """Raised when a by-type lookup matches more than one component.

    Attributes:
        candidates: Names of all matching components.
    """

    def __init__(self, key: Any, candidates: Iterable[str], origin: Optional[str] = None):
        self.candidates = list(candidates)
        super().__init__(key, origin, detail=f"expected single match but found {len(self.candidates)}: {', '.join(self.candidates)}")


class NotOfRequiredTypeError(PicoError):
    """Raised when a component exists but is not an instance of the requested type."""

    def __init__(self, name: str, required_type: Any, actual_type: Any):
        super().__init__(f"Component '{name}' is expected to be of type '{_fmt(required_type)}' but was actually of type '{_fmt(actual_type)}'")
        self.name = name
        self.required_type = required_type
        self.actual_type = actual_type


class ComponentCreationError(PicoError):
    """Raised when a component could not be constructed or initialised.

    Attributes:
        name: The component name.
        cause: The original exception, if any.
        description: Where the definition came from, if recorded.
        related_causes: Secondary failures recorded while creating the component.
    """

    def __init__(self, name: Optional[str], msg: str, cause: Optional[BaseException] = None, description: Optional[str] = None):
        text = f"Error creating component '{name}'" if name else "Error creating component"
        if description:
            text += f" defined in {description}"
        text += f": {msg}"
        if cause is not None:
            text += f"; cause: {cause.__class__.__name__}: {cause}"
        super().__init__(text)
        self.name = name
        self.cause = cause
        self.description = description
        self.related_causes: List[BaseException] = []

    def add_related_cause(self, ex: BaseException) -> None:
        self.related_causes.append(ex)

    def most_specific_cause(self) -> BaseException:
        """The innermost chained exception, or this error when nothing is chained."""
        current: BaseException = self
        seen = {id(current)}
        while _next_cause(current) is not None and id(_next_cause(current)) not in seen:
            current = _next_cause(current)
            seen.add(id(current))
        return current

    def contains(self, exc_type: type) -> bool:
        """Whether this error or any exception in its cause chain is an *exc_type*."""
        current: Optional[BaseException] = self
        seen = set()
        while current is not None and id(current) not in seen:
            if isinstance(current, exc_type):
                return True
            seen.add(id(current))
            current = _next_cause(current)
        return False


class UnsatisfiedDependencyError(ComponentCreationError):
    """Raised when a required argument or property cannot be resolved or converted.

    Attributes:
        injection_point: Human-readable description of the parameter or property.
        suppressed: Failures of other candidates that were tried before this one.
    """

    def __init__(self, name: Optional[str], injection_point: Optional[str], msg: str, cause: Optional[BaseException] = None, description: Optional[str] = None):
        detail = f"Unsatisfied dependency expressed through {injection_point}: {msg}" if injection_point else msg
        super().__init__(name, detail, cause=cause, description=description)
        self.injection_point = injection_point
        self.suppressed: List[BaseException] = []


class AmbiguousMatchError(ComponentCreationError):
    """Raised when strict resolution finds several equally good candidates.

    Attributes:
        candidates: The tied candidate procedures, in scan order.
    """

    def __init__(self, name: Optional[str], candidates: Sequence[Any], description: Optional[str] = None):
        listing = ", ".join(str(c) for c in candidates)
        super().__init__(
            name,
            "Ambiguous construction procedure matches found "
            f"(hint: specify index/type/name arguments for simple parameters to avoid type ambiguities): [{listing}]",
            description=description,
        )
        self.candidates = list(candidates)


class CurrentlyInCreationError(ComponentCreationError):
    """Raised when a component is requested again while it is still being created."""

    def __init__(self, name: str, msg: Optional[str] = None):
        super().__init__(name, msg or "Requested component is currently in creation: is there an unresolvable circular reference?")


class RawIdentityLeakError(CurrentlyInCreationError):
    """Raised when dependents received an early raw reference that was later wrapped.

    Attributes:
        dependents: Names of the components holding the stale raw reference.
    """

    def __init__(self, name: str, dependents: Iterable[str]):
        self.dependents = list(dependents)
        super().__init__(
            name,
            f"Component '{name}' has been injected into other components [{', '.join(self.dependents)}] "
            "in its raw version as part of a circular reference, but has eventually been wrapped. "
            "This means that said other components do not use the final version of the component.",
        )


class FactoryNotInitializedError(PicoError):
    """Raised by a factory component whose product is not available yet."""

    def __init__(self, msg: str = "Factory component is not fully initialized yet"):
        super().__init__(msg)
