"""Extension points called by the container while it builds components.

Subclass the post-processor classes and override the hooks you need; the
defaults leave the component untouched. Register instances with
``PicoContainer.add_post_processor`` or ``init(post_processors=[...])``.

Components may also implement the small awareness protocols at the bottom of
this module to receive their name or the container, or to run code once
their properties are set.
"""

from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from .analysis import Procedure
from .arguments import PropertyValues


class ComponentPostProcessor:
    """Called around the initialization methods of every component.

    Returning ``None`` keeps the current object.
    """

    def before_initialization(self, obj: Any, name: str) -> Any:
        return obj

    def after_initialization(self, obj: Any, name: str) -> Any:
        return obj


class InstantiationAwarePostProcessor(ComponentPostProcessor):
    def before_instantiation(self, component_type: type, name: str) -> Any:
        """Return an object to use instead of building one; ``None`` continues normally.

        A returned object skips construction, property population and
        initialization; only ``after_initialization`` hooks still run on it.
        """
        return None

    def after_instantiation(self, obj: Any, name: str) -> bool:
        """Return ``False`` to skip property population for *obj*."""
        return True

    def process_property_values(self, values: PropertyValues, obj: Any, name: str) -> Optional[PropertyValues]:
        """Return the values to apply, or ``None`` to skip applying any."""
        return values


class SmartInstantiationAwarePostProcessor(InstantiationAwarePostProcessor):
    def predict_type(self, component_type: type, name: str) -> Optional[type]:
        return None

    def determine_candidate_constructors(self, component_type: type, name: str) -> Optional[Sequence[Procedure]]:
        """Restrict constructor resolution to the returned candidates; ``None`` means no opinion."""
        return None

    def early_reference(self, obj: Any, name: str) -> Any:
        """Object handed out for *name* while it is still in creation (cycles).

        A wrapping post-processor returns the same wrapper here that it would
        produce in ``after_initialization``, and must then not wrap again.
        """
        return obj

    def discard_early_reference(self, name: str) -> None:
        """Creation of *name* failed after an early reference was requested."""


class DefinitionPostProcessor:
    def post_process_definition(self, definition: Any, component_type: Optional[type], name: str) -> None:
        """Inspect or adjust *definition* once, before the first instance is populated."""


@runtime_checkable
class NameAware(Protocol):
    def set_component_name(self, name: str) -> None: ...


@runtime_checkable
class ContainerAware(Protocol):
    def set_container(self, container: Any) -> None: ...


@runtime_checkable
class InitializingComponent(Protocol):
    def after_properties_set(self) -> None: ...


__all__ = [
    "ComponentPostProcessor",
    "InstantiationAwarePostProcessor",
    "SmartInstantiationAwarePostProcessor",
    "DefinitionPostProcessor",
    "NameAware",
    "ContainerAware",
    "InitializingComponent",
]
