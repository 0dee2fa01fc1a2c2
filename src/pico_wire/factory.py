"""Factory components and the cache of the objects they produce.

A :class:`FactoryComponent` is a managed component whose purpose is to make
another object, its *product*. Requesting the component's name yields the
product; ``"&name"`` yields the factory itself. Products of singleton
factories are cached by :class:`FactoryComponentRegistry` separately from the
factory's own registry entry.
"""

from typing import Any, Dict, Optional, Protocol, runtime_checkable

from .constants import LOGGER, NULL_OBJECT
from .exceptions import ComponentCreationError, CurrentlyInCreationError, FactoryNotInitializedError
from .instantiation import DirectExecution, ExecutionContext
from .registry import SingletonRegistry


@runtime_checkable
class FactoryComponent(Protocol):
    """Produces the object exposed under the factory component's name.

    ``object_type`` returns ``None`` when the type is not known yet.
    ``get_object`` may raise :class:`FactoryNotInitializedError` while the
    factory is still being set up.

    Example:
        >>> class ClientFactory:
        ...     def get_object(self):
        ...         return Client(self.url)
        ...     def object_type(self):
        ...         return Client
        ...     def is_singleton(self):
        ...         return True
    """

    def get_object(self) -> Any: ...

    def object_type(self) -> Optional[type]: ...

    def is_singleton(self) -> bool: ...


class FactoryComponentRegistry(SingletonRegistry):
    def __init__(self) -> None:
        super().__init__()
        self.execution_context: ExecutionContext = DirectExecution()
        # read without the mutex, written only while holding it
        self._factory_objects: Dict[str, Any] = {}

    def get_type_for_factory(self, factory: FactoryComponent) -> Optional[type]:
        try:
            return self.execution_context.run(factory.object_type)
        except Exception as e:
            LOGGER.warning(
                "FactoryComponent %r raised from object_type() instead of returning None for an unknown type: %s",
                factory,
                e,
            )
            return None

    def get_cached_object_for_factory(self, name: str) -> Any:
        return self._factory_objects.get(name)

    def get_object_from_factory(self, factory: FactoryComponent, name: str, should_post_process: bool) -> Any:
        """Return the product of *factory* registered as *name*.

        May return :data:`~pico_wire.constants.NULL_OBJECT` for an empty product.
        """
        if factory.is_singleton() and self.contains_singleton(name):
            with self.singleton_mutex:
                obj = self._factory_objects.get(name)
                if obj is None:
                    obj = self._do_get_object_from_factory(factory, name)
                    already_there = self._factory_objects.get(name)
                    if already_there is not None:
                        obj = already_there
                    else:
                        if should_post_process:
                            if self.is_singleton_currently_in_creation(name):
                                # not post-processed yet, and not cached
                                return obj
                            self.before_singleton_creation(name)
                            try:
                                obj = self._post_process(obj, name)
                            finally:
                                self.after_singleton_creation(name)
                        if self.contains_singleton(name):
                            self._factory_objects[name] = obj
                return obj
        obj = self._do_get_object_from_factory(factory, name)
        if should_post_process:
            obj = self._post_process(obj, name)
        return obj

    def _post_process(self, obj: Any, name: str) -> Any:
        if obj is NULL_OBJECT:
            return obj
        try:
            return self.post_process_object_from_factory(obj, name)
        except Exception as e:
            raise ComponentCreationError(name, "Post-processing of the factory product failed", cause=e) from e

    def _do_get_object_from_factory(self, factory: FactoryComponent, name: str) -> Any:
        try:
            obj = self.execution_context.run(factory.get_object)
        except FactoryNotInitializedError as e:
            raise CurrentlyInCreationError(name, str(e)) from e
        except Exception as e:
            raise ComponentCreationError(name, "FactoryComponent raised on object creation", cause=e) from e
        if obj is None:
            if self.is_singleton_currently_in_creation(name):
                raise CurrentlyInCreationError(name, "FactoryComponent which is currently in creation returned None from get_object()")
            obj = NULL_OBJECT
        return obj

    def post_process_object_from_factory(self, obj: Any, name: str) -> Any:
        return obj

    def remove_singleton(self, name: str) -> None:
        with self.singleton_mutex:
            super().remove_singleton(name)
            self._factory_objects.pop(name, None)

    def clear_singleton_cache(self) -> None:
        with self.singleton_mutex:
            super().clear_singleton_cache()
            self._factory_objects.clear()


__all__ = ["FactoryComponent", "FactoryComponentRegistry"]
