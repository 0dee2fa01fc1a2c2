"""Shared singleton registry.

:class:`SingletonRegistry` stores fully initialised singletons, the early
references handed out while a singleton is still being built, and the
dependent/dependency relations between components. Every state change happens
under one re-entrant :attr:`SingletonRegistry.singleton_mutex`; the thread that
creates a singleton holds it for the whole creation, so nested requests from
the same thread (cycles) re-enter while other threads wait.
"""

import threading
from typing import Any, Callable, Dict, List, Optional, Set

from .constants import LOGGER, NULL_OBJECT
from .exceptions import ComponentCreationError, CurrentlyInCreationError, PicoError

_SUPPRESSED_LIMIT = 100


class SingletonRegistry:
    def __init__(self) -> None:
        self.singleton_mutex = threading.RLock()
        self._singleton_objects: Dict[str, Any] = {}
        self._early_singleton_objects: Dict[str, Any] = {}
        self._singleton_factories: Dict[str, Callable[[], Any]] = {}
        self._registered_singletons: Dict[str, None] = {}
        self._in_creation: Set[str] = set()
        self._in_creation_exclusions: Set[str] = set()
        self._suppressed: Optional[List[BaseException]] = None
        self._dependents: Dict[str, Dict[str, None]] = {}
        self._dependencies: Dict[str, Dict[str, None]] = {}
        self._destruction_in_progress = False

    def canonical_name(self, name: str) -> str:
        return name

    # registration

    def register_singleton(self, name: str, obj: Any) -> None:
        """Register an externally created object as singleton *name*."""
        with self.singleton_mutex:
            existing = self._singleton_objects.get(name)
            if existing is not None:
                raise PicoError(
                    f"Could not register object {obj!r} under component name '{name}': there is already object {existing!r} bound"
                )
            self.add_singleton(name, obj)

    def add_singleton(self, name: str, obj: Any) -> None:
        with self.singleton_mutex:
            self._singleton_objects[name] = obj if obj is not None else NULL_OBJECT
            self._singleton_factories.pop(name, None)
            self._early_singleton_objects.pop(name, None)
            self._registered_singletons[name] = None

    def add_singleton_factory(self, name: str, factory: Callable[[], Any]) -> None:
        """Expose *factory* as the early-reference accessor of singleton *name*."""
        with self.singleton_mutex:
            if name not in self._singleton_objects:
                self._singleton_factories[name] = factory
                self._early_singleton_objects.pop(name, None)
                self._registered_singletons[name] = None

    # lookup

    def get_singleton(self, name: str, allow_early_reference: bool = True) -> Any:
        """Return the registered object, an early reference, or ``None``.

        The early-reference accessor runs at most once; its result is kept
        until the singleton is fully registered.
        """
        obj = self._singleton_objects.get(name)
        if obj is None and self.is_singleton_currently_in_creation(name):
            with self.singleton_mutex:
                obj = self._singleton_objects.get(name)
                if obj is None:
                    obj = self._early_singleton_objects.get(name)
                    if obj is None and allow_early_reference:
                        factory = self._singleton_factories.get(name)
                        if factory is not None:
                            obj = factory()
                            self._early_singleton_objects[name] = obj
                            del self._singleton_factories[name]
        return obj

    def get_or_create_singleton(self, name: str, factory: Callable[[], Any]) -> Any:
        """Return singleton *name*, creating and registering it with *factory* if absent."""
        with self.singleton_mutex:
            obj = self._singleton_objects.get(name)
            if obj is not None:
                return obj
            if self._destruction_in_progress:
                raise PicoError(f"Singleton creation of '{name}' is not allowed while the singletons of this container are being destroyed")
            LOGGER.debug("Creating shared instance of singleton component '%s'", name)
            self.before_singleton_creation(name)
            record = self._suppressed is None
            if record:
                self._suppressed = []
            try:
                obj = factory()
            except ComponentCreationError as ex:
                if record:
                    for suppressed in self._suppressed:
                        ex.add_related_cause(suppressed)
                raise
            finally:
                if record:
                    self._suppressed = None
                self.after_singleton_creation(name)
            self.add_singleton(name, obj)
            return self._singleton_objects[name]

    def contains_singleton(self, name: str) -> bool:
        return name in self._singleton_objects

    def singleton_names(self) -> List[str]:
        with self.singleton_mutex:
            return list(self._registered_singletons)

    @property
    def singleton_count(self) -> int:
        return len(self._registered_singletons)

    def on_suppressed_exception(self, ex: BaseException) -> None:
        """Record *ex* as a related cause of the singleton creation in progress, if any."""
        with self.singleton_mutex:
            if self._suppressed is not None and len(self._suppressed) < _SUPPRESSED_LIMIT:
                self._suppressed.append(ex)

    # creation state

    def _currently_in_creation_message(self, name: str) -> Optional[str]:
        return None

    def before_singleton_creation(self, name: str) -> None:
        if name in self._in_creation_exclusions:
            return
        if name in self._in_creation:
            raise CurrentlyInCreationError(name, self._currently_in_creation_message(name))
        self._in_creation.add(name)

    def after_singleton_creation(self, name: str) -> None:
        if name in self._in_creation_exclusions:
            return
        if name not in self._in_creation:
            raise PicoError(f"Singleton '{name}' is not currently in creation")
        self._in_creation.discard(name)

    def set_currently_in_creation(self, name: str, in_creation: bool) -> None:
        """Exclude *name* from (or re-include it in) the in-creation checks."""
        with self.singleton_mutex:
            if in_creation:
                self._in_creation_exclusions.discard(name)
            else:
                self._in_creation_exclusions.add(name)

    def is_currently_in_creation(self, name: str) -> bool:
        return name not in self._in_creation_exclusions and self.is_actually_in_creation(name)

    def is_actually_in_creation(self, name: str) -> bool:
        return self.is_singleton_currently_in_creation(name)

    def is_singleton_currently_in_creation(self, name: str) -> bool:
        return name in self._in_creation

    # dependents

    def register_dependent(self, name: str, dependent_name: str) -> None:
        """Record that *dependent_name* holds a reference to *name*."""
        canonical = self.canonical_name(name)
        with self.singleton_mutex:
            dependents = self._dependents.setdefault(canonical, {})
            if dependent_name in dependents:
                return
            dependents[dependent_name] = None
            self._dependencies.setdefault(dependent_name, {})[canonical] = None

    def is_dependent(self, name: str, dependent_name: str) -> bool:
        """Whether *dependent_name* depends on *name*, directly or transitively."""
        with self.singleton_mutex:
            return self._is_dependent(name, dependent_name, set())

    def _is_dependent(self, name: str, dependent_name: str, seen: Set[str]) -> bool:
        if name in seen:
            return False
        dependents = self._dependents.get(self.canonical_name(name))
        if not dependents:
            return False
        if dependent_name in dependents:
            return True
        seen.add(name)
        return any(self._is_dependent(d, dependent_name, seen) for d in dependents)

    def has_dependents(self, name: str) -> bool:
        return bool(self._dependents.get(name))

    def dependents_of(self, name: str) -> List[str]:
        with self.singleton_mutex:
            return list(self._dependents.get(name, ()))

    def dependencies_of(self, name: str) -> List[str]:
        with self.singleton_mutex:
            return list(self._dependencies.get(name, ()))

    # removal

    def remove_singleton(self, name: str) -> None:
        with self.singleton_mutex:
            self._singleton_objects.pop(name, None)
            self._singleton_factories.pop(name, None)
            self._early_singleton_objects.pop(name, None)
            self._registered_singletons.pop(name, None)

    def destroy_singleton(self, name: str) -> None:
        """Remove singleton *name* and, before it, every singleton that depends on it."""
        self.remove_singleton(name)
        with self.singleton_mutex:
            dependents = list(self._dependents.pop(name, ()))
        if dependents:
            LOGGER.debug("Retrieved dependent components for component '%s': %s", name, dependents)
        for dependent in dependents:
            self.destroy_singleton(dependent)
        with self.singleton_mutex:
            for other in list(self._dependents):
                self._dependents[other].pop(name, None)
                if not self._dependents[other]:
                    del self._dependents[other]
            self._dependencies.pop(name, None)

    def clear_singleton_cache(self) -> None:
        with self.singleton_mutex:
            self._singleton_objects.clear()
            self._singleton_factories.clear()
            self._early_singleton_objects.clear()
            self._registered_singletons.clear()
            self._destruction_in_progress = False

    def destroy_singletons(self) -> None:
        with self.singleton_mutex:
            self._destruction_in_progress = True
            names = list(self._registered_singletons)
        for name in reversed(names):
            self.destroy_singleton(name)
        with self.singleton_mutex:
            self._dependents.clear()
            self._dependencies.clear()
        self.clear_singleton_cache()


__all__ = ["SingletonRegistry"]
