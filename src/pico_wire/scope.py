"""Custom scopes: instances shared per scope id.

A component whose scope is neither ``singleton`` nor ``prototype`` is cached
per id of its scope, where the id is whatever the scope reports as active in
the current context. ``request``, ``session`` and ``transaction`` exist out of
the box and are activated with ``container.scope(name, scope_id)``.
"""

import contextvars
import logging
from typing import Any, Dict, Iterator, Optional, Tuple

from .constants import SCOPE_PROTOTYPE, SCOPE_SINGLETON
from .exceptions import ScopeError

_logger = logging.getLogger(__name__)

_BUILTIN_SCOPES = ("request", "session", "transaction")
_CONTAINER_SCOPES = (SCOPE_SINGLETON, SCOPE_PROTOTYPE)


class ScopeProtocol:
    """Base for scope implementations: ``get_id()`` returns the active id, or ``None``."""

    def get_id(self) -> Any | None: ...


class ContextVarScope(ScopeProtocol):
    """A scope whose active id lives in its own context variable."""

    def __init__(self, name: str) -> None:
        self._current: contextvars.ContextVar[Any] = contextvars.ContextVar(f"pico_wire_scope_{name}", default=None)

    def get_id(self) -> Any | None:
        return self._current.get()

    def enter(self, scope_id: Any) -> contextvars.Token:
        return self._current.set(scope_id)

    def exit(self, token: contextvars.Token) -> None:
        self._current.reset(token)


class ScopeManager:
    """Scope implementations by name.

    Custom implementations (anything but :class:`ContextVarScope`) decide
    their id themselves, so activating them is a no-op.
    """

    def __init__(self) -> None:
        self._scopes: Dict[str, ScopeProtocol] = {n: ContextVarScope(n) for n in _BUILTIN_SCOPES}

    def register_scope(self, name: str, implementation: Optional[ScopeProtocol] = None) -> None:
        if not isinstance(name, str) or not name:
            raise ScopeError("Scope name must be a non-empty string")
        if name in _CONTAINER_SCOPES:
            raise ScopeError(f"Cannot register reserved scope: '{name}'")
        if implementation is None:
            if name in self._scopes:
                return
            implementation = ContextVarScope(name)
        self._scopes[name] = implementation
        _logger.debug("Registered scope '%s' (%s)", name, type(implementation).__name__)

    def has(self, name: str) -> bool:
        return name in self._scopes

    def names(self) -> Tuple[str, ...]:
        return tuple(self._scopes)

    def _lookup(self, name: str) -> ScopeProtocol:
        try:
            return self._scopes[name]
        except KeyError:
            raise ScopeError(f"Unknown scope: {name}") from None

    def get_id(self, name: str) -> Any | None:
        impl = self._scopes.get(name)
        return impl.get_id() if impl is not None else None

    def activate(self, name: str, scope_id: Any) -> Optional[contextvars.Token]:
        if name in _CONTAINER_SCOPES:
            return None
        impl = self._lookup(name)
        return impl.enter(scope_id) if isinstance(impl, ContextVarScope) else None

    def deactivate(self, name: str, token: Optional[contextvars.Token]) -> None:
        if name in _CONTAINER_SCOPES:
            return
        impl = self._lookup(name)
        if token is not None and isinstance(impl, ContextVarScope):
            impl.exit(token)


class ScopeBucket:
    """Instances created under one scope id, by component name."""

    def __init__(self) -> None:
        self._by_name: Dict[str, Any] = {}

    def get(self, name: str) -> Any:
        return self._by_name.get(name)

    def put(self, name: str, value: Any) -> None:
        self._by_name[name] = value

    def discard(self, name: str) -> None:
        self._by_name.pop(name, None)

    def __len__(self) -> int:
        return len(self._by_name)

    def __iter__(self) -> Iterator[Tuple[str, Any]]:
        return iter(list(self._by_name.items()))


class ScopedCaches:
    """One :class:`ScopeBucket` per (scope name, scope id)."""

    def __init__(self) -> None:
        self._buckets: Dict[Tuple[str, Any], ScopeBucket] = {}

    def for_scope(self, scopes: ScopeManager, scope: str) -> ScopeBucket:
        """The bucket of the id *scope* has active right now.

        Raises:
            ScopeError: If *scope* is not registered or has no active id.
        """
        if not scopes.has(scope):
            raise ScopeError(f"No scope registered for scope name '{scope}'")
        sid = scopes.get_id(scope)
        if sid is None:
            raise ScopeError(
                f"Cannot resolve component in scope '{scope}': No active scope ID found. "
                f"Is a {scope}-scoped component used outside of its scope?"
            )
        return self._buckets.setdefault((scope, sid), ScopeBucket())

    def cleanup_scope(self, scope: str, scope_id: Any) -> None:
        bucket = self._buckets.pop((scope, scope_id), None)
        if bucket is not None:
            _logger.debug("Dropped %d instance(s) of scope '%s' id %r", len(bucket), scope, scope_id)

    def remove(self, name: str) -> None:
        for bucket in self._buckets.values():
            bucket.discard(name)

    def all_items(self) -> Iterator[Tuple[str, Any]]:
        for bucket in list(self._buckets.values()):
            yield from bucket

    def clear(self) -> None:
        self._buckets.clear()


__all__ = ["ScopeProtocol", "ContextVarScope", "ScopeBucket", "ScopeManager", "ScopedCaches"]
