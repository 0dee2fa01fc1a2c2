# pico_wire/decorators.py
from __future__ import annotations

from typing import Any, Iterable, Optional

from .constants import AUTOWIRE_CONSTRUCTOR, PICO_META, SCOPE_SINGLETON


def _meta(obj: Any) -> dict:
    target = getattr(obj, "__func__", obj)
    meta = target.__dict__.get(PICO_META) if hasattr(target, "__dict__") else None
    if meta is None:
        meta = {}
        setattr(target, PICO_META, meta)
    return meta


def get_meta(obj: Any) -> dict:
    target = getattr(obj, "__func__", obj)
    if isinstance(target, type):
        return dict(target.__dict__.get(PICO_META, {}))
    return dict(getattr(target, PICO_META, {}) or {})


class Qualifier(str):
    __slots__ = ()  # tiny memory win; immutable like str


def component(
    cls=None,
    *,
    name: Optional[str] = None,
    scope: str = SCOPE_SINGLETON,
    autowire: str = AUTOWIRE_CONSTRUCTOR,
    lenient: Optional[bool] = None,
    primary: bool = False,
    lazy: bool = False,
    init_method: Optional[str] = None,
    depends_on: Iterable[str] = (),
):
    """Mark a class as a managed component.

    The metadata is only read when the class is handed to ``init()`` or
    :func:`pico_wire.definition.definition_from_class`; nothing is registered
    globally.
    """
    def dec(c):
        meta = _meta(c)
        meta.update(
            component=True,
            name=name,
            scope=scope,
            autowire=autowire,
            lenient=lenient,
            primary=bool(primary),
            lazy=bool(lazy),
            init_method=init_method,
            depends_on=tuple(depends_on),
        )
        return c
    return dec(cls) if cls else dec


def constructor(fn=None, *, public: Optional[bool] = None):
    """Mark a ``classmethod``/``staticmethod`` as an alternative constructor.

    Applied to ``__init__`` with ``public=False`` it demotes the plain
    constructor behind every public alternative.
    """
    def dec(f):
        meta = _meta(f)
        meta["constructor"] = True
        if public is not None:
            meta["public"] = bool(public)
        return f
    return dec(fn) if fn is not None else dec


def factory_method(name: str):
    """Mark a method as one overload of the factory procedure *name*."""
    def dec(f):
        _meta(f)["factory_method"] = name
        return f
    return dec


def lookup(name: Optional[str] = None):
    """Mark a method whose body is replaced by a container lookup.

    With *name* the method returns ``container.get(name)``; otherwise the
    method's return annotation is resolved by type.
    """
    def dec(f):
        _meta(f)["lookup"] = {"name": name}
        return f
    return dec


__all__ = ["component", "constructor", "factory_method", "lookup", "Qualifier", "get_meta"]
