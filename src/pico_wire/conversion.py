"""Type conversion for declared argument and property values.

:class:`SimpleTypeConverter` is the default :class:`TypeConverter`: it leaves
values that already fit untouched and coerces strings, numbers and
collections otherwise. Custom conversions are registered per target class via
:meth:`SimpleTypeConverter.register`.
"""

import collections.abc
import decimal
import pathlib
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Set, Tuple, get_args, get_origin, Annotated

from .exceptions import TypeMismatchError
from .typing_utils import is_assignable_value, normalize_type, _UNION_TYPES

_TRUE = {"1", "true", "yes", "on", "y", "t"}
_FALSE = {"0", "false", "no", "off", "n", "f", ""}


class TypeConverter(Protocol):
    """Converts a value to a required type or raises :class:`TypeMismatchError`."""

    def convert(self, value: Any, target_type: Any, context: Any = None) -> Any: ...


class TypeAdapterRegistry:
    def __init__(self):
        self._adapters: Dict[type, Callable[[Any], Any]] = {}

    def register(self, t: type, fn: Callable[[Any], Any]) -> None:
        self._adapters[t] = fn

    def get(self, t: type) -> Optional[Callable[[Any], Any]]:
        for klass in getattr(t, "__mro__", (t,)):
            fn = self._adapters.get(klass)
            if fn is not None:
                return fn
        return None


def _truthy(s: str) -> bool:
    v = s.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ValueError(f"'{s}' is not a boolean")


class SimpleTypeConverter:
    """Default converter used by the container.

    Example:
        >>> conv = SimpleTypeConverter()
        >>> conv.convert("42", int)
        42
        >>> conv.convert(["1", "2"], list[int])
        [1, 2]
    """

    def __init__(self, adapters: Optional[TypeAdapterRegistry] = None) -> None:
        self._adapters = adapters or TypeAdapterRegistry()

    def register(self, t: type, fn: Callable[[Any], Any]) -> None:
        self._adapters.register(t, fn)

    def convert(self, value: Any, target_type: Any, context: Any = None) -> Any:
        try:
            return self._convert(value, target_type)
        except TypeMismatchError:
            raise
        except (TypeError, ValueError, KeyError, decimal.InvalidOperation) as e:
            raise TypeMismatchError(value, target_type, str(e)) from e

    def _convert(self, value: Any, t: Any) -> Any:
        if t is Any or t is object or t is None:
            return value

        org = get_origin(t)
        if org is Annotated:
            return self._convert(value, get_args(t)[0])
        if org in _UNION_TYPES:
            return self._convert_union(value, t)
        if value is None:
            _, nullable = normalize_type(t)
            if nullable:
                return None
            raise TypeMismatchError(value, t, "None is not allowed")
        if org in (list, List, tuple, Tuple, set, Set, frozenset):
            return self._convert_collection(value, t, org)
        if org in (dict, Dict, Mapping):
            return self._convert_dict(value, t)
        if org is not None:
            if isinstance(org, type) and not isinstance(value, org):
                raise TypeMismatchError(value, t)
            return value
        if not isinstance(t, type):
            return value

        adapter = self._adapters.get(t)
        if adapter is not None and not isinstance(value, t):
            return adapter(value)
        if is_assignable_value(t, value):
            if t is float and not isinstance(value, float):
                return float(value)
            return value
        return self._convert_simple(value, t)

    def _convert_union(self, value: Any, t: Any) -> Any:
        if is_assignable_value(t, value):
            return value
        for cand in get_args(t):
            if cand is type(None):
                continue
            try:
                return self._convert(value, cand)
            except (TypeMismatchError, TypeError, ValueError):
                continue
        raise TypeMismatchError(value, t, "no union member matched")

    def _convert_collection(self, value: Any, t: Any, org: Any) -> Any:
        if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, collections.abc.Iterable):
            raise TypeMismatchError(value, t, "not an iterable")
        args = get_args(t)
        if org in (tuple, Tuple) and args and not (len(args) == 2 and args[1] is Ellipsis):
            items = list(value)
            if len(items) != len(args):
                raise TypeMismatchError(value, t, f"expected {len(args)} items, got {len(items)}")
            return tuple(self._convert(x, a) for x, a in zip(items, args))
        elem_t = args[0] if args else Any
        items = [self._convert(x, elem_t) for x in value]
        if org in (tuple, Tuple):
            return tuple(items)
        if org in (set, Set):
            return set(items)
        if org is frozenset:
            return frozenset(items)
        return items

    def _convert_dict(self, value: Any, t: Any) -> dict:
        if not isinstance(value, Mapping):
            raise TypeMismatchError(value, t, "not a mapping")
        args = get_args(t)
        kt = args[0] if args else Any
        vt = args[1] if len(args) > 1 else Any
        return {self._convert(k, kt): self._convert(v, vt) for k, v in value.items()}

    def _convert_simple(self, value: Any, t: type) -> Any:
        if issubclass(t, Enum):
            if isinstance(value, str):
                try:
                    return t[value]
                except KeyError:
                    pass
            for e in t:
                if e.value == value or str(e.value) == str(value):
                    return e
            raise TypeMismatchError(value, t, "no such enum member")
        if t is bool:
            if isinstance(value, str):
                return _truthy(value)
            if isinstance(value, int):
                return bool(value)
            raise TypeMismatchError(value, t)
        if t in (int, float, complex, decimal.Decimal):
            if isinstance(value, bool) or not isinstance(value, (str, int, float, decimal.Decimal)):
                raise TypeMismatchError(value, t)
            if t is int and isinstance(value, float) and not value.is_integer():
                raise TypeMismatchError(value, t, "would lose precision")
            return t(value.strip() if isinstance(value, str) else value)
        if t is str:
            if isinstance(value, (int, float, decimal.Decimal, pathlib.PurePath, Enum)):
                return str(value.value if isinstance(value, Enum) else value)
            raise TypeMismatchError(value, t)
        if t is bytes and isinstance(value, str):
            return value.encode("utf-8")
        if issubclass(t, pathlib.PurePath) and isinstance(value, str):
            return t(value)
        if t in (list, tuple, set, frozenset):
            return self._convert_collection(value, t, t)
        if t is dict:
            return self._convert_dict(value, t)
        raise TypeMismatchError(value, t)
