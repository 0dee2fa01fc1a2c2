"""Type compatibility helpers.

Normalises Python type hints into plain classes and scores how well a set of
argument values fits a list of parameter types. Lower weights are better;
:data:`~pico_wire.constants.MAX_WEIGHT` means "not assignable at all".
"""

import datetime
import decimal
import enum
import inspect
import pathlib
import types
import uuid
from typing import Any, Annotated, Optional, Sequence, Tuple, TypeVar, Union, get_args, get_origin

from .constants import MAX_WEIGHT, RAW_WEIGHT_BIAS

_UNION_TYPES: Tuple[Any, ...] = (Union, types.UnionType)

_SIMPLE_TYPES: Tuple[type, ...] = (
    str, bytes, int, float, bool, complex,
    decimal.Decimal, pathlib.PurePath, uuid.UUID,
    datetime.date, datetime.time, datetime.timedelta,
    type, enum.Enum,
)


def describe_type(tp: Any) -> str:
    if isinstance(tp, type):
        return tp.__qualname__
    return str(tp).replace("typing.", "")


def normalize_type(tp: Any) -> Tuple[Tuple[type, ...], bool]:
    """Reduce a type hint to the classes a value may be an instance of.

    Returns:
        A ``(classes, accepts_none)`` pair. ``(object,)`` stands for "anything".
    """
    if tp is None or tp is type(None):
        return (type(None),), True
    if tp is Any or tp is object or tp is inspect.Parameter.empty or isinstance(tp, str):
        return (object,), True
    origin = get_origin(tp)
    if origin is Annotated:
        return normalize_type(get_args(tp)[0])
    if origin in _UNION_TYPES:
        classes = []
        nullable = False
        for arg in get_args(tp):
            if arg is type(None):
                nullable = True
                continue
            sub, sub_nullable = normalize_type(arg)
            classes.extend(c for c in sub if c not in classes)
            nullable = nullable or sub_nullable
        return tuple(classes), nullable
    if origin is not None:
        if isinstance(origin, type):
            return (origin,), False
        return (object,), True
    if isinstance(tp, TypeVar):
        if tp.__bound__ is not None:
            return normalize_type(tp.__bound__)
        return (object,), True
    if isinstance(tp, type):
        return (tp,), False
    return (object,), True


def is_protocol(cls: Any) -> bool:
    return bool(getattr(cls, "_is_protocol", False))


def _is_interface(cls: type) -> bool:
    return is_protocol(cls) or inspect.isabstract(cls)


def _protocol_members(proto: type) -> Sequence[str]:
    names = [n for n in vars(proto) if not n.startswith("_")]
    names.extend(getattr(proto, "__annotations__", {}).keys())
    return names


def _instance_of(value: Any, cls: type) -> bool:
    try:
        return isinstance(value, cls)
    except TypeError:
        if is_protocol(cls):
            return all(hasattr(value, n) for n in _protocol_members(cls))
        return False


def _promotes(value: Any, cls: type) -> bool:
    # int is acceptable where float or complex is expected (PEP 484 numeric tower)
    return cls in (float, complex) and isinstance(value, int)


def _class_accepts(cls: type, value: Any) -> bool:
    if cls is object:
        return True
    return _instance_of(value, cls) or _promotes(value, cls)


def is_assignable_value(param_type: Any, value: Any) -> bool:
    """Whether *value* can be passed for a parameter of *param_type* without conversion."""
    classes, nullable = normalize_type(param_type)
    if value is None:
        return nullable
    return any(_class_accepts(c, value) for c in classes)


def _class_distance(cls: type, value: Any) -> Optional[int]:
    if not _class_accepts(cls, value):
        return None
    mro = type(value).__mro__
    if cls in mro:
        distance = 2 * mro.index(cls)
    elif _promotes(value, cls):
        return 1
    else:
        distance = 2 * (len(mro) - 1) + 1
    if _is_interface(cls):
        distance += 1
    return distance


def type_distance(param_type: Any, value: Any) -> int:
    """Distance between one value and one parameter type; ``MAX_WEIGHT`` when unassignable."""
    if not is_assignable_value(param_type, value):
        return MAX_WEIGHT
    if value is None:
        return 0
    classes, _ = normalize_type(param_type)
    found = [d for d in (_class_distance(c, value) for c in classes) if d is not None]
    return min(found) if found else MAX_WEIGHT


def type_difference_weight(param_types: Sequence[Any], args: Sequence[Any]) -> int:
    """Sum of per-parameter distances; any unassignable argument yields ``MAX_WEIGHT``."""
    result = 0
    for param_type, arg in zip(param_types, args):
        d = type_distance(param_type, arg)
        if d >= MAX_WEIGHT:
            return MAX_WEIGHT
        result += d
    return result


def lenient_weight(param_types: Sequence[Any], arguments: Sequence[Any], raw: Sequence[Any]) -> int:
    converted = type_difference_weight(param_types, arguments)
    raw_weight = type_difference_weight(param_types, raw) - RAW_WEIGHT_BIAS
    return raw_weight if raw_weight < converted else converted


def assignability_weight(param_types: Sequence[Any], arguments: Sequence[Any], raw: Sequence[Any]) -> int:
    for param_type, arg in zip(param_types, arguments):
        if not is_assignable_value(param_type, arg):
            return MAX_WEIGHT
    for param_type, arg in zip(param_types, raw):
        if not is_assignable_value(param_type, arg):
            return MAX_WEIGHT - 512
    return MAX_WEIGHT - RAW_WEIGHT_BIAS


def is_simple_type(tp: Any) -> bool:
    """Whether *tp* is a value type that autowiring should never try to satisfy."""
    classes, _ = normalize_type(tp)
    for cls in classes:
        if cls is object or cls is type(None):
            continue
        if not issubclass(cls, _SIMPLE_TYPES):
            return False
    return True


def _class_is_subtype(cls: type, target: type) -> bool:
    if target is object:
        return True
    try:
        return issubclass(cls, target)
    except TypeError:
        if is_protocol(target):
            return all(hasattr(cls, n) for n in _protocol_members(target))
        return False


def is_assignable_type(cls: Any, target: Any) -> bool:
    """Whether instances of *cls* can be passed where *target* is expected."""
    if not isinstance(cls, type):
        return False
    classes, _ = normalize_type(target)
    return any(_class_is_subtype(cls, t) or (t in (float, complex) and issubclass(cls, int)) for t in classes)
