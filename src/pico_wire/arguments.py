"""Declared argument and property values of a component definition.

:class:`ArgumentValues` holds the values declared for a construction
procedure, either by parameter index or as an unordered ("generic") list that
is matched against parameters by type and name. :class:`PropertyValues` holds
the values assigned to attributes after construction.
"""

from typing import Any, Dict, Iterator, List, Optional, Set, Union

from .typing_utils import is_assignable_value, normalize_type

TypeLike = Union[type, str, None]


def _matches_type(required_type: Any, declared_type: TypeLike) -> bool:
    if declared_type is None:
        return True
    if required_type is None:
        return False
    classes, _ = normalize_type(required_type)
    for cls in classes:
        if isinstance(declared_type, str):
            if declared_type in (cls.__name__, cls.__qualname__, f"{cls.__module__}.{cls.__qualname__}"):
                return True
        elif cls is declared_type:
            return True
    return False


class ValueHolder:
    """One declared argument value, optionally typed and/or named.

    Attributes:
        value: The declared value (possibly symbolic, see :mod:`pico_wire.values`).
        declared_type: Class (or class name) the value is meant for.
        name: Parameter name the value is meant for.
        source: The holder this one was resolved from, if any.
    """

    __slots__ = ("value", "declared_type", "name", "source", "_converted", "_converted_value")

    def __init__(self, value: Any, declared_type: TypeLike = None, name: Optional[str] = None) -> None:
        self.value = value
        self.declared_type = declared_type
        self.name = name
        self.source: Optional["ValueHolder"] = None
        self._converted = False
        self._converted_value: Any = None

    @property
    def is_converted(self) -> bool:
        return self._converted

    @property
    def converted_value(self) -> Any:
        return self._converted_value

    def set_converted_value(self, value: Any) -> None:
        self._converted = True
        self._converted_value = value

    def content_equals(self, other: "ValueHolder") -> bool:
        return (
            self is other
            or (self.value == other.value and self.declared_type == other.declared_type and self.name == other.name)
        )

    def copy(self) -> "ValueHolder":
        c = ValueHolder(self.value, self.declared_type, self.name)
        c.source = self.source
        return c

    def __repr__(self) -> str:
        return f"ValueHolder(value={self.value!r}, type={self.declared_type!r}, name={self.name!r})"


class ArgumentValues:
    """Indexed and generic argument values for a construction procedure."""

    def __init__(self) -> None:
        self._indexed: Dict[int, ValueHolder] = {}
        self._generic: List[ValueHolder] = []

    @staticmethod
    def _holder(value: Any, declared_type: TypeLike, name: Optional[str]) -> ValueHolder:
        if isinstance(value, ValueHolder):
            return value
        return ValueHolder(value, declared_type, name)

    def add_indexed(self, index: int, value: Any, declared_type: TypeLike = None, name: Optional[str] = None) -> None:
        self._indexed[index] = self._holder(value, declared_type, name)

    def add_generic(self, value: Any, declared_type: TypeLike = None, name: Optional[str] = None) -> None:
        holder = self._holder(value, declared_type, name)
        if not any(h is holder for h in self._generic):
            self._generic.append(holder)

    def has_indexed(self, index: int) -> bool:
        return index in self._indexed

    @property
    def indexed(self) -> Dict[int, ValueHolder]:
        return dict(self._indexed)

    @property
    def generic(self) -> List[ValueHolder]:
        return list(self._generic)

    def get_indexed(self, index: int, required_type: Any = None, required_name: Optional[str] = None) -> Optional[ValueHolder]:
        holder = self._indexed.get(index)
        if holder is None:
            return None
        if holder.declared_type is not None and not _matches_type(required_type, holder.declared_type):
            return None
        if holder.name is not None and required_name != "" and required_name != holder.name:
            return None
        return holder

    def get_generic(
        self,
        required_type: Any = None,
        required_name: Optional[str] = None,
        used: Optional[Set[int]] = None,
    ) -> Optional[ValueHolder]:
        """Find the next unused generic value matching *required_type* and *required_name*.

        An empty *required_name* ignores holder names; ``None`` only matches
        unnamed holders. *used* contains ``id()`` of holders already bound.
        """
        for holder in self._generic:
            if used is not None and id(holder) in used:
                continue
            if holder.name is not None and required_name != "" and (required_name is None or holder.name != required_name):
                continue
            if holder.declared_type is not None and (required_type is None or not _matches_type(required_type, holder.declared_type)):
                continue
            if (
                required_type is not None
                and holder.declared_type is None
                and holder.name is None
                and not is_assignable_value(required_type, holder.value)
            ):
                continue
            return holder
        return None

    def get_argument_value(
        self,
        index: int,
        required_type: Any = None,
        required_name: Optional[str] = None,
        used: Optional[Set[int]] = None,
    ) -> Optional[ValueHolder]:
        holder = self.get_indexed(index, required_type, required_name)
        if holder is None:
            holder = self.get_generic(required_type, required_name, used)
        return holder

    @property
    def argument_count(self) -> int:
        return len(self._indexed) + len(self._generic)

    def is_empty(self) -> bool:
        return not self._indexed and not self._generic

    def clear(self) -> None:
        self._indexed.clear()
        self._generic.clear()

    def copy(self) -> "ArgumentValues":
        other = ArgumentValues()
        other._indexed = {i: h.copy() for i, h in self._indexed.items()}
        other._generic = [h.copy() for h in self._generic]
        return other

    def __len__(self) -> int:
        return self.argument_count

    def __repr__(self) -> str:
        return f"ArgumentValues(indexed={self._indexed!r}, generic={self._generic!r})"


class PropertyValue:
    """A value assigned to attribute *name* after construction."""

    __slots__ = ("name", "value", "source", "_converted", "_converted_value")

    def __init__(self, name: str, value: Any, source: Optional["PropertyValue"] = None) -> None:
        self.name = name
        self.value = value
        self.source = source
        self._converted = False
        self._converted_value: Any = None

    @property
    def is_converted(self) -> bool:
        return self._converted

    @property
    def converted_value(self) -> Any:
        return self._converted_value

    def set_converted_value(self, value: Any) -> None:
        self._converted = True
        self._converted_value = value

    def copy(self) -> "PropertyValue":
        c = PropertyValue(self.name, self.value, self.source)
        c._converted = self._converted
        c._converted_value = self._converted_value
        return c

    def __repr__(self) -> str:
        return f"PropertyValue({self.name!r}, {self.value!r})"


class PropertyValues:
    """Ordered attribute values; adding an existing name replaces it."""

    def __init__(self, values: Optional[Union[Dict[str, Any], "PropertyValues"]] = None) -> None:
        self._values: List[PropertyValue] = []
        self._converted = False
        if isinstance(values, PropertyValues):
            self._values = [pv.copy() for pv in values]
        elif values:
            for name, value in values.items():
                self.add(name, value)

    def add(self, name: str, value: Any) -> "PropertyValues":
        pv = value if isinstance(value, PropertyValue) else PropertyValue(name, value)
        for i, existing in enumerate(self._values):
            if existing.name == name:
                self._values[i] = pv
                return self
        self._values.append(pv)
        return self

    def get(self, name: str) -> Optional[PropertyValue]:
        for pv in self._values:
            if pv.name == name:
                return pv
        return None

    def remove(self, name: str) -> None:
        self._values = [pv for pv in self._values if pv.name != name]

    def contains(self, name: str) -> bool:
        return self.get(name) is not None

    __contains__ = contains

    @property
    def is_converted(self) -> bool:
        return self._converted

    def set_converted(self) -> None:
        self._converted = True

    def is_empty(self) -> bool:
        return not self._values

    def names(self) -> List[str]:
        return [pv.name for pv in self._values]

    def copy(self) -> "PropertyValues":
        return PropertyValues(self)

    def __iter__(self) -> Iterator[PropertyValue]:
        return iter(list(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def __bool__(self) -> bool:
        return bool(self._values)

    def __repr__(self) -> str:
        return f"PropertyValues({self._values!r})"
