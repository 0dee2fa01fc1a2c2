import sys
from enum import Enum
from typing import Optional, Protocol

import pytest

from pico_wire import SimpleTypeConverter, TypeMismatchError
from pico_wire.typing_utils import (
    assignability_weight,
    describe_type,
    is_assignable_type,
    is_assignable_value,
    is_simple_type,
    lenient_weight,
    normalize_type,
    type_difference_weight,
    type_distance,
)


class Color(Enum):
    RED = 1
    GREEN = 2


class Point:
    def __init__(self, x, y):
        self.x, self.y = x, y


class Shape: ...


class Square(Shape): ...


class Closeable(Protocol):
    def close(self) -> None: ...


class Connection:
    def close(self) -> None:
        pass


@pytest.fixture
def conv():
    return SimpleTypeConverter()


# --- Conversion ---

def test_strings_to_numbers_and_bools(conv):
    assert conv.convert("42", int) == 42
    assert conv.convert(" 1.5 ", float) == 1.5
    assert conv.convert("yes", bool) is True
    assert conv.convert("off", bool) is False
    assert conv.convert(3, float) == 3.0
    assert isinstance(conv.convert(3, float), float)


def test_values_that_fit_are_returned_unchanged(conv):
    square = Square()
    assert conv.convert(square, Shape) is square
    assert conv.convert("text", str) == "text"


@pytest.mark.parametrize(
    "value, target",
    [("abc", int), ("maybe", bool), (2.5, int), (object(), str), (None, int), ("abc", list[int])],
)
def test_unconvertible_values_raise(conv, value, target):
    with pytest.raises(TypeMismatchError):
        conv.convert(value, target)


def test_mismatch_error_carries_details(conv):
    with pytest.raises(TypeMismatchError) as exc:
        conv.convert("abc", int)
    assert exc.value.value == "abc"
    assert exc.value.required_type is int
    assert "to required type 'int'" in str(exc.value)


def test_collections_are_converted_element_wise(conv):
    assert conv.convert(["1", "2"], list[int]) == [1, 2]
    assert conv.convert(("1", 2), tuple[int, str]) == (1, "2")
    assert conv.convert(["a", "a"], set[str]) == {"a"}
    assert conv.convert({"a": "1"}, dict[str, int]) == {"a": 1}


def test_optional_targets(conv):
    assert conv.convert("5", Optional[int]) == 5
    assert conv.convert(None, Optional[int]) is None


def test_enum_members_by_name_or_value(conv):
    assert conv.convert("RED", Color) is Color.RED
    assert conv.convert("2", Color) is Color.GREEN
    with pytest.raises(TypeMismatchError):
        conv.convert("BLUE", Color)


def test_registered_adapter_is_used(conv):
    conv.register(Point, lambda s: Point(*(int(p) for p in s.split(","))))

    p = conv.convert("1,2", Point)

    assert (p.x, p.y) == (1, 2)


# --- Type distance ---

def test_type_distance_counts_hierarchy_steps():
    assert type_distance(int, 5) == 0
    assert type_distance(int, True) == 2
    assert type_distance(Shape, Square()) == 2
    assert type_distance(float, 3) == 1
    assert type_distance(str, 3) == sys.maxsize
    assert type_distance(Optional[int], None) == 0


def test_interfaces_are_one_step_further():
    assert type_distance(Closeable, Connection()) == 2 * (len(Connection.__mro__) - 1) + 2


def test_difference_weight_sums_parameters():
    assert type_difference_weight([int, Shape], [True, Square()]) == 4
    assert type_difference_weight([int, str], [1, 2]) == sys.maxsize


def test_lenient_weight_prefers_exact_raw_values():
    assert lenient_weight([int], [1], [1]) == -1024
    assert lenient_weight([int], [1], ["1"]) == 0


def test_assignability_weight_tiers():
    assert assignability_weight([int], ["x"], ["x"]) == sys.maxsize
    assert assignability_weight([int], [1], ["1"]) == sys.maxsize - 512
    assert assignability_weight([int], [1], [1]) == sys.maxsize - 1024


# --- Type helpers ---

def test_normalize_type():
    assert normalize_type(Optional[int]) == ((int,), True)
    assert normalize_type(int | str) == ((int, str), False)
    assert normalize_type(list[int]) == ((list,), False)
    assert normalize_type("Forward") == ((object,), True)


def test_assignable_values_and_types():
    assert is_assignable_value(float, 1)
    assert not is_assignable_value(int, None)
    assert is_assignable_type(bool, int)
    assert is_assignable_type(int, float)
    assert is_assignable_type(Connection, Closeable)
    assert not is_assignable_type(str, int)
    assert not is_assignable_type("str", str)


def test_simple_types():
    assert is_simple_type(int)
    assert is_simple_type(Optional[str])
    assert is_simple_type(Color)
    assert not is_simple_type(list[int])
    assert not is_simple_type(Shape)


def test_describe_type():
    assert describe_type(Shape) == "Shape"
    assert describe_type(list[int]) == "list[int]"
