"""
Tests for structural model values.
Path: tests/test_values.py
"""

import enum
from collections import namedtuple
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import List

import pytest

from tiny_templates.context.values import (
    MAPPING, SCALAR, SEQUENCE, is_empty, is_number, is_truthy, kind_of, stringify, to_plain, to_value,
)
from tiny_templates.errors import ModelError


@dataclass
class Line:
    sku: str
    qty: int


@dataclass
class Order:
    number: str
    lines: List[Line]


class Customer:
    def __init__(self):
        self.name = "Ada"
        self.tags = {"b", "a"}
        self._secret = "hidden"


Contact = namedtuple("Contact", ["FirstName", "LastName"])


class Color(enum.Enum):
    RED = 1
    GREEN = 2


class Person:
    def __init__(self, first, last):
        self.first = first
        self.last = last

    @property
    def FullName(self):
        return f"{self.first} {self.last}"

    @property
    def _hidden(self):
        return "no"


class Employee(Person):
    @property
    def FullName(self):
        return f"{self.last}, {self.first}"


@dataclass
class Box:
    width: int
    height: int

    @property
    def area(self):
        return self.width * self.height


class FakeModel:
    """Stands in for a pydantic model."""

    def model_dump(self):
        return {"id": 7, "labels": ["x"]}


def test_to_value_converts_containers():
    """Test that lists become tuples and dict keys become strings"""
    value = to_value({"Items": ["a", "b"], 1: {"nested": [1, [2]]}})
    assert value == {"Items": ("a", "b"), "1": {"nested": (1, (2,))}}


def test_to_value_handles_dataclasses():
    """Test that dataclasses become mappings of their fields"""
    value = to_value(Order("A-1", [Line("pen", 2)]))
    assert value == {"number": "A-1", "lines": ({"sku": "pen", "qty": 2},)}


def test_to_value_handles_plain_objects_and_sets():
    """Test that public attributes are exposed and sets are ordered"""
    value = to_value(Customer())
    assert value == {"name": "Ada", "tags": ("a", "b")}


def test_to_value_uses_model_dump():
    """Test that objects exposing model_dump are converted through it"""
    assert to_value(FakeModel()) == {"id": 7, "labels": ("x",)}


def test_to_value_keeps_scalars():
    """Test that scalars pass through unchanged"""
    today = date(2024, 1, 2)
    assert to_value(today) is today
    assert to_value(Decimal("1.5")) == Decimal("1.5")
    assert to_value(None) is None


def test_to_value_rejects_cycles():
    """Test that a self-referencing model raises ModelError"""
    model = {"name": "loop"}
    model["self"] = model
    with pytest.raises(ModelError) as info:
        to_value(model)
    assert info.value.kind == "model_cycle"


def test_to_value_allows_shared_references():
    """Test that the same object reachable twice is not mistaken for a cycle"""
    shared = ["x"]
    assert to_value({"a": shared, "b": shared}) == {"a": ("x",), "b": ("x",)}


def test_kind_of():
    """Test value classification"""
    assert kind_of({}) == MAPPING
    assert kind_of(()) == SEQUENCE
    assert kind_of("text") == SCALAR


@pytest.mark.parametrize("value,expected", [
    (None, ""),
    ("text", "text"),
    (True, "true"),
    (False, "false"),
    (42, "42"),
    (2.5, "2.5"),
    (date(2024, 3, 1), "2024-03-01"),
    (datetime(2024, 3, 1, 12, 30), "2024-03-01T12:30:00"),
    (("a", "b"), "a, b"),
    ({"k": ("v",)}, '{"k": ["v"]}'),
])
def test_stringify(value, expected):
    """Test the canonical text form of values"""
    assert stringify(value) == expected


@pytest.mark.parametrize("value,expected", [
    (None, False),
    (False, False),
    (True, True),
    ("", False),
    ("false", True),
    ((), False),
    (("a",), True),
    ({}, False),
    (0, True),
    (0.0, True),
])
def test_is_truthy(value, expected):
    """Test condition truthiness rules"""
    assert is_truthy(value) is expected


def test_is_empty_and_is_number():
    """Test emptiness and number helpers"""
    assert is_empty(None) and is_empty("") and is_empty(())
    assert not is_empty(0)
    assert is_number(1) and is_number(1.5) and is_number(Decimal("2"))
    assert not is_number(True)


def test_to_plain_returns_json_compatible_data():
    """Test that tuples become lists and dates become ISO text"""
    assert to_plain({"d": date(2024, 1, 1), "xs": (1, 2)}) == {"d": "2024-01-01", "xs": [1, 2]}


def test_to_value_keeps_namedtuple_field_names():
    """Test that namedtuples become mappings keyed by field name"""
    assert to_value(Contact("John", "Smith")) == {"FirstName": "John", "LastName": "Smith"}
    assert to_value([Contact("A", "B")]) == ({"FirstName": "A", "LastName": "B"},)


def test_to_value_includes_properties():
    """Test that public properties are exposed next to attributes"""
    assert to_value(Person("Ada", "Lovelace")) == {"first": "Ada", "last": "Lovelace",
                                                   "FullName": "Ada Lovelace"}
    assert to_value(Box(2, 3)) == {"width": 2, "height": 3, "area": 6}


def test_to_value_uses_nearest_property_definition():
    """Test that an overriding property in a subclass wins"""
    assert to_value(Employee("Ada", "Lovelace"))["FullName"] == "Lovelace, Ada"


def test_enum_members_are_scalars():
    """Test that enum members are kept as scalars and rendered by name"""
    value = to_value({"Color": Color.RED})
    assert value["Color"] is Color.RED
    assert kind_of(value["Color"]) == SCALAR
    assert stringify(Color.GREEN) == "GREEN"
    assert to_plain({"c": Color.RED}) == {"c": "RED"}
