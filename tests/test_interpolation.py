"""
Tests for the convenience interpolation functions.
Path: tests/test_interpolation.py
"""

import pytest

from tiny_templates.context.execution_context import ExecutionContext
from tiny_templates.interpolation import interpolate, interpolate_all, interpolate_with_engine


class Person:
    def __init__(self, first, last):
        self.FirstName = first
        self.LastName = last


def test_interpolate_with_braces():
    """Test the legacy {Field} form"""
    model = {"FirstName": "John", "LastName": "Smith"}
    assert interpolate("Hello, {FirstName} {LastName}", model) == "Hello, John Smith"


def test_interpolate_object_model():
    """Test the legacy form against a plain object"""
    assert interpolate("{FirstName}", Person("Ada", "Lovelace")) == "Ada"


def test_interpolate_without_tags():
    """Test replacing bare field names"""
    assert interpolate("Dear Title Name", {"Title": "Dr", "Name": "Who"}, has_tags=False) == "Dear Dr Who"


def test_interpolate_skips_none_values():
    """Test that None fields leave the token in place"""
    assert interpolate("{A}{B}", {"A": "x", "B": None}) == "x{B}"


def test_interpolate_argument_checks():
    """Test required arguments"""
    with pytest.raises(ValueError):
        interpolate("", {})
    with pytest.raises(ValueError):
        interpolate("{A}", None)
    with pytest.raises(ValueError):
        interpolate("{A}", ["not", "a", "mapping"])


def test_interpolate_with_engine():
    """Test full rendering through the convenience function"""
    text = "@foreach(i in Items)${i | upper}@endforeach"
    assert interpolate_with_engine(text, {"Items": ["a", "b"]}) == "AB"
    with pytest.raises(ValueError):
        interpolate_with_engine("${A}", None)


def test_interpolate_all_shares_one_context():
    """Test rendering several templates against the same context"""
    context = ExecutionContext({"Name": "Order"})
    assert interpolate_all(["${Name}", "${Name | lower}s", "static"], context) == ["Order", "orders", "static"]
