"""
Tests for the built-in transform services.
Path: tests/test_builtins.py
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from tiny_templates.services import builtins


@pytest.mark.parametrize("service,value,arg,expected", [
    (builtins.upper, "abc", None, "ABC"),
    (builtins.lower, "AbC", None, "abc"),
    (builtins.trim, "  x  ", None, "x"),
    (builtins.capitalize, "hELLO", None, "Hello"),
    (builtins.camelcase, "order line item", None, "orderLineItem"),
    (builtins.pascalcase, "order_line_item", None, "OrderLineItem"),
    (builtins.snakecase, "OrderLineItem", None, "order_line_item"),
    (builtins.kebabcase, "Order Line item", None, "order-line-item"),
    (builtins.truncate, "Hello world", "8", "Hello..."),
    (builtins.truncate, "Hello", "8", "Hello"),
    (builtins.replace, "a-b-c", "-,+", "a+b+c"),
    (builtins.padleft, "7", "3,0", "007"),
    (builtins.padright, "ab", "4", "ab  "),
])
def test_string_services(service, value, arg, expected):
    """Test string transforms"""
    assert service(value, arg) == expected


def test_string_services_pass_none_through():
    """Test that None stays None"""
    assert builtins.upper(None) is None
    assert builtins.truncate(None, "3") is None


def test_date_services():
    """Test date formatting"""
    assert builtins.date_format(date(2024, 3, 9)) == "2024-03-09"
    assert builtins.date_format(datetime(2024, 3, 9, 8, 5), "%d/%m %H:%M") == "09/03 08:05"
    assert builtins.date_format("2024-03-09T10:00:00", "%Y") == "2024"
    assert builtins.date_format("not a date") == "not a date"
    assert builtins.format_value(3.14159, ".2f") == "3.14"


def test_number_services():
    """Test number formatting and rounding"""
    assert builtins.number(1234567) == "1,234,567"
    assert builtins.number(1234.5, "2") == "1,234.50"
    assert builtins.number("text") == "text"
    assert builtins.round_value(2.567, "1") == 2.6
    assert builtins.floor(2.9) == 2
    assert builtins.ceiling(Decimal("2.1")) == 3
    assert builtins.floor(5) == 5


def test_collection_services():
    """Test collection helpers"""
    items = ("a", "b", "c")
    assert builtins.count(items) == 3
    assert builtins.count(None) == 0
    assert builtins.count(5) == 1
    assert builtins.first(items) == "a"
    assert builtins.last(items) == "c"
    assert builtins.first(()) is None
    assert builtins.join(items) == "a, b, c"
    assert builtins.join(items, "/") == "a/b/c"
    assert builtins.reverse(items) == ("c", "b", "a")
    assert builtins.reverse("abc") == "cba"


def test_conditional_services():
    """Test default and yesno"""
    assert builtins.default("", "fallback") == "fallback"
    assert builtins.default("value", "fallback") == "value"
    assert builtins.yesno(True) == "Yes"
    assert builtins.yesno(False) == "No"
    assert builtins.yesno(0, "on,off") == "off"
    assert builtins.yesno("false") == "No"
    assert builtins.yesno(None) == "No"


def test_builtin_table_aliases():
    """Test that ifempty is an alias of default"""
    assert builtins.BUILTIN_SERVICES["ifempty"] is builtins.default
