"""
Built-in transform services.
Path: tiny_templates/services/builtins.py

Each service takes the current value and an optional argument string written
after a colon in the template, e.g. ``${Name | truncate:20}``. Services are
pure: they never mutate their input.
"""

import math
import re
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from tiny_templates.context.values import is_empty, is_number, stringify

_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_SEPARATORS = re.compile(r"[\s_\-]+")

DEFAULT_DATE_FORMAT = "%Y-%m-%d"


def _text(value: Any) -> Optional[str]:
    return None if value is None else stringify(value)


def _split_words(value: str) -> List[str]:
    normalized = _WORD_BOUNDARY.sub(r"\1 \2", value)
    return [word for word in _SEPARATORS.split(normalized) if word]


def _parse_int(arg: Optional[str]) -> Optional[int]:
    try:
        return int(arg.strip()) if arg else None
    except ValueError:
        return None


# String services

def upper(value: Any, arg: Optional[str] = None) -> Optional[str]:
    text = _text(value)
    return text.upper() if text is not None else None


def lower(value: Any, arg: Optional[str] = None) -> Optional[str]:
    text = _text(value)
    return text.lower() if text is not None else None


def trim(value: Any, arg: Optional[str] = None) -> Optional[str]:
    text = _text(value)
    return text.strip() if text is not None else None


def capitalize(value: Any, arg: Optional[str] = None) -> Optional[str]:
    text = _text(value)
    if not text:
        return text
    return text[0].upper() + text[1:].lower()


def camelcase(value: Any, arg: Optional[str] = None) -> Optional[str]:
    text = _text(value)
    if not text:
        return text
    words = _split_words(text)
    if not words:
        return text
    return words[0].lower() + "".join(w[0].upper() + w[1:].lower() for w in words[1:])


def pascalcase(value: Any, arg: Optional[str] = None) -> Optional[str]:
    text = _text(value)
    if not text:
        return text
    return "".join(w[0].upper() + w[1:].lower() for w in _split_words(text))


def snakecase(value: Any, arg: Optional[str] = None) -> Optional[str]:
    text = _text(value)
    if not text:
        return text
    return "_".join(w.lower() for w in _split_words(text))


def kebabcase(value: Any, arg: Optional[str] = None) -> Optional[str]:
    text = _text(value)
    if not text:
        return text
    return "-".join(w.lower() for w in _split_words(text))


def truncate(value: Any, arg: Optional[str] = None) -> Optional[str]:
    """Shorten to at most N characters, ending with "..." when cut."""
    text = _text(value)
    length = _parse_int(arg)
    if not text or length is None or len(text) <= length:
        return text
    return text[:max(length - 3, 0)] + "..."


def replace(value: Any, arg: Optional[str] = None) -> Optional[str]:
    text = _text(value)
    if not text or not arg or "," not in arg:
        return text
    old, new = arg.split(",", 1)
    return text.replace(old, new)


def _pad(value: Any, arg: Optional[str], left: bool) -> Optional[str]:
    text = _text(value)
    if not text or not arg:
        return text
    width_part, _, fill = arg.partition(",")
    width = _parse_int(width_part)
    if width is None:
        return text
    fill_char = fill[0] if fill else " "
    return text.rjust(width, fill_char) if left else text.ljust(width, fill_char)


def padleft(value: Any, arg: Optional[str] = None) -> Optional[str]:
    return _pad(value, arg, left=True)


def padright(value: Any, arg: Optional[str] = None) -> Optional[str]:
    return _pad(value, arg, left=False)


# Date services

def format_value(value: Any, arg: Optional[str] = None) -> Optional[str]:
    """strftime for dates and times, format() specs for numbers."""
    if value is None or not arg:
        return _text(value)
    if isinstance(value, (datetime, date, time)):
        return value.strftime(arg)
    if is_number(value):
        return format(value, arg)
    return stringify(value)


def date_format(value: Any, arg: Optional[str] = None) -> Optional[str]:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    return format_value(value, arg or DEFAULT_DATE_FORMAT)


# Number services

def number(value: Any, arg: Optional[str] = None) -> Any:
    """Thousands separators with N decimals (default 0)."""
    if not is_number(value):
        return value
    decimals = _parse_int(arg) or 0
    return f"{value:,.{decimals}f}"


def round_value(value: Any, arg: Optional[str] = None) -> Any:
    if isinstance(value, (float, Decimal)):
        return round(value, _parse_int(arg) or 0)
    return value


def floor(value: Any, arg: Optional[str] = None) -> Any:
    if isinstance(value, (float, Decimal)):
        return math.floor(value)
    return value


def ceiling(value: Any, arg: Optional[str] = None) -> Any:
    if isinstance(value, (float, Decimal)):
        return math.ceil(value)
    return value


# Collection services

def count(value: Any, arg: Optional[str] = None) -> int:
    if value is None:
        return 0
    if isinstance(value, (str, tuple, list, dict)):
        return len(value)
    return 1


def first(value: Any, arg: Optional[str] = None) -> Any:
    if isinstance(value, (str, tuple, list)):
        return value[0] if value else None
    return value


def last(value: Any, arg: Optional[str] = None) -> Any:
    if isinstance(value, (str, tuple, list)):
        return value[-1] if value else None
    return value


def join(value: Any, arg: Optional[str] = None) -> Optional[str]:
    if not isinstance(value, (tuple, list)):
        return _text(value)
    separator = ", " if arg is None else arg
    return separator.join(stringify(item) for item in value)


def reverse(value: Any, arg: Optional[str] = None) -> Any:
    if isinstance(value, str):
        return value[::-1]
    if isinstance(value, (tuple, list)):
        return tuple(reversed(value))
    return value


# Conditional services

def default(value: Any, arg: Optional[str] = None) -> Any:
    return arg if is_empty(value) else value


def yesno(value: Any, arg: Optional[str] = None) -> str:
    yes, _, no = (arg or "Yes,No").partition(",")
    if isinstance(value, bool):
        truthy = value
    elif isinstance(value, str):
        truthy = bool(value) and value.casefold() != "false"
    elif is_number(value):
        truthy = value != 0
    else:
        truthy = value is not None
    return yes if truthy else (no or "No")


BUILTIN_SERVICES: Dict[str, Callable[..., Any]] = {
    "upper": upper,
    "lower": lower,
    "trim": trim,
    "capitalize": capitalize,
    "camelcase": camelcase,
    "pascalcase": pascalcase,
    "snakecase": snakecase,
    "kebabcase": kebabcase,
    "truncate": truncate,
    "replace": replace,
    "padleft": padleft,
    "padright": padright,
    "format": format_value,
    "date": date_format,
    "number": number,
    "round": round_value,
    "floor": floor,
    "ceiling": ceiling,
    "count": count,
    "first": first,
    "last": last,
    "join": join,
    "reverse": reverse,
    "default": default,
    "ifempty": default,
    "yesno": yesno,
}
