"""
Structural values for template models.
Path: tiny_templates/context/values.py

Host models are converted once, up front, into a closed domain the resolver
can navigate without reflection:

- mapping:  dict with string keys
- sequence: tuple
- scalar:   everything else (str, numbers, bool, None, dates, enum members, callables...)
"""

import collections.abc
import dataclasses
import enum
import json
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, Optional, Set

from tiny_templates.errors import ModelError

MAPPING = "mapping"
SEQUENCE = "sequence"
SCALAR = "scalar"

_SCALAR_TYPES = (str, bytes, int, float, bool, Decimal, date, datetime, time, enum.Enum, type(None))


def to_value(obj: Any) -> Any:
    """
    Convert a host object into structural values.

    Args:
        obj: Any model object (dict, list, dataclass, pydantic model, plain object...)

    Returns:
        Equivalent value built only from dicts, tuples and scalars

    Raises:
        ModelError: If the model contains a reference cycle
    """
    return _convert(obj, set())


def _convert(obj: Any, active: Set[int]) -> Any:
    if isinstance(obj, _SCALAR_TYPES) or callable(obj):
        return obj

    marker = id(obj)
    if marker in active:
        raise ModelError(f"Model contains a reference cycle through {type(obj).__name__}",
                         kind="model_cycle", type=type(obj).__name__)
    active.add(marker)
    try:
        if isinstance(obj, dict):
            return {str(k): _convert(v, active) for k, v in obj.items()}
        if isinstance(obj, tuple) and hasattr(obj, "_asdict"):
            return {str(k): _convert(v, active) for k, v in obj._asdict().items()}
        if isinstance(obj, (list, tuple)):
            return tuple(_convert(item, active) for item in obj)
        if isinstance(obj, (set, frozenset)):
            try:
                items = sorted(obj)
            except TypeError:
                items = list(obj)
            return tuple(_convert(item, active) for item in items)
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            fields = {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
            fields.update(_properties(obj))
            return {k: _convert(v, active) for k, v in fields.items()}
        if hasattr(obj, "model_dump") and callable(obj.model_dump):
            return _convert(obj.model_dump(), active)
        if isinstance(obj, collections.abc.Mapping):
            return {str(k): _convert(v, active) for k, v in obj.items()}
        if isinstance(obj, collections.abc.Iterable):
            return tuple(_convert(item, active) for item in obj)

        public = {k: v for k, v in getattr(obj, "__dict__", {}).items() if not k.startswith("_")}
        public.update(_properties(obj))
        if public or hasattr(obj, "__dict__"):
            return {k: _convert(v, active) for k, v in public.items()}
        return obj
    finally:
        active.discard(marker)


def _properties(obj: Any) -> Dict[str, Any]:
    """Values of public ``@property`` attributes; the nearest class definition of a name wins."""
    values = {}
    seen: Set[str] = set()
    for klass in type(obj).__mro__:
        for name, attr in vars(klass).items():
            if name in seen:
                continue
            seen.add(name)
            if isinstance(attr, property) and not name.startswith("_"):
                try:
                    values[name] = getattr(obj, name)
                except AttributeError:
                    continue
    return values


def kind_of(value: Any) -> str:
    """Classify a converted value as mapping, sequence or scalar."""
    if isinstance(value, dict):
        return MAPPING
    if isinstance(value, (tuple, list)):
        return SEQUENCE
    return SCALAR


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def stringify(value: Any) -> str:
    """
    Canonical text form used when an interpolation is written to output.

    None renders empty, booleans as true/false, enum members by name, dates
    in ISO 8601, sequences joined with ", " and mappings as JSON.
    """
    if value is None:
        return ""
    if isinstance(value, enum.Enum):
        return value.name
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, (tuple, list)):
        return ", ".join(stringify(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(to_plain(value), ensure_ascii=False)
    return str(value)


def to_plain(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.name
    if isinstance(value, dict):
        return {k: to_plain(v) for k, v in value.items()}
    if isinstance(value, (tuple, list)):
        return [to_plain(v) for v in value]
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return stringify(value)


def is_truthy(value: Any) -> bool:
    """Truthiness for @if: None and empty strings / collections are false, bools as-is, all else true."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (str, tuple, list, dict)):
        return len(value) > 0
    return True


def is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (str, tuple, list, dict)) and len(value) == 0)


def describe(value: Any) -> Optional[str]:
    """Short type label for log events."""
    kind = kind_of(value)
    return kind if kind != SCALAR else type(value).__name__


def freeze_bindings(bindings: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {str(name): to_value(v) for name, v in (bindings or {}).items()}
