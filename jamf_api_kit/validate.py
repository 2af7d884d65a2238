"""
Validation of attribute values against their OAPI_PROPERTIES definitions.

Each validator returns the (possibly coerced) value or raises
InvalidDataError. ``oapi_attr`` dispatches on the definition's ``class``.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence

from .exceptions import InvalidDataError
from .utils import is_float_like, is_integer_like

TRUE_RE = re.compile(r"^(t(rue)?|y(es)?)$", re.IGNORECASE)
FALSE_RE = re.compile(r"^(f(alse)?|no?)$", re.IGNORECASE)


def oapi_attr(value: Any, attr_def: Dict[str, Any], attr_name: Optional[str] = None) -> Any:
    """
    Validate one value for an attribute.

    For multi-valued attributes this validates a single item; use
    ``array_constraints`` for the list as a whole.
    """
    if value is None:
        if attr_def.get("nil_ok"):
            return None
        raise InvalidDataError(f"{attr_name}: value may not be None")

    klass = attr_def.get("class")
    label = f"{attr_name}: " if attr_name else ""

    if klass == "j_id":
        value = j_id(value, attr_name)
    elif isinstance(klass, type):
        value = class_instance(value, klass, attr_name)
    elif klass == "boolean":
        value = boolean(value, msg=f"{label}value must be boolean true or false, or an equivalent string")
    elif klass == "string":
        value = string(value, msg=f"{label}value must be a string")
        if attr_def.get("pattern"):
            matches_pattern(value, attr_def["pattern"])
        if attr_def.get("min_length") is not None:
            min_length(value, attr_def["min_length"])
        if attr_def.get("max_length") is not None:
            max_length(value, attr_def["max_length"])
    elif klass in ("integer", "number"):
        if klass == "integer":
            value = integer(value, msg=f"{label}value must be an integer")
        elif attr_def.get("format") in ("float", "double"):
            value = float_value(value, msg=f"{label}value must be a floating point number")
        else:
            value = number(value, msg=f"{label}value must be a number")
        if attr_def.get("minimum") is not None:
            minimum(value, attr_def["minimum"], exclusive=attr_def.get("exclusive_minimum", False))
        if attr_def.get("maximum") is not None:
            maximum(value, attr_def["maximum"], exclusive=attr_def.get("exclusive_maximum", False))
        if attr_def.get("multiple_of") is not None:
            multiple_of(value, attr_def["multiple_of"])
    elif klass == "hash":
        value = hash_value(value, msg=f"{label}value must be a dict")

    if attr_def.get("enum"):
        return in_enum(value, attr_def["enum"], msg=f"{label}value must be one of: {', '.join(map(str, attr_def['enum']))}")
    return value


def array_constraints(values: Sequence[Any], attr_def: Dict[str, Any], attr_name: Optional[str] = None) -> Sequence[Any]:
    label = f"{attr_name}: " if attr_name else ""
    if attr_def.get("min_items") is not None and len(values) < attr_def["min_items"]:
        raise InvalidDataError(f"{label}value must contain at least {attr_def['min_items']} items")
    if attr_def.get("max_items") is not None and len(values) > attr_def["max_items"]:
        raise InvalidDataError(f"{label}value must contain no more than {attr_def['max_items']} items")
    if attr_def.get("unique_items"):
        seen: List[Any] = []
        for item in values:
            if item in seen:
                raise InvalidDataError(f"{label}value must contain only unique items")
            seen.append(item)
    return values


def j_id(value: Any, attr_name: Optional[str] = None) -> str:
    """Jamf ids are integer strings, though some APIs send ints."""
    if is_integer_like(value):
        return str(value).strip()
    raise InvalidDataError(f"{attr_name or 'id'}: value must be an integer or an integer string")


def class_instance(value: Any, klass: type, attr_name: Optional[str] = None) -> Any:
    if isinstance(value, klass):
        return value
    if isinstance(value, dict):
        return klass(value)
    raise InvalidDataError(f"{attr_name or 'value'}: value must be a {klass.__name__}")


def boolean(value: Any, msg: Optional[str] = None) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip()
    if TRUE_RE.match(text):
        return True
    if FALSE_RE.match(text):
        return False
    raise InvalidDataError(msg or "Value must be boolean true or false, or an equivalent string")


def string(value: Any, msg: Optional[str] = None) -> str:
    if isinstance(value, str):
        return value
    raise InvalidDataError(msg or "Value must be a string")


def integer(value: Any, msg: Optional[str] = None) -> int:
    if is_integer_like(value):
        return int(value)
    raise InvalidDataError(msg or "Value must be an integer")


def number(value: Any, msg: Optional[str] = None):
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if is_integer_like(value):
        return int(value)
    if is_float_like(value):
        return float(value)
    raise InvalidDataError(msg or "Value must be a number")


def float_value(value: Any, msg: Optional[str] = None) -> float:
    if isinstance(value, bool):
        raise InvalidDataError(msg or "Value must be a floating point number")
    if isinstance(value, (int, float)) or is_integer_like(value) or is_float_like(value):
        return float(value)
    raise InvalidDataError(msg or "Value must be a floating point number")


def hash_value(value: Any, msg: Optional[str] = None) -> Dict[Any, Any]:
    if isinstance(value, dict):
        return value
    raise InvalidDataError(msg or "Value must be a dict")


def minimum(value, minimum_value, exclusive: bool = False, msg: Optional[str] = None):
    ok = value > minimum_value if exclusive else value >= minimum_value
    if ok:
        return value
    op = ">" if exclusive else ">="
    raise InvalidDataError(msg or f"value must be {op} {minimum_value}")


def maximum(value, maximum_value, exclusive: bool = False, msg: Optional[str] = None):
    ok = value < maximum_value if exclusive else value <= maximum_value
    if ok:
        return value
    op = "<" if exclusive else "<="
    raise InvalidDataError(msg or f"value must be {op} {maximum_value}")


def multiple_of(value, multiplier, msg: Optional[str] = None):
    if not isinstance(multiplier, (int, float)) or multiplier <= 0:
        raise ValueError("multiplier must be a positive number")
    if value % multiplier == 0:
        return value
    raise InvalidDataError(msg or f"value must be a multiple of {multiplier}")


def min_length(value: str, min_len: int, msg: Optional[str] = None) -> str:
    if len(value) >= min_len:
        return value
    raise InvalidDataError(msg or f"length of value must be >= {min_len}")


def max_length(value: str, max_len: int, msg: Optional[str] = None) -> str:
    if len(value) <= max_len:
        return value
    raise InvalidDataError(msg or f"length of value must be <= {max_len}")


def matches_pattern(value: str, pattern, msg: Optional[str] = None) -> str:
    if re.search(pattern, value):
        return value
    raise InvalidDataError(msg or f"String does not match pattern: {getattr(pattern, 'pattern', pattern)}")


def in_enum(value: Any, enum: Sequence[Any], msg: Optional[str] = None) -> Any:
    if value in enum:
        return value
    raise InvalidDataError(msg or f"Value must be one of: {', '.join(map(str, enum))}")


def non_empty_string(value: Any, attr_name: str = "value") -> str:
    if isinstance(value, str) and value.strip():
        return value
    raise InvalidDataError(f"{attr_name} must be a non-empty string")
