"""
Shared utility functions for jamf-api-kit.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import MethodType
from typing import Any, Callable, Iterable, List, Optional, Tuple, Union

INTEGER_RE = re.compile(r"^-?\d+$")
FLOAT_RE = re.compile(r"^-?\d*\.\d+$")


def parse_line_delimited_file(path: Union[str, Path]) -> List[str]:
    """
    Identifiers listed one per line, e.g. the serials file given to the CLI.

    Surrounding whitespace is dropped; blank lines and lines starting with
    ``#`` are skipped.
    """
    with Path(path).open(encoding="utf-8") as handle:
        stripped = (line.strip() for line in handle)
        return [entry for entry in stripped if entry and not entry.startswith("#")]


def is_integer_like(value: Any) -> bool:
    """True for ints (not bools) and strings holding only an integer."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, str) and bool(INTEGER_RE.match(value.strip()))


def is_float_like(value: Any) -> bool:
    if isinstance(value, float):
        return True
    return isinstance(value, str) and bool(FLOAT_RE.match(value.strip()))


def normalize_serials(serials: Iterable[Any]) -> List[str]:
    """
    Upper-case and deduplicate serial numbers, keeping first-seen order.

    Apple serial numbers are always upper case, so comparisons are made that way.

    Examples:
        >>> normalize_serials(["c02abc", "C02ABC", " xyz "])
        ['C02ABC', 'XYZ']
    """
    result: List[str] = []
    seen = set()
    for sn in serials:
        val = str(sn).strip().upper()
        if val and val not in seen:
            result.append(val)
            seen.add(val)
    return result


SIZE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")

JAMF_US_DATE_FORMATS = ("%m/%d/%Y %I:%M:%S %p", "%m/%d/%Y %I:%M %p")
_ISO_SECONDS = re.compile(r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(\.\d+)?(Z|[+-]\d{2}:?\d{2})?$")


def format_size_bytes(size_bytes: float) -> str:
    """A package or file size for log messages, e.g. ``"1.5 MB"``."""
    size = float(size_bytes)
    for unit in SIZE_UNITS[:-1]:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} {SIZE_UNITS[-1]}"


def parse_jamf_datetime(value: Any) -> Optional[datetime]:
    """
    A timezone-aware datetime from any of the timestamp shapes Jamf Pro sends.

    Token expiries and history entries use ISO 8601 (``2025-03-15T05:49:00Z``,
    with or without fractional seconds); older Classic API fields use
    ``03/15/2025 05:49 AM`` or epoch milliseconds, as a number or a string.
    Naive values are taken as UTC. Unparseable values give None.

        >>> parse_jamf_datetime("2025-03-15T05:49:00Z")
        datetime.datetime(2025, 3, 15, 5, 49, tzinfo=datetime.timezone.utc)
    """
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)

    text = str(value).strip()
    match = _ISO_SECONDS.match(text)
    if match:
        return _iso_datetime(*match.groups())

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    except ValueError:
        pass

    for fmt in JAMF_US_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    if text.isdigit():
        try:
            return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
        except (OSError, OverflowError):
            return None
    return None


def _iso_datetime(seconds: str, fraction: Optional[str], offset: Optional[str]) -> datetime:
    # Fractions are cut to microseconds whatever their length
    micros = int((fraction[1:] + "000000")[:6]) if fraction else 0
    tz = timezone.utc
    if offset and offset != "Z":
        hours, minutes = int(offset[1:3]), int(offset[-2:])
        delta = timedelta(hours=hours, minutes=minutes)
        tz = timezone(-delta if offset[0] == "-" else delta)
    parsed = datetime.strptime(seconds, "%Y-%m-%dT%H:%M:%S")
    return parsed.replace(microsecond=micros, tzinfo=tz)


def parse_version(version_raw: str) -> Tuple[int, ...]:
    """
    Turn a Jamf Pro version string into a comparable tuple.

    The build suffix is stripped: "11.23.0-t1763478557882" -> (11, 23, 0).
    """
    core = re.split(r"[-\s]", str(version_raw).strip(), maxsplit=1)[0]
    parts: List[int] = []
    for piece in core.split("."):
        digits = re.match(r"\d+", piece)
        if not digits:
            break
        parts.append(int(digits.group(0)))
    while len(parts) < 3:
        parts.append(0)
    return tuple(parts)


class hybridmethod:
    """
    A method with one implementation when called on the class and another
    when called on an instance.

    Examples:
        >>> class Thing:
        ...     @hybridmethod
        ...     def describe(cls):
        ...         return "class"
        ...     @describe.instancemethod
        ...     def describe(self):
        ...         return "instance"
        >>> Thing.describe(), Thing().describe()
        ('class', 'instance')
    """

    def __init__(self, class_func: Callable[..., Any], instance_func: Optional[Callable[..., Any]] = None):
        self.class_func = class_func
        self.instance_func = instance_func
        self.__doc__ = class_func.__doc__

    def instancemethod(self, func: Callable[..., Any]) -> "hybridmethod":
        return type(self)(self.class_func, func)

    def __get__(self, instance: Any, owner: Optional[type] = None) -> Callable[..., Any]:
        if instance is None or self.instance_func is None:
            return MethodType(self.class_func, owner if owner is not None else type(instance))
        return MethodType(self.instance_func, instance)
