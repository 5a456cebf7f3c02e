"""
Coercion helpers shared by converters, sanitizer and settlement synthesis.

Decimal conversion, canonical numeric-string formatting, and timestamp
normalization.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

Numeric = Union[str, int, float, Decimal]

# Anything above this is already milliseconds (year 2286 in seconds).
_SECONDS_CUTOFF = 10_000_000_000


def to_decimal(value: Optional[Numeric], default: Optional[Decimal] = None) -> Optional[Decimal]:
    """
    Safely convert a value to Decimal.

    Args:
        value: Value to convert (str, int, float, Decimal, or None)
        default: Returned when the value is missing or unparsable

    Returns:
        Decimal instance, or default if conversion fails
    """
    if value is None:
        return default

    if isinstance(value, Decimal):
        return value

    if isinstance(value, bool):
        return default

    try:
        text = str(value).strip()
        if not text:
            return default
        return Decimal(text)
    except (InvalidOperation, ValueError, TypeError):
        return default


def format_decimal(value: Decimal) -> str:
    """Render a Decimal as a plain (non-scientific) string without trailing zeros."""
    if value == 0:
        return "0"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def to_numeric_str(value: Any, zero: str = "0") -> str:
    """
    Canonical numeric string.

    Strings from numeric-string venues pass through untouched; numbers are
    formatted exactly (floats via ``repr`` so 0.1 stays "0.1"). Missing or
    blank values become ``zero``.
    """
    if value is None or isinstance(value, bool):
        return zero
    if isinstance(value, str):
        value = value.strip()
        return value if value else zero
    if isinstance(value, Decimal):
        return format_decimal(value)
    if isinstance(value, float):
        return format_decimal(Decimal(repr(value)))
    if isinstance(value, int):
        return str(value)
    return str(value) or zero


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def to_int(value: Any, default: int = 0) -> int:
    parsed = to_decimal(value)
    if parsed is None:
        return default
    try:
        return int(parsed)
    except (InvalidOperation, ValueError, OverflowError):
        return default


def to_millis(value: Any) -> int:
    """
    Normalize a timestamp to integer milliseconds.

    Accepts seconds (int/float/str, possibly fractional) or milliseconds;
    values below the seconds cutoff are scaled up.
    """
    parsed = to_decimal(value)
    if parsed is None or parsed <= 0:
        return 0
    if parsed < _SECONDS_CUTOFF:
        parsed = parsed * 1000
    return int(parsed)


def negate_numeric_str(value: str) -> str:
    """Flip the sign of a canonical numeric string ("0" stays "0")."""
    parsed = to_decimal(value)
    if parsed is None or parsed == 0:
        return "0"
    return format_decimal(-parsed)


def abs_numeric_str(value: str) -> str:
    parsed = to_decimal(value)
    if parsed is None:
        return "0"
    return format_decimal(abs(parsed))
