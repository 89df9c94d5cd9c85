"""
Value utilities for DEXPI conversion.

Numeric coercion, "<value> <unit>" quantity parsing and number formatting
shared by the parsers, the serializer and both graph builders.
"""

import re
from typing import Any, Optional, Tuple, Union
import logging

logger = logging.getLogger(__name__)

_NUMBER_PATTERN = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')
_QUANTITY_PATTERN = re.compile(r'^([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)(?![\d.])\s*(.*)$')


def parse_number(text: Any) -> Optional[float]:
    """
    Parse a numeric string.

    Only plain decimal notation is accepted, so strings such as "nan",
    "inf" or "1_000" stay non-numeric.

    Args:
        text: Value to parse

    Returns:
        Float value or None if the text is not numeric
    """
    if isinstance(text, bool):
        return None
    if isinstance(text, (int, float)):
        return float(text)
    if not isinstance(text, str):
        return None

    stripped = text.strip()
    if not _NUMBER_PATTERN.match(stripped):
        return None
    return float(stripped)


def coerce_numeric(text: str) -> Union[float, str]:
    """Return the text as float when numeric, otherwise the raw string."""
    number = parse_number(text)
    return text if number is None else number


def format_number(value: Union[int, float]) -> str:
    """
    Format a number without a trailing ".0" for integral values.

    Args:
        value: Number to format

    Returns:
        Text form, e.g. 100.0 -> "100", 2.5 -> "2.5"
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def as_text(value: Any) -> Optional[str]:
    """
    Convert a scalar DEXPI value to its text form.

    Args:
        value: String, number, boolean or None

    Returns:
        Text representation or None
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value)


def parse_quantity(text: Optional[str]) -> Optional[Tuple[float, str]]:
    """
    Parse a quantity string like "100 kg/h" into value and unit.

    Args:
        text: Quantity string

    Returns:
        (value, unit) tuple or None if the string does not start with a number
    """
    if not text:
        return None

    match = _QUANTITY_PATTERN.match(text.strip())
    if not match:
        return None

    try:
        value = float(match.group(1))
    except ValueError:
        logger.debug(f"Could not parse quantity value from '{text}'")
        return None

    return value, match.group(2).strip()


def format_quantity(value: Union[int, float, str], unit: Optional[str] = None) -> str:
    """Format a value/unit pair as "<value> <unit>"."""
    text = as_text(value) or ""
    if unit:
        return f"{text} {unit}".strip()
    return text
