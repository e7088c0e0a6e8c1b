"""Normalization of money values that arrive as display strings."""
import re
from typing import Any

_NON_NUMERIC = re.compile(r"[^0-9.]")


def parse_price(value: Any) -> float:
    """
    Turn a price like "₹1,200.50" into 1200.5.

    Numbers pass through unchanged. Strings are stripped of everything
    except digits and dots and parsed; anything unparsable, empty or of
    another type is 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    if not value or not isinstance(value, str):
        return 0

    cleaned = _NON_NUMERIC.sub("", value)
    try:
        return float(cleaned)
    except ValueError:
        return 0
