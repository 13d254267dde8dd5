"""
Input validation helpers for colour values.

Card fields themselves are stored as given; these helpers guard the few
places that need a well-formed colour (palette entries) and back the
colour parsing used by presentation code.
"""

import re
from typing import Optional, Tuple

from .error_handler import ConfigurationError

HEX_COLOR_PATTERN = re.compile(r"[0-9A-F]{6}")


def normalize_hex_color(value: str) -> str:
    """
    Normalize a colour value to ``#RRGGBB`` in upper case.

    Surrounding whitespace and the leading ``#`` are optional on input.

    Raises:
        ConfigurationError: If the value is not a 6-digit hex colour
    """
    if not isinstance(value, str):
        raise ConfigurationError(
            f"Colour must be a string, got {type(value).__name__}",
            details={"value_type": type(value).__name__}
        )

    raw = value.strip().upper()
    if raw.startswith("#"):
        raw = raw[1:]

    if not HEX_COLOR_PATTERN.fullmatch(raw):
        raise ConfigurationError(
            f"Invalid hex colour: {value!r}",
            details={"value": value}
        )

    return f"#{raw}"


def parse_hex_color(value: str) -> Optional[Tuple[float, float, float]]:
    """Parse a hex colour into ``(r, g, b)`` floats in ``[0, 1]``, or None."""
    try:
        raw = normalize_hex_color(value)[1:]
    except ConfigurationError:
        return None
    number = int(raw, 16)
    return (
        ((number >> 16) & 0xFF) / 255.0,
        ((number >> 8) & 0xFF) / 255.0,
        (number & 0xFF) / 255.0,
    )

