"""Normalization helpers.

Turns raw endpoint bodies into bounded measurements.  Malformed upstream
data degrades to ``0`` (clamped) and never raises, so a misbehaving device
cannot stall polling.
"""

from __future__ import annotations

import logging
import re

_logger = logging.getLogger(__name__)

# Optional whitespace, optional sign, digits; anything after is ignored.
_LEADING_INT = re.compile(r"\s*([+-]?)0*(\d+)")

# Longer digit runs saturate instead of being converted.
_MAX_DIGITS = 18
_SATURATED = 10**_MAX_DIGITS


def clamp(value: int, min_value: int, max_value: int) -> int:
    return max(min_value, min(max_value, value))


def parse_leading_int(raw: str) -> int | None:
    """Return the integer at the start of *raw* or ``None``.

    ``"37"`` → 37, ``" 12 min"`` → 12, ``"3.9"`` → 3, ``"abc"`` → ``None``.
    Runs of more than 18 significant digits come back as ``±10**18``.
    """
    if not raw:
        return None
    match = _LEADING_INT.match(raw)
    if match is None:
        return None
    sign, digits = match.groups()
    value = _SATURATED if len(digits) > _MAX_DIGITS else int(digits)
    return -value if sign == "-" else value


def normalize_measurement(raw: str, min_value: int, max_value: int) -> int:
    """Parse *raw* into a measurement within ``[min_value, max_value]``."""
    parsed = parse_leading_int(raw)
    if parsed is None:
        _logger.warning("Received non-numeric data: %r", raw[:64] if raw else raw)
        return clamp(0, min_value, max_value)
    return clamp(parsed, min_value, max_value)
