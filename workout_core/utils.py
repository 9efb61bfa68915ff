"""Utility helpers used across the session engine.

Input coming from the presentation layer is often a raw string typed by
the user.  The parsers below are deliberately lenient: anything that is not
a usable number becomes ``None`` so callers can treat it as "not provided".
"""

from __future__ import annotations

import math


def parse_float(value) -> float | None:
    """Return ``value`` as a finite float or ``None`` if it is not usable."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def parse_int(value) -> int | None:
    """Return ``value`` rounded to an ``int`` or ``None``."""

    number = parse_float(value)
    if number is None:
        return None
    return int(round(number))


def clamp(value, bounds: tuple[int, int]):
    """Clamp ``value`` into the inclusive ``bounds``; ``None`` passes through."""

    if value is None:
        return None
    low, high = bounds
    return max(low, min(high, value))


def coerce_measurable(raw) -> float | str | None:
    """Convert a raw measurable entry into a number when possible.

    Empty input is dropped (``None``); text that does not parse as a number
    is kept as a trimmed string (e.g. a band colour).
    """

    if raw is None:
        return None
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return parse_float(raw)
    text = str(raw).strip()
    if not text:
        return None
    number = parse_float(text)
    return number if number is not None else text


def format_number(value: float) -> str:
    """Drop a trailing ``.0`` so whole numbers display as integers."""

    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def format_weight(weight: float) -> str:
    return format_number(weight)


def format_duration(seconds: int) -> str:
    """Return ``seconds`` as ``45s``, ``1:30`` or ``1:02:03``."""

    seconds = max(0, int(seconds))
    if seconds < 60:
        return f"{seconds}s"
    m, s = divmod(seconds, 60)
    if m < 60:
        return f"{m}:{s:02d}"
    h, m = divmod(m, 60)
    return f"{h}:{m:02d}:{s:02d}"


def format_distance(distance: float, unit_abbreviation: str = "mi") -> str:
    return f"{distance:.2f} {unit_abbreviation}"
