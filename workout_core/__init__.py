"""Shared constants and defaults for the session engine."""

from __future__ import annotations

# Default values used when a template leaves them unspecified
DEFAULT_SETS_PER_EXERCISE = 3
DEFAULT_REST_DURATION = 120

# Step used to regress a suggestion when the suggestion itself has no delta
DEFAULT_WEIGHT_REGRESS_STEP = 2.5
DEFAULT_DISTANCE_REGRESS_STEP = 0.1

# Inclusive bounds for rated values
RPE_RANGE = (1, 10)
INTENSITY_RANGE = (1, 10)
FEELING_RANGE = (1, 5)

__all__ = [
    "DEFAULT_SETS_PER_EXERCISE",
    "DEFAULT_REST_DURATION",
    "DEFAULT_WEIGHT_REGRESS_STEP",
    "DEFAULT_DISTANCE_REGRESS_STEP",
    "RPE_RANGE",
    "INTENSITY_RANGE",
    "FEELING_RANGE",
]
