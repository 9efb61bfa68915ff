"""Closed value sets used across the session engine.

Every enum is a ``str`` subclass so values serialise to JSON unchanged and
compare equal to their raw string form.
"""

from __future__ import annotations

from enum import Enum


class ExerciseType(str, Enum):
    STRENGTH = "strength"
    CARDIO = "cardio"
    ISOMETRIC = "isometric"
    EXPLOSIVE = "explosive"
    MOBILITY = "mobility"
    RECOVERY = "recovery"


class ModuleType(str, Enum):
    WARMUP = "warmup"
    PREHAB = "prehab"
    EXPLOSIVE = "explosive"
    STRENGTH = "strength"
    CARDIO_LONG = "cardio_long"
    CARDIO_SPEED = "cardio_speed"
    RECOVERY = "recovery"


class CardioTracking(str, Enum):
    TIME_ONLY = "time"
    DISTANCE_ONLY = "distance"
    BOTH = "both"


class MobilityTracking(str, Enum):
    REPS_ONLY = "reps"
    DURATION_ONLY = "duration"
    BOTH = "both"


class DistanceUnit(str, Enum):
    YARDS = "yards"
    METERS = "meters"
    MILES = "miles"
    KILOMETERS = "kilometers"

    @property
    def abbreviation(self) -> str:
        return {
            DistanceUnit.YARDS: "yd",
            DistanceUnit.METERS: "m",
            DistanceUnit.MILES: "mi",
            DistanceUnit.KILOMETERS: "km",
        }[self]


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"


class ProgressionMetric(str, Enum):
    WEIGHT = "weight"
    REPS = "reps"
    DURATION = "duration"
    DISTANCE = "distance"


class ProgressionRecommendation(str, Enum):
    PROGRESS = "progress"
    STAY = "stay"
    REGRESS = "regress"


class ExerciseState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class NavigationEvent(str, Enum):
    """Outcome of a cursor movement, consumed by the presentation layer."""

    NONE = "none"
    SET = "set"
    SUPERSET = "superset"
    EXERCISE = "exercise"
    MODULE_TRANSITION = "module_transition"
    WORKOUT_COMPLETE = "workout_complete"


class ChangeKind(str, Enum):
    EXERCISE_ADDED = "added"
    EXERCISE_REMOVED = "removed"
    SET_COUNT_CHANGED = "setcount"
    SCHEME_CHANGED = "scheme"
    EXERCISE_SUBSTITUTED = "substituted"
    EXERCISE_REORDERED = "reordered"
