"""In-memory data model of a workout session.

The hierarchy is ``Session -> SessionModule -> SessionExercise -> SetGroup
-> SetData``.  Objects are plain dataclasses that are mutated in place by
:mod:`workout_core.set_operations`; they carry no sequencing logic of their
own apart from small derived properties and display helpers.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Tuple, Union

from workout_core.enums import (
    CardioTracking,
    DistanceUnit,
    ExerciseState,
    ExerciseType,
    MobilityTracking,
    ModuleType,
    ProgressionMetric,
    ProgressionRecommendation,
    Side,
)
from workout_core.utils import format_distance, format_duration, format_number, format_weight

MeasurableValue = Union[float, str]

# Fields a logged set can carry, in display order
MEASURED_FIELDS: Tuple[str, ...] = (
    "weight",
    "reps",
    "duration",
    "hold_time",
    "distance",
    "height",
    "intensity",
    "temperature",
    "rpe",
    "band_color",
)

# Fields with a planned target on sets and set groups
TARGET_FIELDS: Tuple[str, ...] = ("weight", "reps", "duration", "hold_time", "distance")

INT_FIELDS = frozenset({"reps", "duration", "hold_time", "intensity", "temperature", "rpe"})

# Loggable fields beyond the primary ones, per exercise type
SECONDARY_FIELDS: Dict[ExerciseType, Tuple[str, ...]] = {
    ExerciseType.STRENGTH: ("band_color",),
    ExerciseType.CARDIO: (),
    ExerciseType.ISOMETRIC: ("intensity",),
    ExerciseType.EXPLOSIVE: ("weight",),
    ExerciseType.MOBILITY: (),
    ExerciseType.RECOVERY: ("temperature",),
}


def new_id() -> str:
    return str(uuid.uuid4())


def enum_dict_factory(items) -> dict:
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in items}


def primary_fields(
    exercise_type: ExerciseType,
    cardio_tracking: CardioTracking = CardioTracking.TIME_ONLY,
    mobility_tracking: MobilityTracking = MobilityTracking.REPS_ONLY,
) -> Tuple[str, ...]:
    """Return the measured fields that matter for ``exercise_type``."""

    if exercise_type is ExerciseType.STRENGTH:
        return ("weight", "reps")
    if exercise_type is ExerciseType.CARDIO:
        return {
            CardioTracking.TIME_ONLY: ("duration",),
            CardioTracking.DISTANCE_ONLY: ("distance",),
            CardioTracking.BOTH: ("duration", "distance"),
        }[cardio_tracking]
    if exercise_type is ExerciseType.ISOMETRIC:
        return ("hold_time",)
    if exercise_type is ExerciseType.EXPLOSIVE:
        return ("reps", "height")
    if exercise_type is ExerciseType.MOBILITY:
        return {
            MobilityTracking.REPS_ONLY: ("reps",),
            MobilityTracking.DURATION_ONLY: ("duration",),
            MobilityTracking.BOTH: ("reps", "duration"),
        }[mobility_tracking]
    if exercise_type is ExerciseType.RECOVERY:
        return ("duration",)
    raise ValueError(f"Unknown exercise type {exercise_type!r}")


# ----------------------------------------------------------------------
# Sets
# ----------------------------------------------------------------------


@dataclass
class SetData:
    """One logged or planned unit of work."""

    set_number: int
    id: str = field(default_factory=new_id)
    weight: Optional[float] = None
    reps: Optional[int] = None
    duration: Optional[int] = None
    hold_time: Optional[int] = None
    distance: Optional[float] = None
    height: Optional[float] = None
    intensity: Optional[int] = None
    temperature: Optional[int] = None
    rpe: Optional[int] = None
    band_color: Optional[str] = None
    measurable_values: Dict[str, MeasurableValue] = field(default_factory=dict)
    completed: bool = False
    side: Optional[Side] = None
    target_weight: Optional[float] = None
    target_reps: Optional[int] = None
    target_duration: Optional[int] = None
    target_hold_time: Optional[int] = None
    target_distance: Optional[float] = None
    rest_after: Optional[int] = None

    def target(self, name: str):
        return getattr(self, f"target_{name}", None)

    def has_logged_values(self) -> bool:
        """Return ``True`` if any measured value has been stored on the set."""

        if self.measurable_values:
            return True
        return any(getattr(self, name) is not None for name in MEASURED_FIELDS if name != "rpe")

    # --------------------------------------------------------------
    # Display helpers
    # --------------------------------------------------------------

    @property
    def formatted_strength(self) -> str | None:
        if self.reps is None:
            return None
        if self.band_color:
            result = f"{self.band_color} x {self.reps}"
        elif self.weight is not None:
            result = f"{format_weight(self.weight)} x {self.reps}"
        else:
            result = f"{self.reps} reps"
        if self.rpe is not None:
            result += f" @ RPE {self.rpe}"
        return result

    def formatted_cardio(self, unit: DistanceUnit = DistanceUnit.MILES) -> str | None:
        parts = []
        if self.duration is not None:
            parts.append(format_duration(self.duration))
        if self.distance is not None:
            parts.append(format_distance(self.distance, unit.abbreviation))
        return " - ".join(parts) if parts else None

    @property
    def formatted_isometric(self) -> str | None:
        if self.hold_time is None:
            return None
        result = format_duration(self.hold_time) + " hold"
        if self.intensity is not None:
            result += f" @ {self.intensity}/10"
        return result

    @property
    def formatted_explosive(self) -> str | None:
        if self.reps is None:
            return None
        result = f"{self.reps} reps"
        if self.height is not None:
            result += f" @ {format_number(self.height)} in"
        return result

    @property
    def formatted_recovery(self) -> str | None:
        if self.duration is None:
            return None
        result = format_duration(self.duration)
        if self.temperature is not None:
            result += f" @ {self.temperature}°F"
        return result

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=enum_dict_factory)

    @classmethod
    def from_dict(cls, data: dict) -> "SetData":
        values = dict(data)
        if values.get("side") is not None:
            values["side"] = Side(values["side"])
        values["measurable_values"] = dict(values.get("measurable_values") or {})
        return cls(**values)


@dataclass
class MeasurableTarget:
    """Equipment-specific measurable such as box height or band colour."""

    name: str
    unit: str = ""
    target_value: Optional[float] = None
    target_string_value: Optional[str] = None
    is_string_based: bool = False

    @property
    def target(self) -> MeasurableValue | None:
        if self.is_string_based:
            return self.target_string_value
        return self.target_value if self.target_value is not None else self.target_string_value

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "MeasurableTarget":
        return cls(**data)


@dataclass
class ProgressionSuggestion:
    """Recommendation payload produced by the progression collaborator."""

    metric: ProgressionMetric
    base_value: float
    suggested_value: float
    confidence_label: Optional[str] = None
    rationale: Optional[str] = None

    @property
    def delta(self) -> float:
        return max(self.suggested_value - self.base_value, 0)

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=enum_dict_factory)

    @classmethod
    def from_dict(cls, data: dict) -> "ProgressionSuggestion":
        values = dict(data)
        values["metric"] = ProgressionMetric(values["metric"])
        return cls(**values)


@dataclass
class SetGroup:
    """A scheme-homogeneous run of sets inside an exercise."""

    sets: List[SetData] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    source_set_group_id: Optional[str] = None
    rest_period: Optional[int] = None
    is_interval: bool = False
    work_duration: Optional[int] = None
    interval_rest_duration: Optional[int] = None
    is_amrap: bool = False
    amrap_time_limit: Optional[int] = None
    is_unilateral: bool = False
    track_rpe: bool = True
    target_weight: Optional[float] = None
    target_reps: Optional[int] = None
    target_duration: Optional[int] = None
    target_hold_time: Optional[int] = None
    target_distance: Optional[float] = None
    measurables: List[MeasurableTarget] = field(default_factory=list)

    @property
    def rounds(self) -> int:
        """Interval rounds map 1:1 onto sets."""
        return len(self.sets)

    @property
    def logical_set_count(self) -> int:
        return len(self.sets) // 2 if self.is_unilateral else len(self.sets)

    def target(self, name: str):
        return getattr(self, f"target_{name}", None)

    def renumber(self) -> None:
        """Recompute ``set_number`` so numbering is contiguous from 1."""

        for index, set_data in enumerate(self.sets):
            set_data.set_number = index // 2 + 1 if self.is_unilateral else index + 1

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=enum_dict_factory)

    @classmethod
    def from_dict(cls, data: dict) -> "SetGroup":
        values = dict(data)
        values["sets"] = [SetData.from_dict(s) for s in values.get("sets", [])]
        values["measurables"] = [
            MeasurableTarget.from_dict(m) for m in values.get("measurables", [])
        ]
        return cls(**values)


# ----------------------------------------------------------------------
# Exercises, modules and the session aggregate
# ----------------------------------------------------------------------


@dataclass
class SessionExercise:
    """One trainable movement as performed in the active session."""

    name: str
    exercise_type: ExerciseType = ExerciseType.STRENGTH
    set_groups: List[SetGroup] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    source_exercise_id: Optional[str] = None
    superset_group_id: Optional[str] = None
    is_bodyweight: bool = False
    uses_box: bool = False
    uses_implement: bool = False
    cardio_tracking: CardioTracking = CardioTracking.TIME_ONLY
    distance_unit: DistanceUnit = DistanceUnit.METERS
    mobility_tracking: MobilityTracking = MobilityTracking.REPS_ONLY
    progression_recommendation: Optional[ProgressionRecommendation] = None
    progression_suggestion: Optional[ProgressionSuggestion] = None
    notes: Optional[str] = None
    is_ad_hoc: bool = False
    is_substitution: bool = False
    original_name: Optional[str] = None
    primary_muscles: List[str] = field(default_factory=list)
    secondary_muscles: List[str] = field(default_factory=list)

    @property
    def all_sets(self) -> List[SetData]:
        return [s for group in self.set_groups for s in group.sets]

    @property
    def logical_set_count(self) -> int:
        return sum(group.logical_set_count for group in self.set_groups)

    @property
    def completed_set_count(self) -> int:
        return sum(1 for s in self.all_sets if s.completed)

    @property
    def has_incomplete_sets(self) -> bool:
        return any(not s.completed for s in self.all_sets)

    @property
    def is_completed(self) -> bool:
        sets = self.all_sets
        return bool(sets) and all(s.completed for s in sets)

    @property
    def state(self) -> ExerciseState:
        if self.is_completed:
            return ExerciseState.COMPLETED
        if self.completed_set_count:
            return ExerciseState.IN_PROGRESS
        return ExerciseState.NOT_STARTED

    @property
    def primary_fields(self) -> Tuple[str, ...]:
        return primary_fields(self.exercise_type, self.cardio_tracking, self.mobility_tracking)

    @property
    def loggable_fields(self) -> Tuple[str, ...]:
        return self.primary_fields + SECONDARY_FIELDS[self.exercise_type]

    @property
    def total_volume(self) -> float:
        return sum(
            (s.weight or 0) * (s.reps or 0) for s in self.all_sets if s.completed
        )

    @property
    def top_set(self) -> SetData | None:
        completed = [s for s in self.all_sets if s.completed]
        if not completed:
            return None
        return max(completed, key=lambda s: s.weight or 0)

    def summarize_set(self, set_data: SetData) -> str | None:
        """Return the one-line summary of ``set_data`` for this exercise type."""

        if self.exercise_type is ExerciseType.STRENGTH:
            text = set_data.formatted_strength
        elif self.exercise_type is ExerciseType.CARDIO:
            text = set_data.formatted_cardio(self.distance_unit)
        elif self.exercise_type is ExerciseType.ISOMETRIC:
            text = set_data.formatted_isometric
        elif self.exercise_type is ExerciseType.EXPLOSIVE:
            text = set_data.formatted_explosive
        elif self.exercise_type is ExerciseType.MOBILITY:
            parts = []
            if set_data.reps is not None:
                parts.append(f"{set_data.reps} reps")
            if set_data.duration is not None:
                parts.append(format_duration(set_data.duration))
            text = " - ".join(parts) if parts else None
        elif self.exercise_type is ExerciseType.RECOVERY:
            text = set_data.formatted_recovery
        else:
            raise ValueError(f"Unknown exercise type {self.exercise_type!r}")
        if text and set_data.side is not None:
            text = f"{set_data.side.value[0].upper()}: {text}"
        return text

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=enum_dict_factory)

    @classmethod
    def from_dict(cls, data: dict) -> "SessionExercise":
        values = dict(data)
        values["exercise_type"] = ExerciseType(values["exercise_type"])
        values["cardio_tracking"] = CardioTracking(values["cardio_tracking"])
        values["distance_unit"] = DistanceUnit(values["distance_unit"])
        values["mobility_tracking"] = MobilityTracking(values["mobility_tracking"])
        values["set_groups"] = [SetGroup.from_dict(g) for g in values.get("set_groups", [])]
        if values.get("progression_recommendation") is not None:
            values["progression_recommendation"] = ProgressionRecommendation(
                values["progression_recommendation"]
            )
        if values.get("progression_suggestion") is not None:
            values["progression_suggestion"] = ProgressionSuggestion.from_dict(
                values["progression_suggestion"]
            )
        return cls(**values)


@dataclass
class SessionModule:
    """One phase of the workout (warm-up, main lifts, ...)."""

    name: str
    module_type: ModuleType = ModuleType.STRENGTH
    exercises: List[SessionExercise] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    module_id: Optional[str] = None
    skipped: bool = False
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=enum_dict_factory)

    @classmethod
    def from_dict(cls, data: dict) -> "SessionModule":
        values = dict(data)
        values["module_type"] = ModuleType(values["module_type"])
        values["exercises"] = [SessionExercise.from_dict(e) for e in values.get("exercises", [])]
        return cls(**values)


@dataclass
class Session:
    """Root aggregate of an active or finished workout."""

    workout_name: str
    modules: List[SessionModule] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    workout_id: Optional[str] = None
    started_at: float = 0.0
    is_freestyle: bool = False
    skipped_module_ids: List[str] = field(default_factory=list)
    feeling: Optional[int] = None
    notes: Optional[str] = None
    ended_at: Optional[float] = None
    duration_seconds: Optional[int] = None

    @property
    def exercises(self) -> List[SessionExercise]:
        return [ex for module in self.modules for ex in module.exercises]

    @property
    def total_sets_completed(self) -> int:
        return sum(
            ex.completed_set_count
            for module in self.modules
            if not module.skipped
            for ex in module.exercises
        )

    @property
    def total_exercises_completed(self) -> int:
        return sum(
            1
            for module in self.modules
            if not module.skipped
            for ex in module.exercises
            if ex.is_completed
        )

    @property
    def display_name(self) -> str:
        if not self.is_freestyle:
            return self.workout_name
        exercises = self.exercises
        if not exercises:
            return "Freestyle"
        if len(exercises) == 1:
            return exercises[0].name
        return f"{exercises[0].name} +{len(exercises) - 1}"

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=enum_dict_factory)

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        values = dict(data)
        values["modules"] = [SessionModule.from_dict(m) for m in values.get("modules", [])]
        values["skipped_module_ids"] = list(values.get("skipped_module_ids", []))
        return cls(**values)


# ----------------------------------------------------------------------
# References into the hierarchy
# ----------------------------------------------------------------------


class SetLocation(NamedTuple):
    """Index path of a set within the session hierarchy."""

    module_index: int
    exercise_index: int
    set_group_index: int
    set_index: int


@dataclass(frozen=True)
class FlatSet:
    """A set together with its group context, for flattened iteration."""

    set_group_index: int
    set_index: int
    display_number: int
    set_data: SetData
    set_group: SetGroup

    @property
    def side(self) -> Side | None:
        return self.set_data.side
