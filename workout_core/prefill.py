"""Default values shown in an unlogged set's input fields.

:func:`resolve_prefill` is pure.  For every field relevant to the exercise
type it picks the first available value from:

1. the value stored on the set itself (a set that was logged then unchecked),
2. the progression suggestion, for the field the suggestion is about,
3. the matching completed set from the last time the exercise was done,
4. the set's planned targets, then the set group's targets.

:class:`SetEntryState` wraps the resolver for one on-screen set and keeps
hand-edited fields from being overwritten when the inputs change.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Dict, Optional, Set

from workout_core import DEFAULT_DISTANCE_REGRESS_STEP, DEFAULT_WEIGHT_REGRESS_STEP
from workout_core.enums import ExerciseType, ProgressionMetric, ProgressionRecommendation
from workout_core.models import (
    TARGET_FIELDS,
    MeasurableValue,
    ProgressionSuggestion,
    SessionExercise,
    SetData,
    SetGroup,
)


@dataclass
class Prefill:
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


PREFILL_FIELDS = tuple(f.name for f in fields(Prefill) if f.name != "measurable_values")


def suggested_value(
    suggestion: ProgressionSuggestion,
    recommendation: ProgressionRecommendation | None,
    weight_regress_step: float = DEFAULT_WEIGHT_REGRESS_STEP,
    distance_regress_step: float = DEFAULT_DISTANCE_REGRESS_STEP,
) -> float | int:
    """Derive the value to offer from a suggestion and the chosen recommendation."""

    metric = suggestion.metric
    if metric in (ProgressionMetric.REPS, ProgressionMetric.DURATION):
        base = int(round(suggestion.base_value))
        progressed = int(round(suggestion.suggested_value))
        delta = max(progressed - base, 0)
        if recommendation is ProgressionRecommendation.PROGRESS:
            return max(1, progressed)
        if recommendation is ProgressionRecommendation.REGRESS:
            return max(1, base - max(delta, 1))
        return max(1, base)

    if metric is ProgressionMetric.WEIGHT:
        step = weight_regress_step
    elif metric is ProgressionMetric.DISTANCE:
        step = distance_regress_step
    else:
        raise ValueError(f"Unknown progression metric {metric!r}")
    if recommendation is ProgressionRecommendation.PROGRESS:
        return suggestion.suggested_value
    if recommendation is ProgressionRecommendation.REGRESS:
        return max(0, suggestion.base_value - max(suggestion.delta, step))
    return suggestion.base_value


def suggestion_field(exercise: SessionExercise) -> str | None:
    """Name of the set field the exercise's suggestion applies to."""

    suggestion = exercise.progression_suggestion
    if suggestion is None:
        return None
    name = suggestion.metric.value
    if (
        name == "duration"
        and exercise.exercise_type is ExerciseType.ISOMETRIC
    ):
        return "hold_time"
    return name if name in exercise.loggable_fields else None


def matching_last_set(last_session: SessionExercise | None, set_data: SetData) -> SetData | None:
    """Find the completed set from last time that lines up with ``set_data``.

    Sets are matched by number and side, falling back to the first completed
    set on the same side.  A sided set never borrows from the other side.
    """

    if last_session is None:
        return None
    completed = [s for s in last_session.all_sets if s.completed]
    for candidate in completed:
        if candidate.set_number == set_data.set_number and candidate.side == set_data.side:
            return candidate
    for candidate in completed:
        if candidate.side == set_data.side:
            return candidate
    if set_data.side is not None:
        return None
    return completed[0] if completed else None


def resolve_prefill(
    exercise: SessionExercise,
    set_group: SetGroup,
    set_data: SetData,
    last_session: SessionExercise | None = None,
    weight_regress_step: float = DEFAULT_WEIGHT_REGRESS_STEP,
    distance_regress_step: float = DEFAULT_DISTANCE_REGRESS_STEP,
) -> Prefill:
    """Compute the values to pre-fill for ``set_data``."""

    result = Prefill()
    last = matching_last_set(last_session, set_data)
    suggested_field = None if set_group.is_amrap else suggestion_field(exercise)

    for name in exercise.loggable_fields:
        value = getattr(set_data, name)
        if value is None and name == suggested_field:
            value = suggested_value(
                exercise.progression_suggestion,
                exercise.progression_recommendation,
                weight_regress_step,
                distance_regress_step,
            )
        if value is None and last is not None:
            value = getattr(last, name)
        if value is None and name in TARGET_FIELDS and not (set_group.is_amrap and name == "reps"):
            value = set_data.target(name)
            if value is None:
                value = set_group.target(name)
        setattr(result, name, value)
    result.rpe = set_data.rpe

    for measurable in set_group.measurables:
        key = measurable.name
        if key in set_data.measurable_values:
            value = set_data.measurable_values[key]
        elif last is not None and key in last.measurable_values:
            value = last.measurable_values[key]
        else:
            value = measurable.target
        if value is not None:
            result.measurable_values[key] = value
    for key, value in set_data.measurable_values.items():
        result.measurable_values.setdefault(key, value)
    return result


def exercise_fingerprint(exercise: SessionExercise, set_group: SetGroup) -> tuple:
    """Inputs whose change requires the pre-fill to be recomputed."""

    suggestion = exercise.progression_suggestion
    return (
        exercise.exercise_type,
        exercise.cardio_tracking,
        exercise.mobility_tracking,
        exercise.progression_recommendation,
        None if suggestion is None else (suggestion.metric, suggestion.base_value, suggestion.suggested_value),
        set_group.is_amrap,
        tuple(set_group.target(name) for name in TARGET_FIELDS),
        tuple((m.name, m.target) for m in set_group.measurables),
    )


class SetEntryState:
    """Input state for one unlogged set on screen.

    Values are re-derived whenever the set or the exercise fingerprint
    changes, except for fields the user has edited by hand.
    """

    def __init__(
        self,
        weight_regress_step: float = DEFAULT_WEIGHT_REGRESS_STEP,
        distance_regress_step: float = DEFAULT_DISTANCE_REGRESS_STEP,
    ):
        self.weight_regress_step = weight_regress_step
        self.distance_regress_step = distance_regress_step
        self.values = Prefill()
        self.manual_fields: Set[str] = set()
        self.manual_measurables: Set[str] = set()
        self._set_id: str | None = None
        self._fingerprint: tuple | None = None

    @property
    def duration_manually_set(self) -> bool:
        return "duration" in self.manual_fields

    def sync(
        self,
        exercise: SessionExercise,
        set_group: SetGroup,
        set_data: SetData,
        last_session: SessionExercise | None = None,
    ) -> Prefill:
        """Bring the values up to date for ``set_data`` and return them."""

        fingerprint = exercise_fingerprint(exercise, set_group)
        if set_data.id != self._set_id:
            self.manual_fields.clear()
            self.manual_measurables.clear()
        elif fingerprint == self._fingerprint:
            return self.values
        self._set_id = set_data.id
        self._fingerprint = fingerprint

        fresh = resolve_prefill(
            exercise,
            set_group,
            set_data,
            last_session,
            self.weight_regress_step,
            self.distance_regress_step,
        )
        for name in self.manual_fields:
            setattr(fresh, name, getattr(self.values, name))
        for key in self.manual_measurables:
            if key in self.values.measurable_values:
                fresh.measurable_values[key] = self.values.measurable_values[key]
            else:
                fresh.measurable_values.pop(key, None)
        self.values = fresh
        return fresh

    def mark_manual(self, name: str, value) -> None:
        """Record a hand-edited field so later syncs leave it alone."""

        if name not in PREFILL_FIELDS:
            raise ValueError(f"Unknown set field {name!r}")
        self.manual_fields.add(name)
        setattr(self.values, name, value)

    def mark_manual_measurable(self, key: str, value: MeasurableValue | None) -> None:
        self.manual_measurables.add(key)
        if value is None:
            self.values.measurable_values.pop(key, None)
        else:
            self.values.measurable_values[key] = value

    def record_timer_duration(self, seconds: int) -> None:
        """Store the duration measured by the exercise timer."""
        self.mark_manual("duration", seconds)
