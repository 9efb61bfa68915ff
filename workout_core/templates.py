"""Read-only workout templates and building a live session from them.

Templates are what the catalog hands us at session start.  A session never
holds a reference back into its template; every value is copied so edits
made mid-workout leave the template untouched until the user explicitly
commits structural changes at the end.
"""

from __future__ import annotations

import copy
import time
from dataclasses import asdict, dataclass, field
from typing import List, Optional

from workout_core import DEFAULT_REST_DURATION, DEFAULT_SETS_PER_EXERCISE
from workout_core.enums import (
    CardioTracking,
    DistanceUnit,
    ExerciseType,
    MobilityTracking,
    ModuleType,
    Side,
)
from workout_core.models import (
    TARGET_FIELDS,
    MeasurableTarget,
    Session,
    SessionExercise,
    SessionModule,
    SetData,
    SetGroup,
    enum_dict_factory,
    new_id,
)


@dataclass
class SetGroupTemplate:
    """Planned scheme for a run of sets, e.g. ``3 x 8 @ 135``."""

    sets: int = DEFAULT_SETS_PER_EXERCISE
    id: str = field(default_factory=new_id)
    target_weight: Optional[float] = None
    target_reps: Optional[int] = None
    target_duration: Optional[int] = None
    target_hold_time: Optional[int] = None
    target_distance: Optional[float] = None
    rest_period: Optional[int] = None
    is_interval: bool = False
    work_duration: Optional[int] = None
    interval_rest_duration: Optional[int] = None
    is_amrap: bool = False
    amrap_time_limit: Optional[int] = None
    is_unilateral: bool = False
    track_rpe: bool = True
    measurables: List[MeasurableTarget] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=enum_dict_factory)

    @classmethod
    def from_dict(cls, data: dict) -> "SetGroupTemplate":
        values = dict(data)
        values["measurables"] = [
            MeasurableTarget.from_dict(m) for m in values.get("measurables", [])
        ]
        return cls(**values)


@dataclass
class ExerciseTemplate:
    name: str
    exercise_type: ExerciseType = ExerciseType.STRENGTH
    set_groups: List[SetGroupTemplate] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    superset_group_id: Optional[str] = None
    is_bodyweight: bool = False
    uses_box: bool = False
    uses_implement: bool = False
    cardio_tracking: CardioTracking = CardioTracking.TIME_ONLY
    distance_unit: DistanceUnit = DistanceUnit.METERS
    mobility_tracking: MobilityTracking = MobilityTracking.REPS_ONLY
    notes: Optional[str] = None
    primary_muscles: List[str] = field(default_factory=list)
    secondary_muscles: List[str] = field(default_factory=list)

    @property
    def total_sets(self) -> int:
        return sum(group.sets for group in self.set_groups)

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=enum_dict_factory)

    @classmethod
    def from_dict(cls, data: dict) -> "ExerciseTemplate":
        values = dict(data)
        values["exercise_type"] = ExerciseType(values["exercise_type"])
        values["cardio_tracking"] = CardioTracking(values["cardio_tracking"])
        values["distance_unit"] = DistanceUnit(values["distance_unit"])
        values["mobility_tracking"] = MobilityTracking(values["mobility_tracking"])
        values["set_groups"] = [
            SetGroupTemplate.from_dict(g) for g in values.get("set_groups", [])
        ]
        return cls(**values)

    @classmethod
    def from_session_exercise(cls, exercise: SessionExercise) -> "ExerciseTemplate":
        """Convert an exercise performed in a session back into a template."""

        groups = []
        for group in exercise.set_groups:
            first = group.sets[0] if group.sets else None
            targets = {}
            for name in TARGET_FIELDS:
                value = group.target(name)
                if value is None and first is not None:
                    value = first.target(name)
                    if value is None:
                        value = getattr(first, name)
                targets[f"target_{name}"] = value
            groups.append(
                SetGroupTemplate(
                    sets=group.logical_set_count,
                    rest_period=group.rest_period,
                    is_interval=group.is_interval,
                    work_duration=group.work_duration,
                    interval_rest_duration=group.interval_rest_duration,
                    is_amrap=group.is_amrap,
                    amrap_time_limit=group.amrap_time_limit,
                    is_unilateral=group.is_unilateral,
                    track_rpe=group.track_rpe,
                    measurables=copy.deepcopy(group.measurables),
                    **targets,
                )
            )
        return cls(
            name=exercise.name,
            exercise_type=exercise.exercise_type,
            set_groups=groups,
            superset_group_id=exercise.superset_group_id,
            is_bodyweight=exercise.is_bodyweight,
            uses_box=exercise.uses_box,
            uses_implement=exercise.uses_implement,
            cardio_tracking=exercise.cardio_tracking,
            distance_unit=exercise.distance_unit,
            mobility_tracking=exercise.mobility_tracking,
            notes=exercise.notes,
            primary_muscles=list(exercise.primary_muscles),
            secondary_muscles=list(exercise.secondary_muscles),
        )


@dataclass
class ModuleTemplate:
    name: str
    module_type: ModuleType = ModuleType.STRENGTH
    exercises: List[ExerciseTemplate] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=enum_dict_factory)

    @classmethod
    def from_dict(cls, data: dict) -> "ModuleTemplate":
        values = dict(data)
        values["module_type"] = ModuleType(values["module_type"])
        values["exercises"] = [
            ExerciseTemplate.from_dict(e) for e in values.get("exercises", [])
        ]
        return cls(**values)


@dataclass
class WorkoutTemplate:
    name: str
    modules: List[ModuleTemplate] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def module_by_id(self, module_id: str | None) -> ModuleTemplate | None:
        for module in self.modules:
            if module.id == module_id:
                return module
        return None

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=enum_dict_factory)

    @classmethod
    def from_dict(cls, data: dict) -> "WorkoutTemplate":
        values = dict(data)
        values["modules"] = [ModuleTemplate.from_dict(m) for m in values.get("modules", [])]
        return cls(**values)


# ----------------------------------------------------------------------
# Session construction
# ----------------------------------------------------------------------


def build_sets(
    template: SetGroupTemplate,
    count: int | None = None,
    rest_period: int | None = None,
) -> List[SetData]:
    """Return ``count`` fresh, incomplete sets planned at ``template``'s targets.

    Unilateral schemes produce a Left/Right pair per logical set.
    """

    count = template.sets if count is None else count
    targets = {f"target_{name}": getattr(template, f"target_{name}") for name in TARGET_FIELDS}
    if template.is_interval and targets["target_duration"] is None:
        targets["target_duration"] = template.work_duration
    sides = (Side.LEFT, Side.RIGHT) if template.is_unilateral else (None,)
    sets = []
    for number in range(1, count + 1):
        for side in sides:
            sets.append(SetData(set_number=number, side=side, rest_after=rest_period, **targets))
    return sets


def build_set_group(
    template: SetGroupTemplate, default_rest: int = DEFAULT_REST_DURATION
) -> SetGroup:
    """Build a live set group; ``rest_period`` stays ``None`` when unplanned."""

    rest = template.rest_period if template.rest_period is not None else default_rest
    group = SetGroup(
        sets=build_sets(template, rest_period=rest),
        source_set_group_id=template.id,
        rest_period=template.rest_period,
        is_interval=template.is_interval,
        work_duration=template.work_duration,
        interval_rest_duration=template.interval_rest_duration,
        is_amrap=template.is_amrap,
        amrap_time_limit=template.amrap_time_limit,
        is_unilateral=template.is_unilateral,
        track_rpe=template.track_rpe,
        measurables=copy.deepcopy(template.measurables),
    )
    for name in TARGET_FIELDS:
        setattr(group, f"target_{name}", getattr(template, f"target_{name}"))
    return group


def build_exercise(
    template: ExerciseTemplate,
    default_rest: int = DEFAULT_REST_DURATION,
    default_sets: int = DEFAULT_SETS_PER_EXERCISE,
) -> SessionExercise:
    group_templates = template.set_groups or [SetGroupTemplate(sets=default_sets)]
    return SessionExercise(
        name=template.name,
        exercise_type=template.exercise_type,
        set_groups=[build_set_group(g, default_rest) for g in group_templates],
        source_exercise_id=template.id,
        superset_group_id=template.superset_group_id,
        is_bodyweight=template.is_bodyweight,
        uses_box=template.uses_box,
        uses_implement=template.uses_implement,
        cardio_tracking=template.cardio_tracking,
        distance_unit=template.distance_unit,
        mobility_tracking=template.mobility_tracking,
        notes=template.notes,
        primary_muscles=list(template.primary_muscles),
        secondary_muscles=list(template.secondary_muscles),
    )


def build_session(
    template: WorkoutTemplate,
    default_rest: int = DEFAULT_REST_DURATION,
    default_sets: int = DEFAULT_SETS_PER_EXERCISE,
    started_at: float | None = None,
) -> Session:
    """Create a fresh :class:`Session` seeded from ``template``."""

    modules = [
        SessionModule(
            name=module.name,
            module_type=module.module_type,
            module_id=module.id,
            exercises=[build_exercise(ex, default_rest, default_sets) for ex in module.exercises],
        )
        for module in template.modules
    ]
    return Session(
        workout_name=template.name,
        workout_id=template.id,
        modules=modules,
        started_at=time.time() if started_at is None else started_at,
    )


def freestyle_session(name: str = "Freestyle", started_at: float | None = None) -> Session:
    """Create an empty freestyle session holding one module to add exercises to."""

    return Session(
        workout_name=name,
        modules=[SessionModule(name="Freestyle", module_type=ModuleType.STRENGTH)],
        is_freestyle=True,
        started_at=time.time() if started_at is None else started_at,
    )
