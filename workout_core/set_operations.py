"""Mutations of a live session addressed by index.

Every function checks its indices against the current structure and does
nothing (returning ``False`` or ``None``) when one of them is stale.  Callers
are expected to re-fetch indices after a structural edit and to refresh
their navigator afterwards.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from workout_core import DEFAULT_REST_DURATION, INTENSITY_RANGE, RPE_RANGE
from workout_core.enums import (
    CardioTracking,
    DistanceUnit,
    ExerciseType,
    MobilityTracking,
    Side,
)
from workout_core.models import (
    INT_FIELDS,
    TARGET_FIELDS,
    Session,
    SessionExercise,
    SetData,
    SetGroup,
    SetLocation,
    new_id,
)
from workout_core.templates import SetGroupTemplate, build_set_group
from workout_core.utils import clamp, coerce_measurable, parse_float, parse_int


@dataclass
class ExerciseScheme(SetGroupTemplate):
    """Edited scheme for an exercise.

    ``sets`` is the new total number of logical sets, completed ones
    included.  Exercise-level fields left as ``None`` keep their current
    value.
    """

    exercise_type: Optional[ExerciseType] = None
    cardio_tracking: Optional[CardioTracking] = None
    mobility_tracking: Optional[MobilityTracking] = None
    distance_unit: Optional[DistanceUnit] = None


# ----------------------------------------------------------------------
# Lookups
# ----------------------------------------------------------------------


def exercise_at(session: Session, module_index: int, exercise_index: int) -> SessionExercise | None:
    if not 0 <= module_index < len(session.modules):
        logging.debug("Ignoring stale module index %s", module_index)
        return None
    exercises = session.modules[module_index].exercises
    if not 0 <= exercise_index < len(exercises):
        logging.debug("Ignoring stale exercise index %s/%s", module_index, exercise_index)
        return None
    return exercises[exercise_index]


def resolve(session: Session, location: SetLocation) -> Tuple[SessionExercise, SetGroup, SetData] | None:
    """Return the exercise, set group and set addressed by ``location``."""

    exercise = exercise_at(session, location.module_index, location.exercise_index)
    if exercise is None:
        return None
    if not 0 <= location.set_group_index < len(exercise.set_groups):
        logging.debug("Ignoring stale set group reference %s", location)
        return None
    group = exercise.set_groups[location.set_group_index]
    if not 0 <= location.set_index < len(group.sets):
        logging.debug("Ignoring stale set reference %s", location)
        return None
    return exercise, group, group.sets[location.set_index]


# ----------------------------------------------------------------------
# Logging sets
# ----------------------------------------------------------------------


def _parse_field(name: str, raw):
    if name == "band_color":
        if raw is None:
            return None
        text = str(raw).strip()
        return text or None
    value = parse_int(raw) if name in INT_FIELDS else parse_float(raw)
    if name == "intensity":
        value = clamp(value, INTENSITY_RANGE)
    return value


def log_set(
    session: Session,
    location: SetLocation,
    *,
    rpe=None,
    measurable_values: Dict[str, object] | None = None,
    **values,
) -> bool:
    """Store the supplied values on a set and mark it completed.

    Only fields relevant to the exercise type are written.  A field that is
    missing or does not parse keeps whatever the set already holds, except
    ``rpe`` which is replaced on every call (``None`` clears it).
    """

    found = resolve(session, location)
    if found is None:
        return False
    exercise, _group, set_data = found
    relevant = exercise.loggable_fields
    for name, raw in values.items():
        if name not in relevant:
            continue
        value = _parse_field(name, raw)
        if value is not None:
            setattr(set_data, name, value)
    set_data.rpe = clamp(parse_int(rpe), RPE_RANGE)
    for key, raw in (measurable_values or {}).items():
        value = coerce_measurable(raw)
        if value is not None:
            set_data.measurable_values[key] = value
    set_data.completed = True
    return True


def uncheck_set(session: Session, location: SetLocation) -> bool:
    """Mark a set incomplete again, keeping its values for re-editing."""

    found = resolve(session, location)
    if found is None:
        return False
    found[2].completed = False
    return True


# ----------------------------------------------------------------------
# Adding and deleting sets
# ----------------------------------------------------------------------


def _next_set_from(previous: SetData, group: SetGroup, set_number: int) -> SetData:
    targets = {}
    for name in TARGET_FIELDS:
        value = getattr(previous, name)
        if value is None:
            value = previous.target(name)
        if value is None:
            value = group.target(name)
        targets[f"target_{name}"] = value
    return SetData(
        set_number=set_number,
        side=previous.side,
        rest_after=previous.rest_after,
        **targets,
    )


def add_set(
    session: Session,
    module_index: int,
    exercise_index: int,
    rest_period: int = DEFAULT_REST_DURATION,
) -> bool:
    """Append a set (or a Left/Right pair) to the exercise's last set group."""

    exercise = exercise_at(session, module_index, exercise_index)
    if exercise is None:
        return False
    if not exercise.set_groups:
        exercise.set_groups.append(
            SetGroup(sets=[SetData(set_number=1, rest_after=rest_period)], rest_period=rest_period)
        )
        return True
    group = exercise.set_groups[-1]
    number = group.logical_set_count + 1
    if not group.sets:
        sides = (Side.LEFT, Side.RIGHT) if group.is_unilateral else (None,)
        for side in sides:
            group.sets.append(
                _next_set_from(SetData(set_number=number, side=side), group, number)
            )
    elif group.is_unilateral:
        for side in (Side.LEFT, Side.RIGHT):
            previous = next((s for s in reversed(group.sets) if s.side is side), group.sets[-1])
            new_set = _next_set_from(previous, group, number)
            new_set.side = side
            group.sets.append(new_set)
    else:
        group.sets.append(_next_set_from(group.sets[-1], group, number))
    group.renumber()
    return True


def delete_set(session: Session, location: SetLocation) -> bool:
    """Remove a set, or the whole pair in a unilateral group.

    Refused when the exercise would be left without any set.
    """

    found = resolve(session, location)
    if found is None:
        return False
    exercise, group, set_data = found
    if exercise.logical_set_count <= 1:
        logging.debug("Refusing to delete the last set of %s", exercise.name)
        return False
    if group.is_unilateral and set_data.side is not None:
        group.sets = [s for s in group.sets if s.set_number != set_data.set_number]
    else:
        del group.sets[location.set_index]
    if not group.sets:
        exercise.set_groups.remove(group)
    else:
        group.renumber()
    return True


# ----------------------------------------------------------------------
# Exercise level edits
# ----------------------------------------------------------------------


def add_exercise(
    session: Session,
    module_index: int,
    name: str,
    exercise_type: ExerciseType = ExerciseType.STRENGTH,
    cardio_tracking: CardioTracking = CardioTracking.TIME_ONLY,
    distance_unit: DistanceUnit = DistanceUnit.METERS,
    rest_period: int = DEFAULT_REST_DURATION,
) -> SessionExercise | None:
    """Append an ad-hoc exercise holding one incomplete set."""

    if not 0 <= module_index < len(session.modules):
        logging.debug("Ignoring stale module index %s", module_index)
        return None
    exercise = SessionExercise(
        name=name.strip(),
        exercise_type=exercise_type,
        cardio_tracking=cardio_tracking,
        distance_unit=distance_unit,
        set_groups=[
            SetGroup(sets=[SetData(set_number=1, rest_after=rest_period)], rest_period=rest_period)
        ],
        is_ad_hoc=True,
    )
    session.modules[module_index].exercises.append(exercise)
    return exercise


def remove_exercise(session: Session, module_index: int, exercise_index: int) -> SessionExercise | None:
    exercise = exercise_at(session, module_index, exercise_index)
    if exercise is None:
        return None
    del session.modules[module_index].exercises[exercise_index]
    return exercise


def reorder_exercise(session: Session, module_index: int, from_index: int, to_index: int) -> bool:
    """Move an exercise to ``to_index`` within its module."""

    if exercise_at(session, module_index, from_index) is None:
        return False
    exercises = session.modules[module_index].exercises
    if not 0 <= to_index < len(exercises) or from_index == to_index:
        return False
    exercises.insert(to_index, exercises.pop(from_index))
    return True


def substitute_exercise(session: Session, module_index: int, exercise_index: int, new_name: str) -> bool:
    """Swap the movement performed, remembering what the plan called for."""

    exercise = exercise_at(session, module_index, exercise_index)
    new_name = (new_name or "").strip()
    if exercise is None or not new_name or new_name == exercise.name:
        return False
    if not exercise.is_substitution:
        exercise.original_name = exercise.name
        exercise.is_substitution = True
    elif new_name == exercise.original_name:
        exercise.original_name = None
        exercise.is_substitution = False
    exercise.name = new_name
    return True


def _preserved_groups(exercise: SessionExercise, rest_period: int | None) -> list[SetGroup]:
    """One group per original group holding its completed sets.

    The partner of a half-logged unilateral pair is kept with it, and each
    group keeps the flags of the group it came from.
    """

    preserved = []
    for group in exercise.set_groups:
        if group.is_unilateral:
            logged = {s.set_number for s in group.sets if s.completed}
            sets = [s for s in group.sets if s.set_number in logged]
        else:
            sets = [s for s in group.sets if s.completed]
        if not sets:
            continue
        kept = dataclasses.replace(
            group,
            sets=sets,
            id=new_id(),
            source_set_group_id=None,
            rest_period=rest_period,
        )
        kept.renumber()
        preserved.append(kept)
    return preserved


def update_exercise_scheme(
    session: Session,
    module_index: int,
    exercise_index: int,
    scheme: ExerciseScheme,
    default_rest: int = DEFAULT_REST_DURATION,
) -> bool:
    """Rebuild an exercise's set groups from ``scheme``.

    Completed sets are kept untouched in leading groups, one per original
    group; only the remaining sets are regenerated from the new targets.
    Without a rest period in ``scheme`` the exercise keeps its current one.
    A non-positive set count leaves the exercise as it is.
    """

    exercise = exercise_at(session, module_index, exercise_index)
    if exercise is None:
        return False
    if scheme.sets <= 0:
        logging.debug("Ignoring scheme with %s sets for %s", scheme.sets, exercise.name)
        return False

    for attr in ("exercise_type", "cardio_tracking", "mobility_tracking", "distance_unit"):
        value = getattr(scheme, attr)
        if value is not None:
            setattr(exercise, attr, value)

    rest = scheme.rest_period
    if rest is None and exercise.set_groups:
        rest = exercise.set_groups[-1].rest_period

    source_id = next(
        (g.source_set_group_id for g in exercise.set_groups if g.source_set_group_id), None
    )
    groups = _preserved_groups(exercise, rest)
    remaining = scheme.sets - sum(g.logical_set_count for g in groups)
    if remaining > 0:
        relevant = set(exercise.loggable_fields)
        cleared = {f"target_{n}": None for n in TARGET_FIELDS if n not in relevant}
        regenerated = build_set_group(
            dataclasses.replace(scheme, sets=remaining, rest_period=rest, **cleared),
            default_rest,
        )
        regenerated.source_set_group_id = source_id
        groups.append(regenerated)
    exercise.set_groups = groups
    return True
