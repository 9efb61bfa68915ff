"""Differences between a finished session and the template it came from.

At the end of a workout the user can review these changes and commit any
subset of them back to the template.  Detection is deterministic and
applying a selection does not depend on the order it is given in.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from workout_core.enums import ChangeKind
from workout_core.models import TARGET_FIELDS, Session, SessionExercise
from workout_core.templates import ExerciseTemplate, ModuleTemplate, WorkoutTemplate
from workout_core.utils import format_number

SCHEME_FIELDS = tuple(f"target_{name}" for name in TARGET_FIELDS) + ("rest_period",)

FIELD_LABELS = {
    "target_weight": "weight",
    "target_reps": "reps",
    "target_duration": "duration",
    "target_hold_time": "hold time",
    "target_distance": "distance",
    "rest_period": "rest",
}

# Order in which selected changes are applied to a template
APPLY_ORDER = {
    ChangeKind.EXERCISE_SUBSTITUTED: 0,
    ChangeKind.SET_COUNT_CHANGED: 1,
    ChangeKind.SCHEME_CHANGED: 2,
    ChangeKind.EXERCISE_REMOVED: 3,
    ChangeKind.EXERCISE_REORDERED: 4,
    ChangeKind.EXERCISE_ADDED: 5,
}


def _display(value) -> str:
    if value is None:
        return "none"
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value)


@dataclass
class StructuralChange:
    """One reviewable difference between session and template.

    ``exercise_id`` is the template exercise id, except for added
    exercises where it is the id of the session exercise carried in
    ``exercise``.
    """

    kind: ChangeKind
    module_id: str
    module_name: str
    exercise_id: str
    exercise_name: str
    from_value: object = None
    to_value: object = None
    index: Optional[int] = None
    exercise: Optional[SessionExercise] = None
    set_group_index: Optional[int] = None
    field: Optional[str] = None

    @property
    def id(self) -> str:
        if self.kind is ChangeKind.SCHEME_CHANGED:
            return f"scheme-{self.exercise_id}-{self.set_group_index}-{self.field}"
        return f"{self.kind.value}-{self.exercise_id}"

    @property
    def description(self) -> str:
        kind = self.kind
        if kind is ChangeKind.SET_COUNT_CHANGED:
            direction = "Added" if self.to_value > self.from_value else "Removed"
            diff = abs(self.to_value - self.from_value)
            word = "set" if diff == 1 else "sets"
            return f"{direction} {diff} {word} for {self.exercise_name} ({self.from_value} → {self.to_value})"
        if kind is ChangeKind.EXERCISE_ADDED:
            return f"Added {self.exercise_name}"
        if kind is ChangeKind.EXERCISE_REMOVED:
            return f"Removed {self.exercise_name}"
        if kind is ChangeKind.EXERCISE_REORDERED:
            direction = "up" if self.to_value < self.from_value else "down"
            return f"Moved {self.exercise_name} {direction}"
        if kind is ChangeKind.EXERCISE_SUBSTITUTED:
            return f"{self.from_value} → {self.to_value}"
        if kind is ChangeKind.SCHEME_CHANGED:
            label = FIELD_LABELS.get(self.field, self.field)
            return (
                f"Changed {label} for {self.exercise_name} "
                f"({_display(self.from_value)} → {_display(self.to_value)})"
            )
        raise ValueError(f"Unknown change kind {kind!r}")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "module_id": self.module_id,
            "module_name": self.module_name,
            "exercise_id": self.exercise_id,
            "exercise_name": self.exercise_name,
            "from_value": self.from_value,
            "to_value": self.to_value,
            "index": self.index,
            "exercise": self.exercise.to_dict() if self.exercise is not None else None,
            "set_group_index": self.set_group_index,
            "field": self.field,
            "description": self.description,
        }


# ----------------------------------------------------------------------
# Detection
# ----------------------------------------------------------------------


def _module_changes(module, template_module: ModuleTemplate) -> List[StructuralChange]:
    changes: List[StructuralChange] = []
    originals = {ex.id: (i, ex) for i, ex in enumerate(template_module.exercises)}
    exercises = module.exercises

    def change(kind, exercise_id, name, **kwargs):
        changes.append(
            StructuralChange(
                kind=kind,
                module_id=template_module.id,
                module_name=template_module.name,
                exercise_id=exercise_id,
                exercise_name=name,
                **kwargs,
            )
        )

    matched = []
    for index, ex in enumerate(exercises):
        if ex.source_exercise_id is None or ex.is_ad_hoc or ex.source_exercise_id not in originals:
            change(ChangeKind.EXERCISE_ADDED, ex.id, ex.name, index=index, exercise=ex)
        else:
            matched.append((index, ex))

    present = {ex.source_exercise_id for _, ex in matched}
    for original in template_module.exercises:
        if original.id not in present:
            change(ChangeKind.EXERCISE_REMOVED, original.id, original.name)

    for _, ex in matched:
        original = originals[ex.source_exercise_id][1]
        if original.total_sets != ex.logical_set_count:
            change(
                ChangeKind.SET_COUNT_CHANGED,
                original.id,
                ex.name,
                from_value=original.total_sets,
                to_value=ex.logical_set_count,
            )

    for _, ex in matched:
        original = originals[ex.source_exercise_id][1]
        for group_index, template_group in enumerate(original.set_groups):
            live = [g for g in ex.set_groups if g.source_set_group_id == template_group.id]
            if not live:
                continue
            for name in SCHEME_FIELDS:
                before = getattr(template_group, name)
                after = getattr(live[-1], name)
                if before != after:
                    change(
                        ChangeKind.SCHEME_CHANGED,
                        original.id,
                        ex.name,
                        from_value=before,
                        to_value=after,
                        set_group_index=group_index,
                        field=name,
                    )

    for _, ex in matched:
        original = originals[ex.source_exercise_id][1]
        if ex.name != original.name:
            change(
                ChangeKind.EXERCISE_SUBSTITUTED,
                original.id,
                ex.name,
                from_value=original.name,
                to_value=ex.name,
            )

    for session_index, ex in matched:
        original_index = originals[ex.source_exercise_id][0]
        session_order = sum(1 for i, _ in matched if i < session_index)
        original_order = sum(1 for _, other in matched if originals[other.source_exercise_id][0] < original_index)
        if session_order != original_order:
            change(
                ChangeKind.EXERCISE_REORDERED,
                ex.source_exercise_id,
                ex.name,
                from_value=original_index,
                to_value=session_index,
                index=session_index,
            )
    return changes


def detect_changes(session: Session, template: WorkoutTemplate | None) -> List[StructuralChange]:
    """Return the structural differences between ``session`` and ``template``."""

    if session.is_freestyle or template is None:
        return []
    changes: List[StructuralChange] = []
    for module in session.modules:
        if module.skipped:
            continue
        template_module = template.module_by_id(module.module_id)
        if template_module is None:
            continue
        changes.extend(_module_changes(module, template_module))
    if changes:
        logging.info("Detected %d structural change(s) in %s", len(changes), session.workout_name)
    return changes


# ----------------------------------------------------------------------
# Application
# ----------------------------------------------------------------------


def _find_exercise(module: ModuleTemplate, exercise_id: str) -> ExerciseTemplate | None:
    for ex in module.exercises:
        if ex.id == exercise_id:
            return ex
    return None


def adjust_set_count(exercise: ExerciseTemplate, target: int) -> None:
    """Grow the last set group or trim groups from the end to hit ``target``."""

    current = exercise.total_sets
    if current == target or not exercise.set_groups:
        return
    if target > current:
        exercise.set_groups[-1].sets += target - current
        return
    to_remove = current - target
    while to_remove > 0 and exercise.set_groups:
        last = exercise.set_groups[-1]
        if last.sets <= to_remove:
            to_remove -= last.sets
            exercise.set_groups.pop()
        else:
            last.sets -= to_remove
            to_remove = 0


def _apply(module: ModuleTemplate, change: StructuralChange) -> None:
    kind = change.kind
    if kind is ChangeKind.EXERCISE_ADDED:
        new_exercise = ExerciseTemplate.from_session_exercise(change.exercise)
        index = min(change.index if change.index is not None else len(module.exercises), len(module.exercises))
        module.exercises.insert(index, new_exercise)
        return
    if kind is ChangeKind.EXERCISE_REMOVED:
        module.exercises = [ex for ex in module.exercises if ex.id != change.exercise_id]
        return

    exercise = _find_exercise(module, change.exercise_id)
    if exercise is None:
        logging.debug("Change %s no longer matches the template", change.id)
        return
    if kind is ChangeKind.SET_COUNT_CHANGED:
        adjust_set_count(exercise, change.to_value)
    elif kind is ChangeKind.SCHEME_CHANGED:
        if change.set_group_index is not None and change.set_group_index < len(exercise.set_groups):
            setattr(exercise.set_groups[change.set_group_index], change.field, change.to_value)
    elif kind is ChangeKind.EXERCISE_SUBSTITUTED:
        exercise.name = change.to_value
    elif kind is ChangeKind.EXERCISE_REORDERED:
        module.exercises.remove(exercise)
        module.exercises.insert(min(change.to_value, len(module.exercises)), exercise)
    else:
        raise ValueError(f"Unknown change kind {kind!r}")


def _apply_key(change: StructuralChange):
    position = change.index if change.index is not None else -1
    return (APPLY_ORDER[change.kind], position, change.id)


def apply_changes(template: WorkoutTemplate, selected: Iterable[StructuralChange]) -> WorkoutTemplate:
    """Return a copy of ``template`` with the ``selected`` changes applied."""

    updated = copy.deepcopy(template)
    ordered = sorted(selected, key=_apply_key)
    for change in ordered:
        module = updated.module_by_id(change.module_id)
        if module is None:
            logging.debug("Change %s refers to an unknown module", change.id)
            continue
        _apply(module, change)
    if ordered:
        logging.info("Applied %d structural change(s) to %s", len(ordered), template.name)
    return updated
