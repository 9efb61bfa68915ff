"""Cursor over a live :class:`~workout_core.models.Session`.

The navigator is the single source of truth for "where the user is".  It
holds four indices (module, exercise, set group, set) and implements the
advancement rules, including superset interleaving.  Once the last exercise
of the last module has been left the cursor enters the terminal state where
``module_index == len(session.modules)``.

Derived views (flattened sets of the current exercise, superset membership)
are cached.  Call :meth:`SessionNavigator.refresh` after mutating the
session's structure from outside the navigator.
"""

from __future__ import annotations

import logging
from typing import List

from workout_core import superset
from workout_core.enums import NavigationEvent, Side
from workout_core.models import FlatSet, Session, SessionExercise, SessionModule, SetData, SetGroup, SetLocation


def flatten_sets(exercise: SessionExercise) -> List[FlatSet]:
    """Return every set of ``exercise`` with a running display number.

    A unilateral Left/Right pair shares one number; the counter moves on
    after the right side.
    """

    result: List[FlatSet] = []
    number = 1
    for group_index, group in enumerate(exercise.set_groups):
        for set_index, set_data in enumerate(group.sets):
            result.append(FlatSet(group_index, set_index, number, set_data, group))
            if set_data.side is not Side.LEFT:
                number += 1
    return result


def first_incomplete(exercise: SessionExercise) -> tuple[int, int] | None:
    """Return ``(set_group_index, set_index)`` of the first incomplete set."""
    for group_index, group in enumerate(exercise.set_groups):
        for set_index, set_data in enumerate(group.sets):
            if not set_data.completed:
                return group_index, set_index
    return None


def _clamp_index(index: int, length: int) -> int:
    return max(0, min(index, length - 1))


class SessionNavigator:
    """Track and move the current position within a session."""

    def __init__(
        self,
        session: Session,
        module_index: int = 0,
        exercise_index: int = 0,
        set_group_index: int = 0,
        set_index: int = 0,
    ):
        self.session = session
        self.module_index = module_index
        self.exercise_index = exercise_index
        self.set_group_index = set_group_index
        self.set_index = set_index
        self._flat_sets: List[FlatSet] = []
        self._superset_indices: List[int] = []
        self.refresh()

    # ------------------------------------------------------------------
    # Current position
    # ------------------------------------------------------------------

    @property
    def location(self) -> SetLocation:
        return SetLocation(self.module_index, self.exercise_index, self.set_group_index, self.set_index)

    @property
    def is_workout_complete(self) -> bool:
        return self.module_index >= len(self.session.modules)

    @property
    def current_module(self) -> SessionModule | None:
        if 0 <= self.module_index < len(self.session.modules):
            return self.session.modules[self.module_index]
        return None

    @property
    def current_exercise(self) -> SessionExercise | None:
        module = self.current_module
        if module is None or not 0 <= self.exercise_index < len(module.exercises):
            return None
        return module.exercises[self.exercise_index]

    @property
    def current_set_group(self) -> SetGroup | None:
        exercise = self.current_exercise
        if exercise is None or not 0 <= self.set_group_index < len(exercise.set_groups):
            return None
        return exercise.set_groups[self.set_group_index]

    @property
    def current_set(self) -> SetData | None:
        group = self.current_set_group
        if group is None or not 0 <= self.set_index < len(group.sets):
            return None
        return group.sets[self.set_index]

    @property
    def is_last_set(self) -> bool:
        """Return ``True`` when the cursor sits on the final set of the workout."""

        modules = self.session.modules
        if not modules or self.module_index != len(modules) - 1:
            return False
        exercises = modules[self.module_index].exercises
        if not exercises or self.exercise_index != len(exercises) - 1:
            return False
        groups = exercises[self.exercise_index].set_groups
        if not groups or self.set_group_index != len(groups) - 1:
            return False
        return self.set_index == len(groups[self.set_group_index].sets) - 1

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Re-clamp the cursor and rebuild cached views after a structural edit."""

        modules = self.session.modules
        if self.module_index >= len(modules):
            self.module_index = len(modules)
            self.exercise_index = self.set_group_index = self.set_index = 0
        else:
            self.module_index = max(0, self.module_index)
            exercises = modules[self.module_index].exercises
            self.exercise_index = _clamp_index(self.exercise_index, len(exercises))
            self._clamp_set_position()

        exercise = self.current_exercise
        self._flat_sets = flatten_sets(exercise) if exercise is not None else []
        if exercise is not None and exercise.superset_group_id is not None:
            self._superset_indices = superset.indices(
                self.current_module.exercises, exercise.superset_group_id
            )
        else:
            self._superset_indices = []

    @property
    def flat_sets(self) -> List[FlatSet]:
        return self._flat_sets

    @property
    def superset_indices(self) -> List[int]:
        return self._superset_indices

    @property
    def is_in_superset(self) -> bool:
        exercise = self.current_exercise
        return exercise is not None and exercise.superset_group_id is not None

    @property
    def superset_exercises(self) -> List[SessionExercise] | None:
        if not self.is_in_superset:
            return None
        exercises = self.current_module.exercises
        return [exercises[i] for i in self._superset_indices]

    @property
    def superset_position(self) -> int | None:
        """1-based position of the current exercise in its superset."""
        if self.exercise_index not in self._superset_indices:
            return None
        return self._superset_indices.index(self.exercise_index) + 1

    @property
    def superset_total(self) -> int | None:
        members = self.superset_exercises
        return len(members) if members is not None else None

    @property
    def should_rest_after_superset(self) -> bool:
        """``True`` when the current exercise closes a superset round."""
        return bool(self._superset_indices) and self._superset_indices[-1] == self.exercise_index

    @property
    def overall_progress(self) -> float:
        """Fraction of all sets positioned before the cursor."""

        modules = self.session.modules
        total = sum(len(ex.all_sets) for module in modules for ex in module.exercises)
        if total == 0:
            return 0.0
        if self.is_workout_complete:
            return 1.0
        done = sum(
            len(ex.all_sets) for module in modules[: self.module_index] for ex in module.exercises
        )
        module = modules[self.module_index]
        done += sum(len(ex.all_sets) for ex in module.exercises[: self.exercise_index])
        exercise = self.current_exercise
        if exercise is not None:
            done += sum(len(g.sets) for g in exercise.set_groups[: self.set_group_index])
            done += self.set_index
        return done / total

    def first_incomplete_location(
        self, module_index: int | None = None, exercise_index: int | None = None
    ) -> SetLocation | None:
        """Return the first incomplete set of an exercise (the current one by default)."""

        module_index = self.module_index if module_index is None else module_index
        exercise_index = self.exercise_index if exercise_index is None else exercise_index
        try:
            exercise = self.session.modules[module_index].exercises[exercise_index]
        except IndexError:
            return None
        found = first_incomplete(exercise)
        if found is None:
            return None
        return SetLocation(module_index, exercise_index, *found)

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------

    def _reset_set_position(self) -> None:
        self.set_group_index = 0
        self.set_index = 0

    def _clamp_set_position(self) -> None:
        exercise = self.current_exercise
        if exercise is None or not exercise.set_groups:
            self._reset_set_position()
            return
        self.set_group_index = _clamp_index(self.set_group_index, len(exercise.set_groups))
        group = exercise.set_groups[self.set_group_index]
        self.set_index = _clamp_index(self.set_index, len(group.sets))

    def _next_module(self) -> NavigationEvent:
        modules = self.session.modules
        previous = modules[self.module_index]
        if self.module_index < len(modules) - 1:
            self.module_index += 1
            self.exercise_index = 0
            self._reset_set_position()
            logging.info(
                "Module transition: %s -> %s", previous.name, modules[self.module_index].name
            )
            self.refresh()
            return NavigationEvent.MODULE_TRANSITION
        self.module_index = len(modules)
        self.exercise_index = 0
        self._reset_set_position()
        logging.info("Workout complete: %s", self.session.workout_name)
        self.refresh()
        return NavigationEvent.WORKOUT_COMPLETE

    def advance_to_next_exercise(self) -> NavigationEvent:
        """Move to the next exercise, honouring superset order.

        Returns the kind of movement that took place.  In the terminal state
        the cursor stays put and ``NavigationEvent.NONE`` is returned.
        """

        if self.is_workout_complete:
            return NavigationEvent.NONE
        module = self.current_module
        members = self._superset_indices
        if self.exercise_index in members:
            position = members.index(self.exercise_index)
            if position < len(members) - 1:
                self.exercise_index = members[position + 1]
                self._reset_set_position()
                self.refresh()
                return NavigationEvent.SUPERSET
        if self.exercise_index < len(module.exercises) - 1:
            self.exercise_index += 1
            self._reset_set_position()
            self.refresh()
            return NavigationEvent.EXERCISE
        return self._next_module()

    def skip_exercise(self) -> NavigationEvent:
        """Leave the current exercise regardless of incomplete sets."""

        exercise = self.current_exercise
        if exercise is not None:
            logging.info("Skipping exercise %s", exercise.name)
        return self.advance_to_next_exercise()

    def advance_to_next_set(self) -> NavigationEvent:
        """Move to the next set, cycling supersets ``A1 -> B1 -> A2 -> B2``."""

        if self.is_workout_complete:
            return NavigationEvent.NONE
        exercise = self.current_exercise
        group = self.current_set_group
        if exercise is None or group is None:
            return self.advance_to_next_exercise()

        members = self._superset_indices
        if self.exercise_index in members:
            exercises = self.current_module.exercises
            position = members.index(self.exercise_index)
            if position < len(members) - 1:
                self.exercise_index = members[position + 1]
                self._clamp_set_position()
                self.refresh()
                return NavigationEvent.SUPERSET
            if self.set_index < len(group.sets) - 1:
                self.exercise_index = members[0]
                self.set_index += 1
                self._clamp_set_position()
                self.refresh()
                return NavigationEvent.SUPERSET
            if self.set_group_index < len(exercise.set_groups) - 1:
                self.exercise_index = members[0]
                self.set_group_index += 1
                self.set_index = 0
                self._clamp_set_position()
                self.refresh()
                return NavigationEvent.SUPERSET
            after = max(members)
            if after < len(exercises) - 1:
                self.exercise_index = after + 1
                self._reset_set_position()
                self.refresh()
                return NavigationEvent.EXERCISE
            return self._next_module()

        if self.set_index < len(group.sets) - 1:
            self.set_index += 1
            self.refresh()
            return NavigationEvent.SET
        if self.set_group_index < len(exercise.set_groups) - 1:
            self.set_group_index += 1
            self.set_index = 0
            self.refresh()
            return NavigationEvent.SET
        return self.advance_to_next_exercise()

    def go_to_previous_exercise(self) -> bool:
        """Step back one exercise; returns ``False`` when already at the start."""

        modules = self.session.modules
        if not modules:
            return False
        if self.is_workout_complete:
            self.module_index = len(modules) - 1
            self.exercise_index = max(0, len(modules[-1].exercises) - 1)
            self._reset_set_position()
            self.refresh()
            return True
        members = self._superset_indices
        if self.exercise_index in members:
            position = members.index(self.exercise_index)
            if position > 0:
                self.exercise_index = members[position - 1]
                self._reset_set_position()
                self.refresh()
                return True
        if self.exercise_index > 0:
            self.exercise_index -= 1
        elif self.module_index > 0:
            self.module_index -= 1
            self.exercise_index = max(0, len(modules[self.module_index].exercises) - 1)
        else:
            return False
        self._reset_set_position()
        self.refresh()
        return True

    def move_to_exercise(self, index: int) -> bool:
        """Jump to exercise ``index`` (clamped) within the current module."""

        module = self.current_module
        if module is None or not module.exercises:
            return False
        self.exercise_index = _clamp_index(index, len(module.exercises))
        self._reset_set_position()
        self.refresh()
        return True

    def skip_module(self) -> str | None:
        """Mark the current module as skipped and move past it.

        Returns the id of the skipped module, or ``None`` in the terminal
        state.
        """

        module = self.current_module
        if module is None:
            return None
        module.skipped = True
        skipped_id = module.module_id or module.id
        if skipped_id not in self.session.skipped_module_ids:
            self.session.skipped_module_ids.append(skipped_id)
        logging.info("Skipping module %s", module.name)
        self._next_module()
        return skipped_id

    def set_position(
        self,
        module_index: int | None = None,
        exercise_index: int | None = None,
        set_group_index: int | None = None,
        set_index: int | None = None,
    ) -> None:
        """Assign the cursor directly; every supplied index is clamped."""

        modules = self.session.modules
        if module_index is not None and modules:
            self.module_index = _clamp_index(module_index, len(modules))
        module = self.current_module
        if exercise_index is not None and module is not None and module.exercises:
            self.exercise_index = _clamp_index(exercise_index, len(module.exercises))
        exercise = self.current_exercise
        if set_group_index is not None and exercise is not None and exercise.set_groups:
            self.set_group_index = _clamp_index(set_group_index, len(exercise.set_groups))
        group = self.current_set_group
        if set_index is not None and group is not None and group.sets:
            self.set_index = _clamp_index(set_index, len(group.sets))
        self.refresh()

    def jump_to_set(self, set_group_index: int, set_index: int) -> None:
        if self.current_exercise is None:
            return
        self.set_position(set_group_index=set_group_index, set_index=set_index)

    def reset(self) -> None:
        self.module_index = self.exercise_index = 0
        self._reset_set_position()
        self.refresh()

    # ------------------------------------------------------------------
    # Keeping the cursor on the same exercise after structural edits
    # ------------------------------------------------------------------

    def reposition_after_reorder(self, module_index: int, from_index: int, to_index: int) -> None:
        if module_index == self.module_index:
            current = self.exercise_index
            if current == from_index:
                current = to_index
            elif from_index < current <= to_index:
                current -= 1
            elif to_index <= current < from_index:
                current += 1
            self.exercise_index = current
        self.refresh()

    def reposition_after_removal(self, module_index: int, exercise_index: int) -> None:
        if module_index == self.module_index:
            if exercise_index < self.exercise_index:
                self.exercise_index -= 1
            elif exercise_index == self.exercise_index:
                self._reset_set_position()
        self.refresh()
