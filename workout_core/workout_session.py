from __future__ import annotations

import functools
import json
import logging
import time
from pathlib import Path

from workout_core import FEELING_RANGE, settings
from workout_core.enums import ExerciseType, NavigationEvent, ProgressionRecommendation
from workout_core.models import ProgressionSuggestion, Session, SessionExercise, SetLocation
from workout_core.navigator import SessionNavigator, flatten_sets
from workout_core import set_operations
from workout_core.prefill import Prefill, resolve_prefill
from workout_core.structural_changes import StructuralChange, apply_changes, detect_changes
from workout_core.templates import WorkoutTemplate, build_session, freestyle_session
from workout_core.timers import ExerciseTimer, RestTimer
from workout_core.utils import clamp, format_duration, parse_int


class NoActiveSessionError(RuntimeError):
    """Raised when an operation needs a session that is finished or cancelled."""


def _mutation(method):
    """Run ``method`` only while the session is active.

    Afterwards the navigator's cached views are refreshed and the recovery
    files rewritten.  Without an active session the call returns ``None``.
    """

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if self.active_session is None:
            logging.debug("Ignoring %s without an active session", method.__name__)
            return None
        result = method(self, *args, **kwargs)
        self.navigator.refresh()
        self.save_recovery_state()
        return result

    return wrapper


def _as_location(location) -> SetLocation:
    return location if isinstance(location, SetLocation) else SetLocation(*location)


class WorkoutSession:
    """Controller owning one active workout.

    Wraps the :class:`Session` aggregate together with its navigator, the
    rest and exercise timers and a cache of last-session data.  All
    changes to the session go through this object; create it with
    :meth:`start` or :meth:`freestyle` and end it with :meth:`finish` or
    :meth:`cancel`.
    """

    def __init__(
        self,
        session: Session,
        template: WorkoutTemplate | None = None,
        last_session_lookup=None,
        rest_duration: int | None = None,
        recovery_base: Path | str | None = None,
    ):
        self.session = session
        self.template = template
        self.navigator = SessionNavigator(session)
        self.rest_timer = RestTimer()
        self.exercise_timer = ExerciseTimer()
        self.last_session_lookup = last_session_lookup
        self._last_session_cache: dict[str, SessionExercise | None] = {}
        if rest_duration is None:
            rest_duration = settings.get_value("default_rest_duration")
        self.rest_duration = rest_duration
        self.recovery_base = Path(recovery_base) if recovery_base is not None else None
        self.finished = False
        self.cancelled = False

    @classmethod
    def start(cls, template: WorkoutTemplate, **kwargs) -> "WorkoutSession":
        """Begin a session planned by ``template``."""

        rest = kwargs.get("rest_duration")
        if rest is None:
            rest = settings.get_value("default_rest_duration")
        session = build_session(
            template,
            default_rest=rest,
            default_sets=settings.get_value("default_sets_per_exercise"),
        )
        obj = cls(session, template=template, **kwargs)
        logging.info("Started session %s", session.workout_name)
        obj.save_recovery_state()
        return obj

    @classmethod
    def freestyle(cls, name: str = "Freestyle", **kwargs) -> "WorkoutSession":
        """Begin an unplanned session that exercises are added to on the fly."""

        obj = cls(freestyle_session(name), **kwargs)
        logging.info("Started freestyle session %s", name)
        obj.save_recovery_state()
        return obj

    # ------------------------------------------------------------------
    # Session access
    # ------------------------------------------------------------------

    @property
    def active_session(self) -> Session | None:
        if self.finished or self.cancelled:
            return None
        return self.session

    def require_session(self) -> Session:
        session = self.active_session
        if session is None:
            raise NoActiveSessionError("No active workout session")
        return session

    @property
    def current_module(self):
        return self.navigator.current_module if self.active_session else None

    @property
    def current_exercise(self):
        return self.navigator.current_exercise if self.active_session else None

    @property
    def current_set_group(self):
        return self.navigator.current_set_group if self.active_session else None

    @property
    def current_set(self):
        return self.navigator.current_set if self.active_session else None

    @property
    def is_workout_complete(self) -> bool:
        return self.navigator.is_workout_complete

    @property
    def flat_sets(self):
        return self.navigator.flat_sets

    @property
    def overall_progress(self) -> float:
        return self.navigator.overall_progress

    @property
    def elapsed_seconds(self) -> int:
        end = self.session.ended_at or time.time()
        return max(0, int(end - self.session.started_at))

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @_mutation
    def advance_to_next_exercise(self) -> NavigationEvent:
        return self.navigator.advance_to_next_exercise()

    @_mutation
    def advance_to_next_set(self) -> NavigationEvent:
        return self.navigator.advance_to_next_set()

    @_mutation
    def skip_exercise(self) -> NavigationEvent:
        return self.navigator.skip_exercise()

    @_mutation
    def skip_module(self) -> str | None:
        return self.navigator.skip_module()

    @_mutation
    def go_to_previous_exercise(self) -> bool:
        return self.navigator.go_to_previous_exercise()

    @_mutation
    def move_to_exercise(self, index: int) -> bool:
        return self.navigator.move_to_exercise(index)

    @_mutation
    def set_position(self, module_index=None, exercise_index=None, set_group_index=None, set_index=None) -> None:
        self.navigator.set_position(module_index, exercise_index, set_group_index, set_index)

    @_mutation
    def jump_to_set(self, set_group_index: int, set_index: int) -> None:
        self.navigator.jump_to_set(set_group_index, set_index)

    # ------------------------------------------------------------------
    # Set mutations
    # ------------------------------------------------------------------

    @_mutation
    def log_set(self, location, start_rest: bool = True, **values) -> bool:
        """Log the set at ``location`` and start resting if appropriate.

        The rest timer starts only when the exercise is not a recovery
        activity and still has an incomplete set once this log is applied.
        """

        location = _as_location(location)
        if not set_operations.log_set(self.session, location, **values):
            return False
        exercise, group, set_data = set_operations.resolve(self.session, location)
        if self.exercise_timer.set_id == set_data.id:
            self.exercise_timer.stop()
        if (
            start_rest
            and settings.get_value("auto_start_rest_timer")
            and exercise.exercise_type is not ExerciseType.RECOVERY
            and exercise.has_incomplete_sets
        ):
            rest = group.rest_period if group.rest_period is not None else self.rest_duration
            self.rest_timer.start(rest)
        return True

    def log_current_set(self, start_rest: bool = True, **values) -> bool:
        return self.log_set(self.navigator.location, start_rest=start_rest, **values)

    @_mutation
    def uncheck_set(self, location) -> bool:
        return set_operations.uncheck_set(self.session, _as_location(location))

    @_mutation
    def add_set(self, module_index: int, exercise_index: int) -> bool:
        return set_operations.add_set(self.session, module_index, exercise_index, self.rest_duration)

    @_mutation
    def delete_set(self, location) -> bool:
        return set_operations.delete_set(self.session, _as_location(location))

    @_mutation
    def add_exercise(self, module_index: int, name: str, *args, **kwargs) -> SessionExercise | None:
        kwargs.setdefault("rest_period", self.rest_duration)
        exercise = set_operations.add_exercise(self.session, module_index, name, *args, **kwargs)
        if exercise is not None:
            logging.info("Added exercise %s", exercise.name)
        return exercise

    @_mutation
    def remove_exercise(self, module_index: int, exercise_index: int) -> SessionExercise | None:
        removed = set_operations.remove_exercise(self.session, module_index, exercise_index)
        if removed is not None:
            logging.info("Removed exercise %s", removed.name)
            self.navigator.reposition_after_removal(module_index, exercise_index)
        return removed

    @_mutation
    def reorder_exercise(self, module_index: int, from_index: int, to_index: int) -> bool:
        moved = set_operations.reorder_exercise(self.session, module_index, from_index, to_index)
        if moved:
            self.navigator.reposition_after_reorder(module_index, from_index, to_index)
        return moved

    @_mutation
    def update_exercise_scheme(
        self, module_index: int, exercise_index: int, scheme: set_operations.ExerciseScheme
    ) -> bool:
        """Rebuild an exercise's sets and put the cursor on its first open set."""

        if not set_operations.update_exercise_scheme(
            self.session, module_index, exercise_index, scheme, self.rest_duration
        ):
            return False
        nav = self.navigator
        if (nav.module_index, nav.exercise_index) == (module_index, exercise_index):
            found = nav.first_incomplete_location()
            if found is None:
                nav.jump_to_set(0, 0)
            else:
                nav.jump_to_set(found.set_group_index, found.set_index)
        return True

    @_mutation
    def substitute_exercise(self, module_index: int, exercise_index: int, new_name: str) -> bool:
        return set_operations.substitute_exercise(self.session, module_index, exercise_index, new_name)

    # ------------------------------------------------------------------
    # Progression and pre-fill
    # ------------------------------------------------------------------

    @_mutation
    def apply_suggestions(self, suggestions: dict[str, ProgressionSuggestion]) -> int:
        """Attach suggestions keyed by template exercise id or exercise name.

        Returns how many exercises received a suggestion.
        """

        count = 0
        for exercise in self.session.exercises:
            suggestion = suggestions.get(exercise.source_exercise_id) if exercise.source_exercise_id else None
            if suggestion is None:
                suggestion = suggestions.get(exercise.name)
            if suggestion is not None:
                exercise.progression_suggestion = suggestion
                count += 1
        return count

    @_mutation
    def set_recommendation(
        self,
        module_index: int,
        exercise_index: int,
        recommendation: ProgressionRecommendation | None,
    ) -> bool:
        exercise = set_operations.exercise_at(self.session, module_index, exercise_index)
        if exercise is None:
            return False
        exercise.progression_recommendation = recommendation
        return True

    def last_session_data(self, exercise_name: str) -> SessionExercise | None:
        """Return the exercise as performed last time, loading it once."""

        if exercise_name not in self._last_session_cache:
            found = None
            if self.last_session_lookup is not None:
                found = self.last_session_lookup(exercise_name)
            self._last_session_cache[exercise_name] = found
        return self._last_session_cache[exercise_name]

    def prefill(self, location) -> Prefill | None:
        found = set_operations.resolve(self.session, _as_location(location))
        if found is None:
            return None
        exercise, group, set_data = found
        return resolve_prefill(
            exercise,
            group,
            set_data,
            self.last_session_data(exercise.name),
            weight_regress_step=settings.get_value("weight_regress_step"),
            distance_regress_step=settings.get_value("distance_regress_step"),
        )

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def start_rest_timer(self, seconds: int | None = None) -> None:
        if self.active_session is None:
            return
        self.rest_timer.start(self.rest_duration if seconds is None else seconds)
        self.save_recovery_state()

    def stop_rest_timer(self) -> None:
        self.rest_timer.stop()
        self.save_recovery_state()

    def adjust_rest_timer(self, seconds: int) -> None:
        """Adjust the target time for the current rest period."""
        self.rest_timer.adjust(seconds)
        self.save_recovery_state()

    def rest_remaining(self) -> float:
        """Return seconds remaining in the current rest period."""
        return self.rest_timer.remaining

    def poll_rest_finished(self) -> bool:
        return self.rest_timer.poll_finished()

    def start_exercise_timer(self, set_id: str, seconds: int | None = None) -> bool:
        if self.active_session is None:
            return False
        started = self.exercise_timer.start(set_id, seconds)
        self.save_recovery_state()
        return started

    def stop_exercise_timer(self) -> int | None:
        elapsed = self.exercise_timer.stop()
        self.save_recovery_state()
        return elapsed

    # ------------------------------------------------------------------
    # Ending the session
    # ------------------------------------------------------------------

    def structural_changes(self) -> list[StructuralChange]:
        return detect_changes(self.session, self.template)

    def updated_template(self, accepted: list[StructuralChange]) -> WorkoutTemplate | None:
        if self.template is None:
            return None
        return apply_changes(self.template, accepted)

    def finish(
        self,
        feeling=None,
        notes: str | None = None,
        persist=None,
        accepted_changes: list[StructuralChange] | None = None,
        commit_changes=None,
    ) -> Session:
        """Close the session and hand it to the collaborators.

        ``commit_changes`` receives the accepted structural changes and
        ``persist`` the finished :class:`Session`.
        """

        session = self.require_session()
        now = time.time()
        session.ended_at = now
        session.duration_seconds = max(0, int(now - session.started_at))
        session.feeling = clamp(parse_int(feeling), FEELING_RANGE)
        session.notes = notes.strip() if notes and notes.strip() else None

        if accepted_changes and commit_changes is not None:
            commit_changes(list(accepted_changes))
        if persist is not None:
            persist(session)

        self.rest_timer.stop()
        self.exercise_timer.stop()
        self.finished = True
        if self.recovery_base is not None:
            self.clear_recovery_state(self.recovery_base)
        logging.info(
            "Finished session %s after %s (%d sets)",
            session.display_name,
            format_duration(session.duration_seconds),
            session.total_sets_completed,
        )
        return session

    def cancel(self) -> None:
        """Discard the session without persisting anything."""

        if self.active_session is None:
            return
        self.rest_timer.stop()
        self.exercise_timer.stop()
        self.cancelled = True
        if self.recovery_base is not None:
            self.clear_recovery_state(self.recovery_base)
        logging.info("Cancelled session %s", self.session.display_name)

    def summary(self) -> str:
        """Return a formatted text summary of the session."""

        session = self.session
        lines = [f"Workout: {session.display_name}"]
        start = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(session.started_at))
        lines.append(f"Start: {start}")
        lines.append(f"Duration: {format_duration(self.elapsed_seconds)}")
        for module in session.modules:
            if module.skipped:
                lines.append(f"\n{module.name} (skipped)")
                continue
            lines.append(f"\n{module.name}")
            for exercise in module.exercises:
                lines.append(f"  {exercise.name}")
                for flat in flatten_sets(exercise):
                    if flat.set_data.completed:
                        text = exercise.summarize_set(flat.set_data) or "Done"
                        lines.append(f"    Set {flat.display_number}: {text}")
        return "\n".join(lines)

    # --------------------------------------------------------------
    # Persistence helpers
    # --------------------------------------------------------------

    def export_state(self) -> dict:
        """Return a JSON-serialisable snapshot of the controller."""

        session = self.require_session()
        return {
            "session": session.to_dict(),
            "template": self.template.to_dict() if self.template is not None else None,
            "cursor": list(self.navigator.location),
            "rest_duration": self.rest_duration,
            "rest_timer": self.rest_timer.to_dict(),
            "exercise_timer": self.exercise_timer.to_dict(),
            "last_session_cache": {
                name: (ex.to_dict() if ex is not None else None)
                for name, ex in self._last_session_cache.items()
            },
        }

    @classmethod
    def from_state(
        cls,
        state: dict,
        last_session_lookup=None,
        recovery_base: Path | str | None = None,
    ) -> "WorkoutSession":
        """Reconstruct a controller from :meth:`export_state` output."""

        template = state.get("template")
        obj = cls(
            Session.from_dict(state["session"]),
            template=WorkoutTemplate.from_dict(template) if template is not None else None,
            last_session_lookup=last_session_lookup,
            rest_duration=state.get("rest_duration"),
            recovery_base=recovery_base,
        )
        nav = obj.navigator
        (
            nav.module_index,
            nav.exercise_index,
            nav.set_group_index,
            nav.set_index,
        ) = state.get("cursor", [0, 0, 0, 0])
        nav.refresh()
        obj.rest_timer = RestTimer.from_dict(state.get("rest_timer", {}))
        obj.exercise_timer = ExerciseTimer.from_dict(state.get("exercise_timer", {}))
        obj._last_session_cache = {
            name: (SessionExercise.from_dict(data) if data is not None else None)
            for name, data in state.get("last_session_cache", {}).items()
        }
        return obj

    @staticmethod
    def recovery_files(base: Path | str) -> tuple[Path, Path]:
        base = Path(base)
        return (
            base.with_name(base.name + "_1.json"),
            base.with_name(base.name + "_2.json"),
        )

    def save_recovery_state(self) -> None:
        """Mirror the current state into both recovery files."""

        if self.recovery_base is None or self.active_session is None:
            return
        payload = json.dumps(self.export_state())
        try:
            self.recovery_base.parent.mkdir(parents=True, exist_ok=True)
            for path in self.recovery_files(self.recovery_base):
                path.write_text(payload)
        except OSError:
            logging.exception("Could not write recovery state to %s", self.recovery_base)

    @classmethod
    def load_recovery_state(cls, base: Path | str) -> dict | None:
        """Return the saved state, falling back to the second file."""

        for path in cls.recovery_files(base):
            if not path.exists():
                continue
            try:
                text = path.read_text().strip()
                if text:
                    return json.loads(text)
            except (OSError, ValueError):
                logging.exception("Could not read recovery file %s", path)
        return None

    @classmethod
    def clear_recovery_state(cls, base: Path | str) -> None:
        """Remove any existing recovery files."""

        for path in cls.recovery_files(base):
            path.unlink(missing_ok=True)

    @classmethod
    def resume(cls, base: Path | str, last_session_lookup=None) -> "WorkoutSession | None":
        """Return a controller recovered from ``base`` if one was saved."""

        state = cls.load_recovery_state(base)
        if state is None:
            return None
        logging.info("Recovered session from %s", base)
        return cls.from_state(state, last_session_lookup=last_session_lookup, recovery_base=base)
