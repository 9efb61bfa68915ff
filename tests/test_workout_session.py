import pytest

from workout_core import settings
from workout_core.enums import NavigationEvent, ProgressionMetric, ProgressionRecommendation
from workout_core.models import ProgressionSuggestion, SessionExercise, SetData, SetGroup, SetLocation
from workout_core.set_operations import ExerciseScheme
from workout_core.workout_session import NoActiveSessionError, WorkoutSession


def test_workout_session_flow(bench_template, clock):
    session = WorkoutSession.start(bench_template)
    assert session.current_exercise.name == "Bench Press"
    assert session.current_set.set_number == 1

    assert session.log_current_set(weight=135, reps=8, rpe=8)
    assert session.rest_timer.running
    assert session.rest_remaining() == 90

    assert session.advance_to_next_set() is NavigationEvent.SET
    session.log_current_set(weight=135, reps=7)
    session.advance_to_next_set()
    session.stop_rest_timer()
    session.log_current_set(weight=135, reps=6)
    assert not session.rest_timer.running

    assert session.advance_to_next_set() is NavigationEvent.WORKOUT_COMPLETE
    assert session.is_workout_complete
    assert session.overall_progress == 1.0

    summary = session.summary()
    assert "Push Day" in summary
    assert "Bench Press" in summary
    assert "Set 3: 135 x 6" in summary


def test_rest_uses_default_when_group_has_none(superset_template, clock):
    session = WorkoutSession.start(superset_template, rest_duration=75)
    session.log_current_set(reps=5)
    assert session.rest_remaining() == 75


def test_rest_default_comes_from_settings(superset_template, clock):
    settings.set_value("default_rest_duration", 45)
    session = WorkoutSession.start(superset_template)
    session.log_current_set(reps=5)
    assert session.rest_remaining() == 45


def test_no_rest_for_recovery_exercises(full_template, clock):
    session = WorkoutSession.start(full_template)
    session.set_position(module_index=2)
    assert session.current_exercise.name == "Sauna"
    session.log_current_set(duration=600, temperature=180)
    assert not session.rest_timer.running


def test_rest_can_be_disabled(bench_template, clock):
    session = WorkoutSession.start(bench_template)
    session.log_current_set(reps=8, start_rest=False)
    assert not session.rest_timer.running

    settings.set_value("auto_start_rest_timer", False)
    session.log_set((0, 0, 0, 1), reps=8)
    assert not session.rest_timer.running


def test_rest_timer_controls(bench_template, clock):
    session = WorkoutSession.start(bench_template, rest_duration=60)
    session.start_rest_timer()
    clock.advance(20)
    session.adjust_rest_timer(15)
    assert session.rest_remaining() == 55
    clock.advance(60)
    assert session.poll_rest_finished()
    assert not session.poll_rest_finished()


def test_logging_stops_bound_exercise_timer(full_template, clock):
    session = WorkoutSession.start(full_template)
    bike_set = session.current_set
    assert session.start_exercise_timer(bike_set.id, 300)
    clock.advance(30)
    assert not session.start_exercise_timer(bike_set.id, 300)

    session.log_current_set(duration=30)

    assert session.exercise_timer.set_id is None
    assert not session.exercise_timer.running


def test_stop_exercise_timer_returns_elapsed(bench_template, clock):
    session = WorkoutSession.start(bench_template)
    session.start_exercise_timer(session.current_set.id)
    clock.advance(12)
    assert session.stop_exercise_timer() == 12


def test_finish_hands_off_session(bench_template, clock):
    session = WorkoutSession.start(bench_template)
    session.log_current_set(weight=135, reps=8)
    session.add_set(0, 0)
    accepted = session.structural_changes()
    clock.advance(1800)

    persisted = []
    committed = []
    finished = session.finish(
        feeling=9,
        notes="  felt strong ",
        persist=persisted.append,
        accepted_changes=accepted,
        commit_changes=committed.append,
    )

    assert persisted == [finished]
    assert committed == [accepted]
    assert finished.feeling == 5
    assert finished.notes == "felt strong"
    assert finished.duration_seconds == 1800
    assert finished.total_sets_completed == 1
    assert not session.rest_timer.running
    assert session.active_session is None
    assert session.updated_template(accepted).modules[0].exercises[0].total_sets == 4


def test_finish_without_feeling(bench_template, clock):
    finished = WorkoutSession.start(bench_template).finish(feeling="", notes="   ")
    assert finished.feeling is None
    assert finished.notes is None


def test_operations_after_finish(bench_template, clock):
    session = WorkoutSession.start(bench_template)
    session.finish()

    assert session.log_current_set(reps=8) is None
    assert session.advance_to_next_exercise() is None
    assert session.current_exercise is None
    with pytest.raises(NoActiveSessionError):
        session.require_session()
    with pytest.raises(NoActiveSessionError):
        session.finish()


def test_cancel_discards_session(bench_template, clock, tmp_path):
    base = tmp_path / "session_recovery"
    session = WorkoutSession.start(bench_template, recovery_base=base)
    session.log_current_set(reps=8)

    session.cancel()

    assert session.cancelled
    assert session.active_session is None
    assert WorkoutSession.load_recovery_state(base) is None
    assert session.add_set(0, 0) is None


def test_freestyle_session(clock):
    settings.set_value("default_rest_duration", 60)
    session = WorkoutSession.freestyle()
    assert session.current_exercise is None

    exercise = session.add_exercise(0, "Pull-up")

    assert session.current_exercise is exercise
    assert exercise.set_groups[0].rest_period == 60
    assert session.session.display_name == "Pull-up"
    assert session.structural_changes() == []


def test_reorder_keeps_current_exercise(superset_template, clock):
    session = WorkoutSession.start(superset_template)
    session.move_to_exercise(2)

    assert session.reorder_exercise(0, 2, 0)

    assert session.current_exercise.name == "C"
    assert session.navigator.exercise_index == 0


def test_remove_current_exercise_moves_to_next(superset_template, clock):
    session = WorkoutSession.start(superset_template)
    session.move_to_exercise(1)
    removed = session.remove_exercise(0, 1)
    assert removed.name == "B"
    assert session.current_exercise.name == "C"


def test_scheme_update_jumps_to_first_open_set(full_template, clock):
    session = WorkoutSession.start(full_template)
    session.set_position(module_index=1)
    session.log_current_set(weight=225, reps=5)
    session.advance_to_next_set()
    session.advance_to_next_set()

    session.update_exercise_scheme(1, 0, ExerciseScheme(sets=4, target_weight=230, target_reps=4))

    assert session.navigator.location == SetLocation(1, 0, 1, 0)
    assert session.current_set.target_weight == 230


def test_scheme_update_with_no_sets_is_ignored(bench_template, clock):
    session = WorkoutSession.start(bench_template)
    session.log_current_set(weight=135, reps=8)
    session.advance_to_next_set()

    assert not session.update_exercise_scheme(0, 0, ExerciseScheme(sets=0))
    assert session.session.modules[0].exercises[0].logical_set_count == 3
    assert session.navigator.location == SetLocation(0, 0, 0, 1)


def test_suggestions_feed_prefill(bench_template, clock):
    session = WorkoutSession.start(bench_template)
    template_id = bench_template.modules[0].exercises[0].id
    suggestion = ProgressionSuggestion(ProgressionMetric.WEIGHT, base_value=135, suggested_value=140)

    assert session.apply_suggestions({template_id: suggestion}) == 1
    assert session.prefill((0, 0, 0, 0)).weight == 135

    session.set_recommendation(0, 0, ProgressionRecommendation.PROGRESS)
    assert session.prefill((0, 0, 0, 0)).weight == 140

    session.set_recommendation(0, 0, ProgressionRecommendation.REGRESS)
    assert session.prefill((0, 0, 0, 0)).weight == 130

    assert session.prefill((0, 0, 0, 9)) is None


def test_suggestions_by_name_for_ad_hoc_exercise(clock):
    session = WorkoutSession.freestyle()
    session.add_exercise(0, "Curl")
    suggestion = ProgressionSuggestion(ProgressionMetric.REPS, base_value=10, suggested_value=12)
    assert session.apply_suggestions({"Curl": suggestion}) == 1


def test_last_session_lookup_is_cached(bench_template, clock):
    calls = []

    def lookup(name):
        calls.append(name)
        return SessionExercise(
            name=name,
            set_groups=[SetGroup(sets=[SetData(set_number=1, weight=130, reps=8, completed=True)])],
        )

    session = WorkoutSession.start(bench_template, last_session_lookup=lookup)

    assert session.prefill((0, 0, 0, 0)).weight == 130
    assert session.prefill((0, 0, 0, 1)).weight == 130
    assert calls == ["Bench Press"]


def test_elapsed_seconds(bench_template, clock):
    session = WorkoutSession.start(bench_template)
    clock.advance(125)
    assert session.elapsed_seconds == 125
