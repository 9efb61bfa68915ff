import json
from pathlib import Path

from workout_core.models import SessionExercise, SetData, SetGroup
from workout_core.workout_session import WorkoutSession


def test_session_state_roundtrip(tmp_path, bench_template, clock):
    base = tmp_path / "session_recovery"
    session = WorkoutSession.start(bench_template, rest_duration=1, recovery_base=base)
    session.log_current_set(weight=135, reps=10)
    session.advance_to_next_set()
    session.start_exercise_timer(session.current_set.id, 40)
    state = session.export_state()
    recovered = WorkoutSession.from_state(state)
    assert state == recovered.export_state()
    assert recovered.current_set.set_number == 2
    assert recovered.rest_timer.running


def test_recovery_files_and_clear(tmp_path, full_template, clock):
    base = tmp_path / "session_recovery"
    session = WorkoutSession.start(full_template, recovery_base=base)
    session.add_exercise(0, "Jump Rope")
    f1 = base.with_name(base.name + "_1.json")
    f2 = base.with_name(base.name + "_2.json")
    assert f1.exists() and f2.exists()
    with f1.open() as fh:
        data1 = json.load(fh)
    with f2.open() as fh:
        data2 = json.load(fh)
    assert data1 == data2 == session.export_state()

    # simulate loss of primary file and ensure backup loads
    f1.unlink()
    loaded = WorkoutSession.load_recovery_state(base)
    assert loaded == data2

    # finishing the session clears any recovery files
    session.finish()
    assert not f1.exists() and not f2.exists()


def test_corrupt_primary_falls_back_to_backup(tmp_path, bench_template, clock):
    base = tmp_path / "session_recovery"
    session = WorkoutSession.start(bench_template, recovery_base=base)
    f1, f2 = WorkoutSession.recovery_files(base)
    f1.write_text("{not json")

    assert WorkoutSession.load_recovery_state(base) == json.loads(f2.read_text())
    assert session.export_state() == json.loads(f2.read_text())


def test_resume_restores_cursor_and_cache(tmp_path, full_template, clock):
    base = tmp_path / "session_recovery"

    def lookup(name):
        return SessionExercise(
            name=name,
            set_groups=[SetGroup(sets=[SetData(set_number=1, weight=200, reps=5, completed=True)])],
        )

    session = WorkoutSession.start(full_template, last_session_lookup=lookup, recovery_base=base)
    session.skip_module()
    session.log_current_set(weight=225, reps=5)
    session.prefill((1, 0, 0, 1))
    session.advance_to_next_set()

    resumed = WorkoutSession.resume(base)

    assert resumed is not None
    assert resumed.current_exercise.name == "Squat"
    assert resumed.navigator.set_index == 1
    assert resumed.session.skipped_module_ids == session.session.skipped_module_ids
    assert resumed.template.name == "Leg Day"
    assert resumed.last_session_data("Squat").all_sets[0].weight == 200
    assert resumed.recovery_base == Path(base)


def test_resume_without_files(tmp_path):
    assert WorkoutSession.resume(tmp_path / "missing") is None


def test_terminal_cursor_survives_recovery(tmp_path, bench_template, clock):
    base = tmp_path / "session_recovery"
    session = WorkoutSession.start(bench_template, recovery_base=base)
    session.advance_to_next_exercise()
    assert session.is_workout_complete

    resumed = WorkoutSession.resume(base)
    assert resumed.is_workout_complete
