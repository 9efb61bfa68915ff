import pytest

from workout_core.timers import ExerciseTimer, RestTimer


def test_rest_timer_counts_down_and_stops(clock):
    timer = RestTimer()
    timer.start(90)
    assert timer.running
    assert timer.remaining == 90

    observed = []
    for _ in range(19):
        clock.advance(5)
        observed.append(timer.remaining)

    assert min(observed) >= 0
    assert observed[-1] == 0
    assert not timer.running
    assert timer.elapsed == 90


def test_rest_timer_remaining_seconds_rounds_up(clock):
    timer = RestTimer()
    timer.start(10)
    clock.advance(2.2)
    assert timer.remaining_seconds == 8


def test_rest_timer_adjust(clock):
    timer = RestTimer()
    timer.start(60)
    clock.advance(20)
    timer.adjust(30)
    assert timer.remaining == 70

    timer.adjust(-500)
    assert timer.remaining == 0
    assert not timer.running


def test_adjust_after_expiry_restarts_from_now(clock):
    timer = RestTimer()
    timer.start(30)
    clock.advance(45)
    assert timer.poll_finished()

    timer.adjust(15)

    assert timer.remaining == 15
    assert timer.running
    clock.advance(15)
    assert timer.poll_finished()


def test_adjust_without_running_timer_is_ignored(clock):
    timer = RestTimer()
    timer.adjust(30)
    assert not timer.running
    assert timer.remaining == 0


def test_finish_is_reported_once(clock):
    timer = RestTimer()
    timer.start(5)
    assert not timer.poll_finished()
    clock.advance(6)
    assert timer.poll_finished()
    assert not timer.poll_finished()


def test_starting_again_replaces_rest(clock):
    timer = RestTimer()
    timer.start(120)
    clock.advance(100)
    timer.start(60)
    assert timer.remaining == 60


def test_rest_timer_survives_serialisation(clock):
    timer = RestTimer()
    timer.start(90)
    clock.advance(30)
    restored = RestTimer.from_dict(timer.to_dict())
    clock.advance(30)
    assert restored.remaining == 30


def test_stopped_rest_timer(clock):
    timer = RestTimer()
    timer.start(90)
    timer.stop()
    assert not timer.running
    assert timer.remaining == 0
    assert not timer.poll_finished()


def test_exercise_countdown(clock):
    timer = ExerciseTimer()
    assert timer.start("set-1", 60)
    clock.advance(20)
    assert timer.remaining == 40
    clock.advance(100)
    assert not timer.running
    assert timer.elapsed == 60
    assert timer.stop() == 60
    assert timer.set_id is None


def test_exercise_stopwatch(clock):
    timer = ExerciseTimer()
    timer.start("set-1")
    assert timer.is_stopwatch
    clock.advance(42.4)
    assert timer.running
    assert timer.remaining is None
    assert timer.stop() == 42
    assert timer.stop() is None


def test_start_same_set_resumes(clock):
    timer = ExerciseTimer()
    timer.start("set-1", 60)
    clock.advance(10)

    assert timer.start("set-1", 60) is False
    assert timer.remaining == 50


def test_start_other_set_replaces_binding(clock):
    timer = ExerciseTimer()
    timer.start("set-1", 60)
    clock.advance(10)

    assert timer.start("set-2", 30)

    assert timer.set_id == "set-2"
    assert timer.remaining == 30


@pytest.mark.parametrize("seconds", [0, -5, None])
def test_non_positive_target_means_stopwatch(clock, seconds):
    timer = ExerciseTimer()
    timer.start("set-1", seconds)
    assert timer.is_stopwatch


def test_exercise_timer_survives_serialisation(clock):
    timer = ExerciseTimer()
    timer.start("set-1", 45)
    clock.advance(15)
    restored = ExerciseTimer.from_dict(timer.to_dict())
    assert restored.set_id == "set-1"
    assert restored.remaining == 30
