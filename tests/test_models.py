import json

import pytest

from workout_core.enums import (
    CardioTracking,
    DistanceUnit,
    ExerciseState,
    ExerciseType,
    MobilityTracking,
    ProgressionMetric,
    ProgressionRecommendation,
    Side,
)
from workout_core.models import (
    ProgressionSuggestion,
    Session,
    SessionExercise,
    SessionModule,
    SetData,
    SetGroup,
    primary_fields,
)
from workout_core.navigator import flatten_sets
from workout_core.templates import build_session


@pytest.mark.parametrize(
    "exercise_type, expected",
    [
        (ExerciseType.STRENGTH, ("weight", "reps")),
        (ExerciseType.ISOMETRIC, ("hold_time",)),
        (ExerciseType.EXPLOSIVE, ("reps", "height")),
        (ExerciseType.RECOVERY, ("duration",)),
    ],
)
def test_primary_fields_by_type(exercise_type, expected):
    assert primary_fields(exercise_type) == expected


def test_primary_fields_follow_tracking_modes():
    assert primary_fields(ExerciseType.CARDIO, CardioTracking.DISTANCE_ONLY) == ("distance",)
    assert primary_fields(ExerciseType.CARDIO, CardioTracking.BOTH) == ("duration", "distance")
    assert primary_fields(
        ExerciseType.MOBILITY, mobility_tracking=MobilityTracking.DURATION_ONLY
    ) == ("duration",)


def test_unilateral_group_counts_pairs_once():
    group = SetGroup(
        is_unilateral=True,
        sets=[
            SetData(set_number=1, side=Side.LEFT),
            SetData(set_number=1, side=Side.RIGHT),
            SetData(set_number=2, side=Side.LEFT),
            SetData(set_number=2, side=Side.RIGHT),
        ],
    )
    assert group.logical_set_count == 2
    group.sets[2].set_number = 7
    group.renumber()
    assert [s.set_number for s in group.sets] == [1, 1, 2, 2]


def test_exercise_state_transitions():
    exercise = SessionExercise(
        name="Row", set_groups=[SetGroup(sets=[SetData(set_number=1), SetData(set_number=2)])]
    )
    assert exercise.state is ExerciseState.NOT_STARTED
    exercise.set_groups[0].sets[0].completed = True
    assert exercise.state is ExerciseState.IN_PROGRESS
    exercise.set_groups[0].sets[1].completed = True
    assert exercise.state is ExerciseState.COMPLETED
    assert not exercise.has_incomplete_sets

    session = Session(workout_name="Pull", modules=[SessionModule(name="Main", exercises=[exercise])])
    assert session.total_exercises_completed == 1
    assert session.total_sets_completed == 2
    session.modules[0].skipped = True
    assert session.total_sets_completed == 0


def test_volume_and_top_set():
    sets = [
        SetData(set_number=1, weight=100, reps=5, completed=True),
        SetData(set_number=2, weight=110, reps=3, completed=True),
        SetData(set_number=3, weight=200, reps=1),
    ]
    exercise = SessionExercise(name="Deadlift", set_groups=[SetGroup(sets=sets)])
    assert exercise.total_volume == 830
    assert exercise.top_set is sets[1]


def test_summaries_per_type():
    strength = SessionExercise(name="Bench")
    assert strength.summarize_set(SetData(set_number=1, weight=135.0, reps=8, rpe=8)) == "135 x 8 @ RPE 8"
    assert strength.summarize_set(SetData(set_number=1, reps=12)) == "12 reps"

    cardio = SessionExercise(
        name="Run",
        exercise_type=ExerciseType.CARDIO,
        cardio_tracking=CardioTracking.BOTH,
        distance_unit=DistanceUnit.MILES,
    )
    assert cardio.summarize_set(SetData(set_number=1, duration=1530, distance=3.1)) == "25:30 - 3.10 mi"

    plank = SessionExercise(name="Plank", exercise_type=ExerciseType.ISOMETRIC)
    assert plank.summarize_set(SetData(set_number=1, hold_time=45, intensity=7)) == "45s hold @ 7/10"

    lunge = SessionExercise(name="Lunge")
    left = SetData(set_number=1, weight=20, reps=10, side=Side.LEFT)
    assert lunge.summarize_set(left) == "L: 20 x 10"


def test_flatten_sets_shares_numbers_for_pairs():
    exercise = SessionExercise(
        name="Lunge",
        set_groups=[
            SetGroup(sets=[SetData(set_number=1)]),
            SetGroup(
                is_unilateral=True,
                sets=[
                    SetData(set_number=1, side=Side.LEFT),
                    SetData(set_number=1, side=Side.RIGHT),
                    SetData(set_number=2, side=Side.LEFT),
                    SetData(set_number=2, side=Side.RIGHT),
                ],
            ),
        ],
    )
    numbers = [flat.display_number for flat in flatten_sets(exercise)]
    assert numbers == [1, 2, 2, 3, 3]


def test_freestyle_display_name():
    session = Session(workout_name="Freestyle", is_freestyle=True)
    assert session.display_name == "Freestyle"
    session.modules = build_session_with(["Curl", "Dip", "Row"]).modules
    assert session.display_name == "Curl +2"


def build_session_with(names):
    from workout_core.templates import ExerciseTemplate, ModuleTemplate, WorkoutTemplate

    template = WorkoutTemplate(
        name="tmp",
        modules=[ModuleTemplate(name="m", exercises=[ExerciseTemplate(name=n) for n in names])],
    )
    return build_session(template, started_at=0)


def test_session_dict_roundtrip_is_json_safe(full_template):
    session = build_session(full_template, started_at=50.0)
    squat = session.modules[1].exercises[0]
    squat.set_groups[0].sets[0].weight = 225
    squat.set_groups[0].sets[0].measurable_values["Belt"] = "yes"
    squat.progression_recommendation = ProgressionRecommendation.PROGRESS
    squat.progression_suggestion = ProgressionSuggestion(
        metric=ProgressionMetric.WEIGHT, base_value=225, suggested_value=230
    )

    data = json.loads(json.dumps(session.to_dict()))
    restored = Session.from_dict(data)

    assert restored == session
    assert restored.modules[1].exercises[1].set_groups[0].sets[0].side is Side.LEFT
    assert restored.modules[1].exercises[0].progression_suggestion.metric is ProgressionMetric.WEIGHT
