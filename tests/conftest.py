from pathlib import Path
import sys
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from workout_core import settings, timers
from workout_core.enums import ExerciseType, ModuleType
from workout_core.templates import (
    ExerciseTemplate,
    ModuleTemplate,
    SetGroupTemplate,
    WorkoutTemplate,
)


class FakeClock:
    """Manually advanced replacement for :func:`time.time`."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def time(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch):
    """Keep every test's settings file inside its own temporary directory."""
    monkeypatch.setattr(settings, "SETTINGS_PATH", tmp_path / "settings.json")
    settings.reset_cache()
    yield
    settings.reset_cache()


@pytest.fixture
def clock(monkeypatch) -> FakeClock:
    fake = FakeClock()
    monkeypatch.setattr(timers.time, "time", fake.time)
    return fake


@pytest.fixture
def bench_template() -> WorkoutTemplate:
    """'Upper Body' with a single Bench Press of 3 x 8 @ 135."""
    bench = ExerciseTemplate(
        name="Bench Press",
        set_groups=[SetGroupTemplate(sets=3, target_weight=135, target_reps=8, rest_period=90)],
    )
    module = ModuleTemplate(name="Upper Body", module_type=ModuleType.STRENGTH, exercises=[bench])
    return WorkoutTemplate(name="Push Day", modules=[module])


@pytest.fixture
def superset_template() -> WorkoutTemplate:
    """Module with exercises A, B, C, D where B and C form a superset."""
    exercises = [
        ExerciseTemplate(name="A", set_groups=[SetGroupTemplate(sets=2, target_reps=5)]),
        ExerciseTemplate(
            name="B",
            superset_group_id="S",
            set_groups=[SetGroupTemplate(sets=2, target_reps=10)],
        ),
        ExerciseTemplate(
            name="C",
            superset_group_id="S",
            set_groups=[SetGroupTemplate(sets=2, target_reps=12)],
        ),
        ExerciseTemplate(name="D", set_groups=[SetGroupTemplate(sets=1, target_reps=8)]),
    ]
    module = ModuleTemplate(name="Main", exercises=exercises)
    return WorkoutTemplate(name="Superset Day", modules=[module])


@pytest.fixture
def full_template() -> WorkoutTemplate:
    """Three modules covering several exercise types."""
    warmup = ModuleTemplate(
        name="Warm-up",
        module_type=ModuleType.WARMUP,
        exercises=[
            ExerciseTemplate(
                name="Bike",
                exercise_type=ExerciseType.CARDIO,
                set_groups=[SetGroupTemplate(sets=1, target_duration=300)],
            )
        ],
    )
    strength = ModuleTemplate(
        name="Strength",
        exercises=[
            ExerciseTemplate(
                name="Squat",
                set_groups=[SetGroupTemplate(sets=3, target_weight=225, target_reps=5, rest_period=180)],
            ),
            ExerciseTemplate(
                name="Split Squat",
                set_groups=[
                    SetGroupTemplate(sets=2, target_weight=40, target_reps=8, is_unilateral=True)
                ],
            ),
            ExerciseTemplate(
                name="Plank",
                exercise_type=ExerciseType.ISOMETRIC,
                set_groups=[SetGroupTemplate(sets=2, target_hold_time=60)],
            ),
        ],
    )
    recovery = ModuleTemplate(
        name="Recovery",
        module_type=ModuleType.RECOVERY,
        exercises=[
            ExerciseTemplate(
                name="Sauna",
                exercise_type=ExerciseType.RECOVERY,
                set_groups=[SetGroupTemplate(sets=2, target_duration=600)],
            )
        ],
    )
    return WorkoutTemplate(name="Leg Day", modules=[warmup, strength, recovery])
