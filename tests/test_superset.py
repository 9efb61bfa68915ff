from workout_core import superset
from workout_core.templates import build_session


def test_superset_queries(superset_template):
    exercises = build_session(superset_template, started_at=0).modules[0].exercises

    assert superset.indices(exercises, "S") == [1, 2]
    assert superset.position(2, exercises, "S") == 1
    assert superset.position(0, exercises, "S") is None
    assert superset.is_last_in_superset(2, exercises, "S")
    assert not superset.is_last_in_superset(1, exercises, "S")
    assert superset.superset_count(exercises, "S") == 2


def test_grouped_keeps_first_appearance_order(superset_template):
    exercises = superset_template.modules[0].exercises
    names = [[ex.name for ex in group] for group in superset.grouped(exercises)]
    assert names == [["A"], ["B", "C"], ["D"]]


def test_orphaned_superset_ids(superset_template):
    exercises = superset_template.modules[0].exercises
    assert superset.orphaned_superset_ids(exercises) == set()
    exercises[2].superset_group_id = None
    assert superset.orphaned_superset_ids(exercises) == {"S"}
