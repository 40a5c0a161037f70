import pytest

from conftest import make_face
from proctor_ai.landmarks import FaceLandmarks
from proctor_ai.violation_engine import (
    EYES_OFF_SCREEN,
    HEAD_TURNED,
    MULTIPLE_FACES,
    NO_FACE,
    TOO_FAR,
    CountEvaluator,
    ProctoringEvaluator,
)


def evaluate_once(faces, **kwargs):
    return ProctoringEvaluator(**kwargs).evaluate(faces, now=100.0)


# ─── Face count ───────────────────────────────────────────────

def test_no_face():
    assert evaluate_once([]) == [NO_FACE]


def test_none_is_treated_as_no_face():
    assert evaluate_once(None) == [NO_FACE]


@pytest.mark.parametrize("count", [2, 3])
def test_multiple_faces_suppress_geometry(count):
    # every face here would trip all geometry rules on its own
    faces = [make_face(mid_x=0.8, iris_offset=0.1, top=0.0, bottom=0.05)] * count
    assert evaluate_once(faces) == [MULTIPLE_FACES]


def test_compliant_face_is_all_clear():
    assert evaluate_once([make_face()]) == []


# ─── Head turn ────────────────────────────────────────────────

@pytest.mark.parametrize("mid_x, expected", [(0.5, False), (0.63, True), (0.37, True), (0.55, False)])
def test_head_turn_boundary(mid_x, expected):
    alerts = evaluate_once([make_face(mid_x=mid_x)])
    assert (HEAD_TURNED in alerts) is expected


# ─── Gaze ─────────────────────────────────────────────────────

@pytest.mark.parametrize("offset, expected", [(0.0, False), (0.03, False), (0.05, True), (-0.05, True)])
def test_gaze_boundary(offset, expected):
    alerts = evaluate_once([make_face(iris_offset=offset)])
    assert (EYES_OFF_SCREEN in alerts) is expected


# ─── Posture / distance ───────────────────────────────────────

def test_face_height_at_threshold_is_not_flagged():
    alerts = evaluate_once([make_face(top=0.0, bottom=0.18)])
    assert TOO_FAR not in alerts


def test_small_face_is_flagged():
    alerts = evaluate_once([make_face(top=0.0, bottom=0.10)])
    assert alerts == [TOO_FAR]


# ─── Combination and order ────────────────────────────────────

def test_all_geometry_alerts_fire_in_rule_order():
    face = make_face(mid_x=0.7, iris_offset=0.06, top=0.2, bottom=0.3)
    assert evaluate_once([face]) == [HEAD_TURNED, EYES_OFF_SCREEN, TOO_FAR]


def test_custom_tolerances():
    face = make_face(mid_x=0.55)
    assert evaluate_once([face], head_turn_tolerance=0.02) == [HEAD_TURNED]


# ─── Rule isolation ───────────────────────────────────────────

def test_failing_rule_does_not_abort_evaluation():
    # 468 points: no iris landmarks, gaze rule cannot run
    points = [(0.8, 0.5)] * 468
    face = FaceLandmarks.from_points(points)

    alerts = evaluate_once([face])

    assert alerts == [HEAD_TURNED, TOO_FAR]


def test_empty_face_yields_no_geometry_alerts():
    assert evaluate_once([FaceLandmarks(())]) == []


# ─── Rate limit ───────────────────────────────────────────────

def test_second_call_within_interval_is_skipped():
    evaluator = ProctoringEvaluator()
    assert evaluator.evaluate([], now=10.0) == [NO_FACE]
    assert evaluator.evaluate([make_face(), make_face()], now=10.999) is None
    assert evaluator.last_evaluated_at == 10.0


def test_call_after_interval_is_evaluated():
    evaluator = ProctoringEvaluator()
    evaluator.evaluate([], now=10.0)
    assert evaluator.evaluate([make_face()], now=11.0) == []
    assert evaluator.last_evaluated_at == 11.0


def test_skipped_calls_do_not_extend_the_window():
    evaluator = ProctoringEvaluator(interval=1.0)
    evaluator.evaluate([], now=0.0)
    for t in (0.2, 0.5, 0.9):
        assert evaluator.evaluate([], now=t) is None
    assert evaluator.evaluate([], now=1.0) == [NO_FACE]


# ─── Count variant ────────────────────────────────────────────

def test_count_evaluator_reports_counts():
    evaluator = CountEvaluator()
    assert evaluator.evaluate([], now=0.0, people=2) == ["Face count: 0", "People detected: 2"]


def test_count_evaluator_single_face_and_person_is_clear():
    assert CountEvaluator().evaluate([make_face()], now=0.0, people=1) == []


def test_count_evaluator_without_person_detector():
    assert CountEvaluator().evaluate([make_face()] * 2, now=0.0) == ["Face count: 2"]
