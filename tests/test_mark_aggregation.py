import logging
from types import SimpleNamespace

import pytest

from services import assessment_tools, course_outcomes, marks
from services.mark_aggregation import (
    compute_co_mark, compute_final_average, compute_type_averages, course_breakdown,
    round_half_up, tool_weightage_total
)


def tool(tool_id, weightage, max_marks, name=None):
    return SimpleNamespace(
        tool_id=tool_id,
        weightage=weightage,
        max_marks=max_marks,
        tool_name=name or f"tool{tool_id}"
    )


class TestCoMark:
    def test_weighted_sum_of_normalised_marks(self):
        tools = [tool(1, 50, 10), tool(2, 50, 50)]
        assert compute_co_mark(tools, {1: 9, 2: 43}) == pytest.approx(88.0)
        assert round_half_up(compute_co_mark(tools, {1: 9, 2: 43})) == 88.0

    def test_missing_mark_counts_as_zero(self):
        tools = [tool(1, 40, 20), tool(2, 60, 50)]
        assert compute_co_mark(tools, {2: 50}) == pytest.approx(60.0)
        assert compute_co_mark(tools, {}) == 0

    def test_zero_max_marks_contributes_nothing(self, caplog):
        tools = [tool(1, 50, 0, name="Broken"), tool(2, 50, 10)]
        with caplog.at_level(logging.WARNING):
            assert compute_co_mark(tools, {1: 5, 2: 10}) == pytest.approx(50.0)
        assert "Broken" in caplog.text

    @pytest.mark.parametrize("weights", [(100,), (50, 50), (33.3, 33.3, 33.4), (10, 20, 30, 40)])
    def test_never_exceeds_hundred_with_full_weightage(self, weights):
        tools = [tool(i, w, 25) for i, w in enumerate(weights, start=1)]
        full = {t.tool_id: 25 for t in tools}
        partial = {t.tool_id: 12.5 for t in tools}
        assert compute_co_mark(tools, full) <= 100 + 1e-9
        assert 0 <= compute_co_mark(tools, partial) <= 100


class TestAverages:
    def test_absent_type_does_not_dilute_final_average(self):
        theory_only = [
            {"co_type": "THEORY", "co_mark": 80},
            {"co_type": "THEORY", "co_mark": 90},
        ]
        assert compute_final_average(theory_only) == 85.00

        with_practical = theory_only + [{"co_type": "PRACTICAL", "co_mark": 0}]
        assert compute_final_average(with_practical) == 56.67

    def test_type_averages_skip_missing_types(self):
        averages = compute_type_averages([
            {"co_type": "THEORY", "co_mark": 70},
            {"co_type": "THEORY", "co_mark": 90},
            {"co_type": "EXPERIENTIAL", "co_mark": 60},
        ])
        assert averages == {"THEORY": 80, "EXPERIENTIAL": 60}

    def test_co_weight_shifts_the_average(self):
        rows = [
            {"co_type": "THEORY", "co_mark": 100, "co_weight": 300},
            {"co_type": "PRACTICAL", "co_mark": 0, "co_weight": 100},
        ]
        assert compute_final_average(rows) == 75.0

    def test_no_course_outcomes(self):
        assert compute_final_average([]) == 0.0

    def test_round_half_up(self):
        assert round_half_up(56.665) == 56.67
        assert round_half_up(2.675) == 2.68
        assert round_half_up(None) == 0.0

    def test_weightage_total_is_exact(self):
        assert tool_weightage_total([{"weightage": 33.3}, {"weightage": 33.3}, {"weightage": 33.4}]) == 100


class TestCourseBreakdown:
    def test_breakdown_from_recorded_marks(self, classroom):
        _, cos = course_outcomes.save_partitions(classroom.course, 2, 1, 0, "prof")
        theory1, theory2, practical = cos
        quiz, assignment = assessment_tools.save_tool_set(theory1, [
            {"toolName": "Quiz", "weightage": 50, "maxMarks": 10},
            {"toolName": "Assignment", "weightage": 50, "maxMarks": 50},
        ], "prof")
        (test_tool,) = assessment_tools.save_tool_set(theory2, [
            {"toolName": "Test", "weightage": 100, "maxMarks": 100},
        ], "prof")
        (lab,) = assessment_tools.save_tool_set(practical, [
            {"toolName": "Lab", "weightage": 100, "maxMarks": 40},
        ], "prof")

        marks.save_marks_for_tool(classroom.staff, quiz, [{"regno": "R001", "marks": 9}])
        marks.save_marks_for_tool(classroom.staff, assignment, [{"regno": "R001", "marks": 43}])
        marks.save_marks_for_tool(classroom.staff, test_tool, [{"regno": "R001", "marks": 72}])
        marks.save_marks_for_tool(classroom.staff, lab, [{"regno": "R001", "marks": 30}])

        first, second = classroom.students
        _, results = course_breakdown(classroom.course, [first.student_id, second.student_id])

        asha = results[first.student_id]
        assert asha["co_marks"] == {"CO1": 88.0, "CO2": 72.0, "CO3": 75.0}
        assert asha["type_averages"] == {"THEORY": 80.0, "PRACTICAL": 75.0, "EXPERIENTIAL": None}
        assert asha["final_average"] == 78.33

        bala = results[second.student_id]
        assert bala["co_marks"] == {"CO1": 0.0, "CO2": 0.0, "CO3": 0.0}
        assert bala["final_average"] == 0.0
