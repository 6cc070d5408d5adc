import pytest

from models import AssessmentTool, StudentToolMark
from services import assessment_tools, course_outcomes, marks
from services.errors import ConflictError, ValidationError
from services.mark_aggregation import co_is_complete


@pytest.fixture
def co(classroom):
    _, created = course_outcomes.save_partitions(classroom.course, 1, 0, 0, "prof")
    return created[0]


@pytest.mark.parametrize("weights", [(33, 33, 33), (50, 51), (101,)])
def test_weightage_must_total_hundred(co, weights):
    tools = [
        {"toolName": f"T{i}", "weightage": w, "maxMarks": 10}
        for i, w in enumerate(weights)
    ]
    with pytest.raises(ValidationError):
        assessment_tools.save_tool_set(co, tools, "prof")
    assert AssessmentTool.query.count() == 0


def test_fractional_weightages_summing_to_hundred(co):
    saved = assessment_tools.save_tool_set(co, [
        {"toolName": "Quiz", "weightage": 33.3, "maxMarks": 10},
        {"toolName": "Test", "weightage": 33.3, "maxMarks": 50},
        {"toolName": "Seminar", "weightage": 33.4, "maxMarks": 20},
    ], "prof")

    assert [t.tool_name for t in saved] == ["Quiz", "Test", "Seminar"]
    assert co_is_complete(co)


def test_duplicate_names_case_insensitive(co):
    with pytest.raises(ValidationError):
        assessment_tools.save_tool_set(co, [
            {"toolName": "Quiz", "weightage": 50, "maxMarks": 10},
            {"toolName": "quiz", "weightage": 50, "maxMarks": 10},
        ], "prof")
    assert AssessmentTool.query.count() == 0


@pytest.mark.parametrize("bad", [
    {"toolName": "", "weightage": 100, "maxMarks": 10},
    {"toolName": "Quiz", "weightage": 100, "maxMarks": 0},
    {"toolName": "Quiz", "weightage": -5, "maxMarks": 10},
    {"toolName": "Quiz", "weightage": "lots", "maxMarks": 10},
])
def test_malformed_tool_rejected(co, bad):
    with pytest.raises(ValidationError):
        assessment_tools.save_tool_set(co, [bad], "prof")


def test_resave_swaps_names_and_drops_missing_tools(classroom, co):
    quiz, test_tool, lab = assessment_tools.save_tool_set(co, [
        {"toolName": "Quiz", "weightage": 20, "maxMarks": 10},
        {"toolName": "Test", "weightage": 40, "maxMarks": 50},
        {"toolName": "Lab", "weightage": 40, "maxMarks": 40},
    ], "prof")
    marks.save_marks_for_tool(classroom.staff, lab, [{"regno": "R001", "marks": 30}])
    quiz_id, test_id = quiz.tool_id, test_tool.tool_id

    saved = assessment_tools.save_tool_set(co, [
        {"toolId": quiz_id, "toolName": "Test", "weightage": 50, "maxMarks": 10},
        {"toolId": test_id, "toolName": "Quiz", "weightage": 50, "maxMarks": 50},
    ], "prof")

    names = {t.tool_id: t.tool_name for t in saved}
    assert names == {quiz_id: "Test", test_id: "Quiz"}
    assert AssessmentTool.query.count() == 2
    assert StudentToolMark.query.count() == 0


def test_tool_id_from_another_co_rejected(classroom, co):
    course_outcomes.resize_partitions(classroom.course, 2, 0, 0, "prof")
    other = course_outcomes.list_course_outcomes(classroom.course)[1]
    (foreign,) = assessment_tools.save_tool_set(other, [
        {"toolName": "Quiz", "weightage": 100, "maxMarks": 10},
    ], "prof")

    with pytest.raises(ValidationError):
        assessment_tools.save_tool_set(co, [
            {"toolId": foreign.tool_id, "toolName": "Quiz", "weightage": 100, "maxMarks": 10},
        ], "prof")


def test_single_tool_crud(co):
    tool = assessment_tools.create_tool(co, {"toolName": "Quiz", "weightage": 40, "maxMarks": 10}, "prof")
    assert not co_is_complete(co)

    with pytest.raises(ConflictError):
        assessment_tools.create_tool(co, {"toolName": "QUIZ", "weightage": 60, "maxMarks": 10}, "prof")

    assessment_tools.update_tool(tool, {"toolName": "Quiz", "weightage": 100, "maxMarks": 20}, "prof")
    assert co_is_complete(co)
    assert assessment_tools.serialize_tool(tool)["maxMarks"] == 20

    assessment_tools.delete_tool(tool)
    assert AssessmentTool.query.count() == 0
