import pytest

from services import assessment_tools, course_outcomes, marks, reports
from services.errors import NotFoundError


@pytest.fixture
def graded(classroom):
    _, (theory, practical) = course_outcomes.save_partitions(classroom.course, 1, 1, 0, "prof")
    quiz, test_tool = assessment_tools.save_tool_set(theory, [
        {"toolName": "Quiz", "weightage": 40, "maxMarks": 20},
        {"toolName": "Test", "weightage": 60, "maxMarks": 50},
    ], "prof")
    (lab,) = assessment_tools.save_tool_set(practical, [
        {"toolName": "Lab", "weightage": 100, "maxMarks": 25},
    ], "prof")
    marks.save_marks_for_tool(classroom.staff, quiz, [
        {"regno": "R001", "marks": 15},
        {"regno": "R002", "marks": 20},
    ])
    marks.save_marks_for_tool(classroom.staff, test_tool, [{"regno": "R001", "marks": 40}])
    marks.save_marks_for_tool(classroom.staff, lab, [
        {"regno": "R001", "marks": 20},
        {"regno": "R002", "marks": 25},
    ])
    return theory, practical


def test_co_wise_rows(classroom, graded):
    theory, _ = graded
    columns, rows = reports.co_wise_rows(classroom.staff, theory)

    assert columns == ["Reg No", "Name", "Quiz (20)", "Test (50)", "Consolidated"]
    assert rows == [
        {"Reg No": "R001", "Name": "Asha", "Quiz (20)": 15, "Test (50)": 40, "Consolidated": 78.0},
        {"Reg No": "R002", "Name": "Bala", "Quiz (20)": 20, "Test (50)": 0, "Consolidated": 40.0},
    ]


def test_course_wise_rows(classroom, graded):
    columns, rows = reports.course_wise_rows(classroom.staff, classroom.course)

    assert columns == [
        "Reg No", "Name", "CO1", "CO2",
        "Avg Theory", "Avg Practical", "Avg Experiential", "Final Average",
    ]
    asha, bala = rows
    assert (asha["CO1"], asha["CO2"], asha["Final Average"]) == (78.0, 80.0, 79.0)
    assert asha["Avg Experiential"] is None
    assert (bala["Avg Theory"], bala["Avg Practical"], bala["Final Average"]) == (40.0, 100.0, 70.0)


def test_csv_rendering(classroom, graded):
    columns, rows = reports.course_wise_rows(classroom.staff, classroom.course)
    lines = reports.rows_to_csv(columns, rows).getvalue().decode("utf-8").splitlines()

    assert lines[0] == "Reg No,Name,CO1,CO2,Avg Theory,Avg Practical,Avg Experiential,Final Average"
    assert lines[1] == "R001,Asha,78.0,80.0,78.0,80.0,,79.0"


def test_co_without_tools(classroom):
    _, (co,) = course_outcomes.save_partitions(classroom.course, 1, 0, 0, "prof")
    with pytest.raises(NotFoundError):
        reports.co_wise_rows(classroom.staff, co)


def test_consolidated_marks(classroom, graded):
    data = reports.consolidated_marks(
        classroom.semester.batch_id, classroom.department.department_id, 1
    )

    assert [s["regno"] for s in data["students"]] == ["R001", "R002"]
    assert [c["courseCode"] for c in data["courses"]] == ["CS301"]
    by_student = {m["studentId"]: m for m in data["marks"]}
    asha = by_student[classroom.students[0].student_id]
    assert (asha["theory"], asha["practical"], asha["experiential"], asha["finalAverage"]) == (
        78.0, 80.0, None, 79.0
    )


def test_consolidated_unknown_semester(classroom):
    with pytest.raises(NotFoundError):
        reports.consolidated_marks(classroom.semester.batch_id, classroom.department.department_id, 7)
