"""
Tabular mark reports.

Numbers come from ``services.mark_aggregation``; this module only arranges
them into rows and renders CSV.
"""
import logging
from io import BytesIO

import pandas as pd

from models import Batch, Course, Semester, Student, StudentCourse, StudentToolMark
from services.errors import NotFoundError
from services.mark_aggregation import compute_co_mark, course_breakdown, round_half_up
from services.marks import students_for_course

logger = logging.getLogger(__name__)

TYPE_COLUMNS = {
    "THEORY": "Avg Theory",
    "PRACTICAL": "Avg Practical",
    "EXPERIENTIAL": "Avg Experiential",
}


def co_wise_rows(staff, co):
    """Raw mark per tool and the consolidated CO mark, one row per student."""
    tools = list(co.tools)
    if not tools:
        raise NotFoundError(f"No tools found for {co.label}")

    students = students_for_course(staff, co.course)
    if not students:
        raise NotFoundError(f"No students found in your section for {co.label}")

    marks = {}
    for row in StudentToolMark.query.filter(
        StudentToolMark.tool_id.in_([t.tool_id for t in tools]),
        StudentToolMark.student_id.in_([s.student_id for s in students])
    ).all():
        marks.setdefault(row.student_id, {})[row.tool_id] = row.marks_obtained

    columns = ["Reg No", "Name"] + [f"{t.tool_name} ({t.max_marks:g})" for t in tools] + ["Consolidated"]
    rows = []
    for student in students:
        student_marks = marks.get(student.student_id, {})
        row = {"Reg No": student.register_no, "Name": student.name}
        for tool, column in zip(tools, columns[2:-1]):
            row[column] = student_marks.get(tool.tool_id, 0)
        row["Consolidated"] = round_half_up(compute_co_mark(tools, student_marks))
        rows.append(row)
    return columns, rows


def course_wise_rows(staff, course):
    """CO marks, per-type averages and the final average per student."""
    students = students_for_course(staff, course)
    if not students:
        raise NotFoundError(f"No students found in your section for {course.course_code}")

    cos, results = course_breakdown(course, [s.student_id for s in students])
    co_labels = [co.label for co in cos]
    columns = ["Reg No", "Name"] + co_labels + list(TYPE_COLUMNS.values()) + ["Final Average"]

    rows = []
    for student in students:
        result = results[student.student_id]
        row = {"Reg No": student.register_no, "Name": student.name}
        row.update(result["co_marks"])
        for co_type, column in TYPE_COLUMNS.items():
            row[column] = result["type_averages"][co_type]
        row["Final Average"] = result["final_average"]
        rows.append(row)
    return columns, rows


def consolidated_marks(batch_id, department_id, semester_number):
    """
    Type averages and final average for every student of a batch and
    department across the courses of one semester.
    """
    batch = Batch.query.filter_by(batch_id=batch_id, is_active=True).first()
    if not batch:
        raise NotFoundError(f"Batch with ID {batch_id} not found")
    semester = Semester.query.filter_by(
        batch_id=batch.batch_id,
        semester_number=semester_number,
        is_active=True
    ).first()
    if not semester:
        raise NotFoundError(f"Semester {semester_number} not found for batch {batch_id}")

    students = (
        Student.query
        .filter_by(batch_id=batch.batch_id, department_id=department_id, is_active=True)
        .order_by(Student.register_no.asc())
        .all()
    )
    courses = (
        Course.query
        .filter_by(semester_id=semester.semester_id, is_active=True)
        .order_by(Course.course_code.asc())
        .all()
    )

    marks = []
    for course in courses:
        enrolled = {
            row.student_id
            for row in StudentCourse.query.filter_by(course_id=course.course_id).all()
        }
        student_ids = [s.student_id for s in students if s.student_id in enrolled]
        if not student_ids:
            continue
        _, results = course_breakdown(course, student_ids)
        for sid in student_ids:
            averages = results[sid]["type_averages"]
            marks.append({
                "studentId": sid,
                "courseId": course.course_id,
                "theory": averages["THEORY"],
                "practical": averages["PRACTICAL"],
                "experiential": averages["EXPERIENTIAL"],
                "finalAverage": results[sid]["final_average"],
            })

    logger.info(
        "Consolidated marks: batch %s dept %s sem %s -> %d students, %d courses",
        batch_id, department_id, semester_number, len(students), len(courses)
    )
    return {
        "students": [
            {"studentId": s.student_id, "regno": s.register_no, "name": s.name}
            for s in students
        ],
        "courses": [
            {"courseId": c.course_id, "courseCode": c.course_code, "courseTitle": c.course_title}
            for c in courses
        ],
        "marks": marks,
    }


def rows_to_csv(columns, rows):
    """Render report rows as CSV in a BytesIO ready for ``send_file``."""
    df = pd.DataFrame(rows, columns=columns)
    output = BytesIO()
    output.write(df.to_csv(index=False).encode("utf-8"))
    output.seek(0)
    return output
