"""
End-of-semester letter grades, GPA and CGPA.

Grades are uploaded as a sheet with a register number column followed by
one column per course code. GPA is credit weighted over a semester's graded
courses; CGPA over every semester up to and including that one. A "U" grade
and zero-credit courses are left out of both.
"""
import logging
from datetime import datetime

import pandas as pd

from extensions import db
from models import Course, Semester, Student, StudentGrade, StudentSemesterGpa, GRADE_POINTS
from services.db_utils import transaction, upsert
from services.errors import ValidationError
from services.marks import REGNO_COLUMNS, read_upload_frame
from services.mark_aggregation import round_half_up

logger = logging.getLogger(__name__)

NOT_GRADED = ("", "-", "AB", "ABSENT")


def compute_gpa(graded):
    """``graded`` is an iterable of (credits, grade); None when nothing counts."""
    total_points = 0
    total_credits = 0
    for credits, grade in graded:
        if grade == "U" or not credits or credits <= 0:
            continue
        total_points += credits * GRADE_POINTS[grade]
        total_credits += credits
    if total_credits == 0:
        return None
    return round_half_up(total_points / total_credits, 2)


def semester_gpa(student_id, semester):
    rows = (
        db.session.query(Course.credits, StudentGrade.grade)
        .join(StudentGrade, StudentGrade.course_id == Course.course_id)
        .filter(
            StudentGrade.student_id == student_id,
            Course.semester_id == semester.semester_id
        )
        .all()
    )
    return compute_gpa(rows)


def cumulative_gpa(student_id, semester):
    rows = (
        db.session.query(Course.credits, StudentGrade.grade)
        .join(StudentGrade, StudentGrade.course_id == Course.course_id)
        .join(Semester, Semester.semester_id == Course.semester_id)
        .filter(
            StudentGrade.student_id == student_id,
            Semester.semester_number <= semester.semester_number
        )
        .all()
    )
    return compute_gpa(rows)


def read_grade_sheet(file_storage):
    """
    (records, skipped): records are (regno, course_code, grade) triples.
    Blank, "-" and absent cells are not grades and are passed over quietly;
    anything else outside the grade scale is reported.
    """
    df = read_upload_frame(file_storage, "grades")
    if df.empty:
        raise ValidationError("Grades file is empty")

    regno_col = next((c for c in REGNO_COLUMNS if c in df.columns), None)
    if not regno_col:
        raise ValidationError("File must have a 'regno' column")
    course_cols = [c for c in df.columns if c != regno_col and c and not c.startswith("unnamed")]
    if not course_cols:
        raise ValidationError("File has no course code columns")

    records = []
    skipped = []
    for index, row in df.iterrows():
        regno = row.get(regno_col)
        if pd.isna(regno) or not str(regno).strip():
            skipped.append(f"Row {index + 2}: missing register number")
            continue
        regno = str(regno).strip()

        for column in course_cols:
            raw = row.get(column)
            value = "" if pd.isna(raw) else str(raw).strip().upper()
            if value in NOT_GRADED:
                continue
            if value not in GRADE_POINTS:
                skipped.append(f"Row {index + 2}: invalid grade '{raw}' for {column.upper()}")
                continue
            records.append((regno, column.upper(), value))

    return records, skipped


def upload_grades(semester, file_storage, actor):
    """
    Upsert every grade in the sheet, then store GPA and CGPA for ``semester``
    for each student whose grades changed. Unknown students and courses are
    skipped and reported; the rest goes in one transaction.
    """
    records, skipped = read_grade_sheet(file_storage)

    regnos = {regno for regno, _, _ in records}
    codes = {code for _, code, _ in records}
    students = {
        s.register_no: s
        for s in Student.query.filter(Student.register_no.in_(regnos)).all()
    } if regnos else {}
    courses = {
        c.course_code: c
        for c in Course.query.filter(Course.course_code.in_(codes)).all()
    } if codes else {}

    unknown_students = sorted(regnos - set(students))
    unknown_courses = sorted(codes - set(courses))
    skipped.extend(f"Unknown register number {regno}" for regno in unknown_students)
    skipped.extend(f"Unknown course {code}" for code in unknown_courses)

    latest = {}
    for regno, code, grade in records:
        if regno in students and code in courses:
            latest[(students[regno].student_id, courses[code].course_id)] = grade

    if skipped:
        logger.warning("Grade upload for semester %s skipped: %s", semester.semester_id, skipped)
    if not latest:
        return {"inserted": 0, "updated": 0, "skipped": skipped, "studentsWithGpa": 0}

    student_ids = {student_id for student_id, _ in latest}
    existing = {
        (row.student_id, row.course_id)
        for row in StudentGrade.query.filter(StudentGrade.student_id.in_(student_ids)).all()
    }
    updated = len(set(latest) & existing)

    now = datetime.utcnow()
    with transaction():
        upsert(
            StudentGrade,
            [
                {
                    "student_id": student_id,
                    "course_id": course_id,
                    "grade": grade,
                    "uploaded_by": actor,
                    "updated_at": now,
                }
                for (student_id, course_id), grade in latest.items()
            ],
            keys=("student_id", "course_id"),
            update_columns=("grade", "uploaded_by", "updated_at")
        )
        upsert(
            StudentSemesterGpa,
            [
                {
                    "student_id": student_id,
                    "semester_id": semester.semester_id,
                    "gpa": semester_gpa(student_id, semester),
                    "cgpa": cumulative_gpa(student_id, semester),
                    "updated_at": now,
                }
                for student_id in sorted(student_ids)
            ],
            keys=("student_id", "semester_id"),
            update_columns=("gpa", "cgpa", "updated_at")
        )

    logger.info(
        "Grades for semester %s uploaded by %s: %d records, %d students",
        semester.semester_id, actor, len(latest), len(student_ids)
    )
    return {
        "inserted": len(latest) - updated,
        "updated": updated,
        "skipped": skipped,
        "studentsWithGpa": len(student_ids),
    }


def student_gpa(student, semester):
    return {
        "regno": student.register_no,
        "semesterNumber": semester.semester_number,
        "gpa": semester_gpa(student.student_id, semester),
        "cgpa": cumulative_gpa(student.student_id, semester),
    }


def gpa_history(student):
    rows = (
        StudentSemesterGpa.query
        .join(Semester, Semester.semester_id == StudentSemesterGpa.semester_id)
        .filter(StudentSemesterGpa.student_id == student.student_id)
        .order_by(Semester.semester_number.asc())
        .all()
    )
    return [
        {"semesterNumber": row.semester.semester_number, "gpa": row.gpa, "cgpa": row.cgpa}
        for row in rows
    ]


def students_for_grades(batch_id, department_id=None):
    q = Student.query.filter_by(batch_id=batch_id, is_active=True)
    if department_id is not None:
        q = q.filter_by(department_id=department_id)
    return q.order_by(Student.register_no.asc()).all()
