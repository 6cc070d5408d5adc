import logging
import math
from datetime import datetime

import pandas as pd

from models import Student, StudentCourse, StudentToolMark
from services.curriculum import staff_section_ids
from services.db_utils import transaction, upsert
from services.errors import AuthorizationError, ValidationError

logger = logging.getLogger(__name__)

REGNO_COLUMNS = ("regno", "reg no", "register no", "register number")
MARKS_COLUMNS = ("marks", "marks obtained")


def _teaching_sections(staff, course):
    section_ids = staff_section_ids(staff.user_id, course.course_id)
    if not section_ids:
        raise AuthorizationError(f"You are not assigned to course {course.course_code}")
    return section_ids


def students_for_course(staff, course, section_id=None):
    """Students enrolled in the sections of ``course`` that ``staff`` teaches."""
    section_ids = _teaching_sections(staff, course)
    if section_id is not None:
        if int(section_id) not in section_ids:
            raise AuthorizationError(f"You are not assigned to section {section_id}")
        section_ids = {int(section_id)}

    return (
        Student.query
        .join(StudentCourse, StudentCourse.student_id == Student.student_id)
        .filter(
            StudentCourse.course_id == course.course_id,
            StudentCourse.section_id.in_(section_ids)
        )
        .order_by(Student.register_no.asc())
        .all()
    )


def _parse_mark(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        mark = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(mark) or math.isinf(mark):
        return None
    return mark


def save_marks_for_tool(staff, tool, entries):
    """
    Record raw marks for one tool.

    ``entries`` is a list of ``{"regno": ..., "marks": ...}``. Nothing is
    written unless every register number belongs to the staff's sections and
    every mark is a number within ``0..max_marks``.
    """
    if not isinstance(entries, list) or not entries:
        raise ValidationError("marks array is required")

    course = tool.course_outcome.course
    students = {s.register_no: s for s in students_for_course(staff, course)}

    invalid_regnos = []
    bad_marks = []
    cleaned = []
    for entry in entries:
        regno = str(entry.get("regno") or entry.get("regNo") or "").strip()
        mark = _parse_mark(entry.get("marks"))
        if regno not in students:
            invalid_regnos.append(regno)
            continue
        if mark is None or mark < 0 or mark > tool.max_marks:
            bad_marks.append(f"{regno}: marks must be between 0 and {tool.max_marks:g}")
            continue
        cleaned.append((students[regno], mark))

    if invalid_regnos:
        raise ValidationError(
            "Students not enrolled in your section(s): " + ", ".join(invalid_regnos),
            details=invalid_regnos
        )
    if bad_marks:
        raise ValidationError("Invalid marks", details=bad_marks)

    # Last writer wins, one row per (student, tool) even under concurrent saves
    latest = {student.student_id: mark for student, mark in cleaned}
    now = datetime.utcnow()
    with transaction():
        upsert(
            StudentToolMark,
            [
                {
                    "student_id": student_id,
                    "tool_id": tool.tool_id,
                    "marks_obtained": mark,
                    "entered_by": staff.user_id,
                    "updated_at": now,
                }
                for student_id, mark in latest.items()
            ],
            keys=("student_id", "tool_id"),
            update_columns=("marks_obtained", "entered_by", "updated_at")
        )

    logger.info("Saved %d marks for tool %s by staff %s", len(cleaned), tool.tool_id, staff.user_id)
    return len(cleaned)


def _pick_column(columns, candidates):
    for name in candidates:
        if name in columns:
            return name
    return None


def read_upload_frame(file_storage, label="marks"):
    """CSV or XLSX upload as a frame of strings with lower-cased, stripped headers."""
    filename = (getattr(file_storage, "filename", "") or "").lower()
    stream = getattr(file_storage, "stream", file_storage)
    try:
        if filename.endswith(".csv"):
            df = pd.read_csv(stream, dtype=str)
        elif filename.endswith((".xlsx", ".xls")):
            df = pd.read_excel(stream, dtype=str)
        else:
            raise ValidationError("Invalid file format. Only .csv and .xlsx files are accepted.")
    except (ValueError, pd.errors.ParserError) as exc:
        raise ValidationError(f"Could not read {label} file: {exc}")

    df.columns = [str(c).strip().lower() for c in df.columns]
    return df


def import_marks_for_tool(staff, tool, file_storage):
    """
    Bulk marks from a CSV/XLSX upload with ``regno`` and ``marks`` columns.

    Rows with a blank register number or a non-numeric mark are skipped and
    reported; everything else goes through ``save_marks_for_tool``.
    """
    df = read_upload_frame(file_storage)
    if df.empty:
        raise ValidationError("Marks file is empty")

    regno_col = _pick_column(df.columns, REGNO_COLUMNS)
    marks_col = _pick_column(df.columns, MARKS_COLUMNS)
    if not regno_col or not marks_col:
        raise ValidationError("File must have 'regno' and 'marks' columns")

    entries = []
    skipped = []
    for index, row in df.iterrows():
        regno = row.get(regno_col)
        raw = row.get(marks_col)
        if pd.isna(regno) or not str(regno).strip():
            skipped.append(f"Row {index + 2}: missing register number")
            continue
        mark = None if pd.isna(raw) else _parse_mark(str(raw).strip())
        if mark is None:
            skipped.append(f"Row {index + 2}: marks '{raw}' is not a number")
            continue
        entries.append({"regno": str(regno).strip(), "marks": mark})

    if skipped:
        logger.warning("Import for tool %s skipped %d rows: %s", tool.tool_id, len(skipped), skipped)
    if not entries:
        raise ValidationError("No valid rows in marks file", details=skipped)

    saved = save_marks_for_tool(staff, tool, entries)
    return {"saved": saved, "skipped": skipped}


def marks_for_tool(staff, tool):
    course = tool.course_outcome.course
    students = students_for_course(staff, course)
    recorded = {
        row.student_id: row.marks_obtained
        for row in StudentToolMark.query.filter_by(tool_id=tool.tool_id).all()
    }
    return [
        {
            "regno": s.register_no,
            "name": s.name,
            "marks": recorded.get(s.student_id),
        }
        for s in students
    ]
