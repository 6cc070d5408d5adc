import logging
from datetime import date, datetime

from extensions import db
from models import Course, PeriodAttendance, Student, StudentCourse, ATTENDANCE_STATUSES, DAYS_OF_WEEK
from services.curriculum import staff_section_ids
from services.db_utils import parse_int, transaction
from services.errors import AuthorizationError, ValidationError
from services.mark_aggregation import round_half_up
from services.timetable import has_period

logger = logging.getLogger(__name__)


def parse_date(value):
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError("date must be in YYYY-MM-DD format")


def _resolve_day(attendance_date, day):
    weekday = attendance_date.weekday()
    actual = DAYS_OF_WEEK[weekday] if weekday < len(DAYS_OF_WEEK) else None
    if not day:
        if actual is None:
            raise ValidationError(f"{attendance_date} is not a working day")
        return actual
    day = day.strip().upper()
    if day not in DAYS_OF_WEEK:
        raise ValidationError(f"dayOfWeek must be one of {', '.join(DAYS_OF_WEEK)}")
    if day != actual:
        raise ValidationError(f"{attendance_date} is not a {day}")
    return day


def mark_attendance(actor, course, period_number, attendance_date, entries,
                    day=None, section_id=None, as_admin=False):
    """
    Record P/A/OD for one timetabled period of a course.

    Staff may only mark students of sections assigned to them and never
    overwrite a record an admin has set; admins (``as_admin=True``) may mark
    any enrolled student. Bad rows are skipped with a reason instead of
    failing the batch.

    Returns ``(processed, skipped)``.
    """
    if not isinstance(entries, list) or not entries:
        raise ValidationError("attendances array is required")

    attendance_date = parse_date(attendance_date)
    day = _resolve_day(attendance_date, day)
    period_number = parse_int(period_number, "periodNumber")
    if section_id not in (None, ""):
        section_id = parse_int(section_id, "sectionId")
    else:
        section_id = None

    if as_admin:
        allowed_sections = None
    else:
        allowed_sections = staff_section_ids(actor.user_id, course.course_id)
        if not allowed_sections or (section_id is not None and section_id not in allowed_sections):
            suffix = f" section {section_id}" if section_id is not None else ""
            raise AuthorizationError(
                f"You are not authorized to mark attendance for course {course.course_code}{suffix}"
            )

    if not has_period(course.course_id, day, period_number):
        raise ValidationError(
            f"Invalid period: {course.course_code} has no class on {day} period {period_number}"
        )

    updated_by = "admin" if as_admin else "staff"
    processed = []
    skipped = []

    with transaction():
        for entry in entries:
            regno = str(entry.get("regno") or "").strip()
            status = (entry.get("status") or "").strip().upper()
            if not regno or status not in ATTENDANCE_STATUSES:
                skipped.append({"regno": regno or "unknown", "reason": "Invalid regno or status"})
                continue

            enrollment = (
                StudentCourse.query
                .join(Student, StudentCourse.student_id == Student.student_id)
                .filter(Student.register_no == regno, StudentCourse.course_id == course.course_id)
                .first()
            )
            if not enrollment:
                skipped.append({"regno": regno, "reason": f"Not enrolled in course {course.course_code}"})
                continue
            if section_id is not None and enrollment.section_id != section_id:
                skipped.append({
                    "regno": regno,
                    "reason": f"Student in section {enrollment.section_id}, but period is for section {section_id}"
                })
                continue
            if allowed_sections is not None and enrollment.section_id not in allowed_sections:
                skipped.append({
                    "regno": regno,
                    "reason": f"Student's section {enrollment.section_id} not assigned to you"
                })
                continue

            record = PeriodAttendance.query.filter_by(
                student_id=enrollment.student_id,
                course_id=course.course_id,
                attendance_date=attendance_date,
                period_number=period_number
            ).first()
            if record and record.updated_by == "admin" and not as_admin:
                skipped.append({"regno": regno, "reason": "Attendance marked by admin"})
                continue

            if record:
                record.status = status
                record.staff_id = actor.user_id
                record.section_id = enrollment.section_id
                record.updated_by = updated_by
            else:
                db.session.add(PeriodAttendance(
                    student_id=enrollment.student_id,
                    staff_id=actor.user_id,
                    course_id=course.course_id,
                    section_id=enrollment.section_id,
                    attendance_date=attendance_date,
                    day_of_week=day,
                    period_number=period_number,
                    status=status,
                    updated_by=updated_by
                ))
            processed.append({"regno": regno, "status": status, "sectionId": enrollment.section_id})

    logger.info(
        "Attendance %s P%s %s: %d processed, %d skipped",
        course.course_code, period_number, attendance_date, len(processed), len(skipped)
    )
    return processed, skipped


def attendance_summary(student, semester_id):
    """Present/total and percentage per course of a semester; OD counts as present."""
    rows = (
        db.session.query(PeriodAttendance.course_id, PeriodAttendance.status, db.func.count())
        .join(Course, PeriodAttendance.course_id == Course.course_id)
        .filter(PeriodAttendance.student_id == student.student_id, Course.semester_id == semester_id)
        .group_by(PeriodAttendance.course_id, PeriodAttendance.status)
        .all()
    )
    totals = {}
    for course_id, status, count in rows:
        bucket = totals.setdefault(course_id, {"present": 0, "total": 0})
        bucket["total"] += count
        if status in ("P", "OD"):
            bucket["present"] += count

    summary = []
    for course_id, counts in sorted(totals.items()):
        course = db.session.get(Course, course_id)
        percentage = round_half_up(counts["present"] * 100.0 / counts["total"]) if counts["total"] else 0.0
        summary.append({
            "courseId": course_id,
            "courseCode": course.course_code,
            "courseTitle": course.course_title,
            "present": counts["present"],
            "total": counts["total"],
            "percentage": percentage,
        })
    return summary
