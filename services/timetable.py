import logging

from flask import current_app

from extensions import db
from models import Course, Department, Section, Semester, TimetableEntry, DAYS_OF_WEEK
from services.db_utils import get_or_404, parse_int, transaction
from services.errors import ConflictError, ValidationError

logger = logging.getLogger(__name__)


def _clean_entry(data):
    course = get_or_404(Course, parse_int(data.get("courseId"), "courseId"), "Course")
    if not course.is_active:
        raise ValidationError(f"Course {course.course_code} is not active")

    day = (data.get("dayOfWeek") or "").strip().upper()
    if day not in DAYS_OF_WEEK:
        raise ValidationError(f"dayOfWeek must be one of {', '.join(DAYS_OF_WEEK)}")

    period = parse_int(data.get("periodNumber"), "periodNumber")
    if period not in current_app.config["TEACHING_PERIODS"]:
        raise ValidationError(f"Invalid periodNumber {period}")

    department = get_or_404(Department, parse_int(data.get("departmentId"), "departmentId"), "Department")
    semester = get_or_404(Semester, parse_int(data.get("semesterId"), "semesterId"), "Semester")
    if course.semester_id != semester.semester_id:
        raise ValidationError(
            f"Course {course.course_code} is not offered in semester {semester.semester_id}"
        )

    section_id = data.get("sectionId")
    if section_id not in (None, ""):
        section = db.session.get(Section, parse_int(section_id, "sectionId"))
        if not section or not section.is_active or section.course_id != course.course_id:
            raise ValidationError(f"Invalid section {section_id} for course {course.course_code}")
        section_id = section.section_id
    else:
        section_id = None

    return {
        "course_id": course.course_id,
        "section_id": section_id,
        "day_of_week": day,
        "period_number": period,
        "department_id": department.department_id,
        "semester_id": semester.semester_id,
    }


def _check_slot_free(semester_id, day, period, exclude_id=None):
    q = TimetableEntry.query.filter_by(
        semester_id=semester_id,
        day_of_week=day,
        period_number=period,
        is_active=True
    )
    if exclude_id is not None:
        q = q.filter(TimetableEntry.timetable_id != exclude_id)
    if q.first():
        raise ConflictError(f"Time slot {day} period {period} already assigned")


def create_entry(data, actor):
    fields = _clean_entry(data)
    _check_slot_free(fields["semester_id"], fields["day_of_week"], fields["period_number"])
    with transaction():
        entry = TimetableEntry(is_active=True, created_by=actor, updated_by=actor, **fields)
        db.session.add(entry)
        db.session.flush()
    logger.info("Timetable entry %s created (%s P%s)", entry.timetable_id, entry.day_of_week, entry.period_number)
    return entry


def update_entry(entry, data, actor):
    fields = _clean_entry(data)
    _check_slot_free(
        fields["semester_id"], fields["day_of_week"], fields["period_number"],
        exclude_id=entry.timetable_id
    )
    with transaction():
        for key, value in fields.items():
            setattr(entry, key, value)
        entry.updated_by = actor
    return entry


def delete_entry(entry):
    timetable_id = entry.timetable_id
    with transaction():
        db.session.delete(entry)
    logger.info("Timetable entry %s deleted", timetable_id)


def entries_for_semester(semester_id):
    return (
        TimetableEntry.query
        .filter_by(semester_id=semester_id, is_active=True)
        .order_by(TimetableEntry.day_of_week.asc(), TimetableEntry.period_number.asc())
        .all()
    )


def has_period(course_id, day, period):
    return TimetableEntry.query.filter_by(
        course_id=course_id,
        day_of_week=day,
        period_number=period,
        is_active=True
    ).first() is not None


def serialize_entry(entry):
    return {
        "timetableId": entry.timetable_id,
        "courseId": entry.course_id,
        "courseCode": entry.course.course_code if entry.course else None,
        "courseTitle": entry.course.course_title if entry.course else None,
        "sectionId": entry.section_id,
        "dayOfWeek": entry.day_of_week,
        "periodNumber": entry.period_number,
        "departmentId": entry.department_id,
        "semesterId": entry.semester_id,
    }
