"""
Elective allocation.

Two policies. Direct allocation records one course per elective bucket and
enrolls the student on the spot. CBCS rounds take either first-come
first-served submissions (enrolled immediately) or ranked OPT preferences,
which an admin later turns into enrollments with ``run_opt_allocation``.
Every enrollment claims a seat, and a full section is never overcommitted.
"""
import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import (
    Course, ElectiveBucketCourse, Student, StudentCourse, StudentCourseChoice,
    StudentElectiveSelection, ELECTIVE_CATEGORIES
)
from services import roster
from services.cbcs import active_round
from services.curriculum import claim_seat, enroll, enrolled_section, list_sections
from services.db_utils import parse_int, transaction
from services.errors import AuthorizationError, ConflictError, ValidationError

logger = logging.getLogger(__name__)


def _optional_int(value, field):
    if value is None or str(value).strip() == "":
        return None
    return parse_int(value, field)


def _section_staff(cbcs):
    """course_id -> [(section_id, staff_id), ...] as mapped on the round."""
    mapping = {}
    for subject in cbcs.subjects:
        mapping[subject.course_id] = [(m.section_id, m.staff_id) for m in subject.section_staff]
    return mapping


def _staff_for_section(cbcs, course_id, section_id):
    for mapped_section, staff_id in _section_staff(cbcs).get(course_id, []):
        if mapped_section == section_id:
            return staff_id
    return None


def _roster_entry(cbcs, student, enrollment):
    """The roster row an enrollment will add, or None when it has no roster block."""
    if not cbcs or not cbcs.allocation_excel_path:
        return None
    staff_id = enrollment.staff_id or _staff_for_section(cbcs, enrollment.course_id, enrollment.section_id)
    if staff_id is None:
        logger.warning(
            "No staff mapped for course %s section %s in round %s; roster not updated",
            enrollment.course_id, enrollment.section_id, cbcs.cbcs_id
        )
        return None
    return (
        cbcs.allocation_excel_path,
        enrollment.course_id,
        staff_id,
        student.register_no,
        student.name,
    )


def _write_roster(entries):
    """Append committed enrollments to their roster workbooks, in order."""
    for path, course_id, staff_id, regno, name in entries:
        roster.append_student(path, course_id, staff_id, regno, name)


def _check_student_semester(student, semester):
    if semester.batch_id != student.batch_id:
        raise AuthorizationError(
            f"{student.register_no} does not belong to the batch of semester {semester.semester_id}"
        )


def _check_student_round(student, cbcs):
    if cbcs.batch_id != student.batch_id or cbcs.department_id != student.department_id:
        raise AuthorizationError(f"CBCS round {cbcs.cbcs_id} is not open to {student.register_no}")


# =========================================================
# DIRECT POLICY
# =========================================================
def _clean_direct_selections(student, semester, selections):
    if not isinstance(selections, list) or not selections:
        raise ValidationError("semesterId and selections are required")

    cleaned = []
    seen_buckets = set()
    for selection in selections:
        bucket_id = parse_int(selection.get("bucketId"), "bucketId")
        course_id = parse_int(selection.get("courseId"), "courseId")
        section_id = _optional_int(selection.get("sectionId"), "sectionId")

        if bucket_id in seen_buckets:
            raise ValidationError(f"Only one course may be selected from bucket {bucket_id}")
        seen_buckets.add(bucket_id)

        link = ElectiveBucketCourse.query.filter_by(bucket_id=bucket_id, course_id=course_id).first()
        if (
            not link
            or link.bucket.semester_id != semester.semester_id
            or not link.course.is_active
        ):
            raise ValidationError(f"Invalid course {course_id} for bucket {bucket_id}")

        if StudentElectiveSelection.query.filter_by(
            student_id=student.student_id, bucket_id=bucket_id
        ).first():
            raise ConflictError(f"{student.register_no} already has a selection for bucket {bucket_id}")

        cleaned.append((link.bucket, link.course, section_id))
    return cleaned


def allocate_direct(student, semester, selections, actor):
    """
    Enroll a student in the semester's mandatory courses and one elective
    per bucket. All or nothing: any failure leaves no selection, enrollment
    or seat behind, and the roster is only written once the enrollments
    are committed.
    """
    _check_student_semester(student, semester)
    cleaned = _clean_direct_selections(student, semester, selections)
    cbcs = active_round(semester.semester_id, student.department_id, "FCFS")

    mandatory = (
        Course.query
        .filter(
            Course.semester_id == semester.semester_id,
            Course.is_active.is_(True),
            Course.category.notin_(ELECTIVE_CATEGORIES)
        )
        .order_by(Course.course_code.asc())
        .all()
    )

    enrolled = []
    roster_rows = []
    try:
        with transaction():
            for course in mandatory:
                if enrolled_section(student.student_id, course.course_id) is None:
                    enroll(student, course, actor)
                    enrolled.append(course.course_code)

            for bucket, course, section_id in cleaned:
                db.session.add(StudentElectiveSelection(
                    student_id=student.student_id,
                    bucket_id=bucket.bucket_id,
                    selected_course_id=course.course_id,
                    status="allocated",
                    created_by=actor
                ))
                db.session.flush()

                enrollment = enroll(student, course, actor, section_id=section_id)
                if cbcs:
                    enrollment.staff_id = _staff_for_section(cbcs, course.course_id, enrollment.section_id)
                    roster_rows.append(_roster_entry(cbcs, student, enrollment))
                enrolled.append(course.course_code)
    except IntegrityError:
        raise ConflictError(f"{student.register_no} already has a selection for one of these buckets")

    _write_roster(row for row in roster_rows if row)
    logger.info("Direct allocation for %s: %s", student.register_no, enrolled)
    return enrolled


# =========================================================
# CBCS ROUNDS
# =========================================================
def _clean_round_choices(student, cbcs, selections):
    if not isinstance(selections, list) or not selections:
        raise ValidationError("selections are required")

    mapping = _section_staff(cbcs)
    cleaned = []
    seen = set()
    for selection in selections:
        course_id = parse_int(selection.get("courseId"), "courseId")
        section_id = _optional_int(selection.get("sectionId"), "sectionId")
        staff_id = _optional_int(selection.get("staffId"), "staffId")

        if course_id not in mapping:
            raise ValidationError(f"Course {course_id} is not offered in CBCS round {cbcs.cbcs_id}")
        if course_id in seen:
            raise ValidationError(f"Course {course_id} selected more than once")
        seen.add(course_id)

        pairs = mapping[course_id]
        if section_id is not None and pairs:
            allowed = {s for s, _ in pairs}
            if section_id not in allowed:
                raise ValidationError(f"Section {section_id} is not offered for course {course_id}")
            if staff_id is None:
                staff_id = _staff_for_section(cbcs, course_id, section_id)
            elif (section_id, staff_id) not in pairs:
                raise ValidationError(
                    f"Staff {staff_id} does not teach section {section_id} of course {course_id}"
                )

        cleaned.append({
            "course": db.session.get(Course, course_id),
            "section_id": section_id,
            "staff_id": staff_id,
        })
    return cleaned


def submit_round_choices(student, cbcs, selections, actor):
    """
    FCFS rounds enroll each selection immediately and, once committed,
    append them to the roster; OPT rounds store the ranked choices (replacing any earlier
    submission) for ``run_opt_allocation``.
    """
    _check_student_round(student, cbcs)
    if cbcs.complete or not cbcs.is_active:
        raise ConflictError(f"CBCS round {cbcs.cbcs_id} is closed")

    cleaned = _clean_round_choices(student, cbcs, selections)

    if cbcs.type != "FCFS":
        with transaction():
            StudentCourseChoice.query.filter_by(
                student_id=student.student_id, cbcs_id=cbcs.cbcs_id
            ).delete(synchronize_session=False)
            db.session.flush()
            for order, choice in enumerate(cleaned, start=1):
                db.session.add(StudentCourseChoice(
                    student_id=student.student_id,
                    cbcs_id=cbcs.cbcs_id,
                    course_id=choice["course"].course_id,
                    staff_id=choice["staff_id"],
                    section_id=choice["section_id"],
                    preference_order=order,
                    created_by=actor
                ))
        logger.info("Stored %d OPT choices for %s in round %s", len(cleaned), student.register_no, cbcs.cbcs_id)
        return {"type": cbcs.type, "choices": len(cleaned), "enrolled": []}

    enrolled = []
    roster_rows = []
    with transaction():
        for choice in cleaned:
            course = choice["course"]
            enrollment = enroll(
                student, course, actor,
                section_id=choice["section_id"],
                staff_id=choice["staff_id"]
            )
            if enrollment.staff_id is None:
                enrollment.staff_id = _staff_for_section(cbcs, course.course_id, enrollment.section_id)
            roster_rows.append(_roster_entry(cbcs, student, enrollment))
            enrolled.append(course.course_code)

    _write_roster(row for row in roster_rows if row)
    logger.info("FCFS enrollment for %s in round %s: %s", student.register_no, cbcs.cbcs_id, enrolled)
    return {"type": cbcs.type, "choices": len(cleaned), "enrolled": enrolled}


def _seat_in(section_ids):
    for section_id in section_ids:
        if claim_seat(section_id):
            return section_id
    return None


def _candidate_sections(cbcs_mapping, course, preferred_section_id=None):
    if preferred_section_id is not None:
        return [preferred_section_id]
    mapped = [section_id for section_id, _ in cbcs_mapping.get(course.course_id, [])]
    return mapped or [s.section_id for s in list_sections(course)]


def run_opt_allocation(cbcs, actor):
    """
    Turn the ranked OPT choices of a round into enrollments.

    For every student with choices: their top preferences first, then the
    round's remaining subjects in order until the elective quota is met.
    A course is never given twice to the same student, and a full section
    means the course is skipped and reported for that student, as is a
    preferred course deactivated since the choices were made. The whole
    run is one transaction; the round is marked complete at the end and
    the roster written after the commit.
    """
    if cbcs.type != "OPT":
        raise ValidationError(f"CBCS round {cbcs.cbcs_id} is not an OPT round")
    if cbcs.complete:
        raise ConflictError(f"CBCS round {cbcs.cbcs_id} has already been allocated")

    quota = current_app.config["ELECTIVE_QUOTA"]
    top = current_app.config["OPT_TOP_PREFERENCES"]
    mapping = _section_staff(cbcs)
    round_courses = [s.course for s in cbcs.subjects]

    student_ids = [
        row[0] for row in
        db.session.query(StudentCourseChoice.student_id)
        .filter_by(cbcs_id=cbcs.cbcs_id)
        .distinct()
        .order_by(StudentCourseChoice.student_id.asc())
        .all()
    ]

    report = []
    roster_rows = []
    with transaction():
        for student_id in student_ids:
            student = db.session.get(Student, student_id)
            held = {
                row.course_id
                for row in StudentCourse.query.filter_by(student_id=student_id).all()
            }
            taken = len(held & set(mapping))
            tried = set()
            allocated = []
            skipped = []

            def allocate(course, section_ids, staff_id=None):
                tried.add(course.course_id)
                section_id = _seat_in(section_ids)
                if section_id is None:
                    skipped.append({"courseCode": course.course_code, "reason": "No seat available"})
                    return False
                enrollment = StudentCourse(
                    student_id=student_id,
                    course_id=course.course_id,
                    section_id=section_id,
                    staff_id=staff_id or _staff_for_section(cbcs, course.course_id, section_id),
                    created_by=actor
                )
                db.session.add(enrollment)
                db.session.flush()
                roster_rows.append(_roster_entry(cbcs, student, enrollment))
                held.add(course.course_id)
                allocated.append(course.course_code)
                return True

            preferences = (
                StudentCourseChoice.query
                .filter_by(student_id=student_id, cbcs_id=cbcs.cbcs_id)
                .order_by(StudentCourseChoice.preference_order.asc())
                .limit(top)
                .all()
            )
            for choice in preferences:
                course = db.session.get(Course, choice.course_id)
                if course.course_id in held:
                    continue
                if taken >= quota:
                    break
                if not course.is_active:
                    tried.add(course.course_id)
                    skipped.append({"courseCode": course.course_code, "reason": "Course inactive"})
                    continue
                if allocate(course, _candidate_sections(mapping, course, choice.section_id), choice.staff_id):
                    taken += 1

            for course in round_courses:
                if taken >= quota:
                    break
                if course.course_id in held or course.course_id in tried or not course.is_active:
                    continue
                if allocate(course, _candidate_sections(mapping, course)):
                    taken += 1

            report.append({
                "regno": student.register_no,
                "allocated": allocated,
                "skipped": skipped,
            })

        cbcs.complete = True

    _write_roster(row for row in roster_rows if row)
    logger.info("OPT allocation for round %s finished: %d students", cbcs.cbcs_id, len(report))
    return report
