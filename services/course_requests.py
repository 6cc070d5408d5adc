"""
Staff course requests.

A staff member asks to teach a course of their own department; an admin
accepts (the staff is allocated the first active section nobody teaches
yet) or rejects. Rejected requests can be resent, pending ones cancelled,
and an accepted course can be left again, which frees its section.
"""
import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import Batch, Course, CourseRequest, Department, Section, Semester, StaffCourse
from services.db_utils import transaction
from services.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _staff_department(staff):
    department = db.session.get(Department, staff.department_id) if staff.department_id else None
    if department is None:
        raise AuthorizationError("Staff must belong to a department to request courses")
    return department


def _course_branch(course):
    return course.semester.batch.branch.strip().upper()


def _check_same_department(staff, course):
    department = _staff_department(staff)
    if _course_branch(course) != department.department_code.strip().upper():
        raise AuthorizationError("Cannot request course outside your department")


def _free_sections(course_id):
    taken = select(StaffCourse.section_id).where(StaffCourse.course_id == course_id)
    return (
        Section.query
        .filter(
            Section.course_id == course_id,
            Section.is_active.is_(True),
            Section.section_id.notin_(taken)
        )
        .order_by(Section.section_id.asc())
        .all()
    )


# =========================================================
# STAFF SIDE
# =========================================================
def courses_for_staff(staff, semester_number=None, batch=None, available_only=False):
    """
    Active courses of the staff's department, each tagged ALLOCATED,
    PENDING, REJECTED or AVAILABLE for this staff member.
    """
    department = _staff_department(staff)

    q = (
        Course.query
        .join(Semester, Semester.semester_id == Course.semester_id)
        .join(Batch, Batch.batch_id == Semester.batch_id)
        .filter(
            Course.is_active.is_(True),
            func.upper(Batch.branch) == department.department_code.upper()
        )
    )
    if semester_number is not None:
        q = q.filter(Semester.semester_number == int(semester_number))
    if batch:
        q = q.filter(Batch.batch == str(batch))
    courses = q.order_by(Course.course_code.asc()).all()

    allocations = {a.course_id: a for a in StaffCourse.query.filter_by(staff_id=staff.user_id).all()}
    requests = {r.course_id: r for r in CourseRequest.query.filter_by(staff_id=staff.user_id).all()}

    result = []
    for course in courses:
        allocation = allocations.get(course.course_id)
        request = requests.get(course.course_id)
        if allocation:
            status, action_id = "ALLOCATED", allocation.staff_course_id
        elif request and request.status in ("PENDING", "REJECTED"):
            status, action_id = request.status, request.request_id
        else:
            status, action_id = "AVAILABLE", None

        if available_only and status == "ALLOCATED":
            continue
        result.append({
            "courseId": course.course_id,
            "courseCode": course.course_code,
            "courseTitle": course.course_title,
            "category": course.category,
            "credits": course.credits,
            "semesterNumber": course.semester.semester_number,
            "batch": course.semester.batch.batch,
            "branch": course.semester.batch.branch,
            "status": status,
            "actionId": action_id,
        })
    return result


def send_request(staff, course, actor):
    if not course.is_active:
        raise NotFoundError(f"No active course found with courseCode {course.course_code}")
    _check_same_department(staff, course)

    if StaffCourse.query.filter_by(staff_id=staff.user_id, course_id=course.course_id).first():
        raise ConflictError(f"Already assigned to course {course.course_code}")

    existing = CourseRequest.query.filter_by(staff_id=staff.user_id, course_id=course.course_id).first()
    if existing and existing.status == "PENDING":
        raise ConflictError("Request already pending")
    if existing and existing.status == "ACCEPTED":
        raise ConflictError(f"Already assigned to course {course.course_code}")

    try:
        with transaction():
            if existing:
                # a rejected or withdrawn request is reopened rather than duplicated
                existing.status = "PENDING"
                existing.requested_at = datetime.utcnow()
                existing.approved_at = existing.rejected_at = existing.withdrawn_at = None
                existing.updated_by = actor
                request = existing
            else:
                request = CourseRequest(
                    staff_id=staff.user_id,
                    course_id=course.course_id,
                    status="PENDING",
                    created_by=actor
                )
                db.session.add(request)
            db.session.flush()
    except IntegrityError:
        raise ConflictError("Request already pending")

    logger.info("Staff %s requested course %s", staff.user_id, course.course_code)
    return request


def _own_request(staff, request, status):
    if request is None or request.staff_id != staff.user_id or request.status != status:
        raise NotFoundError(f"{status.capitalize()} request not found")
    return request


def cancel_request(staff, request):
    _own_request(staff, request, "PENDING")
    request_id = request.request_id
    with transaction():
        db.session.delete(request)
    logger.info("Staff %s cancelled course request %s", staff.user_id, request_id)


def resend_request(staff, request, actor):
    _own_request(staff, request, "REJECTED")
    with transaction():
        request.status = "PENDING"
        request.rejected_at = None
        request.updated_by = actor
    logger.info("Staff %s resent course request %s", staff.user_id, request.request_id)
    return request


def leave_course(staff, allocation, actor):
    """Give up a course taken through an accepted request; its section is freed."""
    if allocation is None or allocation.staff_id != staff.user_id:
        raise NotFoundError("Assignment not found")

    accepted = CourseRequest.query.filter_by(
        staff_id=staff.user_id, course_id=allocation.course_id, status="ACCEPTED"
    ).first()
    if accepted is None:
        raise NotFoundError("Accepted request not found for this assignment")

    course_id = allocation.course_id
    with transaction():
        accepted.status = "WITHDRAWN"
        accepted.withdrawn_at = datetime.utcnow()
        accepted.updated_by = actor
        db.session.delete(allocation)
    logger.info("Staff %s left course %s", staff.user_id, course_id)
    return accepted


def my_requests(staff, limit=None):
    q = (
        CourseRequest.query
        .filter(CourseRequest.staff_id == staff.user_id)
        .order_by(CourseRequest.requested_at.desc(), CourseRequest.request_id.desc())
    )
    if limit is None:
        q = q.filter(CourseRequest.status.in_(("PENDING", "ACCEPTED", "REJECTED")))
    else:
        q = q.limit(limit)
    return q.all()


# =========================================================
# ADMIN SIDE
# =========================================================
def pending_requests(semester_number=None, batch=None, department_id=None):
    q = (
        CourseRequest.query
        .join(Course, Course.course_id == CourseRequest.course_id)
        .join(Semester, Semester.semester_id == Course.semester_id)
        .join(Batch, Batch.batch_id == Semester.batch_id)
        .filter(CourseRequest.status == "PENDING")
    )
    if semester_number is not None:
        q = q.filter(Semester.semester_number == int(semester_number))
    if batch:
        q = q.filter(Batch.batch == str(batch))
    if department_id is not None:
        department = db.session.get(Department, int(department_id))
        if department is None:
            return []
        q = q.filter(func.upper(Batch.branch) == department.department_code.upper())
    return q.order_by(CourseRequest.requested_at.desc(), CourseRequest.request_id.desc()).all()


def accept_request(request, actor):
    """
    Allocate the requesting staff to the first free section of the course.
    When that uses up the last free section, the course's other pending
    requests are rejected.
    """
    if request is None or request.status != "PENDING":
        raise NotFoundError("Pending request not found")

    try:
        with transaction():
            # one accept per course at a time
            course = (
                db.session.query(Course)
                .filter_by(course_id=request.course_id)
                .with_for_update()
                .one()
            )
            if not Section.query.filter_by(course_id=course.course_id, is_active=True).first():
                raise ValidationError(
                    f"Slot or batch not available. No sections configured for {course.course_code}."
                )
            free = _free_sections(course.course_id)
            if not free:
                raise ConflictError(f"Slot or batch not available. All sections of {course.course_code} are filled.")

            section = free[0]
            allocation = StaffCourse(
                staff_id=request.staff_id,
                course_id=course.course_id,
                section_id=section.section_id,
                department_id=request.staff.department_id,
                created_by=actor
            )
            db.session.add(allocation)

            now = datetime.utcnow()
            request.status = "ACCEPTED"
            request.approved_at = now
            request.updated_by = actor
            db.session.flush()

            auto_rejected = 0
            if len(free) == 1:
                others = CourseRequest.query.filter(
                    CourseRequest.course_id == course.course_id,
                    CourseRequest.status == "PENDING",
                    CourseRequest.request_id != request.request_id
                ).all()
                for other in others:
                    other.status = "REJECTED"
                    other.rejected_at = now
                    other.updated_by = actor
                auto_rejected = len(others)
    except IntegrityError:
        raise ConflictError(f"Staff {request.staff_id} is already allocated to this course")

    logger.info(
        "Accepted course request %s: staff %s -> %s/%s (%d other requests rejected)",
        request.request_id, allocation.staff_id, course.course_code, section.section_name, auto_rejected
    )
    return allocation


def reject_request(request, actor):
    if request is None or request.status != "PENDING":
        raise NotFoundError("Pending request not found")
    with transaction():
        request.status = "REJECTED"
        request.rejected_at = datetime.utcnow()
        request.updated_by = actor
    logger.info("Rejected course request %s", request.request_id)
    return request


def serialize_request(request):
    course = request.course
    semester = course.semester
    return {
        "requestId": request.request_id,
        "status": request.status,
        "requestedAt": request.requested_at.isoformat() if request.requested_at else None,
        "staffId": request.staff_id,
        "staffName": request.staff.username if request.staff else None,
        "courseId": course.course_id,
        "courseCode": course.course_code,
        "courseTitle": course.course_title,
        "credits": course.credits,
        "semesterNumber": semester.semester_number,
        "batch": semester.batch.batch,
        "branch": semester.batch.branch,
        "assignedCount": StaffCourse.query.filter_by(course_id=course.course_id).count(),
        "sectionCount": Section.query.filter_by(course_id=course.course_id, is_active=True).count(),
    }
