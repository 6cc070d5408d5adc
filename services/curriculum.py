import logging

from sqlalchemy import update

from extensions import db
from models import (
    Batch, Course, Department, Section, Semester, StaffCourse, StudentCourse, User, Role
)
from services.db_utils import transaction, get_or_404
from services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

COURSE_CATEGORIES = ("HSMC", "BSC", "ESC", "PCC", "PEC", "OEC", "EEC", "MC")


# =========================================================
# LOOKUPS (preconditions for marks, attendance, allocation)
# =========================================================
def is_staff_assigned(staff_id, course_id, section_id=None):
    q = StaffCourse.query.filter_by(staff_id=staff_id, course_id=course_id)
    if section_id is not None:
        q = q.filter_by(section_id=section_id)
    return q.first() is not None


def staff_section_ids(staff_id, course_id):
    rows = StaffCourse.query.filter_by(staff_id=staff_id, course_id=course_id).all()
    return {row.section_id for row in rows}


def enrolled_section(student_id, course_id):
    """Section id the student is enrolled in for the course, or None."""
    row = StudentCourse.query.filter_by(student_id=student_id, course_id=course_id).first()
    return row.section_id if row else None


# =========================================================
# DEPARTMENTS, BATCHES, SEMESTERS
# =========================================================
def add_department(code, name):
    code = (code or "").strip().upper()
    name = (name or "").strip()
    if not code or not name:
        raise ValidationError("departmentCode and departmentName are required")
    if Department.query.filter_by(department_code=code).first():
        raise ConflictError(f"Department {code} already exists")
    with transaction():
        department = Department(department_code=code, department_name=name)
        db.session.add(department)
        db.session.flush()
    return department


def add_batch(data):
    """Create a batch together with its semesters 1..semesterCount."""
    degree = (data.get("degree") or "").strip()
    branch = (data.get("branch") or "").strip()
    batch_label = str(data.get("batch") or "").strip()
    if not degree or not branch or not batch_label:
        raise ValidationError("degree, branch and batch are required")
    try:
        semester_count = int(data.get("semesterCount") or 8)
    except (TypeError, ValueError):
        raise ValidationError("semesterCount must be an integer")
    if semester_count < 1:
        raise ValidationError("semesterCount must be at least 1")

    with transaction():
        batch = Batch(
            degree=degree,
            branch=branch,
            batch=batch_label,
            batch_years=data.get("batchYears"),
            is_active=True
        )
        db.session.add(batch)
        db.session.flush()
        for number in range(1, semester_count + 1):
            db.session.add(Semester(batch_id=batch.batch_id, semester_number=number, is_active=True))
        db.session.flush()
    logger.info("Added batch %s %s %s with %d semesters", degree, branch, batch_label, semester_count)
    return batch


def serialize_batch(batch):
    return {
        "batchId": batch.batch_id,
        "degree": batch.degree,
        "branch": batch.branch,
        "batch": batch.batch,
        "batchYears": batch.batch_years,
        "semesters": [
            {"semesterId": s.semester_id, "semesterNumber": s.semester_number}
            for s in sorted(batch.semesters, key=lambda s: s.semester_number)
        ],
    }


# =========================================================
# COURSES
# =========================================================
def add_course(data):
    code = (data.get("courseCode") or "").strip().upper()
    title = (data.get("courseTitle") or "").strip()
    category = (data.get("category") or "").strip().upper()
    semester_id = data.get("semesterId")

    if not code or not title or not category or not semester_id:
        raise ValidationError("courseCode, courseTitle, category and semesterId are required")
    if category not in COURSE_CATEGORIES:
        raise ValidationError(f"Invalid category '{category}'")
    try:
        credits = int(data.get("credits") or 0)
    except (TypeError, ValueError):
        raise ValidationError("credits must be an integer")
    if credits < 0:
        raise ValidationError("credits cannot be negative")

    semester = get_or_404(Semester, semester_id, "Semester")
    if Course.query.filter_by(course_code=code).first():
        raise ConflictError(f"Course with code '{code}' already exists")

    with transaction():
        course = Course(
            course_code=code,
            course_title=title,
            category=category,
            credits=credits,
            semester_id=semester.semester_id,
            is_active=True
        )
        db.session.add(course)
        db.session.flush()
    logger.info("Added course %s", code)
    return course


def list_courses(semester_id, include_inactive=False):
    q = Course.query.filter_by(semester_id=semester_id)
    if not include_inactive:
        q = q.filter_by(is_active=True)
    return q.order_by(Course.course_code.asc()).all()


def deactivate_course(course):
    """Soft delete: COs, marks and attendance keep pointing at the course."""
    with transaction():
        course.is_active = False


def serialize_course(course):
    return {
        "courseId": course.course_id,
        "courseCode": course.course_code,
        "courseTitle": course.course_title,
        "category": course.category,
        "credits": course.credits,
        "semesterId": course.semester_id,
        "isActive": course.is_active,
    }


# =========================================================
# SECTIONS
# =========================================================
def add_sections(course, number_of_sections, capacity=None):
    """
    Append ``Batch <n>`` sections, numbered from the course's own counter.

    The counter row is locked for the update so two concurrent requests can
    never hand out the same section name.
    """
    try:
        number_of_sections = int(number_of_sections)
    except (TypeError, ValueError):
        raise ValidationError("numberOfSections must be an integer")
    if number_of_sections < 1:
        raise ValidationError("A valid numberOfSections (minimum 1) is required")
    if capacity is not None:
        try:
            capacity = int(capacity)
        except (TypeError, ValueError):
            raise ValidationError("capacity must be an integer")
        if capacity < 1:
            raise ValidationError("capacity must be at least 1")
    if not course.is_active:
        raise NotFoundError(f"No active course found with courseCode {course.course_code}")

    with transaction():
        locked = (
            db.session.query(Course)
            .filter_by(course_id=course.course_id)
            .with_for_update()
            .one()
        )
        start = locked.next_section_number
        created = []
        for offset in range(number_of_sections):
            section = Section(
                course_id=course.course_id,
                section_name=f"Batch {start + offset}",
                capacity=capacity,
                is_active=True
            )
            db.session.add(section)
            created.append(section)
        locked.next_section_number = start + number_of_sections
        db.session.flush()

    logger.info("Added %d sections to %s", number_of_sections, course.course_code)
    return created


def list_sections(course, include_inactive=False):
    q = Section.query.filter_by(course_id=course.course_id)
    if not include_inactive:
        q = q.filter_by(is_active=True)
    return q.order_by(Section.section_id.asc()).all()


def deactivate_section(section):
    if StudentCourse.query.filter_by(section_id=section.section_id).first():
        raise ConflictError(f"Section {section.section_name} still has enrolled students")
    with transaction():
        section.is_active = False


def claim_seat(section_id):
    """
    Take one seat in a section if it has room.

    A single conditional UPDATE does the check and the increment, so two
    concurrent claims for the last seat cannot both succeed.
    """
    result = db.session.execute(
        update(Section)
        .where(
            Section.section_id == section_id,
            Section.is_active.is_(True),
            (Section.capacity.is_(None)) | (Section.enrolled_count < Section.capacity)
        )
        .values(enrolled_count=Section.enrolled_count + 1)
        .execution_options(synchronize_session=False)
    )
    section = db.session.get(Section, section_id)
    if section is not None:
        db.session.refresh(section)
    return result.rowcount == 1


def release_seat(section_id):
    db.session.execute(
        update(Section)
        .where(Section.section_id == section_id, Section.enrolled_count > 0)
        .values(enrolled_count=Section.enrolled_count - 1)
        .execution_options(synchronize_session=False)
    )
    section = db.session.get(Section, section_id)
    if section is not None:
        db.session.refresh(section)


def seat_section(course, preferred_section_id=None):
    """
    Claim a seat in the preferred section, or in the first active section
    of the course that still has room. Returns the section or None.
    """
    if preferred_section_id is not None:
        section = db.session.get(Section, preferred_section_id)
        if not section or section.course_id != course.course_id or not section.is_active:
            raise ValidationError(
                f"No active section {preferred_section_id} for course {course.course_code}"
            )
        return section if claim_seat(section.section_id) else None

    for section in list_sections(course):
        if claim_seat(section.section_id):
            return section
    return None


def serialize_section(section):
    return {
        "sectionId": section.section_id,
        "sectionName": section.section_name,
        "capacity": section.capacity,
        "enrolledCount": section.enrolled_count,
    }


# =========================================================
# STAFF ALLOCATION
# =========================================================
def allocate_staff(staff_id, course, section_id, department_id, actor):
    staff = db.session.get(User, staff_id) if staff_id else None
    if (
        not staff
        or not staff.is_active
        or not staff.role
        or staff.role.role_name != "STAFF"
    ):
        raise NotFoundError(f"No active staff found with id {staff_id}")
    if department_id is not None and staff.department_id not in (None, int(department_id)):
        raise NotFoundError(f"Staff {staff_id} does not belong to department {department_id}")
    if not course.is_active:
        raise NotFoundError(f"No active course found with courseCode {course.course_code}")

    section = db.session.get(Section, section_id) if section_id else None
    if not section or section.course_id != course.course_id or not section.is_active:
        raise NotFoundError(
            f"No active section found with sectionId {section_id} for courseCode {course.course_code}"
        )

    existing = StaffCourse.query.filter_by(staff_id=staff.user_id, course_id=course.course_id).first()
    if existing:
        raise ConflictError(
            f"Staff {staff.user_id} is already allocated to course {course.course_code} "
            f"in section {existing.section_id}"
        )

    with transaction():
        allocation = StaffCourse(
            staff_id=staff.user_id,
            course_id=course.course_id,
            section_id=section.section_id,
            department_id=department_id,
            created_by=actor
        )
        db.session.add(allocation)
        db.session.flush()
    logger.info("Allocated staff %s to %s/%s", staff.user_id, course.course_code, section.section_name)
    return allocation


def remove_staff_allocation(allocation):
    with transaction():
        db.session.delete(allocation)


def staff_courses(staff_id):
    return (
        StaffCourse.query
        .join(Course, StaffCourse.course_id == Course.course_id)
        .filter(StaffCourse.staff_id == staff_id, Course.is_active.is_(True))
        .order_by(Course.course_title.asc())
        .all()
    )


def list_staff_users(department_id=None):
    q = User.query.join(Role).filter(Role.role_name == "STAFF", User.is_active.is_(True))
    if department_id is not None:
        q = q.filter(User.department_id == department_id)
    return q.order_by(User.username.asc()).all()


# =========================================================
# ENROLLMENT
# =========================================================
def enroll(student, course, actor, section_id=None, staff_id=None):
    """Enroll inside the caller's transaction; raises on duplicate or full section."""
    if StudentCourse.query.filter_by(student_id=student.student_id, course_id=course.course_id).first():
        raise ConflictError(f"{student.register_no} is already enrolled in {course.course_code}")

    section = seat_section(course, section_id)
    if section is None:
        if section_id is None and not list_sections(course):
            raise ValidationError(f"No active section found for course {course.course_code}")
        raise ConflictError(f"No seat left in {course.course_code}")

    enrollment = StudentCourse(
        student_id=student.student_id,
        course_id=course.course_id,
        section_id=section.section_id,
        staff_id=staff_id,
        created_by=actor
    )
    db.session.add(enrollment)
    db.session.flush()
    return enrollment


def enroll_student(student, course, section_id, actor):
    if not course.is_active:
        raise NotFoundError(f"No active course found with courseCode {course.course_code}")
    with transaction():
        enrollment = enroll(student, course, actor, section_id=section_id)
    return enrollment


def unenroll_student(student, course):
    enrollment = StudentCourse.query.filter_by(
        student_id=student.student_id,
        course_id=course.course_id
    ).first()
    if not enrollment:
        raise NotFoundError(f"{student.register_no} is not enrolled in {course.course_code}")
    with transaction():
        release_seat(enrollment.section_id)
        db.session.delete(enrollment)
