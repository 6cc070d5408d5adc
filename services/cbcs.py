import logging
import os

from flask import current_app

from extensions import db
from models import (
    Batch, Cbcs, CbcsSectionStaff, CbcsSubject, Course, Department, Section, Semester,
    StudentCourse, StudentCourseChoice, StudentElectiveSelection, User
)
from models.cbcs import CBCS_TYPES
from services import roster
from services.db_utils import get_or_404, parse_int, transaction
from services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def roster_path_for(cbcs_id):
    folder = current_app.config.get("ROSTER_FOLDER")
    if not folder:
        return None
    return os.path.join(folder, f"cbcs_allocation_{cbcs_id}.xlsx")


def _clean_subjects(subjects, semester_id):
    if not isinstance(subjects, list) or not subjects:
        raise ValidationError("subjects are required")

    cleaned = []
    seen = set()
    for subject in subjects:
        course_id = parse_int(subject.get("courseId"), "courseId")
        if course_id in seen:
            raise ValidationError(f"Course {course_id} listed twice")
        seen.add(course_id)

        course = db.session.get(Course, course_id)
        if not course or not course.is_active:
            raise NotFoundError(f"No active course found with id {course_id}")
        if course.semester_id != semester_id:
            raise ValidationError(f"Course {course.course_code} is not offered in semester {semester_id}")

        staffs = []
        for entry in subject.get("staffs") or []:
            section_id = parse_int(entry.get("sectionId"), "sectionId")
            staff_id = parse_int(entry.get("staffId"), "staffId")
            section = db.session.get(Section, section_id)
            if not section or section.course_id != course_id or not section.is_active:
                raise ValidationError(f"Section {section_id} does not belong to course {course.course_code}")
            staff = db.session.get(User, staff_id)
            if not staff or not staff.is_active:
                raise NotFoundError(f"No active staff found with id {staff_id}")
            staffs.append((section, staff))

        cleaned.append({
            "course": course,
            "bucket_name": (subject.get("bucketName") or "Core").strip() or "Core",
            "staffs": staffs,
        })
    return cleaned


def create_round(data, actor):
    """
    Open a CBCS round: its subjects, the section/staff mapping per subject,
    and the roster workbook students are appended to.
    """
    batch = get_or_404(Batch, data.get("batchId"), "Batch")
    department = get_or_404(Department, data.get("departmentId"), "Department")
    semester = get_or_404(Semester, data.get("semesterId"), "Semester")
    if semester.batch_id != batch.batch_id:
        raise ValidationError(f"Semester {semester.semester_id} does not belong to batch {batch.batch_id}")

    round_type = (data.get("type") or "FCFS").strip().upper()
    if round_type not in CBCS_TYPES:
        raise ValidationError(f"type must be one of {', '.join(CBCS_TYPES)}")

    subjects = _clean_subjects(data.get("subjects"), semester.semester_id)

    with transaction():
        cbcs = Cbcs(
            batch_id=batch.batch_id,
            department_id=department.department_id,
            semester_id=semester.semester_id,
            type=round_type,
            total_students=int(data.get("totalStudents") or 0),
            created_by=actor
        )
        db.session.add(cbcs)
        db.session.flush()

        for subject in subjects:
            row = CbcsSubject(
                cbcs_id=cbcs.cbcs_id,
                course_id=subject["course"].course_id,
                bucket_name=subject["bucket_name"]
            )
            db.session.add(row)
            db.session.flush()
            for section, staff in subject["staffs"]:
                db.session.add(CbcsSectionStaff(
                    cbcs_subject_id=row.cbcs_subject_id,
                    section_id=section.section_id,
                    staff_id=staff.user_id
                ))
        db.session.flush()

        path = roster_path_for(cbcs.cbcs_id)
        if path:
            roster.build_workbook(path, [
                {
                    "course_id": s["course"].course_id,
                    "title": s["course"].course_title,
                    "staffs": [
                        {"staff_id": staff.user_id, "staff_name": staff.username}
                        for _, staff in s["staffs"]
                    ],
                }
                for s in subjects
            ])
            cbcs.allocation_excel_path = path

    logger.info("Created CBCS round %s (%s) with %d subjects", cbcs.cbcs_id, round_type, len(subjects))
    return cbcs


def list_rounds(batch_id=None, department_id=None, semester_id=None):
    q = Cbcs.query.filter_by(is_active=True)
    if batch_id is not None:
        q = q.filter_by(batch_id=batch_id)
    if department_id is not None:
        q = q.filter_by(department_id=department_id)
    if semester_id is not None:
        q = q.filter_by(semester_id=semester_id)
    return q.order_by(Cbcs.cbcs_id.desc()).all()


def get_round(cbcs_id):
    return get_or_404(Cbcs, cbcs_id, "CBCS round")


def active_round(semester_id, department_id=None, round_type=None):
    """Latest open round for a semester, or None."""
    q = Cbcs.query.filter_by(semester_id=semester_id, is_active=True, complete=False)
    if department_id is not None:
        q = q.filter_by(department_id=department_id)
    if round_type is not None:
        q = q.filter_by(type=round_type)
    return q.order_by(Cbcs.cbcs_id.desc()).first()


def _serialize_staffs(subject):
    return [
        {
            "sectionId": m.section_id,
            "sectionName": m.section.section_name if m.section else None,
            "staffId": m.staff_id,
            "staffName": m.staff.username if m.staff else None,
        }
        for m in subject.section_staff
    ]


def _serialize_subject(subject):
    course = subject.course
    return {
        "cbcsSubjectId": subject.cbcs_subject_id,
        "courseId": course.course_id,
        "courseCode": course.course_code,
        "courseTitle": course.course_title,
        "category": course.category,
        "credits": course.credits,
        "bucketName": subject.bucket_name,
        "staffs": _serialize_staffs(subject),
    }


def serialize_round(cbcs, include_subjects=True):
    data = {
        "cbcsId": cbcs.cbcs_id,
        "batchId": cbcs.batch_id,
        "departmentId": cbcs.department_id,
        "semesterId": cbcs.semester_id,
        "type": cbcs.type,
        "totalStudents": cbcs.total_students,
        "complete": bool(cbcs.complete),
        "hasRoster": bool(cbcs.allocation_excel_path),
    }
    if include_subjects:
        data["subjects"] = [_serialize_subject(s) for s in cbcs.subjects]
    return data


def student_round_view(student, cbcs):
    """
    What a student may pick from in a round: the core subjects plus the
    electives they selected from their buckets.
    """
    selected = {
        row.selected_course_id
        for row in StudentElectiveSelection.query.filter_by(student_id=student.student_id).all()
    }
    subjects = [
        _serialize_subject(s)
        for s in cbcs.subjects
        if s.bucket_name == "Core" or s.course_id in selected
    ]
    enrolled = {
        row.course_id
        for row in StudentCourse.query.filter_by(student_id=student.student_id).all()
    }
    choices = (
        StudentCourseChoice.query
        .filter_by(student_id=student.student_id, cbcs_id=cbcs.cbcs_id)
        .order_by(StudentCourseChoice.preference_order.asc())
        .all()
    )
    for subject in subjects:
        subject["enrolled"] = subject["courseId"] in enrolled

    data = serialize_round(cbcs, include_subjects=False)
    data["subjects"] = subjects
    data["choices"] = [
        {
            "courseId": c.course_id,
            "staffId": c.staff_id,
            "sectionId": c.section_id,
            "preferenceOrder": c.preference_order,
        }
        for c in choices
    ]
    return data
