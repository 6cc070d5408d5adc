import os

from flask import Blueprint, request, jsonify, send_file
from flask_login import current_user

from extensions import db
from models import (
    Batch, Course, CourseRequest, Department, ElectiveBucket, Section, Semester, StaffCourse, Student,
    TimetableEntry
)
from services import (
    attendance, cbcs as cbcs_service, course_requests, curriculum, elective_allocation,
    elective_buckets, grades, reports, timetable
)
from services.auth_service import create_student, create_user
from services.db_utils import get_or_404, parse_int
from services.errors import NotFoundError, ValidationError
from utils.decorators import role_required

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _payload():
    return request.get_json(silent=True) or {}


# =========================================================
# DEPARTMENTS / BATCHES / USERS
# =========================================================
@admin_bp.route("/departments", methods=["GET"])
@role_required("admin")
def list_departments():
    departments = Department.query.order_by(Department.department_code.asc()).all()
    return jsonify({"status": "success", "data": [
        {"departmentId": d.department_id, "departmentCode": d.department_code, "departmentName": d.department_name}
        for d in departments
    ]})


@admin_bp.route("/departments", methods=["POST"])
@role_required("admin")
def add_department():
    data = _payload()
    department = curriculum.add_department(data.get("departmentCode"), data.get("departmentName"))
    return jsonify({"status": "success", "departmentId": department.department_id}), 201


@admin_bp.route("/batches", methods=["GET"])
@role_required("admin")
def list_batches():
    batches = Batch.query.filter_by(is_active=True).order_by(Batch.batch_id.asc()).all()
    return jsonify({"status": "success", "data": [curriculum.serialize_batch(b) for b in batches]})


@admin_bp.route("/batches", methods=["POST"])
@role_required("admin")
def add_batch():
    batch = curriculum.add_batch(_payload())
    return jsonify({"status": "success", "data": curriculum.serialize_batch(batch)}), 201


@admin_bp.route("/users", methods=["POST"])
@role_required("admin")
def add_user():
    data = _payload()
    user = create_user(
        data.get("username"),
        data.get("password"),
        data.get("role"),
        department_id=data.get("departmentId"),
        email=data.get("email")
    )
    return jsonify({"status": "success", "userId": user.user_id}), 201


@admin_bp.route("/staff", methods=["GET"])
@role_required("admin")
def list_staff():
    department_id = request.args.get("departmentId", type=int)
    staff = curriculum.list_staff_users(department_id)
    return jsonify({"status": "success", "data": [
        {"staffId": u.user_id, "username": u.username, "departmentId": u.department_id}
        for u in staff
    ]})


@admin_bp.route("/students", methods=["POST"])
@role_required("admin")
def add_student():
    student = create_student(_payload())
    return jsonify({"status": "success", "studentId": student.student_id}), 201


# =========================================================
# COURSES / SECTIONS
# =========================================================
@admin_bp.route("/semesters/<int:semester_id>/courses", methods=["GET"])
@role_required("admin")
def list_courses(semester_id):
    courses = curriculum.list_courses(semester_id)
    return jsonify({"status": "success", "data": [curriculum.serialize_course(c) for c in courses]})


@admin_bp.route("/courses", methods=["POST"])
@role_required("admin")
def add_course():
    course = curriculum.add_course(_payload())
    return jsonify({"status": "success", "data": curriculum.serialize_course(course)}), 201


@admin_bp.route("/courses/<int:course_id>", methods=["DELETE"])
@role_required("admin")
def deactivate_course(course_id):
    curriculum.deactivate_course(get_or_404(Course, course_id, "Course"))
    return jsonify({"status": "success", "message": "Course deactivated"})


@admin_bp.route("/courses/<int:course_id>/sections", methods=["GET"])
@role_required("admin")
def list_sections(course_id):
    course = get_or_404(Course, course_id, "Course")
    return jsonify({"status": "success", "data": [
        curriculum.serialize_section(s) for s in curriculum.list_sections(course)
    ]})


@admin_bp.route("/courses/<int:course_id>/sections", methods=["POST"])
@role_required("admin")
def add_sections(course_id):
    data = _payload()
    course = get_or_404(Course, course_id, "Course")
    sections = curriculum.add_sections(course, data.get("numberOfSections"), data.get("capacity"))
    return jsonify({
        "status": "success",
        "message": f"Added {len(sections)} section(s) to {course.course_code}",
        "data": [curriculum.serialize_section(s) for s in sections],
    }), 201


@admin_bp.route("/sections/<int:section_id>", methods=["DELETE"])
@role_required("admin")
def deactivate_section(section_id):
    curriculum.deactivate_section(get_or_404(Section, section_id, "Section"))
    return jsonify({"status": "success", "message": "Section deactivated"})


# =========================================================
# STAFF ALLOCATION / ENROLLMENT
# =========================================================
@admin_bp.route("/staff-courses", methods=["POST"])
@role_required("admin")
def allocate_staff():
    data = _payload()
    course = get_or_404(Course, data.get("courseId"), "Course")
    allocation = curriculum.allocate_staff(
        data.get("staffId"),
        course,
        data.get("sectionId"),
        data.get("departmentId"),
        current_user.username
    )
    return jsonify({"status": "success", "staffCourseId": allocation.staff_course_id}), 201


@admin_bp.route("/staff-courses/<int:staff_course_id>", methods=["DELETE"])
@role_required("admin")
def remove_staff_allocation(staff_course_id):
    curriculum.remove_staff_allocation(get_or_404(StaffCourse, staff_course_id, "Staff allocation"))
    return jsonify({"status": "success", "message": "Staff allocation removed"})


@admin_bp.route("/enrollments", methods=["POST"])
@role_required("admin")
def enroll_student():
    data = _payload()
    student = get_or_404(Student, data.get("studentId"), "Student")
    course = get_or_404(Course, data.get("courseId"), "Course")
    enrollment = curriculum.enroll_student(student, course, data.get("sectionId"), current_user.username)
    return jsonify({"status": "success", "sectionId": enrollment.section_id}), 201


@admin_bp.route("/enrollments", methods=["DELETE"])
@role_required("admin")
def unenroll_student():
    data = _payload()
    student = get_or_404(Student, data.get("studentId"), "Student")
    course = get_or_404(Course, data.get("courseId"), "Course")
    curriculum.unenroll_student(student, course)
    return jsonify({"status": "success", "message": "Student unenrolled"})


# =========================================================
# ELECTIVE BUCKETS
# =========================================================
@admin_bp.route("/semesters/<int:semester_id>/buckets", methods=["GET"])
@role_required("admin")
def list_buckets(semester_id):
    return jsonify({"status": "success", "data": elective_buckets.list_buckets(semester_id)})


@admin_bp.route("/semesters/<int:semester_id>/buckets", methods=["POST"])
@role_required("admin")
def create_bucket(semester_id):
    semester = get_or_404(Semester, semester_id, "Semester")
    bucket = elective_buckets.create_bucket(semester, current_user.username)
    return jsonify({
        "status": "success",
        "bucketId": bucket.bucket_id,
        "bucketNumber": bucket.bucket_number,
        "bucketName": bucket.bucket_name,
    }), 201


@admin_bp.route("/buckets/<int:bucket_id>", methods=["PUT"])
@role_required("admin")
def rename_bucket(bucket_id):
    bucket = get_or_404(ElectiveBucket, bucket_id, "Bucket")
    elective_buckets.rename_bucket(bucket, _payload().get("bucketName"))
    return jsonify({"status": "success", "message": "Bucket name updated successfully"})


@admin_bp.route("/buckets/<int:bucket_id>", methods=["DELETE"])
@role_required("admin")
def delete_bucket(bucket_id):
    elective_buckets.delete_bucket(get_or_404(ElectiveBucket, bucket_id, "Bucket"))
    return jsonify({"status": "success", "message": "Bucket deleted successfully"})


@admin_bp.route("/buckets/<int:bucket_id>/courses", methods=["POST"])
@role_required("admin")
def add_courses_to_bucket(bucket_id):
    bucket = get_or_404(ElectiveBucket, bucket_id, "Bucket")
    added, errors = elective_buckets.add_courses_to_bucket(bucket, _payload().get("courseCodes"))
    return jsonify({
        "status": "success",
        "addedCount": len(added),
        "added": added,
        "errors": errors,
        "message": f"{len(added)} course(s) added successfully",
    })


@admin_bp.route("/buckets/<int:bucket_id>/courses/<course_code>", methods=["DELETE"])
@role_required("admin")
def remove_course_from_bucket(bucket_id, course_code):
    bucket = get_or_404(ElectiveBucket, bucket_id, "Bucket")
    elective_buckets.remove_course_from_bucket(bucket, course_code)
    return jsonify({"status": "success", "message": f"Course {course_code} removed from bucket {bucket_id}"})


# =========================================================
# CBCS ROUNDS
# =========================================================
@admin_bp.route("/cbcs", methods=["POST"])
@role_required("admin")
def create_cbcs():
    round_ = cbcs_service.create_round(_payload(), current_user.username)
    return jsonify({
        "status": "success",
        "message": "CBCS created",
        "cbcsId": round_.cbcs_id,
        "hasRoster": bool(round_.allocation_excel_path),
    }), 201


@admin_bp.route("/cbcs", methods=["GET"])
@role_required("admin")
def list_cbcs():
    rounds = cbcs_service.list_rounds(
        batch_id=request.args.get("batchId", type=int),
        department_id=request.args.get("departmentId", type=int),
        semester_id=request.args.get("semesterId", type=int)
    )
    return jsonify({"status": "success", "data": [
        cbcs_service.serialize_round(r, include_subjects=False) for r in rounds
    ]})


@admin_bp.route("/cbcs/<int:cbcs_id>", methods=["GET"])
@role_required("admin")
def get_cbcs(cbcs_id):
    return jsonify({"status": "success", "data": cbcs_service.serialize_round(cbcs_service.get_round(cbcs_id))})


@admin_bp.route("/cbcs/<int:cbcs_id>/roster", methods=["GET"])
@role_required("admin")
def download_roster(cbcs_id):
    round_ = cbcs_service.get_round(cbcs_id)
    path = round_.allocation_excel_path
    if not path or not os.path.exists(path):
        raise NotFoundError("Roster workbook not found")
    return send_file(
        os.path.abspath(path),
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        as_attachment=True,
        download_name=f"cbcs_{cbcs_id}.xlsx"
    )


@admin_bp.route("/cbcs/<int:cbcs_id>/run-opt", methods=["POST"])
@role_required("admin")
def run_opt_allocation(cbcs_id):
    round_ = cbcs_service.get_round(cbcs_id)
    report = elective_allocation.run_opt_allocation(round_, current_user.username)
    return jsonify({"status": "success", "message": "OPT allocation completed", "data": report})


# =========================================================
# TIMETABLE
# =========================================================
@admin_bp.route("/timetable", methods=["GET"])
@role_required("admin")
def get_timetable():
    semester_id = parse_int(request.args.get("semesterId"), "semesterId")
    entries = timetable.entries_for_semester(semester_id)
    return jsonify({"status": "success", "data": [timetable.serialize_entry(e) for e in entries]})


@admin_bp.route("/timetable", methods=["POST"])
@role_required("admin")
def create_timetable_entry():
    entry = timetable.create_entry(_payload(), current_user.username)
    return jsonify({"status": "success", "data": timetable.serialize_entry(entry)}), 201


@admin_bp.route("/timetable/<int:timetable_id>", methods=["PUT"])
@role_required("admin")
def update_timetable_entry(timetable_id):
    entry = get_or_404(TimetableEntry, timetable_id, "Timetable entry")
    timetable.update_entry(entry, _payload(), current_user.username)
    return jsonify({"status": "success", "data": timetable.serialize_entry(entry)})


@admin_bp.route("/timetable/<int:timetable_id>", methods=["DELETE"])
@role_required("admin")
def delete_timetable_entry(timetable_id):
    timetable.delete_entry(get_or_404(TimetableEntry, timetable_id, "Timetable entry"))
    return jsonify({"status": "success", "message": "Timetable entry deleted"})


# =========================================================
# ATTENDANCE / REPORTS
# =========================================================
@admin_bp.route("/attendance", methods=["POST"])
@role_required("admin")
def mark_attendance():
    data = _payload()
    course = get_or_404(Course, data.get("courseId"), "Course")
    processed, skipped = attendance.mark_attendance(
        current_user,
        course,
        data.get("periodNumber"),
        data.get("date"),
        data.get("attendances"),
        day=data.get("dayOfWeek"),
        section_id=data.get("sectionId"),
        as_admin=True
    )
    return jsonify({"status": "success", "processed": processed, "skipped": skipped})


@admin_bp.route("/reports/consolidated", methods=["GET"])
@role_required("admin")
def consolidated_marks():
    data = reports.consolidated_marks(
        parse_int(request.args.get("batchId"), "batchId"),
        parse_int(request.args.get("departmentId"), "departmentId"),
        parse_int(request.args.get("semester"), "semester")
    )
    return jsonify({"status": "success", "data": data})


# =========================================================
# GRADES / GPA
# =========================================================
@admin_bp.route("/semesters/<int:semester_id>/grades", methods=["POST"])
@role_required("admin")
def upload_grades(semester_id):
    semester = get_or_404(Semester, semester_id, "Semester")
    upload = request.files.get("file")
    if upload is None or upload.filename == "":
        raise ValidationError("No file uploaded")
    result = grades.upload_grades(semester, upload, current_user.username)
    return jsonify({"status": "success", "message": "Grades imported and GPA/CGPA saved", **result})


@admin_bp.route("/students/<regno>/gpa", methods=["GET"])
@role_required("admin")
def student_gpa(regno):
    student = Student.query.filter_by(register_no=regno).first()
    if student is None:
        raise NotFoundError(f"Student {regno} not found")
    semester = get_or_404(Semester, parse_int(request.args.get("semesterId"), "semesterId"), "Semester")
    return jsonify({"status": "success", "data": grades.student_gpa(student, semester)})


@admin_bp.route("/batches/<int:batch_id>/students", methods=["GET"])
@role_required("admin")
def batch_students(batch_id):
    get_or_404(Batch, batch_id, "Batch")
    students = grades.students_for_grades(batch_id, request.args.get("departmentId", type=int))
    return jsonify({"status": "success", "data": [
        {"studentId": s.student_id, "regno": s.register_no, "name": s.name} for s in students
    ]})


# =========================================================
# COURSE REQUESTS
# =========================================================
@admin_bp.route("/course-requests", methods=["GET"])
@role_required("admin")
def pending_course_requests():
    pending = course_requests.pending_requests(
        semester_number=request.args.get("semester", type=int),
        batch=request.args.get("batch"),
        department_id=request.args.get("departmentId", type=int)
    )
    return jsonify({"status": "success", "data": [course_requests.serialize_request(r) for r in pending]})


@admin_bp.route("/course-requests/<int:request_id>/accept", methods=["POST"])
@role_required("admin")
def accept_course_request(request_id):
    allocation = course_requests.accept_request(
        db.session.get(CourseRequest, request_id), current_user.username
    )
    return jsonify({
        "status": "success",
        "message": "Request accepted and staff assigned to batch/section",
        "staffCourseId": allocation.staff_course_id,
        "sectionId": allocation.section_id,
    })


@admin_bp.route("/course-requests/<int:request_id>/reject", methods=["POST"])
@role_required("admin")
def reject_course_request(request_id):
    course_requests.reject_request(db.session.get(CourseRequest, request_id), current_user.username)
    return jsonify({"status": "success", "message": "Request rejected"})
