from datetime import datetime

from flask import Blueprint, request, jsonify, send_file
from flask_login import current_user

from extensions import db
from models import AssessmentTool, Course, CourseOutcome, CourseRequest, StaffCourse
from services import (
    assessment_tools, attendance, course_outcomes, course_requests, curriculum, marks, reports
)
from services.db_utils import get_or_404
from services.errors import AuthorizationError, ValidationError
from services.mark_aggregation import co_is_complete
from utils.decorators import role_required

staff_bp = Blueprint("staff", __name__, url_prefix="/staff")


def _payload():
    return request.get_json(silent=True) or {}


def _assigned_course(course_id):
    course = get_or_404(Course, course_id, "Course")
    if not curriculum.is_staff_assigned(current_user.user_id, course.course_id):
        raise AuthorizationError(f"You are not assigned to course {course.course_code}")
    return course


def _assigned_co(co_id):
    co = get_or_404(CourseOutcome, co_id, "Course outcome")
    _assigned_course(co.course_id)
    return co


def _assigned_tool(tool_id):
    tool = get_or_404(AssessmentTool, tool_id, "Tool")
    _assigned_course(tool.course_outcome.course_id)
    return tool


def _csv_response(columns, rows, prefix):
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return send_file(
        reports.rows_to_csv(columns, rows),
        mimetype="text/csv",
        as_attachment=True,
        download_name=f"{prefix}_{timestamp}.csv"
    )


# =========================================================
# MY COURSES
# =========================================================
@staff_bp.route("/courses")
@role_required("staff")
def my_courses():
    allocations = curriculum.staff_courses(current_user.user_id)
    return jsonify({"status": "success", "data": [
        {
            "staffCourseId": a.staff_course_id,
            "courseId": a.course_id,
            "courseCode": a.course.course_code,
            "courseTitle": a.course.course_title,
            "sectionId": a.section_id,
            "sectionName": a.section.section_name,
        }
        for a in allocations
    ]})


@staff_bp.route("/courses/<int:course_id>/students")
@role_required("staff")
def course_students(course_id):
    course = get_or_404(Course, course_id, "Course")
    students = marks.students_for_course(current_user, course, request.args.get("sectionId", type=int))
    return jsonify({"status": "success", "data": [
        {"studentId": s.student_id, "regno": s.register_no, "name": s.name} for s in students
    ]})


# =========================================================
# PARTITIONS / COURSE OUTCOMES
# =========================================================
@staff_bp.route("/courses/<int:course_id>/partitions", methods=["GET"])
@role_required("staff")
def get_partitions(course_id):
    course = _assigned_course(course_id)
    return jsonify({"status": "success", "data": course_outcomes.get_partitions(course)})


@staff_bp.route("/courses/<int:course_id>/partitions", methods=["POST"])
@role_required("staff")
def save_partitions(course_id):
    course = _assigned_course(course_id)
    data = _payload()
    partition, created = course_outcomes.save_partitions(
        course,
        data.get("theoryCount"),
        data.get("practicalCount"),
        data.get("experientialCount"),
        current_user.username
    )
    return jsonify({
        "status": "success",
        "message": "Partitions and COs saved successfully",
        "partitionId": partition.partition_id,
        "data": [course_outcomes.serialize_co(co) for co in created],
    }), 201


@staff_bp.route("/courses/<int:course_id>/partitions", methods=["PUT"])
@role_required("staff")
def resize_partitions(course_id):
    course = _assigned_course(course_id)
    data = _payload()
    ordered, deleted = course_outcomes.resize_partitions(
        course,
        data.get("theoryCount"),
        data.get("practicalCount"),
        data.get("experientialCount"),
        current_user.username,
        confirm=bool(data.get("confirm"))
    )
    return jsonify({
        "status": "success",
        "message": "Partitions updated successfully",
        "deleted": [co.co_id for co in deleted],
        "data": [course_outcomes.serialize_co(co) for co in ordered],
    })


@staff_bp.route("/courses/<int:course_id>/cos")
@role_required("staff")
def list_cos(course_id):
    course = _assigned_course(course_id)
    cos = course_outcomes.list_course_outcomes(course)
    data = []
    for co in cos:
        row = course_outcomes.serialize_co(co)
        row["complete"] = co_is_complete(co)
        data.append(row)
    return jsonify({"status": "success", "data": data})


# =========================================================
# ASSESSMENT TOOLS
# =========================================================
@staff_bp.route("/cos/<int:co_id>/tools", methods=["GET"])
@role_required("staff")
def list_tools(co_id):
    co = _assigned_co(co_id)
    return jsonify({"status": "success", "data": [assessment_tools.serialize_tool(t) for t in co.tools]})


@staff_bp.route("/cos/<int:co_id>/tools", methods=["POST"])
@role_required("staff")
def create_tool(co_id):
    co = _assigned_co(co_id)
    tool = assessment_tools.create_tool(co, _payload(), current_user.username)
    return jsonify({"status": "success", "data": assessment_tools.serialize_tool(tool)}), 201


@staff_bp.route("/cos/<int:co_id>/tools", methods=["PUT"])
@role_required("staff")
def save_tools(co_id):
    co = _assigned_co(co_id)
    tools = assessment_tools.save_tool_set(co, _payload().get("tools"), current_user.username)
    return jsonify({
        "status": "success",
        "message": "Tools saved successfully",
        "data": [assessment_tools.serialize_tool(t) for t in tools],
    })


@staff_bp.route("/tools/<int:tool_id>", methods=["PUT"])
@role_required("staff")
def update_tool(tool_id):
    tool = _assigned_tool(tool_id)
    assessment_tools.update_tool(tool, _payload(), current_user.username)
    return jsonify({"status": "success", "data": assessment_tools.serialize_tool(tool)})


@staff_bp.route("/tools/<int:tool_id>", methods=["DELETE"])
@role_required("staff")
def delete_tool(tool_id):
    assessment_tools.delete_tool(_assigned_tool(tool_id))
    return jsonify({"status": "success", "message": "Tool deleted"})


# =========================================================
# MARKS
# =========================================================
@staff_bp.route("/tools/<int:tool_id>/marks", methods=["GET"])
@role_required("staff")
def get_marks(tool_id):
    tool = _assigned_tool(tool_id)
    return jsonify({"status": "success", "data": marks.marks_for_tool(current_user, tool)})


@staff_bp.route("/tools/<int:tool_id>/marks", methods=["POST"])
@role_required("staff")
def save_marks(tool_id):
    tool = get_or_404(AssessmentTool, tool_id, "Tool")
    saved = marks.save_marks_for_tool(current_user, tool, _payload().get("marks"))
    return jsonify({"status": "success", "message": f"Saved marks for {saved} student(s)"})


@staff_bp.route("/tools/<int:tool_id>/import", methods=["POST"])
@role_required("staff")
def import_marks(tool_id):
    tool = get_or_404(AssessmentTool, tool_id, "Tool")
    upload = request.files.get("file")
    if upload is None or upload.filename == "":
        raise ValidationError("No file uploaded")
    result = marks.import_marks_for_tool(current_user, tool, upload)
    return jsonify({
        "status": "success",
        "message": f"Imported marks for {result['saved']} student(s)",
        "skipped": result["skipped"],
    })


# =========================================================
# CSV EXPORTS
# =========================================================
@staff_bp.route("/cos/<int:co_id>/export")
@role_required("staff")
def export_co_wise(co_id):
    co = get_or_404(CourseOutcome, co_id, "Course outcome")
    columns, rows = reports.co_wise_rows(current_user, co)
    return _csv_response(columns, rows, f"co_{co_id}_marks")


@staff_bp.route("/courses/<int:course_id>/export")
@role_required("staff")
def export_course_wise(course_id):
    course = get_or_404(Course, course_id, "Course")
    columns, rows = reports.course_wise_rows(current_user, course)
    return _csv_response(columns, rows, f"{course.course_code}_marks")


# =========================================================
# ATTENDANCE
# =========================================================
@staff_bp.route("/attendance", methods=["POST"])
@role_required("staff")
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
        section_id=data.get("sectionId")
    )
    return jsonify({
        "status": "success",
        "message": f"Attendance marked for {len(processed)} student(s)",
        "processed": processed,
        "skipped": skipped,
    })


# =========================================================
# COURSE REQUESTS
# =========================================================
@staff_bp.route("/course-requests/courses")
@role_required("staff")
def requestable_courses():
    data = course_requests.courses_for_staff(
        current_user,
        semester_number=request.args.get("semester", type=int),
        batch=request.args.get("batch"),
        available_only=request.args.get("available") == "true"
    )
    return jsonify({"status": "success", "data": data})


@staff_bp.route("/courses/<int:course_id>/request", methods=["POST"])
@role_required("staff")
def send_course_request(course_id):
    course = get_or_404(Course, course_id, "Course")
    course_request = course_requests.send_request(current_user, course, current_user.username)
    return jsonify({
        "status": "success",
        "message": "Request sent successfully",
        "requestId": course_request.request_id,
    }), 201


@staff_bp.route("/course-requests")
@role_required("staff")
def my_course_requests():
    limit = request.args.get("limit", type=int)
    return jsonify({"status": "success", "data": [
        course_requests.serialize_request(r)
        for r in course_requests.my_requests(current_user, limit=limit)
    ]})


@staff_bp.route("/course-requests/<int:request_id>", methods=["DELETE"])
@role_required("staff")
def cancel_course_request(request_id):
    course_requests.cancel_request(current_user, db.session.get(CourseRequest, request_id))
    return jsonify({"status": "success", "message": "Request cancelled successfully"})


@staff_bp.route("/course-requests/<int:request_id>/resend", methods=["POST"])
@role_required("staff")
def resend_course_request(request_id):
    course_requests.resend_request(
        current_user, db.session.get(CourseRequest, request_id), current_user.username
    )
    return jsonify({"status": "success", "message": "Request resent successfully"})


@staff_bp.route("/staff-courses/<int:staff_course_id>/leave", methods=["POST"])
@role_required("staff")
def leave_course(staff_course_id):
    course_requests.leave_course(
        current_user, db.session.get(StaffCourse, staff_course_id), current_user.username
    )
    return jsonify({"status": "success", "message": "Left course successfully"})
