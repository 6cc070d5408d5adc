from flask import Blueprint, request, jsonify
from flask_login import current_user

from models import Semester
from services import attendance, cbcs as cbcs_service, elective_allocation, elective_buckets, grades
from services.auth_service import student_for_user
from services.db_utils import get_or_404, parse_int
from utils.decorators import role_required

student_bp = Blueprint("student", __name__, url_prefix="/student")


def _payload():
    return request.get_json(silent=True) or {}


@student_bp.route("/semesters/<int:semester_id>/buckets")
@role_required("student")
def elective_buckets_for_semester(semester_id):
    return jsonify({"status": "success", "data": elective_buckets.list_buckets(semester_id)})


@student_bp.route("/electives", methods=["POST"])
@role_required("student")
def allocate_electives():
    data = _payload()
    student = student_for_user(current_user)
    semester = get_or_404(Semester, data.get("semesterId"), "Semester")
    enrolled = elective_allocation.allocate_direct(
        student, semester, data.get("selections"), current_user.username
    )
    return jsonify({
        "status": "success",
        "message": "Courses allocated successfully",
        "enrolled": enrolled,
    })


@student_bp.route("/cbcs/<int:cbcs_id>")
@role_required("student")
def round_view(cbcs_id):
    student = student_for_user(current_user)
    round_ = cbcs_service.get_round(cbcs_id)
    return jsonify({"status": "success", "data": cbcs_service.student_round_view(student, round_)})


@student_bp.route("/cbcs/<int:cbcs_id>/choices", methods=["POST"])
@role_required("student")
def submit_choices(cbcs_id):
    student = student_for_user(current_user)
    round_ = cbcs_service.get_round(cbcs_id)
    result = elective_allocation.submit_round_choices(
        student, round_, _payload().get("selections"), current_user.username
    )
    message = (
        "Selection stored and roster updated" if result["type"] == "FCFS"
        else "Choices stored successfully"
    )
    return jsonify({"status": "success", "message": message, "data": result})


@student_bp.route("/attendance")
@role_required("student")
def attendance_summary():
    student = student_for_user(current_user)
    semester_id = parse_int(request.args.get("semesterId"), "semesterId")
    return jsonify({"status": "success", "data": attendance.attendance_summary(student, semester_id)})


@student_bp.route("/gpa")
@role_required("student")
def gpa_history():
    student = student_for_user(current_user)
    return jsonify({"status": "success", "data": grades.gpa_history(student)})


@student_bp.route("/semesters/<int:semester_id>/gpa")
@role_required("student")
def semester_gpa(semester_id):
    student = student_for_user(current_user)
    semester = get_or_404(Semester, semester_id, "Semester")
    return jsonify({"status": "success", "data": grades.student_gpa(student, semester)})
