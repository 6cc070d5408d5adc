from flask import Blueprint, request, jsonify, session
from flask_login import login_user, logout_user, login_required, current_user
from services.auth_service import authenticate_user, role_name_of

# Define the blueprint
auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


# =========================================================
# LOGIN ROUTE
# =========================================================
@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or request.form
    username = data.get("username")
    password = data.get("password")

    if not username or not password:
        return jsonify({"status": "error", "message": "Username and password are required"}), 400

    user = authenticate_user(username, password)
    if not user:
        return jsonify({"status": "error", "message": "Invalid username or password"}), 401

    login_user(user)
    session["user_id"] = user.user_id
    session["role"] = role_name_of(user)

    return jsonify({
        "status": "success",
        "user": {
            "userId": user.user_id,
            "username": user.username,
            "role": role_name_of(user),
            "departmentId": user.department_id,
        }
    })


@auth_bp.route("/me")
@login_required
def me():
    return jsonify({
        "status": "success",
        "user": {
            "userId": current_user.user_id,
            "username": current_user.username,
            "role": role_name_of(current_user),
            "departmentId": current_user.department_id,
        }
    })


# =========================================================
# LOGOUT ROUTE
# =========================================================
@auth_bp.route("/logout", methods=["POST"])
def logout():
    logout_user()
    session.clear()
    return jsonify({"status": "success"})
