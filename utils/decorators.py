from functools import wraps
from flask import jsonify
from flask_login import current_user


def role_required(*required_roles):
    """Allow the view only for logged-in users holding one of ``required_roles``."""
    allowed = {r.upper() for r in required_roles}

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return jsonify({"status": "error", "message": "Login required"}), 401

            role = current_user.role.role_name if current_user.role else None
            if role not in allowed:
                return jsonify({
                    "status": "error",
                    "message": "Access Denied: You do not have the required role."
                }), 403

            return func(*args, **kwargs)
        return wrapper
    return decorator
