import logging

from werkzeug.security import check_password_hash, generate_password_hash

from extensions import db
from models import Batch, Department, Role, Student, User
from services.db_utils import get_or_404, transaction
from services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ROLE_NAMES = ("ADMIN", "STAFF", "STUDENT")


def authenticate_user(username: str, password: str):
    user = User.query.filter_by(username=username).first()

    if not user:
        return None

    if not check_password_hash(user.password_hash, password):
        return None

    if user.is_active is False:
        return None

    return user


def role_name_of(user):
    return user.role.role_name if user and user.role else None


def _new_user(username, password, role_name, department_id=None, email=None):
    """Validate and stage a user in the current session; the caller commits."""
    username = (username or "").strip()
    role_name = (role_name or "").strip().upper()
    if not username or not password:
        raise ValidationError("username and password are required")
    if role_name not in ROLE_NAMES:
        raise ValidationError(f"role must be one of {', '.join(ROLE_NAMES)}")

    role = Role.query.filter_by(role_name=role_name).first()
    if not role:
        raise NotFoundError(f"Role {role_name} has not been seeded")
    if department_id is not None:
        get_or_404(Department, department_id, "Department")
    if User.query.filter_by(username=username).first():
        raise ConflictError(f"User '{username}' already exists")

    user = User(
        username=username,
        email=email,
        role_id=role.role_id,
        department_id=department_id,
        password_hash=generate_password_hash(password),
        is_active=True
    )
    db.session.add(user)
    db.session.flush()
    return user


def create_user(username: str, password: str, role_name: str, department_id=None, email=None):
    with transaction():
        user = _new_user(username, password, role_name, department_id, email)
    logger.info("Created %s user %s", user.role.role_name, user.username)
    return user


def create_student(data):
    """Student record plus its STUDENT login (username = register number)."""
    register_no = (data.get("registerNo") or "").strip()
    name = (data.get("name") or "").strip()
    if not register_no or not name:
        raise ValidationError("registerNo and name are required")

    department = get_or_404(Department, data.get("departmentId"), "Department")
    batch = get_or_404(Batch, data.get("batchId"), "Batch")
    if Student.query.filter_by(register_no=register_no).first():
        raise ConflictError(f"Register No {register_no} already exists")

    with transaction():
        user = _new_user(
            register_no,
            data.get("password") or register_no,
            "STUDENT",
            department_id=department.department_id,
            email=data.get("email")
        )
        student = Student(
            register_no=register_no,
            name=name,
            user_id=user.user_id,
            department_id=department.department_id,
            batch_id=batch.batch_id,
            semester_number=data.get("semesterNumber"),
            is_active=True
        )
        db.session.add(student)
        db.session.flush()
    return student


def student_for_user(user):
    student = Student.query.filter_by(user_id=user.user_id, is_active=True).first()
    if not student:
        raise NotFoundError("Student not found")
    return student
