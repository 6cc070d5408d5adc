import logging

from extensions import db
from models.role import Role
from models.department import Department
from services.auth_service import ROLE_NAMES

logger = logging.getLogger(__name__)


def seed_roles():
    for role_id, role_name in enumerate(ROLE_NAMES, start=1):
        existing = Role.query.filter(
            (Role.role_id == role_id) |
            (Role.role_name == role_name)
        ).first()

        if not existing:
            db.session.add(Role(role_id=role_id, role_name=role_name))

    db.session.commit()
    logger.info("Roles verified (%s)", ", ".join(ROLE_NAMES))


def seed_departments():
    departments = [
        {"department_code": "CSE", "department_name": "Computer Science and Engineering"},
        {"department_code": "ECE", "department_name": "Electronics and Communication Engineering"},
    ]

    for d in departments:
        existing = Department.query.filter_by(department_code=d["department_code"]).first()
        if not existing:
            db.session.add(Department(**d))

    db.session.commit()
    logger.info("Departments seeded")


def run_seed():
    seed_roles()
    seed_departments()
