"""
Pytest configuration and fixtures.

Every test gets a fresh app on an in-memory SQLite database with the base
roles seeded. ``factory`` builds the departments, semesters, users, courses
and enrollments a test needs; ``classroom`` is the common case of one staff
teaching one section of a course with two students enrolled.
"""
import itertools
from types import SimpleNamespace

import pytest

from app import create_app
from config.config import TestingConfig
from extensions import db
from services import curriculum
from services.auth_service import create_student, create_user
from utils.seed_data import seed_roles

PASSWORD = "secret"


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        seed_roles()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def roster_folder(app, tmp_path):
    folder = tmp_path / "rosters"
    app.config["ROSTER_FOLDER"] = str(folder)
    return folder


class Factory:
    def __init__(self):
        self._seq = itertools.count(1)

    def department(self, code=None):
        n = next(self._seq)
        return curriculum.add_department(code or f"D{n}", f"Department {n}")

    def semester(self, number=1, semester_count=2):
        batch = curriculum.add_batch({
            "degree": "B.E",
            "branch": "CSE",
            "batch": "2024",
            "semesterCount": semester_count,
        })
        return next(s for s in batch.semesters if s.semester_number == number)

    def user(self, role="STAFF", username=None, department=None):
        n = next(self._seq)
        return create_user(
            username or f"{role.lower()}{n}",
            PASSWORD,
            role,
            department_id=department.department_id if department else None
        )

    def student(self, department, semester, regno=None, name=None):
        n = next(self._seq)
        return create_student({
            "registerNo": regno or f"REG{n:04d}",
            "name": name or f"Student {n}",
            "departmentId": department.department_id,
            "batchId": semester.batch_id,
            "semesterNumber": semester.semester_number,
            "password": PASSWORD,
        })

    def course(self, semester, code=None, category="PCC", sections=1, capacity=None, title=None, credits=3):
        n = next(self._seq)
        course = curriculum.add_course({
            "courseCode": code or f"C{n:03d}",
            "courseTitle": title or f"Course {n}",
            "category": category,
            "credits": credits,
            "semesterId": semester.semester_id,
        })
        if sections:
            curriculum.add_sections(course, sections, capacity)
        return course

    def assign(self, staff, course, section=None, department=None):
        section = section or curriculum.list_sections(course)[0]
        return curriculum.allocate_staff(
            staff.user_id,
            course,
            section.section_id,
            department.department_id if department else None,
            "admin"
        )

    def enroll(self, student, course, section=None):
        section_id = section.section_id if section else None
        return curriculum.enroll_student(student, course, section_id, "admin")


@pytest.fixture
def factory(app):
    return Factory()


@pytest.fixture
def classroom(factory):
    department = factory.department("CSE")
    semester = factory.semester()
    course = factory.course(semester, code="CS301", title="Operating Systems")
    section = curriculum.list_sections(course)[0]
    staff = factory.user("STAFF", username="prof", department=department)
    factory.assign(staff, course, section, department)
    students = [
        factory.student(department, semester, regno="R001", name="Asha"),
        factory.student(department, semester, regno="R002", name="Bala"),
    ]
    for student in students:
        factory.enroll(student, course, section)
    return SimpleNamespace(
        department=department,
        semester=semester,
        course=course,
        section=section,
        staff=staff,
        students=students,
    )


def login(client, username, password=PASSWORD):
    return client.post("/auth/login", json={"username": username, "password": password})
