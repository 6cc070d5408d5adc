import pytest

from extensions import db
from models import Section, StudentCourse
from services import curriculum
from services.errors import ConflictError, NotFoundError, ValidationError


def test_batch_creates_its_semesters(factory):
    batch = curriculum.add_batch({"degree": "B.Tech", "branch": "IT", "batch": "2023", "semesterCount": 4})
    data = curriculum.serialize_batch(batch)
    assert [s["semesterNumber"] for s in data["semesters"]] == [1, 2, 3, 4]


def test_duplicate_department_and_course(factory):
    department = factory.department("CSE")
    with pytest.raises(ConflictError):
        curriculum.add_department("cse", "Computer Science")

    semester = factory.semester()
    factory.course(semester, code="CS101")
    with pytest.raises(ConflictError):
        factory.course(semester, code="cs101")
    assert department.department_code == "CSE"


def test_invalid_course_category(factory):
    semester = factory.semester()
    with pytest.raises(ValidationError):
        factory.course(semester, category="XYZ")


def test_section_names_follow_the_course_counter(factory):
    course = factory.course(factory.semester(), sections=3)
    extra = curriculum.add_sections(course, 2, capacity=30)

    names = [s.section_name for s in curriculum.list_sections(course)]
    assert names == ["Batch 1", "Batch 2", "Batch 3", "Batch 4", "Batch 5"]
    assert [s.capacity for s in extra] == [30, 30]


def test_section_numbering_survives_deactivation(factory):
    course = factory.course(factory.semester(), sections=2)
    curriculum.deactivate_section(curriculum.list_sections(course)[1])
    (added,) = curriculum.add_sections(course, 1)
    assert added.section_name == "Batch 3"


def test_claim_seat_respects_capacity(factory):
    course = factory.course(factory.semester(), capacity=1)
    section = curriculum.list_sections(course)[0]

    assert curriculum.claim_seat(section.section_id) is True
    assert curriculum.claim_seat(section.section_id) is False
    assert db.session.get(Section, section.section_id).enrolled_count == 1


class TestEnrollment:
    def test_duplicate_enrollment_conflicts(self, classroom):
        with pytest.raises(ConflictError):
            curriculum.enroll_student(classroom.students[0], classroom.course, None, "admin")
        assert classroom.section.enrolled_count == 2

    def test_full_section(self, factory, classroom):
        course = factory.course(classroom.semester, capacity=1)
        first, second = classroom.students
        factory.enroll(first, course)

        with pytest.raises(ConflictError):
            factory.enroll(second, course)
        assert StudentCourse.query.filter_by(course_id=course.course_id).count() == 1

    def test_course_without_sections(self, factory, classroom):
        course = factory.course(classroom.semester, sections=0)
        with pytest.raises(ValidationError):
            factory.enroll(classroom.students[0], course)

    def test_unenroll_releases_the_seat(self, classroom):
        curriculum.unenroll_student(classroom.students[0], classroom.course)
        assert classroom.section.enrolled_count == 1
        assert curriculum.enrolled_section(classroom.students[0].student_id, classroom.course.course_id) is None

        with pytest.raises(NotFoundError):
            curriculum.unenroll_student(classroom.students[0], classroom.course)

    def test_section_with_students_cannot_be_deactivated(self, classroom):
        with pytest.raises(ConflictError):
            curriculum.deactivate_section(classroom.section)


class TestStaffAllocation:
    def test_one_allocation_per_course(self, classroom):
        with pytest.raises(ConflictError):
            curriculum.allocate_staff(
                classroom.staff.user_id, classroom.course, classroom.section.section_id, None, "admin"
            )

    def test_only_staff_users(self, factory, classroom):
        admin = factory.user("ADMIN")
        with pytest.raises(NotFoundError):
            curriculum.allocate_staff(admin.user_id, classroom.course, classroom.section.section_id, None, "admin")

    def test_section_must_belong_to_course(self, factory, classroom):
        other = factory.course(classroom.semester)
        staff = factory.user("STAFF")
        with pytest.raises(NotFoundError):
            curriculum.allocate_staff(staff.user_id, other, classroom.section.section_id, None, "admin")

    def test_staff_courses_and_assignment_lookup(self, classroom):
        allocations = curriculum.staff_courses(classroom.staff.user_id)
        assert [a.course.course_code for a in allocations] == ["CS301"]
        assert curriculum.is_staff_assigned(classroom.staff.user_id, classroom.course.course_id)

        curriculum.remove_staff_allocation(allocations[0])
        assert not curriculum.is_staff_assigned(classroom.staff.user_id, classroom.course.course_id)

    def test_list_staff_users(self, factory, classroom):
        factory.user("ADMIN")
        assert [u.username for u in curriculum.list_staff_users()] == ["prof"]
        assert curriculum.list_staff_users(department_id=classroom.department.department_id)[0].username == "prof"
