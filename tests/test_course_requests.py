import pytest

from models import CourseRequest, StaffCourse
from services import course_requests, curriculum
from services.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError


@pytest.fixture
def networks(factory, classroom):
    return factory.course(classroom.semester, code="CS302", title="Networks", sections=2)


@pytest.fixture
def staff(factory, classroom):
    return [
        factory.user("STAFF", username=name, department=classroom.department)
        for name in ("ravi", "meena", "kumar")
    ]


def statuses(staff_member):
    return {
        c["courseCode"]: c["status"]
        for c in course_requests.courses_for_staff(staff_member)
    }


class TestStaffSide:
    def test_courses_are_tagged_for_the_staff_member(self, classroom, networks, staff):
        ravi = staff[0]
        assert statuses(ravi) == {"CS301": "AVAILABLE", "CS302": "AVAILABLE"}
        assert statuses(classroom.staff) == {"CS301": "ALLOCATED", "CS302": "AVAILABLE"}

        sent = course_requests.send_request(ravi, networks, "ravi")
        listed = {c["courseCode"]: c for c in course_requests.courses_for_staff(ravi)}
        assert (listed["CS302"]["status"], listed["CS302"]["actionId"]) == ("PENDING", sent.request_id)

        available = course_requests.courses_for_staff(classroom.staff, available_only=True)
        assert [c["courseCode"] for c in available] == ["CS302"]

    def test_request_twice_conflicts(self, networks, staff):
        course_requests.send_request(staff[0], networks, "ravi")
        with pytest.raises(ConflictError):
            course_requests.send_request(staff[0], networks, "ravi")

    def test_allocated_staff_cannot_request(self, classroom):
        with pytest.raises(ConflictError):
            course_requests.send_request(classroom.staff, classroom.course, "prof")

    def test_other_department_is_forbidden(self, factory, networks):
        outsider = factory.user("STAFF", department=factory.department("ECE"))
        with pytest.raises(AuthorizationError):
            course_requests.send_request(outsider, networks, "outsider")
        with pytest.raises(AuthorizationError):
            course_requests.send_request(factory.user("STAFF"), networks, "nobody")

    def test_cancel_only_own_pending_request(self, networks, staff):
        ravi, meena, _ = staff
        pending = course_requests.send_request(ravi, networks, "ravi")

        with pytest.raises(NotFoundError):
            course_requests.cancel_request(meena, pending)
        course_requests.cancel_request(ravi, pending)
        assert CourseRequest.query.count() == 0

    def test_rejected_request_can_be_resent_once(self, networks, staff):
        ravi = staff[0]
        sent = course_requests.send_request(ravi, networks, "ravi")
        course_requests.reject_request(sent, "admin")
        assert statuses(ravi)["CS302"] == "REJECTED"

        course_requests.resend_request(ravi, sent, "ravi")
        assert (sent.status, sent.rejected_at) == ("PENDING", None)
        with pytest.raises(NotFoundError):
            course_requests.resend_request(ravi, sent, "ravi")

    def test_history(self, classroom, networks, staff):
        ravi = staff[0]
        first = course_requests.send_request(ravi, networks, "ravi")
        course_requests.reject_request(first, "admin")
        second = course_requests.send_request(ravi, classroom.course, "ravi")

        assert [r.request_id for r in course_requests.my_requests(ravi)] == [
            second.request_id, first.request_id,
        ]
        assert [r.request_id for r in course_requests.my_requests(ravi, limit=1)] == [second.request_id]


class TestAdminSide:
    def test_accept_takes_free_sections_then_rejects_the_rest(self, networks, staff):
        ravi, meena, kumar = staff
        requests = {s.username: course_requests.send_request(s, networks, s.username) for s in staff}
        first_section, second_section = curriculum.list_sections(networks)

        allocation = course_requests.accept_request(requests["ravi"], "admin")
        assert allocation.section_id == first_section.section_id
        assert requests["kumar"].status == "PENDING"

        allocation = course_requests.accept_request(requests["meena"], "admin")
        assert allocation.section_id == second_section.section_id
        assert requests["kumar"].status == "REJECTED"

        with pytest.raises(NotFoundError):
            course_requests.accept_request(requests["kumar"], "admin")
        course_requests.resend_request(kumar, requests["kumar"], "kumar")
        with pytest.raises(ConflictError):
            course_requests.accept_request(requests["kumar"], "admin")

        assert curriculum.is_staff_assigned(ravi.user_id, networks.course_id)
        assert statuses(meena)["CS302"] == "ALLOCATED"

    def test_course_without_sections(self, factory, classroom, staff):
        bare = factory.course(classroom.semester, code="CS399", sections=0)
        pending = course_requests.send_request(staff[0], bare, "ravi")
        with pytest.raises(ValidationError):
            course_requests.accept_request(pending, "admin")
        assert pending.status == "PENDING"

    def test_pending_list_and_serialization(self, classroom, networks, staff):
        for member in staff[:2]:
            course_requests.send_request(member, networks, member.username)

        pending = course_requests.pending_requests(department_id=classroom.department.department_id)
        data = [course_requests.serialize_request(r) for r in pending]
        assert [d["staffName"] for d in data] == ["meena", "ravi"]
        assert (data[0]["courseCode"], data[0]["sectionCount"], data[0]["assignedCount"]) == ("CS302", 2, 0)
        assert course_requests.pending_requests(semester_number=2) == []


class TestLeaving:
    def test_leave_frees_the_section(self, networks, staff):
        ravi = staff[0]
        pending = course_requests.send_request(ravi, networks, "ravi")
        allocation = course_requests.accept_request(pending, "admin")

        withdrawn = course_requests.leave_course(ravi, allocation, "ravi")

        assert withdrawn.status == "WITHDRAWN"
        assert StaffCourse.query.filter_by(staff_id=ravi.user_id).count() == 0
        again = course_requests.send_request(ravi, networks, "ravi")
        assert (again.request_id, again.status) == (pending.request_id, "PENDING")
        assert course_requests.accept_request(again, "admin").section_id == allocation_section(networks)

    def test_direct_allocation_cannot_be_left(self, classroom):
        allocation = StaffCourse.query.filter_by(staff_id=classroom.staff.user_id).one()
        with pytest.raises(NotFoundError):
            course_requests.leave_course(classroom.staff, allocation, "prof")

    def test_only_own_allocation(self, classroom, staff):
        allocation = StaffCourse.query.filter_by(staff_id=classroom.staff.user_id).one()
        with pytest.raises(NotFoundError):
            course_requests.leave_course(staff[0], allocation, "ravi")


def allocation_section(course):
    return curriculum.list_sections(course)[0].section_id
