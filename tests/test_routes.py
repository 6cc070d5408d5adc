from io import BytesIO

import pytest

from conftest import login
from models import Department
from services import curriculum


@pytest.fixture
def admin(factory):
    return factory.user("ADMIN", username="root")


class TestAuth:
    def test_login_and_me(self, client, classroom):
        response = login(client, "prof")
        assert response.status_code == 200
        assert response.get_json()["user"]["role"] == "STAFF"

        me = client.get("/auth/me").get_json()
        assert me["user"]["username"] == "prof"

    def test_bad_password(self, client, classroom):
        response = login(client, "prof", "wrong")
        assert response.status_code == 401
        assert response.get_json()["status"] == "error"

    def test_student_login_uses_register_number(self, client, classroom):
        assert login(client, "R001").get_json()["user"]["role"] == "STUDENT"

    def test_logout(self, client, classroom):
        login(client, "prof")
        client.post("/auth/logout")
        assert client.get("/auth/me").status_code == 401


class TestRoleGuard:
    def test_anonymous(self, client):
        response = client.get("/admin/departments")
        assert response.status_code == 401

    def test_wrong_role(self, client, classroom):
        login(client, "R001")
        assert client.get("/admin/departments").status_code == 403
        assert client.get("/staff/courses").status_code == 403


class TestAdmin:
    def test_setup_flow(self, client, admin):
        login(client, "root")

        response = client.post("/admin/departments", json={"departmentCode": "mech", "departmentName": "Mechanical"})
        assert response.status_code == 201
        department_id = response.get_json()["departmentId"]

        batch = client.post("/admin/batches", json={
            "degree": "B.E", "branch": "MECH", "batch": "2025", "semesterCount": 2,
        }).get_json()["data"]
        semester_id = batch["semesters"][0]["semesterId"]

        course = client.post("/admin/courses", json={
            "courseCode": "ME101", "courseTitle": "Thermodynamics", "category": "PCC",
            "credits": 4, "semesterId": semester_id,
        })
        assert course.status_code == 201
        course_id = course.get_json()["data"]["courseId"]

        sections = client.post(f"/admin/courses/{course_id}/sections", json={"numberOfSections": 2})
        assert [s["sectionName"] for s in sections.get_json()["data"]] == ["Batch 1", "Batch 2"]

        listed = client.get(f"/admin/semesters/{semester_id}/courses").get_json()["data"]
        assert [c["courseCode"] for c in listed] == ["ME101"]
        assert department_id

    def test_error_payload_shape(self, client, admin, factory):
        login(client, "root")
        semester = factory.semester()
        bucket = client.post(f"/admin/semesters/{semester.semester_id}/buckets").get_json()

        response = client.post(f"/admin/buckets/{bucket['bucketId']}/courses", json={"courseCodes": ["NOPE"]})
        body = response.get_json()
        assert response.status_code == 400
        assert body["status"] == "error"
        assert body["message"] == "Failed to add courses"
        assert len(body["errors"]) == 1

    def test_missing_record(self, client, admin):
        login(client, "root")
        response = client.delete("/admin/courses/999")
        assert response.status_code == 404
        assert response.get_json()["status"] == "error"


class TestStaff:
    def test_partition_and_tool_flow(self, client, classroom):
        login(client, "prof")
        course_id = classroom.course.course_id

        created = client.post(f"/staff/courses/{course_id}/partitions", json={
            "theoryCount": 2, "practicalCount": 0, "experientialCount": 0,
        })
        assert created.status_code == 201
        co_id = created.get_json()["data"][1]["coId"]

        shrink = client.put(f"/staff/courses/{course_id}/partitions", json={
            "theoryCount": 1, "practicalCount": 0, "experientialCount": 0,
        })
        assert shrink.status_code == 409
        assert shrink.get_json()["errors"] == ["CO2"]

        tools = client.put(f"/staff/cos/{co_id}/tools", json={"tools": [
            {"toolName": "Quiz", "weightage": 60, "maxMarks": 10},
            {"toolName": "Test", "weightage": 50, "maxMarks": 10},
        ]})
        assert tools.status_code == 400

        tools = client.put(f"/staff/cos/{co_id}/tools", json={"tools": [
            {"toolName": "Quiz", "weightage": 100, "maxMarks": 10},
        ]})
        assert tools.status_code == 200
        cos = client.get(f"/staff/courses/{course_id}/cos").get_json()["data"]
        assert [(co["coNumber"], co["complete"]) for co in cos] == [("CO1", False), ("CO2", True)]

    def test_marks_and_export(self, client, classroom):
        login(client, "prof")
        course_id = classroom.course.course_id
        co_id = client.post(f"/staff/courses/{course_id}/partitions", json={
            "theoryCount": 1, "practicalCount": 0, "experientialCount": 0,
        }).get_json()["data"][0]["coId"]
        tool_id = client.put(f"/staff/cos/{co_id}/tools", json={"tools": [
            {"toolName": "Quiz", "weightage": 100, "maxMarks": 10},
        ]}).get_json()["data"][0]["toolId"]

        saved = client.post(f"/staff/tools/{tool_id}/marks", json={"marks": [
            {"regno": "R001", "marks": 9}, {"regno": "R002", "marks": 6.5},
        ]})
        assert saved.status_code == 200

        imported = client.post(
            f"/staff/tools/{tool_id}/import",
            data={"file": (BytesIO(b"regno,marks\nR002,7\nR001,oops\n"), "quiz.csv")},
            content_type="multipart/form-data",
        )
        assert imported.get_json()["skipped"] == ["Row 3: marks 'oops' is not a number"]

        export = client.get(f"/staff/courses/{course_id}/export")
        assert export.status_code == 200
        assert export.mimetype == "text/csv"
        lines = export.get_data(as_text=True).splitlines()
        assert lines[1].startswith("R001,Asha,90.0")
        assert lines[2].startswith("R002,Bala,70.0")

    def test_unassigned_course_forbidden(self, client, classroom, factory):
        other = factory.course(classroom.semester)
        login(client, "prof")
        response = client.get(f"/staff/courses/{other.course_id}/partitions")
        assert response.status_code == 403


class TestStudent:
    def test_direct_elective_allocation(self, client, classroom, admin):
        login(client, "root")
        semester_id = classroom.semester.semester_id
        bucket_id = client.post(f"/admin/semesters/{semester_id}/buckets").get_json()["bucketId"]
        client.post("/admin/courses", json={
            "courseCode": "PE101", "courseTitle": "Cloud", "category": "PEC", "semesterId": semester_id,
        })
        course = curriculum.list_courses(semester_id)[-1]
        curriculum.add_sections(course, 1)
        client.post(f"/admin/buckets/{bucket_id}/courses", json={"courseCodes": ["PE101"]})
        client.post("/auth/logout")

        login(client, "R001")
        buckets = client.get(f"/student/semesters/{semester_id}/buckets").get_json()["data"]
        assert buckets[0]["courses"][0]["courseCode"] == "PE101"

        payload = {"semesterId": semester_id, "selections": [
            {"bucketId": bucket_id, "courseId": course.course_id},
        ]}
        response = client.post("/student/electives", json=payload)
        assert response.status_code == 200
        assert response.get_json()["enrolled"] == ["PE101"]

        again = client.post("/student/electives", json=payload)
        assert again.status_code == 409


class TestCourseRequestsOverHttp:
    def test_request_accept_and_leave(self, client, classroom, factory, admin):
        factory.course(classroom.semester, code="CS302", title="Networks")
        factory.user("STAFF", username="ravi", department=classroom.department)

        login(client, "ravi")
        courses = client.get("/staff/course-requests/courses").get_json()["data"]
        course_id = next(c["courseId"] for c in courses if c["courseCode"] == "CS302")
        sent = client.post(f"/staff/courses/{course_id}/request")
        assert sent.status_code == 201
        request_id = sent.get_json()["requestId"]
        assert client.post(f"/staff/courses/{course_id}/request").status_code == 409
        client.post("/auth/logout")

        login(client, "root")
        pending = client.get("/admin/course-requests").get_json()["data"]
        assert [r["requestId"] for r in pending] == [request_id]
        accepted = client.post(f"/admin/course-requests/{request_id}/accept").get_json()
        client.post("/auth/logout")

        login(client, "ravi")
        left = client.post(f"/staff/staff-courses/{accepted['staffCourseId']}/leave")
        assert left.status_code == 200
        history = client.get("/staff/course-requests?limit=5").get_json()["data"]
        assert history[0]["status"] == "WITHDRAWN"


class TestGradesOverHttp:
    def test_upload_and_student_history(self, client, classroom, admin):
        semester_id = classroom.semester.semester_id
        login(client, "root")
        response = client.post(
            f"/admin/semesters/{semester_id}/grades",
            data={"file": (BytesIO(b"regno,CS301\nR001,A+\n"), "grades.csv")},
            content_type="multipart/form-data",
        )
        assert response.get_json()["inserted"] == 1
        assert client.post(f"/admin/semesters/{semester_id}/grades").status_code == 400
        gpa = client.get(f"/admin/students/R001/gpa?semesterId={semester_id}").get_json()["data"]
        assert gpa["gpa"] == 9.0
        client.post("/auth/logout")

        login(client, "R001")
        history = client.get("/student/gpa").get_json()["data"]
        assert history == [{"semesterNumber": 1, "gpa": 9.0, "cgpa": 9.0}]


def test_seed_command(app):
    result = app.test_cli_runner().invoke(args=["seed"])
    assert "Seed data loaded" in result.output
    assert sorted(d.department_code for d in Department.query.all()) == ["CSE", "ECE"]
