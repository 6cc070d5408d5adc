from datetime import date

import pytest

from models import PeriodAttendance
from services import attendance, curriculum, timetable
from services.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError

MONDAY = date(2026, 10, 19)
NEXT_MONDAY = date(2026, 10, 26)
SUNDAY = date(2026, 10, 25)


def slot(classroom, course=None, day="MON", period=1, **extra):
    data = {
        "courseId": (course or classroom.course).course_id,
        "dayOfWeek": day,
        "periodNumber": period,
        "departmentId": classroom.department.department_id,
        "semesterId": classroom.semester.semester_id,
    }
    data.update(extra)
    return data


class TestTimetable:
    def test_slot_is_exclusive_per_semester(self, factory, classroom):
        entry = timetable.create_entry(slot(classroom), "admin")
        other = factory.course(classroom.semester)

        with pytest.raises(ConflictError):
            timetable.create_entry(slot(classroom, other), "admin")
        timetable.create_entry(slot(classroom, other, period=2), "admin")

        assert timetable.has_period(classroom.course.course_id, "MON", 1)
        assert timetable.serialize_entry(entry)["courseCode"] == "CS301"
        assert len(timetable.entries_for_semester(classroom.semester.semester_id)) == 2

    @pytest.mark.parametrize("changes", [
        {"periodNumber": 0},
        {"periodNumber": 9},
        {"dayOfWeek": "SUN"},
        {"periodNumber": "first"},
    ])
    def test_invalid_slot(self, classroom, changes):
        with pytest.raises(ValidationError):
            timetable.create_entry(dict(slot(classroom), **changes), "admin")

    def test_section_must_belong_to_course(self, factory, classroom):
        other = factory.course(classroom.semester)
        foreign = curriculum.list_sections(other)[0]
        with pytest.raises(ValidationError):
            timetable.create_entry(slot(classroom, sectionId=foreign.section_id), "admin")

    def test_semester_must_be_the_courses_semester(self, factory, classroom):
        other_semester = factory.semester()
        with pytest.raises(ValidationError):
            timetable.create_entry(slot(classroom, semesterId=other_semester.semester_id), "admin")
        assert timetable.entries_for_semester(other_semester.semester_id) == []

    def test_unknown_course(self, classroom):
        data = slot(classroom)
        data["courseId"] = 9999
        with pytest.raises(NotFoundError):
            timetable.create_entry(data, "admin")

    def test_update_and_delete(self, factory, classroom):
        entry = timetable.create_entry(slot(classroom), "admin")
        other = timetable.create_entry(slot(classroom, factory.course(classroom.semester), period=2), "admin")

        timetable.update_entry(entry, slot(classroom, sectionId=classroom.section.section_id), "admin")
        assert entry.section_id == classroom.section.section_id

        with pytest.raises(ConflictError):
            timetable.update_entry(other, slot(classroom, period=1), "admin")

        timetable.delete_entry(entry)
        timetable.update_entry(other, slot(classroom, period=1), "admin")
        assert other.period_number == 1


class TestAttendance:
    @pytest.fixture
    def monday_first_period(self, classroom):
        return timetable.create_entry(slot(classroom), "admin")

    def test_marks_and_skips_bad_rows(self, classroom, monday_first_period):
        processed, skipped = attendance.mark_attendance(
            classroom.staff, classroom.course, 1, "2026-10-19", [
                {"regno": "R001", "status": "P"},
                {"regno": "R002", "status": "od"},
                {"regno": "R999", "status": "A"},
                {"regno": "R001", "status": "X"},
            ]
        )

        assert [(p["regno"], p["status"]) for p in processed] == [("R001", "P"), ("R002", "OD")]
        assert [s["regno"] for s in skipped] == ["R999", "R001"]
        row = PeriodAttendance.query.filter_by(student_id=classroom.students[0].student_id).one()
        assert (row.day_of_week, row.updated_by) == ("MON", "staff")

    def test_remarking_updates_the_same_row(self, classroom, monday_first_period):
        for status in ("P", "A"):
            attendance.mark_attendance(
                classroom.staff, classroom.course, 1, MONDAY, [{"regno": "R001", "status": status}]
            )
        (row,) = PeriodAttendance.query.all()
        assert row.status == "A"

    def test_period_must_be_timetabled(self, classroom, monday_first_period):
        with pytest.raises(ValidationError):
            attendance.mark_attendance(
                classroom.staff, classroom.course, 2, MONDAY, [{"regno": "R001", "status": "P"}]
            )

    @pytest.mark.parametrize("when, day", [(MONDAY, "TUE"), (SUNDAY, None), ("19-10-2026", None)])
    def test_date_and_day_must_agree(self, classroom, monday_first_period, when, day):
        with pytest.raises(ValidationError):
            attendance.mark_attendance(
                classroom.staff, classroom.course, 1, when, [{"regno": "R001", "status": "P"}], day=day
            )

    def test_unassigned_staff(self, factory, classroom, monday_first_period):
        outsider = factory.user("STAFF")
        with pytest.raises(AuthorizationError):
            attendance.mark_attendance(
                outsider, classroom.course, 1, MONDAY, [{"regno": "R001", "status": "P"}]
            )

    def test_admin_marked_rows_are_not_overwritten_by_staff(self, factory, classroom, monday_first_period):
        admin = factory.user("ADMIN")
        attendance.mark_attendance(
            admin, classroom.course, 1, MONDAY, [{"regno": "R001", "status": "OD"}], as_admin=True
        )

        processed, skipped = attendance.mark_attendance(
            classroom.staff, classroom.course, 1, MONDAY, [
                {"regno": "R001", "status": "A"},
                {"regno": "R002", "status": "P"},
            ]
        )
        assert [p["regno"] for p in processed] == ["R002"]
        assert skipped == [{"regno": "R001", "reason": "Attendance marked by admin"}]

        attendance.mark_attendance(
            admin, classroom.course, 1, MONDAY, [{"regno": "R001", "status": "A"}], as_admin=True
        )
        row = PeriodAttendance.query.filter_by(student_id=classroom.students[0].student_id).one()
        assert (row.status, row.updated_by) == ("A", "admin")

    def test_summary_counts_od_as_present(self, classroom, monday_first_period):
        for when, marks in (
            (MONDAY, [{"regno": "R001", "status": "P"}, {"regno": "R002", "status": "OD"}]),
            (NEXT_MONDAY, [{"regno": "R001", "status": "A"}, {"regno": "R002", "status": "P"}]),
        ):
            attendance.mark_attendance(classroom.staff, classroom.course, 1, when, marks)

        first, second = classroom.students
        (asha,) = attendance.attendance_summary(first, classroom.semester.semester_id)
        (bala,) = attendance.attendance_summary(second, classroom.semester.semester_id)
        assert (asha["present"], asha["total"], asha["percentage"]) == (1, 2, 50.0)
        assert (bala["present"], bala["total"], bala["percentage"]) == (2, 2, 100.0)
