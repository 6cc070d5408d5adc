from extensions import db

ATTENDANCE_STATUSES = ("P", "A", "OD")


class PeriodAttendance(db.Model):
    __tablename__ = "period_attendance"

    attendance_id = db.Column(db.Integer, primary_key=True)

    student_id = db.Column(
        db.Integer,
        db.ForeignKey("students.student_id"),
        nullable=False
    )

    staff_id = db.Column(
        db.Integer,
        db.ForeignKey("users.user_id"),
        nullable=True
    )

    course_id = db.Column(db.Integer, db.ForeignKey("courses.course_id"), nullable=False)
    section_id = db.Column(db.Integer, db.ForeignKey("sections.section_id"), nullable=False)

    attendance_date = db.Column(db.Date, nullable=False)
    day_of_week = db.Column(db.String(3), nullable=False)
    period_number = db.Column(db.Integer, nullable=False)
    status = db.Column(db.Enum(*ATTENDANCE_STATUSES, name="attendance_status"), nullable=False)

    # "staff" or "admin"; admin-marked rows are not overwritten by staff
    updated_by = db.Column(db.String(20), nullable=False, default="staff")

    __table_args__ = (
        db.UniqueConstraint(
            "student_id", "course_id", "attendance_date", "period_number",
            name="unique_student_course_period"
        ),
    )

    def __repr__(self):
        return f"<PeriodAttendance student={self.student_id} {self.attendance_date} P{self.period_number}>"
