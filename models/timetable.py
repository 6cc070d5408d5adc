from extensions import db

DAYS_OF_WEEK = ("MON", "TUE", "WED", "THU", "FRI", "SAT")


class TimetableEntry(db.Model):
    __tablename__ = "timetable"

    timetable_id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.course_id"), nullable=False)
    section_id = db.Column(db.Integer, db.ForeignKey("sections.section_id"), nullable=True)
    day_of_week = db.Column(db.Enum(*DAYS_OF_WEEK, name="day_of_week"), nullable=False)
    period_number = db.Column(db.Integer, nullable=False)
    department_id = db.Column(
        db.Integer,
        db.ForeignKey("departments.department_id"),
        nullable=False
    )
    semester_id = db.Column(db.Integer, db.ForeignKey("semesters.semester_id"), nullable=False)
    is_active = db.Column(db.Boolean, default=True)

    created_by = db.Column(db.String(120))
    updated_by = db.Column(db.String(120))

    course = db.relationship("Course", lazy=True)
    section = db.relationship("Section", lazy=True)

    def __repr__(self):
        return f"<TimetableEntry {self.day_of_week} P{self.period_number}>"
