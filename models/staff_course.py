from extensions import db


class StaffCourse(db.Model):
    __tablename__ = "staff_courses"

    staff_course_id = db.Column(db.Integer, primary_key=True)

    staff_id = db.Column(
        db.Integer,
        db.ForeignKey("users.user_id"),
        nullable=False
    )

    course_id = db.Column(
        db.Integer,
        db.ForeignKey("courses.course_id"),
        nullable=False
    )

    section_id = db.Column(
        db.Integer,
        db.ForeignKey("sections.section_id"),
        nullable=False
    )

    department_id = db.Column(
        db.Integer,
        db.ForeignKey("departments.department_id"),
        nullable=True
    )

    created_by = db.Column(db.String(120))
    allocated_at = db.Column(db.DateTime, server_default=db.func.now())

    staff = db.relationship("User", lazy=True)
    course = db.relationship("Course", lazy=True)
    section = db.relationship("Section", lazy=True)

    __table_args__ = (
        db.UniqueConstraint("staff_id", "course_id", name="unique_staff_course"),
    )

    def __repr__(self):
        return f"<StaffCourse staff={self.staff_id} course={self.course_id}>"
