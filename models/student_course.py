from extensions import db


class StudentCourse(db.Model):
    """Enrollment: the authority for who takes what, in which section."""
    __tablename__ = "student_courses"

    student_course_id = db.Column(db.Integer, primary_key=True)

    student_id = db.Column(
        db.Integer,
        db.ForeignKey("students.student_id"),
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

    staff_id = db.Column(
        db.Integer,
        db.ForeignKey("users.user_id"),
        nullable=True
    )

    created_by = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    course = db.relationship("Course", lazy=True)
    section = db.relationship("Section", lazy=True)

    __table_args__ = (
        db.UniqueConstraint("student_id", "course_id", name="unique_student_course"),
    )

    def __repr__(self):
        return f"<StudentCourse student={self.student_id} course={self.course_id}>"
