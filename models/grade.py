from extensions import db

# Letter grade -> grade point. "U" is a fail and never counts towards GPA.
GRADE_POINTS = {
    "O": 10,
    "A+": 9,
    "A": 8,
    "B+": 7,
    "B": 6,
    "U": 0,
}


class StudentGrade(db.Model):
    __tablename__ = "student_grades"

    grade_id = db.Column(db.Integer, primary_key=True)

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

    grade = db.Column(db.String(2), nullable=False)
    uploaded_by = db.Column(db.String(120))
    updated_at = db.Column(
        db.DateTime,
        server_default=db.func.now(),
        onupdate=db.func.now()
    )

    course = db.relationship("Course", lazy=True)

    __table_args__ = (
        db.UniqueConstraint("student_id", "course_id", name="unique_student_grade"),
    )

    def __repr__(self):
        return f"<StudentGrade student={self.student_id} course={self.course_id} {self.grade}>"


class StudentSemesterGpa(db.Model):
    __tablename__ = "student_semester_gpa"

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("students.student_id"), nullable=False)
    semester_id = db.Column(db.Integer, db.ForeignKey("semesters.semester_id"), nullable=False)
    gpa = db.Column(db.Float, nullable=True)
    cgpa = db.Column(db.Float, nullable=True)
    updated_at = db.Column(
        db.DateTime,
        server_default=db.func.now(),
        onupdate=db.func.now()
    )

    semester = db.relationship("Semester", lazy=True)

    __table_args__ = (
        db.UniqueConstraint("student_id", "semester_id", name="unique_student_semester_gpa"),
    )

    def __repr__(self):
        return f"<StudentSemesterGpa student={self.student_id} semester={self.semester_id}>"
