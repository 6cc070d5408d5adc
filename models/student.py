from extensions import db


class Student(db.Model):
    __tablename__ = "students"

    student_id = db.Column(db.Integer, primary_key=True)
    register_no = db.Column(db.String(20), unique=True, nullable=False)
    name = db.Column(db.String(100), nullable=False)

    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.user_id"),
        nullable=True
    )

    department_id = db.Column(
        db.Integer,
        db.ForeignKey("departments.department_id"),
        nullable=False
    )

    batch_id = db.Column(
        db.Integer,
        db.ForeignKey("batches.batch_id"),
        nullable=False
    )

    semester_number = db.Column(db.Integer, nullable=True)
    is_active = db.Column(db.Boolean, default=True)

    enrollments = db.relationship("StudentCourse", backref="student", lazy=True)
    tool_marks = db.relationship("StudentToolMark", backref="student", lazy=True)

    def __repr__(self):
        return f"<Student {self.register_no}>"
