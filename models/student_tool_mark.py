from extensions import db


class StudentToolMark(db.Model):
    __tablename__ = "student_tool_marks"

    mark_id = db.Column(db.Integer, primary_key=True)

    student_id = db.Column(
        db.Integer,
        db.ForeignKey("students.student_id"),
        nullable=False
    )

    tool_id = db.Column(
        db.Integer,
        db.ForeignKey("assessment_tools.tool_id", ondelete="CASCADE"),
        nullable=False
    )

    marks_obtained = db.Column(db.Float, nullable=False)

    entered_by = db.Column(
        db.Integer,
        db.ForeignKey("users.user_id"),
        nullable=True
    )
    updated_at = db.Column(
        db.DateTime,
        server_default=db.func.now(),
        onupdate=db.func.now()
    )

    __table_args__ = (
        db.UniqueConstraint("student_id", "tool_id", name="unique_student_tool"),
    )

    def __repr__(self):
        return f"<StudentToolMark student={self.student_id} tool={self.tool_id}>"
