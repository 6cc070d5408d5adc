from extensions import db


class AssessmentTool(db.Model):
    __tablename__ = "assessment_tools"

    tool_id = db.Column(db.Integer, primary_key=True)
    co_id = db.Column(
        db.Integer,
        db.ForeignKey("course_outcomes.co_id", ondelete="CASCADE"),
        nullable=False
    )
    tool_name = db.Column(db.String(100), nullable=False)
    weightage = db.Column(db.Float, nullable=False)
    max_marks = db.Column(db.Float, nullable=False)

    created_by = db.Column(db.String(120))
    updated_by = db.Column(db.String(120))

    marks = db.relationship(
        "StudentToolMark",
        backref="tool",
        lazy=True,
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.UniqueConstraint("co_id", "tool_name", name="unique_co_tool_name"),
    )

    def __repr__(self):
        return f"<AssessmentTool {self.tool_name} co={self.co_id}>"
