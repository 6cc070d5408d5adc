from extensions import db

CO_TYPES = ("THEORY", "PRACTICAL", "EXPERIENTIAL")


class CoursePartition(db.Model):
    __tablename__ = "course_partitions"

    partition_id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(
        db.Integer,
        db.ForeignKey("courses.course_id"),
        nullable=False,
        unique=True
    )
    theory_count = db.Column(db.Integer, nullable=False, default=0)
    practical_count = db.Column(db.Integer, nullable=False, default=0)
    experiential_count = db.Column(db.Integer, nullable=False, default=0)

    created_by = db.Column(db.String(120))
    updated_by = db.Column(db.String(120))

    def counts(self):
        return {
            "THEORY": self.theory_count,
            "PRACTICAL": self.practical_count,
            "EXPERIENTIAL": self.experiential_count,
        }

    def __repr__(self):
        return f"<CoursePartition course={self.course_id}>"


class CourseOutcome(db.Model):
    __tablename__ = "course_outcomes"

    co_id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(
        db.Integer,
        db.ForeignKey("courses.course_id", ondelete="CASCADE"),
        nullable=False
    )
    co_number = db.Column(db.Integer, nullable=False)
    co_type = db.Column(db.Enum(*CO_TYPES, name="co_type"), nullable=False)

    # Relative weight in the final course average; equal by default
    co_weight = db.Column(db.Float, nullable=False, default=100.0)

    tools = db.relationship(
        "AssessmentTool",
        backref="course_outcome",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="AssessmentTool.tool_id"
    )

    __table_args__ = (
        db.UniqueConstraint("course_id", "co_number", name="unique_course_co_number"),
    )

    @property
    def label(self):
        return f"CO{self.co_number}"

    def __repr__(self):
        return f"<CourseOutcome {self.label} {self.co_type}>"
