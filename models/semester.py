from extensions import db


class Semester(db.Model):
    __tablename__ = "semesters"

    semester_id = db.Column(db.Integer, primary_key=True)
    batch_id = db.Column(
        db.Integer,
        db.ForeignKey("batches.batch_id"),
        nullable=False
    )
    semester_number = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, default=True)

    # Next elective bucket number; bumped under the row, never derived from MAX()
    next_bucket_number = db.Column(db.Integer, nullable=False, default=1)

    courses = db.relationship("Course", backref="semester", lazy=True)

    __table_args__ = (
        db.UniqueConstraint("batch_id", "semester_number", name="unique_batch_semester"),
    )

    def __repr__(self):
        return f"<Semester {self.semester_number} batch={self.batch_id}>"
