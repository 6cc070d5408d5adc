from extensions import db


class Section(db.Model):
    __tablename__ = "sections"

    section_id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(
        db.Integer,
        db.ForeignKey("courses.course_id"),
        nullable=False
    )
    section_name = db.Column(db.String(30), nullable=False)

    # NULL capacity means the section is not seat-limited
    capacity = db.Column(db.Integer, nullable=True)
    enrolled_count = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, default=True)

    __table_args__ = (
        db.UniqueConstraint("course_id", "section_name", name="unique_course_section"),
    )

    def __repr__(self):
        return f"<Section {self.section_name} course={self.course_id}>"
