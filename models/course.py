from extensions import db
from datetime import datetime

ELECTIVE_CATEGORIES = ("PEC", "OEC")


class Course(db.Model):
    __tablename__ = "courses"

    course_id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    course_code = db.Column(db.String(20), nullable=False, unique=True)
    course_title = db.Column(db.String(150), nullable=False)
    category = db.Column(db.String(10), nullable=False)
    credits = db.Column(db.Integer, nullable=False, default=0)
    semester_id = db.Column(db.Integer, db.ForeignKey("semesters.semester_id"), nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    next_section_number = db.Column(db.Integer, nullable=False, default=1)

    sections = db.relationship("Section", backref="course", lazy=True)
    course_outcomes = db.relationship(
        "CourseOutcome",
        backref="course",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="CourseOutcome.co_number"
    )

    @property
    def is_elective(self):
        return self.category in ELECTIVE_CATEGORIES

    def __repr__(self):
        return f"<Course {self.course_code}>"
