from extensions import db

REQUEST_STATUSES = ("PENDING", "ACCEPTED", "REJECTED", "WITHDRAWN")


class CourseRequest(db.Model):
    """A staff member asking to teach a course; one row per (staff, course)."""
    __tablename__ = "course_requests"

    request_id = db.Column(db.Integer, primary_key=True)

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

    status = db.Column(
        db.Enum(*REQUEST_STATUSES, name="course_request_status"),
        nullable=False,
        default="PENDING"
    )

    requested_at = db.Column(db.DateTime, server_default=db.func.now())
    approved_at = db.Column(db.DateTime, nullable=True)
    rejected_at = db.Column(db.DateTime, nullable=True)
    withdrawn_at = db.Column(db.DateTime, nullable=True)

    created_by = db.Column(db.String(120))
    updated_by = db.Column(db.String(120))
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), onupdate=db.func.now())

    staff = db.relationship("User", lazy=True)
    course = db.relationship("Course", lazy=True)

    __table_args__ = (
        db.UniqueConstraint("staff_id", "course_id", name="unique_staff_course_request"),
    )

    def __repr__(self):
        return f"<CourseRequest staff={self.staff_id} course={self.course_id} {self.status}>"
