from extensions import db

SELECTION_STATUSES = ("pending", "allocated")


class ElectiveBucket(db.Model):
    __tablename__ = "elective_buckets"

    bucket_id = db.Column(db.Integer, primary_key=True)
    semester_id = db.Column(
        db.Integer,
        db.ForeignKey("semesters.semester_id"),
        nullable=False
    )
    bucket_number = db.Column(db.Integer, nullable=False)
    bucket_name = db.Column(db.String(100), nullable=False)

    created_by = db.Column(db.String(120))
    updated_at = db.Column(
        db.DateTime,
        server_default=db.func.now(),
        onupdate=db.func.now()
    )

    bucket_courses = db.relationship(
        "ElectiveBucketCourse",
        backref="bucket",
        lazy=True,
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.UniqueConstraint("semester_id", "bucket_number", name="unique_semester_bucket"),
    )

    def __repr__(self):
        return f"<ElectiveBucket {self.bucket_number} semester={self.semester_id}>"


class ElectiveBucketCourse(db.Model):
    __tablename__ = "elective_bucket_courses"

    id = db.Column(db.Integer, primary_key=True)
    bucket_id = db.Column(
        db.Integer,
        db.ForeignKey("elective_buckets.bucket_id", ondelete="CASCADE"),
        nullable=False
    )
    # A course sits in at most one bucket; courses belong to a single semester
    course_id = db.Column(
        db.Integer,
        db.ForeignKey("courses.course_id"),
        nullable=False,
        unique=True
    )

    course = db.relationship("Course", lazy=True)

    def __repr__(self):
        return f"<ElectiveBucketCourse bucket={self.bucket_id} course={self.course_id}>"


class StudentElectiveSelection(db.Model):
    __tablename__ = "student_elective_selections"

    selection_id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(
        db.Integer,
        db.ForeignKey("students.student_id"),
        nullable=False
    )
    bucket_id = db.Column(
        db.Integer,
        db.ForeignKey("elective_buckets.bucket_id"),
        nullable=False
    )
    selected_course_id = db.Column(
        db.Integer,
        db.ForeignKey("courses.course_id"),
        nullable=False
    )
    status = db.Column(
        db.Enum(*SELECTION_STATUSES, name="selection_status"),
        nullable=False,
        default="pending"
    )
    created_by = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    __table_args__ = (
        db.UniqueConstraint("student_id", "bucket_id", name="unique_student_bucket"),
    )

    def __repr__(self):
        return f"<StudentElectiveSelection student={self.student_id} bucket={self.bucket_id}>"
