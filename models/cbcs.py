from extensions import db

CBCS_TYPES = ("FCFS", "OPT")


class Cbcs(db.Model):
    __tablename__ = "cbcs"

    cbcs_id = db.Column(db.Integer, primary_key=True)
    batch_id = db.Column(db.Integer, db.ForeignKey("batches.batch_id"), nullable=False)
    department_id = db.Column(
        db.Integer,
        db.ForeignKey("departments.department_id"),
        nullable=False
    )
    semester_id = db.Column(db.Integer, db.ForeignKey("semesters.semester_id"), nullable=False)
    type = db.Column(db.Enum(*CBCS_TYPES, name="cbcs_type"), nullable=False, default="FCFS")
    total_students = db.Column(db.Integer, nullable=False, default=0)
    allocation_excel_path = db.Column(db.String(255), nullable=True)
    complete = db.Column(db.Boolean, default=False)
    is_active = db.Column(db.Boolean, default=True)

    created_by = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    subjects = db.relationship(
        "CbcsSubject",
        backref="cbcs",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="CbcsSubject.cbcs_subject_id"
    )

    def __repr__(self):
        return f"<Cbcs {self.cbcs_id} {self.type}>"


class CbcsSubject(db.Model):
    __tablename__ = "cbcs_subjects"

    cbcs_subject_id = db.Column(db.Integer, primary_key=True)
    cbcs_id = db.Column(
        db.Integer,
        db.ForeignKey("cbcs.cbcs_id", ondelete="CASCADE"),
        nullable=False
    )
    course_id = db.Column(db.Integer, db.ForeignKey("courses.course_id"), nullable=False)
    bucket_name = db.Column(db.String(100), nullable=False, default="Core")

    course = db.relationship("Course", lazy=True)
    section_staff = db.relationship(
        "CbcsSectionStaff",
        backref="subject",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="CbcsSectionStaff.id"
    )

    __table_args__ = (
        db.UniqueConstraint("cbcs_id", "course_id", name="unique_cbcs_course"),
    )


class CbcsSectionStaff(db.Model):
    __tablename__ = "cbcs_section_staff"

    id = db.Column(db.Integer, primary_key=True)
    cbcs_subject_id = db.Column(
        db.Integer,
        db.ForeignKey("cbcs_subjects.cbcs_subject_id", ondelete="CASCADE"),
        nullable=False
    )
    section_id = db.Column(db.Integer, db.ForeignKey("sections.section_id"), nullable=False)
    staff_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False)

    section = db.relationship("Section", lazy=True)
    staff = db.relationship("User", lazy=True)


class StudentCourseChoice(db.Model):
    """Ranked preference submitted to an OPT round."""
    __tablename__ = "student_course_choices"

    choice_id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("students.student_id"), nullable=False)
    cbcs_id = db.Column(db.Integer, db.ForeignKey("cbcs.cbcs_id"), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.course_id"), nullable=False)
    staff_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=True)
    section_id = db.Column(db.Integer, db.ForeignKey("sections.section_id"), nullable=True)
    preference_order = db.Column(db.Integer, nullable=False)

    created_by = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    __table_args__ = (
        db.UniqueConstraint(
            "student_id", "cbcs_id", "preference_order", name="unique_student_round_preference"
        ),
    )

    def __repr__(self):
        return f"<StudentCourseChoice student={self.student_id} #{self.preference_order}>"
