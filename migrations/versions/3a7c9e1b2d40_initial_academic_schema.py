"""initial academic schema

Revision ID: 3a7c9e1b2d40
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3a7c9e1b2d40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "roles",
        sa.Column("role_id", sa.Integer(), primary_key=True),
        sa.Column("role_name", sa.String(length=20), nullable=False, unique=True),
    )
    op.create_table(
        "departments",
        sa.Column("department_id", sa.Integer(), primary_key=True),
        sa.Column("department_code", sa.String(length=10), nullable=False, unique=True),
        sa.Column("department_name", sa.String(length=100), nullable=False),
    )
    op.create_table(
        "users",
        sa.Column("user_id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=50), nullable=False, unique=True),
        sa.Column("email", sa.String(length=120), nullable=True, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.role_id"), nullable=False),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.department_id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
    )
    op.create_table(
        "batches",
        sa.Column("batch_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("degree", sa.String(length=20), nullable=False),
        sa.Column("branch", sa.String(length=50), nullable=False),
        sa.Column("batch", sa.String(length=10), nullable=False),
        sa.Column("batch_years", sa.String(length=20), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
    )
    op.create_table(
        "semesters",
        sa.Column("semester_id", sa.Integer(), primary_key=True),
        sa.Column("batch_id", sa.Integer(), sa.ForeignKey("batches.batch_id"), nullable=False),
        sa.Column("semester_number", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("next_bucket_number", sa.Integer(), nullable=False, server_default="1"),
        sa.UniqueConstraint("batch_id", "semester_number", name="unique_batch_semester"),
    )
    op.create_table(
        "courses",
        sa.Column("course_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("course_code", sa.String(length=20), nullable=False, unique=True),
        sa.Column("course_title", sa.String(length=150), nullable=False),
        sa.Column("category", sa.String(length=10), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("semester_id", sa.Integer(), sa.ForeignKey("semesters.semester_id"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("next_section_number", sa.Integer(), nullable=False, server_default="1"),
    )
    op.create_table(
        "sections",
        sa.Column("section_id", sa.Integer(), primary_key=True),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.course_id"), nullable=False),
        sa.Column("section_name", sa.String(length=30), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("enrolled_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.UniqueConstraint("course_id", "section_name", name="unique_course_section"),
    )
    op.create_table(
        "students",
        sa.Column("student_id", sa.Integer(), primary_key=True),
        sa.Column("register_no", sa.String(length=20), nullable=False, unique=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.department_id"), nullable=False),
        sa.Column("batch_id", sa.Integer(), sa.ForeignKey("batches.batch_id"), nullable=False),
        sa.Column("semester_number", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
    )
    op.create_table(
        "staff_courses",
        sa.Column("staff_course_id", sa.Integer(), primary_key=True),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.course_id"), nullable=False),
        sa.Column("section_id", sa.Integer(), sa.ForeignKey("sections.section_id"), nullable=False),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.department_id"), nullable=True),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("allocated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.UniqueConstraint("staff_id", "course_id", name="unique_staff_course"),
    )
    op.create_table(
        "student_courses",
        sa.Column("student_course_id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.student_id"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.course_id"), nullable=False),
        sa.Column("section_id", sa.Integer(), sa.ForeignKey("sections.section_id"), nullable=False),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.UniqueConstraint("student_id", "course_id", name="unique_student_course"),
    )
    op.create_table(
        "course_partitions",
        sa.Column("partition_id", sa.Integer(), primary_key=True),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.course_id"), nullable=False, unique=True),
        sa.Column("theory_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("practical_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("experiential_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("updated_by", sa.String(length=120), nullable=True),
    )
    op.create_table(
        "course_outcomes",
        sa.Column("co_id", sa.Integer(), primary_key=True),
        sa.Column(
            "course_id", sa.Integer(),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("co_number", sa.Integer(), nullable=False),
        sa.Column(
            "co_type",
            sa.Enum("THEORY", "PRACTICAL", "EXPERIENTIAL", name="co_type"),
            nullable=False
        ),
        sa.Column("co_weight", sa.Float(), nullable=False, server_default="100"),
        sa.UniqueConstraint("course_id", "co_number", name="unique_course_co_number"),
    )
    op.create_table(
        "assessment_tools",
        sa.Column("tool_id", sa.Integer(), primary_key=True),
        sa.Column(
            "co_id", sa.Integer(),
            sa.ForeignKey("course_outcomes.co_id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("tool_name", sa.String(length=100), nullable=False),
        sa.Column("weightage", sa.Float(), nullable=False),
        sa.Column("max_marks", sa.Float(), nullable=False),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("updated_by", sa.String(length=120), nullable=True),
        sa.UniqueConstraint("co_id", "tool_name", name="unique_co_tool_name"),
    )
    op.create_table(
        "student_tool_marks",
        sa.Column("mark_id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.student_id"), nullable=False),
        sa.Column(
            "tool_id", sa.Integer(),
            sa.ForeignKey("assessment_tools.tool_id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("marks_obtained", sa.Float(), nullable=False),
        sa.Column("entered_by", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.UniqueConstraint("student_id", "tool_id", name="unique_student_tool"),
    )
    op.create_table(
        "elective_buckets",
        sa.Column("bucket_id", sa.Integer(), primary_key=True),
        sa.Column("semester_id", sa.Integer(), sa.ForeignKey("semesters.semester_id"), nullable=False),
        sa.Column("bucket_number", sa.Integer(), nullable=False),
        sa.Column("bucket_name", sa.String(length=100), nullable=False),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.UniqueConstraint("semester_id", "bucket_number", name="unique_semester_bucket"),
    )
    op.create_table(
        "elective_bucket_courses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "bucket_id", sa.Integer(),
            sa.ForeignKey("elective_buckets.bucket_id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.course_id"), nullable=False, unique=True),
    )
    op.create_table(
        "student_elective_selections",
        sa.Column("selection_id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.student_id"), nullable=False),
        sa.Column("bucket_id", sa.Integer(), sa.ForeignKey("elective_buckets.bucket_id"), nullable=False),
        sa.Column("selected_course_id", sa.Integer(), sa.ForeignKey("courses.course_id"), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "allocated", name="selection_status"),
            nullable=False,
            server_default="pending"
        ),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.UniqueConstraint("student_id", "bucket_id", name="unique_student_bucket"),
    )
    op.create_table(
        "cbcs",
        sa.Column("cbcs_id", sa.Integer(), primary_key=True),
        sa.Column("batch_id", sa.Integer(), sa.ForeignKey("batches.batch_id"), nullable=False),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.department_id"), nullable=False),
        sa.Column("semester_id", sa.Integer(), sa.ForeignKey("semesters.semester_id"), nullable=False),
        sa.Column("type", sa.Enum("FCFS", "OPT", name="cbcs_type"), nullable=False, server_default="FCFS"),
        sa.Column("total_students", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("allocation_excel_path", sa.String(length=255), nullable=True),
        sa.Column("complete", sa.Boolean(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
    )
    op.create_table(
        "cbcs_subjects",
        sa.Column("cbcs_subject_id", sa.Integer(), primary_key=True),
        sa.Column("cbcs_id", sa.Integer(), sa.ForeignKey("cbcs.cbcs_id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.course_id"), nullable=False),
        sa.Column("bucket_name", sa.String(length=100), nullable=False, server_default="Core"),
        sa.UniqueConstraint("cbcs_id", "course_id", name="unique_cbcs_course"),
    )
    op.create_table(
        "cbcs_section_staff",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "cbcs_subject_id", sa.Integer(),
            sa.ForeignKey("cbcs_subjects.cbcs_subject_id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("section_id", sa.Integer(), sa.ForeignKey("sections.section_id"), nullable=False),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=False),
    )
    op.create_table(
        "student_course_choices",
        sa.Column("choice_id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.student_id"), nullable=False),
        sa.Column("cbcs_id", sa.Integer(), sa.ForeignKey("cbcs.cbcs_id"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.course_id"), nullable=False),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("section_id", sa.Integer(), sa.ForeignKey("sections.section_id"), nullable=True),
        sa.Column("preference_order", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.UniqueConstraint(
            "student_id", "cbcs_id", "preference_order", name="unique_student_round_preference"
        ),
    )
    op.create_table(
        "timetable",
        sa.Column("timetable_id", sa.Integer(), primary_key=True),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.course_id"), nullable=False),
        sa.Column("section_id", sa.Integer(), sa.ForeignKey("sections.section_id"), nullable=True),
        sa.Column(
            "day_of_week",
            sa.Enum("MON", "TUE", "WED", "THU", "FRI", "SAT", name="day_of_week"),
            nullable=False
        ),
        sa.Column("period_number", sa.Integer(), nullable=False),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.department_id"), nullable=False),
        sa.Column("semester_id", sa.Integer(), sa.ForeignKey("semesters.semester_id"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("updated_by", sa.String(length=120), nullable=True),
    )
    op.create_table(
        "period_attendance",
        sa.Column("attendance_id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.student_id"), nullable=False),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.course_id"), nullable=False),
        sa.Column("section_id", sa.Integer(), sa.ForeignKey("sections.section_id"), nullable=False),
        sa.Column("attendance_date", sa.Date(), nullable=False),
        sa.Column("day_of_week", sa.String(length=3), nullable=False),
        sa.Column("period_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.Enum("P", "A", "OD", name="attendance_status"), nullable=False),
        sa.Column("updated_by", sa.String(length=20), nullable=False, server_default="staff"),
        sa.UniqueConstraint(
            "student_id", "course_id", "attendance_date", "period_number",
            name="unique_student_course_period"
        ),
    )


def downgrade():
    for table in (
        "period_attendance", "timetable", "student_course_choices", "cbcs_section_staff",
        "cbcs_subjects", "cbcs", "student_elective_selections", "elective_bucket_courses",
        "elective_buckets", "student_tool_marks", "assessment_tools", "course_outcomes",
        "course_partitions", "student_courses", "staff_courses", "students", "sections",
        "courses", "semesters", "batches", "users", "departments", "roles",
    ):
        op.drop_table(table)
