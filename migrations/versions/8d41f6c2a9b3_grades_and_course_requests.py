"""grades, semester gpa and course requests

Revision ID: 8d41f6c2a9b3
Revises: 3a7c9e1b2d40
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "8d41f6c2a9b3"
down_revision = "3a7c9e1b2d40"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "student_grades",
        sa.Column("grade_id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.student_id"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.course_id"), nullable=False),
        sa.Column("grade", sa.String(length=2), nullable=False),
        sa.Column("uploaded_by", sa.String(length=120), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.UniqueConstraint("student_id", "course_id", name="unique_student_grade"),
    )
    op.create_table(
        "student_semester_gpa",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.student_id"), nullable=False),
        sa.Column("semester_id", sa.Integer(), sa.ForeignKey("semesters.semester_id"), nullable=False),
        sa.Column("gpa", sa.Float(), nullable=True),
        sa.Column("cgpa", sa.Float(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.UniqueConstraint("student_id", "semester_id", name="unique_student_semester_gpa"),
    )
    op.create_table(
        "course_requests",
        sa.Column("request_id", sa.Integer(), primary_key=True),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.course_id"), nullable=False),
        sa.Column(
            "status",
            sa.Enum("PENDING", "ACCEPTED", "REJECTED", "WITHDRAWN", name="course_request_status"),
            nullable=False
        ),
        sa.Column("requested_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(), nullable=True),
        sa.Column("withdrawn_at", sa.DateTime(), nullable=True),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("updated_by", sa.String(length=120), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.UniqueConstraint("staff_id", "course_id", name="unique_staff_course_request"),
    )


def downgrade():
    op.drop_table("course_requests")
    op.drop_table("student_semester_gpa")
    op.drop_table("student_grades")
