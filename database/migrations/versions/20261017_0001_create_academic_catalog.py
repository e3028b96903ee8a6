"""create academic catalog

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "semesters",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("batch_id", sa.String(length=36), nullable=True),
    )
    op.create_index("ix_semesters_batch_id", "semesters", ["batch_id"])

    op.create_table(
        "teachers",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
    )

    op.create_table(
        "subjects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("semester_id", sa.String(length=36), nullable=True),
        sa.Column("batch_id", sa.String(length=36), nullable=True),
        sa.Column("section", sa.String(length=50), nullable=True),
        sa.Column("credits", sa.Integer(), nullable=True),
        sa.Column("sessions_per_week", sa.Integer(), nullable=True),
        sa.Column("preferred_teacher_id", sa.String(length=36), nullable=True),
    )
    op.create_index("ix_subjects_semester_id", "subjects", ["semester_id"])
    op.create_index("ix_subjects_batch_id", "subjects", ["batch_id"])

    op.create_table(
        "subject_teachers",
        sa.Column(
            "subject_id",
            sa.String(length=36),
            sa.ForeignKey("subjects.id", ondelete="CASCADE"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column(
            "teacher_id",
            sa.String(length=36),
            sa.ForeignKey("teachers.id", ondelete="CASCADE"),
            primary_key=True,
            nullable=False,
        ),
    )

    op.create_table(
        "students",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("batch_id", sa.String(length=36), nullable=True),
        sa.Column("active_semester_id", sa.String(length=36), nullable=True),
        sa.Column("section", sa.String(length=50), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("students")
    op.drop_table("subject_teachers")
    op.drop_index("ix_subjects_batch_id", table_name="subjects")
    op.drop_index("ix_subjects_semester_id", table_name="subjects")
    op.drop_table("subjects")
    op.drop_table("teachers")
    op.drop_index("ix_semesters_batch_id", table_name="semesters")
    op.drop_table("semesters")
