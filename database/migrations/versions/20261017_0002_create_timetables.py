"""create timetables and timetable slots

Revision ID: 20261017_0002
Revises: 20261017_0001
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261017_0002"
down_revision = "20261017_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    timetable_status = sa.Enum(
        "draft",
        "active",
        "published",
        "completed",
        "archived",
        name="timetable_status",
    )

    op.create_table(
        "timetables",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("semester_id", sa.String(length=36), nullable=True),
        sa.Column("batch_id", sa.String(length=36), nullable=True),
        sa.Column("generated_by", sa.String(length=36), nullable=True),
        sa.Column("status", timetable_status, nullable=False, server_default="draft"),
        sa.Column("generation_method", sa.String(length=40), nullable=False, server_default="greedy"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("metrics", sa.JSON(), nullable=False),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_timetables_semester_id", "timetables", ["semester_id"])
    op.create_index("ix_timetables_batch_id", "timetables", ["batch_id"])
    op.create_index("ix_timetables_status", "timetables", ["status"])

    op.create_table(
        "timetable_slots",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "timetable_id",
            sa.Integer(),
            sa.ForeignKey("timetables.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("semester_id", sa.String(length=36), nullable=True),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("day_name", sa.String(length=50), nullable=False),
        sa.Column("slot_index", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("section", sa.String(length=50), nullable=True),
        sa.Column("room", sa.String(length=100), nullable=True),
        sa.Column("session_label", sa.String(length=100), nullable=True),
        sa.Column("color", sa.String(length=20), nullable=True),
        sa.Column("info", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("timetable_id", "day_of_week", "slot_index", name="uq_timetable_slots_cell"),
    )
    op.create_index("ix_timetable_slots_timetable_id", "timetable_slots", ["timetable_id"])
    op.create_index("ix_timetable_slots_teacher_id", "timetable_slots", ["teacher_id"])
    op.create_index(
        "ix_timetable_slots_lookup",
        "timetable_slots",
        ["subject_id", "teacher_id", "day_of_week", "slot_index"],
    )


def downgrade() -> None:
    op.drop_index("ix_timetable_slots_lookup", table_name="timetable_slots")
    op.drop_index("ix_timetable_slots_teacher_id", table_name="timetable_slots")
    op.drop_index("ix_timetable_slots_timetable_id", table_name="timetable_slots")
    op.drop_table("timetable_slots")
    op.drop_index("ix_timetables_status", table_name="timetables")
    op.drop_index("ix_timetables_batch_id", table_name="timetables")
    op.drop_index("ix_timetables_semester_id", table_name="timetables")
    op.drop_table("timetables")
    sa.Enum(name="timetable_status").drop(op.get_bind(), checkfirst=True)
