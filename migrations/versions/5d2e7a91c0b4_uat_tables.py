"""uat_tables

Create the UAT tracking tables: uat_project, test_case, participant,
approval_signoff and change_log.

Revision ID: 5d2e7a91c0b4
Revises:
Create Date: 2026-10-17 09:30:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "5d2e7a91c0b4"
down_revision = None
branch_labels = None
depends_on = None


def _project_fk():
    return sa.ForeignKeyConstraint(["project_id"], ["uat_project.id"], ondelete="CASCADE")


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "uat_project" not in existing_tables:
        op.create_table(
            "uat_project",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("test_version", sa.String(length=100), nullable=True),
            sa.Column("month", sa.String(length=50), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )

    if "test_case" not in existing_tables:
        op.create_table(
            "test_case",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("test_number", sa.String(length=50), nullable=True),
            sa.Column("category", sa.String(length=200), nullable=True),
            sa.Column("role", sa.String(length=200), nullable=True),
            sa.Column("test_scenario", sa.Text(), nullable=True),
            sa.Column("preconditions", sa.Text(), nullable=True),
            sa.Column("test_steps", sa.Text(), nullable=True),
            sa.Column("expected_results", sa.Text(), nullable=True),
            sa.Column("actual_results", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=True),
            sa.Column("remarks", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            _project_fk(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_test_case_project_id", "test_case", ["project_id"])
        op.create_index("ix_test_case_project_number", "test_case", ["project_id", "test_number"])

    if "participant" not in existing_tables:
        op.create_table(
            "participant",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("demo_account", sa.String(length=200), nullable=True),
            sa.Column("role", sa.String(length=200), nullable=True),
            sa.Column("name", sa.String(length=200), nullable=True),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("participant_type", sa.String(length=20), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            _project_fk(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_participant_project_id", "participant", ["project_id"])

    if "approval_signoff" not in existing_tables:
        op.create_table(
            "approval_signoff",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("role", sa.String(length=200), nullable=True),
            sa.Column("name", sa.String(length=200), nullable=True),
            sa.Column("unit", sa.String(length=200), nullable=True),
            sa.Column("date", sa.String(length=50), nullable=True),
            sa.Column("signature_file_path", sa.String(length=500), nullable=True),
            sa.Column("verified_by", sa.String(length=200), nullable=True),
            sa.Column("remarks", sa.Text(), nullable=True),
            sa.Column("month", sa.String(length=50), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            _project_fk(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_approval_signoff_project_id", "approval_signoff", ["project_id"])

    if "change_log" not in existing_tables:
        op.create_table(
            "change_log",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("entity", sa.String(length=30), nullable=False),
            sa.Column("entity_id", sa.String(length=36), nullable=False),
            sa.Column("field", sa.String(length=60), nullable=False),
            sa.Column("old_value", sa.Text(), nullable=True),
            sa.Column("new_value", sa.Text(), nullable=True),
            sa.Column("user_name", sa.String(length=200), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            _project_fk(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_change_log_project_id", "change_log", ["project_id"])
        op.create_index("ix_change_log_entity", "change_log", ["entity", "entity_id"])
        op.create_index("ix_change_log_project_ts", "change_log", ["project_id", "created_at"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    for table in ("change_log", "approval_signoff", "participant", "test_case", "uat_project"):
        if table in existing_tables:
            op.drop_table(table)
