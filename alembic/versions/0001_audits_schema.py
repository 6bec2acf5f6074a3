"""versioned audits

Revision ID: 0001_audits
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_audits"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "audits",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("auditable_type", sa.String(length=128), nullable=False),
        sa.Column("auditable_id", sa.Integer(), nullable=False),
        sa.Column("associated_type", sa.String(length=128), nullable=True),
        sa.Column("associated_id", sa.Integer(), nullable=True),
        sa.Column("user_type", sa.String(length=128), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("username", sa.String(length=255), nullable=True),
        sa.Column("action", sa.Enum("create", "update", "delete", name="audit_action"), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("audited_changes", sa.JSON(), nullable=False),
        sa.Column("group_tag", sa.String(length=255), nullable=True),
        sa.Column("group_comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "uq_audits_auditable_version",
        "audits",
        ["auditable_type", "auditable_id", "version"],
        unique=True,
    )
    op.create_index("ix_audits_associated", "audits", ["associated_type", "associated_id"])
    op.create_index("ix_audits_user", "audits", ["user_type", "user_id"])
    op.create_index("ix_audits_created_at", "audits", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_audits_created_at", table_name="audits")
    op.drop_index("ix_audits_user", table_name="audits")
    op.drop_index("ix_audits_associated", table_name="audits")
    op.drop_index("uq_audits_auditable_version", table_name="audits")
    op.drop_table("audits")
    sa.Enum(name="audit_action").drop(op.get_bind(), checkfirst=True)
