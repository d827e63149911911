"""villages, admin users/sessions, activity logs, knowledge tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "villages",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_villages_slug", "villages", ["slug"], unique=True)

    op.create_table(
        "village_profiles",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("village_id", sa.String(length=36), sa.ForeignKey("villages.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("gmaps_url", sa.String(length=1024), nullable=True),
        sa.Column("short_name", sa.String(length=64), nullable=True),
        sa.Column("operating_hours", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "admin_users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("village_id", sa.String(length=36), sa.ForeignKey("villages.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_admin_users_username", "admin_users", ["username"], unique=True)
    op.create_index("ix_admin_users_village_id", "admin_users", ["village_id"], unique=False)

    op.create_table(
        "admin_sessions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("admin_id", sa.String(length=36), sa.ForeignKey("admin_users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token", sa.String(length=1024), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_admin_sessions_admin_id", "admin_sessions", ["admin_id"], unique=False)
    op.create_index("ix_admin_sessions_token", "admin_sessions", ["token"], unique=True)

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("admin_id", sa.String(length=36), sa.ForeignKey("admin_users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("resource", sa.String(length=64), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_activity_logs_admin_id", "activity_logs", ["admin_id"], unique=False)
    op.create_index("ix_activity_logs_action_time", "activity_logs", ["action", "created_at"], unique=False)

    op.create_table(
        "knowledge_categories",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("village_id", sa.String(length=36), sa.ForeignKey("villages.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("village_id", "name", name="uq_knowledge_categories_village_name"),
    )
    op.create_index("ix_knowledge_categories_village_id", "knowledge_categories", ["village_id"], unique=False)

    op.create_table(
        "knowledge_gaps",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("village_id", sa.String(length=36), nullable=False, server_default=""),
        sa.Column("query_text", sa.String(length=500), nullable=False),
        sa.Column("query_hash", sa.String(length=32), nullable=False),
        sa.Column("intent", sa.String(length=64), nullable=False),
        sa.Column("confidence_level", sa.String(length=16), nullable=False),
        sa.Column("channel", sa.String(length=32), nullable=False),
        sa.Column("hit_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="open"),
        sa.Column("resolved_by", sa.String(length=36), nullable=True),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.Column("resolution_kb_id", sa.String(length=36), nullable=True),
        sa.Column("first_seen_at", sa.DateTime(), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("query_hash", "village_id", name="uq_knowledge_gaps_hash_village"),
    )
    op.create_index("ix_knowledge_gaps_village_id", "knowledge_gaps", ["village_id"], unique=False)
    op.create_index("ix_knowledge_gaps_village_status", "knowledge_gaps", ["village_id", "status"], unique=False)

    op.create_table(
        "knowledge_conflicts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("village_id", sa.String(length=36), nullable=False, server_default=""),
        sa.Column("conflict_hash", sa.String(length=32), nullable=False),
        sa.Column("source1_title", sa.String(length=255), nullable=False),
        sa.Column("source2_title", sa.String(length=255), nullable=False),
        sa.Column("content_summary", sa.Text(), nullable=False),
        sa.Column("similarity_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("query_text", sa.String(length=500), nullable=True),
        sa.Column("channel", sa.String(length=32), nullable=False),
        sa.Column("hit_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="open"),
        sa.Column("auto_resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("resolution_note", sa.Text(), nullable=True),
        sa.Column("resolved_by", sa.String(length=36), nullable=True),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.Column("first_seen_at", sa.DateTime(), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("conflict_hash", "village_id", name="uq_knowledge_conflicts_hash_village"),
    )
    op.create_index("ix_knowledge_conflicts_village_id", "knowledge_conflicts", ["village_id"], unique=False)


def downgrade():
    op.drop_index("ix_knowledge_conflicts_village_id", table_name="knowledge_conflicts")
    op.drop_table("knowledge_conflicts")
    op.drop_index("ix_knowledge_gaps_village_status", table_name="knowledge_gaps")
    op.drop_index("ix_knowledge_gaps_village_id", table_name="knowledge_gaps")
    op.drop_table("knowledge_gaps")
    op.drop_index("ix_knowledge_categories_village_id", table_name="knowledge_categories")
    op.drop_table("knowledge_categories")
    op.drop_index("ix_activity_logs_action_time", table_name="activity_logs")
    op.drop_index("ix_activity_logs_admin_id", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_admin_sessions_token", table_name="admin_sessions")
    op.drop_index("ix_admin_sessions_admin_id", table_name="admin_sessions")
    op.drop_table("admin_sessions")
    op.drop_index("ix_admin_users_village_id", table_name="admin_users")
    op.drop_index("ix_admin_users_username", table_name="admin_users")
    op.drop_table("admin_users")
    op.drop_table("village_profiles")
    op.drop_index("ix_villages_slug", table_name="villages")
    op.drop_table("villages")
