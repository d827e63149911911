"""knowledge base entries

Revision ID: 002_knowledge_base
Revises: 001_initial
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "002_knowledge_base"
down_revision = "001_initial"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "knowledge_base",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("village_id", sa.String(length=36), sa.ForeignKey("villages.id", ondelete="CASCADE"), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=255), nullable=False),
        sa.Column(
            "category_id",
            sa.String(length=36),
            sa.ForeignKey("knowledge_categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("keywords", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("admin_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_knowledge_base_village_id", "knowledge_base", ["village_id"], unique=False)
    op.create_index("ix_knowledge_base_category_id", "knowledge_base", ["category_id"], unique=False)


def downgrade():
    op.drop_index("ix_knowledge_base_category_id", table_name="knowledge_base")
    op.drop_index("ix_knowledge_base_village_id", table_name="knowledge_base")
    op.drop_table("knowledge_base")
