"""cross-selling rules and associations

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "cross_selling_rules",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("source_conditions", sa.JSON(), nullable=False),
        sa.Column("target_criteria", sa.JSON(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_cross_selling_rules_active", "cross_selling_rules", ["active"])

    op.create_table(
        "cross_selling_associations",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("source_product_id", sa.String(length=64), nullable=False),
        sa.Column("target_product_id", sa.String(length=64), nullable=False),
        sa.Column("rule_id", sa.String(length=36),
                  sa.ForeignKey("cross_selling_rules.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("source_product_id", "target_product_id", name="uq_cross_selling_pair"),
    )
    op.create_index("ix_cross_selling_associations_source_product_id",
                    "cross_selling_associations", ["source_product_id"])
    op.create_index("ix_cross_selling_associations_target_product_id",
                    "cross_selling_associations", ["target_product_id"])
    op.create_index("ix_cross_selling_associations_rule_id", "cross_selling_associations", ["rule_id"])


def downgrade() -> None:
    op.drop_table("cross_selling_associations")
    op.drop_table("cross_selling_rules")
