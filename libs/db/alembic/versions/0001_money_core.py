# ruff: noqa: I001
"""Core money tables: accounts and categories with fractional positions.

Revision ID: 0001_money_core
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_money_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "money_accounts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("currency_code", sa.CHAR(length=3), nullable=False),
        sa.Column("balance", sa.Numeric(18, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("position", sa.Double(), nullable=False),
        sa.Column("color_scheme", sa.String(), nullable=False),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint("type in ('regular','savings')", name="ck_money_account_type"),
    )
    # Snapshot reads fetch one type ordered by position.
    op.create_index(
        "ix_money_accounts_type_position", "money_accounts", ["type", "position"], unique=False
    )

    op.create_table(
        "money_categories",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("currency_code", sa.CHAR(length=3), nullable=False),
        sa.Column(
            "parent_category_id",
            sa.String(length=36),
            sa.ForeignKey("money_categories.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("is_income", sa.Boolean(), nullable=False),
        sa.Column("color_scheme", sa.String(), nullable=False),
        sa.Column("position", sa.Double(), nullable=False),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint(
            "parent_category_id IS NULL OR parent_category_id <> id",
            name="ck_money_category_no_self_parent",
        ),
    )
    op.create_index(
        "ix_money_categories_parent_category_id",
        "money_categories",
        ["parent_category_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_money_categories_parent_category_id", table_name="money_categories")
    op.drop_table("money_categories")
    op.drop_index("ix_money_accounts_type_position", table_name="money_accounts")
    op.drop_table("money_accounts")
