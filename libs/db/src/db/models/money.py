from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CHAR,
    Boolean,
    CheckConstraint,
    DateTime,
    Double,
    ForeignKey,
    Index,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import expression as sa_expr


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: money_accounts
# ---------------------------


class MoneyAccount(Base):
    __tablename__ = "money_accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    currency_code: Mapped[str] = mapped_column(CHAR(3), nullable=False)
    balance: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, server_default=sa_expr.text("0")
    )
    # Ordering group. Positions are only comparable between accounts of the
    # same type; the greatest position is shown first.
    type: Mapped[str] = mapped_column(String, nullable=False)
    position: Mapped[float] = mapped_column(Double, nullable=False)
    color_scheme: Mapped[str] = mapped_column(String, nullable=False)
    archived: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=sa_expr.false()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("type in ('regular','savings')", name="ck_money_account_type"),
        Index("ix_money_accounts_type_position", "type", "position"),
    )


# ---------------------------
# Reference: money_categories
# ---------------------------


class MoneyCategory(Base):
    __tablename__ = "money_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    currency_code: Mapped[str] = mapped_column(CHAR(3), nullable=False)
    # Subcategories are rows with a parent; the parent id is their ordering
    # group. Top-level categories are grouped by ``is_income``.
    parent_category_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("money_categories.id", ondelete="CASCADE"),
        nullable=True,
    )
    is_income: Mapped[bool] = mapped_column(Boolean, nullable=False)
    color_scheme: Mapped[str] = mapped_column(String, nullable=False)
    position: Mapped[float] = mapped_column(Double, nullable=False)
    archived: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=sa_expr.false()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "parent_category_id IS NULL OR parent_category_id <> id",
            name="ck_money_category_no_self_parent",
        ),
        Index("ix_money_categories_parent_category_id", "parent_category_id"),
    )


__all__ = [
    "Base",
    "MoneyAccount",
    "MoneyCategory",
]
