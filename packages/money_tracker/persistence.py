"""SQLAlchemy-backed ordering transactions for accounts and categories.

Each class wraps a caller-owned :class:`~sqlalchemy.orm.Session`; the caller
(usually :func:`db.client.session_scope`) decides when the transaction commits
or rolls back. Reads return visible (non-archived) rows of one ordering group,
greatest position first, ties broken by id so the order is deterministic.
Writes are plain ``UPDATE`` statements flushed together, so a cross-group move
changes the position and the group column in the same statement.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from typing import Any

from db.models.money import MoneyAccount, MoneyCategory
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from .models import Account, AccountType, Category, Subcategory
from .reordering import PositionUpdate


class ItemNotFoundError(LookupError):
    """Raised when a referenced account or category row does not exist."""


def account_from_row(row: MoneyAccount) -> Account:
    return Account(
        id=row.id,
        title=row.title,
        currency_code=row.currency_code,
        balance=row.balance,
        type=AccountType(row.type),
        position=row.position,
        color_scheme=row.color_scheme,
        archived=bool(row.archived),
    )


def category_from_row(row: MoneyCategory) -> Category:
    return Category(
        id=row.id,
        title=row.title,
        currency_code=row.currency_code,
        is_income=bool(row.is_income),
        color_scheme=row.color_scheme,
        position=row.position,
        archived=bool(row.archived),
    )


def subcategory_from_row(row: MoneyCategory) -> Subcategory:
    if row.parent_category_id is None:
        raise ItemNotFoundError(f"Subcategory not found: {row.id!r} is a top-level category")
    return Subcategory(
        id=row.id,
        title=row.title,
        category_id=row.parent_category_id,
        position=row.position,
        archived=bool(row.archived),
    )


class _SessionOrderingTransaction:
    model: Any

    def __init__(self, session: Session) -> None:
        self.session = session

    def _group_filter(self, group_key: Hashable) -> list[Any]:
        raise NotImplementedError

    def _group_values(self, group_key: Hashable) -> dict[str, Any]:
        raise NotImplementedError

    def _to_item(self, row: Any) -> Any:
        raise NotImplementedError

    def read_group(self, group_key: Hashable) -> list[Any]:
        rows = (
            self.session.execute(
                select(self.model)
                .where(*self._group_filter(group_key), self.model.archived.is_(False))
                .order_by(self.model.position.desc(), self.model.id)
            )
            .scalars()
            .all()
        )
        return [self._to_item(r) for r in rows]

    def apply(self, updates: Sequence[PositionUpdate]) -> None:
        for u in updates:
            values: dict[str, Any] = {"position": u.position, "updated_at": func.now()}
            if u.group_key is not None:
                values.update(self._group_values(u.group_key))
            result = self.session.execute(
                update(self.model)
                .where(self.model.id == u.item_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ItemNotFoundError(f"{self.model.__tablename__} row not found: {u.item_id!r}")
        # Bulk UPDATEs bypass the identity map; reload rows on next access.
        self.session.expire_all()


class AccountOrderingTransaction(_SessionOrderingTransaction):
    """Accounts grouped by type."""

    model = MoneyAccount

    def _group_filter(self, group_key: Hashable) -> list[Any]:
        return [MoneyAccount.type == AccountType(group_key).value]

    def _group_values(self, group_key: Hashable) -> dict[str, Any]:
        return {"type": AccountType(group_key).value}

    def _to_item(self, row: MoneyAccount) -> Account:
        return account_from_row(row)


class CategoryOrderingTransaction(_SessionOrderingTransaction):
    """Top-level categories grouped by the income/expense flag."""

    model = MoneyCategory

    def _group_filter(self, group_key: Hashable) -> list[Any]:
        return [
            MoneyCategory.parent_category_id.is_(None),
            MoneyCategory.is_income.is_(bool(group_key)),
        ]

    def _group_values(self, group_key: Hashable) -> dict[str, Any]:
        return {"is_income": bool(group_key)}

    def _to_item(self, row: MoneyCategory) -> Category:
        return category_from_row(row)


class SubcategoryOrderingTransaction(_SessionOrderingTransaction):
    """Subcategories grouped by their parent category."""

    model = MoneyCategory

    def _group_filter(self, group_key: Hashable) -> list[Any]:
        return [MoneyCategory.parent_category_id == str(group_key)]

    def _group_values(self, group_key: Hashable) -> dict[str, Any]:
        # A subcategory follows its parent's income/expense flag.
        parent = self.session.get(MoneyCategory, str(group_key))
        if parent is None:
            raise ItemNotFoundError(f"Parent category not found: {group_key!r}")
        return {"parent_category_id": parent.id, "is_income": parent.is_income}

    def _to_item(self, row: MoneyCategory) -> Subcategory:
        return subcategory_from_row(row)


__all__ = [
    "AccountOrderingTransaction",
    "ItemNotFoundError",
    "CategoryOrderingTransaction",
    "SubcategoryOrderingTransaction",
    "account_from_row",
    "category_from_row",
    "subcategory_from_row",
]
