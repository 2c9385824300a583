"""Category and subcategory service operations.

Top-level categories form two ordering groups (income and expense);
subcategories are ordered within their parent category. As in
:mod:`money_tracker.accounts`, callers own the session and its transaction.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from db.models.money import MoneyCategory
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from .logging_setup import get_logger
from .models import Category, CategoryDraft, Subcategory, SubcategoryDraft
from .persistence import (
    CategoryOrderingTransaction,
    ItemNotFoundError,
    SubcategoryOrderingTransaction,
    category_from_row,
    subcategory_from_row,
)
from .reordering import (
    MoveOutcome,
    heal_group_if_needed,
    move_item,
    position_for_first,
    position_for_last,
)
from .stern_brocot import DEFAULT_MAX_DEPTH, SternBrocotTreeSearch

_logger = get_logger("money_tracker.categories")


def _get_row(session: Session, category_id: str, *, subcategory: bool) -> MoneyCategory:
    row = session.get(MoneyCategory, category_id)
    if row is None or (row.parent_category_id is not None) != subcategory:
        kind = "Subcategory" if subcategory else "Category"
        raise ItemNotFoundError(f"{kind} not found: {category_id!r}")
    return row


def get_category(session: Session, category_id: str) -> Category:
    return category_from_row(_get_row(session, category_id, subcategory=False))


def get_subcategory(session: Session, subcategory_id: str) -> Subcategory:
    return subcategory_from_row(_get_row(session, subcategory_id, subcategory=True))


def list_categories(
    session: Session,
    *,
    is_income: bool,
    include_archived: bool = False,
    heal: bool = True,
) -> list[Category]:
    """Return income or expense categories, first shown first.

    Archived categories are left out unless ``include_archived`` is set; they
    are never healed and keep the position they had when archived.
    """

    tx = CategoryOrderingTransaction(session)
    if heal:
        heal_group_if_needed(tx, is_income)
    if not include_archived:
        return tx.read_group(is_income)

    stmt = (
        select(MoneyCategory)
        .where(
            MoneyCategory.parent_category_id.is_(None),
            MoneyCategory.is_income.is_(is_income),
        )
        .order_by(MoneyCategory.position.desc(), MoneyCategory.id)
    )
    return [category_from_row(r) for r in session.execute(stmt).scalars().all()]


def add_category(
    session: Session,
    draft: CategoryDraft,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Category:
    """Create a top-level category placed first within income or expense."""

    position = position_for_first(
        CategoryOrderingTransaction(session), draft.is_income, max_depth=max_depth
    )
    row = MoneyCategory(
        id=str(uuid.uuid4()),
        title=draft.title,
        currency_code=draft.currency_code,
        parent_category_id=None,
        is_income=draft.is_income,
        color_scheme=draft.color_scheme,
        position=position,
        archived=False,
    )
    session.add(row)
    session.flush()
    _logger.debug("Added category %s at position %r", row.id, position)
    return category_from_row(row)


def edit_category(
    session: Session,
    category_id: str,
    *,
    title: str | None = None,
    color_scheme: str | None = None,
) -> Category:
    """Update title and/or colour; the position is left untouched."""

    current = get_category(session, category_id)
    values: dict[str, object] = {}
    if title is not None:
        values["title"] = CategoryDraft(title=title, currency_code=current.currency_code).title
    if color_scheme is not None:
        values["color_scheme"] = color_scheme
    if not values:
        return current

    values["updated_at"] = func.now()
    session.execute(
        update(MoneyCategory)
        .where(MoneyCategory.id == category_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    # Subcategories share their parent's colour scheme.
    if color_scheme is not None:
        session.execute(
            update(MoneyCategory)
            .where(MoneyCategory.parent_category_id == category_id)
            .values(color_scheme=color_scheme, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
    session.expire_all()
    return get_category(session, category_id)


def move_category(
    session: Session,
    category_id: str,
    *,
    before_id: str | None = None,
    after_id: str | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> MoveOutcome:
    category = get_category(session, category_id)
    before = get_category(session, before_id) if before_id is not None else None
    after = get_category(session, after_id) if after_id is not None else None
    for neighbour in (before, after):
        if neighbour is not None and neighbour.is_income != category.is_income:
            raise ValueError("Categories can't be moved between income and expense")
    return move_item(
        CategoryOrderingTransaction(session),
        category,
        before=before,
        after=after,
        max_depth=max_depth,
    )


def archive_category(session: Session, category_id: str) -> None:
    """Hide the category; its subcategories stay attached and untouched."""

    get_category(session, category_id)
    session.execute(
        update(MoneyCategory)
        .where(MoneyCategory.id == category_id)
        .values(archived=True, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    session.expire_all()


def unarchive_category(
    session: Session,
    category_id: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Category:
    """Make the category visible again as the last one of its kind."""

    category = get_category(session, category_id)
    if not category.archived:
        return category

    new_position = position_for_last(
        CategoryOrderingTransaction(session), category.is_income, max_depth=max_depth
    )
    _logger.debug("Unarchiving category %s at position %r", category_id, new_position)
    session.execute(
        update(MoneyCategory)
        .where(MoneyCategory.id == category_id)
        .values(archived=False, position=new_position, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    session.expire_all()
    return get_category(session, category_id)


def list_subcategories(
    session: Session, category_id: str, *, heal: bool = True
) -> list[Subcategory]:
    get_category(session, category_id)
    tx = SubcategoryOrderingTransaction(session)
    if heal:
        heal_group_if_needed(tx, category_id)
    return tx.read_group(category_id)


def set_subcategories(
    session: Session,
    category_id: str,
    subcategories: Sequence[SubcategoryDraft],
) -> list[Subcategory]:
    """Replace the subcategory list of a category, keeping the given order.

    Entries with an ``id`` update existing subcategories, entries without one
    are created. Subcategories left out of the list are archived. Positions
    are rewritten as consecutive integers, the first entry getting the
    greatest one, which also resets the group's precision budget.
    """

    parent = _get_row(session, category_id, subcategory=False)
    existing = {
        r.id: r
        for r in session.execute(
            select(MoneyCategory).where(MoneyCategory.parent_category_id == category_id)
        )
        .scalars()
        .all()
    }

    kept: set[str] = set()
    tree = SternBrocotTreeSearch()
    for draft in reversed(subcategories):
        position = tree.value
        tree.go_right()
        if draft.id is not None:
            row = existing.get(draft.id)
            if row is None:
                raise ItemNotFoundError(f"Subcategory not found: {draft.id!r}")
            row.title = draft.title
            row.position = position
            row.archived = False
            row.color_scheme = parent.color_scheme
            row.is_income = parent.is_income
            kept.add(row.id)
        else:
            session.add(
                MoneyCategory(
                    id=str(uuid.uuid4()),
                    title=draft.title,
                    currency_code=parent.currency_code,
                    parent_category_id=parent.id,
                    is_income=parent.is_income,
                    color_scheme=parent.color_scheme,
                    position=position,
                    archived=False,
                )
            )

    for row_id, row in existing.items():
        if row_id not in kept and not row.archived:
            row.archived = True

    session.flush()
    _logger.debug(
        "Replaced subcategories of %s: count=%d, archived=%d",
        category_id,
        len(subcategories),
        len(existing) - len(kept),
    )
    return SubcategoryOrderingTransaction(session).read_group(category_id)


def move_subcategory(
    session: Session,
    subcategory_id: str,
    *,
    before_id: str | None = None,
    after_id: str | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> MoveOutcome:
    """Move a subcategory; neighbours under another parent re-parent it."""

    subcategory = get_subcategory(session, subcategory_id)
    before = get_subcategory(session, before_id) if before_id is not None else None
    after = get_subcategory(session, after_id) if after_id is not None else None
    return move_item(
        SubcategoryOrderingTransaction(session),
        subcategory,
        before=before,
        after=after,
        max_depth=max_depth,
    )


__all__ = [
    "add_category",
    "archive_category",
    "edit_category",
    "get_category",
    "get_subcategory",
    "list_categories",
    "list_subcategories",
    "move_category",
    "move_subcategory",
    "set_subcategories",
    "unarchive_category",
]
