"""Account service operations.

Callers own the transaction scope: every function takes a SQLAlchemy
``Session`` (typically from :func:`db.client.session_scope`) and performs its
snapshot reads and writes inside it, so an operation either lands completely
or not at all. Storage errors propagate unchanged.

Accounts are ordered within their type. New accounts go to the top of their
type, unarchived ones to the bottom, and an account whose type changes goes
to the top of the new type.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from db.models.money import MoneyAccount
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from .logging_setup import get_logger
from .models import Account, AccountDraft, AccountType
from .persistence import AccountOrderingTransaction, ItemNotFoundError, account_from_row
from .reordering import (
    MoveOutcome,
    heal_group_if_needed,
    move_item,
    place_first_in_group,
    position_for_first,
    position_for_last,
)
from .stern_brocot import DEFAULT_MAX_DEPTH

_logger = get_logger("money_tracker.accounts")


def get_account(session: Session, account_id: str) -> Account:
    row = session.get(MoneyAccount, account_id)
    if row is None:
        raise ItemNotFoundError(f"Account not found: {account_id!r}")
    return account_from_row(row)


def list_accounts(
    session: Session,
    *,
    include_archived: bool = False,
    heal: bool = True,
) -> list[Account]:
    """Return accounts ordered by type, then by descending position.

    With ``heal`` (the default) every type whose visible positions collide or
    are not positive is healed first, in the same transaction.
    """

    if heal:
        tx = AccountOrderingTransaction(session)
        for account_type in AccountType:
            heal_group_if_needed(tx, account_type)

    stmt = select(MoneyAccount).order_by(
        MoneyAccount.type, MoneyAccount.position.desc(), MoneyAccount.id
    )
    if not include_archived:
        stmt = stmt.where(MoneyAccount.archived.is_(False))
    return [account_from_row(r) for r in session.execute(stmt).scalars().all()]


def add_account(
    session: Session,
    draft: AccountDraft,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Account:
    """Create an account placed first within its type."""

    tx = AccountOrderingTransaction(session)
    position = position_for_first(tx, draft.type, max_depth=max_depth)

    row = MoneyAccount(
        id=str(uuid.uuid4()),
        title=draft.title,
        currency_code=draft.currency_code,
        balance=Decimal("0.00"),
        type=draft.type.value,
        position=position,
        color_scheme=draft.color_scheme,
        archived=False,
    )
    session.add(row)
    session.flush()

    account = account_from_row(row)
    _logger.debug("Added account %s at position %r", account.id, position)
    return account


def edit_account(
    session: Session,
    account_id: str,
    *,
    title: str | None = None,
    account_type: AccountType | None = None,
    color_scheme: str | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Account:
    """Update account details; a type change moves the account to the top of the new type."""

    current = get_account(session, account_id)

    values: dict[str, object] = {}
    if title is not None:
        # Reuse draft validation for the title only.
        values["title"] = AccountDraft(title=title, currency_code=current.currency_code).title
    if color_scheme is not None:
        values["color_scheme"] = color_scheme
    if values:
        values["updated_at"] = func.now()
        session.execute(
            update(MoneyAccount)
            .where(MoneyAccount.id == account_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    if account_type is not None and AccountType(account_type) != current.type:
        new_position = place_first_in_group(
            AccountOrderingTransaction(session),
            current,
            AccountType(account_type),
            max_depth=max_depth,
        )
        _logger.debug(
            "Account %s type changed %s -> %s: old_position=%r, new_position=%r",
            account_id,
            current.type,
            account_type,
            current.position,
            new_position,
        )

    session.expire_all()
    return get_account(session, account_id)


def move_account(
    session: Session,
    account_id: str,
    *,
    before_id: str | None = None,
    after_id: str | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> MoveOutcome:
    """Place the account right before ``before_id`` and right after ``after_id``.

    Omitting ``after_id`` targets the top, omitting ``before_id`` the bottom.
    Neighbours of another type move the account into that type.
    """

    account = get_account(session, account_id)
    before = get_account(session, before_id) if before_id is not None else None
    after = get_account(session, after_id) if after_id is not None else None
    return move_item(
        AccountOrderingTransaction(session),
        account,
        before=before,
        after=after,
        max_depth=max_depth,
    )


def archive_account(session: Session, account_id: str) -> None:
    get_account(session, account_id)
    session.execute(
        update(MoneyAccount)
        .where(MoneyAccount.id == account_id)
        .values(archived=True, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    session.expire_all()


def unarchive_account(
    session: Session,
    account_id: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Account:
    """Make the account visible again as the last one of its type."""

    account = get_account(session, account_id)
    if not account.archived:
        return account

    new_position = position_for_last(
        AccountOrderingTransaction(session), account.type, max_depth=max_depth
    )
    _logger.debug("Unarchiving account %s at position %r", account_id, new_position)
    session.execute(
        update(MoneyAccount)
        .where(MoneyAccount.id == account_id)
        .values(archived=False, position=new_position, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    session.expire_all()
    return get_account(session, account_id)


def adjust_balance(session: Session, account_id: str, delta: Decimal) -> Account:
    """Add ``delta`` (may be negative) to the account balance."""

    current = get_account(session, account_id)
    new_balance = (current.balance + Decimal(delta)).quantize(Decimal("0.01"))
    _logger.debug(
        "Updating balance of %s: delta=%s, new_balance=%s", account_id, delta, new_balance
    )
    session.execute(
        update(MoneyAccount)
        .where(MoneyAccount.id == account_id)
        .values(balance=new_balance, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    session.expire_all()
    return get_account(session, account_id)


__all__ = [
    "add_account",
    "adjust_balance",
    "archive_account",
    "edit_account",
    "get_account",
    "list_accounts",
    "move_account",
    "unarchive_account",
]
