# ruff: noqa: I001
"""Typer-based console interface for ``money_tracker``.

Environment variables are loaded from a local ``.env`` (without overriding the
current environment) before any command runs. ``DATABASE_URL`` selects the
database unless ``--database-url`` is given. Every command runs inside a
single transaction and prints tab-separated rows to stdout; failures are
reported on stderr with a non-zero exit status.
"""

from __future__ import annotations

import math
import os
from collections.abc import Callable, Iterable
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from sqlalchemy.orm import Session

from .logging_setup import configure_logging, get_logger
from .models import Account, AccountDraft, AccountType, Category, CategoryDraft, Subcategory
from .models import SubcategoryDraft
from .stern_brocot import DEFAULT_MAX_DEPTH, InvalidRangeError

_logger = get_logger("money_tracker.cli")


# ---- Small module-level helpers used by CLI commands -------------------------


def _resolve_max_depth() -> int:
    """Search depth for CLI operations, honoring ``MONEY_POSITION_MAX_DEPTH``.

    Invalid or non-positive values fall back to the default.
    """

    env_val = os.getenv("MONEY_POSITION_MAX_DEPTH")
    try:
        max_depth = int(env_val) if env_val else None
    except ValueError:
        max_depth = None
    if max_depth is None or max_depth <= 0:
        return DEFAULT_MAX_DEPTH
    return max_depth


def _run_in_session(database_url: str | None, fn: Callable[[Session], Any]) -> Any:
    """Run ``fn`` in one transaction; print a concise error and exit 1 on failure."""

    from db.client import session_scope

    try:
        with session_scope(database_url=database_url) as session:
            return fn(session)
    except (ValidationError, InvalidRangeError, LookupError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    except Exception as e:
        _logger.exception("Command failed")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e


def _format_account(a: Account) -> str:
    flag = "\tarchived" if a.archived else ""
    return f"{a.id}\t{a.type.value}\t{a.position!r}\t{a.title}\t{a.balance} {a.currency_code}{flag}"


def _format_category(c: Category | Subcategory) -> str:
    flag = "\tarchived" if c.archived else ""
    return f"{c.id}\t{c.position!r}\t{c.title}{flag}"


def _echo_rows(rows: Iterable[str]) -> None:
    for row in rows:
        typer.echo(row)


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Manage ordered accounts and categories of the money tracker.",
)

DatabaseUrlOption = Annotated[
    str | None,
    typer.Option("--database-url", help="Override DATABASE_URL (falls back to env var)."),
]
BeforeOption = Annotated[
    str | None,
    typer.Option("--before", help="Id of the item to end up right after the moved one."),
]
AfterOption = Annotated[
    str | None,
    typer.Option("--after", help="Id of the item to end up right before the moved one."),
]


@app.callback()
def _root(
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Log level name or number; overrides MONEY_LOG_LEVEL."),
    ] = None,
) -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


@app.command("compute-position")
def compute_position_cmd(
    lower_bound: Annotated[float, typer.Argument(help="Exclusive lower bound (>= 0).")],
    upper_bound: Annotated[
        float, typer.Argument(help="Exclusive upper bound; 'inf' for the top.")
    ] = math.inf,
    max_depth: Annotated[int | None, typer.Option(help="Maximum search depth.")] = None,
) -> None:
    """Print the simplest fraction strictly between the bounds."""

    from .stern_brocot import SternBrocotTreeSearch

    try:
        search = SternBrocotTreeSearch().go_between(
            lower_bound, upper_bound, max_depth or _resolve_max_depth()
        )
    except InvalidRangeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    suffix = "\texhausted" if search.exhausted else ""
    typer.echo(f"{search.numerator}/{search.denominator}\t{search.value!r}{suffix}")


@app.command("list-accounts")
def list_accounts_cmd(
    database_url: DatabaseUrlOption = None,
    include_archived: Annotated[bool, typer.Option(help="Also list archived accounts.")] = False,
) -> None:
    """List accounts by type, first shown first (heals broken positions)."""

    from .accounts import list_accounts

    accounts = _run_in_session(
        database_url, lambda s: list_accounts(s, include_archived=include_archived)
    )
    _echo_rows(_format_account(a) for a in accounts)


@app.command("add-account")
def add_account_cmd(
    title: Annotated[str, typer.Argument()],
    currency_code: Annotated[str, typer.Option("--currency", help="ISO currency code.")],
    account_type: Annotated[AccountType, typer.Option("--type")] = AccountType.REGULAR,
    color_scheme: Annotated[str, typer.Option("--color-scheme")] = "default",
    database_url: DatabaseUrlOption = None,
) -> None:
    """Add an account at the top of its type."""

    from .accounts import add_account

    def _add(session: Session) -> Account:
        draft = AccountDraft(
            title=title,
            currency_code=currency_code,
            type=account_type,
            color_scheme=color_scheme,
        )
        return add_account(session, draft, max_depth=_resolve_max_depth())

    typer.echo(_format_account(_run_in_session(database_url, _add)))


@app.command("edit-account")
def edit_account_cmd(
    account_id: Annotated[str, typer.Argument()],
    title: Annotated[str | None, typer.Option()] = None,
    account_type: Annotated[AccountType | None, typer.Option("--type")] = None,
    color_scheme: Annotated[str | None, typer.Option("--color-scheme")] = None,
    database_url: DatabaseUrlOption = None,
) -> None:
    """Edit an account; a new type places it at the top of that type."""

    from .accounts import edit_account

    account = _run_in_session(
        database_url,
        lambda s: edit_account(
            s,
            account_id,
            title=title,
            account_type=account_type,
            color_scheme=color_scheme,
            max_depth=_resolve_max_depth(),
        ),
    )
    typer.echo(_format_account(account))


@app.command("move-account")
def move_account_cmd(
    account_id: Annotated[str, typer.Argument()],
    before: BeforeOption = None,
    after: AfterOption = None,
    database_url: DatabaseUrlOption = None,
) -> None:
    """Move an account between two neighbours (omit --after for the top)."""

    from .accounts import move_account

    outcome = _run_in_session(
        database_url,
        lambda s: move_account(
            s, account_id, before_id=before, after_id=after, max_depth=_resolve_max_depth()
        ),
    )
    typer.echo(outcome.value)


@app.command("archive-account")
def archive_account_cmd(
    account_id: Annotated[str, typer.Argument()],
    database_url: DatabaseUrlOption = None,
) -> None:
    from .accounts import archive_account

    _run_in_session(database_url, lambda s: archive_account(s, account_id))
    typer.echo("archived")


@app.command("unarchive-account")
def unarchive_account_cmd(
    account_id: Annotated[str, typer.Argument()],
    database_url: DatabaseUrlOption = None,
) -> None:
    """Unarchive an account, placing it last within its type."""

    from .accounts import unarchive_account

    account = _run_in_session(
        database_url,
        lambda s: unarchive_account(s, account_id, max_depth=_resolve_max_depth()),
    )
    typer.echo(_format_account(account))


@app.command("adjust-balance")
def adjust_balance_cmd(
    account_id: Annotated[str, typer.Argument()],
    delta: Annotated[str, typer.Argument(help="Signed decimal amount, e.g. -12.50")],
    database_url: DatabaseUrlOption = None,
) -> None:
    from .accounts import adjust_balance

    try:
        amount = Decimal(delta)
    except InvalidOperation as e:
        typer.echo(f"Error: invalid amount: {delta!r}", err=True)
        raise typer.Exit(1) from e
    account = _run_in_session(database_url, lambda s: adjust_balance(s, account_id, amount))
    typer.echo(_format_account(account))


@app.command("list-categories")
def list_categories_cmd(
    income: Annotated[bool, typer.Option("--income/--expense")] = False,
    include_archived: Annotated[bool, typer.Option(help="Also list archived categories.")] = False,
    database_url: DatabaseUrlOption = None,
) -> None:
    """List income or expense categories with their subcategories indented."""

    from .categories import list_categories, list_subcategories

    def _list(session: Session) -> list[str]:
        lines: list[str] = []
        categories = list_categories(
            session, is_income=income, include_archived=include_archived
        )
        for category in categories:
            lines.append(_format_category(category))
            lines.extend(
                "\t" + _format_category(sub) for sub in list_subcategories(session, category.id)
            )
        return lines

    _echo_rows(_run_in_session(database_url, _list))


@app.command("add-category")
def add_category_cmd(
    title: Annotated[str, typer.Argument()],
    currency_code: Annotated[str, typer.Option("--currency", help="ISO currency code.")],
    income: Annotated[bool, typer.Option("--income/--expense")] = False,
    color_scheme: Annotated[str, typer.Option("--color-scheme")] = "default",
    database_url: DatabaseUrlOption = None,
) -> None:
    """Add a category at the top of the income or expense list."""

    from .categories import add_category

    def _add(session: Session) -> Category:
        draft = CategoryDraft(
            title=title, currency_code=currency_code, is_income=income, color_scheme=color_scheme
        )
        return add_category(session, draft, max_depth=_resolve_max_depth())

    typer.echo(_format_category(_run_in_session(database_url, _add)))


@app.command("move-category")
def move_category_cmd(
    category_id: Annotated[str, typer.Argument()],
    before: BeforeOption = None,
    after: AfterOption = None,
    database_url: DatabaseUrlOption = None,
) -> None:
    """Move a top-level category between two neighbours of the same kind."""

    from .categories import move_category

    outcome = _run_in_session(
        database_url,
        lambda s: move_category(
            s, category_id, before_id=before, after_id=after, max_depth=_resolve_max_depth()
        ),
    )
    typer.echo(outcome.value)


@app.command("archive-category")
def archive_category_cmd(
    category_id: Annotated[str, typer.Argument()],
    database_url: DatabaseUrlOption = None,
) -> None:
    from .categories import archive_category

    _run_in_session(database_url, lambda s: archive_category(s, category_id))
    typer.echo("archived")


@app.command("unarchive-category")
def unarchive_category_cmd(
    category_id: Annotated[str, typer.Argument()],
    database_url: DatabaseUrlOption = None,
) -> None:
    """Unarchive a category, placing it last among income or expense categories."""

    from .categories import unarchive_category

    category = _run_in_session(
        database_url,
        lambda s: unarchive_category(s, category_id, max_depth=_resolve_max_depth()),
    )
    typer.echo(_format_category(category))


@app.command("move-subcategory")
def move_subcategory_cmd(
    subcategory_id: Annotated[str, typer.Argument()],
    before: BeforeOption = None,
    after: AfterOption = None,
    database_url: DatabaseUrlOption = None,
) -> None:
    from .categories import move_subcategory

    outcome = _run_in_session(
        database_url,
        lambda s: move_subcategory(
            s, subcategory_id, before_id=before, after_id=after, max_depth=_resolve_max_depth()
        ),
    )
    typer.echo(outcome.value)


@app.command("set-subcategories")
def set_subcategories_cmd(
    category_id: Annotated[str, typer.Argument()],
    titles: Annotated[list[str], typer.Argument(help="Subcategory titles, first shown first.")],
    database_url: DatabaseUrlOption = None,
) -> None:
    """Replace the subcategories of a category with new ones in the given order.

    Existing subcategories can be kept by passing ``<id>=<title>``.
    """

    from .categories import set_subcategories

    def _set(session: Session) -> list[Subcategory]:
        drafts = []
        for raw in titles:
            sub_id, sep, title = raw.partition("=")
            drafts.append(
                SubcategoryDraft(id=sub_id, title=title) if sep else SubcategoryDraft(title=raw)
            )
        return set_subcategories(session, category_id, drafts)

    _echo_rows(_format_category(sub) for sub in _run_in_session(database_url, _set))


@app.command("heal-positions")
def heal_positions_cmd(database_url: DatabaseUrlOption = None) -> None:
    """Heal every ordering group whose positions collide or are not positive."""

    from .persistence import (
        AccountOrderingTransaction,
        CategoryOrderingTransaction,
        SubcategoryOrderingTransaction,
    )
    from .reordering import heal_group_if_needed

    def _heal(session: Session) -> int:
        from db.models.money import MoneyCategory
        from sqlalchemy import select

        updated = 0
        accounts_tx = AccountOrderingTransaction(session)
        for account_type in AccountType:
            updated += heal_group_if_needed(accounts_tx, account_type)
        categories_tx = CategoryOrderingTransaction(session)
        for is_income in (False, True):
            updated += heal_group_if_needed(categories_tx, is_income)
        parent_ids = session.execute(
            select(MoneyCategory.id).where(MoneyCategory.parent_category_id.is_(None))
        ).scalars()
        subcategories_tx = SubcategoryOrderingTransaction(session)
        for parent_id in list(parent_ids):
            updated += heal_group_if_needed(subcategories_tx, parent_id)
        return updated

    updated = _run_in_session(database_url, _heal)
    typer.echo(f"updated={updated}")


if __name__ == "__main__":  # pragma: no cover
    app()
