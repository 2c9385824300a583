"""Domain records and validated inputs for ``money_tracker``.

Records are immutable snapshots of persisted rows. Each one exposes
``group_key``: the value shared by every item of its ordering group
(account type, income/expense flag, parent category id). Positions are only
comparable within one group, and the greatest position is shown first.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

_TITLE_MAX_LEN = 64
_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


class AccountType(StrEnum):
    REGULAR = "regular"
    SAVINGS = "savings"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Account:
    id: str
    title: str
    currency_code: str
    balance: Decimal
    type: AccountType
    position: float
    color_scheme: str
    archived: bool = False

    @property
    def group_key(self) -> AccountType:
        return self.type


@dataclass(frozen=True, slots=True)
class Category:
    """A top-level category; income and expense categories are ordered apart."""

    id: str
    title: str
    currency_code: str
    is_income: bool
    color_scheme: str
    position: float
    archived: bool = False

    @property
    def group_key(self) -> bool:
        return self.is_income


@dataclass(frozen=True, slots=True)
class Subcategory:
    id: str
    title: str
    category_id: str
    position: float
    archived: bool = False

    @property
    def group_key(self) -> str:
        return self.category_id


# ---------------------------------------------------------------------------
# Validated inputs
# ---------------------------------------------------------------------------


def _normalize_title(v: str) -> str:
    title = " ".join(v.split())
    if not title:
        raise ValueError("title cannot be empty")
    if len(title) > _TITLE_MAX_LEN:
        raise ValueError(f"title must be at most {_TITLE_MAX_LEN} characters")
    return title


class AccountDraft(BaseModel):
    """Fields of a new account as entered by the user."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str
    currency_code: str
    type: AccountType = AccountType.REGULAR
    color_scheme: str = "default"

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        return _normalize_title(v)

    @field_validator("currency_code")
    @classmethod
    def _currency(cls, v: str) -> str:
        code = v.upper()
        if not _CURRENCY_RE.match(code):
            raise ValueError("currency_code must be a 3-letter ISO code")
        return code


class CategoryDraft(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str
    currency_code: str
    is_income: bool = False
    color_scheme: str = "default"

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        return _normalize_title(v)

    @field_validator("currency_code")
    @classmethod
    def _currency(cls, v: str) -> str:
        code = v.upper()
        if not _CURRENCY_RE.match(code):
            raise ValueError("currency_code must be a 3-letter ISO code")
        return code


class SubcategoryDraft(BaseModel):
    """A subcategory in an edited list; ``id`` is ``None`` for new entries."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str
    id: str | None = None

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        return _normalize_title(v)


__all__ = [
    "Account",
    "AccountDraft",
    "AccountType",
    "Category",
    "CategoryDraft",
    "Subcategory",
    "SubcategoryDraft",
]
