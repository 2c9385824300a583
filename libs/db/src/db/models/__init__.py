"""Shared SQLAlchemy models registry for the money tracker database."""

from .money import Base, MoneyAccount, MoneyCategory

__all__ = [
    "Base",
    "MoneyAccount",
    "MoneyCategory",
]
