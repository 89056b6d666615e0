"""Ledger data models.

Plain dataclasses shared by the classifier, the stores and the message
handler. ``Entry`` is what the classifier produces; ``Balance`` and
``CategoryTotal`` are what the stores return for the read queries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Any


class TransactionType(StrEnum):
    """Direction of money flow."""

    INCOME = "income"
    EXPENSE = "expense"


class PaymentMode(StrEnum):
    """How the money moved."""

    UPI = "UPI"
    CASH = "CASH"


@dataclass(frozen=True)
class Entry:
    """A classified financial statement."""

    type: TransactionType
    amount: int
    category: str
    reason: str | None
    date: date
    is_family: bool
    payment_mode: PaymentMode = PaymentMode.UPI

    def to_record(self, user_id: str) -> tuple[Any, ...]:
        """Return the row written to storage, in column order.

        Columns: user_id, type, amount, category, reason, is_family, date,
        payment_mode.
        """
        return (
            user_id,
            self.type.value,
            self.amount,
            self.category,
            self.reason,
            1 if self.is_family else 0,
            self.date,
            self.payment_mode.value,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": self.type.value,
            "amount": self.amount,
            "category": self.category,
            "reason": self.reason,
            "date": self.date.isoformat(),
            "is_family": self.is_family,
            "payment_mode": self.payment_mode.value,
        }


@dataclass(frozen=True)
class Balance:
    """Income and expense totals for one user."""

    income: int = 0
    expense: int = 0

    @property
    def net(self) -> int:
        return self.income - self.expense


@dataclass(frozen=True)
class CategoryTotal:
    """Summed amount for one category."""

    category: str
    total: int
