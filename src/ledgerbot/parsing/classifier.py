"""Keyword classifier turning a money note into a ledger entry.

A deterministic rule engine over fixed vocabularies:

1. The amount is the first standalone integer in the text.
2. Income wins only when an income signal is present and no expense
   signal is; ties go to expense so spending is never under-counted.
3. Expense categories are matched in ``CATEGORY_PRIORITY`` order and the
   first group with a hit wins.
4. Family relevance comes from relationship words or from the category.

Keyword tests are plain substring checks on the lowercased text.
"""

from __future__ import annotations

import re
from datetime import date

from ledgerbot.constants import MAX_AMOUNT
from ledgerbot.exceptions import InvalidAmountError, NoAmountFoundError
from ledgerbot.models import Entry, PaymentMode, TransactionType
from ledgerbot.parsing.dates import resolve_date, today_utc

# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------

FAMILY_KEYWORDS = ("family", "father", "mother", "dad", "mom", "grandfather", "grandmother")

INCOME_KEYWORDS = ("salary", "refund", "freelance", "income")
RECEIVE_VERBS = ("received", "got", "credited", "gave")
EXPENSE_VERBS = ("spent", "paid", "bought", "purchase")

# Earlier groups win when a message matches more than one.
CATEGORY_PRIORITY: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "groceries",
        ("groceries", "vegetables", "ration", "milk", "bread", "eggs", "dairy", "provisions"),
    ),
    ("bills", ("electricity", "water", "internet", "rent", "bill")),
    ("medical", ("doctor", "hospital", "medicine", "medical")),
    ("travel", ("uber", "ola", "bus", "train", "flight")),
    ("food", ("food", "lunch", "dinner", "zomato", "swiggy")),
    ("shopping", ("amazon", "flipkart", "shopping")),
)

FAMILY_CATEGORIES = frozenset({"groceries", "bills", "medical", "shopping"})

GENERAL_CATEGORY = "general"
INCOME_CATEGORY = "income"

_AMOUNT = re.compile(r"\b[0-9]+\b")
_CASH = re.compile(r"\bcash\b")


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def detect_type(lower: str) -> TransactionType:
    """Decide income vs expense from signal words."""
    has_income = _contains_any(lower, INCOME_KEYWORDS) or _contains_any(lower, RECEIVE_VERBS)
    has_expense = _contains_any(lower, EXPENSE_VERBS)
    if has_income and not has_expense:
        return TransactionType.INCOME
    return TransactionType.EXPENSE


def detect_category(lower: str, tx_type: TransactionType) -> str:
    """Pick the category for an already-typed message."""
    if tx_type is TransactionType.INCOME:
        return next((k for k in INCOME_KEYWORDS if k in lower), INCOME_CATEGORY)

    for category, keywords in CATEGORY_PRIORITY:
        if _contains_any(lower, keywords):
            return category
    return GENERAL_CATEGORY


def classify(text: str, *, today: date | None = None) -> Entry:
    """Classify a free-form money note.

    Args:
        text: The message as typed by the user.
        today: Date used when the text mentions none. Defaults to today
            in UTC.

    Returns:
        The classified entry.

    Raises:
        NoAmountFoundError: The text has no standalone integer.
        InvalidAmountError: The amount is zero or larger than MAX_AMOUNT.
    """
    lower = text.lower()

    amount_match = _AMOUNT.search(lower)
    if amount_match is None:
        raise NoAmountFoundError()

    amount = int(amount_match.group(0))
    if amount <= 0:
        raise InvalidAmountError(f"Amount must be greater than zero, got {amount_match.group(0)}")
    if amount > MAX_AMOUNT:
        raise InvalidAmountError(f"Amount is too large, the limit is {MAX_AMOUNT}")

    tx_type = detect_type(lower)
    category = detect_category(lower, tx_type)
    is_family = _contains_any(lower, FAMILY_KEYWORDS) or category in FAMILY_CATEGORIES

    reason = text.replace(amount_match.group(0), "", 1).strip()
    entry_date = resolve_date(text, today=today) or today or today_utc()
    payment_mode = PaymentMode.CASH if _CASH.search(lower) else PaymentMode.UPI

    return Entry(
        type=tx_type,
        amount=amount,
        category=category,
        reason=reason or None,
        date=entry_date,
        is_family=is_family,
        payment_mode=payment_mode,
    )
