"""Store capability interface shared by the SQLite and PostgreSQL backends."""

from __future__ import annotations

import calendar
from datetime import date
from typing import Any, Protocol

from ledgerbot.models import Balance, CategoryTotal, Entry

# Column order of Entry.to_record() and of list_entries() rows
ENTRY_COLUMNS = (
    "user_id",
    "type",
    "amount",
    "category",
    "reason",
    "is_family",
    "date",
    "payment_mode",
)


class Store(Protocol):
    """Persistence for ledger entries and the read queries the bot needs."""

    async def initialize(self) -> None:
        """Open connections and create tables."""
        ...

    async def close(self) -> None:
        """Release connections."""
        ...

    async def add_entry(self, user_id: str, entry: Entry) -> None:
        """Persist one classified entry."""
        ...

    async def upsert_profile(self, user_id: str, user_name: str) -> None:
        """Remember the display name of a chat."""
        ...

    async def get_balance(self, user_id: str) -> Balance:
        """Return a Balance with income and expense totals."""
        ...

    async def get_category_summary(
        self,
        user_id: str,
        *,
        months: int,
        family_only: bool = False,
        today: date | None = None,
    ) -> list[CategoryTotal]:
        """Return CategoryTotal rows for the last ``months`` months."""
        ...

    async def list_entries(self, user_id: str) -> list[dict[str, Any]]:
        """Return every entry of a user, oldest first."""
        ...


def months_ago(today: date, months: int) -> date:
    """Same day ``months`` months earlier, clamped to the month's last day.

    Windows reaching before year 1 start at ``date.min``.
    """
    if months < 0:
        raise ValueError("months must be >= 0")
    index = today.year * 12 + (today.month - 1) - months
    year, month = divmod(index, 12)
    if year < date.min.year:
        return date.min
    month += 1
    day = min(today.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
