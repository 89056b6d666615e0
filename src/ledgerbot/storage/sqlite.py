"""SQLite storage for ledger entries.

One sqlite3 connection, used serially from a worker thread through
``asyncio.to_thread`` so the event loop never blocks on disk I/O.
Dates are stored as ISO-8601 text, which sorts and compares correctly.
"""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import Callable
from datetime import date
from typing import Any, TypeVar

from ledgerbot.exceptions import StoreError
from ledgerbot.logging import get_logger
from ledgerbot.models import Balance, CategoryTotal, Entry
from ledgerbot.parsing.dates import today_utc
from ledgerbot.storage.base import ENTRY_COLUMNS, months_ago

log = get_logger("ledgerbot.storage.sqlite")

T = TypeVar("T")

# ------------------------------------------------------------------
# DDL
# ------------------------------------------------------------------

_SCHEMA = """
CREATE TABLE IF NOT EXISTS transactions (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id      TEXT NOT NULL,
    type         TEXT CHECK(type IN ('income', 'expense')) NOT NULL,
    amount       INTEGER CHECK(amount > 0) NOT NULL,
    category     TEXT NOT NULL,
    reason       TEXT,
    is_family    INTEGER DEFAULT 0,
    date         TEXT NOT NULL,
    payment_mode TEXT DEFAULT 'UPI',
    created_at   TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_user_date ON transactions(user_id, date);
CREATE INDEX IF NOT EXISTS idx_user_type ON transactions(user_id, type);

CREATE TABLE IF NOT EXISTS user_profiles (
    user_id    TEXT PRIMARY KEY,
    user_name  TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""

# Databases created before payment modes existed lack the column
_ADD_PAYMENT_MODE = "ALTER TABLE transactions ADD COLUMN payment_mode TEXT DEFAULT 'UPI'"


class SqliteStore:
    """File-backed ledger store."""

    def __init__(self, path: str) -> None:
        self._path = path
        self._conn: sqlite3.Connection | None = None

    async def _run(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        if self._conn is None:
            raise StoreError("store is not initialized")
        conn = self._conn
        try:
            return await asyncio.to_thread(fn, conn)
        except (sqlite3.Error, OverflowError) as exc:
            # OverflowError: an int that does not fit SQLite INTEGER
            raise StoreError(f"sqlite error: {exc}") from exc

    async def initialize(self) -> None:
        """Open the database file and create tables."""
        try:
            self._conn = sqlite3.connect(self._path, check_same_thread=False)
        except sqlite3.Error as exc:
            raise StoreError(f"cannot open {self._path}: {exc}") from exc
        self._conn.row_factory = sqlite3.Row

        def _setup(conn: sqlite3.Connection) -> None:
            conn.executescript(_SCHEMA)
            columns = {row["name"] for row in conn.execute("PRAGMA table_info(transactions)")}
            if "payment_mode" not in columns:
                conn.execute(_ADD_PAYMENT_MODE)
            conn.commit()

        await self._run(_setup)
        log.info("sqlite_store_initialized", path=self._path)

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_entry(self, user_id: str, entry: Entry) -> None:
        record = list(entry.to_record(user_id))
        record[ENTRY_COLUMNS.index("date")] = entry.date.isoformat()

        def _insert(conn: sqlite3.Connection) -> None:
            conn.execute(
                f"INSERT INTO transactions ({', '.join(ENTRY_COLUMNS)}) "  # nosec B608
                f"VALUES ({', '.join('?' * len(ENTRY_COLUMNS))})",
                record,
            )
            conn.commit()

        await self._run(_insert)

    async def upsert_profile(self, user_id: str, user_name: str) -> None:
        def _upsert(conn: sqlite3.Connection) -> None:
            conn.execute(
                """
                INSERT INTO user_profiles (user_id, user_name, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(user_id) DO UPDATE SET
                    user_name = excluded.user_name,
                    updated_at = excluded.updated_at
                """,
                (user_id, user_name),
            )
            conn.commit()

        await self._run(_upsert)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_balance(self, user_id: str) -> Balance:
        def _query(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            return conn.execute(
                "SELECT type, SUM(amount) AS total FROM transactions "
                "WHERE user_id = ? GROUP BY type",
                (user_id,),
            ).fetchall()

        totals = {row["type"]: int(row["total"] or 0) for row in await self._run(_query)}
        return Balance(income=totals.get("income", 0), expense=totals.get("expense", 0))

    async def get_category_summary(
        self,
        user_id: str,
        *,
        months: int,
        family_only: bool = False,
        today: date | None = None,
    ) -> list[CategoryTotal]:
        since = months_ago(today or today_utc(), months).isoformat()
        family_clause = "AND is_family = 1" if family_only else ""

        def _query(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            return conn.execute(
                f"""
                SELECT category, SUM(amount) AS total
                FROM transactions
                WHERE user_id = ? AND date >= ? {family_clause}
                GROUP BY category
                ORDER BY total DESC, category
                """,  # nosec B608
                (user_id, since),
            ).fetchall()

        rows = await self._run(_query)
        return [CategoryTotal(category=row["category"], total=int(row["total"])) for row in rows]

    async def list_entries(self, user_id: str) -> list[dict[str, Any]]:
        def _query(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            return conn.execute(
                f"SELECT {', '.join(ENTRY_COLUMNS)} FROM transactions "  # nosec B608
                "WHERE user_id = ? ORDER BY date, id",
                (user_id,),
            ).fetchall()

        return [dict(row) for row in await self._run(_query)]
