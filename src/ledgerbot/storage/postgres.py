"""PostgreSQL storage for ledger entries.

Follows the asyncpg.Pool pattern: ``initialize()`` opens a pool and
creates the tables, then every method acquires a connection for its
statement.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import asyncpg  # type: ignore[import-not-found,import-untyped]

from ledgerbot.exceptions import StoreError
from ledgerbot.logging import get_logger
from ledgerbot.models import Balance, CategoryTotal, Entry
from ledgerbot.parsing.dates import today_utc
from ledgerbot.storage.base import ENTRY_COLUMNS, months_ago

log = get_logger("ledgerbot.storage.postgres")

# Server-side errors, plus client-side ones such as an argument that does
# not encode to its column type (asyncpg raises those as InterfaceError)
_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError)

# ------------------------------------------------------------------
# DDL
# ------------------------------------------------------------------

_CREATE_TRANSACTIONS_TABLE = """
CREATE TABLE IF NOT EXISTS transactions (
    id           BIGSERIAL PRIMARY KEY,
    user_id      TEXT NOT NULL,
    type         TEXT NOT NULL CHECK (type IN ('income', 'expense')),
    amount       INTEGER NOT NULL CHECK (amount > 0),
    category     TEXT NOT NULL,
    reason       TEXT,
    is_family    SMALLINT NOT NULL DEFAULT 0,
    date         DATE NOT NULL,
    payment_mode TEXT NOT NULL DEFAULT 'UPI',
    created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_user_date ON transactions (user_id, date);
CREATE INDEX IF NOT EXISTS idx_user_type ON transactions (user_id, type);
"""

_CREATE_PROFILES_TABLE = """
CREATE TABLE IF NOT EXISTS user_profiles (
    user_id    TEXT PRIMARY KEY,
    user_name  TEXT NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""


class PostgresStore:
    """Ledger store backed by an asyncpg connection pool."""

    def __init__(self, dsn: str, *, max_size: int = 5) -> None:
        self._dsn = dsn
        self._max_size = max_size
        self._pool: asyncpg.Pool | None = None

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise StoreError("store is not initialized")
        return self._pool

    async def initialize(self, pool: asyncpg.Pool | None = None) -> None:
        """Create tables, opening a pool unless one is passed in."""
        try:
            self._pool = pool or await asyncpg.create_pool(
                self._dsn, min_size=1, max_size=self._max_size
            )
            async with self._pool.acquire() as conn:
                await conn.execute("SET client_min_messages TO WARNING")
                await conn.execute(_CREATE_TRANSACTIONS_TABLE)
                await conn.execute(_CREATE_PROFILES_TABLE)
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
            raise StoreError(f"postgres initialization failed: {exc}") from exc
        log.info("postgres_store_initialized")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_entry(self, user_id: str, entry: Entry) -> None:
        placeholders = ", ".join(f"${i}" for i in range(1, len(ENTRY_COLUMNS) + 1))
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                await conn.execute(
                    f"INSERT INTO transactions ({', '.join(ENTRY_COLUMNS)}) "  # nosec B608
                    f"VALUES ({placeholders})",
                    *entry.to_record(user_id),
                )
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"insert failed: {exc}") from exc

    async def upsert_profile(self, user_id: str, user_name: str) -> None:
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO user_profiles (user_id, user_name, updated_at)
                    VALUES ($1, $2, NOW())
                    ON CONFLICT (user_id) DO UPDATE SET
                        user_name = EXCLUDED.user_name,
                        updated_at = EXCLUDED.updated_at
                    """,
                    user_id,
                    user_name,
                )
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"profile upsert failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_balance(self, user_id: str) -> Balance:
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    "SELECT type, SUM(amount) AS total FROM transactions "
                    "WHERE user_id = $1 GROUP BY type",
                    user_id,
                )
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"balance query failed: {exc}") from exc
        totals = {row["type"]: int(row["total"] or 0) for row in rows}
        return Balance(income=totals.get("income", 0), expense=totals.get("expense", 0))

    async def get_category_summary(
        self,
        user_id: str,
        *,
        months: int,
        family_only: bool = False,
        today: date | None = None,
    ) -> list[CategoryTotal]:
        since = months_ago(today or today_utc(), months)
        family_clause = "AND is_family = 1" if family_only else ""
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT category, SUM(amount) AS total
                    FROM transactions
                    WHERE user_id = $1 AND date >= $2 {family_clause}
                    GROUP BY category
                    ORDER BY total DESC, category
                    """,  # nosec B608
                    user_id,
                    since,
                )
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"summary query failed: {exc}") from exc
        return [CategoryTotal(category=row["category"], total=int(row["total"])) for row in rows]

    async def list_entries(self, user_id: str) -> list[dict[str, Any]]:
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    f"SELECT {', '.join(ENTRY_COLUMNS)} FROM transactions "  # nosec B608
                    "WHERE user_id = $1 ORDER BY date, id",
                    user_id,
                )
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"entry listing failed: {exc}") from exc
        entries = []
        for row in rows:
            item = dict(row)
            item["date"] = item["date"].isoformat()
            entries.append(item)
        return entries
