"""Ledger persistence.

``create_store`` picks the backend once, from configuration, so the rest
of the bot only ever sees the ``Store`` interface.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ledgerbot.logging import get_logger
from ledgerbot.storage.base import Store
from ledgerbot.storage.sqlite import SqliteStore

if TYPE_CHECKING:
    from ledgerbot.config import Settings

log = get_logger("ledgerbot.storage")

__all__ = ["SqliteStore", "Store", "create_store"]


def create_store(settings: Settings) -> Store:
    """Build the store selected by DATABASE_URL (SQLite when unset)."""
    if settings.uses_postgres:
        from ledgerbot.storage.postgres import PostgresStore

        log.info("store_selected", backend="postgres")
        return PostgresStore(settings.database_url or "")

    if settings.database_url:
        log.warning("database_url_ignored", reason="not a postgres URL")
    log.info("store_selected", backend="sqlite", path=settings.database_path)
    return SqliteStore(settings.database_path)
