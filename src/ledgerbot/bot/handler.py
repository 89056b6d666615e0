"""Routes inbound chat messages to ledger commands and writes replies.

Recognised commands:

- ``/start``, ``hi``, ``help``: usage examples
- ``balance``: income, expense and net totals
- anything containing ``summary``: per-category totals for the last N
  months (first number in the text, default 1), ``family`` narrows it to
  family entries
- ``export``: the chat's entries as a CSV document

Everything else is classified and saved as a ledger entry.
"""

from __future__ import annotations

import csv
import io
import re
from collections.abc import Callable
from datetime import date
from typing import Protocol

from ledgerbot.bot.security import ChatAllowlist, RateLimiter
from ledgerbot.constants import EXPORT_FILENAME, MAX_MESSAGE_LENGTH, MAX_SUMMARY_MONTHS
from ledgerbot.exceptions import ClassificationError, StoreError, TransportFaultError
from ledgerbot.logging import get_logger
from ledgerbot.models import Balance, CategoryTotal, Entry
from ledgerbot.parsing.classifier import classify
from ledgerbot.parsing.dates import today_utc
from ledgerbot.storage.base import ENTRY_COLUMNS, Store
from ledgerbot.telegram.models import RawMessage

log = get_logger("ledgerbot.bot.handler")

HELP_COMMANDS = frozenset({"/start", "hi", "help", "/help"})

HELP_TEXT = """
Expense Tracker Bot

Examples:
- 500 groceries
- paid 200 medical
- received salary 30000
- grandfather gave 1000
- 250 lunch on 3rd feb
- balance
- last 2 months summary
- last 1 month family summary
- export
""".strip()

_NUMBER = re.compile(r"[0-9]+")


class MessageSender(Protocol):
    """Outbound side of the Bot API (BotClient in production)."""

    async def send_message(
        self, chat_id: str, text: str, *, parse_mode: str | None = None
    ) -> None: ...

    async def send_document(self, chat_id: str, content: str, filename: str) -> None: ...


# ---------------------------------------------------------------------------
# Reply formatting
# ---------------------------------------------------------------------------


def format_saved(entry: Entry) -> str:
    return "\n".join(
        [
            "Saved",
            "",
            f"Money: {entry.amount}",
            f"Category: {entry.category}",
            f"Reason: {entry.reason or 'N/A'}",
            f"Type: {entry.type.value}",
            f"Family: {'Yes' if entry.is_family else 'No'}",
            f"Payment: {entry.payment_mode.value}",
            f"Date: {entry.date.isoformat()}",
        ]
    )


def format_balance(balance: Balance) -> str:
    return "\n".join(
        [
            "Balance",
            "",
            f"Income: {balance.income}",
            f"Expense: {balance.expense}",
            f"Net: {balance.net}",
        ]
    )


def format_summary(months: int, rows: list[CategoryTotal], *, family_only: bool) -> str:
    body = "\n".join(f"- {row.category}: {row.total}" for row in rows) if rows else "No data"
    unit = "month" if months == 1 else "months"
    title = f"{'Family summary' if family_only else 'Summary'} ({months} {unit})"
    return f"{title}\n\n{body}"


def format_error(message: str) -> str:
    return f"Error\n\n{message}"


def entries_to_csv(rows: list[dict]) -> str:
    """Render entry rows as CSV with a header line."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=ENTRY_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


def parse_summary_request(text: str) -> tuple[int, bool]:
    """Return (months, family_only) for a summary command.

    Months are clamped to 1..MAX_SUMMARY_MONTHS.
    """
    match = _NUMBER.search(text)
    months = min(max(int(match.group(0)), 1), MAX_SUMMARY_MONTHS) if match else 1
    return months, "family" in text.lower()


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------


class MessageHandler:
    """Handles one inbound message at a time.

    Errors raised while routing a message are logged and answered with an
    error reply instead of propagating, so the update loop keeps running
    whatever a user sends.
    """

    def __init__(
        self,
        store: Store,
        sender: MessageSender,
        *,
        allowlist: ChatAllowlist | None = None,
        rate_limiter: RateLimiter | None = None,
        clock: Callable[[], date] = today_utc,
    ) -> None:
        self._store = store
        self._sender = sender
        self._allowlist = allowlist or ChatAllowlist()
        self._rate_limiter = rate_limiter or RateLimiter()
        self._clock = clock

    async def handle(self, message: RawMessage) -> None:
        """Process a message and reply to its chat."""
        text = message.text.strip()
        if not text:
            return

        chat_id = message.chat_id

        if not self._allowlist.is_allowed(chat_id):
            log.warning("chat_not_allowed", chat_id=chat_id)
            await self._reply(chat_id, "Sorry, this chat is not authorized to use this bot.")
            return

        allowed, warning = self._rate_limiter.check(chat_id)
        if not allowed:
            log.info("chat_rate_limited", chat_id=chat_id)
            if warning:
                await self._reply(chat_id, warning)
            return

        if message.sender_name:
            await self._remember_profile(chat_id, message.sender_name)

        try:
            await self._route(chat_id, text)
        except ClassificationError as exc:
            log.info("classification_failed", chat_id=chat_id, error=str(exc))
            await self._reply(chat_id, format_error(str(exc)))
        except StoreError as exc:
            log.error("store_operation_failed", chat_id=chat_id, error=str(exc))
            await self._reply(
                chat_id, format_error("Could not reach the ledger. Please try again later.")
            )
        except Exception as exc:
            log.error(
                "message_handling_failed",
                chat_id=chat_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            await self._reply(chat_id, format_error("Something went wrong. Please try again."))

    async def _route(self, chat_id: str, text: str) -> None:
        command = text.lower()

        if command in HELP_COMMANDS:
            await self._reply(chat_id, HELP_TEXT)
            return

        if command == "balance":
            balance = await self._store.get_balance(chat_id)
            await self._reply(chat_id, format_balance(balance))
            return

        if "summary" in command:
            months, family_only = parse_summary_request(text)
            rows = await self._store.get_category_summary(
                chat_id, months=months, family_only=family_only, today=self._clock()
            )
            await self._reply(chat_id, format_summary(months, rows, family_only=family_only))
            return

        if command == "export":
            await self._export(chat_id)
            return

        entry = classify(text, today=self._clock())
        await self._store.add_entry(chat_id, entry)
        log.info(
            "entry_saved",
            chat_id=chat_id,
            type=entry.type.value,
            amount=entry.amount,
            category=entry.category,
            is_family=entry.is_family,
        )
        await self._reply(chat_id, format_saved(entry))

    async def _export(self, chat_id: str) -> None:
        rows = await self._store.list_entries(chat_id)
        if not rows:
            await self._reply(chat_id, "No data")
            return
        try:
            await self._sender.send_document(chat_id, entries_to_csv(rows), EXPORT_FILENAME)
        except TransportFaultError as exc:
            log.warning("export_send_failed", chat_id=chat_id, error=str(exc))

    async def _remember_profile(self, chat_id: str, name: str) -> None:
        try:
            await self._store.upsert_profile(chat_id, name)
        except StoreError as exc:
            log.warning("profile_upsert_failed", chat_id=chat_id, error=str(exc))

    async def _reply(self, chat_id: str, text: str) -> None:
        try:
            await self._sender.send_message(chat_id, text[:MAX_MESSAGE_LENGTH])
        except TransportFaultError as exc:
            log.warning("reply_failed", chat_id=chat_id, error=str(exc))
