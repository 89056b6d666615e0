"""Long-poll update stream with cursor tracking and duplicate suppression.

The stream keeps two pieces of in-memory state per ``produce()`` call:

- ``offset``: lowest update id not yet acknowledged. It only moves
  forward and is advanced for every update, including ones that are
  dropped as duplicates or carry no text.
- ``seen``: ``(chat_id, message_id)`` keys already emitted. Keys whose
  update id falls more than ``dedup_horizon`` behind the offset are
  evicted, since a well-behaved endpoint never redelivers below the
  acknowledged offset.

Nothing is persisted. After a restart the cursor starts from zero and the
endpoint may redeliver whatever it still buffers.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Protocol

from ledgerbot.constants import DEFAULT_DEDUP_HORIZON, DEFAULT_POLL_TIMEOUT
from ledgerbot.exceptions import TransportFaultError
from ledgerbot.logging import get_logger
from ledgerbot.telegram.models import RawMessage, Update

log = get_logger("ledgerbot.telegram.updates")

# Exponents past ~1023 overflow a float; any real cap is hit long before 32
_MAX_BACKOFF_EXPONENT = 32


class UpdateSource(Protocol):
    """Anything that can long-poll for updates (BotClient in production)."""

    async def get_updates(
        self, *, offset: int | None = None, timeout: int = DEFAULT_POLL_TIMEOUT
    ) -> list[Update]: ...


class UpdateCursor:
    """Offset plus the bounded set of already-emitted message keys."""

    def __init__(self, *, dedup_horizon: int = DEFAULT_DEDUP_HORIZON) -> None:
        self.offset = 0
        self._dedup_horizon = dedup_horizon
        # key -> update id, in arrival order (update ids only grow)
        self._seen: OrderedDict[tuple[str, int], int] = OrderedDict()

    def __contains__(self, key: tuple[str, int]) -> bool:
        return key in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def advance(self, update_id: int) -> None:
        """Move the offset past ``update_id`` (never backwards)."""
        self.offset = max(self.offset, update_id + 1)

    def admit(self, message: RawMessage, update_id: int) -> bool:
        """Record a message key; False when it was already seen."""
        if message.key in self._seen:
            return False
        self._seen[message.key] = update_id
        return True

    def compact(self) -> int:
        """Evict keys that fell behind the horizon. Returns how many."""
        floor = self.offset - self._dedup_horizon
        evicted = 0
        while self._seen:
            key, update_id = next(iter(self._seen.items()))
            if update_id >= floor:
                break
            del self._seen[key]
            evicted += 1
        return evicted


class UpdateStream:
    """Turns repeated long-poll fetches into a deduplicated message sequence.

    Transport faults never end the sequence: the failed cycle is skipped
    and the next fetch waits with capped exponential backoff.
    """

    def __init__(
        self,
        source: UpdateSource,
        *,
        poll_timeout: int = DEFAULT_POLL_TIMEOUT,
        backoff_base: float = 1.0,
        backoff_max: float = 60.0,
        dedup_horizon: int = DEFAULT_DEDUP_HORIZON,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the stream.

        Args:
            source: Long-poll endpoint.
            poll_timeout: Seconds each fetch may wait on the server.
            backoff_base: Delay after the first consecutive fault.
            backoff_max: Upper bound on the delay.
            dedup_horizon: How far behind the offset dedup keys are kept.
            sleep: Awaitable sleep, replaceable in tests.
        """
        self._source = source
        self._poll_timeout = poll_timeout
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max
        self._dedup_horizon = dedup_horizon
        self._sleep = sleep
        self.cursor: UpdateCursor | None = None

    def backoff_delay(self, failures: int) -> float:
        """Delay before the next fetch after ``failures`` consecutive faults."""
        exponent = min(max(failures - 1, 0), _MAX_BACKOFF_EXPONENT)
        return min(self._backoff_base * 2**exponent, self._backoff_max)

    async def produce(self) -> AsyncIterator[RawMessage]:
        """Yield inbound messages forever, each at most once per call.

        A new call starts from a fresh cursor.
        """
        cursor = UpdateCursor(dedup_horizon=self._dedup_horizon)
        self.cursor = cursor
        failures = 0

        while True:
            try:
                updates = await self._source.get_updates(
                    offset=cursor.offset or None,
                    timeout=self._poll_timeout,
                )
            except TransportFaultError as exc:
                failures += 1
                delay = self.backoff_delay(failures)
                log.warning(
                    "update_fetch_failed",
                    error=str(exc),
                    failures=failures,
                    retry_in=delay,
                    offset=cursor.offset,
                )
                await self._sleep(delay)
                continue

            if failures:
                log.info("update_fetch_recovered", failures=failures)
                failures = 0

            for update in updates:
                cursor.advance(update.update_id)
                message = update.message
                if message is None:
                    continue
                if not cursor.admit(message, update.update_id):
                    log.debug(
                        "duplicate_update_dropped",
                        update_id=update.update_id,
                        chat_id=message.chat_id,
                        message_id=message.message_id,
                    )
                    continue
                yield message

            evicted = cursor.compact()
            if evicted:
                log.debug("dedup_keys_evicted", count=evicted, remaining=len(cursor))
