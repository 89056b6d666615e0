"""Chat access guards: which chats may write to the ledger, and how fast."""

import time
from collections import defaultdict, deque
from collections.abc import Callable, Iterable

from ledgerbot.constants import RATE_LIMIT_WARNING
from ledgerbot.logging import get_logger

log = get_logger("ledgerbot.bot.security")


class RateLimiter:
    """Sliding window of accepted message times per chat.

    A chat over its budget is refused. It gets RATE_LIMIT_WARNING at most
    once per ``warning_cooldown`` seconds and silence otherwise.
    """

    def __init__(
        self,
        max_messages: int = 20,
        window_seconds: float = 60.0,
        warning_cooldown: float = 30.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_messages = max_messages
        self._window_seconds = window_seconds
        self._warning_cooldown = warning_cooldown
        self._clock = clock
        self._accepted: defaultdict[str, deque[float]] = defaultdict(deque)
        self._warned_at: dict[str, float] = {}

    def check(self, chat_id: str) -> tuple[bool, str | None]:
        """Return (allowed, warning) and record the message if allowed."""
        now = self._clock()
        accepted = self._accepted[chat_id]
        while accepted and now - accepted[0] >= self._window_seconds:
            accepted.popleft()

        if len(accepted) < self._max_messages:
            accepted.append(now)
            return True, None

        warned_at = self._warned_at.get(chat_id)
        if warned_at is not None and now - warned_at <= self._warning_cooldown:
            return False, None
        self._warned_at[chat_id] = now
        return False, RATE_LIMIT_WARNING


class ChatAllowlist:
    """Numeric chat ids allowed to use the bot. Empty means every chat."""

    def __init__(self, allowed_ids: Iterable[int] = ()) -> None:
        self._allowed = frozenset(allowed_ids)
        if self._allowed:
            log.info("allowlist_configured", count=len(self._allowed))
        else:
            log.warning("allowlist_empty", message="ALLOWED_CHAT_IDS unset, all chats accepted")

    def is_allowed(self, chat_id: str) -> bool:
        if not self._allowed:
            return True
        # Bot API chat ids arrive as strings of signed integers
        return chat_id.removeprefix("-").isdecimal() and int(chat_id) in self._allowed
