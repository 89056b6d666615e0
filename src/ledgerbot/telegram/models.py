"""Wire models for Bot API updates.

Only the fields the ledger needs are parsed. Anything else in the payload
is ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ledgerbot.exceptions import TransportFaultError
from ledgerbot.logging import get_logger

log = get_logger("ledgerbot.telegram.models")


@dataclass(frozen=True)
class RawMessage:
    """An inbound text message, emitted once by the update stream."""

    chat_id: str
    message_id: int
    text: str
    sender_name: str | None = None

    @property
    def key(self) -> tuple[str, int]:
        """Identity used for duplicate suppression."""
        return (self.chat_id, self.message_id)


@dataclass(frozen=True)
class Update:
    """One entry of a getUpdates response.

    ``message`` is None for non-message updates, for messages without text
    and for messages too malformed to parse; such updates still advance the
    cursor.
    """

    update_id: int
    message: RawMessage | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Update:
        """Parse an update object.

        A bad message payload only drops the message. The update id is
        kept so the stream can acknowledge it and move on.

        Raises:
            TransportFaultError: The object has no usable ``update_id``.
        """
        if not isinstance(data, dict):
            raise TransportFaultError(f"update is not an object: {data!r}")

        update_id = data.get("update_id")
        if not isinstance(update_id, int) or isinstance(update_id, bool):
            raise TransportFaultError(f"update without integer update_id: {data!r}")

        payload = data.get("message")
        if payload is None:
            return cls(update_id=update_id)

        try:
            text = payload.get("text")
            if not text:
                return cls(update_id=update_id)
            sender = payload.get("from") or {}
            message = RawMessage(
                chat_id=str(payload["chat"]["id"]),
                message_id=int(payload["message_id"]),
                text=str(text),
                sender_name=sender.get("first_name"),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            log.warning(
                "malformed_message_skipped",
                update_id=update_id,
                error=f"{type(exc).__name__}: {exc}",
            )
            return cls(update_id=update_id)

        return cls(update_id=update_id, message=message)
