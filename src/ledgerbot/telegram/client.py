"""Bot API client wrapper.

Provides async methods for the three Bot API calls the ledger needs:
long-polling for updates, sending text and sending a file.
"""

from __future__ import annotations

from typing import Any

import httpx

from ledgerbot.constants import DEFAULT_API_BASE_URL, POLL_HTTP_MARGIN
from ledgerbot.exceptions import TransportFaultError
from ledgerbot.logging import get_logger
from ledgerbot.telegram.models import Update

log = get_logger("ledgerbot.telegram.client")


class BotClient:
    """Async Bot API client.

    Every failure (network error, HTTP error status, ``ok: false`` or a
    body that is not the expected JSON) is raised as TransportFaultError.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            token: Bot API token.
            base_url: Bot API root URL.
            timeout: HTTP timeout in seconds for non-polling calls.
        """
        if not token:
            raise ValueError("token is required")
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _url(self, method: str) -> str:
        return f"{self._base_url}/bot{self._token}/{method}"

    @staticmethod
    def _unwrap(method: str, response: httpx.Response) -> Any:
        """Return ``result`` from a Bot API envelope."""
        try:
            body = response.json()
        except ValueError as exc:
            raise TransportFaultError(f"{method}: response is not JSON") from exc

        if not isinstance(body, dict):
            raise TransportFaultError(f"{method}: unexpected response body")
        if not body.get("ok"):
            raise TransportFaultError(
                f"{method} failed: {body.get('description', 'no description')}"
            )
        return body.get("result")

    async def _post(
        self,
        method: str,
        *,
        json_data: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Make a POST request to a Bot API method."""
        async with httpx.AsyncClient(timeout=timeout or self._timeout) as client:
            try:
                response = await client.post(
                    self._url(method), json=json_data, data=data, files=files
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                # The URL holds the token, so only the status goes into the message
                raise TransportFaultError(
                    f"{method}: HTTP {exc.response.status_code}"
                ) from exc
            except httpx.RequestError as exc:
                raise TransportFaultError(
                    f"{method}: request failed ({type(exc).__name__})"
                ) from exc
        return self._unwrap(method, response)

    async def get_updates(self, *, offset: int | None = None, timeout: int = 30) -> list[Update]:
        """Long-poll for new updates.

        Args:
            offset: First update id to return. Omitted from the request
                when None.
            timeout: Seconds the server may hold the request open.

        Returns:
            Parsed updates in the order the server returned them.
        """
        payload: dict[str, Any] = {"timeout": timeout}
        if offset is not None:
            payload["offset"] = offset

        result = await self._post(
            "getUpdates", json_data=payload, timeout=timeout + POLL_HTTP_MARGIN
        )
        if not isinstance(result, list):
            raise TransportFaultError("getUpdates: result is not a list")

        updates = [Update.from_dict(item) for item in result]
        log.debug("updates_fetched", count=len(updates), offset=offset)
        return updates

    async def send_message(
        self, chat_id: str, text: str, *, parse_mode: str | None = None
    ) -> None:
        """Send a text message to a chat."""
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        await self._post("sendMessage", json_data=payload)
        log.debug("message_sent", chat_id=chat_id, length=len(text))

    async def send_document(self, chat_id: str, content: str, filename: str) -> None:
        """Send a CSV document to a chat."""
        await self._post(
            "sendDocument",
            data={"chat_id": chat_id},
            files={"document": (filename, content.encode("utf-8"), "text/csv")},
        )
        log.debug("document_sent", chat_id=chat_id, filename=filename, size=len(content))
