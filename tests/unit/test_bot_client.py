"""Tests for the Bot API client."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from ledgerbot.constants import POLL_HTTP_MARGIN
from ledgerbot.exceptions import TransportFaultError
from ledgerbot.telegram.client import BotClient

TOKEN = "123:secret-token"

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client():
    """Create a BotClient with a test token."""
    return BotClient(TOKEN)


@pytest.fixture
def mock_httpx():
    """Mock httpx.AsyncClient so that no real HTTP calls are made.

    Yields (client class mock, client instance mock).
    """
    with patch("ledgerbot.telegram.client.httpx.AsyncClient") as mock_cls:
        client_instance = AsyncMock()
        mock_cls.return_value.__aenter__ = AsyncMock(return_value=client_instance)
        mock_cls.return_value.__aexit__ = AsyncMock(return_value=False)
        yield mock_cls, client_instance


def _make_response(
    status_code: int = 200,
    json_data: dict | list | None = None,
) -> MagicMock:
    """Create a mock ``httpx.Response``."""
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status_code
    if json_data is not None:
        resp.json.return_value = json_data
    else:
        resp.json.side_effect = ValueError("no json")
    if 200 <= status_code < 300:
        resp.raise_for_status = MagicMock()
    else:
        http_error = httpx.HTTPStatusError(
            message=f"HTTP {status_code}",
            request=MagicMock(spec=httpx.Request),
            response=resp,
        )
        resp.raise_for_status.side_effect = http_error
    return resp


def _ok(result):
    return _make_response(json_data={"ok": True, "result": result})


# ===================================================================
# Constructor
# ===================================================================


class TestConstructor:
    def test_empty_token_raises(self):
        with pytest.raises(ValueError, match="token is required"):
            BotClient("")

    def test_base_url_trailing_slash_is_dropped(self):
        c = BotClient("t", base_url="http://localhost:8081/")
        assert c._url("getMe") == "http://localhost:8081/bott/getMe"


# ===================================================================
# get_updates
# ===================================================================


class TestGetUpdates:
    async def test_first_poll_omits_offset(self, client, mock_httpx):
        mock_cls, http = mock_httpx
        http.post.return_value = _ok([])

        await client.get_updates(timeout=30)

        url = http.post.call_args.args[0]
        assert url == f"https://api.telegram.org/bot{TOKEN}/getUpdates"
        assert http.post.call_args.kwargs["json"] == {"timeout": 30}
        assert mock_cls.call_args.kwargs["timeout"] == 30 + POLL_HTTP_MARGIN

    async def test_offset_is_sent(self, client, mock_httpx):
        _, http = mock_httpx
        http.post.return_value = _ok([])

        await client.get_updates(offset=15, timeout=5)

        assert http.post.call_args.kwargs["json"] == {"timeout": 5, "offset": 15}

    async def test_parses_updates_in_order(self, client, mock_httpx):
        _, http = mock_httpx
        http.post.return_value = _ok(
            [
                {
                    "update_id": 1,
                    "message": {"message_id": 5, "chat": {"id": 9}, "text": "500 milk"},
                },
                {"update_id": 2, "callback_query": {}},
            ]
        )

        updates = await client.get_updates()

        assert [u.update_id for u in updates] == [1, 2]
        assert updates[0].message.text == "500 milk"
        assert updates[1].message is None

    async def test_malformed_message_does_not_fail_the_batch(self, client, mock_httpx):
        _, http = mock_httpx
        http.post.return_value = _ok(
            [
                {"update_id": 7, "message": {"message_id": 1, "text": "hi"}},
                {
                    "update_id": 8,
                    "message": {"message_id": 2, "chat": {"id": 9}, "text": "500 milk"},
                },
            ]
        )

        updates = await client.get_updates(offset=7)

        assert [u.update_id for u in updates] == [7, 8]
        assert updates[0].message is None
        assert updates[1].message.text == "500 milk"

    async def test_result_not_a_list_raises(self, client, mock_httpx):
        _, http = mock_httpx
        http.post.return_value = _ok({"unexpected": True})

        with pytest.raises(TransportFaultError, match="not a list"):
            await client.get_updates()

    async def test_not_ok_raises_with_description(self, client, mock_httpx):
        _, http = mock_httpx
        http.post.return_value = _make_response(
            json_data={"ok": False, "description": "Conflict: terminated by other getUpdates"}
        )

        with pytest.raises(TransportFaultError, match="Conflict"):
            await client.get_updates()

    async def test_non_json_body_raises(self, client, mock_httpx):
        _, http = mock_httpx
        http.post.return_value = _make_response(json_data=None)

        with pytest.raises(TransportFaultError, match="not JSON"):
            await client.get_updates()

    async def test_http_error_raises_without_leaking_token(self, client, mock_httpx):
        _, http = mock_httpx
        http.post.return_value = _make_response(status_code=502, json_data={})

        with pytest.raises(TransportFaultError, match="HTTP 502") as exc_info:
            await client.get_updates()
        assert "secret-token" not in str(exc_info.value)

    async def test_network_error_raises(self, client, mock_httpx):
        _, http = mock_httpx
        http.post.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(TransportFaultError, match="ConnectError"):
            await client.get_updates()


# ===================================================================
# Sending
# ===================================================================


class TestSend:
    async def test_send_message(self, client, mock_httpx):
        _, http = mock_httpx
        http.post.return_value = _ok({"message_id": 1})

        await client.send_message("42", "Saved")

        assert http.post.call_args.args[0].endswith("/sendMessage")
        assert http.post.call_args.kwargs["json"] == {"chat_id": "42", "text": "Saved"}

    async def test_send_message_with_parse_mode(self, client, mock_httpx):
        _, http = mock_httpx
        http.post.return_value = _ok({"message_id": 1})

        await client.send_message("42", "*hi*", parse_mode="Markdown")

        assert http.post.call_args.kwargs["json"]["parse_mode"] == "Markdown"

    async def test_send_document_is_multipart_csv(self, client, mock_httpx):
        _, http = mock_httpx
        http.post.return_value = _ok({"message_id": 2})

        await client.send_document("42", "a,b\n1,2\n", "ledger.csv")

        kwargs = http.post.call_args.kwargs
        assert http.post.call_args.args[0].endswith("/sendDocument")
        assert kwargs["data"] == {"chat_id": "42"}
        assert kwargs["files"] == {"document": ("ledger.csv", b"a,b\n1,2\n", "text/csv")}

    async def test_send_failure_raises(self, client, mock_httpx):
        _, http = mock_httpx
        http.post.side_effect = httpx.ReadTimeout("slow")

        with pytest.raises(TransportFaultError):
            await client.send_message("42", "hello")
