"""Tests for HTTP-based adapters."""

import asyncio
import json

import httpx
import pytest

from not_at_home.adapters.telegram_share_target import (
    TELEGRAM_MESSAGE_LIMIT,
    HttpxTelegramShareTarget,
    _split_message,
)
from not_at_home.domain.errors import ShareError
from not_at_home.domain.exports import ShareOutcome


def test_telegram_share_target_posts_export() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"ok": True})

    transport = httpx.MockTransport(handler)
    http_client = httpx.AsyncClient(transport=transport)
    target = HttpxTelegramShareTarget("token", -100123, http_client)

    async def run() -> ShareOutcome:
        outcome = await target.share("Not At Home - Session 4821", "Block 1")
        await target.close()
        return outcome

    assert asyncio.run(run()) is ShareOutcome.SUCCESS
    assert len(requests) == 1
    assert requests[0].url.path == "/bottoken/sendMessage"
    payload = json.loads(requests[0].content)
    assert payload == {
        "chat_id": -100123,
        "text": "Not At Home - Session 4821\n\nBlock 1",
    }


def test_telegram_share_target_raises_share_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"ok": False})

    transport = httpx.MockTransport(handler)
    target = HttpxTelegramShareTarget(
        "token", "@outreach", httpx.AsyncClient(transport=transport)
    )

    with pytest.raises(ShareError):
        asyncio.run(target.share("Title", "Body"))


def test_telegram_share_target_splits_long_exports() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"ok": True})

    transport = httpx.MockTransport(handler)
    target = HttpxTelegramShareTarget(
        "token", 1, httpx.AsyncClient(transport=transport)
    )
    body = "\n".join(f"{number} Main St" for number in range(1000))

    assert asyncio.run(target.share("Title", body)) is ShareOutcome.SUCCESS

    texts = [json.loads(request.content)["text"] for request in requests]
    assert len(texts) > 1
    assert all(len(text) <= TELEGRAM_MESSAGE_LIMIT for text in texts)
    assert "\n".join(texts) == f"Title\n\n{body}"


def test_split_message_breaks_overlong_lines() -> None:
    chunks = _split_message("x" * 25, limit=10)
    assert chunks == ["x" * 10, "x" * 10, "x" * 5]


def test_split_message_keeps_short_text() -> None:
    assert _split_message("short") == ["short"]
    assert _split_message("") == [""]
