"""
Tests for the Telegram notifier (HTTP mocked with httpx.MockTransport).
"""
import asyncio
import json
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx

from claim_sweeper.config import SweeperConfig
from claim_sweeper.notifier import TelegramNotifier


def _config(token="123:abc", chat="42"):
    return SweeperConfig(mnemonic="m", receiver_address="r", telegram_bot_token=token, telegram_chat_id=chat)


def _notify(handler, config=None, message="hello"):
    async def go():
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        notifier = TelegramNotifier(config or _config(), client=client)
        try:
            return await notifier.notify(message)
        finally:
            await notifier.close()

    return asyncio.run(go())


def test_sends_message():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    assert _notify(handler) is True
    (req,) = seen
    assert req.url.path == "/bot123:abc/sendMessage"
    assert json.loads(req.content) == {"chat_id": "42", "text": "hello"}


def test_api_error_is_swallowed():
    def handler(request):
        return httpx.Response(400, json={"ok": False, "description": "chat not found"})

    assert _notify(handler) is False


def test_network_error_is_swallowed():
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    assert _notify(handler) is False


def test_long_message_truncated():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content)["text"])
        return httpx.Response(200, json={"ok": True})

    _notify(handler, message="x" * 5000)
    assert len(seen[0]) == 4096


def test_without_credentials_only_logs():
    def handler(request):
        raise AssertionError("should not be called")

    assert _notify(handler, config=_config(token="", chat="")) is False
