"""
Tests unitarios para TelegramNotifier (httpx con MockTransport).
"""
from __future__ import annotations

import html
import json

import httpx

from record_sync.infrastructure.external.telegram.telegram_notifier import TelegramNotifier
from record_sync.shared.exceptions.sync import DependencyError


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestTelegramNotifier:
    """Tests para TelegramNotifier.notify()."""

    def test_sends_html_message(self) -> None:
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"ok": True})

        notifier = TelegramNotifier("token123", "42", client=_client(handler))
        error = DependencyError("append falló", cause=OSError("sin red"))

        assert notifier.notify("DependencyError en Appending", error, "forecast") is True

        assert len(requests) == 1
        assert str(requests[0].url) == "https://api.telegram.org/bottoken123/sendMessage"
        payload = json.loads(requests[0].content)
        assert payload["chat_id"] == "42"
        assert payload["parse_mode"] == "HTML"
        assert "forecast" in payload["text"]
        assert "OSError: sin red" in payload["text"]

    def test_message_escapes_html(self) -> None:
        """Nombres con <, > y & se escapan antes de enviarse."""
        problematic = "Proyecto <Acme> & Co"
        notifier = TelegramNotifier("t", "c")

        text = notifier.build_message("asunto", ValueError(problematic), "tabla<1>")

        assert html.escape(problematic) in text
        assert "<Acme>" not in text
        assert "tabla&lt;1&gt;" in text

    def test_missing_credentials_skip_sending(self) -> None:
        def handler(request):
            raise AssertionError("no debería enviar")

        notifier = TelegramNotifier(None, "42", client=_client(handler))

        assert notifier.notify("s", ValueError("x")) is False

    def test_http_error_returns_false(self) -> None:
        notifier = TelegramNotifier("t", "c", client=_client(lambda request: httpx.Response(500)))

        assert notifier.notify("s", ValueError("x")) is False

    def test_transport_error_returns_false(self) -> None:
        def handler(request):
            raise httpx.ConnectError("dns", request=request)

        notifier = TelegramNotifier("t", "c", client=_client(handler))

        assert notifier.notify("s", ValueError("x")) is False
