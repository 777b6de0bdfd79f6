"""HttpMailRelayClient 单元测试 -- 以 httpx.MockTransport 替代真实中继"""

import json

import httpx
import pytest
from adreview.mailer.client import HttpMailRelayClient
from adreview.mailer.exceptions import MailerError, RelayUnreachableError


def _client(handler, api_key: str = "") -> HttpMailRelayClient:
    return HttpMailRelayClient(
        relay_url="http://relay.test/",
        api_key=api_key,
        sender="noreply@adreview.test",
        transport=httpx.MockTransport(handler),
    )


class TestSend:
    """send() 方法测试"""

    async def test_send_posts_payload(self, message):
        """成功发送：POST /send，返回中继的消息 ID"""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "msg-1"})

        result = await _client(handler, api_key="secret").send(message)

        assert result.channel == "relay"
        assert result.message_id == "msg-1"
        assert result.is_fallback is False
        request = seen[0]
        assert str(request.url) == "http://relay.test/send"
        assert request.headers["Authorization"] == "Bearer secret"
        body = json.loads(request.content)
        assert body["from"] == "noreply@adreview.test"
        assert body["to"] == "alice@example.com"
        assert body["subject"] == message.subject

    async def test_no_auth_header_without_key(self, message):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(202)

        result = await _client(handler).send(message)

        assert "Authorization" not in seen[0].headers
        assert result.message_id == ""

    async def test_server_error_is_recoverable(self, message):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        with pytest.raises(MailerError) as exc_info:
            await _client(handler).send(message)

        assert exc_info.value.recoverable is True

    async def test_client_error_is_not_recoverable(self, message):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"error": "bad address"})

        with pytest.raises(MailerError) as exc_info:
            await _client(handler).send(message)

        assert exc_info.value.recoverable is False

    async def test_connection_error_raises_unreachable(self, message):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RelayUnreachableError) as exc_info:
            await _client(handler).send(message)

        assert exc_info.value.relay_url == "http://relay.test"
        assert isinstance(exc_info.value.original_error, httpx.ConnectError)


class TestHealthCheck:
    """health_check() 方法测试"""

    async def test_healthy(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/health"
            return httpx.Response(200)

        assert await _client(handler).health_check() is True

    async def test_unreachable_returns_false(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        assert await _client(handler).health_check() is False
