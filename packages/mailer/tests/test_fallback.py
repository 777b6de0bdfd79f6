"""MailFallbackManager 单元测试

验证 primary 成功不触发 fallback、primary 失败触发 fallback
（is_fallback=True + fallback_reason）、双方失败抛 MailerError。
"""

from unittest.mock import AsyncMock

import pytest
from adreview.mailer.client import HttpMailRelayClient
from adreview.mailer.config import MailerConfig
from adreview.mailer.exceptions import MailerError, RelayUnreachableError
from adreview.mailer.fallback import MailFallbackManager, build_mailer
from adreview.mailer.log_adapter import LogMailAdapter
from adreview.mailer.models import DeliveryResult


@pytest.fixture
def mock_primary():
    """Mock HttpMailRelayClient"""
    client = AsyncMock()
    client.send = AsyncMock(return_value=DeliveryResult(channel="relay", message_id="r1"))
    return client


@pytest.fixture
def mock_fallback():
    """Mock LogMailAdapter"""
    adapter = AsyncMock()
    adapter.send = AsyncMock(return_value=DeliveryResult(channel="log", message_id="l1"))
    return adapter


class TestPrimarySuccess:
    """Primary 成功场景"""

    async def test_primary_success_no_fallback(self, message, mock_primary, mock_fallback):
        """Primary 成功时不调用 fallback"""
        fm = MailFallbackManager(primary=mock_primary, fallback=mock_fallback)

        result = await fm.send(message)

        assert result.channel == "relay"
        assert result.is_fallback is False
        mock_primary.send.assert_called_once_with(message)
        mock_fallback.send.assert_not_called()


class TestPrimaryFailure:
    """Primary 失败场景"""

    async def test_fallback_marks_result(self, message, mock_primary, mock_fallback):
        """Primary 不可达时降级，结果带 is_fallback 和原因"""
        mock_primary.send.side_effect = RelayUnreachableError(
            "http://relay.test", ConnectionError("refused")
        )
        fm = MailFallbackManager(primary=mock_primary, fallback=mock_fallback)

        result = await fm.send(message)

        assert result.channel == "log"
        assert result.is_fallback is True
        assert "Primary failed" in result.fallback_reason
        mock_fallback.send.assert_called_once_with(message)

    async def test_no_fallback_raises(self, message, mock_primary):
        """无降级通道时抛出不可恢复错误"""
        mock_primary.send.side_effect = MailerError("relay returned 500")
        fm = MailFallbackManager(primary=mock_primary)

        with pytest.raises(MailerError) as exc_info:
            await fm.send(message)

        assert exc_info.value.recoverable is False

    async def test_both_fail(self, message, mock_primary, mock_fallback):
        """双方失败抛出 MailerError，包含两侧错误"""
        mock_primary.send.side_effect = MailerError("primary down")
        mock_fallback.send.side_effect = RuntimeError("disk full")
        fm = MailFallbackManager(primary=mock_primary, fallback=mock_fallback)

        with pytest.raises(MailerError) as exc_info:
            await fm.send(message)

        assert "primary down" in str(exc_info.value)
        assert "disk full" in str(exc_info.value)


class TestBuildMailer:
    """build_mailer() 组装"""

    async def test_log_mode(self, message):
        mailer = build_mailer(MailerConfig(mail_mode="log"))

        result = await mailer.send(message)

        assert result.channel == "log"
        assert await mailer.health_check() is True

    def test_relay_mode_wires_fallback(self):
        mailer = build_mailer(MailerConfig(mail_mode="relay", relay_url="http://relay.test"))

        assert isinstance(mailer._primary, HttpMailRelayClient)
        assert isinstance(mailer._fallback, LogMailAdapter)
