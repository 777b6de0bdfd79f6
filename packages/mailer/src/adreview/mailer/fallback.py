"""MailFallbackManager -- 邮件降级管理器

每次发送先尝试 primary，失败则切换到 fallback，不维护显式的降级状态。
"""

import structlog

from .client import HttpMailRelayClient
from .config import MailerConfig
from .exceptions import MailerError
from .log_adapter import LogMailAdapter
from .models import DeliveryResult, EmailMessage

log = structlog.get_logger()


class MailFallbackManager:
    """降级链: HttpMailRelayClient -> LogMailAdapter"""

    def __init__(self, primary, fallback=None) -> None:
        """
        Args:
            primary: 主通道
            fallback: 降级通道，None 表示无降级
        """
        self._primary = primary
        self._fallback = fallback

    async def send(self, message: EmailMessage) -> DeliveryResult:
        """带降级的邮件发送

        Raises:
            MailerError: primary 与 fallback 均失败
        """
        primary_error: Exception | None = None
        try:
            return await self._primary.send(message)
        except Exception as e:
            primary_error = e
            log.warning(
                "primary_failed_attempting_fallback",
                error=str(e),
                to=message.to,
            )

        if self._fallback is None:
            raise MailerError(
                f"Primary mail channel failed with no fallback: {primary_error}",
                recoverable=False,
            ) from primary_error

        try:
            result = await self._fallback.send(message)
        except Exception as fallback_error:
            log.error(
                "both_primary_and_fallback_failed",
                primary_error=str(primary_error),
                fallback_error=str(fallback_error),
            )
            raise MailerError(
                f"Primary and fallback mail channels failed. "
                f"Primary: {primary_error}; Fallback: {fallback_error}",
                recoverable=False,
            ) from fallback_error

        log.info("fallback_activated", fallback_reason=str(primary_error), to=message.to)
        return result.model_copy(
            update={"is_fallback": True, "fallback_reason": f"Primary failed: {primary_error}"}
        )

    async def health_check(self) -> bool:
        """primary 通道是否可用"""
        return await self._primary.health_check()


def build_mailer(config: MailerConfig) -> MailFallbackManager:
    """按配置组装邮件通道

    relay 模式: HttpMailRelayClient，降级到 LogMailAdapter
    log 模式: 仅 LogMailAdapter
    """
    if config.mail_mode == "relay":
        primary = HttpMailRelayClient(
            relay_url=config.relay_url,
            api_key=config.relay_api_key.get_secret_value(),
            sender=config.sender,
            timeout_s=config.timeout_s,
        )
        return MailFallbackManager(primary=primary, fallback=LogMailAdapter())
    return MailFallbackManager(primary=LogMailAdapter())
