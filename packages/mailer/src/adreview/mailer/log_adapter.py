"""LogMailAdapter -- 仅记录日志的邮件通道

开发环境默认通道，也是 MailFallbackManager 的降级后备。
最近发送的邮件保留在有界队列中，供排查与测试查看。
"""

from collections import deque

import structlog
from ulid import ULID

from .models import DeliveryResult, EmailMessage

log = structlog.get_logger()

RECENT_LIMIT = 100


class LogMailAdapter:
    """把邮件写入结构化日志，不产生外部 I/O"""

    def __init__(self, recent_limit: int = RECENT_LIMIT) -> None:
        self.recent: deque[EmailMessage] = deque(maxlen=recent_limit)

    async def send(self, message: EmailMessage) -> DeliveryResult:
        self.recent.append(message)
        message_id = str(ULID())
        log.info(
            "mail_logged",
            to=message.to,
            subject=message.subject,
            message_id=message_id,
        )
        return DeliveryResult(channel="log", message_id=message_id)

    async def health_check(self) -> bool:
        return True
