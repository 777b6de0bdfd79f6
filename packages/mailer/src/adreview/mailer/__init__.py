"""adreview Mailer -- 邮件通道抽象层

packages/mailer 的公开接口导出。
"""

from .client import HttpMailRelayClient
from .config import MailerConfig, load_mailer_config
from .exceptions import MailerError, RelayUnreachableError
from .fallback import MailFallbackManager, build_mailer
from .log_adapter import LogMailAdapter
from .models import DeliveryResult, EmailMessage
from .templates import render_notification_email

__all__ = [
    "EmailMessage",
    "DeliveryResult",
    "HttpMailRelayClient",
    "LogMailAdapter",
    "MailFallbackManager",
    "build_mailer",
    "MailerConfig",
    "load_mailer_config",
    "MailerError",
    "RelayUnreachableError",
    "render_notification_email",
]
