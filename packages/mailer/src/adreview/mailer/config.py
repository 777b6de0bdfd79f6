"""MailerConfig -- 邮件通道配置加载

从环境变量加载配置；数值非法时记录警告并使用默认值，不阻塞启动。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()


class MailerConfig(BaseModel):
    """Mailer 包配置

    环境变量:
        ADREVIEW_MAIL_MODE: 发送模式（relay/log）
        ADREVIEW_MAIL_RELAY_URL: HTTP 邮件中继地址
        ADREVIEW_MAIL_RELAY_KEY: 中继访问密钥
        ADREVIEW_MAIL_TIMEOUT_S: 发送超时（秒，默认 10）
        ADREVIEW_MAIL_SENDER: 发件人
        ADREVIEW_FRONTEND_URL: 邮件中“查看任务”链接的前端地址
    """

    mail_mode: Literal["relay", "log"] = Field(
        default="log",
        description="发送模式：relay 经 HTTP 中继发送 / log 仅写日志",
    )
    relay_url: str = Field(
        default="http://localhost:8025",
        description="HTTP 邮件中继基础 URL",
    )
    relay_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="中继访问密钥",
    )
    timeout_s: int = Field(
        default=10,
        ge=1,
        description="发送超时（秒）",
    )
    sender: str = Field(
        default="noreply@adreview.local",
        description="发件人地址",
    )
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="前端基础 URL",
    )


def load_mailer_config() -> MailerConfig:
    """从环境变量加载 Mailer 配置

    Returns:
        MailerConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("ADREVIEW_MAIL_MODE"):
        if val in ("relay", "log"):
            kwargs["mail_mode"] = val
        else:
            log.warning(
                "invalid_mail_mode_config",
                env_var="ADREVIEW_MAIL_MODE",
                value=val,
                fallback="log",
            )

    if val := os.environ.get("ADREVIEW_MAIL_RELAY_URL"):
        kwargs["relay_url"] = val

    if val := os.environ.get("ADREVIEW_MAIL_RELAY_KEY"):
        kwargs["relay_api_key"] = SecretStr(val)

    if val := os.environ.get("ADREVIEW_MAIL_TIMEOUT_S"):
        try:
            timeout = int(val)
            if timeout < 1:
                raise ValueError(val)
            kwargs["timeout_s"] = timeout
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="ADREVIEW_MAIL_TIMEOUT_S",
                value=val,
                fallback=10,
            )

    if val := os.environ.get("ADREVIEW_MAIL_SENDER"):
        kwargs["sender"] = val

    if val := os.environ.get("ADREVIEW_FRONTEND_URL"):
        kwargs["frontend_url"] = val

    return MailerConfig(**kwargs)
