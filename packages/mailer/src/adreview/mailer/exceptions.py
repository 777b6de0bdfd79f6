"""Mailer 异常体系"""


class MailerError(Exception):
    """Mailer 包基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试或降级恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class RelayUnreachableError(MailerError):
    """邮件中继不可达（连接失败、超时等）

    此异常触发 MailFallbackManager 的降级逻辑。
    """

    def __init__(self, relay_url: str, original_error: Exception) -> None:
        super().__init__(
            f"Mail relay unreachable: {relay_url} -- {original_error}",
            recoverable=True,
        )
        self.relay_url = relay_url
        self.original_error = original_error
