"""HttpMailRelayClient -- HTTP 邮件中继客户端

POST {relay_url}/send，JSON 正文 {from, to, subject, html, text}。
"""

import httpx
import structlog

from .exceptions import MailerError, RelayUnreachableError
from .models import DeliveryResult, EmailMessage

log = structlog.get_logger()

# 健康检查超时（应快速响应）
HEALTH_CHECK_TIMEOUT_S = 5

# 连接类异常（触发 RelayUnreachableError，进而触发降级）
_CONNECTION_ERROR_TYPES = (
    ConnectionError,
    OSError,
    TimeoutError,
    httpx.ConnectError,
    httpx.TimeoutException,
)


class HttpMailRelayClient:
    """HTTP 邮件中继客户端"""

    def __init__(
        self,
        relay_url: str,
        api_key: str = "",
        sender: str = "noreply@adreview.local",
        timeout_s: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            relay_url: 中继基础 URL
            api_key: 中继访问密钥，为空时不发送 Authorization 头
            sender: 发件人地址
            timeout_s: 请求超时（秒）
            transport: 自定义 httpx transport（测试注入）
        """
        self._relay_url = relay_url.rstrip("/")
        self._api_key = api_key
        self._sender = sender
        self._timeout_s = timeout_s
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    async def send(self, message: EmailMessage) -> DeliveryResult:
        """发送邮件

        Raises:
            RelayUnreachableError: 中继连接失败或超时
            MailerError: 中继返回非 2xx
        """
        url = f"{self._relay_url}/send"
        payload = {
            "from": self._sender,
            "to": message.to,
            "subject": message.subject,
            "html": message.html,
            "text": message.text,
        }
        try:
            async with httpx.AsyncClient(transport=self._transport) as http_client:
                resp = await http_client.post(
                    url,
                    json=payload,
                    headers=self._headers(),
                    timeout=self._timeout_s,
                )
        except _CONNECTION_ERROR_TYPES as e:
            log.error("mail_relay_unreachable", url=url, error=str(e))
            raise RelayUnreachableError(self._relay_url, e) from e

        if resp.status_code >= 400:
            log.error(
                "mail_relay_rejected",
                url=url,
                status_code=resp.status_code,
                to=message.to,
            )
            raise MailerError(
                f"Mail relay returned {resp.status_code}",
                recoverable=resp.status_code >= 500,
            )

        message_id = ""
        if resp.headers.get("content-type", "").startswith("application/json"):
            message_id = str(resp.json().get("id", ""))

        log.info("mail_sent", to=message.to, subject=message.subject, message_id=message_id)
        return DeliveryResult(channel="relay", message_id=message_id)

    async def health_check(self) -> bool:
        """检查中继可达性，不抛出异常"""
        url = f"{self._relay_url}/health"
        try:
            async with httpx.AsyncClient(transport=self._transport) as http_client:
                resp = await http_client.get(url, timeout=HEALTH_CHECK_TIMEOUT_S)
                return resp.status_code == 200
        except Exception as e:
            log.debug("health_check_failed", url=url, error=str(e))
            return False
