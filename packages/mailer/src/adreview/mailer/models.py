"""邮件通道数据模型"""

from pydantic import BaseModel, Field


class EmailMessage(BaseModel):
    """一封待发送的邮件"""

    to: str = Field(description="收件人邮箱")
    subject: str = Field(description="主题")
    html: str = Field(description="HTML 正文")
    text: str = Field(default="", description="纯文本正文")


class DeliveryResult(BaseModel):
    """发送结果"""

    channel: str = Field(description="实际使用的通道：relay / log")
    accepted: bool = Field(default=True, description="通道是否已接收")
    message_id: str = Field(default="", description="通道返回的消息 ID")
    is_fallback: bool = Field(default=False, description="是否经由降级通道发送")
    fallback_reason: str = Field(default="", description="降级原因")
