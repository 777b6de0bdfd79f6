"""AuditRecord / Notification Domain Model

审计表 append-only，不允许更新或删除。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import AuditAction, NotificationType


class AuditRecord(BaseModel):
    """审计记录"""

    audit_id: str = Field(description="唯一标识，ULID 格式，时间有序")
    ts: datetime = Field(description="记录时间")
    action: AuditAction = Field(description="动作类型")
    detail: str = Field(description="人类可读描述")
    actor_id: str = Field(description="操作者 user_id 或 SYSTEM")
    task_id: str | None = Field(default=None, description="关联任务（用户/系统级事件为空）")


class Notification(BaseModel):
    """站内通知"""

    notification_id: str = Field(description="唯一标识")
    user_id: str = Field(description="接收人")
    type: NotificationType = Field(description="通知类型")
    title: str = Field(description="标题")
    message: str = Field(description="正文")
    task_id: str | None = Field(default=None, description="关联任务")
    is_read: bool = Field(default=False)
    created_at: datetime = Field(description="创建时间")
