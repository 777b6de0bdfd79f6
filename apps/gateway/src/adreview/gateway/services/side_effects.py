"""SideEffectCoordinator -- 审计与通知

一个事件产生恰好一条审计记录和零到多条通知。
审计与各条通知相互独立、尽力而为：任何一项失败只记日志并计入 failures，
不会使触发它的状态变更失败或回滚。

审计在编排层的写事务内经保存点写入（与状态变更同事务提交，
写入失败只回滚保存点）；通知在事务提交之后发送。
"""

from collections.abc import Callable
from datetime import UTC, datetime

import structlog
from adreview.core.ids import new_audit_id, new_id
from adreview.core.models import AuditAction, AuditRecord, Notification, NotificationType
from adreview.core.store import StoreGroup, savepoint
from adreview.mailer import render_notification_email
from pydantic import BaseModel, Field

log = structlog.get_logger()


class NotificationSpec(BaseModel):
    """一条待发送的通知"""

    user_id: str
    type: NotificationType
    title: str
    message: str
    task_id: str | None = None
    via_email: bool = False


class SideEffectEvent(BaseModel):
    """一次已提交的变更所对应的副作用"""

    actor_id: str
    action: AuditAction
    detail: str
    task_id: str | None = None
    notifications: list[NotificationSpec] = Field(default_factory=list)


class SideEffectCoordinator:
    """审计 + 通知分发"""

    def __init__(
        self,
        store_group: StoreGroup,
        mailer=None,
        frontend_url: str = "",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Args:
            store_group: Store 实例组
            mailer: 邮件通道（MailFallbackManager），None 表示不发邮件
            frontend_url: 邮件中任务链接的前端地址
            clock: 审计与通知的时间来源，默认 UTC 当前时间
        """
        self._stores = store_group
        self._mailer = mailer
        self._frontend_url = frontend_url
        self._clock = clock or (lambda: datetime.now(UTC))

    def _record(self, event: SideEffectEvent) -> AuditRecord:
        return AuditRecord(
            audit_id=new_audit_id(),
            ts=self._clock(),
            action=event.action,
            detail=event.detail,
            actor_id=event.actor_id,
            task_id=event.task_id,
        )

    async def write_audit_in_transaction(self, event: SideEffectEvent) -> list[str]:
        """在调用方已打开的写事务内写入审计（保存点隔离）

        Returns:
            失败描述列表（成功时为空）
        """
        try:
            async with savepoint(self._stores.conn, "audit_write"):
                await self._stores.audit_store.append(self._record(event))
        except Exception as e:
            return [self._failed("audit", e, event)]
        return []

    async def write_audit(self, event: SideEffectEvent) -> list[str]:
        """独立事务写入审计（无伴随状态变更的事件）"""
        try:
            async with self._stores.transaction():
                await self._stores.audit_store.append(self._record(event))
        except Exception as e:
            return [self._failed("audit", e, event)]
        return []

    async def send_notifications(self, event: SideEffectEvent) -> list[str]:
        """逐条发送通知，每条独立提交，失败互不影响"""
        failures: list[str] = []
        for spec in event.notifications:
            failures.extend(await self.notify(spec))
        return failures

    async def dispatch(self, event: SideEffectEvent) -> list[str]:
        """审计 + 通知（用于不在写事务内的调用方）"""
        failures = await self.write_audit(event)
        failures.extend(await self.send_notifications(event))
        return failures

    async def notify(self, spec: NotificationSpec) -> list[str]:
        """写入站内通知，按需镜像到邮件"""
        failures: list[str] = []
        try:
            async with self._stores.transaction():
                await self._stores.notification_store.create(
                    Notification(
                        notification_id=new_id(),
                        user_id=spec.user_id,
                        type=spec.type,
                        title=spec.title,
                        message=spec.message,
                        task_id=spec.task_id,
                        created_at=self._clock(),
                    )
                )
        except Exception as e:
            failures.append(self._failed("notification", e, spec))

        if spec.via_email and self._mailer is not None:
            try:
                await self._send_email(spec)
            except Exception as e:
                failures.append(self._failed("email", e, spec))
        return failures

    async def _send_email(self, spec: NotificationSpec) -> None:
        user = await self._stores.user_store.get_user(spec.user_id)
        if user is None or not user.email or not user.is_active:
            log.debug("email_skipped_no_recipient", user_id=spec.user_id)
            return
        message = render_notification_email(
            to=user.email,
            title=spec.title,
            message=spec.message,
            frontend_url=self._frontend_url,
            task_id=spec.task_id,
            recipient_name=user.full_name,
        )
        await self._mailer.send(message)

    @staticmethod
    def _failed(kind: str, error: Exception, source: BaseModel) -> str:
        task_id = getattr(source, "task_id", None)
        log.error(
            "side_effect_failed",
            kind=kind,
            task_id=task_id,
            user_id=getattr(source, "user_id", None),
            error_type=type(error).__name__,
            error=str(error),
        )
        return f"{kind}: {type(error).__name__}: {error}"
