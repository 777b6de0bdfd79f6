"""ScanService -- 周期扫描

每个扫描都是显式、可单独调用、幂等的操作，可由进程内调度器、
外部调度或测试直接触发。单项失败记日志后继续，扫描结果以 ScanSummary 返回。
"""

from collections.abc import Callable
from datetime import UTC, datetime, time, timedelta

import structlog
from adreview.core.config import (
    SYSTEM_ACTOR_ID,
    get_expiry_warning_days,
    get_notification_retention_days,
    get_stale_task_days,
)
from adreview.core.exceptions import NotFound
from adreview.core.models import (
    EXPIRABLE_STATES,
    IN_REVIEW_STATES,
    AuditAction,
    NotificationType,
    Task,
    TaskStatus,
)
from adreview.core.store import StoreGroup
from pydantic import BaseModel, Field

from .side_effects import NotificationSpec, SideEffectCoordinator, SideEffectEvent
from .workflow_service import ReassignmentOutcome, WorkflowService

log = structlog.get_logger()


class ScanSummary(BaseModel):
    """一次扫描的结果汇总"""

    scan: str
    started_at: datetime
    processed: int = 0
    affected_ids: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failures: list[str] = Field(default_factory=list)
    reassignments: list[ReassignmentOutcome] = Field(default_factory=list)
    deleted: int = 0


class ScanService:
    """周期扫描服务"""

    def __init__(
        self,
        store_group: StoreGroup,
        workflow: WorkflowService,
        side_effects: SideEffectCoordinator,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._stores = store_group
        self._workflow = workflow
        self._effects = side_effects
        self._clock = clock or (lambda: datetime.now(UTC))

    async def run(self, name: str) -> ScanSummary:
        """按名称运行扫描（HTTP / 调度器入口）"""
        runners = {
            "expiry": self.run_expiry_scan,
            "absence-reassignment": self.run_absence_reassignment,
            "expiry-warning": self.run_expiry_warning_scan,
            "stale-tasks": self.run_stale_task_scan,
            "notification-cleanup": self.run_notification_cleanup,
        }
        runner = runners.get(name)
        if runner is None:
            raise NotFound("scan", name)
        return await runner()

    async def run_expiry_scan(self) -> ScanSummary:
        """到期日已过的 APPROVED / PUBLISHED 任务转入 EXPIRED"""
        now = self._clock()
        summary = ScanSummary(scan="expiry", started_at=now)
        tasks = await self._stores.task_store.list_expired(now.date(), EXPIRABLE_STATES)
        for task in tasks:
            summary.processed += 1
            try:
                if await self._workflow.expire_task(task.task_id, now):
                    summary.affected_ids.append(task.task_id)
                else:
                    summary.skipped.append(task.task_id)
            except Exception as e:
                log.error(
                    "expiry_scan_item_failed",
                    task_id=task.task_id,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                summary.failures.append(f"{task.task_id}: {type(e).__name__}: {e}")

        log.info(
            "expiry_scan_completed",
            processed=summary.processed,
            expired=len(summary.affected_ids),
            failed=len(summary.failures),
        )
        return summary

    async def run_absence_reassignment(self) -> ScanSummary:
        """今天缺勤的审核人名下任务转给替补"""
        now = self._clock()
        summary = ScanSummary(scan="absence-reassignment", started_at=now)
        outcomes = await self._workflow.reassign_absent_reviewers(now.date())
        for outcome in outcomes:
            summary.processed += 1
            summary.affected_ids.extend(outcome.reassigned_task_ids)
            if outcome.skipped:
                summary.skipped.append(outcome.absent_user_id)
            summary.failures.extend(outcome.failures)
        summary.reassignments = outcomes

        log.info(
            "absence_reassignment_completed",
            absent_reviewers=summary.processed,
            reassigned=len(summary.affected_ids),
            skipped=len(summary.skipped),
        )
        return summary

    async def run_expiry_warning_scan(self) -> ScanSummary:
        """到期前 N 天提醒（N 取自 ADREVIEW_EXPIRY_WARNING_DAYS）

        同一任务同一提醒天数只发送一次：以 EXPIRY_WARNING_SENT 审计记录判重。
        """
        now = self._clock()
        today = now.date()
        summary = ScanSummary(scan="expiry-warning", started_at=now)

        for days in sorted(set(get_expiry_warning_days()), reverse=True):
            target = today + timedelta(days=days)
            tasks = await self._stores.task_store.list_expiring_between(
                target, target, EXPIRABLE_STATES
            )
            for task in tasks:
                summary.processed += 1
                detail = (
                    f"Expiry warning sent: task {task.uin} expires on "
                    f"{task.expiry_date} ({days} days remaining)"
                )
                try:
                    if await self._stores.audit_store.exists(
                        task.task_id, AuditAction.EXPIRY_WARNING_SENT, detail
                    ):
                        summary.skipped.append(task.task_id)
                        continue
                    failures = await self._effects.dispatch(
                        SideEffectEvent(
                            actor_id=SYSTEM_ACTOR_ID,
                            action=AuditAction.EXPIRY_WARNING_SENT,
                            detail=detail,
                            task_id=task.task_id,
                            notifications=self._expiry_notifications(task, days),
                        )
                    )
                except Exception as e:
                    log.error(
                        "expiry_warning_item_failed",
                        task_id=task.task_id,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                    summary.failures.append(f"{task.task_id}: {type(e).__name__}: {e}")
                    continue
                summary.affected_ids.append(task.task_id)
                summary.failures.extend(failures)

        log.info(
            "expiry_warning_scan_completed",
            processed=summary.processed,
            warned=len(summary.affected_ids),
        )
        return summary

    async def run_stale_task_scan(self) -> ScanSummary:
        """审核中超过 N 天未更新的任务发送 FOLLOW_UP 提醒（每天至多一次）"""
        now = self._clock()
        stale_days = get_stale_task_days()
        summary = ScanSummary(scan="stale-tasks", started_at=now)
        cutoff = now - timedelta(days=stale_days)
        start_of_day = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)

        tasks = await self._stores.task_store.list_stale(cutoff, IN_REVIEW_STATES)
        for task in tasks:
            summary.processed += 1
            try:
                if await self._stores.notification_store.exists_since(
                    task.task_id, NotificationType.FOLLOW_UP, start_of_day
                ):
                    summary.skipped.append(task.task_id)
                    continue
                idle_days = (now - task.updated_at).days
                failures: list[str] = []
                for uid in self._stale_recipients(task):
                    failures.extend(
                        await self._effects.notify(
                            NotificationSpec(
                                user_id=uid,
                                type=NotificationType.FOLLOW_UP,
                                title="Task Follow-up Required",
                                message=(
                                    f'Task "{task.title}" ({task.uin}) has been in '
                                    f"{task.status.value} for {idle_days} days without updates"
                                ),
                                task_id=task.task_id,
                            )
                        )
                    )
            except Exception as e:
                log.error(
                    "stale_task_item_failed",
                    task_id=task.task_id,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                summary.failures.append(f"{task.task_id}: {type(e).__name__}: {e}")
                continue
            summary.affected_ids.append(task.task_id)
            summary.failures.extend(failures)

        log.info(
            "stale_task_scan_completed",
            processed=summary.processed,
            notified=len(summary.affected_ids),
            stale_days=stale_days,
        )
        return summary

    async def run_notification_cleanup(self) -> ScanSummary:
        """删除超过保留期的已读通知"""
        now = self._clock()
        retention_days = get_notification_retention_days()
        summary = ScanSummary(scan="notification-cleanup", started_at=now)
        cutoff = now - timedelta(days=retention_days)

        async with self._stores.transaction():
            summary.deleted = await self._stores.notification_store.delete_read_before(cutoff)
        if summary.deleted:
            summary.failures.extend(
                await self._effects.write_audit(
                    SideEffectEvent(
                        actor_id=SYSTEM_ACTOR_ID,
                        action=AuditAction.NOTIFICATION_CLEANUP,
                        detail=(
                            f"Deleted {summary.deleted} read notifications "
                            f"older than {retention_days} days"
                        ),
                    )
                )
            )

        log.info(
            "notification_cleanup_completed",
            deleted=summary.deleted,
            retention_days=retention_days,
        )
        return summary

    @staticmethod
    def _expiry_notifications(task: Task, days: int) -> list[NotificationSpec]:
        return [
            NotificationSpec(
                user_id=uid,
                type=NotificationType.EXPIRY_WARNING,
                title="Task Expiring Soon",
                message=(
                    f'Task "{task.title}" ({task.uin}) will expire in {days} '
                    f"day{'s' if days != 1 else ''} on {task.expiry_date}"
                ),
                task_id=task.task_id,
                via_email=True,
            )
            for uid in task.notify_targets()
        ]

    @staticmethod
    def _stale_recipients(task: Task) -> list[str]:
        """PRODUCT_REVIEW 阶段提醒产品方，其余阶段提醒审核人"""
        if task.status == TaskStatus.PRODUCT_REVIEW:
            return list(dict.fromkeys(task.assigned_product_ids or [task.created_by]))
        return [task.assigned_compliance_id]
