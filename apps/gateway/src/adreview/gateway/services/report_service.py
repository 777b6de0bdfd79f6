"""ReportService -- 只读汇总查询

仪表盘、审核人工作量、即将到期任务按角色收窄范围；
任务报表、关闭任务报表、每日动态面向具备报表权限的角色，覆盖全部任务。
权限校验在路由层完成。
"""

import math
from collections import Counter
from collections.abc import Callable
from datetime import UTC, date, datetime, time, timedelta

from adreview.core.models import (
    CLOSED_STATES,
    COMPLIANCE_ROLES,
    EXPIRABLE_STATES,
    REVIEW_WORKLOAD_STATES,
    Actor,
    AuditAction,
    AuditRecord,
    Task,
    TaskStatus,
    TaskType,
)
from adreview.core.store import StoreGroup, TaskFilter
from pydantic import BaseModel

from .workflow_service import scope_filter

# 任务报表中“即将到期”的天数阈值
EXPIRING_SOON_DAYS = 15

# 每日动态统计的审计动作
MOVEMENT_ACTIONS: tuple[AuditAction, ...] = (
    AuditAction.TASK_CREATED,
    AuditAction.TASK_UPDATED,
    AuditAction.TASK_STATUS_CHANGED,
)


class DashboardReport(BaseModel):
    total: int
    by_status: dict[str, int]
    recent_tasks: list[Task]


class ReviewerWorkload(BaseModel):
    user_id: str
    full_name: str
    role: str
    active_tasks: int
    absent_today: bool


class TaskReportRow(BaseModel):
    task: Task
    days_to_approval: int | None
    days_to_publish: int | None
    version_count: int
    comment_count: int
    is_expiring_soon: bool


class TaskReportSummary(BaseModel):
    total_tasks: int
    tasks_by_status: dict[str, int]
    avg_days_to_approval: float | None
    avg_days_to_publish: float | None
    expiring_soon: int


class TaskReport(BaseModel):
    task_type: TaskType
    summary: TaskReportSummary
    tasks: list[TaskReportRow]


class RejectedTaskRow(BaseModel):
    task: Task
    days_active: int


class RejectedTaskReport(BaseModel):
    total_rejected: int
    avg_days_active: float | None
    tasks: list[RejectedTaskRow]


class DailyMovementReport(BaseModel):
    day: date
    total_movements: int
    movements_by_action: dict[str, int]
    movements_by_user: dict[str, int]
    movements_by_hour: dict[int, int]
    movements: list[AuditRecord]


def _days_between(start: datetime, end: datetime) -> int:
    """向上取整的天数"""
    return max(0, math.ceil((end - start).total_seconds() / 86400))


def _days_since_created(task: Task, day: date | None) -> int | None:
    if day is None:
        return None
    return max(0, (day - task.created_at.astimezone(UTC).date()).days)


def _average(values: list[int]) -> float | None:
    if not values:
        return None
    return round(sum(values) / len(values), 1)


class ReportService:
    def __init__(
        self,
        store_group: StoreGroup,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._stores = store_group
        self._clock = clock or (lambda: datetime.now(UTC))

    async def dashboard(self, actor: Actor) -> DashboardReport:
        """按状态计数 + 最近更新的 10 个任务"""
        flt = scope_filter(actor, TaskFilter(limit=10))
        counts = await self._stores.task_store.count_by_status(flt)
        by_status = {s.value: counts.get(s.value, 0) for s in TaskStatus}
        recent, total = await self._stores.task_store.list_tasks(flt)
        return DashboardReport(total=total, by_status=by_status, recent_tasks=recent)

    async def reviewer_workload(self) -> list[ReviewerWorkload]:
        today = self._clock().date()
        reviewers = await self._stores.user_store.list_users(
            roles=COMPLIANCE_ROLES, active_only=True
        )
        workload = await self._stores.task_store.count_workload(
            [u.user_id for u in reviewers], REVIEW_WORKLOAD_STATES
        )
        absent = await self._stores.absence_store.absent_user_ids(today)
        return [
            ReviewerWorkload(
                user_id=u.user_id,
                full_name=u.full_name,
                role=u.role.value,
                active_tasks=workload.get(u.user_id, 0),
                absent_today=u.user_id in absent,
            )
            for u in reviewers
        ]

    async def expiring_soon(self, actor: Actor, days: int = 30) -> list[Task]:
        """今天起 days 天内到期的 APPROVED / PUBLISHED 任务，按到期日正序，不截断"""
        today: date = self._clock().date()
        flt = scope_filter(
            actor,
            TaskFilter(
                statuses=list(EXPIRABLE_STATES),
                expiry_from=today,
                expiry_to=today + timedelta(days=days),
                order_by="expiry",
            ),
        )
        return await self._stores.task_store.list_all(flt)

    async def task_report(
        self,
        task_type: TaskType,
        status: TaskStatus | None = None,
        created_by: str | None = None,
        assigned_to: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> TaskReport:
        """按任务类型的明细报表

        每行附带审批 / 发布耗时（自创建日起的天数）、版本数、评论数、
        是否在 EXPIRING_SOON_DAYS 天内到期；汇总给出各状态计数与平均耗时。
        """
        today = self._clock().date()
        tasks = await self._stores.task_store.list_all(
            TaskFilter(
                task_type=task_type,
                status=status,
                created_by=created_by,
                assigned_compliance_id=assigned_to,
                date_from=date_from,
                date_to=date_to,
                order_by="created",
            )
        )

        rows: list[TaskReportRow] = []
        for task in tasks:
            expiring = (
                task.expiry_date is not None
                and 0 <= (task.expiry_date - today).days <= EXPIRING_SOON_DAYS
            )
            rows.append(
                TaskReportRow(
                    task=task,
                    days_to_approval=_days_since_created(task, task.approval_date),
                    days_to_publish=_days_since_created(task, task.publish_date),
                    version_count=await self._stores.content_store.count_versions(task.task_id),
                    comment_count=await self._stores.content_store.count_comments(task.task_id),
                    is_expiring_soon=expiring,
                )
            )

        by_status = Counter(t.status.value for t in tasks)
        summary = TaskReportSummary(
            total_tasks=len(tasks),
            tasks_by_status={s.value: by_status.get(s.value, 0) for s in TaskStatus},
            avg_days_to_approval=_average(
                [r.days_to_approval for r in rows if r.days_to_approval is not None]
            ),
            avg_days_to_publish=_average(
                [r.days_to_publish for r in rows if r.days_to_publish is not None]
            ),
            expiring_soon=sum(1 for r in rows if r.is_expiring_soon),
        )
        return TaskReport(task_type=task_type, summary=summary, tasks=rows)

    async def rejected_tasks(
        self,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> RejectedTaskReport:
        """CLOSED_INTERNAL / CLOSED_EXCHANGE 任务，按关闭时间倒序"""
        tasks = await self._stores.task_store.list_all(
            TaskFilter(
                statuses=sorted(CLOSED_STATES),
                closed_from=date_from,
                closed_to=date_to,
                order_by="closure",
            )
        )
        rows = [
            RejectedTaskRow(task=t, days_active=_days_between(t.created_at, t.closure_date))
            for t in tasks
            if t.closure_date is not None
        ]
        return RejectedTaskReport(
            total_rejected=len(rows),
            avg_days_active=_average([r.days_active for r in rows]),
            tasks=rows,
        )

    async def daily_movement(self, day: date | None = None) -> DailyMovementReport:
        """某个 UTC 自然日内的任务创建 / 更新 / 状态变更，按时间正序"""
        day = day or self._clock().date()
        start = datetime.combine(day, time.min, tzinfo=UTC)
        records = await self._stores.audit_store.list_between(
            start, start + timedelta(days=1), MOVEMENT_ACTIONS
        )
        by_hour = Counter(r.ts.astimezone(UTC).hour for r in records)
        return DailyMovementReport(
            day=day,
            total_movements=len(records),
            movements_by_action=dict(Counter(r.action.value for r in records)),
            movements_by_user=dict(Counter(r.actor_id for r in records)),
            movements_by_hour={hour: by_hour.get(hour, 0) for hour in range(24)},
            movements=records,
        )
