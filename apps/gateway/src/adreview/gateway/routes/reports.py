"""报表路由

GET /api/reports/dashboard: 可见范围内按状态计数 + 最近更新任务
GET /api/reports/reviewer-workload: 审核人工作量与今日缺勤
GET /api/reports/expiring-soon: N 天内到期任务
GET /api/reports/internal-tasks: INTERNAL 任务明细与汇总
GET /api/reports/exchange-tasks: EXCHANGE 任务明细与汇总
GET /api/reports/rejected-tasks: 被关闭（驳回）任务与平均存续天数
GET /api/reports/daily-movement: 某日任务动态
"""

from datetime import date, datetime

from adreview.core.capabilities import Action, require_action
from adreview.core.models import Actor, TaskStatus, TaskType
from fastapi import APIRouter, Depends, Query

from ..deps import get_actor, get_store_group
from ..services.report_service import ReportService, TaskReport

router = APIRouter()


def get_report_service(store_group=Depends(get_store_group)) -> ReportService:
    return ReportService(store_group)


class TaskReportQuery:
    def __init__(
        self,
        status: TaskStatus | None = Query(default=None),
        created_by: str | None = Query(default=None),
        assigned_to: str | None = Query(default=None),
        date_from: datetime | None = Query(default=None),
        date_to: datetime | None = Query(default=None),
    ) -> None:
        self.status = status
        self.created_by = created_by
        self.assigned_to = assigned_to
        self.date_from = date_from
        self.date_to = date_to


async def _task_report(
    service: ReportService, task_type: TaskType, q: TaskReportQuery
) -> TaskReport:
    return await service.task_report(
        task_type,
        status=q.status,
        created_by=q.created_by,
        assigned_to=q.assigned_to,
        date_from=q.date_from,
        date_to=q.date_to,
    )


@router.get("/api/reports/dashboard")
async def dashboard(
    actor: Actor = Depends(get_actor),
    service: ReportService = Depends(get_report_service),
):
    report = await service.dashboard(actor)
    return report.model_dump(mode="json")


@router.get("/api/reports/reviewer-workload")
async def reviewer_workload(
    actor: Actor = Depends(get_actor),
    service: ReportService = Depends(get_report_service),
):
    require_action(actor, Action.VIEW_ALL_TASKS)
    rows = await service.reviewer_workload()
    return {"reviewers": [r.model_dump(mode="json") for r in rows]}


@router.get("/api/reports/expiring-soon")
async def expiring_soon(
    days: int = Query(default=30, ge=1, le=365),
    actor: Actor = Depends(get_actor),
    service: ReportService = Depends(get_report_service),
):
    tasks = await service.expiring_soon(actor, days)
    return {"days": days, "tasks": [t.model_dump(mode="json") for t in tasks]}


@router.get("/api/reports/internal-tasks")
async def internal_tasks(
    q: TaskReportQuery = Depends(),
    actor: Actor = Depends(get_actor),
    service: ReportService = Depends(get_report_service),
):
    require_action(actor, Action.VIEW_REPORTS)
    report = await _task_report(service, TaskType.INTERNAL, q)
    return report.model_dump(mode="json")


@router.get("/api/reports/exchange-tasks")
async def exchange_tasks(
    q: TaskReportQuery = Depends(),
    actor: Actor = Depends(get_actor),
    service: ReportService = Depends(get_report_service),
):
    # 交易所任务仅合规管理侧可见
    require_action(actor, Action.VIEW_ALL_TASKS)
    report = await _task_report(service, TaskType.EXCHANGE, q)
    return report.model_dump(mode="json")


@router.get("/api/reports/rejected-tasks")
async def rejected_tasks(
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    service: ReportService = Depends(get_report_service),
):
    require_action(actor, Action.VIEW_ALL_TASKS)
    report = await service.rejected_tasks(date_from, date_to)
    return report.model_dump(mode="json")


@router.get("/api/reports/daily-movement")
async def daily_movement(
    day: date | None = Query(default=None, alias="date"),
    actor: Actor = Depends(get_actor),
    service: ReportService = Depends(get_report_service),
):
    require_action(actor, Action.VIEW_AUDIT)
    report = await service.daily_movement(day)
    return report.model_dump(mode="json")
