"""任务路由

POST /api/tasks: 创建任务（自动分配审核人）
GET /api/tasks: 任务列表（按角色收窄范围）
GET /api/tasks/{task_id}: 任务详情，含版本、评论、交易所审批
PATCH /api/tasks/{task_id}: 编辑明细字段
POST /api/tasks/{task_id}/status: 显式状态变更
POST /api/tasks/{task_id}/versions: 上传新版本
POST /api/tasks/{task_id}/comments: 添加评论
POST /api/tasks/{task_id}/exchange-approvals: 新增交易所审批
PUT /api/tasks/{task_id}/exchange-approvals/{approval_id}: 更新交易所审批
GET /api/tasks/{task_id}/audit: 任务审计记录
"""

from datetime import date, datetime

from adreview.core.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from adreview.core.models import (
    Actor,
    AddCommentIntent,
    AddExchangeApprovalIntent,
    ChangeStatusIntent,
    CreateTaskIntent,
    TaskStatus,
    TaskType,
    UpdateExchangeApprovalIntent,
    UpdateTaskIntent,
    UploadVersionIntent,
)
from adreview.core.store import StoreGroup, TaskFilter
from fastapi import APIRouter, Depends, Query

from ..deps import get_actor, get_store_group, get_workflow_service
from ..services.workflow_service import WorkflowResult, WorkflowService

router = APIRouter()


def _result_payload(result: WorkflowResult) -> dict:
    return {
        "task": result.task.model_dump(mode="json"),
        "side_effect_failures": result.side_effect_failures,
    }


@router.post("/api/tasks", status_code=201)
async def create_task(
    body: CreateTaskIntent,
    actor: Actor = Depends(get_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    """创建任务；无可用审核人时 409 NO_AVAILABLE_REVIEWER，且不落库"""
    result = await service.create_task(actor, body)
    return _result_payload(result)


@router.get("/api/tasks")
async def list_tasks(
    status: TaskStatus | None = Query(default=None, description="按状态筛选"),
    task_type: TaskType | None = Query(default=None),
    search: str | None = Query(default=None, description="标题 / UIN / 描述模糊匹配"),
    created_by: str | None = Query(default=None),
    date_from: datetime | None = Query(default=None, description="创建时间下限"),
    date_to: datetime | None = Query(default=None, description="创建时间上限"),
    expiry_from: date | None = Query(default=None),
    expiry_to: date | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    actor: Actor = Depends(get_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    """任务列表，按 updated_at 倒序"""
    flt = TaskFilter(
        status=status,
        task_type=task_type,
        search=search,
        created_by=created_by,
        date_from=date_from,
        date_to=date_to,
        expiry_from=expiry_from,
        expiry_to=expiry_to,
        page=page,
        limit=limit,
    )
    tasks, total = await service.list_tasks(actor, flt)
    return {
        "tasks": [t.model_dump(mode="json") for t in tasks],
        "total": total,
        "page": page,
        "limit": limit,
    }


@router.get("/api/tasks/{task_id}")
async def get_task_detail(
    task_id: str,
    actor: Actor = Depends(get_actor),
    service: WorkflowService = Depends(get_workflow_service),
    store_group: StoreGroup = Depends(get_store_group),
):
    task = await service.get_task(actor, task_id)
    versions = await store_group.content_store.list_versions(task_id)
    comments = await store_group.content_store.list_comments(task_id)
    approvals = await store_group.content_store.list_exchange_approvals(task_id)
    return {
        "task": task.model_dump(mode="json"),
        "versions": [v.model_dump(mode="json") for v in versions],
        "comments": [c.model_dump(mode="json") for c in comments],
        "exchange_approvals": [a.model_dump(mode="json") for a in approvals],
    }


@router.patch("/api/tasks/{task_id}")
async def update_task(
    task_id: str,
    body: UpdateTaskIntent,
    actor: Actor = Depends(get_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    result = await service.update_task(actor, task_id, body)
    return _result_payload(result)


@router.post("/api/tasks/{task_id}/status")
async def change_status(
    task_id: str,
    body: ChangeStatusIntent,
    actor: Actor = Depends(get_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    """显式状态变更

    - 400 INVALID_TRANSITION / MISSING_TRANSITION_DATA
    - 403 PERMISSION_DENIED
    - 409 TASK_STATUS_CONFLICT（expected_status 不一致或并发修改）
    """
    result = await service.change_status(actor, task_id, body)
    payload = _result_payload(result)
    payload["from_status"] = result.transition.from_status.value
    return payload


@router.post("/api/tasks/{task_id}/versions", status_code=201)
async def upload_version(
    task_id: str,
    body: UploadVersionIntent,
    actor: Actor = Depends(get_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    version, result = await service.upload_version(actor, task_id, body)
    payload = _result_payload(result)
    payload["version"] = version.model_dump(mode="json")
    return payload


@router.post("/api/tasks/{task_id}/comments", status_code=201)
async def add_comment(
    task_id: str,
    body: AddCommentIntent,
    actor: Actor = Depends(get_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    comment, result = await service.add_comment(actor, task_id, body)
    payload = _result_payload(result)
    payload["comment"] = comment.model_dump(mode="json")
    return payload


@router.post("/api/tasks/{task_id}/exchange-approvals", status_code=201)
async def add_exchange_approval(
    task_id: str,
    body: AddExchangeApprovalIntent,
    actor: Actor = Depends(get_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    approval, failures = await service.add_exchange_approval(actor, task_id, body)
    return {
        "exchange_approval": approval.model_dump(mode="json"),
        "side_effect_failures": failures,
    }


@router.put("/api/tasks/{task_id}/exchange-approvals/{approval_id}")
async def update_exchange_approval(
    task_id: str,
    approval_id: str,
    body: UpdateExchangeApprovalIntent,
    actor: Actor = Depends(get_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    approval, failures = await service.update_exchange_approval(
        actor, task_id, approval_id, body
    )
    return {
        "exchange_approval": approval.model_dump(mode="json"),
        "side_effect_failures": failures,
    }


@router.get("/api/tasks/{task_id}/audit")
async def get_task_audit(
    task_id: str,
    actor: Actor = Depends(get_actor),
    service: WorkflowService = Depends(get_workflow_service),
    store_group: StoreGroup = Depends(get_store_group),
):
    """任务审计记录，按时间正序（仅任务可见者）"""
    await service.get_task(actor, task_id)
    records = await store_group.audit_store.list_for_task(task_id)
    return {"audit": [r.model_dump(mode="json") for r in records]}
