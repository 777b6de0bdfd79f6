"""缺勤路由

GET /api/absences: 缺勤列表（可按 user_id 筛选）
POST /api/absences: 登记缺勤；覆盖今天时立即重分配
DELETE /api/absences/{absence_id}: 删除缺勤
"""

from adreview.core.capabilities import Action, require_action
from adreview.core.models import Actor, RecordAbsenceIntent
from adreview.core.store import StoreGroup
from fastapi import APIRouter, Depends, Query

from ..deps import get_actor, get_store_group, get_workflow_service
from ..services.workflow_service import WorkflowService

router = APIRouter()


@router.get("/api/absences")
async def list_absences(
    user_id: str | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    store_group: StoreGroup = Depends(get_store_group),
):
    require_action(actor, Action.MANAGE_ABSENCES)
    absences = await store_group.absence_store.list_absences(user_id)
    return {"absences": [a.model_dump(mode="json") for a in absences]}


@router.post("/api/absences", status_code=201)
async def record_absence(
    body: RecordAbsenceIntent,
    actor: Actor = Depends(get_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    """登记缺勤

    - 400 OVERLAPPING_ABSENCE: 与已有记录重叠
    - 400 VALIDATION_FAILED: 非合规用户或日期区间非法
    """
    result = await service.record_absence(actor, body)
    return result.model_dump(mode="json")


@router.delete("/api/absences/{absence_id}")
async def delete_absence(
    absence_id: str,
    actor: Actor = Depends(get_actor),
    service: WorkflowService = Depends(get_workflow_service),
):
    failures = await service.delete_absence(actor, absence_id)
    return {"absence_id": absence_id, "deleted": True, "side_effect_failures": failures}
