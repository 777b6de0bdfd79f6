"""审计查询路由

GET /api/audit: 全局审计查询（需要 view_audit 权限），按时间倒序分页。
"""

from datetime import datetime

from adreview.core.capabilities import Action, require_action
from adreview.core.models import Actor, AuditAction
from adreview.core.store import AuditFilter, StoreGroup
from fastapi import APIRouter, Depends, Query

from ..deps import get_actor, get_store_group

router = APIRouter()


@router.get("/api/audit")
async def query_audit(
    action: AuditAction | None = Query(default=None),
    actor_id: str | None = Query(default=None),
    task_id: str | None = Query(default=None),
    ts_from: datetime | None = Query(default=None),
    ts_to: datetime | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    actor: Actor = Depends(get_actor),
    store_group: StoreGroup = Depends(get_store_group),
):
    require_action(actor, Action.VIEW_AUDIT)
    records, total = await store_group.audit_store.query(
        AuditFilter(
            task_id=task_id,
            actor_id=actor_id,
            action=action,
            ts_from=ts_from,
            ts_to=ts_to,
            page=page,
            limit=limit,
        )
    )
    return {
        "audit": [r.model_dump(mode="json") for r in records],
        "total": total,
        "page": page,
        "limit": limit,
    }
