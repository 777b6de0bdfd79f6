"""扫描触发路由

POST /api/scans/{name}: 手动触发扫描（需要 run_scans 权限）
name: expiry | absence-reassignment | expiry-warning | stale-tasks | notification-cleanup
"""

from adreview.core.capabilities import Action, require_action
from adreview.core.models import Actor
from fastapi import APIRouter, Depends

from ..deps import get_actor, get_scan_service
from ..services.scan_service import ScanService

router = APIRouter()


@router.post("/api/scans/{name}")
async def run_scan(
    name: str,
    actor: Actor = Depends(get_actor),
    service: ScanService = Depends(get_scan_service),
):
    require_action(actor, Action.RUN_SCANS)
    summary = await service.run(name)
    return summary.model_dump(mode="json")
