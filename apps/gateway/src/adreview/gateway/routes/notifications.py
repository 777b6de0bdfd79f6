"""站内通知路由（仅操作本人通知）

GET /api/notifications
GET /api/notifications/unread-count
PATCH /api/notifications/mark-all-read
PATCH /api/notifications/{notification_id}/read
PATCH /api/notifications/{notification_id}/unread
DELETE /api/notifications/read/all
DELETE /api/notifications/{notification_id}
"""

from adreview.core.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from adreview.core.exceptions import NotFound
from adreview.core.models import Actor
from adreview.core.store import StoreGroup
from fastapi import APIRouter, Depends, Query

from ..deps import get_actor, get_store_group

router = APIRouter()


@router.get("/api/notifications")
async def list_notifications(
    unread_only: bool = Query(default=False),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    actor: Actor = Depends(get_actor),
    store_group: StoreGroup = Depends(get_store_group),
):
    notifications, total = await store_group.notification_store.list_for_user(
        actor.id, unread_only=unread_only, page=page, limit=limit
    )
    unread = await store_group.notification_store.unread_count(actor.id)
    return {
        "notifications": [n.model_dump(mode="json") for n in notifications],
        "total": total,
        "unread_count": unread,
        "page": page,
        "limit": limit,
    }


@router.get("/api/notifications/unread-count")
async def unread_count(
    actor: Actor = Depends(get_actor),
    store_group: StoreGroup = Depends(get_store_group),
):
    return {"unread_count": await store_group.notification_store.unread_count(actor.id)}


@router.patch("/api/notifications/mark-all-read")
async def mark_all_read(
    actor: Actor = Depends(get_actor),
    store_group: StoreGroup = Depends(get_store_group),
):
    async with store_group.transaction():
        updated = await store_group.notification_store.mark_all_read(actor.id)
    return {"updated": updated}


@router.patch("/api/notifications/{notification_id}/read")
async def mark_read(
    notification_id: str,
    actor: Actor = Depends(get_actor),
    store_group: StoreGroup = Depends(get_store_group),
):
    async with store_group.transaction():
        ok = await store_group.notification_store.mark_read(notification_id, actor.id)
    if not ok:
        raise NotFound("notification", notification_id)
    return {"notification_id": notification_id, "is_read": True}


@router.patch("/api/notifications/{notification_id}/unread")
async def mark_unread(
    notification_id: str,
    actor: Actor = Depends(get_actor),
    store_group: StoreGroup = Depends(get_store_group),
):
    async with store_group.transaction():
        ok = await store_group.notification_store.mark_unread(notification_id, actor.id)
    if not ok:
        raise NotFound("notification", notification_id)
    return {"notification_id": notification_id, "is_read": False}


@router.delete("/api/notifications/read/all")
async def delete_all_read(
    actor: Actor = Depends(get_actor),
    store_group: StoreGroup = Depends(get_store_group),
):
    async with store_group.transaction():
        deleted = await store_group.notification_store.delete_read(actor.id)
    return {"deleted": deleted}


@router.delete("/api/notifications/{notification_id}")
async def delete_notification(
    notification_id: str,
    actor: Actor = Depends(get_actor),
    store_group: StoreGroup = Depends(get_store_group),
):
    async with store_group.transaction():
        ok = await store_group.notification_store.delete(notification_id, actor.id)
    if not ok:
        raise NotFound("notification", notification_id)
    return {"notification_id": notification_id, "deleted": True}
