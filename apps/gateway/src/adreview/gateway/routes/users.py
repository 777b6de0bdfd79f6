"""用户路由

GET /api/users: 用户列表（可按角色 / 启用状态筛选）
POST /api/users: 创建用户
PATCH /api/users/{user_id}: 更新用户（含启用 / 停用、角色）
"""

from adreview.core.models import Actor, UserRole
from fastapi import APIRouter, Depends, Query

from ..deps import get_actor, get_side_effects, get_store_group
from ..services.user_service import NewUser, UserService, UserUpdate

router = APIRouter()


def get_user_service(
    store_group=Depends(get_store_group),
    side_effects=Depends(get_side_effects),
) -> UserService:
    return UserService(store_group, side_effects)


@router.get("/api/users")
async def list_users(
    role: UserRole | None = Query(default=None),
    active_only: bool = Query(default=False),
    actor: Actor = Depends(get_actor),
    service: UserService = Depends(get_user_service),
):
    users = await service.list_users(actor, role=role, active_only=active_only)
    return {"users": [u.model_dump(mode="json") for u in users]}


@router.post("/api/users", status_code=201)
async def create_user(
    body: NewUser,
    actor: Actor = Depends(get_actor),
    service: UserService = Depends(get_user_service),
):
    user = await service.create_user(actor, body)
    return {"user": user.model_dump(mode="json")}


@router.patch("/api/users/{user_id}")
async def update_user(
    user_id: str,
    body: UserUpdate,
    actor: Actor = Depends(get_actor),
    service: UserService = Depends(get_user_service),
):
    user = await service.update_user(actor, user_id, body)
    return {"user": user.model_dump(mode="json")}
