"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store 与服务实例

Store、副作用协调器、邮件通道通过 app.state 管理，在 lifespan 中初始化/清理。
认证由外部完成：当前操作者由 X-User-Id 请求头解析。
"""

from adreview.core.models import Actor, User
from adreview.core.store import StoreGroup
from fastapi import Depends, Header, Request

from .errors import AuthenticationRequired
from .services.scan_service import ScanService
from .services.side_effects import SideEffectCoordinator
from .services.workflow_service import WorkflowService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_side_effects(request: Request) -> SideEffectCoordinator:
    """从 app.state 获取副作用协调器，未初始化时创建不发邮件的实例"""
    coordinator = getattr(request.app.state, "side_effects", None)
    if coordinator is None:
        coordinator = SideEffectCoordinator(request.app.state.store_group)
        request.app.state.side_effects = coordinator
    return coordinator


def get_workflow_service(
    store_group: StoreGroup = Depends(get_store_group),
    side_effects: SideEffectCoordinator = Depends(get_side_effects),
) -> WorkflowService:
    return WorkflowService(store_group, side_effects)


def get_scan_service(
    store_group: StoreGroup = Depends(get_store_group),
    side_effects: SideEffectCoordinator = Depends(get_side_effects),
    workflow: WorkflowService = Depends(get_workflow_service),
) -> ScanService:
    return ScanService(store_group, workflow, side_effects)


async def get_current_user(
    x_user_id: str | None = Header(default=None),
    store_group: StoreGroup = Depends(get_store_group),
) -> User:
    """解析当前用户；缺失、未知或已停用返回 401"""
    if not x_user_id:
        raise AuthenticationRequired("Missing X-User-Id header")
    user = await store_group.user_store.get_user(x_user_id)
    if user is None or not user.is_active:
        raise AuthenticationRequired("Unknown or inactive user")
    return user


async def get_actor(user: User = Depends(get_current_user)) -> Actor:
    return Actor(id=user.user_id, role=user.role)
