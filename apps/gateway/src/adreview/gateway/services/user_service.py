"""UserService -- 用户管理

创建、更新用户并写 USER_CREATED / USER_UPDATED 审计。
"""

from datetime import UTC, datetime

import structlog
from adreview.core.capabilities import Action, require_action
from adreview.core.exceptions import NotFound, ValidationFailed
from adreview.core.ids import new_id
from adreview.core.models import Actor, AuditAction, User, UserRole
from adreview.core.store import StoreGroup
from pydantic import BaseModel, Field

from .side_effects import SideEffectCoordinator, SideEffectEvent

log = structlog.get_logger()


class NewUser(BaseModel):
    """创建用户输入"""

    username: str = Field(min_length=3, max_length=50)
    full_name: str = Field(min_length=1, max_length=100)
    email: str = Field(default="", max_length=200)
    role: UserRole


class UserUpdate(BaseModel):
    """更新用户输入（均可选）"""

    full_name: str | None = Field(default=None, min_length=1, max_length=100)
    email: str | None = Field(default=None, max_length=200)
    role: UserRole | None = None
    is_active: bool | None = None


class UserService:
    def __init__(self, store_group: StoreGroup, side_effects: SideEffectCoordinator) -> None:
        self._stores = store_group
        self._effects = side_effects

    async def list_users(
        self,
        actor: Actor,
        role: UserRole | None = None,
        active_only: bool = False,
    ) -> list[User]:
        require_action(actor, Action.LIST_USERS)
        return await self._stores.user_store.list_users(
            roles=(role,) if role else None,
            active_only=active_only,
        )

    async def create_user(self, actor: Actor, data: NewUser) -> User:
        require_action(actor, Action.MANAGE_USERS)
        async with self._stores.transaction():
            if await self._stores.user_store.get_user_by_username(data.username):
                raise ValidationFailed(f"Username {data.username} already exists")
            user = User(
                user_id=new_id(),
                username=data.username,
                full_name=data.full_name,
                email=data.email,
                role=data.role,
                created_at=datetime.now(UTC),
            )
            await self._stores.user_store.create_user(user)
            await self._effects.write_audit_in_transaction(
                SideEffectEvent(
                    actor_id=actor.id,
                    action=AuditAction.USER_CREATED,
                    detail=f"User {user.username} created with role {user.role.value}",
                )
            )
        log.info("user_created", user_id=user.user_id, role=user.role.value)
        return user

    async def update_user(self, actor: Actor, user_id: str, data: UserUpdate) -> User:
        """更新用户；不允许停用自己"""
        require_action(actor, Action.MANAGE_USERS)
        fields = data.model_dump(exclude_none=True)
        if not fields:
            raise ValidationFailed("No fields to update")
        if user_id == actor.id and fields.get("is_active") is False:
            raise ValidationFailed("Cannot deactivate your own account")

        async with self._stores.transaction():
            current = await self._stores.user_store.get_user(user_id)
            if current is None:
                raise NotFound("user", user_id)
            await self._stores.user_store.update_user(user_id, fields)
            await self._effects.write_audit_in_transaction(
                SideEffectEvent(
                    actor_id=actor.id,
                    action=AuditAction.USER_UPDATED,
                    detail=f"User {current.username} updated: {', '.join(sorted(fields))}",
                )
            )
            updated = await self._stores.user_store.get_user(user_id)
        log.info("user_updated", user_id=user_id, fields=sorted(fields))
        return updated
