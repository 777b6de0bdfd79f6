"""CLI 入口模块 -- python -m adreview.core <command>

支持的命令：
  init-db                                         初始化数据库
  create-user <username> <full_name> <email> <role>  创建用户
"""

import asyncio
import sys
from datetime import UTC, datetime

from .config import SYSTEM_ACTOR_ID, get_db_path
from .ids import new_audit_id, new_id
from .models import AuditAction, AuditRecord, User, UserRole

_USAGE = """用法: python -m adreview.core <command>
命令:
  init-db                                            初始化数据库
  create-user <username> <full_name> <email> <role>  创建用户"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(init_database())
    elif command == "create-user":
        if len(sys.argv) != 6:
            print(_USAGE)
            sys.exit(1)
        username, full_name, email, role = sys.argv[2:6]
        try:
            user_role = UserRole(role.upper())
        except ValueError:
            print(f"未知角色: {role}")
            print(f"可用角色: {', '.join(r.value for r in UserRole)}")
            sys.exit(1)
        asyncio.run(create_user(username, full_name, email, user_role))
    else:
        print(f"未知命令: {command}")
        print("可用命令: init-db, create-user")
        sys.exit(1)


async def init_database() -> None:
    """创建数据库文件与全部表"""
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")
    store_group = await create_store_group(db_path)
    await store_group.close()
    print("初始化完成")


async def create_user(username: str, full_name: str, email: str, role: UserRole) -> None:
    """创建用户并写入 USER_CREATED 审计"""
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        if await store_group.user_store.get_user_by_username(username):
            print(f"用户名已存在: {username}")
            sys.exit(1)

        now = datetime.now(UTC)
        user = User(
            user_id=new_id(),
            username=username,
            full_name=full_name,
            email=email,
            role=role,
            created_at=now,
        )
        async with store_group.transaction():
            await store_group.user_store.create_user(user)
            await store_group.audit_store.append(
                AuditRecord(
                    audit_id=new_audit_id(),
                    ts=now,
                    action=AuditAction.USER_CREATED,
                    detail=f"User {username} created with role {role.value}",
                    actor_id=SYSTEM_ACTOR_ID,
                )
            )
        print(f"已创建用户 {username} ({role.value}): {user.user_id}")
    finally:
        await store_group.close()


if __name__ == "__main__":
    main()
