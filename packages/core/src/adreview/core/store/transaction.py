"""写事务封装

所有写操作共享同一个连接，由 write_transaction 串行化：
进入时获取写锁，正常退出提交，异常（含取消）回滚后继续抛出。
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import aiosqlite

from ..exceptions import TaskStatusConflictError
from ..models.enums import TaskStatus
from .task_store import SqliteTaskStore


@asynccontextmanager
async def write_transaction(
    conn: aiosqlite.Connection,
    lock: asyncio.Lock,
) -> AsyncIterator[aiosqlite.Connection]:
    """串行化写事务

    Args:
        conn: 共享数据库连接
        lock: 写锁（同一连接上不允许交错的事务）
    """
    async with lock:
        try:
            yield conn
            await conn.commit()
        except BaseException:
            await conn.rollback()
            raise


async def apply_status_change(
    task_store: SqliteTaskStore,
    task_id: str,
    expected_status: TaskStatus,
    fields: dict[str, Any],
    now: datetime,
) -> None:
    """条件写入任务状态及伴随字段（需在写事务内调用）

    仅当任务当前状态仍为 expected_status 时写入。

    Raises:
        TaskStatusConflictError: 状态已被其他写入修改
    """
    updated = await task_store.update_task_fields(
        task_id,
        fields,
        updated_at=now,
        expected_status=expected_status,
    )
    if not updated:
        current = await task_store.get_task(task_id)
        raise TaskStatusConflictError(
            task_id=task_id,
            expected_status=expected_status.value,
            actual_status=current.status.value if current else None,
        )


async def reassign_reviewer(
    task_store: SqliteTaskStore,
    task_id: str,
    from_reviewer: str,
    to_reviewer: str,
    expected_status: TaskStatus,
    now: datetime,
) -> bool:
    """条件改派审核人（需在写事务内调用）

    Returns:
        False 表示任务已不在原审核人名下或状态已变化，调用方跳过
    """
    return await task_store.update_task_fields(
        task_id,
        {"assigned_compliance_id": to_reviewer},
        updated_at=now,
        expected_status=expected_status,
        expected_compliance_id=from_reviewer,
    )


@asynccontextmanager
async def savepoint(conn: aiosqlite.Connection, name: str) -> AsyncIterator[None]:
    """写事务内的嵌套保存点：块内异常只回滚块内写入，外层事务不受影响"""
    await conn.execute(f"SAVEPOINT {name}")
    try:
        yield
    except BaseException:
        await conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
        await conn.execute(f"RELEASE SAVEPOINT {name}")
        raise
    await conn.execute(f"RELEASE SAVEPOINT {name}")
