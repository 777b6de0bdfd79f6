"""adreview Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from .audit_store import AuditFilter, SqliteAuditStore
from .content_store import SqliteContentStore
from .notification_store import SqliteNotificationStore
from .sequence_store import SqliteSequenceStore
from .sqlite_init import init_db
from .task_store import SqliteTaskStore, TaskFilter
from .transaction import apply_status_change, reassign_reviewer, savepoint, write_transaction
from .user_store import SqliteAbsenceStore, SqliteUserStore


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.user_store = SqliteUserStore(conn)
        self.absence_store = SqliteAbsenceStore(conn)
        self.task_store = SqliteTaskStore(conn)
        self.content_store = SqliteContentStore(conn)
        self.audit_store = SqliteAuditStore(conn)
        self.notification_store = SqliteNotificationStore(conn)
        self.sequence_store = SqliteSequenceStore(conn)
        self._write_lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """写事务：退出时提交，异常时回滚"""
        async with write_transaction(self.conn, self._write_lock) as conn:
            yield conn

    async def close(self) -> None:
        await self.conn.close()


async def create_store_group(db_path: str) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteUserStore",
    "SqliteAbsenceStore",
    "SqliteTaskStore",
    "SqliteContentStore",
    "SqliteAuditStore",
    "SqliteNotificationStore",
    "SqliteSequenceStore",
    "TaskFilter",
    "AuditFilter",
    "init_db",
    "apply_status_change",
    "reassign_reviewer",
    "savepoint",
    "write_transaction",
]
