"""NotificationStore SQLite 实现"""

from datetime import datetime

import aiosqlite

from ..models.audit import Notification
from ..models.enums import NotificationType
from .timestamps import db_timestamp

_COLUMNS = "notification_id, user_id, type, title, message, task_id, is_read, created_at"


class SqliteNotificationStore:
    """NotificationStore 的 SQLite 实现（写操作均不提交事务）"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create(self, notification: Notification) -> None:
        await self._conn.execute(
            f"INSERT INTO notifications ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                notification.notification_id,
                notification.user_id,
                notification.type.value,
                notification.title,
                notification.message,
                notification.task_id,
                1 if notification.is_read else 0,
                db_timestamp(notification.created_at),
            ),
        )

    async def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Notification], int]:
        """分页查询用户通知，按时间倒序

        Returns:
            (当前页通知, 总数)
        """
        where = "WHERE user_id = ?"
        if unread_only:
            where += " AND is_read = 0"
        cursor = await self._conn.execute(
            f"SELECT COUNT(*) FROM notifications {where}",
            (user_id,),
        )
        row = await cursor.fetchone()
        total = row[0] if row else 0

        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM notifications {where} "
            "ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
            (user_id, limit, (page - 1) * limit),
        )
        rows = await cursor.fetchall()
        return [self._row_to_notification(r) for r in rows], total

    async def list_for_task(self, task_id: str) -> list[Notification]:
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM notifications "
            "WHERE task_id = ? ORDER BY created_at ASC, rowid ASC",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_notification(r) for r in rows]

    async def exists_since(
        self,
        task_id: str,
        type_: NotificationType,
        since: datetime,
    ) -> bool:
        """since 之后是否已为该任务发过此类通知（扫描幂等判定）"""
        cursor = await self._conn.execute(
            "SELECT 1 FROM notifications WHERE task_id = ? AND type = ? AND created_at >= ? LIMIT 1",
            (task_id, type_.value, db_timestamp(since)),
        )
        return await cursor.fetchone() is not None

    async def unread_count(self, user_id: str) -> int:
        cursor = await self._conn.execute(
            "SELECT COUNT(*) FROM notifications WHERE user_id = ? AND is_read = 0",
            (user_id,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        """标记单条通知已读，仅接收人本人可操作"""
        cursor = await self._conn.execute(
            "UPDATE notifications SET is_read = 1 WHERE notification_id = ? AND user_id = ?",
            (notification_id, user_id),
        )
        return cursor.rowcount > 0

    async def mark_unread(self, notification_id: str, user_id: str) -> bool:
        cursor = await self._conn.execute(
            "UPDATE notifications SET is_read = 0 WHERE notification_id = ? AND user_id = ?",
            (notification_id, user_id),
        )
        return cursor.rowcount > 0

    async def delete(self, notification_id: str, user_id: str) -> bool:
        """删除通知，仅接收人本人可操作"""
        cursor = await self._conn.execute(
            "DELETE FROM notifications WHERE notification_id = ? AND user_id = ?",
            (notification_id, user_id),
        )
        return cursor.rowcount > 0

    async def mark_all_read(self, user_id: str) -> int:
        cursor = await self._conn.execute(
            "UPDATE notifications SET is_read = 1 WHERE user_id = ? AND is_read = 0",
            (user_id,),
        )
        return cursor.rowcount

    async def delete_read(self, user_id: str) -> int:
        """删除用户全部已读通知，返回删除条数"""
        cursor = await self._conn.execute(
            "DELETE FROM notifications WHERE user_id = ? AND is_read = 1",
            (user_id,),
        )
        return cursor.rowcount

    async def delete_read_before(self, cutoff: datetime) -> int:
        """删除 cutoff 之前创建的已读通知，返回删除条数"""
        cursor = await self._conn.execute(
            "DELETE FROM notifications WHERE is_read = 1 AND created_at < ?",
            (db_timestamp(cutoff),),
        )
        return cursor.rowcount

    @staticmethod
    def _row_to_notification(row: aiosqlite.Row) -> Notification:
        return Notification(
            notification_id=row[0],
            user_id=row[1],
            type=NotificationType(row[2]),
            title=row[3],
            message=row[4],
            task_id=row[5],
            is_read=bool(row[6]),
            created_at=datetime.fromisoformat(row[7]),
        )
