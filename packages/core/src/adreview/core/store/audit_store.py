"""AuditStore SQLite 实现

审计表 append-only：只允许插入，不允许更新或删除。
"""

from datetime import datetime
from typing import Any

import aiosqlite
from pydantic import BaseModel, Field

from ..models.audit import AuditRecord
from ..models.enums import AuditAction
from .timestamps import db_timestamp

_COLUMNS = "audit_id, ts, action, detail, actor_id, task_id"


class AuditFilter(BaseModel):
    """审计查询条件"""

    task_id: str | None = None
    actor_id: str | None = None
    action: AuditAction | None = None
    ts_from: datetime | None = None
    ts_to: datetime | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=500)


class SqliteAuditStore:
    """AuditStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append(self, record: AuditRecord) -> None:
        """追加审计记录（不提交事务）"""
        await self._conn.execute(
            f"INSERT INTO audit_logs ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
            (
                record.audit_id,
                db_timestamp(record.ts),
                record.action.value,
                record.detail,
                record.actor_id,
                record.task_id,
            ),
        )

    async def list_for_task(self, task_id: str) -> list[AuditRecord]:
        """查询任务的审计记录，按时间正序（ULID 保证同一毫秒内有序）"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM audit_logs WHERE task_id = ? ORDER BY ts ASC, rowid ASC",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_record(r) for r in rows]

    async def query(self, flt: AuditFilter | None = None) -> tuple[list[AuditRecord], int]:
        """分页查询审计记录，按时间倒序"""
        flt = flt or AuditFilter()
        clauses: list[str] = []
        params: list[Any] = []
        if flt.task_id:
            clauses.append("task_id = ?")
            params.append(flt.task_id)
        if flt.actor_id:
            clauses.append("actor_id = ?")
            params.append(flt.actor_id)
        if flt.action:
            clauses.append("action = ?")
            params.append(flt.action.value)
        if flt.ts_from:
            clauses.append("ts >= ?")
            params.append(db_timestamp(flt.ts_from))
        if flt.ts_to:
            clauses.append("ts <= ?")
            params.append(db_timestamp(flt.ts_to))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        cursor = await self._conn.execute(f"SELECT COUNT(*) FROM audit_logs {where}", params)
        row = await cursor.fetchone()
        total = row[0] if row else 0

        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM audit_logs {where} "
            "ORDER BY ts DESC, rowid DESC LIMIT ? OFFSET ?",
            [*params, flt.limit, (flt.page - 1) * flt.limit],
        )
        rows = await cursor.fetchall()
        return [self._row_to_record(r) for r in rows], total

    async def list_between(
        self,
        start: datetime,
        end: datetime,
        actions: tuple[AuditAction, ...],
    ) -> list[AuditRecord]:
        """[start, end) 区间内指定动作的记录，按时间正序"""
        marks = ", ".join("?" for _ in actions)
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM audit_logs "
            f"WHERE ts >= ? AND ts < ? AND action IN ({marks}) "
            "ORDER BY ts ASC, rowid ASC",
            [db_timestamp(start), db_timestamp(end), *(a.value for a in actions)],
        )
        rows = await cursor.fetchall()
        return [self._row_to_record(r) for r in rows]

    async def count(self, task_id: str, action: AuditAction | None = None) -> int:
        if action is None:
            cursor = await self._conn.execute(
                "SELECT COUNT(*) FROM audit_logs WHERE task_id = ?",
                (task_id,),
            )
        else:
            cursor = await self._conn.execute(
                "SELECT COUNT(*) FROM audit_logs WHERE task_id = ? AND action = ?",
                (task_id, action.value),
            )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def exists(self, task_id: str, action: AuditAction, detail: str) -> bool:
        """是否已有相同任务、动作、描述的审计记录（扫描幂等判定）"""
        cursor = await self._conn.execute(
            "SELECT 1 FROM audit_logs WHERE task_id = ? AND action = ? AND detail = ? LIMIT 1",
            (task_id, action.value, detail),
        )
        return await cursor.fetchone() is not None

    @staticmethod
    def _row_to_record(row: aiosqlite.Row) -> AuditRecord:
        return AuditRecord(
            audit_id=row[0],
            ts=datetime.fromisoformat(row[1]),
            action=AuditAction(row[2]),
            detail=row[3],
            actor_id=row[4],
            task_id=row[5],
        )
