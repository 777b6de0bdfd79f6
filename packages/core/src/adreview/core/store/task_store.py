"""TaskStore SQLite 实现

状态更新一律使用条件写入（WHERE status = 期望状态），
rowcount 为 0 时由调用方抛出并发冲突。
"""

import json
from datetime import date, datetime
from typing import Any, Literal

import aiosqlite
from pydantic import BaseModel, Field

from ..models.enums import TaskStatus, TaskType
from ..models.task import Task
from .timestamps import db_timestamp

_COLUMNS = (
    "task_id, uin, title, description, task_type, status, created_by, "
    "assigned_product_ids, assigned_compliance_id, platform, category, remarks, "
    "expected_publish_date, approval_date, expiry_date, publish_date, "
    "closure_date, closure_remarks, created_at, updated_at"
)

# 允许通过 update_task_fields 写入的列
_UPDATABLE_COLUMNS = {
    "title",
    "description",
    "task_type",
    "status",
    "assigned_product_ids",
    "assigned_compliance_id",
    "platform",
    "category",
    "remarks",
    "expected_publish_date",
    "approval_date",
    "expiry_date",
    "publish_date",
    "closure_date",
    "closure_remarks",
}


class TaskFilter(BaseModel):
    """任务列表查询条件"""

    status: TaskStatus | None = None
    statuses: list[TaskStatus] | None = None
    task_type: TaskType | None = None
    search: str | None = None
    created_by: str | None = None
    # 产品方可见范围：创建者或被分配的产品方
    producer_id: str | None = None
    assigned_compliance_id: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    expiry_from: date | None = None
    expiry_to: date | None = None
    closed_from: datetime | None = None
    closed_to: datetime | None = None
    order_by: Literal["updated", "created", "expiry", "closure"] = "updated"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


# 时间相同时按写入顺序（rowid）兜底
_ORDERINGS = {
    "updated": "updated_at DESC, rowid DESC",
    "created": "created_at ASC, rowid ASC",
    "expiry": "expiry_date ASC, rowid ASC",
    "closure": "closure_date DESC, rowid DESC",
}


def _to_db(value: Any) -> Any:
    """Python 值转数据库列值"""
    if value is None:
        return None
    if isinstance(value, list):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, datetime):
        return db_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    return value


def _build_where(flt: TaskFilter) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []

    if flt.producer_id:
        clauses.append(
            "(created_by = ? OR EXISTS "
            "(SELECT 1 FROM json_each(tasks.assigned_product_ids) WHERE json_each.value = ?))"
        )
        params.extend([flt.producer_id, flt.producer_id])
    if flt.assigned_compliance_id:
        clauses.append("assigned_compliance_id = ?")
        params.append(flt.assigned_compliance_id)
    if flt.status:
        clauses.append("status = ?")
        params.append(flt.status.value)
    if flt.statuses:
        placeholders = ", ".join("?" for _ in flt.statuses)
        clauses.append(f"status IN ({placeholders})")
        params.extend(s.value for s in flt.statuses)
    if flt.task_type:
        clauses.append("task_type = ?")
        params.append(flt.task_type.value)
    if flt.search:
        clauses.append("(title LIKE ? OR uin LIKE ? OR description LIKE ?)")
        pattern = f"%{flt.search}%"
        params.extend([pattern, pattern, pattern])
    if flt.created_by:
        clauses.append("created_by = ?")
        params.append(flt.created_by)
    if flt.date_from:
        clauses.append("created_at >= ?")
        params.append(db_timestamp(flt.date_from))
    if flt.date_to:
        clauses.append("created_at <= ?")
        params.append(db_timestamp(flt.date_to))
    if flt.expiry_from:
        clauses.append("expiry_date >= ?")
        params.append(flt.expiry_from.isoformat())
    if flt.expiry_to:
        clauses.append("expiry_date <= ?")
        params.append(flt.expiry_to.isoformat())
    if flt.closed_from:
        clauses.append("closure_date >= ?")
        params.append(db_timestamp(flt.closed_from))
    if flt.closed_to:
        clauses.append("closure_date <= ?")
        params.append(db_timestamp(flt.closed_to))

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """创建任务记录（不提交事务）"""
        await self._conn.execute(
            f"INSERT INTO tasks ({_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                task.task_id,
                task.uin,
                task.title,
                task.description,
                task.task_type.value,
                task.status.value,
                task.created_by,
                json.dumps(task.assigned_product_ids),
                task.assigned_compliance_id,
                task.platform,
                task.category,
                task.remarks,
                _to_db(task.expected_publish_date),
                _to_db(task.approval_date),
                _to_db(task.expiry_date),
                _to_db(task.publish_date),
                _to_db(task.closure_date),
                task.closure_remarks,
                db_timestamp(task.created_at),
                db_timestamp(task.updated_at),
            ),
        )

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks(self, flt: TaskFilter | None = None) -> tuple[list[Task], int]:
        """分页查询任务列表，默认按 updated_at 倒序

        Returns:
            (当前页任务, 总数)
        """
        flt = flt or TaskFilter()
        where, params = _build_where(flt)
        cursor = await self._conn.execute(f"SELECT COUNT(*) FROM tasks {where}", params)
        row = await cursor.fetchone()
        total = row[0] if row else 0

        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks {where} "
            f"ORDER BY {_ORDERINGS[flt.order_by]} LIMIT ? OFFSET ?",
            [*params, flt.limit, (flt.page - 1) * flt.limit],
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(r) for r in rows], total

    async def list_all(self, flt: TaskFilter | None = None) -> list[Task]:
        """不分页查询全部匹配任务（报表用），忽略 page / limit"""
        flt = flt or TaskFilter()
        where, params = _build_where(flt)
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks {where} ORDER BY {_ORDERINGS[flt.order_by]}",
            params,
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(r) for r in rows]

    async def count_by_status(self, flt: TaskFilter | None = None) -> dict[str, int]:
        """按状态统计任务数"""
        where, params = _build_where(flt or TaskFilter())
        cursor = await self._conn.execute(
            f"SELECT status, COUNT(*) FROM tasks {where} GROUP BY status",
            params,
        )
        rows = await cursor.fetchall()
        return {r[0]: r[1] for r in rows}

    async def update_task_fields(
        self,
        task_id: str,
        fields: dict[str, Any],
        updated_at: datetime,
        expected_status: TaskStatus | None = None,
        expected_compliance_id: str | None = None,
    ) -> bool:
        """条件更新任务字段（不提交事务）

        Args:
            expected_status: 非 None 时仅当当前状态一致才写入
            expected_compliance_id: 非 None 时仅当当前审核人一致才写入

        Returns:
            True 如果有行被更新
        """
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown task columns: {sorted(unknown)}")

        assignments = [f"{col} = ?" for col in fields]
        params: list[Any] = [_to_db(v) for v in fields.values()]
        assignments.append("updated_at = ?")
        params.append(db_timestamp(updated_at))

        sql = f"UPDATE tasks SET {', '.join(assignments)} WHERE task_id = ?"
        params.append(task_id)
        if expected_status is not None:
            sql += " AND status = ?"
            params.append(expected_status.value)
        if expected_compliance_id is not None:
            sql += " AND assigned_compliance_id = ?"
            params.append(expected_compliance_id)

        cursor = await self._conn.execute(sql, params)
        return cursor.rowcount > 0

    async def count_workload(
        self,
        reviewer_ids: list[str],
        statuses: tuple[TaskStatus, ...],
    ) -> dict[str, int]:
        """统计每个审核人在指定状态下的任务数（无任务的审核人计 0）"""
        if not reviewer_ids:
            return {}
        id_marks = ", ".join("?" for _ in reviewer_ids)
        status_marks = ", ".join("?" for _ in statuses)
        cursor = await self._conn.execute(
            f"""
            SELECT assigned_compliance_id, COUNT(*) FROM tasks
            WHERE assigned_compliance_id IN ({id_marks})
              AND status IN ({status_marks})
            GROUP BY assigned_compliance_id
            """,
            [*reviewer_ids, *(s.value for s in statuses)],
        )
        rows = await cursor.fetchall()
        counts = {rid: 0 for rid in reviewer_ids}
        counts.update({r[0]: r[1] for r in rows})
        return counts

    async def list_for_reviewer(
        self,
        reviewer_id: str,
        statuses: tuple[TaskStatus, ...],
    ) -> list[Task]:
        """查询审核人名下指定状态的任务，按创建时间正序"""
        marks = ", ".join("?" for _ in statuses)
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks "
            f"WHERE assigned_compliance_id = ? AND status IN ({marks}) "
            "ORDER BY created_at ASC, rowid ASC",
            [reviewer_id, *(s.value for s in statuses)],
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(r) for r in rows]

    async def list_expired(
        self,
        today: date,
        statuses: tuple[TaskStatus, ...],
    ) -> list[Task]:
        """查询到期日早于 today 且处于指定状态的任务"""
        marks = ", ".join("?" for _ in statuses)
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks "
            f"WHERE expiry_date IS NOT NULL AND expiry_date < ? AND status IN ({marks}) "
            "ORDER BY expiry_date ASC, rowid ASC",
            [today.isoformat(), *(s.value for s in statuses)],
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(r) for r in rows]

    async def list_expiring_between(
        self,
        start: date,
        end: date,
        statuses: tuple[TaskStatus, ...],
    ) -> list[Task]:
        """查询到期日落在 [start, end] 且处于指定状态的任务"""
        marks = ", ".join("?" for _ in statuses)
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks "
            f"WHERE expiry_date >= ? AND expiry_date <= ? AND status IN ({marks}) "
            "ORDER BY expiry_date ASC, rowid ASC",
            [start.isoformat(), end.isoformat(), *(s.value for s in statuses)],
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(r) for r in rows]

    async def list_stale(
        self,
        cutoff: datetime,
        statuses: tuple[TaskStatus, ...],
    ) -> list[Task]:
        """查询 updated_at 早于 cutoff 的指定状态任务"""
        marks = ", ".join("?" for _ in statuses)
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks "
            f"WHERE updated_at < ? AND status IN ({marks}) ORDER BY updated_at ASC, rowid ASC",
            [db_timestamp(cutoff), *(s.value for s in statuses)],
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(r) for r in rows]

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            task_id=row[0],
            uin=row[1],
            title=row[2],
            description=row[3],
            task_type=row[4],
            status=row[5],
            created_by=row[6],
            assigned_product_ids=json.loads(row[7]) if row[7] else [],
            assigned_compliance_id=row[8],
            platform=row[9],
            category=row[10],
            remarks=row[11],
            expected_publish_date=row[12],
            approval_date=row[13],
            expiry_date=row[14],
            publish_date=row[15],
            closure_date=datetime.fromisoformat(row[16]) if row[16] else None,
            closure_remarks=row[17],
            created_at=datetime.fromisoformat(row[18]),
            updated_at=datetime.fromisoformat(row[19]),
        )
