"""ContentStore SQLite 实现 -- 版本、评论、交易所审批"""

import json
from datetime import date, datetime
from typing import Any

import aiosqlite

from ..models.content import Comment, ExchangeApproval, Version
from ..models.enums import ExchangeApprovalStatus, ExchangeName
from .timestamps import db_timestamp

_VERSION_COLUMNS = "version_id, task_id, version_number, file_urls, remarks, uploaded_by, uploaded_at"
_COMMENT_COLUMNS = (
    "comment_id, task_id, version_id, author_id, content, attachments, is_global, created_at"
)
_APPROVAL_COLUMNS = (
    "approval_id, task_id, exchange_name, type_of_content, approval_status, "
    "approval_date, expiry_date, reference_number, approval_email_url, "
    "updated_by, created_at, updated_at"
)

_APPROVAL_UPDATABLE = {
    "type_of_content",
    "approval_status",
    "approval_date",
    "expiry_date",
    "reference_number",
    "approval_email_url",
}


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


class SqliteContentStore:
    """版本 / 评论 / 交易所审批的 SQLite 实现（均不提交事务）"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    # ---- 版本 ----

    async def add_version(self, version: Version) -> None:
        await self._conn.execute(
            f"INSERT INTO versions ({_VERSION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                version.version_id,
                version.task_id,
                version.version_number,
                json.dumps(version.file_urls, ensure_ascii=False),
                version.remarks,
                version.uploaded_by,
                db_timestamp(version.uploaded_at),
            ),
        )

    async def get_version(self, version_id: str) -> Version | None:
        cursor = await self._conn.execute(
            f"SELECT {_VERSION_COLUMNS} FROM versions WHERE version_id = ?",
            (version_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_version(row) if row else None

    async def list_versions(self, task_id: str) -> list[Version]:
        """查询任务的全部版本，按上传顺序"""
        cursor = await self._conn.execute(
            f"SELECT {_VERSION_COLUMNS} FROM versions WHERE task_id = ? "
            "ORDER BY uploaded_at ASC, rowid ASC",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_version(r) for r in rows]

    async def count_versions(self, task_id: str) -> int:
        cursor = await self._conn.execute(
            "SELECT COUNT(*) FROM versions WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    # ---- 评论 ----

    async def add_comment(self, comment: Comment) -> None:
        await self._conn.execute(
            f"INSERT INTO comments ({_COMMENT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                comment.comment_id,
                comment.task_id,
                comment.version_id,
                comment.author_id,
                comment.content,
                json.dumps(comment.attachments, ensure_ascii=False),
                1 if comment.is_global else 0,
                db_timestamp(comment.created_at),
            ),
        )

    async def list_comments(
        self,
        task_id: str,
        version_id: str | None = None,
    ) -> list[Comment]:
        """查询任务评论，可按版本过滤，按时间正序"""
        if version_id:
            cursor = await self._conn.execute(
                f"SELECT {_COMMENT_COLUMNS} FROM comments "
                "WHERE task_id = ? AND version_id = ? ORDER BY created_at ASC, rowid ASC",
                (task_id, version_id),
            )
        else:
            cursor = await self._conn.execute(
                f"SELECT {_COMMENT_COLUMNS} FROM comments "
                "WHERE task_id = ? ORDER BY created_at ASC, rowid ASC",
                (task_id,),
            )
        rows = await cursor.fetchall()
        return [self._row_to_comment(r) for r in rows]

    async def count_comments(self, task_id: str) -> int:
        cursor = await self._conn.execute(
            "SELECT COUNT(*) FROM comments WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    # ---- 交易所审批 ----

    async def add_exchange_approval(self, approval: ExchangeApproval) -> None:
        await self._conn.execute(
            f"INSERT INTO exchange_approvals ({_APPROVAL_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                approval.approval_id,
                approval.task_id,
                approval.exchange_name.value,
                approval.type_of_content,
                approval.approval_status.value,
                _iso(approval.approval_date),
                _iso(approval.expiry_date),
                approval.reference_number,
                approval.approval_email_url,
                approval.updated_by,
                db_timestamp(approval.created_at),
                db_timestamp(approval.updated_at),
            ),
        )

    async def get_exchange_approval(
        self,
        task_id: str,
        exchange_name: ExchangeName,
    ) -> ExchangeApproval | None:
        cursor = await self._conn.execute(
            f"SELECT {_APPROVAL_COLUMNS} FROM exchange_approvals "
            "WHERE task_id = ? AND exchange_name = ?",
            (task_id, exchange_name.value),
        )
        row = await cursor.fetchone()
        return self._row_to_approval(row) if row else None

    async def list_exchange_approvals(self, task_id: str) -> list[ExchangeApproval]:
        cursor = await self._conn.execute(
            f"SELECT {_APPROVAL_COLUMNS} FROM exchange_approvals "
            "WHERE task_id = ? ORDER BY exchange_name ASC",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_approval(r) for r in rows]

    async def update_exchange_approval(
        self,
        approval_id: str,
        fields: dict[str, Any],
        updated_by: str,
        updated_at: datetime,
    ) -> bool:
        unknown = set(fields) - _APPROVAL_UPDATABLE
        if unknown:
            raise ValueError(f"Unknown exchange approval columns: {sorted(unknown)}")
        params: list[Any] = []
        for value in fields.values():
            if isinstance(value, date):
                params.append(value.isoformat())
            elif isinstance(value, ExchangeApprovalStatus):
                params.append(value.value)
            else:
                params.append(value)
        assignments = [f"{k} = ?" for k in fields]
        assignments.extend(["updated_by = ?", "updated_at = ?"])
        cursor = await self._conn.execute(
            f"UPDATE exchange_approvals SET {', '.join(assignments)} WHERE approval_id = ?",
            [*params, updated_by, db_timestamp(updated_at), approval_id],
        )
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_version(row: aiosqlite.Row) -> Version:
        return Version(
            version_id=row[0],
            task_id=row[1],
            version_number=row[2],
            file_urls=json.loads(row[3]) if row[3] else [],
            remarks=row[4],
            uploaded_by=row[5],
            uploaded_at=datetime.fromisoformat(row[6]),
        )

    @staticmethod
    def _row_to_comment(row: aiosqlite.Row) -> Comment:
        return Comment(
            comment_id=row[0],
            task_id=row[1],
            version_id=row[2],
            author_id=row[3],
            content=row[4],
            attachments=json.loads(row[5]) if row[5] else [],
            is_global=bool(row[6]),
            created_at=datetime.fromisoformat(row[7]),
        )

    @staticmethod
    def _row_to_approval(row: aiosqlite.Row) -> ExchangeApproval:
        return ExchangeApproval(
            approval_id=row[0],
            task_id=row[1],
            exchange_name=ExchangeName(row[2]),
            type_of_content=row[3],
            approval_status=ExchangeApprovalStatus(row[4]),
            approval_date=date.fromisoformat(row[5]) if row[5] else None,
            expiry_date=date.fromisoformat(row[6]) if row[6] else None,
            reference_number=row[7],
            approval_email_url=row[8],
            updated_by=row[9],
            created_at=datetime.fromisoformat(row[10]),
            updated_at=datetime.fromisoformat(row[11]),
        )
