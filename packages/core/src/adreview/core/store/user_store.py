"""UserStore / AbsenceStore SQLite 实现

审核人候选顺序固定为 (created_at, user_id) 升序，
负载均衡的平局裁决依赖此顺序。
"""

from datetime import date, datetime
from typing import Any

import aiosqlite

from ..models.enums import UserRole
from ..models.user import Absence, User
from .timestamps import db_timestamp

_USER_COLUMNS = "user_id, username, full_name, email, role, is_active, created_at"
_ABSENCE_COLUMNS = "absence_id, user_id, from_date, to_date, reason, created_by, created_at"

_USER_UPDATABLE = {"full_name", "email", "role", "is_active"}


class SqliteUserStore:
    """UserStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_user(self, user: User) -> None:
        """创建用户（不提交事务）"""
        await self._conn.execute(
            f"INSERT INTO users ({_USER_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                user.user_id,
                user.username,
                user.full_name,
                user.email,
                user.role.value,
                1 if user.is_active else 0,
                db_timestamp(user.created_at),
            ),
        )

    async def get_user(self, user_id: str) -> User | None:
        cursor = await self._conn.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_user(row) if row else None

    async def get_user_by_username(self, username: str) -> User | None:
        cursor = await self._conn.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE username = ?",
            (username,),
        )
        row = await cursor.fetchone()
        return self._row_to_user(row) if row else None

    async def get_users(self, user_ids: list[str]) -> list[User]:
        """批量查询用户，忽略不存在的 id"""
        if not user_ids:
            return []
        marks = ", ".join("?" for _ in user_ids)
        cursor = await self._conn.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE user_id IN ({marks}) "
            "ORDER BY created_at ASC, user_id ASC",
            user_ids,
        )
        rows = await cursor.fetchall()
        return [self._row_to_user(r) for r in rows]

    async def list_users(
        self,
        roles: tuple[UserRole, ...] | None = None,
        active_only: bool = False,
    ) -> list[User]:
        """按角色筛选用户，顺序为 (created_at, user_id) 升序"""
        clauses: list[str] = []
        params: list[Any] = []
        if roles:
            marks = ", ".join("?" for _ in roles)
            clauses.append(f"role IN ({marks})")
            params.extend(r.value for r in roles)
        if active_only:
            clauses.append("is_active = 1")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = await self._conn.execute(
            f"SELECT {_USER_COLUMNS} FROM users {where} ORDER BY created_at ASC, user_id ASC",
            params,
        )
        rows = await cursor.fetchall()
        return [self._row_to_user(r) for r in rows]

    async def update_user(self, user_id: str, fields: dict[str, Any]) -> bool:
        """更新用户字段（不提交事务）"""
        unknown = set(fields) - _USER_UPDATABLE
        if unknown:
            raise ValueError(f"Unknown user columns: {sorted(unknown)}")
        if not fields:
            return False
        params: list[Any] = []
        for key, value in fields.items():
            if key == "is_active":
                params.append(1 if value else 0)
            elif isinstance(value, UserRole):
                params.append(value.value)
            else:
                params.append(value)
        assignments = ", ".join(f"{k} = ?" for k in fields)
        cursor = await self._conn.execute(
            f"UPDATE users SET {assignments} WHERE user_id = ?",
            [*params, user_id],
        )
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_user(row: aiosqlite.Row) -> User:
        return User(
            user_id=row[0],
            username=row[1],
            full_name=row[2],
            email=row[3],
            role=UserRole(row[4]),
            is_active=bool(row[5]),
            created_at=datetime.fromisoformat(row[6]),
        )


class SqliteAbsenceStore:
    """AbsenceStore 的 SQLite 实现

    日期以 ISO 字符串存储，字典序与日期序一致。
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_absence(self, absence: Absence) -> None:
        await self._conn.execute(
            f"INSERT INTO absences ({_ABSENCE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                absence.absence_id,
                absence.user_id,
                absence.from_date.isoformat(),
                absence.to_date.isoformat(),
                absence.reason,
                absence.created_by,
                db_timestamp(absence.created_at),
            ),
        )

    async def get_absence(self, absence_id: str) -> Absence | None:
        cursor = await self._conn.execute(
            f"SELECT {_ABSENCE_COLUMNS} FROM absences WHERE absence_id = ?",
            (absence_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_absence(row) if row else None

    async def delete_absence(self, absence_id: str) -> bool:
        cursor = await self._conn.execute(
            "DELETE FROM absences WHERE absence_id = ?",
            (absence_id,),
        )
        return cursor.rowcount > 0

    async def list_absences(self, user_id: str | None = None) -> list[Absence]:
        """查询缺勤记录，按开始日期倒序"""
        if user_id:
            cursor = await self._conn.execute(
                f"SELECT {_ABSENCE_COLUMNS} FROM absences WHERE user_id = ? "
                "ORDER BY from_date DESC",
                (user_id,),
            )
        else:
            cursor = await self._conn.execute(
                f"SELECT {_ABSENCE_COLUMNS} FROM absences ORDER BY from_date DESC"
            )
        rows = await cursor.fetchall()
        return [self._row_to_absence(r) for r in rows]

    async def find_overlapping(
        self,
        user_id: str,
        from_date: date,
        to_date: date,
    ) -> list[Absence]:
        """查询与闭区间 [from_date, to_date] 重叠的同用户缺勤"""
        cursor = await self._conn.execute(
            f"SELECT {_ABSENCE_COLUMNS} FROM absences "
            "WHERE user_id = ? AND from_date <= ? AND to_date >= ?",
            (user_id, to_date.isoformat(), from_date.isoformat()),
        )
        rows = await cursor.fetchall()
        return [self._row_to_absence(r) for r in rows]

    async def list_covering(self, day: date) -> list[Absence]:
        """查询覆盖指定日期的缺勤记录"""
        cursor = await self._conn.execute(
            f"SELECT {_ABSENCE_COLUMNS} FROM absences "
            "WHERE from_date <= ? AND to_date >= ? ORDER BY user_id ASC",
            (day.isoformat(), day.isoformat()),
        )
        rows = await cursor.fetchall()
        return [self._row_to_absence(r) for r in rows]

    async def absent_user_ids(self, day: date) -> set[str]:
        """指定日期缺勤的用户集合"""
        return {a.user_id for a in await self.list_covering(day)}

    @staticmethod
    def _row_to_absence(row: aiosqlite.Row) -> Absence:
        return Absence(
            absence_id=row[0],
            user_id=row[1],
            from_date=date.fromisoformat(row[2]),
            to_date=date.fromisoformat(row[3]),
            reason=row[4],
            created_by=row[5],
            created_at=datetime.fromisoformat(row[6]),
        )
