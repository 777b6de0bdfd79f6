"""UIN 序列 SQLite 实现 -- 按年持久化计数器

next_value 必须在写事务内调用，与任务插入一同提交；
事务回滚时序列值同步回滚，不会出现空号。
"""

import aiosqlite


class SqliteSequenceStore:
    """按年递增的序列计数器"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def next_value(self, year: int) -> int:
        """自增并返回指定年份的下一个序号（从 1 开始）"""
        await self._conn.execute(
            """
            INSERT INTO uin_sequences (year, last_value) VALUES (?, 1)
            ON CONFLICT(year) DO UPDATE SET last_value = last_value + 1
            """,
            (year,),
        )
        return await self.current_value(year)

    async def current_value(self, year: int) -> int:
        cursor = await self._conn.execute(
            "SELECT last_value FROM uin_sequences WHERE year = ?",
            (year,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0
