"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio


@pytest_asyncio.fixture
async def core_db(tmp_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """核心层已初始化数据库连接"""
    from adreview.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(tmp_path / "core_test.db"))
    conn.row_factory = aiosqlite.Row
    await init_db(conn)
    yield conn
    await conn.close()


@pytest.fixture
def task_factory():
    """构造内存中的 Task（不落库）"""
    from adreview.core.ids import new_id
    from adreview.core.models import Task, TaskStatus

    def _make(status: TaskStatus = TaskStatus.OPEN, **overrides) -> Task:
        now = datetime(2024, 6, 1, 9, 0, tzinfo=UTC)
        data = {
            "task_id": new_id(),
            "uin": "ACT2024001",
            "title": "Summer campaign banner",
            "status": status,
            "created_by": "producer000000000000000",
            "assigned_product_ids": [],
            "assigned_compliance_id": "reviewer000000000000000",
            "created_at": now,
            "updated_at": now,
        }
        data.update(overrides)
        return Task(**data)

    return _make
