"""全局 pytest 配置 -- 临时 SQLite 数据库与用户工厂 fixture"""

import itertools
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """测试环境：禁用调度器与 Logfire，数据目录指向临时目录"""
    monkeypatch.setenv("ADREVIEW_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("ADREVIEW_SCHEDULER_ENABLED", "false")
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")
    monkeypatch.setenv("ADREVIEW_MAIL_MODE", "log")


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "test.db"


@pytest_asyncio.fixture
async def store_group(tmp_db_path: Path) -> AsyncGenerator:
    """提供已初始化的 StoreGroup"""
    from adreview.core.store import create_store_group

    sg = await create_store_group(str(tmp_db_path))
    yield sg
    await sg.close()


@pytest_asyncio.fixture
async def make_user(store_group):
    """用户工厂：created_at 逐个递增，保证候选顺序稳定

    用法: user = await make_user(UserRole.COMPLIANCE_USER, "alice")
    """
    from adreview.core.ids import new_id
    from adreview.core.models import User

    counter = itertools.count()
    base = datetime(2024, 1, 1, tzinfo=UTC)

    async def _make(role, username: str | None = None, is_active: bool = True, email: str = ""):
        n = next(counter)
        name = username or f"user{n}"
        user = User(
            user_id=new_id(),
            username=name,
            full_name=name.capitalize(),
            email=email or f"{name}@example.com",
            role=role,
            is_active=is_active,
            created_at=base + timedelta(minutes=n),
        )
        async with store_group.transaction():
            await store_group.user_store.create_user(user)
        return user

    return _make
