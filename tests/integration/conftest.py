"""集成测试共享 fixture"""

import asyncio
import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from adreview.core.store import create_store_group
from adreview.mailer import build_mailer, load_mailer_config
from httpx import ASGITransport, AsyncClient


@pytest.fixture(autouse=True)
def _reset_task_locks():
    from adreview.gateway.services.workflow_service import WorkflowService

    WorkflowService._task_locks = {}
    WorkflowService._task_locks_guard = asyncio.Lock()
    yield
    WorkflowService._task_locks = {}


def _attach_state(app, store_group) -> None:
    """按 lifespan 的方式挂载依赖（调度器关闭，邮件走日志通道）"""
    from adreview.gateway.services.side_effects import SideEffectCoordinator

    config = load_mailer_config()
    mailer = build_mailer(config)
    app.state.store_group = store_group
    app.state.mailer = mailer
    app.state.side_effects = SideEffectCoordinator(
        store_group, mailer=mailer, frontend_url=config.frontend_url
    )
    app.state.scheduler = None


@pytest.fixture
def attach_state():
    return _attach_state


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path):
    """集成测试用 FastAPI app"""
    os.environ["ADREVIEW_DB_PATH"] = str(tmp_path / "integration.db")

    from adreview.gateway.main import create_app

    app = create_app()
    store_group = await create_store_group(str(tmp_path / "integration.db"))
    _attach_state(app, store_group)

    yield app

    await store_group.close()
    os.environ.pop("ADREVIEW_DB_PATH", None)


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def api_user(client, integration_app):
    """通过 API 创建用户；首个管理员直接写库"""
    from datetime import UTC, datetime

    from adreview.core.ids import new_id
    from adreview.core.models import User, UserRole

    sg = integration_app.state.store_group
    admin = User(
        user_id=new_id(),
        username="root",
        full_name="Root Admin",
        email="root@example.com",
        role=UserRole.ADMIN,
        created_at=datetime.now(UTC),
    )
    async with sg.transaction():
        await sg.user_store.create_user(admin)

    async def _make(username: str, role: str) -> str:
        resp = await client.post(
            "/api/users",
            json={
                "username": username,
                "full_name": username.capitalize(),
                "email": f"{username}@example.com",
                "role": role,
            },
            headers={"X-User-Id": admin.user_id},
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["user"]["user_id"]

    _make.admin_id = admin.user_id
    return _make
