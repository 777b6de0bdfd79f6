"""apps/gateway 测试配置 -- httpx AsyncClient + 固定时钟的服务 fixture"""

import asyncio
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from adreview.core.models import UserRole
from adreview.mailer.models import DeliveryResult
from httpx import ASGITransport, AsyncClient

NOW = datetime(2024, 6, 10, 9, 0, tzinfo=UTC)


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def _reset_task_locks():
    """任务锁为类级共享状态，每个测试使用独立事件循环"""
    from adreview.gateway.services.workflow_service import WorkflowService

    WorkflowService._task_locks = {}
    WorkflowService._task_locks_guard = asyncio.Lock()
    yield
    WorkflowService._task_locks = {}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mailer():
    """Mock MailFallbackManager"""
    m = AsyncMock()
    m.send = AsyncMock(return_value=DeliveryResult(channel="log", message_id="m1"))
    m.health_check = AsyncMock(return_value=True)
    return m


@pytest_asyncio.fixture
async def side_effects(store_group, mailer, clock):
    from adreview.gateway.services.side_effects import SideEffectCoordinator

    return SideEffectCoordinator(
        store_group, mailer=mailer, frontend_url="http://frontend.test", clock=clock
    )


@pytest_asyncio.fixture
async def workflow(store_group, side_effects, clock):
    from adreview.gateway.services.workflow_service import WorkflowService

    return WorkflowService(store_group, side_effects, clock=clock)


@pytest_asyncio.fixture
async def scans(store_group, side_effects, workflow, clock):
    from adreview.gateway.services.scan_service import ScanService

    return ScanService(store_group, workflow, side_effects, clock=clock)


@pytest_asyncio.fixture
async def people(make_user):
    """一组常用角色的用户；reviewer 为唯一的合规审核人"""

    class People:
        pass

    p = People()
    p.admin = await make_user(UserRole.ADMIN, "admin")
    p.reviewer = await make_user(UserRole.COMPLIANCE_USER, "reviewer")
    p.producer = await make_user(UserRole.PRODUCT_USER, "producer")
    p.helper = await make_user(UserRole.PRODUCT_USER, "helper")
    p.manager = await make_user(UserRole.SENIOR_MANAGER, "manager")
    return p


@pytest_asyncio.fixture
async def app(store_group, mailer):
    """测试用 FastAPI app（不经 lifespan，手动挂载 app.state）

    API 路径使用真实时钟，副作用协调器同样不注入 FakeClock。
    """
    from adreview.gateway.main import create_app
    from adreview.gateway.services.side_effects import SideEffectCoordinator

    application = create_app()
    application.state.store_group = store_group
    application.state.side_effects = SideEffectCoordinator(
        store_group, mailer=mailer, frontend_url="http://frontend.test"
    )
    application.state.mailer = mailer
    application.state.scheduler = None
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
