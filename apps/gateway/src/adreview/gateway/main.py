"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭、邮件通道、副作用协调器、
进程内扫描调度器、路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from adreview.core.config import get_db_path, get_scan_interval_s, is_scheduler_enabled
from adreview.core.store import create_store_group
from adreview.mailer import build_mailer, load_mailer_config
from fastapi import FastAPI

from .errors import register_error_handlers
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import absences, audit, health, notifications, reports, scans, tasks, users
from .services.scan_service import ScanService
from .services.scheduler import ScanScheduler
from .services.side_effects import SideEffectCoordinator
from .services.workflow_service import WorkflowService

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB、邮件通道和调度器，关闭时清理"""
    store_group = await create_store_group(get_db_path())
    app.state.store_group = store_group

    mailer_config = load_mailer_config()
    mailer = build_mailer(mailer_config)
    app.state.mailer = mailer
    side_effects = SideEffectCoordinator(
        store_group,
        mailer=mailer,
        frontend_url=mailer_config.frontend_url,
    )
    app.state.side_effects = side_effects
    log.info("mailer_initialized", mode=mailer_config.mail_mode)

    scheduler = None
    if is_scheduler_enabled():
        workflow = WorkflowService(store_group, side_effects)
        scheduler = ScanScheduler(
            ScanService(store_group, workflow, side_effects),
            interval_s=get_scan_interval_s(),
        )
        scheduler.start()
    else:
        log.info("scan_scheduler_disabled")
    app.state.scheduler = scheduler

    yield

    if scheduler is not None:
        await scheduler.stop()
    if getattr(app.state, "store_group", None):
        await app.state.store_group.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="AdReview Gateway",
        version="0.1.0",
        description="广告内容合规审核工作流 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_logging()
    setup_logfire()

    register_error_handlers(app)

    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(absences.router, tags=["absences"])
    app.include_router(users.router, tags=["users"])
    app.include_router(notifications.router, tags=["notifications"])
    app.include_router(audit.router, tags=["audit"])
    app.include_router(reports.router, tags=["reports"])
    app.include_router(scans.router, tags=["scans"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
