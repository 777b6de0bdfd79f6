"""探活路由

GET /health  进程存活，恒为 200
GET /ready   就绪检查：sqlite 连通、扫描调度器状态；
             ?profile=full 时追加邮件通道探测。任一必需项失败返回 503。
"""

import structlog
from fastapi import APIRouter, Query, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


async def _check_sqlite(app) -> str:
    try:
        cursor = await app.state.store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
    except Exception as e:
        log.warning("ready_sqlite_failed", error_type=type(e).__name__, error=str(e))
        return f"error: {e}"
    return "ok"


def _check_scheduler(app) -> str:
    # 调度器可被配置关闭，disabled 不影响就绪
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is None:
        return "disabled"
    return "running" if scheduler.running else "stopped"


async def _check_mailer(app) -> str:
    mailer = getattr(app.state, "mailer", None)
    if mailer is None:
        return "skipped"
    try:
        healthy = await mailer.health_check()
    except Exception as e:
        log.warning("ready_mailer_failed", error_type=type(e).__name__, error=str(e))
        healthy = False
    return "ok" if healthy else "unreachable"


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    request: Request,
    profile: str = Query(default="core", pattern="^(core|full)$"),
):
    app = request.app
    checks = {
        "sqlite": await _check_sqlite(app),
        "scheduler": _check_scheduler(app),
        "mailer": await _check_mailer(app) if profile == "full" else "skipped",
    }
    failed = [
        name
        for name, state in checks.items()
        if state.startswith("error") or state in ("stopped", "unreachable")
    ]
    if failed:
        log.warning("not_ready", failed=failed, profile=profile)
    return JSONResponse(
        status_code=503 if failed else 200,
        content={
            "status": "not_ready" if failed else "ready",
            "profile": profile,
            "checks": checks,
        },
    )
