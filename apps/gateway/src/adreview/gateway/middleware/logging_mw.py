"""LoggingMiddleware -- 请求级日志

每个请求分配 ULID request_id，连同操作者 X-User-Id 绑定到 structlog contextvars，
结束时记录状态码与耗时，并通过 X-Request-ID 响应头返回。
探活路由不记录开始/结束日志。
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

log = structlog.get_logger()

_QUIET_PATHS = frozenset({"/health", "/ready"})


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = str(ULID())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            actor_id=request.headers.get("X-User-Id") or "anonymous",
        )

        quiet = request.url.path in _QUIET_PATHS
        started = time.perf_counter()
        if not quiet:
            await log.ainfo("request_started")

        response = await call_next(request)

        if not quiet:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
            level = "warning" if response.status_code >= 500 else "info"
            await getattr(log, f"a{level}")(
                "request_completed",
                status_code=response.status_code,
                duration_ms=elapsed_ms,
            )
        response.headers["X-Request-ID"] = request_id
        return response
