"""TraceMiddleware -- 任务级追踪

任务路由（/api/tasks/{task_id}/...）绑定 trace_id=trace-<task_id>，
贯穿同一任务的审核流程日志。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# 实体 id 为 24 位十六进制
_TASK_ID_LEN = 24


def extract_task_id(path: str) -> str | None:
    """从路径中提取 task_id，非任务路由返回 None"""
    parts = path.strip("/").split("/")
    for i, part in enumerate(parts):
        if part == "tasks" and i + 1 < len(parts):
            candidate = parts[i + 1]
            if len(candidate) == _TASK_ID_LEN and all(
                c in "0123456789abcdef" for c in candidate.lower()
            ):
                return candidate
    return None


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        task_id = extract_task_id(request.url.path)
        if task_id:
            structlog.contextvars.bind_contextvars(trace_id=f"trace-{task_id}")

        return await call_next(request)
