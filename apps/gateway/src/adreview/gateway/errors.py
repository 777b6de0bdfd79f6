"""领域异常 -> HTTP 响应映射

所有错误响应统一为 {"error": {"code", "message"}}。
"""

import structlog
from adreview.core.exceptions import (
    NoAvailableReviewer,
    NotFound,
    PermissionDenied,
    TaskStatusConflictError,
    ValidationFailed,
    WorkflowError,
)
from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()


class AuthenticationRequired(WorkflowError):
    """请求未携带有效操作者"""

    code = "UNAUTHENTICATED"


# 按 MRO 顺序匹配，子类在前
_STATUS_BY_TYPE: tuple[tuple[type[WorkflowError], int], ...] = (
    (AuthenticationRequired, 401),
    (ValidationFailed, 400),
    (NotFound, 404),
    (PermissionDenied, 403),
    (NoAvailableReviewer, 409),
    (TaskStatusConflictError, 409),
)


def status_for(exc: WorkflowError) -> int:
    """领域异常对应的 HTTP 状态码"""
    for exc_type, status_code in _STATUS_BY_TYPE:
        if isinstance(exc, exc_type):
            return status_code
    return 500


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    status_code = status_for(exc)
    log.info(
        "workflow_error",
        code=exc.code,
        status_code=status_code,
        message=exc.message,
    )
    return error_response(status_code, exc.code, exc.message)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WorkflowError, workflow_error_handler)
