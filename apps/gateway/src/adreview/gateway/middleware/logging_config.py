"""structlog 配置

ADREVIEW_LOG_FORMAT=json 输出 JSON 行，其余取值使用控制台渲染；
ADREVIEW_LOG_LEVEL 控制级别。标准库 logging（uvicorn、aiosqlite、httpx）
经同一个 ProcessorFormatter 输出，保证一行一条事件。
"""

import logging
import os

import structlog

# 第三方库只保留 WARNING 及以上，避免淹没审核流程日志
_NOISY_LOGGERS = ("aiosqlite", "httpx", "httpcore")


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging() -> None:
    """初始化 structlog 与根 logger；可重复调用"""
    log_format = os.environ.get("ADREVIEW_LOG_FORMAT", "dev").lower()
    level_name = os.environ.get("ADREVIEW_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format),
            ],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def setup_logfire() -> None:
    """LOGFIRE_SEND_TO_LOGFIRE=true 时接入 Logfire；失败只记一条警告"""
    if os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower() != "true":
        return
    try:
        import logfire

        logfire.configure(service_name="adreview-gateway")
        logfire.instrument_fastapi()
    except Exception as e:
        structlog.get_logger().warning(
            "logfire_init_failed",
            error_type=type(e).__name__,
            error=str(e),
        )
