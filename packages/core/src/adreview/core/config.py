"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、UIN 前缀、定时扫描周期、到期提醒天数等可配置项。
"""

import os
from pathlib import Path

import structlog

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("ADREVIEW_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "ADREVIEW_DB_PATH",
        str(_get_base_dir() / "sqlite" / "adreview.db"),
    )


def _int_env(name: str, default: int) -> int:
    """读取整数环境变量，非法值回退默认值"""
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning("invalid_int_config", env_var=name, value=raw, fallback=default)
        return default


def get_uin_prefix() -> str:
    """UIN 前缀（默认 ACT）"""
    return os.environ.get("ADREVIEW_UIN_PREFIX", "ACT")


def get_expiry_warning_days() -> list[int]:
    """到期提醒提前天数列表，逗号分隔（默认 15,7,1）"""
    raw = os.environ.get("ADREVIEW_EXPIRY_WARNING_DAYS", "15,7,1")
    days: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            days.append(int(part))
        except ValueError:
            log.warning(
                "invalid_expiry_warning_day",
                env_var="ADREVIEW_EXPIRY_WARNING_DAYS",
                value=part,
            )
    return days or [15, 7, 1]


def get_stale_task_days() -> int:
    """任务停滞判定天数"""
    return _int_env("ADREVIEW_STALE_TASK_DAYS", 7)


def get_notification_retention_days() -> int:
    """已读通知保留天数"""
    return _int_env("ADREVIEW_NOTIFICATION_RETENTION_DAYS", 90)


def get_scan_interval_s() -> int:
    """定时扫描间隔（秒）"""
    return _int_env("ADREVIEW_SCAN_INTERVAL_S", 86400)


def is_scheduler_enabled() -> bool:
    """是否在 gateway 进程内启动定时扫描"""
    return os.environ.get("ADREVIEW_SCHEDULER_ENABLED", "true").lower() == "true"


# 系统操作者 ID（定时任务以此身份写审计）
SYSTEM_ACTOR_ID: str = "SYSTEM"

# 自动过期时写入的关闭备注
EXPIRY_CLOSURE_REMARK: str = "Automatically expired due to expiry date"

# 任务列表分页默认值
DEFAULT_PAGE_LIMIT: int = 20
MAX_PAGE_LIMIT: int = 100
