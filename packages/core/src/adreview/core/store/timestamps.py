"""时间列编码

所有 datetime 列统一存为 UTC、定宽微秒精度的 ISO 字符串，
使 SQL 中的字符串比较等价于时间比较。naive 值视为 UTC。
"""

from datetime import UTC, datetime


def db_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")
