"""UIN 生成 -- <PREFIX><YEAR><三位序号>

序号按年持久化（uin_sequences 表），在创建任务的同一写事务内自增。
序号超过 999 时按实际位数输出，不截断。
"""

from datetime import datetime

from .config import get_uin_prefix
from .store.sequence_store import SqliteSequenceStore


def format_uin(prefix: str, year: int, seq: int) -> str:
    """格式化 UIN，例如 ACT2024001"""
    return f"{prefix}{year}{seq:03d}"


async def next_uin(
    sequence_store: SqliteSequenceStore,
    now: datetime,
    prefix: str | None = None,
) -> str:
    """分配下一个 UIN（需在写事务内调用）"""
    seq = await sequence_store.next_value(now.year)
    return format_uin(prefix if prefix is not None else get_uin_prefix(), now.year, seq)
