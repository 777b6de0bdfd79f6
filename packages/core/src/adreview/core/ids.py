"""实体 ID 生成

ID 为 24 位小写十六进制串：48 bit 毫秒时间戳（取自 ULID）+ 48 bit 新随机数，
按创建时间有序。同一毫秒内的 ULID 只递增低位，不能截取 ULID 前缀作 ID。
审计记录沿用完整 ULID 字符串。
"""

import secrets

from ulid import ULID


def new_id() -> str:
    """生成 24 位十六进制实体 ID"""
    return f"{ULID().milliseconds:012x}{secrets.token_hex(6)}"


def new_audit_id() -> str:
    """生成审计记录 ID（ULID 字符串）"""
    return str(ULID())
