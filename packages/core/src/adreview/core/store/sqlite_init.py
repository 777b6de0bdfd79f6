"""SQLite 数据库初始化

PRAGMA 配置 + 表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

_USERS_DDL = """
CREATE TABLE IF NOT EXISTS users (
    user_id     TEXT PRIMARY KEY,
    username    TEXT NOT NULL UNIQUE,
    full_name   TEXT NOT NULL,
    email       TEXT NOT NULL DEFAULT '',
    role        TEXT NOT NULL,
    is_active   INTEGER NOT NULL DEFAULT 1,
    created_at  TEXT NOT NULL
);
"""

_ABSENCES_DDL = """
CREATE TABLE IF NOT EXISTS absences (
    absence_id  TEXT PRIMARY KEY,
    user_id     TEXT NOT NULL,
    from_date   TEXT NOT NULL,
    to_date     TEXT NOT NULL,
    reason      TEXT NOT NULL DEFAULT '',
    created_by  TEXT NOT NULL,
    created_at  TEXT NOT NULL,

    FOREIGN KEY (user_id) REFERENCES users(user_id)
);
"""

# assigned_product_ids 以 JSON 数组存储，查询时使用 json_each
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id                 TEXT PRIMARY KEY,
    uin                     TEXT NOT NULL UNIQUE,
    title                   TEXT NOT NULL,
    description             TEXT NOT NULL DEFAULT '',
    task_type               TEXT NOT NULL DEFAULT 'INTERNAL',
    status                  TEXT NOT NULL DEFAULT 'OPEN',
    created_by              TEXT NOT NULL,
    assigned_product_ids    TEXT NOT NULL DEFAULT '[]',
    assigned_compliance_id  TEXT NOT NULL,
    platform                TEXT NOT NULL DEFAULT '',
    category                TEXT NOT NULL DEFAULT '',
    remarks                 TEXT NOT NULL DEFAULT '',
    expected_publish_date   TEXT,
    approval_date           TEXT,
    expiry_date             TEXT,
    publish_date            TEXT,
    closure_date            TEXT,
    closure_remarks         TEXT,
    created_at              TEXT NOT NULL,
    updated_at              TEXT NOT NULL,

    FOREIGN KEY (assigned_compliance_id) REFERENCES users(user_id)
);
"""

_VERSIONS_DDL = """
CREATE TABLE IF NOT EXISTS versions (
    version_id      TEXT PRIMARY KEY,
    task_id         TEXT NOT NULL,
    version_number  TEXT NOT NULL,
    file_urls       TEXT NOT NULL DEFAULT '[]',
    remarks         TEXT NOT NULL DEFAULT '',
    uploaded_by     TEXT NOT NULL,
    uploaded_at     TEXT NOT NULL,

    FOREIGN KEY (task_id) REFERENCES tasks(task_id)
);
"""

_COMMENTS_DDL = """
CREATE TABLE IF NOT EXISTS comments (
    comment_id   TEXT PRIMARY KEY,
    task_id      TEXT NOT NULL,
    version_id   TEXT,
    author_id    TEXT NOT NULL,
    content      TEXT NOT NULL,
    attachments  TEXT NOT NULL DEFAULT '[]',
    is_global    INTEGER NOT NULL DEFAULT 0,
    created_at   TEXT NOT NULL,

    FOREIGN KEY (task_id) REFERENCES tasks(task_id),
    FOREIGN KEY (version_id) REFERENCES versions(version_id)
);
"""

_EXCHANGE_APPROVALS_DDL = """
CREATE TABLE IF NOT EXISTS exchange_approvals (
    approval_id         TEXT PRIMARY KEY,
    task_id             TEXT NOT NULL,
    exchange_name       TEXT NOT NULL,
    type_of_content     TEXT NOT NULL,
    approval_status     TEXT NOT NULL DEFAULT 'NOT_SENT',
    approval_date       TEXT,
    expiry_date         TEXT,
    reference_number    TEXT,
    approval_email_url  TEXT,
    updated_by          TEXT NOT NULL,
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL,

    FOREIGN KEY (task_id) REFERENCES tasks(task_id)
);
"""

# 审计表 append-only：只允许插入
_AUDIT_LOGS_DDL = """
CREATE TABLE IF NOT EXISTS audit_logs (
    audit_id   TEXT PRIMARY KEY,
    ts         TEXT NOT NULL,
    action     TEXT NOT NULL,
    detail     TEXT NOT NULL DEFAULT '',
    actor_id   TEXT NOT NULL,
    task_id    TEXT
);
"""

_NOTIFICATIONS_DDL = """
CREATE TABLE IF NOT EXISTS notifications (
    notification_id  TEXT PRIMARY KEY,
    user_id          TEXT NOT NULL,
    type             TEXT NOT NULL,
    title            TEXT NOT NULL,
    message          TEXT NOT NULL,
    task_id          TEXT,
    is_read          INTEGER NOT NULL DEFAULT 0,
    created_at       TEXT NOT NULL
);
"""

# 按年持久化的 UIN 序列
_UIN_SEQUENCES_DDL = """
CREATE TABLE IF NOT EXISTS uin_sequences (
    year        INTEGER PRIMARY KEY,
    last_value  INTEGER NOT NULL DEFAULT 0
);
"""

_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_users_role ON users(role, is_active);",
    "CREATE INDEX IF NOT EXISTS idx_absences_user ON absences(user_id, from_date, to_date);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_compliance ON tasks(assigned_compliance_id, status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_expiry ON tasks(expiry_date);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_updated_at ON tasks(updated_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_versions_task ON versions(task_id, uploaded_at);",
    "CREATE INDEX IF NOT EXISTS idx_comments_task ON comments(task_id, created_at);",
    # 每个任务每个交易所至多一条审批记录
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_exchange_approvals_task_exchange "
        "ON exchange_approvals(task_id, exchange_name);"
    ),
    "CREATE INDEX IF NOT EXISTS idx_audit_logs_task ON audit_logs(task_id, ts);",
    "CREATE INDEX IF NOT EXISTS idx_audit_logs_ts ON audit_logs(ts DESC);",
    "CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id, is_read);",
]

_TABLES = [
    _USERS_DDL,
    _ABSENCES_DDL,
    _TASKS_DDL,
    _VERSIONS_DDL,
    _COMMENTS_DDL,
    _EXCHANGE_APPROVALS_DDL,
    _AUDIT_LOGS_DDL,
    _NOTIFICATIONS_DDL,
    _UIN_SEQUENCES_DDL,
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    for ddl in _TABLES:
        await conn.execute(ddl)

    for idx_sql in _INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
