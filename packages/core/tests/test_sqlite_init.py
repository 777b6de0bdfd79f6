"""数据库初始化测试"""

from adreview.core.store.sqlite_init import init_db, verify_wal_mode

EXPECTED_TABLES = {
    "users",
    "absences",
    "tasks",
    "versions",
    "comments",
    "exchange_approvals",
    "audit_logs",
    "notifications",
    "uin_sequences",
}


class TestInitDb:
    async def test_wal_mode(self, core_db):
        assert await verify_wal_mode(core_db)

    async def test_all_tables_created(self, core_db):
        cursor = await core_db.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        names = {row[0] for row in await cursor.fetchall()}

        assert EXPECTED_TABLES <= names

    async def test_init_is_repeatable(self, core_db):
        await init_db(core_db)

        cursor = await core_db.execute("PRAGMA foreign_keys;")
        assert (await cursor.fetchone())[0] == 1
