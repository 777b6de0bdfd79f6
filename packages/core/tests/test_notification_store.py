"""NotificationStore / AuditStore 测试"""

from datetime import UTC, datetime, timedelta, timezone

from adreview.core.ids import new_audit_id, new_id
from adreview.core.models import AuditAction, AuditRecord, Notification, NotificationType
from adreview.core.store import AuditFilter

NOW = datetime(2024, 6, 10, 12, 0, tzinfo=UTC)


def _notification(user_id: str, created_at: datetime, **overrides) -> Notification:
    data = {
        "notification_id": new_id(),
        "user_id": user_id,
        "type": NotificationType.TASK_ASSIGNED,
        "title": "New Task Assigned",
        "message": "Task assigned",
        "created_at": created_at,
    }
    data.update(overrides)
    return Notification(**data)


class TestNotificationStore:
    async def test_list_and_unread_count(self, store_group):
        store = store_group.notification_store
        async with store_group.transaction():
            for i in range(3):
                await store.create(_notification("u1", NOW + timedelta(minutes=i)))
            await store.create(_notification("u2", NOW))

        items, total = await store.list_for_user("u1", page=1, limit=2)

        assert total == 3
        assert len(items) == 2
        assert items[0].created_at > items[1].created_at
        assert await store.unread_count("u1") == 3

    async def test_read_state_is_owner_only(self, store_group):
        store = store_group.notification_store
        note = _notification("u1", NOW)
        async with store_group.transaction():
            await store.create(note)

        async with store_group.transaction():
            assert not await store.mark_read(note.notification_id, "u2")
            assert await store.mark_read(note.notification_id, "u1")
        assert await store.unread_count("u1") == 0
        _, unread_total = await store.list_for_user("u1", unread_only=True)
        assert unread_total == 0

        async with store_group.transaction():
            assert await store.mark_unread(note.notification_id, "u1")
            assert await store.mark_all_read("u1") == 1
            assert not await store.delete(note.notification_id, "u2")
            assert await store.delete(note.notification_id, "u1")
        _, total = await store.list_for_user("u1")
        assert total == 0

    async def test_exists_since(self, store_group):
        store = store_group.notification_store
        async with store_group.transaction():
            await store.create(
                _notification("u1", NOW, type=NotificationType.FOLLOW_UP, task_id="t1")
            )

        assert await store.exists_since("t1", NotificationType.FOLLOW_UP, NOW - timedelta(hours=1))
        assert not await store.exists_since(
            "t1", NotificationType.FOLLOW_UP, NOW + timedelta(hours=1)
        )
        assert not await store.exists_since(
            "t1", NotificationType.EXPIRY_WARNING, NOW - timedelta(hours=1)
        )

    async def test_delete_read_before_keeps_unread(self, store_group):
        store = store_group.notification_store
        old_read = _notification("u1", NOW - timedelta(days=40), is_read=True)
        old_unread = _notification("u1", NOW - timedelta(days=40))
        fresh_read = _notification("u1", NOW, is_read=True)
        async with store_group.transaction():
            for n in (old_read, old_unread, fresh_read):
                await store.create(n)

        async with store_group.transaction():
            deleted = await store.delete_read_before(NOW - timedelta(days=30))

        assert deleted == 1
        items, _ = await store.list_for_user("u1")
        assert {n.notification_id for n in items} == {
            old_unread.notification_id,
            fresh_read.notification_id,
        }


    async def test_delete_read_is_per_user(self, store_group):
        store = store_group.notification_store
        mine_read = _notification("u1", NOW, is_read=True)
        mine_unread = _notification("u1", NOW)
        theirs_read = _notification("u2", NOW, is_read=True)
        async with store_group.transaction():
            for n in (mine_read, mine_unread, theirs_read):
                await store.create(n)

        async with store_group.transaction():
            deleted = await store.delete_read("u1")

        assert deleted == 1
        mine, _ = await store.list_for_user("u1")
        assert [n.notification_id for n in mine] == [mine_unread.notification_id]
        theirs, _ = await store.list_for_user("u2")
        assert [n.notification_id for n in theirs] == [theirs_read.notification_id]

class TestAuditStore:
    async def _append(self, store_group, **overrides) -> AuditRecord:
        data = {
            "audit_id": new_audit_id(),
            "ts": NOW,
            "action": AuditAction.TASK_CREATED,
            "detail": "Task created",
            "actor_id": "u1",
            "task_id": "t1",
        }
        data.update(overrides)
        record = AuditRecord(**data)
        async with store_group.transaction():
            await store_group.audit_store.append(record)
        return record

    async def test_list_for_task_in_time_order(self, store_group):
        later = await self._append(store_group, ts=NOW + timedelta(minutes=5))
        earlier = await self._append(store_group)

        records = await store_group.audit_store.list_for_task("t1")

        assert [r.audit_id for r in records] == [earlier.audit_id, later.audit_id]

    async def test_query_filters(self, store_group):
        await self._append(store_group)
        await self._append(
            store_group, action=AuditAction.TASK_STATUS_CHANGED, detail="Status changed"
        )
        await self._append(store_group, actor_id="SYSTEM", task_id=None, detail="System event")

        records, total = await store_group.audit_store.query(
            AuditFilter(action=AuditAction.TASK_STATUS_CHANGED)
        )
        assert total == 1 and records[0].detail == "Status changed"

        _, total = await store_group.audit_store.query(AuditFilter(actor_id="SYSTEM"))
        assert total == 1

        _, total = await store_group.audit_store.query()
        assert total == 3

    async def test_time_range_with_offset_timezone(self, store_group):
        # ts = 2024-06-10 12:00Z
        record = await self._append(store_group)
        ist = timezone(timedelta(hours=5, minutes=30))

        # 17:00+05:30 == 11:30Z
        records, total = await store_group.audit_store.query(
            AuditFilter(ts_from=datetime(2024, 6, 10, 17, 0, tzinfo=ist))
        )
        assert total == 1 and records[0].audit_id == record.audit_id

        # 18:00+05:30 == 12:30Z
        _, total = await store_group.audit_store.query(
            AuditFilter(ts_from=datetime(2024, 6, 10, 18, 0, tzinfo=ist))
        )
        assert total == 0

        _, total = await store_group.audit_store.query(
            AuditFilter(ts_to=datetime(2024, 6, 10, 17, 0, tzinfo=ist))
        )
        assert total == 0

    async def test_exists_and_count(self, store_group):
        await self._append(
            store_group, action=AuditAction.EXPIRY_WARNING_SENT, detail="warning 7 days"
        )

        store = store_group.audit_store
        assert await store.exists("t1", AuditAction.EXPIRY_WARNING_SENT, "warning 7 days")
        assert not await store.exists("t1", AuditAction.EXPIRY_WARNING_SENT, "warning 1 days")
        assert await store.count("t1") == 1
        assert await store.count("t1", AuditAction.TASK_CREATED) == 0
