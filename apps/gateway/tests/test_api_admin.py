"""管理类 API 测试 -- 用户、缺勤、通知、审计、报表、扫描"""

from datetime import UTC, datetime, timedelta, timezone

from adreview.core.models import UserRole


def as_user(user) -> dict[str, str]:
    return {"X-User-Id": user.user_id}


async def _create_task(client, people, title: str = "Diwali banner") -> dict:
    resp = await client.post(
        "/api/tasks",
        json={"title": title, "assigned_product_ids": [people.producer.user_id]},
        headers=as_user(people.producer),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["task"]


class TestUsersApi:
    async def test_admin_creates_user(self, client, people):
        resp = await client.post(
            "/api/users",
            json={"username": "carol", "full_name": "Carol", "role": "COMPLIANCE_USER"},
            headers=as_user(people.admin),
        )

        assert resp.status_code == 201
        user = resp.json()["user"]
        assert user["role"] == "COMPLIANCE_USER"
        assert user["is_active"] is True

        resp = await client.get(
            "/api/users?role=COMPLIANCE_USER", headers=as_user(people.admin)
        )
        names = [u["username"] for u in resp.json()["users"]]
        assert names == ["reviewer", "carol"]

    async def test_non_admin_forbidden(self, client, people):
        resp = await client.post(
            "/api/users",
            json={"username": "mallory", "full_name": "Mallory", "role": "ADMIN"},
            headers=as_user(people.producer),
        )

        assert resp.status_code == 403

    async def test_user_list_requires_directory_role(self, client, people, make_user):
        resp = await client.get("/api/users", headers=as_user(people.producer))
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "PERMISSION_DENIED"

        resp = await client.get("/api/users", headers=as_user(people.reviewer))
        assert resp.status_code == 403

        resp = await client.get("/api/users", headers=as_user(people.manager))
        assert resp.status_code == 200

        product_admin = await make_user(UserRole.PRODUCT_ADMIN, "padmin")
        resp = await client.get("/api/users", headers=as_user(product_admin))
        assert resp.status_code == 200

    async def test_duplicate_username(self, client, people):
        resp = await client.post(
            "/api/users",
            json={"username": "reviewer", "full_name": "Other", "role": "PRODUCT_USER"},
            headers=as_user(people.admin),
        )

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_FAILED"

    async def test_deactivate_user(self, client, people):
        resp = await client.patch(
            f"/api/users/{people.helper.user_id}",
            json={"is_active": False},
            headers=as_user(people.admin),
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["is_active"] is False

        resp = await client.get("/api/tasks", headers=as_user(people.helper))
        assert resp.status_code == 401

    async def test_cannot_deactivate_self(self, client, people):
        resp = await client.patch(
            f"/api/users/{people.admin.user_id}",
            json={"is_active": False},
            headers=as_user(people.admin),
        )

        assert resp.status_code == 400

    async def test_unknown_user(self, client, people):
        resp = await client.patch(
            f"/api/users/{'f' * 24}", json={"full_name": "Nobody"}, headers=as_user(people.admin)
        )

        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "USER_NOT_FOUND"


class TestAbsencesApi:
    async def test_absence_reassigns_open_work(self, client, people, make_user):
        backup = await make_user(UserRole.COMPLIANCE_USER, "backup")
        task = await _create_task(client, people)
        assert task["assigned_compliance_id"] == people.reviewer.user_id
        today = datetime.now(UTC).date()

        resp = await client.post(
            "/api/absences",
            json={
                "user_id": people.reviewer.user_id,
                "from_date": today.isoformat(),
                "to_date": (today + timedelta(days=2)).isoformat(),
                "reason": "Leave",
            },
            headers=as_user(people.admin),
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["reassignment"]["replacement_id"] == backup.user_id
        assert body["reassignment"]["reassigned_task_ids"] == [task["task_id"]]

        resp = await client.get(f"/api/tasks/{task['task_id']}", headers=as_user(people.admin))
        assert resp.json()["task"]["assigned_compliance_id"] == backup.user_id

        resp = await client.get(
            f"/api/absences?user_id={people.reviewer.user_id}", headers=as_user(people.admin)
        )
        absences = resp.json()["absences"]
        assert len(absences) == 1

        resp = await client.delete(
            f"/api/absences/{absences[0]['absence_id']}", headers=as_user(people.admin)
        )
        assert resp.status_code == 200
        assert resp.json()["deleted"] is True

    async def test_overlapping_absence(self, client, people):
        body = {
            "user_id": people.reviewer.user_id,
            "from_date": "2030-01-01",
            "to_date": "2030-01-05",
        }
        resp = await client.post("/api/absences", json=body, headers=as_user(people.admin))
        assert resp.status_code == 201
        assert resp.json()["reassignment"] is None

        body.update(from_date="2030-01-05", to_date="2030-01-08")
        resp = await client.post("/api/absences", json=body, headers=as_user(people.admin))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "OVERLAPPING_ABSENCE"

    async def test_absence_list_requires_absence_management(self, client, people):
        for user in (people.producer, people.reviewer, people.manager):
            resp = await client.get("/api/absences", headers=as_user(user))
            assert resp.status_code == 403

        resp = await client.get("/api/absences", headers=as_user(people.admin))
        assert resp.status_code == 200
        assert resp.json() == {"absences": []}

    async def test_reviewer_cannot_manage_absences(self, client, people):
        resp = await client.post(
            "/api/absences",
            json={
                "user_id": people.reviewer.user_id,
                "from_date": "2030-01-01",
                "to_date": "2030-01-02",
            },
            headers=as_user(people.reviewer),
        )

        assert resp.status_code == 403


class TestNotificationsApi:
    async def test_read_unread_delete(self, client, people):
        await _create_task(client, people)
        reviewer = as_user(people.reviewer)

        resp = await client.get("/api/notifications", headers=reviewer)
        body = resp.json()
        assert body["total"] == 1
        assert body["unread_count"] == 1
        notification = body["notifications"][0]
        assert notification["type"] == "TASK_ASSIGNED"
        nid = notification["notification_id"]

        resp = await client.patch(f"/api/notifications/{nid}/read", headers=reviewer)
        assert resp.status_code == 200
        resp = await client.get("/api/notifications/unread-count", headers=reviewer)
        assert resp.json() == {"unread_count": 0}

        resp = await client.patch(f"/api/notifications/{nid}/unread", headers=reviewer)
        assert resp.json()["is_read"] is False

        resp = await client.patch("/api/notifications/mark-all-read", headers=reviewer)
        assert resp.json() == {"updated": 1}

        resp = await client.delete(f"/api/notifications/{nid}", headers=reviewer)
        assert resp.status_code == 200
        resp = await client.get("/api/notifications", headers=reviewer)
        assert resp.json()["total"] == 0

    async def test_delete_all_read(self, client, people):
        await _create_task(client, people, "Diwali banner")
        await _create_task(client, people, "Holi banner")
        reviewer = as_user(people.reviewer)
        resp = await client.get("/api/notifications", headers=reviewer)
        first, second = resp.json()["notifications"]
        nid = first["notification_id"]
        await client.patch(f"/api/notifications/{nid}/read", headers=reviewer)

        resp = await client.delete("/api/notifications/read/all", headers=reviewer)
        assert resp.status_code == 200
        assert resp.json() == {"deleted": 1}

        resp = await client.get("/api/notifications", headers=reviewer)
        remaining = resp.json()["notifications"]
        assert [n["notification_id"] for n in remaining] == [second["notification_id"]]

        resp = await client.delete("/api/notifications/read/all", headers=reviewer)
        assert resp.json() == {"deleted": 0}

    async def test_other_users_notification_not_found(self, client, people):
        await _create_task(client, people)
        resp = await client.get("/api/notifications", headers=as_user(people.reviewer))
        nid = resp.json()["notifications"][0]["notification_id"]

        resp = await client.patch(
            f"/api/notifications/{nid}/read", headers=as_user(people.producer)
        )
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOTIFICATION_NOT_FOUND"

        resp = await client.delete(f"/api/notifications/{nid}", headers=as_user(people.producer))
        assert resp.status_code == 404


class TestAuditApi:
    async def test_manager_queries_audit(self, client, people):
        task = await _create_task(client, people)

        resp = await client.get(
            f"/api/audit?task_id={task['task_id']}", headers=as_user(people.manager)
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 1
        assert body["audit"][0]["action"] == "TASK_CREATED"

    async def test_filter_by_action(self, client, people):
        await _create_task(client, people)

        resp = await client.get(
            "/api/audit?action=USER_CREATED", headers=as_user(people.admin)
        )

        assert resp.json()["total"] == 0

    async def test_producer_forbidden(self, client, people):
        resp = await client.get("/api/audit", headers=as_user(people.producer))

        assert resp.status_code == 403


class TestReportsApi:
    async def test_dashboard_scoped(self, client, people, make_user):
        await _create_task(client, people)
        outsider = await make_user(UserRole.PRODUCT_USER, "outsider")

        resp = await client.get("/api/reports/dashboard", headers=as_user(people.producer))
        body = resp.json()
        assert body["total"] == 1
        assert body["by_status"]["OPEN"] == 1
        assert body["by_status"]["APPROVED"] == 0

        resp = await client.get("/api/reports/dashboard", headers=as_user(outsider))
        assert resp.json()["total"] == 0

    async def test_reviewer_workload(self, client, people):
        await _create_task(client, people)

        resp = await client.get("/api/reports/reviewer-workload", headers=as_user(people.manager))
        assert resp.status_code == 200
        rows = resp.json()["reviewers"]
        assert rows == [
            {
                "user_id": people.reviewer.user_id,
                "full_name": "Reviewer",
                "role": "COMPLIANCE_USER",
                "active_tasks": 1,
                "absent_today": False,
            }
        ]

        resp = await client.get(
            "/api/reports/reviewer-workload", headers=as_user(people.producer)
        )
        assert resp.status_code == 403

    async def test_expiring_soon_empty(self, client, people):
        await _create_task(client, people)

        resp = await client.get(
            "/api/reports/expiring-soon?days=7", headers=as_user(people.admin)
        )

        assert resp.json() == {"days": 7, "tasks": []}


    async def test_internal_task_report(self, client, people):
        task = await _create_task(client, people)

        resp = await client.get("/api/reports/internal-tasks", headers=as_user(people.manager))

        assert resp.status_code == 200
        body = resp.json()
        assert body["task_type"] == "INTERNAL"
        assert body["summary"]["total_tasks"] == 1
        assert body["summary"]["tasks_by_status"]["OPEN"] == 1
        row = body["tasks"][0]
        assert row["task"]["task_id"] == task["task_id"]
        assert row["version_count"] == 0
        assert row["days_to_approval"] is None

    async def test_report_date_filter_accepts_offset(self, client, people):
        await _create_task(client, people)
        ist = timezone(timedelta(hours=5, minutes=30))
        an_hour_ago = (datetime.now(ist) - timedelta(hours=1)).isoformat()
        in_an_hour = (datetime.now(ist) + timedelta(hours=1)).isoformat()

        resp = await client.get(
            "/api/reports/internal-tasks",
            params={"date_from": an_hour_ago},
            headers=as_user(people.admin),
        )
        assert resp.json()["summary"]["total_tasks"] == 1

        resp = await client.get(
            "/api/reports/internal-tasks",
            params={"date_from": in_an_hour},
            headers=as_user(people.admin),
        )
        assert resp.json()["summary"]["total_tasks"] == 0

    async def test_report_permissions(self, client, people, make_user):
        product_admin = await make_user(UserRole.PRODUCT_ADMIN, "padmin")

        resp = await client.get("/api/reports/internal-tasks", headers=as_user(people.producer))
        assert resp.status_code == 403
        resp = await client.get("/api/reports/internal-tasks", headers=as_user(product_admin))
        assert resp.status_code == 200
        resp = await client.get("/api/reports/exchange-tasks", headers=as_user(product_admin))
        assert resp.status_code == 403
        resp = await client.get("/api/reports/rejected-tasks", headers=as_user(people.reviewer))
        assert resp.status_code == 403
        resp = await client.get("/api/reports/daily-movement", headers=as_user(people.producer))
        assert resp.status_code == 403

    async def test_exchange_and_rejected_reports(self, client, people):
        await _create_task(client, people)

        resp = await client.get("/api/reports/exchange-tasks", headers=as_user(people.manager))
        assert resp.status_code == 200
        assert resp.json()["summary"]["total_tasks"] == 0

        resp = await client.get("/api/reports/rejected-tasks", headers=as_user(people.admin))
        assert resp.status_code == 200
        assert resp.json() == {"total_rejected": 0, "avg_days_active": None, "tasks": []}

    async def test_daily_movement(self, client, people):
        await _create_task(client, people)
        today = datetime.now(UTC).date().isoformat()

        resp = await client.get(
            f"/api/reports/daily-movement?date={today}", headers=as_user(people.manager)
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["day"] == today
        assert body["total_movements"] == 1
        assert body["movements_by_action"] == {"TASK_CREATED": 1}
        assert body["movements_by_user"] == {people.producer.user_id: 1}

class TestScansApi:
    async def test_admin_runs_scan(self, client, people):
        resp = await client.post("/api/scans/expiry", headers=as_user(people.admin))

        assert resp.status_code == 200
        body = resp.json()
        assert body["scan"] == "expiry"
        assert body["processed"] == 0

    async def test_unknown_scan(self, client, people):
        resp = await client.post("/api/scans/bogus", headers=as_user(people.admin))

        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "SCAN_NOT_FOUND"

    async def test_producer_cannot_run_scans(self, client, people):
        resp = await client.post("/api/scans/expiry", headers=as_user(people.producer))

        assert resp.status_code == 403
