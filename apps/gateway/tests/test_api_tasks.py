"""任务 API 测试 -- 认证、错误响应格式、任务生命周期路由"""

from adreview.core.models import UserRole


def as_user(user) -> dict[str, str]:
    return {"X-User-Id": user.user_id}


async def _create(client, people, **overrides) -> dict:
    body = {"title": "Summer campaign", "assigned_product_ids": [people.producer.user_id]}
    body.update(overrides)
    resp = await client.post("/api/tasks", json=body, headers=as_user(people.producer))
    assert resp.status_code == 201, resp.text
    return resp.json()["task"]


class TestAuthentication:
    async def test_missing_header(self, client):
        resp = await client.get("/api/tasks")

        assert resp.status_code == 401
        assert resp.json() == {
            "error": {"code": "UNAUTHENTICATED", "message": "Missing X-User-Id header"}
        }

    async def test_inactive_user(self, client, make_user):
        ghost = await make_user(UserRole.PRODUCT_USER, "ghost", is_active=False)

        resp = await client.get("/api/tasks", headers=as_user(ghost))

        assert resp.status_code == 401


class TestTaskRoutes:
    async def test_create_and_detail(self, client, people):
        task = await _create(client, people)

        assert task["status"] == "OPEN"
        assert task["uin"].startswith("ACT")
        assert task["assigned_compliance_id"] == people.reviewer.user_id

        resp = await client.get(f"/api/tasks/{task['task_id']}", headers=as_user(people.reviewer))
        assert resp.status_code == 200
        detail = resp.json()
        assert detail["task"]["task_id"] == task["task_id"]
        assert detail["versions"] == []
        assert detail["comments"] == []

    async def test_create_without_reviewer(self, client, people, store_group):
        async with store_group.transaction():
            await store_group.user_store.update_user(people.reviewer.user_id, {"is_active": False})

        resp = await client.post(
            "/api/tasks", json={"title": "Orphan task"}, headers=as_user(people.producer)
        )

        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "NO_AVAILABLE_REVIEWER"

    async def test_list_scoped_and_paginated(self, client, people, make_user):
        await _create(client, people, title="Task one")
        await _create(client, people, title="Task two")
        outsider = await make_user(UserRole.PRODUCT_USER, "outsider")

        resp = await client.get("/api/tasks?limit=1", headers=as_user(people.producer))
        body = resp.json()
        assert body["total"] == 2
        assert len(body["tasks"]) == 1
        first = body["tasks"][0]["title"]

        resp = await client.get("/api/tasks?limit=1&page=2", headers=as_user(people.producer))
        second = resp.json()["tasks"][0]["title"]
        assert {first, second} == {"Task one", "Task two"}

        resp = await client.get("/api/tasks", headers=as_user(outsider))
        assert resp.json()["total"] == 0

    async def test_hidden_and_missing_task(self, client, people, make_user):
        task = await _create(client, people)
        outsider = await make_user(UserRole.PRODUCT_USER, "outsider")

        resp = await client.get(f"/api/tasks/{task['task_id']}", headers=as_user(outsider))
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "PERMISSION_DENIED"

        resp = await client.get(f"/api/tasks/{'0' * 24}", headers=as_user(people.admin))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "TASK_NOT_FOUND"

    async def test_status_flow(self, client, people):
        task = await _create(client, people)
        url = f"/api/tasks/{task['task_id']}/status"
        reviewer = as_user(people.reviewer)

        resp = await client.post(url, json={"to_status": "APPROVED"}, headers=reviewer)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_TRANSITION"

        resp = await client.post(url, json={"to_status": "COMPLIANCE_REVIEW"}, headers=reviewer)
        assert resp.status_code == 200
        assert resp.json()["from_status"] == "OPEN"

        resp = await client.post(url, json={"to_status": "APPROVED"}, headers=reviewer)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "MISSING_TRANSITION_DATA"

        resp = await client.post(
            url,
            json={
                "to_status": "APPROVED",
                "approval_date": "2024-06-10",
                "expiry_date": "2024-12-31",
                "expected_status": "COMPLIANCE_REVIEW",
            },
            headers=reviewer,
        )
        assert resp.status_code == 200
        assert resp.json()["task"]["status"] == "APPROVED"
        assert resp.json()["side_effect_failures"] == []

        resp = await client.post(
            url,
            json={"to_status": "CLOSED_INTERNAL", "expected_status": "COMPLIANCE_REVIEW"},
            headers=reviewer,
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "TASK_STATUS_CONFLICT"

        resp = await client.get(f"/api/tasks/{task['task_id']}/audit", headers=reviewer)
        actions = [r["action"] for r in resp.json()["audit"]]
        assert actions == ["TASK_CREATED", "TASK_STATUS_CHANGED", "TASK_STATUS_CHANGED"]

    async def test_version_and_comment_routes(self, client, people):
        task = await _create(client, people)
        base = f"/api/tasks/{task['task_id']}"
        await client.post(
            f"{base}/status", json={"to_status": "COMPLIANCE_REVIEW"}, headers=as_user(people.reviewer)
        )

        resp = await client.post(
            f"{base}/comments",
            json={"content": "Logo too small", "is_global": True},
            headers=as_user(people.reviewer),
        )
        assert resp.status_code == 201
        assert resp.json()["task"]["status"] == "PRODUCT_REVIEW"

        resp = await client.post(
            f"{base}/versions",
            json={"file_urls": ["s3://bucket/v1.png"], "remarks": "Bigger logo"},
            headers=as_user(people.producer),
        )
        assert resp.status_code == 201
        assert resp.json()["version"]["version_number"] == "1.0"
        assert resp.json()["task"]["status"] == "COMPLIANCE_REVIEW"

        resp = await client.post(
            f"{base}/versions", json={"file_urls": []}, headers=as_user(people.producer)
        )
        assert resp.status_code == 422

    async def test_patch_task(self, client, people):
        task = await _create(client, people)

        resp = await client.patch(
            f"/api/tasks/{task['task_id']}",
            json={"platform": "YouTube"},
            headers=as_user(people.producer),
        )
        assert resp.status_code == 200
        assert resp.json()["task"]["platform"] == "YouTube"

        resp = await client.patch(
            f"/api/tasks/{task['task_id']}",
            json={"title": "Renamed"},
            headers=as_user(people.producer),
        )
        assert resp.status_code == 403

    async def test_exchange_approvals(self, client, people):
        task = await _create(client, people, task_type="EXCHANGE")
        base = f"/api/tasks/{task['task_id']}/exchange-approvals"
        reviewer = as_user(people.reviewer)

        resp = await client.post(
            base, json={"exchange_name": "NSE", "type_of_content": "Video"}, headers=reviewer
        )
        assert resp.status_code == 201
        approval = resp.json()["exchange_approval"]
        assert approval["approval_status"] == "NOT_SENT"

        resp = await client.post(
            base, json={"exchange_name": "NSE", "type_of_content": "Video"}, headers=reviewer
        )
        assert resp.status_code == 400

        resp = await client.put(
            f"{base}/{approval['approval_id']}",
            json={"approval_status": "APPROVED"},
            headers=reviewer,
        )
        assert resp.status_code == 400

        resp = await client.put(
            f"{base}/{approval['approval_id']}",
            json={
                "approval_status": "APPROVED",
                "approval_date": "2024-06-01",
                "expiry_date": "2025-06-01",
                "reference_number": "NSE/2024/77",
            },
            headers=reviewer,
        )
        assert resp.status_code == 200
        assert resp.json()["exchange_approval"]["reference_number"] == "NSE/2024/77"

    async def test_exchange_approval_needs_exchange_task(self, client, people):
        task = await _create(client, people)

        resp = await client.post(
            f"/api/tasks/{task['task_id']}/exchange-approvals",
            json={"exchange_name": "BSE", "type_of_content": "Print"},
            headers=as_user(people.reviewer),
        )

        assert resp.status_code == 400
