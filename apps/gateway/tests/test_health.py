"""健康检查与中间件测试"""

from adreview.gateway.middleware.trace_mw import extract_task_id


class TestHealth:
    async def test_liveness(self, client):
        resp = await client.get("/health")

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    async def test_ready_core_profile(self, client, mailer):
        resp = await client.get("/ready")

        assert resp.status_code == 200
        assert resp.json() == {
            "status": "ready",
            "profile": "core",
            "checks": {"sqlite": "ok", "scheduler": "disabled", "mailer": "skipped"},
        }
        mailer.health_check.assert_not_awaited()

    async def test_ready_full_profile(self, client, mailer):
        resp = await client.get("/ready?profile=full")

        assert resp.status_code == 200
        assert resp.json()["checks"]["mailer"] == "ok"

    async def test_ready_mailer_unreachable(self, client, mailer):
        mailer.health_check.return_value = False

        resp = await client.get("/ready?profile=full")

        assert resp.status_code == 503
        assert resp.json()["status"] == "not_ready"
        assert resp.json()["checks"]["mailer"] == "unreachable"


class TestMiddleware:
    async def test_request_id_header(self, client):
        resp = await client.get("/health")

        assert len(resp.headers["X-Request-ID"]) == 26

    def test_extract_task_id(self):
        task_id = "0190a1b2c3d4e5f6a7b8c9d0"

        assert extract_task_id(f"/api/tasks/{task_id}/status") == task_id
        assert extract_task_id(f"/api/tasks/{task_id}") == task_id
        assert extract_task_id("/api/tasks") is None
        assert extract_task_id("/api/tasks/not-an-id") is None
        assert extract_task_id("/api/notifications/0190a1b2c3d4e5f6a7b8c9d0") is None
