from datetime import timedelta

from app.models import SubscriptionStatus
from app.services.dashboards import DashboardService
from tests.conftest import NOW, auth_headers


class TestStudentDashboard:
    def test_overview(self, client, entitled, factory):
        for attempt in (1, 2):
            factory.result(entitled["student"], entitled["exam"], attempt_number=attempt)

        body = client.get("/api/student/dashboard", headers=entitled["headers"]).json()

        assert body["subscription"]["kind"] == "ALLOWED"
        assert body["subscription"]["required_plan"]["id"] == entitled["plan"].id
        assert body["exams"][0]["attempts_remaining"] == 1
        assert [result["attempt_number"] for result in body["recent_results"]] == [2, 1]

    def test_without_batch(self, client, factory):
        student = factory.student(college=factory.college())

        body = client.get("/api/student/dashboard", headers=auth_headers(student)).json()

        assert body["subscription"]["kind"] == "NO_BATCH_ASSIGNED"
        assert body["exams"] == []


class TestAdminDashboard:
    def test_counts(self, db, factory):
        college = factory.college()
        factory.college(is_active=False)
        batch = factory.batch(college)
        plan = factory.plan(colleges=[college])
        live = factory.student(batch)
        lapsed = factory.student(batch)
        factory.subscription(live, plan)
        factory.subscription(lapsed, plan, start=NOW - timedelta(days=400), end=NOW - timedelta(days=1))
        factory.subscription(factory.student(batch), plan, status=SubscriptionStatus.CANCELLED)
        exam = factory.exam(college)
        factory.result(live, exam, passed=True)
        factory.result(lapsed, exam)

        counts = DashboardService.admin_dashboard(db, NOW)

        assert counts == {
            "colleges": 1,
            "batches": 1,
            "students": 3,
            "exams": 1,
            "active_subscriptions": 1,
            "results": 2,
            "passed_results": 1,
            "security_incidents": 0,
        }

    def test_endpoint_is_admin_only(self, client, entitled, admin_headers):
        assert client.get("/api/admin/dashboard", headers=admin_headers).status_code == 200
        assert client.get("/api/admin/dashboard", headers=entitled["headers"]).status_code == 403


class TestHealth:
    def test_basic(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_detailed(self, client):
        body = client.get("/api/health/detailed").json()

        assert body["status"] == "healthy"
        assert body["checks"]["database"]["dialect"] == "sqlite"
        assert body["checks"]["redis"] == "disabled"
        assert "memory_percent" in body["checks"]["resources"]

    def test_root_and_headers(self, client):
        response = client.get("/", headers={"X-Request-ID": "trace-123"})

        assert response.json()["health"] == "/api/health"
        assert response.headers["X-Request-ID"] == "trace-123"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/api/nowhere", headers={"X-Request-ID": "bad id with spaces"})

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["path"].endswith("/api/nowhere")
        assert response.headers["X-Request-ID"] != "bad id with spaces"
