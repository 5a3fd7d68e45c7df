from app.models import ExamSuspension, SecurityIncident


def _report(client, entitled, incident_type="TAB_SWITCH", **headers):
    return client.post(
        "/api/security-incidents",
        json={"exam_id": entitled["exam"].id, "incident_type": incident_type, "incident_details": "Left the exam tab"},
        headers={**entitled["headers"], **headers},
    )


class TestRecording:
    def test_records_client_details(self, client, entitled):
        response = _report(client, entitled, **{"User-Agent": "Firefox/128", "X-Forwarded-For": "10.0.0.7, 172.16.0.1"})

        assert response.status_code == 201
        body = response.json()
        assert body["incident_count"] == 1
        assert body["threshold"] == 5
        assert body["suspended"] is False
        assert body["incident"]["user_agent"] == "Firefox/128"
        assert body["incident"]["ip_address"] == "10.0.0.7"

    def test_unknown_exam(self, client, entitled):
        response = client.post(
            "/api/security-incidents",
            json={"exam_id": 9999, "incident_type": "COPY_ATTEMPT", "incident_details": "Ctrl+C"},
            headers=entitled["headers"],
        )

        assert response.status_code == 404

    def test_unknown_incident_type(self, client, entitled):
        assert _report(client, entitled, incident_type="SNEEZE").status_code == 422

    def test_admins_do_not_report(self, client, entitled, admin_headers):
        response = client.post(
            "/api/security-incidents",
            json={"exam_id": entitled["exam"].id, "incident_type": "OTHER", "incident_details": "x"},
            headers=admin_headers,
        )

        assert response.status_code == 403


class TestAutoSuspension:
    def test_threshold_suspends_once(self, client, entitled, db):
        results = [_report(client, entitled).json() for _ in range(6)]

        assert [result["suspended"] for result in results] == [False] * 4 + [True, False]
        suspensions = db.query(ExamSuspension).all()
        assert len(suspensions) == 1
        assert suspensions[0].incident_count == 5
        assert db.query(SecurityIncident).filter(SecurityIncident.caused_suspension.is_(True)).count() == 1

    def test_suspended_student_cannot_take_the_exam(self, client, entitled):
        for _ in range(5):
            _report(client, entitled)

        response = client.get(f"/api/exams/take/{entitled['exam'].id}", headers=entitled["headers"])

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ENTITLEMENT_SUSPENDED"

    def test_auto_suspend_disabled(self, client, entitled, db):
        entitled["batch"].enable_auto_suspend = False
        db.commit()

        results = [_report(client, entitled).json() for _ in range(6)]

        assert not any(result["suspended"] for result in results)
        assert results[-1]["threshold"] is None

    def test_lifting_grants_a_fresh_allowance(self, client, entitled, admin_headers):
        for _ in range(5):
            _report(client, entitled)
        suspension = client.get("/api/admin/suspensions", headers=admin_headers).json()[0]

        lifted = client.delete(f"/api/admin/suspensions/{suspension['id']}", headers=admin_headers)
        assert lifted.status_code == 200
        assert lifted.json()["is_active"] is False
        assert client.get(f"/api/exams/take/{entitled['exam'].id}", headers=entitled["headers"]).status_code == 200

        after = [_report(client, entitled).json() for _ in range(3)]
        assert [result["threshold"] for result in after] == [8, 8, 8]
        assert [result["suspended"] for result in after] == [False, False, True]

    def test_lifting_twice_is_rejected(self, client, entitled, admin_headers):
        for _ in range(5):
            _report(client, entitled)
        suspension_id = client.get("/api/admin/suspensions", headers=admin_headers).json()[0]["id"]

        client.delete(f"/api/admin/suspensions/{suspension_id}", headers=admin_headers)
        again = client.delete(f"/api/admin/suspensions/{suspension_id}", headers=admin_headers)

        assert again.status_code == 400


class TestReview:
    def test_list_is_paginated(self, client, entitled, admin_headers):
        for _ in range(3):
            _report(client, entitled)

        page = client.get("/api/security-incidents?page=2&page_size=2", headers=admin_headers).json()

        assert page["total"] == 3
        assert page["page"] == 2
        assert len(page["items"]) == 1

    def test_summary(self, client, entitled, admin_headers):
        _report(client, entitled)
        _report(client, entitled, incident_type="EXIT_FULLSCREEN")
        _report(client, entitled)

        summary = client.get("/api/security-incidents/summary", headers=admin_headers).json()

        assert summary["total_incidents"] == 3
        assert summary["unique_students"] == 1
        assert summary["unique_exams"] == 1
        assert summary["by_type"] == {"TAB_SWITCH": 2, "EXIT_FULLSCREEN": 1}
        assert summary["top_students"][0]["student_id"] == entitled["student"].id
        assert summary["top_students"][0]["count"] == 3
        assert len(summary["recent"]) == 3

    def test_student_history(self, client, entitled, admin_headers):
        _report(client, entitled)

        history = client.get(
            f"/api/security-incidents/student/{entitled['student'].id}", headers=admin_headers
        ).json()

        assert len(history) == 1
        assert client.get("/api/security-incidents/student/9999", headers=admin_headers).status_code == 404

    def test_students_cannot_review(self, client, entitled):
        assert client.get("/api/security-incidents", headers=entitled["headers"]).status_code == 403
