class TestBatchAssignments:
    def test_create_then_list_for_batch(self, client, factory, admin, admin_headers):
        college = factory.college()
        batch = factory.batch(college)
        plan = factory.plan(colleges=[college])

        created = client.post(
            "/api/admin/batch-assignments",
            json={"college_id": college.id, "batch_id": batch.id, "subscription_plan_id": plan.id, "notes": "2025 intake"},
            headers=admin_headers,
        )
        assert created.status_code == 201
        assert created.json()["assigned_by"] == admin.id

        listed = client.get(f"/api/admin/batch-assignments?batch_id={batch.id}", headers=admin_headers)

        assert listed.status_code == 200
        records = listed.json()
        assert len(records) == 1
        assert records[0]["subscription_plan_id"] == plan.id
        assert records[0]["is_active"] is True
        assert records[0]["subscription_plan"]["name"] == plan.name
        assert records[0]["batch"]["id"] == batch.id

    def test_duplicate_pair_is_rejected(self, client, factory, admin_headers):
        college = factory.college()
        batch = factory.batch(college)
        plan = factory.plan(colleges=[college])
        factory.assignment(batch, plan)

        response = client.post(
            "/api/admin/batch-assignments",
            json={"college_id": college.id, "batch_id": batch.id, "subscription_plan_id": plan.id},
            headers=admin_headers,
        )

        assert response.status_code == 409

    def test_batch_must_belong_to_college(self, client, factory, admin_headers):
        college = factory.college()
        other = factory.college()
        batch = factory.batch(other)
        plan = factory.plan(colleges=[college])

        response = client.post(
            "/api/admin/batch-assignments",
            json={"college_id": college.id, "batch_id": batch.id, "subscription_plan_id": plan.id},
            headers=admin_headers,
        )

        assert response.status_code == 400

    def test_inactive_plan_is_rejected(self, client, factory, admin_headers):
        college = factory.college()
        batch = factory.batch(college)
        plan = factory.plan(colleges=[college], is_active=False)

        response = client.post(
            "/api/admin/batch-assignments",
            json={"college_id": college.id, "batch_id": batch.id, "subscription_plan_id": plan.id},
            headers=admin_headers,
        )

        assert response.status_code == 400

    def test_unknown_batch(self, client, factory, admin_headers):
        college = factory.college()
        plan = factory.plan(colleges=[college])

        response = client.post(
            "/api/admin/batch-assignments",
            json={"college_id": college.id, "batch_id": 999, "subscription_plan_id": plan.id},
            headers=admin_headers,
        )

        assert response.status_code == 404

    def test_toggle_and_delete(self, client, factory, admin_headers):
        college = factory.college()
        batch = factory.batch(college)
        assignment = factory.assignment(batch, factory.plan(colleges=[college]))

        toggled = client.put(
            f"/api/admin/batch-assignments/{assignment.id}", json={"is_active": False}, headers=admin_headers
        )
        assert toggled.status_code == 200
        assert toggled.json()["is_active"] is False

        deleted = client.delete(f"/api/admin/batch-assignments/{assignment.id}", headers=admin_headers)
        assert deleted.status_code == 204
        assert client.get(f"/api/admin/batch-assignments/{assignment.id}", headers=admin_headers).status_code == 404

    def test_students_cannot_manage_assignments(self, client, factory):
        from tests.conftest import auth_headers

        student = factory.student()
        response = client.get("/api/admin/batch-assignments", headers=auth_headers(student))

        assert response.status_code == 403

    def test_requires_authentication(self, client):
        response = client.get("/api/admin/batch-assignments")

        assert response.status_code in (401, 403)


class TestExamAssignments:
    def test_assign_reactivate_and_group(self, client, factory, admin_headers, db):
        college = factory.college()
        first = factory.batch(college, name="A-2025")
        second = factory.batch(college, name="B-2025")
        exam = factory.exam(college, batches=[first])

        client.request(
            "DELETE", "/api/admin/assign-exams", json={"exam_id": exam.id, "batch_id": first.id}, headers=admin_headers
        )
        response = client.post(
            "/api/admin/assign-exams", json={"exam_id": exam.id, "batch_ids": [first.id, second.id]}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json() == {"exam_id": exam.id, "new_assignments": 2, "total_assigned_batches": 2}

        again = client.post(
            "/api/admin/assign-exams", json={"exam_id": exam.id, "batch_ids": [second.id]}, headers=admin_headers
        )
        assert again.json()["new_assignments"] == 0
        assert again.json()["total_assigned_batches"] == 2

        grouped = client.get("/api/admin/exam-batch-assignments", headers=admin_headers).json()
        assert len(grouped) == 1
        assert grouped[0]["exam"]["id"] == exam.id
        assert [batch["name"] for batch in grouped[0]["batches"]] == ["A-2025", "B-2025"]

    def test_unknown_batch_is_rejected(self, client, factory, admin_headers):
        college = factory.college()
        exam = factory.exam(college)

        response = client.post(
            "/api/admin/assign-exams", json={"exam_id": exam.id, "batch_ids": [404]}, headers=admin_headers
        )

        assert response.status_code == 404

    def test_unassign_missing_pair(self, client, factory, admin_headers):
        college = factory.college()
        exam = factory.exam(college)
        batch = factory.batch(college)

        response = client.request(
            "DELETE", "/api/admin/assign-exams", json={"exam_id": exam.id, "batch_id": batch.id}, headers=admin_headers
        )

        assert response.status_code == 404
