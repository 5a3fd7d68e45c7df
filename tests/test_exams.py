from app.models import Exam


def _exam_payload(course_id, **overrides):
    payload = {
        "name": "Data Structures Midterm",
        "description": "Arrays, lists and trees",
        "duration": 60,
        "total_marks": 50,
        "total_questions": 10,
        "questions_to_display": 5,
        "max_attempts": 2,
        "course_id": course_id,
    }
    payload.update(overrides)
    return payload


class TestExamAdministration:
    def test_create_takes_college_from_course(self, client, factory, admin_headers):
        course = factory.course(factory.college())

        response = client.post("/api/exams", json=_exam_payload(course.id), headers=admin_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["college_id"] == course.college_id
        assert body["pass_percentage"] == 40.0
        assert body["exam_type"] == "assessment"

    def test_display_count_cannot_exceed_bank(self, client, factory, admin_headers):
        course = factory.course(factory.college())

        response = client.post(
            "/api/exams", json=_exam_payload(course.id, questions_to_display=11), headers=admin_headers
        )

        assert response.status_code == 422

    def test_update_checks_existing_questions(self, client, factory, admin_headers):
        exam = factory.exam(factory.college(), questions=4)

        response = client.put(
            f"/api/exams/{exam.id}", json={"total_questions": 3, "questions_to_display": 3}, headers=admin_headers
        )

        assert response.status_code == 400

    def test_delete_without_history(self, client, factory, admin_headers, db):
        exam = factory.exam(factory.college(), questions=2)

        response = client.delete(f"/api/exams/{exam.id}", headers=admin_headers)

        assert response.json() == {"exam_id": exam.id, "status": "deleted"}
        assert db.query(Exam).filter(Exam.id == exam.id).first() is None

    def test_delete_with_results_deactivates(self, client, entitled, factory, admin_headers):
        factory.result(entitled["student"], entitled["exam"])

        response = client.delete(f"/api/exams/{entitled['exam'].id}", headers=admin_headers)

        assert response.json()["status"] == "deactivated"
        listed = client.get("/api/exams?is_active=false", headers=admin_headers).json()
        assert [exam["id"] for exam in listed] == [entitled["exam"].id]


class TestQuestions:
    def test_keyed_options(self, client, factory, admin_headers):
        exam = factory.exam(factory.college())

        response = client.post(
            f"/api/exams/{exam.id}/questions",
            json={"text": "Capital of France?", "options": {"A": "Paris", "B": "Rome"}, "correct_option": "A"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        options = response.json()["options"]
        assert options == [
            {"label": "A", "text": "Paris", "is_correct": True},
            {"label": "B", "text": "Rome", "is_correct": False},
        ]

    def test_list_options(self, client, factory, admin_headers):
        exam = factory.exam(factory.college())

        response = client.post(
            f"/api/exams/{exam.id}/questions",
            json={"text": "2 + 2?", "options": [{"text": "3"}, {"text": "4", "is_correct": True}]},
            headers=admin_headers,
        )

        assert [option["is_correct"] for option in response.json()["options"]] == [False, True]

    def test_malformed_options(self, client, factory, admin_headers):
        exam = factory.exam(factory.college())

        response = client.post(
            f"/api/exams/{exam.id}/questions",
            json={"text": "2 + 2?", "options": {"A": "3", "B": "4"}},
            headers=admin_headers,
        )

        assert response.status_code == 422

    def test_bank_is_capped(self, client, factory, admin_headers):
        exam = factory.exam(factory.college(), questions=4)

        response = client.post(
            f"/api/exams/{exam.id}/questions",
            json={"text": "Fifth?", "options": {"A": "x", "B": "y"}, "correct_option": "B"},
            headers=admin_headers,
        )

        assert response.status_code == 400

    def test_delete_question(self, client, factory, admin_headers):
        exam = factory.exam(factory.college(), questions=2)
        question_id = client.get(f"/api/exams/{exam.id}/questions", headers=admin_headers).json()[0]["id"]

        assert client.delete(f"/api/exams/{exam.id}/questions/{question_id}", headers=admin_headers).status_code == 204
        assert len(client.get(f"/api/exams/{exam.id}/questions", headers=admin_headers).json()) == 1
        assert client.delete(f"/api/exams/{exam.id}/questions/{question_id}", headers=admin_headers).status_code == 404

    def test_paper_hides_answers_and_samples(self, client, entitled, factory, db):
        exam = entitled["exam"]
        exam.questions_to_display = 2
        db.commit()

        body = client.get(f"/api/exams/take/{exam.id}", headers=entitled["headers"]).json()

        assert len(body["questions"]) == 2
        assert body["attempts_remaining"] == 3
        assert set(body["questions"][0]["options"][0]) == {"label", "text"}
