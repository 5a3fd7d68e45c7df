from datetime import datetime, timedelta

from app.models import ExamSuspension, SubscriptionStatus
from app.schemas.entitlement import EntitlementAction, EntitlementKind
from app.services.entitlement import EntitlementService

from tests.conftest import NOW, auth_headers


def _setup(factory, with_plan=True):
    college = factory.college()
    batch = factory.batch(college)
    plan = factory.plan(colleges=[college]) if with_plan else None
    if plan:
        factory.assignment(batch, plan)
    student = factory.student(batch)
    exam = factory.exam(college, batches=[batch], questions=4)
    return college, batch, plan, student, exam


class TestRequiredPlan:
    def test_no_assignment_and_no_default_plan(self, db, factory):
        college, batch, _, student, exam = _setup(factory, with_plan=False)
        factory.plan(colleges=[college])  # offered but neither assigned nor default

        decision = EntitlementService.check_exam_access(db, student.id, exam.id, NOW)

        assert decision.kind == EntitlementKind.NO_PLAN_ASSIGNED
        assert decision.allowed is False
        assert decision.action == EntitlementAction.CONTACT_ADMIN

    def test_newest_assignment_wins(self, db, factory):
        college = factory.college()
        batch = factory.batch(college)
        older = factory.plan(colleges=[college], name="Basic")
        newer = factory.plan(colleges=[college], name="Premium")
        factory.assignment(batch, older, assignment_date=NOW - timedelta(days=30))
        factory.assignment(batch, newer, assignment_date=NOW - timedelta(days=1))

        assert EntitlementService.resolve_required_plan(db, batch).id == newer.id

    def test_inactive_assignment_is_ignored(self, db, factory):
        college = factory.college()
        batch = factory.batch(college)
        kept = factory.plan(colleges=[college])
        dropped = factory.plan(colleges=[college])
        factory.assignment(batch, kept, assignment_date=NOW - timedelta(days=30))
        factory.assignment(batch, dropped, assignment_date=NOW, is_active=False)

        assert EntitlementService.resolve_required_plan(db, batch).id == kept.id

    def test_college_default_plan_is_the_fallback(self, db, factory):
        college = factory.college()
        other = factory.college()
        batch = factory.batch(college)
        factory.plan(colleges=[other], is_default=True)
        default = factory.plan(colleges=[college], is_default=True)

        assert EntitlementService.resolve_required_plan(db, batch).id == default.id


class TestSubscription:
    def test_no_batch(self, db, factory):
        college = factory.college()
        student = factory.student(college=college)
        exam = factory.exam(college)

        decision = EntitlementService.check_exam_access(db, student.id, exam.id, NOW)

        assert decision.kind == EntitlementKind.NO_BATCH_ASSIGNED
        assert "contact your administrator" in decision.message
        assert decision.required_plan is None
        assert decision.subscription is None

    def test_subscription_required_carries_the_plan(self, db, factory):
        _, _, plan, student, exam = _setup(factory)

        decision = EntitlementService.check_exam_access(db, student.id, exam.id, NOW)

        assert decision.kind == EntitlementKind.SUBSCRIPTION_REQUIRED
        assert decision.action == EntitlementAction.SUBSCRIBE
        assert decision.required_plan.id == plan.id
        assert decision.required_plan.formatted_price == "₹1,000"
        assert decision.required_plan.features == ["All assessments", "Certificates"]

    def test_subscription_to_another_plan_does_not_count(self, db, factory):
        college, _, _, student, exam = _setup(factory)
        other = factory.plan(colleges=[college])
        factory.subscription(student, other)

        decision = EntitlementService.check_exam_access(db, student.id, exam.id, NOW)

        assert decision.kind == EntitlementKind.SUBSCRIPTION_REQUIRED

    def test_active_status_past_end_date_is_expired(self, db, factory):
        _, _, plan, student, exam = _setup(factory)
        factory.subscription(student, plan, start=NOW - timedelta(days=200), end=NOW - timedelta(days=1))

        decision = EntitlementService.check_exam_access(db, student.id, exam.id, NOW)

        assert decision.kind == EntitlementKind.EXPIRED
        assert decision.action == EntitlementAction.RENEW
        assert decision.days_until_expiry == 0
        assert decision.subscription.status == SubscriptionStatus.ACTIVE
        assert decision.subscription.is_currently_active is False

    def test_stored_expired_status(self, db, factory):
        _, _, plan, student, exam = _setup(factory)
        factory.subscription(student, plan, status=SubscriptionStatus.EXPIRED)

        decision = EntitlementService.check_exam_access(db, student.id, exam.id, NOW)

        assert decision.kind == EntitlementKind.EXPIRED

    def test_suspended_subscription(self, db, factory):
        _, _, plan, student, exam = _setup(factory)
        factory.subscription(student, plan, status=SubscriptionStatus.SUSPENDED)

        decision = EntitlementService.check_exam_access(db, student.id, exam.id, NOW)

        assert decision.kind == EntitlementKind.SUSPENDED
        assert decision.action == EntitlementAction.CONTACT_ADMIN

    def test_cancelled_subscription_needs_a_new_one(self, db, factory):
        _, _, plan, student, exam = _setup(factory)
        factory.subscription(student, plan, status=SubscriptionStatus.CANCELLED)

        decision = EntitlementService.check_exam_access(db, student.id, exam.id, NOW)

        assert decision.kind == EntitlementKind.SUBSCRIPTION_REQUIRED

    def test_days_until_expiry_rounds_up(self, db, factory):
        _, _, plan, student, _ = _setup(factory)
        factory.subscription(student, plan, start=NOW - timedelta(days=5), end=NOW + timedelta(days=2, hours=3))

        status = EntitlementService.get_subscription_status(db, student.id, NOW)

        assert status.kind == EntitlementKind.ALLOWED
        assert status.days_until_expiry == 3
        assert status.has_assignment is True
        assert status.has_subscription is True


class TestExamChecks:
    def test_allowed(self, db, factory):
        _, _, plan, student, exam = _setup(factory)
        factory.subscription(student, plan)

        decision = EntitlementService.check_exam_access(db, student.id, exam.id, NOW)

        assert decision.allowed is True
        assert decision.kind == EntitlementKind.ALLOWED
        assert decision.action == EntitlementAction.START_EXAM
        assert decision.attempts_used == 0
        assert decision.max_attempts == 3

    def test_exam_not_assigned_to_batch(self, db, factory):
        college, _, plan, student, _ = _setup(factory)
        factory.subscription(student, plan)
        unassigned = factory.exam(college)

        decision = EntitlementService.check_exam_access(db, student.id, unassigned.id, NOW)

        assert decision.kind == EntitlementKind.EXAM_NOT_ASSIGNED

    def test_inactive_exam_is_not_found(self, db, factory):
        _, _, plan, student, exam = _setup(factory)
        factory.subscription(student, plan)
        exam.is_active = False
        db.commit()

        decision = EntitlementService.check_exam_access(db, student.id, exam.id, NOW)

        assert decision.kind == EntitlementKind.NOT_FOUND

    def test_active_exam_suspension(self, db, factory):
        _, _, plan, student, exam = _setup(factory)
        factory.subscription(student, plan)
        db.add(ExamSuspension(student_id=student.id, exam_id=exam.id, reason="Tab switching", incident_count=5))
        db.commit()

        decision = EntitlementService.check_exam_access(db, student.id, exam.id, NOW)

        assert decision.kind == EntitlementKind.SUSPENDED

    def test_max_attempts_reached(self, db, factory):
        _, _, plan, student, exam = _setup(factory)
        factory.subscription(student, plan)
        for attempt in (1, 2, 3):
            factory.result(student, exam, attempt_number=attempt)

        decision = EntitlementService.check_exam_access(db, student.id, exam.id, NOW)

        assert decision.kind == EntitlementKind.MAX_ATTEMPTS_REACHED
        assert decision.attempts_used == 3
        assert decision.action == EntitlementAction.NONE


class TestTakeExamEndpoint:
    def test_denied_before_questions_are_served(self, client, factory):
        _, _, plan, student, exam = _setup(factory)
        factory.subscription(
            student, plan, start=datetime.utcnow() - timedelta(days=1), end=datetime.utcnow() + timedelta(days=30)
        )
        for attempt in (1, 2, 3):
            factory.result(student, exam, attempt_number=attempt)

        response = client.get(f"/api/exams/take/{exam.id}", headers=auth_headers(student))

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "ENTITLEMENT_MAX_ATTEMPTS_REACHED"
        assert error["details"]["entitlement"]["kind"] == "MAX_ATTEMPTS_REACHED"
        assert "questions" not in response.json()

    def test_subscription_required_response(self, client, factory):
        _, _, plan, student, exam = _setup(factory)

        response = client.get(f"/api/exams/take/{exam.id}", headers=auth_headers(student))

        assert response.status_code == 403
        entitlement = response.json()["error"]["details"]["entitlement"]
        assert entitlement["action"] == "subscribe"
        assert entitlement["required_plan"]["id"] == plan.id

    def test_allowed_student_gets_the_paper(self, client, entitled):
        response = client.get(f"/api/exams/take/{entitled['exam'].id}", headers=entitled["headers"])

        assert response.status_code == 200
        body = response.json()
        assert len(body["questions"]) == 4
        assert body["attempt_number"] == 1
        for question in body["questions"]:
            assert all("is_correct" not in option for option in question["options"])

    def test_admin_cannot_take_exams(self, client, entitled, admin_headers):
        response = client.get(f"/api/exams/take/{entitled['exam'].id}", headers=admin_headers)

        assert response.status_code == 403
