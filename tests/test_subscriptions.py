import hashlib
import hmac
from datetime import datetime, timedelta

import pytest

from app.core.exceptions import DuplicateException
from app.models import Payment, PaymentStatus, StudentSubscription, SubscriptionPlan, SubscriptionStatus
from app.services.payments import to_paise, verify_signature
from app.services.subscriptions import SubscriptionService, add_months
from tests.conftest import NOW, auth_headers

SECRET = "rzp_test_secret"


def _sign(order_id, payment_id, secret=SECRET):
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def _student_with_required_plan(factory):
    college = factory.college()
    batch = factory.batch(college)
    plan = factory.plan(colleges=[college], price=1499.5)
    factory.assignment(batch, plan)
    return factory.student(batch), plan


@pytest.mark.parametrize(
    "start, months, expected",
    [
        (datetime(2025, 1, 31), 1, datetime(2025, 2, 28)),
        (datetime(2024, 1, 31), 1, datetime(2024, 2, 29)),
        (datetime(2025, 6, 15, 9, 30), 6, datetime(2025, 12, 15, 9, 30)),
        (datetime(2025, 11, 30), 3, datetime(2026, 2, 28)),
        (datetime(2025, 3, 10), 12, datetime(2026, 3, 10)),
    ],
)
def test_add_months(start, months, expected):
    assert add_months(start, months) == expected


class TestPlans:
    def test_create_clears_other_defaults(self, client, factory, admin_headers, db):
        college = factory.college()
        old_default = factory.plan(colleges=[college], is_default=True)

        response = client.post(
            "/api/admin/subscription-plans",
            json={
                "name": "Premium",
                "description": "Everything",
                "duration": 12,
                "price": 2400,
                "features": ["Mock tests"],
                "is_default": True,
                "college_ids": [college.id],
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["is_default"] is True
        assert body["college_ids"] == [college.id]
        assert body["formatted_price"] == "₹2,400"
        assert body["duration_text"] == "1 year"
        db.refresh(old_default)
        assert old_default.is_default is False

    def test_unknown_college(self, client, admin_headers):
        response = client.post(
            "/api/admin/subscription-plans",
            json={"name": "X", "description": "Y", "duration": 1, "price": 10, "college_ids": [404]},
            headers=admin_headers,
        )

        assert response.status_code == 404

    def test_update(self, client, factory, admin_headers):
        plan = factory.plan()

        response = client.put(
            f"/api/admin/subscription-plans/{plan.id}", json={"price": 500, "is_active": False}, headers=admin_headers
        )

        assert response.json()["price"] == 500
        assert response.json()["is_active"] is False

    def test_delete_unused_plan(self, client, factory, admin_headers, db):
        plan = factory.plan()

        assert client.delete(f"/api/admin/subscription-plans/{plan.id}", headers=admin_headers).status_code == 204
        assert db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan.id).first() is None

    def test_delete_plan_with_subscribers_deactivates(self, client, factory, admin_headers, db):
        student, plan = _student_with_required_plan(factory)
        factory.subscription(student, plan)

        client.delete(f"/api/admin/subscription-plans/{plan.id}", headers=admin_headers)

        db.refresh(plan)
        assert plan.is_active is False

    def test_student_sees_college_plans(self, client, factory):
        student, plan = _student_with_required_plan(factory)
        factory.plan(colleges=[student.college], is_active=False)
        factory.plan(colleges=[factory.college()])

        plans = client.get("/api/student/subscription-plans", headers=auth_headers(student)).json()

        assert [item["id"] for item in plans] == [plan.id]


class TestReconcile:
    def test_marks_lapsed_subscriptions(self, client, factory, admin_headers, db):
        student, plan = _student_with_required_plan(factory)
        lapsed = factory.subscription(student, plan, start=NOW - timedelta(days=400), end=NOW - timedelta(days=200))
        live = factory.subscription(
            student, plan, start=datetime.utcnow(), end=datetime.utcnow() + timedelta(days=30)
        )

        response = client.post("/api/admin/subscriptions/reconcile", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["expired_count"] == 1
        db.refresh(lapsed)
        db.refresh(live)
        assert lapsed.status == SubscriptionStatus.EXPIRED
        assert live.status == SubscriptionStatus.ACTIVE

    def test_activation_rejects_duplicates(self, db, factory):
        student, plan = _student_with_required_plan(factory)
        SubscriptionService.activate(db, student, plan, payment_id="pay_1", amount=plan.price, now=NOW)
        db.commit()

        with pytest.raises(DuplicateException):
            SubscriptionService.activate(db, student, plan, payment_id="pay_2", amount=plan.price, now=NOW)


class TestOverview:
    def test_subscription_page(self, client, entitled):
        body = client.get("/api/student/subscriptions", headers=entitled["headers"]).json()

        assert body["status"]["kind"] == "ALLOWED"
        assert body["status"]["has_subscription"] is True
        assert [item["id"] for item in body["subscriptions"]] == [entitled["subscription"].id]
        assert body["available_plans"][0]["id"] == entitled["plan"].id


class TestSignature:
    def test_valid_and_tampered(self):
        signature = _sign("order_1", "pay_1")

        assert verify_signature("order_1", "pay_1", signature, SECRET) is True
        assert verify_signature("order_1", "pay_2", signature, SECRET) is False
        assert verify_signature("order_1", "pay_1", signature, "other") is False
        assert verify_signature("order_1", "pay_1", None, SECRET) is False

    def test_paise(self):
        assert to_paise(1499.5) == 149950
        assert to_paise(0.1 + 0.2) == 30


class TestCheckout:
    def test_order_for_required_plan(self, client, factory, gateway, db):
        student, plan = _student_with_required_plan(factory)

        response = client.post(
            "/api/payments/subscription-order", json={"plan_id": plan.id}, headers=auth_headers(student)
        )

        assert response.status_code == 201
        body = response.json()
        assert body["order_id"] == "order_000001"
        assert body["amount"] == 149950
        assert body["currency"] == "INR"
        assert body["key_id"] == "rzp_test_key"
        assert body["plan"]["formatted_price"] == "₹1,499.5"
        assert gateway.orders[0]["notes"]["plan_id"] == str(plan.id)
        payment = db.query(Payment).one()
        assert payment.status == PaymentStatus.CREATED

    def test_order_for_another_plan_is_rejected(self, client, factory, gateway):
        student, _ = _student_with_required_plan(factory)
        other = factory.plan(colleges=[student.college])

        response = client.post(
            "/api/payments/subscription-order", json={"plan_id": other.id}, headers=auth_headers(student)
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"]["required_plan_id"] != other.id
        assert gateway.orders == []

    def test_good_signature_activates(self, client, factory, gateway, db):
        student, plan = _student_with_required_plan(factory)
        headers = auth_headers(student)
        order_id = client.post(
            "/api/payments/subscription-order", json={"plan_id": plan.id}, headers=headers
        ).json()["order_id"]

        response = client.post(
            "/api/payments/subscription-verify",
            json={
                "razorpay_order_id": order_id,
                "razorpay_payment_id": "pay_live_1",
                "razorpay_signature": _sign(order_id, "pay_live_1"),
                "plan_id": plan.id,
            },
            headers=headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "active"
        assert body["payment_id"] == "pay_live_1"
        assert body["amount"] == 1499.5
        payment = db.query(Payment).one()
        assert payment.status == PaymentStatus.PAID
        assert payment.subscription_id == body["id"]
        assert db.query(StudentSubscription).count() == 1

    def test_bad_signature_fails_the_payment(self, client, factory, gateway, db):
        student, plan = _student_with_required_plan(factory)
        headers = auth_headers(student)
        order_id = client.post(
            "/api/payments/subscription-order", json={"plan_id": plan.id}, headers=headers
        ).json()["order_id"]

        response = client.post(
            "/api/payments/subscription-verify",
            json={
                "razorpay_order_id": order_id,
                "razorpay_payment_id": "pay_live_1",
                "razorpay_signature": "0" * 64,
                "plan_id": plan.id,
            },
            headers=headers,
        )

        assert response.status_code == 400
        assert db.query(Payment).one().status == PaymentStatus.FAILED
        assert db.query(StudentSubscription).count() == 0

    def test_unknown_order(self, client, factory, gateway):
        student, plan = _student_with_required_plan(factory)

        response = client.post(
            "/api/payments/subscription-verify",
            json={
                "razorpay_order_id": "order_missing",
                "razorpay_payment_id": "pay_1",
                "razorpay_signature": _sign("order_missing", "pay_1"),
                "plan_id": plan.id,
            },
            headers=auth_headers(student),
        )

        assert response.status_code == 404

    def test_payments_not_configured(self, client, factory):
        student, plan = _student_with_required_plan(factory)

        response = client.post(
            "/api/payments/subscription-order", json={"plan_id": plan.id}, headers=auth_headers(student)
        )

        assert response.status_code == 503

    def test_paid_order_cannot_be_reused(self, client, factory, gateway, db):
        student, plan = _student_with_required_plan(factory)
        headers = auth_headers(student)
        order_id = client.post(
            "/api/payments/subscription-order", json={"plan_id": plan.id}, headers=headers
        ).json()["order_id"]
        body = {
            "razorpay_order_id": order_id,
            "razorpay_payment_id": "pay_live_1",
            "razorpay_signature": _sign(order_id, "pay_live_1"),
            "plan_id": plan.id,
        }
        first = client.post("/api/payments/subscription-verify", json=body, headers=headers)
        assert first.status_code == 201

        subscription = db.query(StudentSubscription).one()
        subscription.end_date = datetime.utcnow() - timedelta(days=1)
        db.commit()

        replay = client.post("/api/payments/subscription-verify", json=body, headers=headers)

        assert replay.status_code == 400
        assert replay.json()["error"]["details"]["subscription_id"] == first.json()["id"]
        assert db.query(StudentSubscription).count() == 1

    def test_plan_retired_after_order_still_activates(self, client, factory, gateway, db):
        student, plan = _student_with_required_plan(factory)
        headers = auth_headers(student)
        order_id = client.post(
            "/api/payments/subscription-order", json={"plan_id": plan.id}, headers=headers
        ).json()["order_id"]
        plan.is_active = False
        db.commit()

        response = client.post(
            "/api/payments/subscription-verify",
            json={
                "razorpay_order_id": order_id,
                "razorpay_payment_id": "pay_live_2",
                "razorpay_signature": _sign(order_id, "pay_live_2"),
                "plan_id": plan.id,
            },
            headers=headers,
        )

        assert response.status_code == 201
        payment = db.query(Payment).one()
        assert payment.status == PaymentStatus.PAID
        assert payment.payment_id == "pay_live_2"
        assert payment.subscription_id == response.json()["id"]
