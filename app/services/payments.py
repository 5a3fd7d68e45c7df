"""
Payment services
Razorpay order creation over its REST API and checkout verification
"""

import hashlib
import hmac
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
from fastapi import Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    BusinessRuleException,
    ExternalServiceException,
    NotFoundException,
    PaymentVerificationException,
)
from app.models import Payment, PaymentStatus, StudentSubscription, SubscriptionPlan, User
from app.schemas.entitlement import PlanSummary
from app.services.entitlement import EntitlementService
from app.services.subscriptions import PlanService, SubscriptionService

logger = logging.getLogger(__name__)


def to_paise(amount: float) -> int:
    return int(round(amount * 100))


def verify_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Checkout signature is HMAC-SHA256 of ``order_id|payment_id`` in hex"""
    expected = hmac.new(
        secret.encode("utf-8"), f"{order_id}|{payment_id}".encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return hmac.compare_digest(expected, signature or "")


class RazorpayClient:
    """Minimal Razorpay Orders API client"""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self._client = httpx.Client(
            base_url=base_url, auth=(key_id, key_secret), timeout=timeout, transport=transport
        )

    def create_order(
        self, amount: int, currency: str, receipt: str, notes: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Create an order

        Args:
            amount: Amount in the smallest currency unit (paise)
            currency: ISO currency code
            receipt: Merchant receipt reference (max 40 chars)
            notes: Free-form key/value notes

        Raises:
            ExternalServiceException: gateway unreachable or rejected the request
        """
        payload = {"amount": amount, "currency": currency, "receipt": receipt[:40], "notes": notes or {}}
        try:
            response = self._client.post("/orders", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Razorpay rejected order",
                extra={"status_code": e.response.status_code, "body": e.response.text[:500]},
            )
            raise ExternalServiceException("Razorpay", "Could not create payment order")
        except httpx.HTTPError as e:
            logger.error(f"Razorpay request failed: {e}")
            raise ExternalServiceException("Razorpay", "Payment gateway unavailable")
        return response.json()

    def verify(self, order_id: str, payment_id: str, signature: str) -> bool:
        return verify_signature(order_id, payment_id, signature, self.key_secret)

    def close(self) -> None:
        self._client.close()


def build_gateway() -> Optional[RazorpayClient]:
    """Gateway from settings, or None when keys are not configured"""
    if not settings.payments_configured():
        logger.warning("Razorpay keys not configured; payments are disabled")
        return None
    return RazorpayClient(
        settings.RAZORPAY_KEY_ID,
        settings.RAZORPAY_KEY_SECRET,
        base_url=settings.RAZORPAY_API_URL,
        timeout=settings.PAYMENT_TIMEOUT_SECONDS,
    )


class PaymentService:
    """Subscription checkout"""

    @staticmethod
    def _required_plan(db: Session, student: User, plan_id: int) -> SubscriptionPlan:
        plan = PlanService.get_plan(db, plan_id)
        if not plan.is_active:
            raise BusinessRuleException("This subscription plan is no longer available")

        status = EntitlementService.get_subscription_status(db, student.id)
        if not status.required_plan:
            raise BusinessRuleException(status.message)
        if status.required_plan.id != plan.id:
            raise BusinessRuleException(
                "This plan is not the plan assigned to your batch",
                details={"required_plan_id": status.required_plan.id},
            )
        return plan

    @staticmethod
    def create_subscription_order(
        db: Session, gateway: RazorpayClient, student: User, plan_id: int
    ) -> Dict[str, Any]:
        plan = PaymentService._required_plan(db, student, plan_id)

        if SubscriptionService.current_active(db, student.id, plan.id):
            raise BusinessRuleException("You already have an active subscription to this plan")

        amount = to_paise(plan.price)
        order = gateway.create_order(
            amount=amount,
            currency=settings.PAYMENT_CURRENCY,
            receipt=f"sub_{student.id}_{plan.id}_{int(datetime.utcnow().timestamp())}",
            notes={"student_id": str(student.id), "plan_id": str(plan.id), "type": "subscription"},
        )

        payment = Payment(
            student_id=student.id,
            plan_id=plan.id,
            order_id=order["id"],
            amount=plan.price,
            currency=order.get("currency", settings.PAYMENT_CURRENCY),
            status=PaymentStatus.CREATED,
        )
        db.add(payment)
        db.commit()

        logger.info(
            "Subscription order created",
            extra={"order_id": payment.order_id, "student_id": student.id, "plan_id": plan.id},
        )
        return {
            "order_id": payment.order_id,
            "amount": amount,
            "currency": payment.currency,
            "key_id": gateway.key_id,
            "plan": PlanSummary.from_plan(plan),
        }

    @staticmethod
    def verify_subscription_payment(
        db: Session,
        gateway: RazorpayClient,
        student: User,
        order_id: str,
        payment_id: str,
        signature: str,
        plan_id: int,
    ) -> StudentSubscription:
        """
        Verify a checkout and activate the subscription

        Raises:
            PaymentVerificationException: signature mismatch
            NotFoundException: unknown order for this student
            BusinessRuleException: the order was already paid
        """
        payment = (
            db.query(Payment)
            .filter(Payment.order_id == order_id, Payment.student_id == student.id)
            .first()
        )
        if not payment:
            raise NotFoundException("Payment order")

        if payment.status == PaymentStatus.PAID:
            raise BusinessRuleException(
                "This payment has already been used",
                details={"subscription_id": payment.subscription_id},
            )

        if not gateway.verify(order_id, payment_id, signature):
            payment.status = PaymentStatus.FAILED
            db.commit()
            logger.warning(
                "Payment signature mismatch", extra={"order_id": order_id, "student_id": student.id}
            )
            raise PaymentVerificationException()

        if payment.plan_id != plan_id:
            raise BusinessRuleException("Order was created for a different plan")

        payment.payment_id = payment_id
        payment.signature = signature
        payment.status = PaymentStatus.PAID
        payment.paid_at = datetime.utcnow()
        db.commit()

        # The plan was checked when the order was created
        plan = PlanService.get_plan(db, plan_id)
        subscription = SubscriptionService.activate(
            db, student, plan, payment_id=payment_id, amount=payment.amount, require_active_plan=False
        )
        payment.subscription_id = subscription.id
        db.commit()
        db.refresh(subscription)
        return subscription


def get_payment_gateway(request: Request) -> RazorpayClient:
    """Dependency returning the startup-built gateway client"""
    gateway = getattr(request.app.state, "payments", None)
    if gateway is None:
        raise ExternalServiceException("Razorpay", "Payments are not configured")
    return gateway
