"""
Entitlement schemas for ExamPortal
The structured answer to "may this student take this exam?"
"""

import enum
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.models.subscription import StudentSubscription, SubscriptionPlan, SubscriptionStatus
from app.utils.formatting import duration_text, format_price, monthly_price


class EntitlementKind(str, enum.Enum):
    ALLOWED = "ALLOWED"
    NOT_FOUND = "NOT_FOUND"
    NO_BATCH_ASSIGNED = "NO_BATCH_ASSIGNED"
    NO_PLAN_ASSIGNED = "NO_PLAN_ASSIGNED"
    SUBSCRIPTION_REQUIRED = "SUBSCRIPTION_REQUIRED"
    EXPIRED = "EXPIRED"
    SUSPENDED = "SUSPENDED"
    EXAM_NOT_ASSIGNED = "EXAM_NOT_ASSIGNED"
    MAX_ATTEMPTS_REACHED = "MAX_ATTEMPTS_REACHED"


class EntitlementAction(str, enum.Enum):
    """Call-to-action the client should offer"""
    START_EXAM = "start_exam"
    SUBSCRIBE = "subscribe"
    RENEW = "renew"
    CONTACT_ADMIN = "contact_admin"
    NONE = "none"


ACTIONS = {
    EntitlementKind.ALLOWED: EntitlementAction.START_EXAM,
    EntitlementKind.NOT_FOUND: EntitlementAction.NONE,
    EntitlementKind.NO_BATCH_ASSIGNED: EntitlementAction.CONTACT_ADMIN,
    EntitlementKind.NO_PLAN_ASSIGNED: EntitlementAction.CONTACT_ADMIN,
    EntitlementKind.SUBSCRIPTION_REQUIRED: EntitlementAction.SUBSCRIBE,
    EntitlementKind.EXPIRED: EntitlementAction.RENEW,
    EntitlementKind.SUSPENDED: EntitlementAction.CONTACT_ADMIN,
    EntitlementKind.EXAM_NOT_ASSIGNED: EntitlementAction.CONTACT_ADMIN,
    EntitlementKind.MAX_ATTEMPTS_REACHED: EntitlementAction.NONE,
}


class PlanSummary(BaseModel):
    """Plan details shown on upsell and renewal panels"""
    id: int
    name: str
    description: str
    price: float
    duration: int
    features: List[str] = []
    formatted_price: str
    duration_text: str
    monthly_price: int

    @classmethod
    def from_plan(cls, plan: SubscriptionPlan) -> "PlanSummary":
        return cls(
            id=plan.id,
            name=plan.name,
            description=plan.description,
            price=plan.price,
            duration=plan.duration,
            features=list(plan.features or []),
            formatted_price=format_price(plan.price),
            duration_text=duration_text(plan.duration),
            monthly_price=monthly_price(plan.price, plan.duration),
        )


class SubscriptionSummary(BaseModel):
    id: int
    plan_id: int
    status: SubscriptionStatus
    start_date: datetime
    end_date: datetime
    amount: float
    payment_id: str
    auto_renew: bool = False
    is_currently_active: bool

    @classmethod
    def from_subscription(
        cls, subscription: StudentSubscription, now: Optional[datetime] = None
    ) -> "SubscriptionSummary":
        return cls(
            id=subscription.id,
            plan_id=subscription.plan_id,
            status=subscription.status,
            start_date=subscription.start_date,
            end_date=subscription.end_date,
            amount=subscription.amount,
            payment_id=subscription.payment_id,
            auto_renew=bool(subscription.auto_renew),
            is_currently_active=subscription.is_currently_active(now),
        )


class EntitlementDecision(BaseModel):
    allowed: bool
    kind: EntitlementKind
    message: str
    action: EntitlementAction
    required_plan: Optional[PlanSummary] = None
    subscription: Optional[SubscriptionSummary] = None
    days_until_expiry: Optional[int] = None
    attempts_used: Optional[int] = None
    max_attempts: Optional[int] = None


class StudentSubscriptionStatus(EntitlementDecision):
    """Dashboard view: the subscription half of the decision only"""
    has_assignment: bool = False
    has_subscription: bool = False
