"""
Subscription schemas for ExamPortal
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.subscription import SubscriptionStatus
from app.schemas.entitlement import PlanSummary, StudentSubscriptionStatus


class PlanCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    duration: int = Field(..., ge=1, le=999)
    price: float = Field(..., ge=0)
    features: List[str] = []
    is_active: bool = True
    is_default: bool = False
    college_ids: List[int] = []


class PlanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    duration: Optional[int] = Field(None, ge=1, le=999)
    price: Optional[float] = Field(None, ge=0)
    features: Optional[List[str]] = None
    is_active: Optional[bool] = None
    is_default: Optional[bool] = None
    college_ids: Optional[List[int]] = None


class PlanResponse(PlanSummary):
    is_active: bool
    is_default: bool
    college_ids: List[int] = []
    created_at: Optional[datetime] = None

    @classmethod
    def from_plan(cls, plan) -> "PlanResponse":
        return cls(
            **PlanSummary.from_plan(plan).model_dump(),
            is_active=plan.is_active,
            is_default=plan.is_default,
            college_ids=plan.college_ids,
            created_at=plan.created_at,
        )


class BatchBrief(BaseModel):
    id: int
    name: str
    year: int

    class Config:
        from_attributes = True


class PlanBrief(BaseModel):
    id: int
    name: str
    price: float
    duration: int

    class Config:
        from_attributes = True


class BatchAssignmentCreate(BaseModel):
    college_id: int
    batch_id: int
    subscription_plan_id: int
    notes: Optional[str] = Field(None, max_length=500)


class BatchAssignmentUpdate(BaseModel):
    is_active: Optional[bool] = None
    notes: Optional[str] = Field(None, max_length=500)


class BatchAssignmentResponse(BaseModel):
    id: int
    batch_id: int
    subscription_plan_id: int
    college_id: int
    assigned_by: Optional[int] = None
    is_active: bool
    assignment_date: datetime
    notes: Optional[str] = None
    batch: Optional[BatchBrief] = None
    subscription_plan: Optional[PlanBrief] = None

    class Config:
        from_attributes = True


class StudentSubscriptionResponse(BaseModel):
    id: int
    plan_id: int
    status: SubscriptionStatus
    start_date: datetime
    end_date: datetime
    payment_id: str
    amount: float
    auto_renew: bool = False
    plan: Optional[PlanBrief] = None

    class Config:
        from_attributes = True


class SubscriptionOverview(BaseModel):
    """Student subscription page"""
    status: StudentSubscriptionStatus
    subscriptions: List[StudentSubscriptionResponse] = []
    available_plans: List[PlanSummary] = []


class SubscriptionOrderRequest(BaseModel):
    plan_id: int


class SubscriptionOrderResponse(BaseModel):
    order_id: str
    amount: int  # paise
    currency: str
    key_id: Optional[str] = None
    plan: PlanSummary


class SubscriptionVerifyRequest(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str
    plan_id: int


class ReconcileResponse(BaseModel):
    expired_count: int
    checked_at: datetime
