"""
Subscription checkout endpoints (Razorpay)
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import require_student
from app.models import User
from app.schemas.subscription import (
    StudentSubscriptionResponse,
    SubscriptionOrderRequest,
    SubscriptionOrderResponse,
    SubscriptionVerifyRequest,
)
from app.services.payments import PaymentService, RazorpayClient, get_payment_gateway

router = APIRouter()


@router.post(
    "/subscription-order",
    response_model=SubscriptionOrderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_subscription_order(
    data: SubscriptionOrderRequest,
    student: User = Depends(require_student),
    gateway: RazorpayClient = Depends(get_payment_gateway),
    db: Session = Depends(get_db),
):
    """Open a gateway order for the plan assigned to the student's batch"""
    return PaymentService.create_subscription_order(db, gateway, student, data.plan_id)


@router.post(
    "/subscription-verify",
    response_model=StudentSubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def verify_subscription_payment(
    data: SubscriptionVerifyRequest,
    student: User = Depends(require_student),
    gateway: RazorpayClient = Depends(get_payment_gateway),
    db: Session = Depends(get_db),
):
    return PaymentService.verify_subscription_payment(
        db,
        gateway,
        student,
        order_id=data.razorpay_order_id,
        payment_id=data.razorpay_payment_id,
        signature=data.razorpay_signature,
        plan_id=data.plan_id,
    )
