"""
Subscription models for ExamPortal
Plans, batch-to-plan assignments, student subscriptions and payments
"""

import enum
import math
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.core.database import Base

plan_colleges = Table(
    "subscription_plan_colleges",
    Base.metadata,
    Column("plan_id", Integer, ForeignKey("subscription_plans.id"), primary_key=True),
    Column("college_id", Integer, ForeignKey("colleges.id"), primary_key=True),
)


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    CREATED = "created"
    PAID = "paid"
    FAILED = "failed"


class SubscriptionPlan(Base):
    """Priced, timed bundle of exam access"""
    __tablename__ = "subscription_plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False)
    duration = Column(Integer, nullable=False)  # months
    price = Column(Float, nullable=False)
    features = Column(JSON, default=list)
    is_active = Column(Boolean, default=True, index=True)
    is_default = Column(Boolean, default=False, index=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    colleges = relationship("College", secondary=plan_colleges)

    @property
    def college_ids(self) -> list[int]:
        return [college.id for college in self.colleges]


class BatchSubscriptionAssignment(Base):
    """Links a batch to the plan its students must hold"""
    __tablename__ = "batch_subscription_assignments"
    __table_args__ = (
        UniqueConstraint("batch_id", "subscription_plan_id", name="uq_batch_plan"),
    )

    id = Column(Integer, primary_key=True, index=True)
    batch_id = Column(Integer, ForeignKey("batches.id"), nullable=False, index=True)
    subscription_plan_id = Column(
        Integer, ForeignKey("subscription_plans.id"), nullable=False, index=True
    )
    college_id = Column(Integer, ForeignKey("colleges.id"), nullable=False, index=True)
    assigned_by = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, index=True)
    assignment_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    notes = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    batch = relationship("Batch")
    subscription_plan = relationship("SubscriptionPlan")
    college = relationship("College")


class StudentSubscription(Base):
    """
    A student's purchase of a plan

    The stored ``status`` is not eagerly synced with ``end_date``; use
    ``is_currently_active`` wherever entitlement matters.
    """
    __tablename__ = "student_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=False, index=True)
    college_id = Column(Integer, ForeignKey("colleges.id"), nullable=True, index=True)
    start_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    end_date = Column(DateTime, nullable=False, index=True)
    status = Column(Enum(SubscriptionStatus), default=SubscriptionStatus.ACTIVE, nullable=False)
    payment_id = Column(String(100), nullable=False)
    amount = Column(Float, nullable=False)
    auto_renew = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    plan = relationship("SubscriptionPlan")
    student = relationship("User")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.end_date < (now or datetime.utcnow())

    def is_currently_active(self, now: Optional[datetime] = None) -> bool:
        return self.status == SubscriptionStatus.ACTIVE and not self.is_expired(now)

    def days_until_expiry(self, now: Optional[datetime] = None) -> int:
        """Whole days left, rounded up; zero once expired"""
        now = now or datetime.utcnow()
        if self.is_expired(now):
            return 0
        return math.ceil((self.end_date - now).total_seconds() / 86400)


class Payment(Base):
    """Gateway order for a subscription purchase"""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=False)
    subscription_id = Column(Integer, ForeignKey("student_subscriptions.id"), nullable=True)
    order_id = Column(String(100), unique=True, index=True, nullable=False)
    payment_id = Column(String(100), nullable=True)
    signature = Column(String(255), nullable=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), default="INR")
    status = Column(Enum(PaymentStatus), default=PaymentStatus.CREATED, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    paid_at = Column(DateTime, nullable=True)
