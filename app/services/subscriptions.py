"""
Subscription services
Plan administration, student subscriptions and status reconciliation
"""

import calendar
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import BusinessRuleException, DuplicateException, NotFoundException
from app.core.logging import LoggerFactory
from app.models import (
    College,
    StudentSubscription,
    SubscriptionPlan,
    SubscriptionStatus,
    User,
)
from app.schemas.subscription import PlanCreate, PlanUpdate

logger = logging.getLogger(__name__)


def add_months(start: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping to the last day of the target month"""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


class PlanService:
    """Subscription plan administration"""

    @staticmethod
    def _load_colleges(db: Session, college_ids: List[int]) -> List[College]:
        colleges = db.query(College).filter(College.id.in_(college_ids)).all() if college_ids else []
        missing = sorted(set(college_ids) - {college.id for college in colleges})
        if missing:
            raise NotFoundException("College", details={"college_ids": missing})
        return colleges

    @staticmethod
    def _clear_other_defaults(db: Session, plan: SubscriptionPlan) -> None:
        """Only one default plan per college"""
        college_ids = plan.college_ids
        if not college_ids:
            return
        others = (
            db.query(SubscriptionPlan)
            .filter(
                SubscriptionPlan.id != plan.id,
                SubscriptionPlan.is_default.is_(True),
                SubscriptionPlan.colleges.any(College.id.in_(college_ids)),
            )
            .all()
        )
        for other in others:
            other.is_default = False
            logger.info(
                "Cleared default flag", extra={"plan_id": other.id, "new_default_plan_id": plan.id}
            )

    @staticmethod
    def list_plans(
        db: Session, college_id: Optional[int] = None, is_active: Optional[bool] = None
    ) -> List[SubscriptionPlan]:
        query = db.query(SubscriptionPlan)
        if college_id is not None:
            query = query.filter(SubscriptionPlan.colleges.any(College.id == college_id))
        if is_active is not None:
            query = query.filter(SubscriptionPlan.is_active.is_(is_active))
        return query.order_by(SubscriptionPlan.price, SubscriptionPlan.id).all()

    @staticmethod
    def get_plan(db: Session, plan_id: int) -> SubscriptionPlan:
        plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()
        if not plan:
            raise NotFoundException("Subscription plan")
        return plan

    @staticmethod
    def create_plan(db: Session, data: PlanCreate, admin: User) -> SubscriptionPlan:
        values = data.model_dump(exclude={"college_ids"})
        plan = SubscriptionPlan(**values, created_by=admin.id)
        plan.colleges = PlanService._load_colleges(db, data.college_ids)
        db.add(plan)
        db.flush()

        if plan.is_default:
            PlanService._clear_other_defaults(db, plan)

        db.commit()
        db.refresh(plan)
        LoggerFactory.get_audit_logger().info(
            "Subscription plan created", extra={"plan_id": plan.id, "admin_id": admin.id}
        )
        return plan

    @staticmethod
    def update_plan(db: Session, plan_id: int, data: PlanUpdate, admin: User) -> SubscriptionPlan:
        plan = PlanService.get_plan(db, plan_id)
        changes = data.model_dump(exclude_unset=True)

        college_ids = changes.pop("college_ids", None)
        if college_ids is not None:
            plan.colleges = PlanService._load_colleges(db, college_ids)
        for key, value in changes.items():
            setattr(plan, key, value)
        db.flush()

        if plan.is_default:
            PlanService._clear_other_defaults(db, plan)

        db.commit()
        db.refresh(plan)
        LoggerFactory.get_audit_logger().info(
            "Subscription plan updated",
            extra={"plan_id": plan.id, "changes": sorted(changes), "admin_id": admin.id},
        )
        return plan

    @staticmethod
    def delete_plan(db: Session, plan_id: int, admin: User) -> None:
        """
        Delete a plan that nobody has bought

        Plans with subscriptions are deactivated instead.
        """
        plan = PlanService.get_plan(db, plan_id)
        in_use = (
            db.query(StudentSubscription.id).filter(StudentSubscription.plan_id == plan.id).first()
        )
        if in_use:
            plan.is_active = False
            plan.is_default = False
            action = "deactivated"
        else:
            plan.colleges = []
            db.delete(plan)
            action = "deleted"
        db.commit()

        LoggerFactory.get_audit_logger().info(
            f"Subscription plan {action}", extra={"plan_id": plan_id, "admin_id": admin.id}
        )


class SubscriptionService:
    """Student subscriptions"""

    @staticmethod
    def list_for_student(db: Session, student_id: int) -> List[StudentSubscription]:
        return (
            db.query(StudentSubscription)
            .filter(StudentSubscription.student_id == student_id)
            .order_by(StudentSubscription.created_at.desc(), StudentSubscription.id.desc())
            .all()
        )

    @staticmethod
    def plans_for_student(db: Session, student: User) -> List[SubscriptionPlan]:
        """Active plans offered at the student's college"""
        if not student.college_id:
            return []
        return PlanService.list_plans(db, college_id=student.college_id, is_active=True)

    @staticmethod
    def current_active(
        db: Session, student_id: int, plan_id: int, now: Optional[datetime] = None
    ) -> Optional[StudentSubscription]:
        now = now or datetime.utcnow()
        return (
            db.query(StudentSubscription)
            .filter(
                StudentSubscription.student_id == student_id,
                StudentSubscription.plan_id == plan_id,
                StudentSubscription.status == SubscriptionStatus.ACTIVE,
                StudentSubscription.end_date >= now,
            )
            .first()
        )

    @staticmethod
    def activate(
        db: Session,
        student: User,
        plan: SubscriptionPlan,
        payment_id: str,
        amount: float,
        now: Optional[datetime] = None,
        require_active_plan: bool = True,
    ) -> StudentSubscription:
        """
        Start a paid subscription

        Raises:
            BusinessRuleException: the plan is inactive and require_active_plan is set
            DuplicateException: a currently-active subscription to the plan exists
        """
        now = now or datetime.utcnow()
        if require_active_plan and not plan.is_active:
            raise BusinessRuleException("This subscription plan is no longer available")

        if SubscriptionService.current_active(db, student.id, plan.id, now):
            raise DuplicateException(
                "Subscription", message="You already have an active subscription to this plan"
            )

        subscription = StudentSubscription(
            student_id=student.id,
            plan_id=plan.id,
            college_id=student.college_id,
            start_date=now,
            end_date=add_months(now, plan.duration),
            status=SubscriptionStatus.ACTIVE,
            payment_id=payment_id,
            amount=amount,
        )
        db.add(subscription)
        db.flush()

        logger.info(
            "Subscription activated",
            extra={
                "subscription_id": subscription.id,
                "student_id": student.id,
                "plan_id": plan.id,
                "end_date": subscription.end_date.isoformat(),
            },
        )
        return subscription

    @staticmethod
    def reconcile_expired(db: Session, now: Optional[datetime] = None) -> int:
        """
        Mark active-status subscriptions past their end date as expired

        Returns:
            Number of subscriptions updated
        """
        now = now or datetime.utcnow()
        stale = (
            db.query(StudentSubscription)
            .filter(
                StudentSubscription.status == SubscriptionStatus.ACTIVE,
                StudentSubscription.end_date < now,
            )
            .all()
        )
        for subscription in stale:
            subscription.status = SubscriptionStatus.EXPIRED
        db.commit()

        LoggerFactory.get_audit_logger().info(
            "Subscriptions reconciled",
            extra={"expired_count": len(stale), "checked_at": now.isoformat()},
        )
        return len(stale)
