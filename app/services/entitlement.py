"""
Entitlement service
Decides whether a student may attempt an exam, and why not
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.models import (
    Batch,
    BatchSubscriptionAssignment,
    College,
    Exam,
    ExamBatchAssignment,
    ExamSuspension,
    Result,
    StudentSubscription,
    SubscriptionPlan,
    SubscriptionStatus,
    User,
)
from app.schemas.entitlement import (
    ACTIONS,
    EntitlementDecision,
    EntitlementKind,
    PlanSummary,
    StudentSubscriptionStatus,
    SubscriptionSummary,
)

logger = logging.getLogger(__name__)

CONTACT_ADMIN = "Please contact your administrator."


@dataclass
class _SubscriptionContext:
    """Intermediate state of a resolution; ``denial`` set means stop here"""
    student: Optional[User] = None
    batch: Optional[Batch] = None
    plan: Optional[SubscriptionPlan] = None
    subscription: Optional[StudentSubscription] = None
    has_subscription: bool = False
    days_until_expiry: Optional[int] = None
    denial: Optional[EntitlementDecision] = None


def _decision(kind: EntitlementKind, message: str, now: Optional[datetime] = None, **fields):
    plan = fields.pop("plan", None)
    subscription = fields.pop("subscription", None)
    return EntitlementDecision(
        allowed=kind == EntitlementKind.ALLOWED,
        kind=kind,
        message=message,
        action=ACTIONS[kind],
        required_plan=PlanSummary.from_plan(plan) if plan else None,
        subscription=SubscriptionSummary.from_subscription(subscription, now) if subscription else None,
        **fields,
    )


class EntitlementService:
    """
    Resolves exam entitlement for a student

    Resolution order: student and batch, required plan (newest active batch
    assignment, else the college default plan), the student's subscription
    to that plan, then the exam itself (assignment, suspension, attempts).
    The first failing step determines the decision.
    """

    @staticmethod
    def resolve_required_plan(db: Session, batch: Batch) -> Optional[SubscriptionPlan]:
        """Plan a batch's students must hold, or None when nothing applies"""
        assignment = (
            db.query(BatchSubscriptionAssignment)
            .filter(
                BatchSubscriptionAssignment.batch_id == batch.id,
                BatchSubscriptionAssignment.is_active.is_(True),
            )
            .order_by(
                BatchSubscriptionAssignment.assignment_date.desc(),
                BatchSubscriptionAssignment.created_at.desc(),
                BatchSubscriptionAssignment.id.desc(),
            )
            .first()
        )
        if assignment and assignment.subscription_plan:
            return assignment.subscription_plan

        return (
            db.query(SubscriptionPlan)
            .filter(
                SubscriptionPlan.is_default.is_(True),
                SubscriptionPlan.is_active.is_(True),
                SubscriptionPlan.colleges.any(College.id == batch.college_id),
            )
            .order_by(SubscriptionPlan.created_at.desc(), SubscriptionPlan.id.desc())
            .first()
        )

    @staticmethod
    def _resolve_subscription(db: Session, student_id: int, now: datetime) -> _SubscriptionContext:
        ctx = _SubscriptionContext()

        ctx.student = db.query(User).filter(User.id == student_id).first()
        if not ctx.student:
            ctx.denial = _decision(EntitlementKind.NOT_FOUND, "Student not found")
            return ctx

        if not ctx.student.batch_id:
            ctx.denial = _decision(
                EntitlementKind.NO_BATCH_ASSIGNED,
                f"You are not assigned to any batch. {CONTACT_ADMIN}",
            )
            return ctx

        ctx.batch = db.query(Batch).filter(Batch.id == ctx.student.batch_id).first()
        if not ctx.batch:
            logger.warning(
                "Student references a missing batch",
                extra={"student_id": student_id, "batch_id": ctx.student.batch_id},
            )
            ctx.denial = _decision(EntitlementKind.NOT_FOUND, "Batch not found")
            return ctx

        ctx.plan = EntitlementService.resolve_required_plan(db, ctx.batch)
        if not ctx.plan:
            ctx.denial = _decision(
                EntitlementKind.NO_PLAN_ASSIGNED,
                f"No subscription plan is assigned to your batch. {CONTACT_ADMIN}",
            )
            return ctx

        subscriptions = db.query(StudentSubscription).filter(
            StudentSubscription.student_id == student_id,
            StudentSubscription.plan_id == ctx.plan.id,
        )
        active = (
            subscriptions.filter(StudentSubscription.status == SubscriptionStatus.ACTIVE)
            .order_by(StudentSubscription.end_date.desc(), StudentSubscription.id.desc())
            .first()
        )

        if not active:
            latest = subscriptions.order_by(
                StudentSubscription.created_at.desc(), StudentSubscription.id.desc()
            ).first()
            ctx.has_subscription = latest is not None
            ctx.subscription = latest

            if latest and latest.status == SubscriptionStatus.SUSPENDED:
                ctx.denial = _decision(
                    EntitlementKind.SUSPENDED,
                    f"Your subscription is suspended. {CONTACT_ADMIN}",
                    now,
                    plan=ctx.plan,
                    subscription=latest,
                )
            elif latest and latest.status == SubscriptionStatus.EXPIRED:
                ctx.days_until_expiry = 0
                ctx.denial = _decision(
                    EntitlementKind.EXPIRED,
                    "Your subscription has expired. Please renew to access exams.",
                    now,
                    plan=ctx.plan,
                    subscription=latest,
                    days_until_expiry=0,
                )
            else:
                ctx.denial = _decision(
                    EntitlementKind.SUBSCRIPTION_REQUIRED,
                    f"Subscribe to {ctx.plan.name} to access exams.",
                    now,
                    plan=ctx.plan,
                    subscription=latest,
                )
            return ctx

        ctx.subscription = active
        ctx.has_subscription = True

        # Stored status may lag behind the end date
        if active.is_expired(now):
            ctx.days_until_expiry = 0
            ctx.denial = _decision(
                EntitlementKind.EXPIRED,
                "Your subscription has expired. Please renew to access exams.",
                now,
                plan=ctx.plan,
                subscription=active,
                days_until_expiry=0,
            )
            return ctx

        ctx.days_until_expiry = active.days_until_expiry(now)
        return ctx

    @staticmethod
    def check_exam_access(
        db: Session, student_id: int, exam_id: int, now: Optional[datetime] = None
    ) -> EntitlementDecision:
        """
        Decide whether a student may attempt an exam

        Args:
            db: Database session
            student_id: Student user ID
            exam_id: Exam ID
            now: Evaluation instant, defaults to the current UTC time

        Returns:
            EntitlementDecision; ``allowed`` is true only for ALLOWED
        """
        now = now or datetime.utcnow()
        ctx = EntitlementService._resolve_subscription(db, student_id, now)
        if ctx.denial:
            EntitlementService._log(student_id, exam_id, ctx.denial)
            return ctx.denial

        common = dict(plan=ctx.plan, subscription=ctx.subscription, days_until_expiry=ctx.days_until_expiry)

        exam = db.query(Exam).filter(Exam.id == exam_id).first()
        if not exam or not exam.is_active:
            decision = _decision(EntitlementKind.NOT_FOUND, "Exam not found", now, **common)
            EntitlementService._log(student_id, exam_id, decision)
            return decision

        assigned = (
            db.query(ExamBatchAssignment.id)
            .filter(
                ExamBatchAssignment.exam_id == exam.id,
                ExamBatchAssignment.batch_id == ctx.batch.id,
                ExamBatchAssignment.is_active.is_(True),
            )
            .first()
        )
        if not assigned:
            decision = _decision(
                EntitlementKind.EXAM_NOT_ASSIGNED,
                f"This exam is not assigned to your batch. {CONTACT_ADMIN}",
                now,
                **common,
            )
            EntitlementService._log(student_id, exam_id, decision)
            return decision

        suspended = (
            db.query(ExamSuspension.id)
            .filter(
                ExamSuspension.student_id == student_id,
                ExamSuspension.exam_id == exam.id,
                ExamSuspension.is_active.is_(True),
            )
            .first()
        )
        if suspended:
            decision = _decision(
                EntitlementKind.SUSPENDED,
                f"You have been suspended from this exam. {CONTACT_ADMIN}",
                now,
                **common,
            )
            EntitlementService._log(student_id, exam_id, decision)
            return decision

        attempts_used = (
            db.query(Result)
            .filter(Result.student_id == student_id, Result.exam_id == exam.id)
            .count()
        )
        if attempts_used >= exam.max_attempts:
            decision = _decision(
                EntitlementKind.MAX_ATTEMPTS_REACHED,
                f"You have used all {exam.max_attempts} attempts for this exam.",
                now,
                attempts_used=attempts_used,
                max_attempts=exam.max_attempts,
                **common,
            )
            EntitlementService._log(student_id, exam_id, decision)
            return decision

        return _decision(
            EntitlementKind.ALLOWED,
            "You can start this exam.",
            now,
            attempts_used=attempts_used,
            max_attempts=exam.max_attempts,
            **common,
        )

    @staticmethod
    def get_subscription_status(
        db: Session, student_id: int, now: Optional[datetime] = None
    ) -> StudentSubscriptionStatus:
        """Subscription half of the resolution, for dashboards"""
        now = now or datetime.utcnow()
        ctx = EntitlementService._resolve_subscription(db, student_id, now)
        flags = dict(has_assignment=ctx.plan is not None, has_subscription=ctx.has_subscription)

        if ctx.denial:
            return StudentSubscriptionStatus(**ctx.denial.model_dump(), **flags)

        decision = _decision(
            EntitlementKind.ALLOWED,
            f"Active ({ctx.days_until_expiry} days remaining)",
            now,
            plan=ctx.plan,
            subscription=ctx.subscription,
            days_until_expiry=ctx.days_until_expiry,
        )
        return StudentSubscriptionStatus(**decision.model_dump(), **flags)

    @staticmethod
    def _log(student_id: int, exam_id: int, decision: EntitlementDecision) -> None:
        logger.info(
            "Exam access denied",
            extra={"student_id": student_id, "exam_id": exam_id, "kind": decision.kind.value},
        )
