"""Dashboard aggregates for students and admins"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models import (
    Batch,
    College,
    Exam,
    Result,
    SecurityIncident,
    StudentSubscription,
    SubscriptionStatus,
    User,
    UserRole,
)
from app.services.entitlement import EntitlementService
from app.services.results import ResultService

logger = logging.getLogger(__name__)

RECENT_RESULTS = 5


class DashboardService:

    @staticmethod
    def student_dashboard(db: Session, student: User, now: Optional[datetime] = None) -> dict:
        now = now or datetime.utcnow()
        recent = (
            db.query(Result)
            .filter(Result.student_id == student.id)
            .order_by(Result.created_at.desc(), Result.id.desc())
            .limit(RECENT_RESULTS)
            .all()
        )
        return {
            "subscription": EntitlementService.get_subscription_status(db, student.id, now),
            "exams": ResultService.attempts_remaining(db, student),
            "recent_results": recent,
        }

    @staticmethod
    def admin_dashboard(db: Session, now: Optional[datetime] = None) -> dict:
        """Platform-wide counts; active subscriptions are judged by end date, not stored status"""
        now = now or datetime.utcnow()

        def count(column, *criteria) -> int:
            return db.query(func.count(column)).filter(*criteria).scalar() or 0

        return {
            "colleges": count(College.id, College.is_active.is_(True)),
            "batches": count(Batch.id, Batch.is_active.is_(True)),
            "students": count(User.id, User.role == UserRole.STUDENT),
            "exams": count(Exam.id, Exam.is_active.is_(True)),
            "active_subscriptions": count(
                StudentSubscription.id,
                StudentSubscription.status == SubscriptionStatus.ACTIVE,
                StudentSubscription.end_date >= now,
            ),
            "results": count(Result.id),
            "passed_results": count(Result.id, Result.passed.is_(True)),
            "security_incidents": count(SecurityIncident.id),
        }
