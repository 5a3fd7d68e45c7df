"""
Proctoring service
Security incident recording and the automatic exam suspensions they trigger
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessRuleException, NotFoundException
from app.core.logging import LoggerFactory
from app.models import Batch, Exam, ExamSuspension, SecurityIncident, User
from app.schemas.incident import IncidentCreate

logger = logging.getLogger(__name__)


class IncidentService:

    @staticmethod
    def suspension_threshold(db: Session, batch: Batch, student_id: int, exam_id: int) -> int:
        """
        Incident count at which the student is suspended from the exam

        After an admin lifts a suspension the student gets a fresh allowance
        on top of the count recorded when they were last suspended.
        """
        lifted = (
            db.query(ExamSuspension)
            .filter(
                ExamSuspension.student_id == student_id,
                ExamSuspension.exam_id == exam_id,
                ExamSuspension.is_active.is_(False),
            )
            .order_by(ExamSuspension.removed_at.desc(), ExamSuspension.id.desc())
            .first()
        )
        if lifted:
            return lifted.incident_count + batch.additional_security_incidents_after_removal
        return batch.max_security_incidents

    @staticmethod
    def record_incident(
        db: Session,
        student: User,
        data: IncidentCreate,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> dict:
        """
        Record an incident and auto-suspend when the batch threshold is reached

        Returns:
            The incident, the running count, the threshold and whether a
            suspension was created
        """
        exam = db.query(Exam).filter(Exam.id == data.exam_id).first()
        if not exam:
            raise NotFoundException("Exam")

        incident = SecurityIncident(
            student_id=student.id,
            exam_id=exam.id,
            incident_type=data.incident_type,
            incident_details=data.incident_details,
            user_agent=(user_agent or "")[:500] or None,
            ip_address=ip_address,
        )
        db.add(incident)
        db.flush()

        count = (
            db.query(SecurityIncident)
            .filter(SecurityIncident.student_id == student.id, SecurityIncident.exam_id == exam.id)
            .count()
        )

        batch = db.query(Batch).filter(Batch.id == student.batch_id).first() if student.batch_id else None
        threshold = None
        suspended = False
        if batch is not None and batch.enable_auto_suspend:
            threshold = IncidentService.suspension_threshold(db, batch, student.id, exam.id)
            already = (
                db.query(ExamSuspension.id)
                .filter(
                    ExamSuspension.student_id == student.id,
                    ExamSuspension.exam_id == exam.id,
                    ExamSuspension.is_active.is_(True),
                )
                .first()
            )
            if count >= threshold and not already:
                db.add(
                    ExamSuspension(
                        student_id=student.id,
                        exam_id=exam.id,
                        reason=f"Automatically suspended after {count} security incidents",
                        incident_count=count,
                    )
                )
                incident.caused_suspension = True
                suspended = True

        db.commit()
        db.refresh(incident)

        log = logger.warning if suspended else logger.info
        log(
            "Security incident recorded",
            extra={
                "incident_id": incident.id,
                "student_id": student.id,
                "exam_id": exam.id,
                "incident_type": incident.incident_type.value,
                "incident_count": count,
                "suspended": suspended,
            },
        )
        return {"incident": incident, "incident_count": count, "threshold": threshold, "suspended": suspended}

    @staticmethod
    def list_incidents(
        db: Session,
        exam_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> dict:
        query = db.query(SecurityIncident)
        if exam_id is not None:
            query = query.filter(SecurityIncident.exam_id == exam_id)
        if start_date is not None:
            query = query.filter(SecurityIncident.timestamp >= start_date)
        if end_date is not None:
            query = query.filter(SecurityIncident.timestamp <= end_date)

        total = query.count()
        items = (
            query.order_by(SecurityIncident.timestamp.desc(), SecurityIncident.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"items": items, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def summary(db: Session) -> dict:
        total = db.query(func.count(SecurityIncident.id)).scalar() or 0
        unique_students = db.query(func.count(func.distinct(SecurityIncident.student_id))).scalar() or 0
        unique_exams = db.query(func.count(func.distinct(SecurityIncident.exam_id))).scalar() or 0

        by_type = {
            incident_type.value: count
            for incident_type, count in db.query(
                SecurityIncident.incident_type, func.count(SecurityIncident.id)
            )
            .group_by(SecurityIncident.incident_type)
            .all()
        }

        top = (
            db.query(User.id, User.name, User.email, func.count(SecurityIncident.id).label("incident_count"))
            .join(SecurityIncident, SecurityIncident.student_id == User.id)
            .group_by(User.id, User.name, User.email)
            .order_by(func.count(SecurityIncident.id).desc(), User.id)
            .limit(5)
            .all()
        )
        recent = (
            db.query(SecurityIncident)
            .order_by(SecurityIncident.timestamp.desc(), SecurityIncident.id.desc())
            .limit(10)
            .all()
        )
        return {
            "total_incidents": total,
            "unique_students": unique_students,
            "unique_exams": unique_exams,
            "by_type": by_type,
            "top_students": [
                {"student_id": row.id, "name": row.name, "email": row.email, "count": row.incident_count}
                for row in top
            ],
            "recent": recent,
        }

    @staticmethod
    def student_incidents(db: Session, student_id: int) -> List[SecurityIncident]:
        if not db.query(User.id).filter(User.id == student_id).first():
            raise NotFoundException("Student")
        return (
            db.query(SecurityIncident)
            .filter(SecurityIncident.student_id == student_id)
            .order_by(SecurityIncident.timestamp.desc(), SecurityIncident.id.desc())
            .all()
        )


class SuspensionService:

    @staticmethod
    def list_suspensions(
        db: Session, is_active: Optional[bool] = True, exam_id: Optional[int] = None
    ) -> List[ExamSuspension]:
        query = db.query(ExamSuspension)
        if is_active is not None:
            query = query.filter(ExamSuspension.is_active.is_(is_active))
        if exam_id is not None:
            query = query.filter(ExamSuspension.exam_id == exam_id)
        return query.order_by(ExamSuspension.created_at.desc(), ExamSuspension.id.desc()).all()

    @staticmethod
    def lift_suspension(db: Session, suspension_id: int, admin: User) -> ExamSuspension:
        suspension = db.query(ExamSuspension).filter(ExamSuspension.id == suspension_id).first()
        if not suspension:
            raise NotFoundException("Suspension")
        if not suspension.is_active:
            raise BusinessRuleException("Suspension has already been lifted")

        suspension.is_active = False
        suspension.removed_at = datetime.utcnow()
        suspension.removed_by = admin.id
        db.commit()
        db.refresh(suspension)

        LoggerFactory.get_audit_logger().info(
            "Exam suspension lifted",
            extra={
                "suspension_id": suspension.id,
                "student_id": suspension.student_id,
                "exam_id": suspension.exam_id,
                "admin_id": admin.id,
            },
        )
        return suspension
