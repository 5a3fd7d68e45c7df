"""
Assignment services
Batch-to-plan and exam-to-batch links managed by administrators
"""

import logging
from collections import OrderedDict
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessRuleException, DuplicateException, NotFoundException
from app.core.logging import LoggerFactory
from app.models import (
    Batch,
    BatchSubscriptionAssignment,
    College,
    Exam,
    ExamBatchAssignment,
    SubscriptionPlan,
    User,
)
from app.schemas.subscription import BatchAssignmentCreate, BatchAssignmentUpdate

logger = logging.getLogger(__name__)


class BatchAssignmentService:
    """Which subscription plan a batch's students must hold"""

    @staticmethod
    def create_assignment(
        db: Session, data: BatchAssignmentCreate, admin: User
    ) -> BatchSubscriptionAssignment:
        """
        Assign a plan to a batch

        Raises:
            NotFoundException: unknown college, batch or plan
            BusinessRuleException: batch outside the college, inactive batch or plan
            DuplicateException: the (batch, plan) pair already exists
        """
        college = db.query(College).filter(College.id == data.college_id).first()
        if not college:
            raise NotFoundException("College")

        batch = db.query(Batch).filter(Batch.id == data.batch_id).first()
        if not batch:
            raise NotFoundException("Batch")
        if batch.college_id != college.id:
            raise BusinessRuleException("Batch does not belong to the selected college")
        if not batch.is_active:
            raise BusinessRuleException("Cannot assign a plan to an inactive batch")

        plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.id == data.subscription_plan_id).first()
        if not plan:
            raise NotFoundException("Subscription plan")
        if not plan.is_active:
            raise BusinessRuleException("Cannot assign an inactive subscription plan")

        existing = (
            db.query(BatchSubscriptionAssignment)
            .filter(
                BatchSubscriptionAssignment.batch_id == batch.id,
                BatchSubscriptionAssignment.subscription_plan_id == plan.id,
            )
            .first()
        )
        if existing:
            raise DuplicateException(
                "Batch assignment",
                message="This batch is already assigned to this subscription plan",
                details={"assignment_id": existing.id},
            )

        assignment = BatchSubscriptionAssignment(
            batch_id=batch.id,
            subscription_plan_id=plan.id,
            college_id=college.id,
            assigned_by=admin.id,
            notes=data.notes,
            is_active=True,
        )
        db.add(assignment)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise DuplicateException(
                "Batch assignment",
                message="This batch is already assigned to this subscription plan",
            )
        db.refresh(assignment)

        LoggerFactory.get_audit_logger().info(
            "Batch assignment created",
            extra={
                "assignment_id": assignment.id,
                "batch_id": batch.id,
                "plan_id": plan.id,
                "admin_id": admin.id,
            },
        )
        return assignment

    @staticmethod
    def list_assignments(
        db: Session,
        batch_id: Optional[int] = None,
        college_id: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> List[BatchSubscriptionAssignment]:
        """Assignments newest first, optionally filtered"""
        query = db.query(BatchSubscriptionAssignment)
        if batch_id is not None:
            query = query.filter(BatchSubscriptionAssignment.batch_id == batch_id)
        if college_id is not None:
            query = query.filter(BatchSubscriptionAssignment.college_id == college_id)
        if is_active is not None:
            query = query.filter(BatchSubscriptionAssignment.is_active.is_(is_active))
        return query.order_by(
            BatchSubscriptionAssignment.assignment_date.desc(),
            BatchSubscriptionAssignment.id.desc(),
        ).all()

    @staticmethod
    def get_assignment(db: Session, assignment_id: int) -> BatchSubscriptionAssignment:
        assignment = (
            db.query(BatchSubscriptionAssignment)
            .filter(BatchSubscriptionAssignment.id == assignment_id)
            .first()
        )
        if not assignment:
            raise NotFoundException("Batch assignment")
        return assignment

    @staticmethod
    def update_assignment(
        db: Session, assignment_id: int, data: BatchAssignmentUpdate, admin: User
    ) -> BatchSubscriptionAssignment:
        assignment = BatchAssignmentService.get_assignment(db, assignment_id)
        changes = data.model_dump(exclude_unset=True)
        for key, value in changes.items():
            setattr(assignment, key, value)
        db.commit()
        db.refresh(assignment)

        LoggerFactory.get_audit_logger().info(
            "Batch assignment updated",
            extra={"assignment_id": assignment.id, "changes": changes, "admin_id": admin.id},
        )
        return assignment

    @staticmethod
    def delete_assignment(db: Session, assignment_id: int, admin: User) -> None:
        assignment = BatchAssignmentService.get_assignment(db, assignment_id)
        db.delete(assignment)
        db.commit()

        LoggerFactory.get_audit_logger().info(
            "Batch assignment deleted",
            extra={"assignment_id": assignment_id, "admin_id": admin.id},
        )


class ExamAssignmentService:
    """Which batches may see an exam"""

    @staticmethod
    def assign_exam(db: Session, exam_id: int, batch_ids: List[int], admin: User) -> dict:
        """
        Assign an exam to batches

        Existing pairs are re-activated; new pairs are created.

        Returns:
            Counts of newly created and total active assignments
        """
        exam = db.query(Exam).filter(Exam.id == exam_id).first()
        if not exam:
            raise NotFoundException("Exam")

        batches = db.query(Batch).filter(Batch.id.in_(batch_ids)).all()
        missing = sorted(set(batch_ids) - {batch.id for batch in batches})
        if missing:
            raise NotFoundException("Batch", details={"batch_ids": missing})

        existing = {
            assignment.batch_id: assignment
            for assignment in db.query(ExamBatchAssignment)
            .filter(ExamBatchAssignment.exam_id == exam.id)
            .all()
        }

        created = 0
        for batch_id in batch_ids:
            assignment = existing.get(batch_id)
            if assignment:
                assignment.is_active = True
            else:
                db.add(ExamBatchAssignment(exam_id=exam.id, batch_id=batch_id, assigned_by=admin.id))
                created += 1
        db.commit()

        total = (
            db.query(ExamBatchAssignment)
            .filter(ExamBatchAssignment.exam_id == exam.id, ExamBatchAssignment.is_active.is_(True))
            .count()
        )
        LoggerFactory.get_audit_logger().info(
            "Exam assigned to batches",
            extra={"exam_id": exam.id, "batch_ids": batch_ids, "new": created, "admin_id": admin.id},
        )
        return {"exam_id": exam.id, "new_assignments": created, "total_assigned_batches": total}

    @staticmethod
    def unassign_exam(db: Session, exam_id: int, batch_id: int, admin: User) -> None:
        assignment = (
            db.query(ExamBatchAssignment)
            .filter(ExamBatchAssignment.exam_id == exam_id, ExamBatchAssignment.batch_id == batch_id)
            .first()
        )
        if not assignment:
            raise NotFoundException("Exam assignment")

        db.delete(assignment)
        db.commit()
        LoggerFactory.get_audit_logger().info(
            "Exam unassigned from batch",
            extra={"exam_id": exam_id, "batch_id": batch_id, "admin_id": admin.id},
        )

    @staticmethod
    def grouped_by_exam(db: Session, college_id: Optional[int] = None) -> List[dict]:
        """Active assignments grouped per exam, exams in creation order"""
        query = (
            db.query(ExamBatchAssignment, Exam, Batch)
            .join(Exam, ExamBatchAssignment.exam_id == Exam.id)
            .join(Batch, ExamBatchAssignment.batch_id == Batch.id)
            .filter(ExamBatchAssignment.is_active.is_(True))
        )
        if college_id is not None:
            query = query.filter(Exam.college_id == college_id)

        groups: "OrderedDict[int, dict]" = OrderedDict()
        for assignment, exam, batch in query.order_by(Exam.id, Batch.name).all():
            group = groups.setdefault(exam.id, {"exam": exam, "batches": []})
            group["batches"].append(
                {
                    "id": batch.id,
                    "name": batch.name,
                    "year": batch.year,
                    "college_id": batch.college_id,
                    "assigned_at": assignment.assigned_at,
                    "is_active": assignment.is_active,
                }
            )
        return list(groups.values())
