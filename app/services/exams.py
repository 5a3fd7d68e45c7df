"""
Exam and question services
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import BusinessRuleException, NotFoundException
from app.core.logging import LoggerFactory
from app.models import Course, Exam, Question, QuestionOption, Result, SecurityIncident, User
from app.schemas.exam import ExamCreate, ExamUpdate

logger = logging.getLogger(__name__)


class ExamService:

    @staticmethod
    def list_exams(
        db: Session,
        college_id: Optional[int] = None,
        course_id: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> List[Exam]:
        query = db.query(Exam)
        if college_id is not None:
            query = query.filter(Exam.college_id == college_id)
        if course_id is not None:
            query = query.filter(Exam.course_id == course_id)
        if is_active is not None:
            query = query.filter(Exam.is_active.is_(is_active))
        return query.order_by(Exam.created_at.desc(), Exam.id.desc()).all()

    @staticmethod
    def get_exam(db: Session, exam_id: int) -> Exam:
        exam = db.query(Exam).filter(Exam.id == exam_id).first()
        if not exam:
            raise NotFoundException("Exam")
        return exam

    @staticmethod
    def create_exam(db: Session, data: ExamCreate, admin: User) -> Exam:
        course = db.query(Course).filter(Course.id == data.course_id).first()
        if not course:
            raise NotFoundException("Course")

        exam = Exam(**data.model_dump(), college_id=course.college_id, created_by=admin.id)
        db.add(exam)
        db.commit()
        db.refresh(exam)
        LoggerFactory.get_audit_logger().info(
            "Exam created", extra={"exam_id": exam.id, "course_id": course.id, "admin_id": admin.id}
        )
        return exam

    @staticmethod
    def update_exam(db: Session, exam_id: int, data: ExamUpdate, admin: User) -> Exam:
        exam = ExamService.get_exam(db, exam_id)
        changes = data.model_dump(exclude_unset=True)

        total = changes.get("total_questions", exam.total_questions)
        display = changes.get("questions_to_display", exam.questions_to_display)
        if display > total:
            raise BusinessRuleException("questions_to_display cannot exceed total_questions")
        if total < len(exam.questions):
            raise BusinessRuleException("total_questions cannot be below the number of questions already added")

        for key, value in changes.items():
            setattr(exam, key, value)
        db.commit()
        db.refresh(exam)
        LoggerFactory.get_audit_logger().info(
            "Exam updated", extra={"exam_id": exam.id, "changes": sorted(changes), "admin_id": admin.id}
        )
        return exam

    @staticmethod
    def delete_exam(db: Session, exam_id: int, admin: User) -> str:
        """
        Delete an exam without history; exams with results or incidents are deactivated

        Returns:
            "deleted" or "deactivated"
        """
        exam = ExamService.get_exam(db, exam_id)
        has_history = (
            db.query(Result.id).filter(Result.exam_id == exam.id).first()
            or db.query(SecurityIncident.id).filter(SecurityIncident.exam_id == exam.id).first()
        )
        if has_history:
            exam.is_active = False
            action = "deactivated"
        else:
            db.delete(exam)
            action = "deleted"
        db.commit()
        LoggerFactory.get_audit_logger().info(f"Exam {action}", extra={"exam_id": exam_id, "admin_id": admin.id})
        return action


class QuestionService:

    @staticmethod
    def list_questions(db: Session, exam_id: int) -> List[Question]:
        ExamService.get_exam(db, exam_id)
        return (
            db.query(Question)
            .options(selectinload(Question.options))
            .filter(Question.exam_id == exam_id)
            .order_by(Question.id)
            .all()
        )

    @staticmethod
    def build_question(exam: Exam, text: str, category: str, options: List[dict], admin: User) -> Question:
        """Question with its normalized options, not yet added to a session"""
        question = Question(exam_id=exam.id, text=text.strip(), category=category or "General", created_by=admin.id)
        question.options = [
            QuestionOption(
                label=option["label"],
                position=position,
                text=option["text"],
                is_correct=option["is_correct"],
            )
            for position, option in enumerate(options)
        ]
        return question

    @staticmethod
    def check_capacity(db: Session, exam: Exam, adding: int) -> None:
        existing = db.query(Question).filter(Question.exam_id == exam.id).count()
        if existing + adding > exam.total_questions:
            raise BusinessRuleException(
                f"Exam allows {exam.total_questions} questions; {existing} already added",
                details={"existing": existing, "adding": adding, "total_questions": exam.total_questions},
            )

    @staticmethod
    def add_question(
        db: Session, exam_id: int, text: str, category: str, options: List[dict], admin: User
    ) -> Question:
        exam = ExamService.get_exam(db, exam_id)
        QuestionService.check_capacity(db, exam, 1)

        question = QuestionService.build_question(exam, text, category, options, admin)
        db.add(question)
        db.commit()
        db.refresh(question)
        return question

    @staticmethod
    def delete_question(db: Session, exam_id: int, question_id: int) -> None:
        question = (
            db.query(Question).filter(Question.id == question_id, Question.exam_id == exam_id).first()
        )
        if not question:
            raise NotFoundException("Question")
        db.delete(question)
        db.commit()
