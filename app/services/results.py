"""
Result service
Serves exam papers, scores submissions and records attempts
"""

import logging
import math
import random
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import (
    BusinessRuleException,
    DuplicateException,
    EntitlementDeniedException,
    NotFoundException,
    ValidationException,
)
from app.models import Exam, ExamBatchAssignment, Question, Result, User
from app.schemas.exam import ExamSubmission
from app.services.entitlement import EntitlementService
from app.services.storage import StorageService
from app.utils.options import NOT_ATTEMPTED, is_correct_selection

logger = logging.getLogger(__name__)

# Concurrent submissions can race for the same attempt number
MAX_RECORD_RETRIES = 3


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score_exam(correct: int, total_marks: int, questions_to_display: int) -> Dict[str, float]:
    """
    Score and percentage for ``correct`` right answers

    Marks are spread evenly over the displayed questions, not the bank.
    """
    score = round_half_up(correct * total_marks / questions_to_display) if questions_to_display else 0
    percentage = round_half_up(score / total_marks * 100) if total_marks else 0
    return {"score": score, "percentage": float(percentage)}


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class ResultService:

    @staticmethod
    def _require_access(db: Session, student: User, exam_id: int, now: datetime):
        decision = EntitlementService.check_exam_access(db, student.id, exam_id, now)
        if not decision.allowed:
            raise EntitlementDeniedException(decision)
        return decision

    @staticmethod
    def _ensure_not_passed(db: Session, student: User, exam_id: int) -> None:
        passed = (
            db.query(Result.id)
            .filter(Result.student_id == student.id, Result.exam_id == exam_id, Result.passed.is_(True))
            .first()
        )
        if passed:
            raise BusinessRuleException(
                "You have already passed this exam", details={"result_id": passed.id}
            )

    @staticmethod
    def get_exam_paper(db: Session, student: User, exam_id: int, now: Optional[datetime] = None) -> dict:
        """
        Exam content for an entitled student

        Raises:
            EntitlementDeniedException: before any question is loaded
            BusinessRuleException: the exam was already passed
        """
        now = now or datetime.utcnow()
        decision = ResultService._require_access(db, student, exam_id, now)
        ResultService._ensure_not_passed(db, student, exam_id)

        exam = db.query(Exam).filter(Exam.id == exam_id).first()
        questions = (
            db.query(Question)
            .options(selectinload(Question.options))
            .filter(Question.exam_id == exam.id)
            .all()
        )
        if not questions:
            raise BusinessRuleException("This exam has no questions yet")

        sample = random.sample(questions, min(exam.questions_to_display, len(questions)))
        return {
            "exam": exam,
            "questions": sample,
            "attempt_number": decision.attempts_used + 1,
            "attempts_remaining": decision.max_attempts - decision.attempts_used,
            "started_at": now,
        }

    @staticmethod
    def _grade(submission: ExamSubmission, questions: Dict[int, Question], limit: int) -> List[dict]:
        answered = {answer.question_id for answer in submission.answers}
        if len(answered) > limit:
            raise ValidationException(
                f"At most {limit} questions can be answered in this exam",
                details={"answered": len(answered), "questions_to_display": limit},
            )

        graded = {}
        for answer in submission.answers:
            question = questions.get(answer.question_id)
            if question is None:
                raise ValidationException(
                    "Answer references a question outside this exam",
                    details={"question_id": answer.question_id},
                )
            selected = answer.selected_option or NOT_ATTEMPTED
            graded[answer.question_id] = {
                "question_id": answer.question_id,
                "selected_option": selected,
                "is_correct": is_correct_selection(question.options, selected),
            }
        return list(graded.values())

    @staticmethod
    def submit_exam(
        db: Session,
        student: User,
        exam_id: int,
        submission: ExamSubmission,
        now: Optional[datetime] = None,
    ) -> Result:
        """
        Score a submission and record it as the next attempt

        Raises:
            EntitlementDeniedException: access revoked or attempts exhausted
            BusinessRuleException: the exam was already passed
            ValidationException: unknown question, too many answers or start time in the future
        """
        now = now or datetime.utcnow()
        ResultService._require_access(db, student, exam_id, now)
        ResultService._ensure_not_passed(db, student, exam_id)

        exam = db.query(Exam).filter(Exam.id == exam_id).first()
        start_time = _naive_utc(submission.start_time)
        if start_time > now:
            raise ValidationException("Start time cannot be in the future")

        questions = {
            question.id: question
            for question in db.query(Question)
            .options(selectinload(Question.options))
            .filter(Question.exam_id == exam.id)
            .all()
        }
        answers = ResultService._grade(submission, questions, exam.questions_to_display)
        correct = sum(1 for answer in answers if answer["is_correct"])
        scored = score_exam(correct, exam.total_marks, exam.questions_to_display)
        passed = scored["percentage"] >= exam.pass_percentage

        for attempt in range(1, MAX_RECORD_RETRIES + 1):
            previous = (
                db.query(Result)
                .filter(Result.student_id == student.id, Result.exam_id == exam.id)
                .count()
            )
            if previous >= exam.max_attempts:
                ResultService._require_access(db, student, exam_id, now)
            highest = (
                db.query(func.max(Result.attempt_number))
                .filter(Result.student_id == student.id, Result.exam_id == exam.id)
                .scalar()
            )

            result = Result(
                student_id=student.id,
                exam_id=exam.id,
                attempt_number=max(previous, highest or 0) + 1,
                answers=answers,
                score=scored["score"],
                total_questions=exam.questions_to_display,
                correct_answers=correct,
                percentage=scored["percentage"],
                passed=passed,
                start_time=start_time,
                end_time=now,
            )
            if passed:
                result.certificate_id = f"CERT-{uuid.uuid4().hex[:12].upper()}"
                result.certificate_issued_at = now

            db.add(result)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.warning(
                    "Attempt number conflict, retrying",
                    extra={"student_id": student.id, "exam_id": exam.id, "retry": attempt},
                )
                continue

            db.refresh(result)
            logger.info(
                "Exam submitted",
                extra={
                    "result_id": result.id,
                    "student_id": student.id,
                    "exam_id": exam.id,
                    "attempt_number": result.attempt_number,
                    "percentage": result.percentage,
                    "passed": passed,
                },
            )
            return result

        raise DuplicateException("Result", message="Could not record the attempt, please retry")

    @staticmethod
    def list_results(
        db: Session,
        user: User,
        exam_id: Optional[int] = None,
        student_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Result]:
        query = db.query(Result)
        if not user.is_admin:
            query = query.filter(Result.student_id == user.id)
        elif student_id is not None:
            query = query.filter(Result.student_id == student_id)
        if exam_id is not None:
            query = query.filter(Result.exam_id == exam_id)
        return query.order_by(Result.created_at.desc(), Result.id.desc()).offset(skip).limit(limit).all()

    @staticmethod
    def get_result(db: Session, user: User, result_id: int) -> Result:
        result = db.query(Result).filter(Result.id == result_id).first()
        if not result or (not user.is_admin and result.student_id != user.id):
            raise NotFoundException("Result")
        return result

    @staticmethod
    def attempts_remaining(db: Session, student: User) -> List[dict]:
        """Attempts left on every exam assigned to the student's batch"""
        if not student.batch_id:
            return []

        exams = (
            db.query(Exam)
            .join(ExamBatchAssignment, ExamBatchAssignment.exam_id == Exam.id)
            .filter(
                ExamBatchAssignment.batch_id == student.batch_id,
                ExamBatchAssignment.is_active.is_(True),
                Exam.is_active.is_(True),
            )
            .order_by(Exam.id)
            .all()
        )
        rows = []
        for exam in exams:
            used = (
                db.query(Result)
                .filter(Result.student_id == student.id, Result.exam_id == exam.id)
                .count()
            )
            rows.append(
                {
                    "exam_id": exam.id,
                    "exam_name": exam.name,
                    "attempts_used": used,
                    "max_attempts": exam.max_attempts,
                    "attempts_remaining": max(0, exam.max_attempts - used),
                }
            )
        return rows

    @staticmethod
    def attach_certificate(
        db: Session, storage: StorageService, result_id: int, data: bytes, filename: str, admin: User
    ) -> Result:
        """Store a rendered certificate file for a passing result"""
        result = db.query(Result).filter(Result.id == result_id).first()
        if not result:
            raise NotFoundException("Result")
        if not result.passed or not result.certificate_id:
            raise BusinessRuleException("Certificates are only issued for passing results")

        uploaded = storage.upload(data, filename, folder="certificates")
        previous = result.certificate_file_id
        result.certificate_file_id = uploaded["public_id"]
        db.commit()
        db.refresh(result)

        if previous:
            storage.delete(previous)
        logger.info(
            "Certificate file attached",
            extra={"result_id": result.id, "public_id": uploaded["public_id"], "admin_id": admin.id},
        )
        return result

    @staticmethod
    def certificate(
        db: Session, user: User, result_id: int, storage: Optional[StorageService]
    ) -> dict:
        result = ResultService.get_result(db, user, result_id)
        if not result.certificate_id:
            raise NotFoundException("Certificate")

        file_url = None
        if result.certificate_file_id and storage is not None:
            file_url = storage.signed_url(result.certificate_file_id)

        return {
            "result_id": result.id,
            "certificate_id": result.certificate_id,
            "issued_at": result.certificate_issued_at,
            "student_name": result.student.name,
            "exam_name": result.exam.name,
            "percentage": result.percentage,
            "file_url": file_url,
        }
