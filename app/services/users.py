"""Student management service"""

import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import BusinessRuleException, DuplicateException, NotFoundException
from app.core.logging import LoggerFactory
from app.core.security import SecurityUtils
from app.models import Batch, College, User, UserRole
from app.schemas.user import StudentCreate, StudentUpdate
from app.services.storage import StorageService

logger = logging.getLogger(__name__)


class StudentService:
    @staticmethod
    def list_students(
        db: Session,
        college_id: Optional[int] = None,
        batch_id: Optional[int] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[User]:
        """Get list of students"""
        query = db.query(User).filter(User.role == UserRole.STUDENT)
        if college_id is not None:
            query = query.filter(User.college_id == college_id)
        if batch_id is not None:
            query = query.filter(User.batch_id == batch_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(User.name.ilike(pattern), User.email.ilike(pattern), User.roll_number.ilike(pattern))
            )
        return query.order_by(User.name).offset(skip).limit(limit).all()

    @staticmethod
    def get_student(db: Session, student_id: int) -> User:
        student = (
            db.query(User).filter(User.id == student_id, User.role == UserRole.STUDENT).first()
        )
        if not student:
            raise NotFoundException("Student")
        return student

    @staticmethod
    def _check_batch(db: Session, batch_id: Optional[int], college_id: Optional[int]) -> None:
        if batch_id is None:
            return
        batch = db.query(Batch).filter(Batch.id == batch_id).first()
        if not batch:
            raise NotFoundException("Batch")
        if batch.college_id != college_id:
            raise BusinessRuleException("Batch does not belong to the student's college")

    @staticmethod
    def create_student(db: Session, data: StudentCreate, admin: User) -> User:
        email = data.email.lower()
        if db.query(User.id).filter(User.email == email).first():
            raise DuplicateException("User", message="Email is already registered")

        college = db.query(College).filter(College.id == data.college_id).first()
        if not college:
            raise NotFoundException("College")
        StudentService._check_batch(db, data.batch_id, college.id)

        name = data.name or " ".join(part for part in [data.first_name, data.last_name] if part)
        if not name:
            raise BusinessRuleException("A student name is required")

        values = data.model_dump(exclude={"email", "password", "name"})
        student = User(
            **values,
            name=name,
            email=email,
            hashed_password=SecurityUtils.get_password_hash(data.password),
            role=UserRole.STUDENT,
        )
        db.add(student)
        college.current_students += 1
        db.commit()
        db.refresh(student)

        LoggerFactory.get_audit_logger().info(
            "Student created", extra={"student_id": student.id, "admin_id": admin.id}
        )
        return student

    @staticmethod
    def update_student(db: Session, student_id: int, data: StudentUpdate, admin: User) -> User:
        """Update student details, batch or block state"""
        student = StudentService.get_student(db, student_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("batch_id") is not None:
            StudentService._check_batch(db, changes["batch_id"], student.college_id)

        for key, value in changes.items():
            setattr(student, key, value)
        db.commit()
        db.refresh(student)

        LoggerFactory.get_audit_logger().info(
            "Student updated",
            extra={"student_id": student.id, "changes": sorted(changes), "admin_id": admin.id},
        )
        return student

    @staticmethod
    def attach_resume(db: Session, storage: StorageService, student: User, data: bytes, filename: str) -> User:
        """Replace the student's resume file"""
        uploaded = storage.upload(data, filename, folder="resumes")
        previous = student.resume_file_id
        student.resume_file_id = uploaded["public_id"]
        db.commit()
        db.refresh(student)

        if previous:
            storage.delete(previous)
        logger.info("Resume uploaded", extra={"student_id": student.id, "public_id": uploaded["public_id"]})
        return student

    @staticmethod
    def resume_url(storage: StorageService, student: User) -> dict:
        if not student.resume_file_id:
            raise NotFoundException("Resume")
        return {
            "file_id": student.resume_file_id,
            "url": storage.signed_url(student.resume_file_id),
            "expires_in": settings.SIGNED_URL_TTL_SECONDS,
        }
