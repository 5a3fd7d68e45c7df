"""
Catalogue services
Colleges and their subjects, courses and batches
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import BusinessRuleException, DuplicateException, NotFoundException
from app.core.logging import LoggerFactory
from app.models import Batch, College, Course, Exam, Subject, User, UserRole
from app.schemas.catalogue import (
    BatchCreate,
    BatchUpdate,
    CollegeCreate,
    CollegeUpdate,
    CourseCreate,
    CourseUpdate,
    SubjectCreate,
    SubjectUpdate,
)

logger = logging.getLogger(__name__)

COLLEGE_CACHE_PREFIX = "colleges"


def _apply(instance, changes: dict) -> None:
    for key, value in changes.items():
        setattr(instance, key, value)


class CollegeService:

    @staticmethod
    def list_colleges(db: Session, include_inactive: bool = False) -> List[College]:
        query = db.query(College)
        if not include_inactive:
            query = query.filter(College.is_active.is_(True))
        return query.order_by(College.name).all()

    @staticmethod
    def get_college(db: Session, college_id: int) -> College:
        college = db.query(College).filter(College.id == college_id).first()
        if not college:
            raise NotFoundException("College")
        return college

    @staticmethod
    def create_college(db: Session, data: CollegeCreate, admin: User) -> College:
        if db.query(College.id).filter(College.code == data.code).first():
            raise DuplicateException("College", message=f"College code {data.code} is already in use")

        college = College(**data.model_dump(), created_by=admin.id)
        db.add(college)
        db.commit()
        db.refresh(college)
        LoggerFactory.get_audit_logger().info(
            "College created", extra={"college_id": college.id, "code": college.code, "admin_id": admin.id}
        )
        return college

    @staticmethod
    def update_college(db: Session, college_id: int, data: CollegeUpdate, admin: User) -> College:
        college = CollegeService.get_college(db, college_id)
        changes = data.model_dump(exclude_unset=True)
        _apply(college, changes)
        db.commit()
        db.refresh(college)
        LoggerFactory.get_audit_logger().info(
            "College updated",
            extra={"college_id": college.id, "changes": sorted(changes), "admin_id": admin.id},
        )
        return college

    @staticmethod
    def deactivate_college(db: Session, college_id: int, admin: User) -> College:
        """Colleges are never hard-deleted"""
        college = CollegeService.get_college(db, college_id)
        college.is_active = False
        db.commit()
        LoggerFactory.get_audit_logger().info(
            "College deactivated", extra={"college_id": college.id, "admin_id": admin.id}
        )
        return college


class SubjectService:

    @staticmethod
    def list_subjects(db: Session, college_id: Optional[int] = None) -> List[Subject]:
        query = db.query(Subject)
        if college_id is not None:
            query = query.filter(Subject.college_id == college_id)
        return query.order_by(Subject.name).all()

    @staticmethod
    def get_subject(db: Session, subject_id: int) -> Subject:
        subject = db.query(Subject).filter(Subject.id == subject_id).first()
        if not subject:
            raise NotFoundException("Subject")
        return subject

    @staticmethod
    def create_subject(db: Session, data: SubjectCreate, admin: User) -> Subject:
        CollegeService.get_college(db, data.college_id)
        subject = Subject(**data.model_dump(), created_by=admin.id)
        db.add(subject)
        db.commit()
        db.refresh(subject)
        return subject

    @staticmethod
    def update_subject(db: Session, subject_id: int, data: SubjectUpdate) -> Subject:
        subject = SubjectService.get_subject(db, subject_id)
        _apply(subject, data.model_dump(exclude_unset=True))
        db.commit()
        db.refresh(subject)
        return subject

    @staticmethod
    def delete_subject(db: Session, subject_id: int) -> None:
        subject = SubjectService.get_subject(db, subject_id)
        if db.query(Course.id).filter(Course.subject_id == subject.id).first():
            raise BusinessRuleException("Subject has courses; delete or move them first")
        db.delete(subject)
        db.commit()


class CourseService:

    @staticmethod
    def list_courses(
        db: Session, college_id: Optional[int] = None, subject_id: Optional[int] = None
    ) -> List[Course]:
        query = db.query(Course)
        if college_id is not None:
            query = query.filter(Course.college_id == college_id)
        if subject_id is not None:
            query = query.filter(Course.subject_id == subject_id)
        return query.order_by(Course.name).all()

    @staticmethod
    def get_course(db: Session, course_id: int) -> Course:
        course = db.query(Course).filter(Course.id == course_id).first()
        if not course:
            raise NotFoundException("Course")
        return course

    @staticmethod
    def create_course(db: Session, data: CourseCreate, admin: User) -> Course:
        subject = SubjectService.get_subject(db, data.subject_id)
        course = Course(**data.model_dump(), college_id=subject.college_id, created_by=admin.id)
        db.add(course)
        db.commit()
        db.refresh(course)
        return course

    @staticmethod
    def update_course(db: Session, course_id: int, data: CourseUpdate) -> Course:
        course = CourseService.get_course(db, course_id)
        _apply(course, data.model_dump(exclude_unset=True))
        db.commit()
        db.refresh(course)
        return course

    @staticmethod
    def delete_course(db: Session, course_id: int) -> None:
        course = CourseService.get_course(db, course_id)
        if db.query(Exam.id).filter(Exam.course_id == course.id).first():
            raise BusinessRuleException("Course has exams; delete or move them first")
        db.delete(course)
        db.commit()


class BatchService:

    @staticmethod
    def list_batches(
        db: Session, college_id: Optional[int] = None, is_active: Optional[bool] = None
    ) -> List[Batch]:
        query = db.query(Batch)
        if college_id is not None:
            query = query.filter(Batch.college_id == college_id)
        if is_active is not None:
            query = query.filter(Batch.is_active.is_(is_active))
        return query.order_by(Batch.year.desc(), Batch.name).all()

    @staticmethod
    def get_batch(db: Session, batch_id: int) -> Batch:
        batch = db.query(Batch).filter(Batch.id == batch_id).first()
        if not batch:
            raise NotFoundException("Batch")
        return batch

    @staticmethod
    def _check_subject(db: Session, subject_id: Optional[int], college_id: int) -> None:
        if subject_id is None:
            return
        subject = SubjectService.get_subject(db, subject_id)
        if subject.college_id != college_id:
            raise BusinessRuleException("Subject does not belong to the batch's college")

    @staticmethod
    def create_batch(db: Session, data: BatchCreate, admin: User) -> Batch:
        CollegeService.get_college(db, data.college_id)
        BatchService._check_subject(db, data.subject_id, data.college_id)
        batch = Batch(**data.model_dump(), created_by=admin.id)
        db.add(batch)
        db.commit()
        db.refresh(batch)
        LoggerFactory.get_audit_logger().info(
            "Batch created", extra={"batch_id": batch.id, "college_id": batch.college_id, "admin_id": admin.id}
        )
        return batch

    @staticmethod
    def update_batch(db: Session, batch_id: int, data: BatchUpdate) -> Batch:
        batch = BatchService.get_batch(db, batch_id)
        changes = data.model_dump(exclude_unset=True)
        if "subject_id" in changes:
            BatchService._check_subject(db, changes["subject_id"], batch.college_id)
        _apply(batch, changes)
        db.commit()
        db.refresh(batch)
        return batch

    @staticmethod
    def deactivate_batch(db: Session, batch_id: int, admin: User) -> Batch:
        """Batches keep their history; deleting only deactivates"""
        batch = BatchService.get_batch(db, batch_id)
        batch.is_active = False
        db.commit()
        LoggerFactory.get_audit_logger().info(
            "Batch deactivated", extra={"batch_id": batch.id, "admin_id": admin.id}
        )
        return batch

    @staticmethod
    def batch_students(db: Session, batch_id: int) -> List[User]:
        BatchService.get_batch(db, batch_id)
        return (
            db.query(User)
            .filter(User.batch_id == batch_id, User.role == UserRole.STUDENT)
            .order_by(User.name)
            .all()
        )
