"""
Authentication service for ExamPortal
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    AuthenticationException,
    AuthorizationException,
    BusinessRuleException,
    DuplicateException,
    NotFoundException,
)
from app.core.security import SecurityUtils
from app.models import Batch, College, User, UserRole
from app.schemas.auth import StudentRegister

logger = logging.getLogger(__name__)


class AuthService:
    """Authentication service"""

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> User:
        """
        Authenticate by email and password

        Raises:
            AuthenticationException: unknown email or wrong password
            AuthorizationException: blocked account
        """
        user = db.query(User).filter(User.email == email.lower()).first()

        if not user or not SecurityUtils.verify_password(password, user.hashed_password):
            logger.info("Failed login attempt", extra={"email": email})
            raise AuthenticationException("Incorrect email or password")

        if user.is_blocked:
            raise AuthorizationException("Your account has been blocked. Please contact your administrator.")

        user.last_login = datetime.utcnow()
        db.commit()
        return user

    @staticmethod
    def login(db: Session, email: str, password: str) -> dict:
        user = AuthService.authenticate_user(db, email, password)
        return {
            "access_token": SecurityUtils.create_user_token(user),
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "user": user,
        }

    @staticmethod
    def register_student(db: Session, data: StudentRegister) -> User:
        """Self-registration, subject to the college's registration setting"""
        email = data.email.lower()
        if db.query(User.id).filter(User.email == email).first():
            raise DuplicateException("User", message="Email is already registered")

        college = None
        if data.college_code:
            college = (
                db.query(College)
                .filter(College.code == data.college_code.strip().upper(), College.is_active.is_(True))
                .first()
            )
            if not college:
                raise NotFoundException("College")
            if not college.allow_student_registration:
                raise BusinessRuleException("This college does not allow self-registration")
            if college.current_students >= college.max_students:
                raise BusinessRuleException("This college has reached its student capacity")

        if data.batch_id is not None:
            batch = db.query(Batch).filter(Batch.id == data.batch_id).first()
            if not batch or not batch.is_active:
                raise NotFoundException("Batch")
            if college is None or batch.college_id != college.id:
                raise BusinessRuleException("Batch does not belong to the selected college")

        user = User(
            name=data.name,
            email=email,
            hashed_password=SecurityUtils.get_password_hash(data.password),
            role=UserRole.STUDENT,
            college_id=college.id if college else None,
            batch_id=data.batch_id,
            roll_number=data.roll_number,
            mobile=data.mobile,
        )
        db.add(user)
        if college is not None:
            college.current_students += 1
        db.commit()
        db.refresh(user)

        logger.info("Student registered", extra={"user_id": user.id, "college_id": user.college_id})
        return user

    @staticmethod
    def ensure_admin(db: Session) -> Optional[User]:
        """Create the bootstrap admin from settings if it does not exist"""
        if not (settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD):
            return None

        email = settings.ADMIN_EMAIL.lower()
        admin = db.query(User).filter(User.email == email).first()
        if admin:
            return admin

        admin = User(
            name=settings.ADMIN_NAME,
            email=email,
            hashed_password=SecurityUtils.get_password_hash(settings.ADMIN_PASSWORD),
            role=UserRole.ADMIN,
        )
        db.add(admin)
        db.commit()
        db.refresh(admin)
        logger.info("Bootstrap admin created", extra={"user_id": admin.id})
        return admin
