"""
Security utilities for authentication and authorization
Handles JWT tokens, password hashing, and role checks
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import sentry_sdk
from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.models.user import User, UserRole

# Password hashing context
pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS
)

# HTTP Bearer scheme
security = HTTPBearer()


class SecurityUtils:
    """Security utility functions"""

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a plain password against hashed password"""
        try:
            return pwd_context.verify(plain_password, hashed_password)
        except ValueError as e:
            if settings.SENTRY_DSN:
                sentry_sdk.capture_exception(e)
            return False

    @staticmethod
    def get_password_hash(password: str) -> str:
        """Hash a password using bcrypt"""
        return pwd_context.hash(password)

    @staticmethod
    def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """
        Create JWT access token

        Args:
            data: Data to encode in token
            expires_delta: Token expiration time

        Returns:
            Encoded JWT token
        """
        to_encode = data.copy()

        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        to_encode.update({"exp": expire, "type": "access"})

        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def create_user_token(user: User) -> str:
        """Token carrying the claims every endpoint relies on"""
        return SecurityUtils.create_access_token(
            {
                "sub": str(user.id),
                "role": user.role.value,
                "college": user.college_id,
            }
        )

    @staticmethod
    def decode_token(token: str) -> Dict[str, Any]:
        """
        Decode JWT token

        Raises:
            HTTPException: If token is invalid or expired
        """
        try:
            return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials",
                headers={"WWW-Authenticate": "Bearer"},
            )


class TokenData:
    """Token data model"""

    def __init__(self, user_id: int, role: str, college_id: Optional[int]):
        self.user_id = user_id
        self.role = role
        self.college_id = college_id


def get_current_user_token(
    credentials: HTTPAuthorizationCredentials = Security(security),
) -> TokenData:
    """
    Get current user from JWT token

    Raises:
        HTTPException: If token is invalid
    """
    payload = SecurityUtils.decode_token(credentials.credentials)

    user_id = payload.get("sub")
    if user_id is None or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return TokenData(user_id=int(user_id), role=payload.get("role"), college_id=payload.get("college"))


def get_current_active_user(
    token_data: TokenData = Depends(get_current_user_token), db: Session = Depends(get_db)
) -> User:
    """
    Get current active user from database

    Raises:
        HTTPException: If user not found or blocked
    """
    user = db.query(User).filter(User.id == token_data.user_id).first()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.is_blocked:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is blocked")

    return user


def require_admin(current_user: User = Depends(get_current_active_user)) -> User:
    """Dependency to require admin role"""
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


def require_student(current_user: User = Depends(get_current_active_user)) -> User:
    """Dependency to require student role"""
    if current_user.role != UserRole.STUDENT:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Student access required"
        )
    return current_user
