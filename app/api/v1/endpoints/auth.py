"""
Authentication endpoints
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import get_current_active_user
from app.middleware.rate_limit import limiter
from app.models import User
from app.schemas.auth import StudentRegister, Token, UserLogin, UserResponse
from app.services.auth import AuthService

router = APIRouter()


@router.post("/login", response_model=Token)
@limiter.limit("10/minute")
async def login(request: Request, credentials: UserLogin, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token"""
    return AuthService.login(db, credentials.email, credentials.password)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def register(request: Request, data: StudentRegister, db: Session = Depends(get_db)):
    """Student self-registration"""
    return AuthService.register_student(db, data)


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_active_user)):
    return current_user
