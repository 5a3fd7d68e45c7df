"""
Student management endpoints (admin)
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import require_admin
from app.models import User
from app.schemas.auth import UserResponse
from app.schemas.user import StudentCreate, StudentUpdate
from app.services.users import StudentService

router = APIRouter()


@router.get("", response_model=List[UserResponse])
async def list_students(
    college_id: Optional[int] = None,
    batch_id: Optional[int] = None,
    search: Optional[str] = Query(None, max_length=100),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return StudentService.list_students(db, college_id, batch_id, search, skip, limit)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_student(data: StudentCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return StudentService.create_student(db, data, admin)


@router.get("/{student_id}", response_model=UserResponse)
async def get_student(student_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return StudentService.get_student(db, student_id)


@router.put("/{student_id}", response_model=UserResponse)
async def update_student(
    student_id: int,
    data: StudentUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Assign a batch, edit details or block the student"""
    return StudentService.update_student(db, student_id, data, admin)
