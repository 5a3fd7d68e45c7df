"""
Subject and course endpoints
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import require_admin
from app.models import User
from app.schemas.catalogue import (
    CourseCreate,
    CourseResponse,
    CourseUpdate,
    SubjectCreate,
    SubjectResponse,
    SubjectUpdate,
)
from app.services.catalogue import CourseService, SubjectService

subjects_router = APIRouter()
courses_router = APIRouter()


@subjects_router.get("", response_model=List[SubjectResponse])
async def list_subjects(
    college_id: Optional[int] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return SubjectService.list_subjects(db, college_id)


@subjects_router.post("", response_model=SubjectResponse, status_code=status.HTTP_201_CREATED)
async def create_subject(
    data: SubjectCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    return SubjectService.create_subject(db, data, admin)


@subjects_router.get("/{subject_id}", response_model=SubjectResponse)
async def get_subject(subject_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return SubjectService.get_subject(db, subject_id)


@subjects_router.put("/{subject_id}", response_model=SubjectResponse)
async def update_subject(
    subject_id: int,
    data: SubjectUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return SubjectService.update_subject(db, subject_id, data)


@subjects_router.delete("/{subject_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subject(subject_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    SubjectService.delete_subject(db, subject_id)


@courses_router.get("", response_model=List[CourseResponse])
async def list_courses(
    college_id: Optional[int] = None,
    subject_id: Optional[int] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return CourseService.list_courses(db, college_id, subject_id)


@courses_router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    data: CourseCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    return CourseService.create_course(db, data, admin)


@courses_router.get("/{course_id}", response_model=CourseResponse)
async def get_course(course_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return CourseService.get_course(db, course_id)


@courses_router.put("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: int,
    data: CourseUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return CourseService.update_course(db, course_id, data)


@courses_router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(course_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    CourseService.delete_course(db, course_id)
