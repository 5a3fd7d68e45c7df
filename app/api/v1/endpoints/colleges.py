"""
College endpoints
The public list is served from Redis when it is available
"""

from typing import List

from fastapi import APIRouter, Depends, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from app.core.cache import cache_key, cache_manager
from app.core.database import get_db
from app.core.security import require_admin
from app.models import User
from app.schemas.catalogue import CollegeCreate, CollegeResponse, CollegeUpdate
from app.services.catalogue import COLLEGE_CACHE_PREFIX, CollegeService

router = APIRouter()


async def _invalidate() -> None:
    await cache_manager.clear_pattern(f"{COLLEGE_CACHE_PREFIX}:*")


@router.get("", response_model=List[CollegeResponse])
async def list_colleges(include_inactive: bool = False, db: Session = Depends(get_db)):
    """List colleges"""
    key = cache_key(COLLEGE_CACHE_PREFIX, "list", include_inactive=include_inactive)
    cached = await cache_manager.get(key)
    if cached is not None:
        return cached

    colleges = [
        CollegeResponse.model_validate(college)
        for college in CollegeService.list_colleges(db, include_inactive=include_inactive)
    ]
    await cache_manager.set(key, jsonable_encoder(colleges))
    return colleges


@router.post("", response_model=CollegeResponse, status_code=status.HTTP_201_CREATED)
async def create_college(
    data: CollegeCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    college = CollegeService.create_college(db, data, admin)
    await _invalidate()
    return college


@router.get("/{college_id}", response_model=CollegeResponse)
async def get_college(
    college_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    return CollegeService.get_college(db, college_id)


@router.put("/{college_id}", response_model=CollegeResponse)
async def update_college(
    college_id: int,
    data: CollegeUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    college = CollegeService.update_college(db, college_id, data, admin)
    await _invalidate()
    return college


@router.delete("/{college_id}", response_model=CollegeResponse)
async def delete_college(
    college_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    """Soft-disable a college"""
    college = CollegeService.deactivate_college(db, college_id, admin)
    await _invalidate()
    return college
