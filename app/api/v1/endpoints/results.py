"""
Result endpoints
Students see their own results; admins can filter across students
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import get_current_active_user, require_admin
from app.models import User
from app.schemas.exam import CertificateResponse, ResultResponse
from app.services.results import ResultService
from app.services.storage import StorageService, get_storage
from app.utils.files import read_upload

router = APIRouter()

CERTIFICATE_EXTENSIONS = [".pdf", ".png", ".jpg", ".jpeg"]


@router.get("", response_model=List[ResultResponse])
async def list_results(
    exam_id: Optional[int] = None,
    student_id: Optional[int] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    return ResultService.list_results(db, current_user, exam_id, student_id, skip, limit)


@router.get("/{result_id}", response_model=ResultResponse)
async def get_result(
    result_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    return ResultService.get_result(db, current_user, result_id)


@router.get("/{result_id}/certificate", response_model=CertificateResponse)
async def get_certificate(
    result_id: int,
    request: Request,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Certificate metadata, with a signed download link once a file is attached"""
    storage = getattr(request.app.state, "storage", None)
    return ResultService.certificate(db, current_user, result_id, storage)


@router.post("/{result_id}/certificate", response_model=CertificateResponse)
async def upload_certificate(
    result_id: int,
    file: UploadFile = File(...),
    admin: User = Depends(require_admin),
    storage: StorageService = Depends(get_storage),
    db: Session = Depends(get_db),
):
    data = await read_upload(file, CERTIFICATE_EXTENSIONS)
    ResultService.attach_certificate(db, storage, result_id, data, file.filename, admin)
    return ResultService.certificate(db, admin, result_id, storage)
