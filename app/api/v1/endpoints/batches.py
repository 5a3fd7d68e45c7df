"""
Batch endpoints
Includes the student roster template and bulk student upload
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import require_admin
from app.models import User
from app.schemas.auth import UserResponse
from app.schemas.catalogue import BatchCreate, BatchResponse, BatchUpdate
from app.schemas.dashboard import StudentImportResponse
from app.services.catalogue import BatchService
from app.services.spreadsheets import XLSX_MEDIA_TYPE, SpreadsheetImportService, student_template
from app.utils.files import read_upload

router = APIRouter()


@router.get("", response_model=List[BatchResponse])
async def list_batches(
    college_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return BatchService.list_batches(db, college_id, is_active)


@router.post("", response_model=BatchResponse, status_code=status.HTTP_201_CREATED)
async def create_batch(data: BatchCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return BatchService.create_batch(db, data, admin)


# Declared before /{batch_id} so "template" is not parsed as an id
@router.get("/template")
async def download_student_template(admin: User = Depends(require_admin)):
    """Excel template for bulk student upload"""
    return Response(
        content=student_template(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=student_template.xlsx"},
    )


@router.get("/{batch_id}", response_model=BatchResponse)
async def get_batch(batch_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return BatchService.get_batch(db, batch_id)


@router.put("/{batch_id}", response_model=BatchResponse)
async def update_batch(
    batch_id: int,
    data: BatchUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return BatchService.update_batch(db, batch_id, data)


@router.delete("/{batch_id}", response_model=BatchResponse)
async def delete_batch(batch_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Deactivate a batch; its history is kept"""
    return BatchService.deactivate_batch(db, batch_id, admin)


@router.get("/{batch_id}/students", response_model=List[UserResponse])
async def batch_students(batch_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return BatchService.batch_students(db, batch_id)


@router.post(
    "/{batch_id}/upload-students",
    response_model=StudentImportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_students(
    batch_id: int,
    file: UploadFile = File(...),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Create students in the batch from a filled-in template"""
    data = await read_upload(file, [".xlsx"])
    students = SpreadsheetImportService.import_students(db, batch_id, data, admin)
    return {"batch_id": batch_id, "created": len(students), "students": students}
