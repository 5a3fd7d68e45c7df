"""
Security incident endpoints
Students report proctoring events; admins review them
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import require_admin, require_student
from app.models import User
from app.schemas.incident import IncidentCreate, IncidentPage, IncidentRecorded, IncidentResponse, IncidentSummary
from app.services.incidents import IncidentService

router = APIRouter()


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.post("", response_model=IncidentRecorded, status_code=status.HTTP_201_CREATED)
async def report_incident(
    data: IncidentCreate,
    request: Request,
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    """Record an incident; may suspend the student from the exam"""
    return IncidentService.record_incident(
        db,
        student,
        data,
        user_agent=request.headers.get("user-agent"),
        ip_address=_client_ip(request),
    )


@router.get("", response_model=IncidentPage)
async def list_incidents(
    exam_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return IncidentService.list_incidents(db, exam_id, start_date, end_date, page, page_size)


@router.get("/summary", response_model=IncidentSummary)
async def incident_summary(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return IncidentService.summary(db)


@router.get("/student/{student_id}", response_model=List[IncidentResponse])
async def student_incidents(student_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return IncidentService.student_incidents(db, student_id)
