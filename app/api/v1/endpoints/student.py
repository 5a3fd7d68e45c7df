"""
Student self-service endpoints
"""

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import require_student
from app.models import User
from app.schemas.auth import UserResponse
from app.schemas.dashboard import StudentDashboard
from app.schemas.entitlement import PlanSummary
from app.schemas.exam import AttemptsRemaining
from app.schemas.subscription import SubscriptionOverview
from app.services.dashboards import DashboardService
from app.services.entitlement import EntitlementService
from app.services.results import ResultService
from app.services.storage import StorageService, get_storage
from app.services.subscriptions import SubscriptionService
from app.services.users import StudentService
from app.utils.files import read_upload

router = APIRouter()

RESUME_EXTENSIONS = [".pdf", ".doc", ".docx"]


@router.get("/dashboard", response_model=StudentDashboard)
async def student_dashboard(student: User = Depends(require_student), db: Session = Depends(get_db)):
    return DashboardService.student_dashboard(db, student)


@router.get("/subscriptions", response_model=SubscriptionOverview)
async def my_subscriptions(student: User = Depends(require_student), db: Session = Depends(get_db)):
    """Subscription history, current status and the plans on offer"""
    now = datetime.utcnow()
    return {
        "status": EntitlementService.get_subscription_status(db, student.id, now),
        "subscriptions": SubscriptionService.list_for_student(db, student.id),
        "available_plans": [
            PlanSummary.from_plan(plan) for plan in SubscriptionService.plans_for_student(db, student)
        ],
    }


@router.get("/subscription-plans", response_model=List[PlanSummary])
async def available_plans(student: User = Depends(require_student), db: Session = Depends(get_db)):
    return [PlanSummary.from_plan(plan) for plan in SubscriptionService.plans_for_student(db, student)]


@router.get("/exams/attempts-remaining", response_model=List[AttemptsRemaining])
async def attempts_remaining(student: User = Depends(require_student), db: Session = Depends(get_db)):
    return ResultService.attempts_remaining(db, student)


@router.post("/resume", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def upload_resume(
    file: UploadFile = File(...),
    student: User = Depends(require_student),
    storage: StorageService = Depends(get_storage),
    db: Session = Depends(get_db),
):
    data = await read_upload(file, RESUME_EXTENSIONS)
    return StudentService.attach_resume(db, storage, student, data, file.filename)


@router.get("/resume")
async def get_resume(
    student: User = Depends(require_student),
    storage: StorageService = Depends(get_storage),
):
    """Time-limited download link for the student's resume"""
    return StudentService.resume_url(storage, student)
