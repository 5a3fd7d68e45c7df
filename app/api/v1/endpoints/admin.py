"""
Admin endpoints
Plan assignment, exam assignment, subscription plans, suspensions and the dashboard
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import require_admin
from app.models import User
from app.schemas.dashboard import AdminDashboard
from app.schemas.exam import (
    AssignExamsRequest,
    AssignExamsResponse,
    ExamBatchGroup,
    UnassignExamRequest,
)
from app.schemas.incident import SuspensionResponse
from app.schemas.subscription import (
    BatchAssignmentCreate,
    BatchAssignmentResponse,
    BatchAssignmentUpdate,
    PlanCreate,
    PlanResponse,
    PlanUpdate,
    ReconcileResponse,
)
from app.services.assignments import BatchAssignmentService, ExamAssignmentService
from app.services.dashboards import DashboardService
from app.services.incidents import SuspensionService
from app.services.subscriptions import PlanService, SubscriptionService

router = APIRouter()


@router.get("/dashboard", response_model=AdminDashboard)
async def get_admin_dashboard(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Get admin dashboard statistics"""
    return DashboardService.admin_dashboard(db)


# Batch subscription assignments

@router.post(
    "/batch-assignments",
    response_model=BatchAssignmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_batch_assignment(
    data: BatchAssignmentCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    """Require a subscription plan for a batch"""
    return BatchAssignmentService.create_assignment(db, data, admin)


@router.get("/batch-assignments", response_model=List[BatchAssignmentResponse])
async def list_batch_assignments(
    batch_id: Optional[int] = None,
    college_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return BatchAssignmentService.list_assignments(db, batch_id, college_id, is_active)


@router.get("/batch-assignments/{assignment_id}", response_model=BatchAssignmentResponse)
async def get_batch_assignment(
    assignment_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    return BatchAssignmentService.get_assignment(db, assignment_id)


@router.put("/batch-assignments/{assignment_id}", response_model=BatchAssignmentResponse)
async def update_batch_assignment(
    assignment_id: int,
    data: BatchAssignmentUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return BatchAssignmentService.update_assignment(db, assignment_id, data, admin)


@router.delete("/batch-assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_batch_assignment(
    assignment_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    BatchAssignmentService.delete_assignment(db, assignment_id, admin)


# Exam to batch assignments

@router.post("/assign-exams", response_model=AssignExamsResponse)
async def assign_exams(
    data: AssignExamsRequest, admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    return ExamAssignmentService.assign_exam(db, data.exam_id, data.batch_ids, admin)


@router.delete("/assign-exams", status_code=status.HTTP_204_NO_CONTENT)
async def unassign_exam(
    data: UnassignExamRequest, admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    ExamAssignmentService.unassign_exam(db, data.exam_id, data.batch_id, admin)


@router.get("/exam-batch-assignments", response_model=List[ExamBatchGroup])
async def exam_batch_assignments(
    college_id: Optional[int] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ExamAssignmentService.grouped_by_exam(db, college_id)


# Subscription plans

@router.get("/subscription-plans", response_model=List[PlanResponse])
async def list_plans(
    college_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return [PlanResponse.from_plan(plan) for plan in PlanService.list_plans(db, college_id, is_active)]


@router.post("/subscription-plans", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(data: PlanCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return PlanResponse.from_plan(PlanService.create_plan(db, data, admin))


@router.get("/subscription-plans/{plan_id}", response_model=PlanResponse)
async def get_plan(plan_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return PlanResponse.from_plan(PlanService.get_plan(db, plan_id))


@router.put("/subscription-plans/{plan_id}", response_model=PlanResponse)
async def update_plan(
    plan_id: int,
    data: PlanUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return PlanResponse.from_plan(PlanService.update_plan(db, plan_id, data, admin))


@router.delete("/subscription-plans/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(plan_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Delete a plan, or deactivate it once students have bought it"""
    PlanService.delete_plan(db, plan_id, admin)


@router.post("/subscriptions/reconcile", response_model=ReconcileResponse)
async def reconcile_subscriptions(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Mark lapsed subscriptions as expired"""
    now = datetime.utcnow()
    expired = SubscriptionService.reconcile_expired(db, now)
    return {"expired_count": expired, "checked_at": now}


# Proctoring suspensions

@router.get("/suspensions", response_model=List[SuspensionResponse])
async def list_suspensions(
    is_active: Optional[bool] = True,
    exam_id: Optional[int] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return SuspensionService.list_suspensions(db, is_active, exam_id)


@router.delete("/suspensions/{suspension_id}", response_model=SuspensionResponse)
async def lift_suspension(
    suspension_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    """Lift a suspension; the student gets a fresh incident allowance"""
    return SuspensionService.lift_suspension(db, suspension_id, admin)
