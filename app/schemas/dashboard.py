"""
Dashboard and bulk import schemas
"""

from typing import List

from pydantic import BaseModel

from app.schemas.auth import UserResponse
from app.schemas.entitlement import StudentSubscriptionStatus
from app.schemas.exam import AttemptsRemaining, ResultResponse


class StudentDashboard(BaseModel):
    subscription: StudentSubscriptionStatus
    exams: List[AttemptsRemaining] = []
    recent_results: List[ResultResponse] = []


class AdminDashboard(BaseModel):
    colleges: int
    batches: int
    students: int
    exams: int
    active_subscriptions: int
    results: int
    passed_results: int
    security_incidents: int


class StudentImportResponse(BaseModel):
    batch_id: int
    created: int
    students: List[UserResponse] = []


class QuestionImportResponse(BaseModel):
    exam_id: int
    created: int
