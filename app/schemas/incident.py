"""
Proctoring schemas for ExamPortal
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.incident import IncidentType


class IncidentCreate(BaseModel):
    exam_id: int
    incident_type: IncidentType
    incident_details: str = Field(..., min_length=1, max_length=2000)


class IncidentResponse(BaseModel):
    id: int
    student_id: int
    exam_id: int
    incident_type: IncidentType
    incident_details: str
    timestamp: datetime
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    caused_suspension: bool = False

    class Config:
        from_attributes = True


class IncidentRecorded(BaseModel):
    incident: IncidentResponse
    incident_count: int
    threshold: Optional[int] = None
    suspended: bool = False


class IncidentPage(BaseModel):
    items: List[IncidentResponse]
    total: int
    page: int
    page_size: int


class StudentIncidentCount(BaseModel):
    student_id: int
    name: Optional[str] = None
    email: Optional[str] = None
    count: int


class IncidentSummary(BaseModel):
    total_incidents: int
    unique_students: int
    unique_exams: int
    by_type: Dict[str, int] = {}
    top_students: List[StudentIncidentCount] = []
    recent: List[IncidentResponse] = []


class SuspensionResponse(BaseModel):
    id: int
    student_id: int
    exam_id: int
    reason: str
    incident_count: int
    is_active: bool
    created_at: datetime
    removed_at: Optional[datetime] = None
    removed_by: Optional[int] = None

    class Config:
        from_attributes = True
