"""
Catalogue schemas for ExamPortal
Colleges, subjects, courses and batches
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class CollegeBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=10)
    address: str = Field(..., min_length=1, max_length=500)
    contact_email: EmailStr
    contact_phone: str = Field(..., max_length=15)
    admin_name: Optional[str] = Field(None, max_length=50)
    admin_email: Optional[EmailStr] = None
    max_students: int = Field(1000, ge=1)
    allow_student_registration: bool = True
    enable_proctoring: bool = True
    enable_certificates: bool = True
    allow_student_subscriptions: bool = True
    logo_url: Optional[str] = None
    primary_color: str = Field("#3B82F6", pattern=r"^#[0-9A-Fa-f]{6}$")
    secondary_color: str = Field("#1E40AF", pattern=r"^#[0-9A-Fa-f]{6}$")

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()


class CollegeCreate(CollegeBase):
    pass


class CollegeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = Field(None, max_length=500)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=15)
    admin_name: Optional[str] = Field(None, max_length=50)
    admin_email: Optional[EmailStr] = None
    max_students: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None
    allow_student_registration: Optional[bool] = None
    enable_proctoring: Optional[bool] = None
    enable_certificates: Optional[bool] = None
    allow_student_subscriptions: Optional[bool] = None
    logo_url: Optional[str] = None
    primary_color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    secondary_color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class CollegeResponse(CollegeBase):
    id: int
    is_active: bool
    current_students: int
    created_at: datetime

    class Config:
        from_attributes = True


class SubjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    college_id: int


class SubjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class SubjectResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    college_id: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class CourseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    subject_id: int


class CourseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class CourseResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    subject_id: int
    college_id: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class BatchBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    year: int = Field(..., ge=2000, le=2100)
    department: Optional[str] = Field(None, max_length=100)
    semester: Optional[int] = Field(None, ge=1, le=12)
    subject_id: Optional[int] = None
    max_attempts: int = Field(3, ge=1)
    max_security_incidents: int = Field(5, ge=1)
    enable_auto_suspend: bool = True
    additional_security_incidents_after_removal: int = Field(3, ge=1)


class BatchCreate(BatchBase):
    college_id: int


class BatchUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    year: Optional[int] = Field(None, ge=2000, le=2100)
    department: Optional[str] = Field(None, max_length=100)
    semester: Optional[int] = Field(None, ge=1, le=12)
    subject_id: Optional[int] = None
    is_active: Optional[bool] = None
    max_attempts: Optional[int] = Field(None, ge=1)
    max_security_incidents: Optional[int] = Field(None, ge=1)
    enable_auto_suspend: Optional[bool] = None
    additional_security_incidents_after_removal: Optional[int] = Field(None, ge=1)


class BatchResponse(BatchBase):
    id: int
    college_id: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
