"""
Student management schemas for ExamPortal
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class StudentCreate(BaseModel):
    """Admin-created student"""
    name: Optional[str] = Field(None, max_length=50)
    first_name: Optional[str] = Field(None, max_length=25)
    last_name: Optional[str] = Field(None, max_length=25)
    email: EmailStr
    password: str = Field(..., min_length=6)
    college_id: int
    batch_id: Optional[int] = None
    roll_number: Optional[str] = Field(None, max_length=20)
    mobile: Optional[str] = Field(None, max_length=15)
    date_of_birth: Optional[date] = None


class StudentUpdate(BaseModel):
    """Student update schema"""
    name: Optional[str] = Field(None, max_length=50)
    batch_id: Optional[int] = None
    roll_number: Optional[str] = Field(None, max_length=20)
    mobile: Optional[str] = Field(None, max_length=15)
    date_of_birth: Optional[date] = None
    is_blocked: Optional[bool] = None
