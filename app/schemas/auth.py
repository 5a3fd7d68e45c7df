"""Authentication schemas"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from app.models.user import UserRole


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class StudentRegister(BaseModel):
    """Self-registration; the college is identified by its public code"""
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    college_code: Optional[str] = Field(None, max_length=10)
    batch_id: Optional[int] = None
    roll_number: Optional[str] = Field(None, max_length=20)
    mobile: Optional[str] = Field(None, max_length=15)


class UserResponse(BaseModel):
    id: int
    name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    role: UserRole
    college_id: Optional[int] = None
    batch_id: Optional[int] = None
    roll_number: Optional[str] = None
    mobile: Optional[str] = None
    date_of_birth: Optional[date] = None
    is_blocked: bool = False
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
