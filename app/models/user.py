"""
User model for ExamPortal
"""

import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.core.database import Base


class UserRole(str, enum.Enum):
    """User roles"""
    ADMIN = "admin"
    STUDENT = "student"


class User(Base):
    """User model"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    first_name = Column(String(25), nullable=True)
    last_name = Column(String(25), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    role = Column(Enum(UserRole), default=UserRole.STUDENT, nullable=False)
    college_id = Column(Integer, ForeignKey("colleges.id"), nullable=True, index=True)
    batch_id = Column(Integer, ForeignKey("batches.id"), nullable=True, index=True)

    roll_number = Column(String(20), nullable=True)
    mobile = Column(String(15), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    resume_file_id = Column(String(255), nullable=True)

    is_blocked = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    college = relationship("College")
    batch = relationship("Batch", back_populates="students")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
