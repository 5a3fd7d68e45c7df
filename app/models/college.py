"""
Tenancy models for ExamPortal: colleges and their academic taxonomy
"""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.core.database import Base


class College(Base):
    """Tenant root"""
    __tablename__ = "colleges"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    code = Column(String(10), unique=True, index=True, nullable=False)
    address = Column(String(500), nullable=False)
    contact_email = Column(String(255), nullable=False)
    contact_phone = Column(String(15), nullable=False)
    admin_name = Column(String(50), nullable=True)
    admin_email = Column(String(255), nullable=True)

    max_students = Column(Integer, default=1000, nullable=False)
    current_students = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, index=True)

    # Feature settings
    allow_student_registration = Column(Boolean, default=True)
    enable_proctoring = Column(Boolean, default=True)
    enable_certificates = Column(Boolean, default=True)
    allow_student_subscriptions = Column(Boolean, default=True)

    # Branding
    logo_url = Column(String(500), nullable=True)
    primary_color = Column(String(7), default="#3B82F6")
    secondary_color = Column(String(7), default="#1E40AF")

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    subjects = relationship("Subject", back_populates="college")
    batches = relationship("Batch", back_populates="college")


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    college_id = Column(Integer, ForeignKey("colleges.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    college = relationship("College", back_populates="subjects")
    courses = relationship("Course", back_populates="subject")


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False, index=True)
    college_id = Column(Integer, ForeignKey("colleges.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    subject = relationship("Subject", back_populates="courses")
    exams = relationship("Exam", back_populates="course")


class Batch(Base):
    """
    Cohort of students within one college

    A batch is never priced directly; it gains access to exams through
    subscription plan and exam assignments.
    """
    __tablename__ = "batches"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    year = Column(Integer, nullable=False)
    college_id = Column(Integer, ForeignKey("colleges.id"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=True)
    department = Column(String(100), nullable=True)
    semester = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, index=True)

    # Proctoring policy
    max_attempts = Column(Integer, default=3, nullable=False)
    max_security_incidents = Column(Integer, default=5, nullable=False)
    enable_auto_suspend = Column(Boolean, default=True)
    additional_security_incidents_after_removal = Column(Integer, default=3, nullable=False)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    college = relationship("College", back_populates="batches")
    students = relationship("User", back_populates="batch")
