"""
Proctoring models: security incidents and the exam suspensions they trigger
"""

import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.core.database import Base


class IncidentType(str, enum.Enum):
    TAB_SWITCH = "TAB_SWITCH"
    EXIT_FULLSCREEN = "EXIT_FULLSCREEN"
    BROWSER_MINIMIZE = "BROWSER_MINIMIZE"
    BROWSER_CLOSE = "BROWSER_CLOSE"
    DEV_TOOLS_OPEN = "DEV_TOOLS_OPEN"
    COPY_ATTEMPT = "COPY_ATTEMPT"
    MULTIPLE_WINDOWS = "MULTIPLE_WINDOWS"
    NETWORK_CHANGE = "NETWORK_CHANGE"
    SCREENSHOT_ATTEMPT = "SCREENSHOT_ATTEMPT"
    OTHER = "OTHER"


class SecurityIncident(Base):
    __tablename__ = "security_incidents"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    incident_type = Column(Enum(IncidentType), nullable=False, index=True)
    incident_details = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=datetime.utcnow, index=True)
    user_agent = Column(String(500), nullable=True)
    ip_address = Column(String(64), nullable=True)
    caused_suspension = Column(Boolean, default=False)

    student = relationship("User")
    exam = relationship("Exam")


class ExamSuspension(Base):
    """Blocks a student from an exam until an admin lifts it"""
    __tablename__ = "exam_suspensions"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    reason = Column(String(500), nullable=False)
    incident_count = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    removed_at = Column(DateTime, nullable=True)
    removed_by = Column(Integer, nullable=True)

    student = relationship("User")
    exam = relationship("Exam")
