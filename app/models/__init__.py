"""
ExamPortal Models Package
"""

from app.models.college import Batch, College, Course, Subject
from app.models.exam import Exam, ExamBatchAssignment, ExamType, Question, QuestionOption, Result
from app.models.incident import ExamSuspension, IncidentType, SecurityIncident
from app.models.subscription import (
    BatchSubscriptionAssignment,
    Payment,
    PaymentStatus,
    StudentSubscription,
    SubscriptionPlan,
    SubscriptionStatus,
)
from app.models.user import User, UserRole

__all__ = [
    "College", "Subject", "Course", "Batch",
    "User", "UserRole",
    "SubscriptionPlan", "BatchSubscriptionAssignment", "StudentSubscription",
    "SubscriptionStatus", "Payment", "PaymentStatus",
    "Exam", "ExamType", "Question", "QuestionOption", "ExamBatchAssignment", "Result",
    "SecurityIncident", "IncidentType", "ExamSuspension",
]
