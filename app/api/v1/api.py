"""
API v1 main router
Combines all v1 endpoint routers
"""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    admin,
    auth,
    batches,
    colleges,
    exams,
    health,
    incidents,
    payments,
    results,
    student,
    students,
    subjects,
)

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(colleges.router, prefix="/colleges", tags=["Colleges"])
api_router.include_router(subjects.subjects_router, prefix="/subjects", tags=["Subjects"])
api_router.include_router(subjects.courses_router, prefix="/courses", tags=["Courses"])
api_router.include_router(batches.router, prefix="/batches", tags=["Batches"])
api_router.include_router(students.router, prefix="/students", tags=["Students"])
api_router.include_router(exams.router, prefix="/exams", tags=["Exams"])
api_router.include_router(exams.questions_router, prefix="/questions", tags=["Exams"])
api_router.include_router(results.router, prefix="/results", tags=["Results"])
api_router.include_router(incidents.router, prefix="/security-incidents", tags=["Security Incidents"])
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])
api_router.include_router(student.router, prefix="/student", tags=["Student"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
