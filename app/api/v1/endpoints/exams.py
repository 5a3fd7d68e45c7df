"""
Exam endpoints
Admin exam and question management, plus the student take/submit flow
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import require_admin, require_student
from app.models import User
from app.schemas.dashboard import QuestionImportResponse
from app.schemas.exam import (
    ExamCreate,
    ExamPaper,
    ExamResponse,
    ExamSubmission,
    ExamUpdate,
    QuestionCreate,
    QuestionResponse,
    ResultResponse,
)
from app.services.exams import ExamService, QuestionService
from app.services.results import ResultService
from app.services.spreadsheets import XLSX_MEDIA_TYPE, SpreadsheetImportService, question_template
from app.utils.files import read_upload

router = APIRouter()
questions_router = APIRouter()


@router.get("", response_model=List[ExamResponse])
async def list_exams(
    college_id: Optional[int] = None,
    course_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ExamService.list_exams(db, college_id, course_id, is_active)


@router.post("", response_model=ExamResponse, status_code=status.HTTP_201_CREATED)
async def create_exam(data: ExamCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return ExamService.create_exam(db, data, admin)


@router.get("/take/{exam_id}", response_model=ExamPaper)
async def take_exam(exam_id: int, student: User = Depends(require_student), db: Session = Depends(get_db)):
    """
    Start an attempt

    A student without access gets 403 carrying the entitlement decision;
    no question content is served in that case.
    """
    return ResultService.get_exam_paper(db, student, exam_id)


@router.post("/submit/{exam_id}", response_model=ResultResponse, status_code=status.HTTP_201_CREATED)
async def submit_exam(
    exam_id: int,
    submission: ExamSubmission,
    student: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    return ResultService.submit_exam(db, student, exam_id, submission)


@router.get("/{exam_id}", response_model=ExamResponse)
async def get_exam(exam_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return ExamService.get_exam(db, exam_id)


@router.put("/{exam_id}", response_model=ExamResponse)
async def update_exam(
    exam_id: int,
    data: ExamUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ExamService.update_exam(db, exam_id, data, admin)


@router.delete("/{exam_id}")
async def delete_exam(exam_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Delete an exam, or deactivate it when attempts or incidents exist"""
    action = ExamService.delete_exam(db, exam_id, admin)
    return {"exam_id": exam_id, "status": action}


@router.get("/{exam_id}/questions", response_model=List[QuestionResponse])
async def list_questions(exam_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return QuestionService.list_questions(db, exam_id)


@router.post("/{exam_id}/questions", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
async def add_question(
    exam_id: int,
    data: QuestionCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return QuestionService.add_question(db, exam_id, data.text, data.category, data.normalized_options, admin)


@router.delete("/{exam_id}/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_question(
    exam_id: int,
    question_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    QuestionService.delete_question(db, exam_id, question_id)


@router.post(
    "/{exam_id}/upload-questions",
    response_model=QuestionImportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_questions(
    exam_id: int,
    file: UploadFile = File(...),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    data = await read_upload(file, [".xlsx"])
    created = SpreadsheetImportService.import_questions(db, exam_id, data, admin)
    return {"exam_id": exam_id, "created": created}


@questions_router.get("/template")
async def download_question_template(admin: User = Depends(require_admin)):
    """Excel template for bulk question upload"""
    return Response(
        content=question_template(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=question_template.xlsx"},
    )
