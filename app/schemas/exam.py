"""
Exam schemas for ExamPortal
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.exam import ExamType
from app.utils.options import normalize_options


class ExamBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    duration: int = Field(..., ge=1, description="Minutes")
    total_marks: int = Field(..., ge=1)
    pass_percentage: float = Field(40.0, ge=0, le=100)
    total_questions: int = Field(..., ge=1)
    questions_to_display: int = Field(..., ge=1)
    max_attempts: int = Field(1, ge=1)
    exam_type: ExamType = ExamType.ASSESSMENT


class ExamCreate(ExamBase):
    course_id: int

    @model_validator(mode="after")
    def check_display_count(self):
        if self.questions_to_display > self.total_questions:
            raise ValueError("questions_to_display cannot exceed total_questions")
        return self


class ExamUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    duration: Optional[int] = Field(None, ge=1)
    total_marks: Optional[int] = Field(None, ge=1)
    pass_percentage: Optional[float] = Field(None, ge=0, le=100)
    total_questions: Optional[int] = Field(None, ge=1)
    questions_to_display: Optional[int] = Field(None, ge=1)
    max_attempts: Optional[int] = Field(None, ge=1)
    exam_type: Optional[ExamType] = None
    is_active: Optional[bool] = None


class ExamResponse(ExamBase):
    id: int
    course_id: int
    college_id: int
    is_active: bool
    created_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class OptionInput(BaseModel):
    text: str
    is_correct: bool = False


class QuestionCreate(BaseModel):
    """
    Question input

    ``options`` is either a keyed map with ``correct_option`` or a list of
    ``{text, is_correct}``; ``normalized_options`` holds the labelled list.
    """
    text: str = Field(..., min_length=1)
    category: str = Field("General", max_length=100)
    options: Union[Dict[str, str], List[OptionInput]]
    correct_option: Optional[str] = None
    normalized_options: List[Dict[str, Any]] = Field(default_factory=list, exclude=True)

    @model_validator(mode="after")
    def normalize(self):
        options = self.options
        if isinstance(options, list):
            options = [option.model_dump() for option in options]
        self.normalized_options = normalize_options(options, self.correct_option)
        return self


class OptionResponse(BaseModel):
    label: str
    text: str
    is_correct: bool

    class Config:
        from_attributes = True


class OptionPublic(BaseModel):
    """Option as shown to a student, without correctness"""
    label: str
    text: str

    class Config:
        from_attributes = True


class QuestionResponse(BaseModel):
    id: int
    exam_id: int
    text: str
    category: Optional[str] = None
    options: List[OptionResponse] = []

    class Config:
        from_attributes = True


class QuestionPublic(BaseModel):
    id: int
    text: str
    category: Optional[str] = None
    options: List[OptionPublic] = []

    class Config:
        from_attributes = True


class ExamPaper(BaseModel):
    """Exam content served once entitlement allows it"""
    exam: ExamResponse
    questions: List[QuestionPublic]
    attempt_number: int
    attempts_remaining: int
    started_at: datetime


class AssignExamsRequest(BaseModel):
    exam_id: int
    batch_ids: List[int] = Field(..., min_length=1)

    @field_validator("batch_ids")
    @classmethod
    def unique_batches(cls, v: List[int]) -> List[int]:
        return list(dict.fromkeys(v))


class UnassignExamRequest(BaseModel):
    exam_id: int
    batch_id: int


class AssignExamsResponse(BaseModel):
    exam_id: int
    new_assignments: int
    total_assigned_batches: int


class AssignedBatch(BaseModel):
    id: int
    name: str
    year: int
    college_id: int
    assigned_at: datetime
    is_active: bool


class ExamBatchGroup(BaseModel):
    exam: ExamResponse
    batches: List[AssignedBatch] = []


class AnswerSubmission(BaseModel):
    question_id: int
    selected_option: str = "not_attempted"


class ExamSubmission(BaseModel):
    answers: List[AnswerSubmission] = []
    start_time: datetime


class AnswerRecord(BaseModel):
    question_id: int
    selected_option: str
    is_correct: bool


class ResultResponse(BaseModel):
    id: int
    student_id: int
    exam_id: int
    attempt_number: int
    answers: List[AnswerRecord] = []
    score: int
    total_questions: int
    correct_answers: int
    percentage: float
    passed: bool
    start_time: datetime
    end_time: datetime
    certificate_id: Optional[str] = None
    certificate_issued_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AttemptsRemaining(BaseModel):
    exam_id: int
    exam_name: str
    attempts_used: int
    max_attempts: int
    attempts_remaining: int


class CertificateResponse(BaseModel):
    result_id: int
    certificate_id: str
    issued_at: Optional[datetime] = None
    student_name: str
    exam_name: str
    percentage: float
    file_url: Optional[str] = None
