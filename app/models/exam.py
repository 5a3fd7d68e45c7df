"""
Exam models for ExamPortal
"""

import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.core.database import Base


class ExamType(str, enum.Enum):
    PRACTICE = "practice"
    ASSESSMENT = "assessment"
    FINAL = "final"


class Exam(Base):
    """Exam model"""
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=False)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    college_id = Column(Integer, ForeignKey("colleges.id"), nullable=False, index=True)

    duration = Column(Integer, nullable=False)  # minutes
    total_marks = Column(Integer, nullable=False)
    pass_percentage = Column(Float, default=40.0, nullable=False)
    total_questions = Column(Integer, nullable=False)
    questions_to_display = Column(Integer, nullable=False)
    max_attempts = Column(Integer, default=1, nullable=False)
    exam_type = Column(Enum(ExamType), default=ExamType.ASSESSMENT)
    is_active = Column(Boolean, default=True, index=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    course = relationship("Course", back_populates="exams")
    questions = relationship(
        "Question", back_populates="exam", cascade="all, delete-orphan", order_by="Question.id"
    )
    batch_assignments = relationship(
        "ExamBatchAssignment", back_populates="exam", cascade="all, delete-orphan"
    )


class Question(Base):
    """Question model"""
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    category = Column(String(100), default="General")

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    exam = relationship("Exam", back_populates="questions")
    options = relationship(
        "QuestionOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuestionOption.position",
    )


class QuestionOption(Base):
    """One labelled choice of a question (A, B, C, ...)"""
    __tablename__ = "question_options"
    __table_args__ = (UniqueConstraint("question_id", "label", name="uq_question_option_label"),)

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False, index=True)
    label = Column(String(2), nullable=False)
    position = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    is_correct = Column(Boolean, default=False, nullable=False)

    question = relationship("Question", back_populates="options")


class ExamBatchAssignment(Base):
    """Grants a batch access to an exam"""
    __tablename__ = "exam_batch_assignments"
    __table_args__ = (UniqueConstraint("exam_id", "batch_id", name="uq_exam_batch"),)

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    batch_id = Column(Integer, ForeignKey("batches.id"), nullable=False, index=True)
    assigned_by = Column(Integer, nullable=True)
    assigned_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    is_active = Column(Boolean, default=True, index=True)

    exam = relationship("Exam", back_populates="batch_assignments")
    batch = relationship("Batch")


class Result(Base):
    """
    One attempt of one student at one exam

    Immutable once written; a re-attempt creates a new row with the next
    attempt number.
    """
    __tablename__ = "results"
    __table_args__ = (
        UniqueConstraint("student_id", "exam_id", "attempt_number", name="uq_result_attempt"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False, default=1)

    answers = Column(JSON, nullable=False, default=list)
    score = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    correct_answers = Column(Integer, nullable=False)
    percentage = Column(Float, nullable=False)
    passed = Column(Boolean, nullable=False)

    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    certificate_id = Column(String(64), unique=True, nullable=True)
    certificate_issued_at = Column(DateTime, nullable=True)
    certificate_file_id = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    exam = relationship("Exam")
    student = relationship("User")
