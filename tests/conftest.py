"""
Shared fixtures

The app runs against a single in-memory SQLite database; the schema is
rebuilt for every test.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_TO_FILE"] = "false"
os.environ["STORAGE_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "testing"
os.environ.pop("REDIS_URL", None)
os.environ.pop("ADMIN_EMAIL", None)

import itertools
import json
from datetime import datetime, timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from app.core.database import Base, SessionLocal, engine
from app.core.security import SecurityUtils
from app.main import app
from app.models import (
    Batch,
    BatchSubscriptionAssignment,
    College,
    Course,
    Exam,
    ExamBatchAssignment,
    Question,
    QuestionOption,
    Result,
    StudentSubscription,
    Subject,
    SubscriptionPlan,
    SubscriptionStatus,
    User,
    UserRole,
)
from app.services.payments import RazorpayClient

NOW = datetime(2025, 6, 1, 12, 0, 0)

_seq = itertools.count(1)


class FakeStorage:
    """In-memory stand-in for the Cloudinary client"""

    def __init__(self):
        self.files = {}
        self.deleted = []

    def upload(self, data, filename, folder):
        public_id = f"examportal/{folder}/file{len(self.files) + 1}{os.path.splitext(filename)[1]}"
        self.files[public_id] = data
        return {"public_id": public_id, "bytes": len(data), "url": f"https://files.example.com/{public_id}"}

    def delete(self, public_id):
        self.deleted.append(public_id)
        return self.files.pop(public_id, None) is not None

    def signed_url(self, public_id, expires_in=None):
        return f"https://files.example.com/{public_id}?signature=abc"


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    app.state.storage = None
    app.state.payments = None
    test_client = TestClient(app)
    yield test_client
    app.state.storage = None
    app.state.payments = None


@pytest.fixture
def storage():
    fake = FakeStorage()
    app.state.storage = fake
    return fake


@pytest.fixture
def gateway():
    """Real Razorpay client talking to a mocked transport"""
    orders = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        order = {"id": f"order_{len(orders) + 1:06d}", "amount": body["amount"], "currency": body["currency"]}
        orders.append(body)
        return httpx.Response(200, json=order)

    client = RazorpayClient("rzp_test_key", "rzp_test_secret", transport=httpx.MockTransport(handler))
    client.orders = orders
    app.state.payments = client
    yield client
    client.close()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {SecurityUtils.create_user_token(user)}"}


class Factory:
    """Builds committed rows with sensible defaults"""

    def __init__(self, db):
        self.db = db

    def _save(self, instance):
        self.db.add(instance)
        self.db.commit()
        self.db.refresh(instance)
        return instance

    def college(self, **kwargs):
        n = next(_seq)
        values = dict(
            name=f"College {n}",
            code=f"C{n}",
            address="1 Campus Road",
            contact_email=f"office{n}@college.edu",
            contact_phone="9876543210",
        )
        values.update(kwargs)
        return self._save(College(**values))

    def batch(self, college, **kwargs):
        values = dict(name=f"Batch {next(_seq)}", year=2025, college_id=college.id)
        values.update(kwargs)
        return self._save(Batch(**values))

    def admin(self, **kwargs):
        n = next(_seq)
        values = dict(
            name="Admin",
            email=f"admin{n}@college.edu",
            hashed_password=SecurityUtils.get_password_hash("adminpass"),
            role=UserRole.ADMIN,
        )
        values.update(kwargs)
        return self._save(User(**values))

    def student(self, batch=None, college=None, password="secret123", **kwargs):
        n = next(_seq)
        college_id = college.id if college else (batch.college_id if batch else None)
        values = dict(
            name=f"Student {n}",
            email=f"student{n}@college.edu",
            hashed_password=SecurityUtils.get_password_hash(password),
            role=UserRole.STUDENT,
            college_id=college_id,
            batch_id=batch.id if batch else None,
        )
        values.update(kwargs)
        return self._save(User(**values))

    def plan(self, colleges=(), **kwargs):
        values = dict(
            name=f"Plan {next(_seq)}",
            description="Full exam access",
            duration=6,
            price=1000.0,
            features=["All assessments", "Certificates"],
        )
        values.update(kwargs)
        plan = SubscriptionPlan(**values)
        plan.colleges = list(colleges)
        return self._save(plan)

    def assignment(self, batch, plan, **kwargs):
        values = dict(batch_id=batch.id, subscription_plan_id=plan.id, college_id=batch.college_id)
        values.update(kwargs)
        return self._save(BatchSubscriptionAssignment(**values))

    def subscription(self, student, plan, start=None, end=None, **kwargs):
        start = start or NOW - timedelta(days=10)
        values = dict(
            student_id=student.id,
            plan_id=plan.id,
            college_id=student.college_id,
            start_date=start,
            end_date=end or start + timedelta(days=180),
            status=SubscriptionStatus.ACTIVE,
            payment_id=f"pay_{next(_seq)}",
            amount=plan.price,
        )
        values.update(kwargs)
        return self._save(StudentSubscription(**values))

    def course(self, college):
        subject = self._save(Subject(name=f"Subject {next(_seq)}", college_id=college.id))
        return self._save(Course(name=f"Course {next(_seq)}", subject_id=subject.id, college_id=college.id))

    def exam(self, college, batches=(), questions=0, **kwargs):
        course = self.course(college)
        values = dict(
            name=f"Exam {next(_seq)}",
            description="Unit test",
            course_id=course.id,
            college_id=college.id,
            duration=30,
            total_marks=100,
            total_questions=max(questions, 4),
            questions_to_display=max(questions, 4),
            max_attempts=3,
        )
        values.update(kwargs)
        exam = self._save(Exam(**values))
        for batch in batches:
            self._save(ExamBatchAssignment(exam_id=exam.id, batch_id=batch.id))
        for index in range(questions):
            self.question(exam, text=f"Question {index + 1}")
        return exam

    def question(self, exam, text="What is 2 + 2?", correct="B"):
        question = Question(exam_id=exam.id, text=text)
        question.options = [
            QuestionOption(label=label, position=position, text=option_text, is_correct=label == correct)
            for position, (label, option_text) in enumerate(zip("ABCD", ["3", "4", "5", "6"]))
        ]
        return self._save(question)

    def result(self, student, exam, attempt_number=1, passed=False, **kwargs):
        values = dict(
            student_id=student.id,
            exam_id=exam.id,
            attempt_number=attempt_number,
            answers=[],
            score=0,
            total_questions=exam.questions_to_display,
            correct_answers=0,
            percentage=0.0,
            passed=passed,
            start_time=NOW - timedelta(minutes=30),
            end_time=NOW,
        )
        values.update(kwargs)
        return self._save(Result(**values))


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def admin(factory):
    return factory.admin()


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def entitled(factory):
    """A student with a batch, a required plan, a live subscription and an assigned exam"""
    college = factory.college()
    batch = factory.batch(college)
    plan = factory.plan(colleges=[college])
    factory.assignment(batch, plan)
    student = factory.student(batch)
    subscription = factory.subscription(
        student, plan, start=datetime.utcnow() - timedelta(days=1), end=datetime.utcnow() + timedelta(days=30)
    )
    exam = factory.exam(college, batches=[batch], questions=4)
    return {
        "college": college,
        "batch": batch,
        "plan": plan,
        "student": student,
        "subscription": subscription,
        "exam": exam,
        "headers": auth_headers(student),
    }
