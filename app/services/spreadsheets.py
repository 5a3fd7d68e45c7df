"""
Spreadsheet templates and bulk uploads

Admins download an ``.xlsx`` template, fill it in and upload it back.
Every row is validated before anything is written; a single bad row
rejects the whole file with per-row errors pointing at the offending cells.
"""

import logging
import zipfile
from datetime import date, datetime
from io import BytesIO
from typing import Any, Dict, List, Optional

from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.orm import Session

from app.core.exceptions import FileUploadException, ValidationException
from app.core.logging import LoggerFactory
from app.core.security import SecurityUtils
from app.models import Batch, College, User, UserRole
from app.services.catalogue import BatchService
from app.services.exams import ExamService, QuestionService
from app.utils.options import normalize_options
from app.utils.validators import validate_email, validate_password

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

STUDENT_HEADERS = ["firstName", "lastName", "email", "password", "mobile", "dateOfBirth", "rollNumber"]
STUDENT_REQUIRED = ["firstName", "lastName", "email", "password"]
QUESTION_HEADERS = ["text", "option1", "option2", "option3", "option4", "correctOption"]
QUESTION_OPTION_COUNT = 4


def _template(title: str, headers: List[str], sample: List[Any]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = title
    ws.append(headers)
    ws.append(sample)
    for index, header in enumerate(headers, start=1):
        ws.column_dimensions[get_column_letter(index)].width = max(14, len(header) + 4)

    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def student_template() -> bytes:
    return _template(
        "Students",
        STUDENT_HEADERS,
        ["Asha", "Verma", "asha.verma@college.edu", "changeme", "9876543210", "2004-05-17", "CS-001"],
    )


def question_template() -> bytes:
    return _template(
        "Questions",
        QUESTION_HEADERS,
        ["What is 2 + 2?", "3", "4", "5", "6", 2],
    )


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _read_rows(data: bytes) -> tuple:
    """
    Header names and data rows of the first sheet

    Returns:
        (headers, rows) where each row is a ``(row_number, {header: value})``
        pair; fully blank rows are skipped
    """
    try:
        wb = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        raise FileUploadException("The uploaded file is not a valid .xlsx workbook", details={"reason": str(e)})

    try:
        ws = wb.worksheets[0]
        rows = ws.iter_rows(values_only=True)
        header_row = next(rows, None) or ()
        headers = [_cell_text(value) for value in header_row]

        records = []
        for row_number, values in enumerate(rows, start=2):
            if all(value is None or _cell_text(value) == "" for value in values):
                continue
            records.append((row_number, {header: value for header, value in zip(headers, values) if header}))
    finally:
        wb.close()
    return headers, records


def _missing_headers(headers: List[str], required: List[str], layout: List[str]) -> Optional[dict]:
    present = {header.lower() for header in headers}
    missing = [header for header in required if header.lower() not in present]
    if not missing:
        return None
    return {
        "row": 1,
        "errors": [f"Missing required column headers: {', '.join(missing)}. Do not modify the column headers."],
        "cells": [
            {"cell": f"{get_column_letter(layout.index(header) + 1)}1", "message": f"Missing header: {header}"}
            for header in missing
        ],
    }


def _lookup(record: Dict[str, Any], header: str) -> Any:
    """Case-insensitive column lookup"""
    for key, value in record.items():
        if key.lower() == header.lower():
            return value
    return None


def _parse_date(value: Any) -> Optional[date]:
    if value is None or _cell_text(value) == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(_cell_text(value), "%Y-%m-%d").date()


def _reject(errors: List[dict], what: str) -> None:
    raise ValidationException(
        f"The {what} file has errors; nothing was imported",
        details={"errors": errors},
    )


def parse_students(data: bytes) -> List[dict]:
    """
    Validate a student upload

    Raises:
        ValidationException: with ``details["errors"]`` listing
            ``{row, errors, cells}`` for every bad row
    """
    headers, records = _read_rows(data)
    header_error = _missing_headers(headers, STUDENT_REQUIRED, STUDENT_HEADERS)
    if header_error:
        _reject([header_error], "student")
    if not records:
        _reject(
            [{
                "row": 0,
                "errors": ["The file contains no data. Please add student information to the file."],
                "cells": [{"cell": "A1-G1", "message": f"Expected headers: {', '.join(STUDENT_HEADERS)}"}],
            }],
            "student",
        )

    def cell(header: str, row_number: int) -> str:
        return f"{get_column_letter(STUDENT_HEADERS.index(header) + 1)}{row_number}"

    students, errors = [], []
    seen = set()
    for row_number, record in records:
        messages, cells = [], []

        def fail(header: str, message: str) -> None:
            messages.append(message)
            cells.append({"cell": cell(header, row_number), "message": message})

        values = {header: _cell_text(_lookup(record, header)) for header in STUDENT_HEADERS}
        for header in STUDENT_REQUIRED:
            if not values[header]:
                fail(header, f"{header} is required")

        email = values["email"].lower()
        if email and not validate_email(email):
            fail("email", f"Invalid email format: {values['email']}")
        elif email in seen:
            fail("email", f"Duplicate email in file: {values['email']}")
        if values["password"] and not validate_password(values["password"]):
            fail("password", "Password must be at least 6 characters")

        try:
            date_of_birth = _parse_date(_lookup(record, "dateOfBirth"))
        except ValueError:
            date_of_birth = None
            fail("dateOfBirth", "dateOfBirth must be a date in YYYY-MM-DD format")

        if email:
            seen.add(email)
        if messages:
            errors.append({"row": row_number, "errors": messages, "cells": cells})
            continue

        students.append(
            {
                "row": row_number,
                "first_name": values["firstName"],
                "last_name": values["lastName"],
                "email": email,
                "password": values["password"],
                "mobile": values["mobile"] or None,
                "date_of_birth": date_of_birth,
                "roll_number": values["rollNumber"] or None,
            }
        )

    if errors:
        _reject(errors, "student")
    return students


def parse_questions(data: bytes) -> List[dict]:
    """Validate a question upload into normalized question dicts"""
    headers, records = _read_rows(data)
    header_error = _missing_headers(headers, QUESTION_HEADERS, QUESTION_HEADERS)
    if header_error:
        _reject([header_error], "question")
    if not records:
        _reject(
            [{
                "row": 0,
                "errors": ["The file contains no data. Please add questions to the file."],
                "cells": [{"cell": "A1-F1", "message": f"Expected headers: {', '.join(QUESTION_HEADERS)}"}],
            }],
            "question",
        )

    def cell(header: str, row_number: int) -> str:
        return f"{get_column_letter(QUESTION_HEADERS.index(header) + 1)}{row_number}"

    questions, errors = [], []
    for row_number, record in records:
        messages, cells = [], []

        def fail(header: str, message: str) -> None:
            messages.append(message)
            cells.append({"cell": cell(header, row_number), "message": message})

        text = _cell_text(_lookup(record, "text"))
        if not text:
            fail("text", "Question text is required")

        option_texts = []
        for index in range(1, QUESTION_OPTION_COUNT + 1):
            header = f"option{index}"
            value = _cell_text(_lookup(record, header))
            if not value:
                fail(header, f"{header} is required")
            option_texts.append(value)

        raw_correct = _cell_text(_lookup(record, "correctOption"))
        correct = int(raw_correct) if raw_correct.isdigit() else None
        if correct is None or not 1 <= correct <= QUESTION_OPTION_COUNT:
            fail("correctOption", f"correctOption must be a number from 1 to {QUESTION_OPTION_COUNT}")

        if messages:
            errors.append({"row": row_number, "errors": messages, "cells": cells})
            continue

        options = normalize_options(
            [{"text": value, "is_correct": position == correct} for position, value in enumerate(option_texts, 1)]
        )
        questions.append({"row": row_number, "text": text, "options": options})

    if errors:
        _reject(errors, "question")
    return questions


class SpreadsheetImportService:

    @staticmethod
    def import_students(db: Session, batch_id: int, data: bytes, admin: User) -> List[User]:
        """
        Create every student in the upload inside the batch

        Emails already registered are reported as row errors like any
        other validation failure.
        """
        batch: Batch = BatchService.get_batch(db, batch_id)
        rows = parse_students(data)

        taken = {
            email
            for (email,) in db.query(User.email).filter(User.email.in_([row["email"] for row in rows])).all()
        }
        if taken:
            _reject(
                [
                    {
                        "row": row["row"],
                        "errors": [f"Email is already registered: {row['email']}"],
                        "cells": [{"cell": f"C{row['row']}", "message": "Email is already registered"}],
                    }
                    for row in rows
                    if row["email"] in taken
                ],
                "student",
            )

        college = db.query(College).filter(College.id == batch.college_id).first()
        students = []
        for row in rows:
            student = User(
                name=f"{row['first_name']} {row['last_name']}"[:50],
                first_name=row["first_name"][:25],
                last_name=row["last_name"][:25],
                email=row["email"],
                hashed_password=SecurityUtils.get_password_hash(row["password"]),
                role=UserRole.STUDENT,
                college_id=batch.college_id,
                batch_id=batch.id,
                mobile=row["mobile"],
                date_of_birth=row["date_of_birth"],
                roll_number=row["roll_number"],
            )
            db.add(student)
            students.append(student)
        if college is not None:
            college.current_students += len(students)
        db.commit()

        LoggerFactory.get_audit_logger().info(
            "Students imported",
            extra={"batch_id": batch.id, "count": len(students), "admin_id": admin.id},
        )
        return students

    @staticmethod
    def import_questions(db: Session, exam_id: int, data: bytes, admin: User) -> int:
        exam = ExamService.get_exam(db, exam_id)
        rows = parse_questions(data)
        QuestionService.check_capacity(db, exam, len(rows))

        for row in rows:
            db.add(QuestionService.build_question(exam, row["text"], "General", row["options"], admin))
        db.commit()

        logger.info("Questions imported", extra={"exam_id": exam.id, "count": len(rows)})
        return len(rows)
