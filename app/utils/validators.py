"""Validation utilities"""

import re

from app.core.config import settings

_EMAIL = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def validate_email(email: str) -> bool:
    """Validate email format"""
    return bool(_EMAIL.match(email or ""))


def validate_password(password: str) -> bool:
    """Minimum length check shared by registration and bulk upload"""
    return len(password or "") >= settings.PASSWORD_MIN_LENGTH

