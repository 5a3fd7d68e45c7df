"""Upload helpers"""

import os
from typing import Iterable

from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import FileUploadException


async def read_upload(file: UploadFile, extensions: Iterable[str]) -> bytes:
    """
    Read an uploaded file after checking its extension and size

    Raises:
        FileUploadException: wrong extension, empty or oversized file
    """
    allowed = tuple(ext.lower() for ext in extensions)
    _, ext = os.path.splitext(file.filename or "")
    if ext.lower() not in allowed:
        raise FileUploadException(
            f"Unsupported file type; expected one of {', '.join(allowed)}",
            details={"filename": file.filename},
        )

    data = await file.read(settings.MAX_UPLOAD_SIZE + 1)
    if not data:
        raise FileUploadException("The uploaded file is empty")
    if len(data) > settings.MAX_UPLOAD_SIZE:
        raise FileUploadException(
            "The uploaded file is too large",
            details={"max_bytes": settings.MAX_UPLOAD_SIZE},
        )
    return data
