"""
Logging middleware for ExamPortal Backend
Logs all requests and responses with timing information
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.core.logging import LoggerFactory

logger = LoggerFactory.get_request_logger()


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all HTTP requests and responses
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Skip logging for liveness probes
        if request.url.path == f"{settings.API_PREFIX}/health":
            return await call_next(request)

        start_time = time.perf_counter()
        request_id = getattr(request.state, "request_id", "unknown")

        logger.info(
            "Request started",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "query": str(request.url.query),
                "client": request.client.host if request.client else "unknown",
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "process_time": round(time.perf_counter() - start_time, 3),
                    "error": str(e),
                },
                exc_info=True,
            )
            raise

        process_time = time.perf_counter() - start_time
        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "Request completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time": round(process_time, 3),
            },
        )

        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        return response
