"""
Health check endpoints
"""

import psutil
from fastapi import APIRouter

from app.core.cache import cache_manager
from app.core.config import settings
from app.core.database import DatabaseHealthCheck

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "version": settings.APP_VERSION,
    }


@router.get("/health/detailed")
async def detailed_health_check():
    """Detailed health check"""
    health_status = {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "checks": {},
    }

    database = DatabaseHealthCheck.check_connection()
    health_status["checks"]["database"] = database
    if database["status"] != "healthy":
        health_status["status"] = "degraded"

    if settings.get_redis_url():
        redis_ok = await cache_manager.ping()
        health_status["checks"]["redis"] = "healthy" if redis_ok else "disconnected"
    else:
        health_status["checks"]["redis"] = "disabled"

    memory = psutil.virtual_memory()
    disk = psutil.disk_usage("/")
    health_status["checks"]["resources"] = {
        "cpu_percent": psutil.cpu_percent(interval=None),
        "memory_percent": memory.percent,
        "memory_available_mb": round(memory.available / (1024 * 1024), 1),
        "disk_percent": disk.percent,
    }

    return health_status
