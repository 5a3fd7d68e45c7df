"""
Core configuration for ExamPortal Backend
Multi-college online examination platform
"""

import secrets
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application Settings
    APP_NAME: str = "ExamPortal"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "Multi-college online examination platform"
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # API Settings
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "ExamPortal Backend"

    # Security
    SECRET_KEY: str = Field(default_factory=lambda: secrets.token_urlsafe(32))
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    ALGORITHM: str = "HS256"
    BCRYPT_ROUNDS: int = 12
    PASSWORD_MIN_LENGTH: int = 6
    SECURITY_HEADERS_ENABLED: bool = Field(default=True)

    # Database
    DATABASE_URL: Optional[str] = Field(default=None)
    POSTGRES_USER: Optional[str] = Field(default=None)
    POSTGRES_PASSWORD: Optional[str] = Field(default=None)
    POSTGRES_SERVER: Optional[str] = Field(default=None)
    POSTGRES_PORT: str = Field(default="5432")
    POSTGRES_DB: Optional[str] = Field(default=None)
    DB_POOL_SIZE: int = Field(default=10)
    DB_MAX_OVERFLOW: int = Field(default=20)
    DB_POOL_RECYCLE: int = Field(default=1800)

    # Redis Cache
    REDIS_URL: Optional[str] = Field(default=None)
    CACHE_TTL: int = Field(default=300)  # 5 minutes

    # Blob storage (Cloudinary)
    STORAGE_ENABLED: bool = Field(default=False)
    CLOUDINARY_CLOUD_NAME: Optional[str] = Field(default=None)
    CLOUDINARY_API_KEY: Optional[str] = Field(default=None)
    CLOUDINARY_API_SECRET: Optional[str] = Field(default=None)
    STORAGE_FOLDER: str = Field(default="examportal")
    SIGNED_URL_TTL_SECONDS: int = Field(default=3600)
    MAX_UPLOAD_SIZE: int = Field(default=5 * 1024 * 1024)

    # Payments (Razorpay)
    RAZORPAY_KEY_ID: Optional[str] = Field(default=None)
    RAZORPAY_KEY_SECRET: Optional[str] = Field(default=None)
    RAZORPAY_API_URL: str = Field(default="https://api.razorpay.com/v1")
    PAYMENT_CURRENCY: str = Field(default="INR")
    PAYMENT_TIMEOUT_SECONDS: float = Field(default=15.0)

    # Admin bootstrap
    ADMIN_EMAIL: Optional[str] = Field(default=None)
    ADMIN_PASSWORD: Optional[str] = Field(default=None)
    ADMIN_NAME: str = Field(default="Platform Admin")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    LOG_TO_FILE: bool = Field(default=True)
    LOG_DIR: str = Field(default="logs")
    LOG_MAX_BYTES: int = Field(default=10 * 1024 * 1024)
    LOG_BACKUP_COUNT: int = Field(default=5)

    # CORS
    BACKEND_CORS_ORIGINS: str = Field(default="http://localhost:3000")

    # Sentry
    SENTRY_DSN: Optional[str] = Field(default=None)

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = Field(default=True)
    RATE_LIMIT_REQUESTS: int = Field(default=100)
    RATE_LIMIT_PERIOD: int = Field(default=60)  # seconds

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    def get_database_url(self) -> str:
        """Get database URL with proper formatting"""
        if self.DATABASE_URL:
            db_url = self.DATABASE_URL
            if db_url.startswith("postgres://"):
                db_url = db_url.replace("postgres://", "postgresql://", 1)
            return db_url

        if all([self.POSTGRES_USER, self.POSTGRES_PASSWORD, self.POSTGRES_SERVER, self.POSTGRES_DB]):
            return (
                f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@"
                f"{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )

        # Default for development
        return "sqlite:///./examportal.db"

    def get_redis_url(self) -> Optional[str]:
        """Get Redis URL"""
        return self.REDIS_URL

    def get_cors_origins(self) -> list[str]:
        """Get CORS origins as list"""
        if self.BACKEND_CORS_ORIGINS:
            return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",")]
        return ["http://localhost:3000"]

    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    def storage_configured(self) -> bool:
        return all(
            [self.CLOUDINARY_CLOUD_NAME, self.CLOUDINARY_API_KEY, self.CLOUDINARY_API_SECRET]
        )

    def payments_configured(self) -> bool:
        return bool(self.RAZORPAY_KEY_ID and self.RAZORPAY_KEY_SECRET)


settings = Settings()
