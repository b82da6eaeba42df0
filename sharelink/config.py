from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Project Info
    PROJECT_NAME: str = "Share Link Access API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = Field(default="development", description="Environment: development, staging, production")

    # Database
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./data/sharelink.db",
        description="Database URL (SQLite or PostgreSQL)"
    )
    DB_POOL_SIZE: int = Field(default=5, description="Database connection pool size")
    DB_MAX_OVERFLOW: int = Field(default=10, description="Database max overflow connections")
    DB_POOL_TIMEOUT: int = Field(default=30, description="Database pool timeout in seconds")
    DB_POOL_RECYCLE: int = Field(default=3600, description="Database pool recycle time in seconds")

    # Security - JWT (owner authentication)
    SECRET_KEY: str = Field(..., description="Secret key for JWT and signed file URLs")
    ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30, description="JWT token expiration in minutes")

    @field_validator('SECRET_KEY')
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if len(v) < 32:
            raise ValueError('SECRET_KEY must be at least 32 characters')
        return v

    # Security - link passwords
    PASSWORD_HASH_ROUNDS: int = Field(default=12, description="bcrypt work factor for link passwords (4-31)")

    # Security - CORS
    BACKEND_CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="Allowed CORS origins"
    )

    # Share links
    LINK_BASE_URL: str = Field(
        default="http://localhost:3000",
        description="Public host used to build shareable link URLs"
    )
    DEFAULT_LINK_TTL_SECONDS: int = Field(
        default=86400,
        description="Link lifetime applied when no expiration time is given"
    )
    DEFAULT_SIGNED_URL_TTL_SECONDS: int = Field(
        default=3600,
        description="Upper bound for signed file URL lifetime"
    )

    # File Storage
    STORAGE_PROVIDER: str = Field(default="local", description="Object store provider: local, http")
    UPLOAD_DIR: str = Field(default="./uploads", description="Root directory for the local object store")
    MAX_FILE_SIZE: int = Field(default=10485760, description="Max file size in bytes (default 10MB)")
    MAX_REQUEST_SIZE: int = Field(default=52428800, description="Max request body size in bytes (default 50MB)")
    ALLOWED_FILE_TYPES: List[str] = Field(
        default=["application/pdf", "image/jpeg", "image/png", "image/jpg"],
        description="Allowed MIME types for file uploads"
    )
    API_BASE_URL: str = Field(default="http://localhost:8000", description="Base URL for this API (used for local signed URLs)")

    # External APIs - HTTP object store
    STORAGE_API_URL: str = Field(default="", description="Object store REST API base URL")
    STORAGE_BUCKET: str = Field(default="documents", description="Object store bucket")
    STORAGE_CLIENT_ID: str = Field(default="", description="Object store management client ID")
    STORAGE_CLIENT_SECRET: str = Field(default="", description="Object store management client secret")
    STORAGE_API_TIMEOUT: int = Field(default=30, description="Object store API timeout in seconds")
    STORAGE_TOKEN_REFRESH_MARGIN_SECONDS: int = Field(
        default=60,
        description="Refresh the cached management token this many seconds before it expires"
    )

    # Server Configuration
    WORKERS: int = Field(default=4, description="Number of Uvicorn workers")
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8000, description="Server port")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    LOG_DIR: str = Field(default="./logs", description="Directory for log files")
    LOG_RETENTION_DAYS: int = Field(default=30, description="Number of days to keep log files")
    LOG_MASK_SENSITIVE: bool = Field(default=True, description="Enable sensitive data masking in logs")
    LOG_ENABLE_REQUEST_LOGGING: bool = Field(default=True, description="Enable HTTP request/response logging")

    # Circuit Breaker
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = Field(default=5, description="Failures before circuit opens")
    CIRCUIT_BREAKER_RECOVERY_TIMEOUT: int = Field(default=30, description="Seconds before attempting reset")
    CIRCUIT_BREAKER_HALF_OPEN_MAX_CALLS: int = Field(default=3, description="Max calls in half-open state")

    def get_log_level(self) -> str:
        """Get log level based on environment."""
        if self.ENVIRONMENT.lower() in ["development", "dev", "test"]:
            return "DEBUG"
        return self.LOG_LEVEL.upper()


settings = Settings()
