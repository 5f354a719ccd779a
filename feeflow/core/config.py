# feeflow/core/config.py - Centralized settings management using Pydantic
from pydantic import Field, validator, EmailStr
from pydantic_settings import BaseSettings
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Settings(BaseSettings):
    """Application settings with validation and type safety"""

    # Application Environment
    ENV: str = Field(default="dev", description="Environment: dev, staging, prod, test")
    DEBUG: bool = Field(default=False, description="Debug mode")
    API_TITLE: str = Field(default="FeeFlow API", description="API title")
    API_VERSION: str = Field(default="1.0.0", description="API version")

    # Database Configuration
    DATABASE_URL: str = Field(default="sqlite:///./feeflow.db", description="Database connection URL")
    DATABASE_ECHO: bool = Field(default=False, description="Echo SQL queries")
    DATABASE_POOL_SIZE: int = Field(default=5, ge=1, le=100, description="Connection pool size")
    DATABASE_MAX_OVERFLOW: int = Field(default=10, ge=0, le=100, description="Max overflow connections")
    DATABASE_POOL_TIMEOUT: int = Field(default=30, ge=1, le=300, description="Pool timeout in seconds")
    DATABASE_POOL_RECYCLE: int = Field(default=3600, ge=300, description="Pool recycle time in seconds")

    # JWT verification (tokens are issued by the surrounding CRUD layer)
    JWT_SECRET: str = Field(default="change_me_now_change_me_now_change_me", min_length=32, description="JWT signing secret")
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60, ge=1, le=10080, description="Access token expiry")
    JWT_ISSUER: str = Field(default="fees-management", description="JWT issuer")
    JWT_AUDIENCE: str = Field(default="fees-management-users", description="JWT audience")

    # Email Configuration (SMTP)
    SMTP_HOST: Optional[str] = Field(default=None, description="SMTP server host")
    SMTP_PORT: int = Field(default=587, ge=1, le=65535, description="SMTP server port")
    SMTP_USER: Optional[str] = Field(default=None, description="SMTP username")
    SMTP_PASSWORD: Optional[str] = Field(default=None, description="SMTP password")
    SMTP_FROM_EMAIL: Optional[EmailStr] = Field(default=None, description="From email address")
    SMTP_FROM_NAME: str = Field(default="Fees Management System", description="From name")
    SMTP_USE_TLS: bool = Field(default=True, description="Use TLS for SMTP")
    SMTP_TIMEOUT_SECONDS: float = Field(default=20.0, gt=0, le=120, description="SMTP connect and command timeout")

    # SMS provider (HTTP API)
    SMS_API_URL: Optional[str] = Field(default=None, description="SMS provider send endpoint")
    SMS_API_KEY: Optional[str] = Field(default=None, description="SMS provider API key")
    SMS_SENDER_ID: str = Field(default="FEESMS", description="SMS sender id")
    SMS_TIMEOUT_SECONDS: float = Field(default=15.0, gt=0, le=120, description="SMS HTTP timeout")

    # Scheduler
    SCHEDULER_ENABLED: bool = Field(default=True, description="Start the fee-due scheduler with the API")
    SCHEDULER_TIMEZONE: str = Field(default="", description="IANA timezone for job times, empty for local time")
    STATUS_UPDATE_HOUR: int = Field(default=0, ge=0, le=23, description="Hour of the daily status update")
    STATUS_UPDATE_MINUTE: int = Field(default=0, ge=0, le=59, description="Minute of the daily status update")
    REMINDER_HOUR: int = Field(default=9, ge=0, le=23, description="Hour of the daily reminder check")
    REMINDER_MINUTE: int = Field(default=0, ge=0, le=59, description="Minute of the daily reminder check")
    RUN_STATUS_UPDATE_ON_STARTUP: bool = Field(default=True, description="Run the status update once at boot")
    CHANNEL_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0, le=600, description="Per-channel delivery timeout")
    REMINDER_CONCURRENCY: int = Field(default=5, ge=1, le=100, description="Fee-dues dispatched concurrently")
    REMINDER_FLAG_REQUIRES_DELIVERY: bool = Field(
        default=False,
        description="Only mark a reminder as sent when at least one channel delivered it",
    )

    # Message content
    INSTITUTE_NAME: str = Field(default="Fees Management System", description="Sender name used in messages")
    CURRENCY_SYMBOL: str = Field(default="₹", description="Currency symbol used in messages")

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="detailed", description="Log format: simple, detailed, json")
    LOG_FILE_PATH: Optional[str] = Field(default=None, description="Log file path")
    LOG_MAX_SIZE: int = Field(default=10485760, description="Max log file size in bytes (10MB)")
    LOG_BACKUP_COUNT: int = Field(default=5, description="Number of log backup files")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Ignore extra environment variables

    @validator("ENV")
    def validate_environment(cls, v):
        allowed_envs = ["dev", "development", "staging", "prod", "production", "test"]
        if v.lower() not in allowed_envs:
            raise ValueError(f"ENV must be one of: {allowed_envs}")
        return v.lower()

    @validator("JWT_SECRET")
    def validate_jwt_secret(cls, v, values):
        if values.get("ENV") in ["prod", "production"] and v.startswith("change_me_now"):
            raise ValueError("JWT_SECRET must be changed in production")
        return v

    @validator("DATABASE_URL")
    def validate_database_url(cls, v):
        allowed_prefixes = (
            "postgresql://",
            "postgresql+psycopg2://",
            "postgresql+psycopg://",
            "sqlite://",
        )
        if not v.startswith(allowed_prefixes):
            raise ValueError("DATABASE_URL must be a valid database connection string (postgresql or sqlite)")
        return v

    @validator("LOG_LEVEL")
    def validate_log_level(cls, v):
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of: {allowed_levels}")
        return v.upper()

    @validator("LOG_FORMAT")
    def validate_log_format(cls, v):
        if v.lower() not in ("simple", "detailed", "json"):
            raise ValueError("LOG_FORMAT must be one of: simple, detailed, json")
        return v.lower()

    @validator("SCHEDULER_TIMEZONE")
    def validate_timezone(cls, v):
        v = v.strip()
        if v:
            try:
                ZoneInfo(v)
            except ZoneInfoNotFoundError:
                raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.ENV in ["dev", "development"]

    @property
    def scheduler_tz(self) -> Optional[ZoneInfo]:
        """Timezone for job times; None means process local time"""
        return ZoneInfo(self.SCHEDULER_TIMEZONE) if self.SCHEDULER_TIMEZONE else None

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_FROM_EMAIL)

    @property
    def sms_configured(self) -> bool:
        return bool(self.SMS_API_URL and self.SMS_API_KEY)


# Create settings instance with validation
try:
    settings = Settings()
except Exception as e:
    print(f"Configuration error: {e}")
    print("Please check your .env file and environment variables")
    raise


def get_settings() -> Settings:
    """FastAPI dependency returning the process settings"""
    return settings


__all__ = ["settings", "Settings", "get_settings"]
