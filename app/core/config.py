import json
from datetime import time, timedelta
from typing import Dict, List, Optional

from pydantic import EmailStr, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application Settings
    APP_NAME: str = "School Device & Enrollment API"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database Settings
    DATABASE_URL: str = Field(...)
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    AUTO_CREATE_TABLES: bool = True

    # Authentication Settings
    SECRET_KEY: str = Field(...)
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    DEVICE_TOKEN_EXPIRE_DAYS: int = 90
    TOKEN_ISSUER: str = "school_device_api"
    PASSWORD_MIN_LENGTH: int = 6

    # CORS Settings
    ALLOWED_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
            "http://127.0.0.1:3000"
        ]
    )

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True

    # Platform admin bootstrap, skipped when either value is missing
    PLATFORM_ADMIN_EMAIL: Optional[EmailStr] = None
    PLATFORM_ADMIN_PASSWORD: Optional[str] = None

    # Device Settings
    DEVICE_AUTO_REGISTRATION: bool = False
    DEVICE_DEFAULT_FIRMWARE: str = "v2.1.3"

    # Fingerprint Enrollment Settings
    ENROLLMENT_SWEEP_ENABLED: bool = True
    ENROLLMENT_SWEEP_INTERVAL_MINUTES: int = 5
    ENROLLMENT_CAPTURE_TIMEOUT_MINUTES: int = 10
    ENROLLMENT_LIST_LIMIT: int = 20

    # Attendance Settings
    ATTENDANCE_LATE_CUTOFF: str = "08:30"

    # Air Quality Thresholds
    CO2_WARNING_PPM: float = 800
    CO2_CRITICAL_PPM: float = 1000
    PM25_WARNING: float = 50
    PM25_CRITICAL: float = 75

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("ATTENDANCE_LATE_CUTOFF")
    @classmethod
    def validate_late_cutoff(cls, v: str) -> str:
        try:
            hours, minutes = v.split(":")
            time(int(hours), int(minutes))
        except ValueError:
            raise ValueError("ATTENDANCE_LATE_CUTOFF must be formatted as HH:MM")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @property
    def late_cutoff(self) -> time:
        hours, minutes = self.ATTENDANCE_LATE_CUTOFF.split(":")
        return time(int(hours), int(minutes))

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True
    )

# Initialize settings
settings = Settings()

# Helper Functions
def get_token_expires_delta(minutes: Optional[int] = None) -> timedelta:
    if minutes is None:
        minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES
    return timedelta(minutes=minutes)

def get_device_token_expires_delta(days: Optional[int] = None) -> timedelta:
    if days is None:
        days = settings.DEVICE_TOKEN_EXPIRE_DAYS
    return timedelta(days=days)

def get_sweep_settings() -> dict:
    return {
        "enabled": settings.ENROLLMENT_SWEEP_ENABLED,
        "interval_minutes": settings.ENROLLMENT_SWEEP_INTERVAL_MINUTES,
        "capture_timeout_minutes": settings.ENROLLMENT_CAPTURE_TIMEOUT_MINUTES
    }

def get_air_quality_thresholds() -> Dict[str, float]:
    return {
        "co2_warning": settings.CO2_WARNING_PPM,
        "co2_critical": settings.CO2_CRITICAL_PPM,
        "pm25_warning": settings.PM25_WARNING,
        "pm25_critical": settings.PM25_CRITICAL
    }
