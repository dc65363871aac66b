"""
Configuration management for DoseRound
"""

from typing import Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "DoseRound"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENV: str = "development"

    # API
    API_PREFIX: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Local reminder store
    DATABASE_URL: str = "sqlite:///./doseround.db"
    DATABASE_ECHO: bool = False

    # Reminder source: "local" (database) or "remote" (hospital API)
    REMINDER_SOURCE: str = "local"

    # Hospital API
    HOSPITAL_API_URL: str = "http://localhost:5000/api/v1"
    HOSPITAL_API_TOKEN: Optional[str] = None
    HOSPITAL_API_TIMEOUT: float = 30.0
    HOSPITAL_USER_ID: Optional[int] = None

    # Schedule polling
    POLL_INTERVAL_SECONDS: float = 5.0
    POLL_IN_BACKGROUND: bool = True
    VIEW_REGISTRY_SIZE: int = 256

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:8081"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


class EngineConfig:
    """Constants shared by the scheduling engine"""

    # medicationTime parsing
    WINDOW_DELIMITER: str = " - "
    WINDOW_SEPARATOR: str = ","

    # Values the backend uses for "no given time yet"
    NOT_GIVEN_SENTINELS: tuple = ("", "Not given yet", "------")
    NOT_GIVEN_LABEL: str = "Not given yet"
    UNSCHEDULED_LABEL: str = "------"

    UNKNOWN_MEDICINE_NAME: str = "Unknown Medicine"
    DEFAULT_MEDICINE_TYPE: str = "Tablets"
    EMPTY_DATE_MESSAGE: str = "No medicines scheduled for this date."


settings = get_settings()
engine_config = EngineConfig()
