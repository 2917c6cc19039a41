"""
Configuration management for the MediTrack scheduling service.

This module provides centralized configuration using Pydantic settings
for type-safe environment variable management.
"""

import sys
from functools import lru_cache
from typing import List, Optional

from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")
    seed_sample_data: bool = Field(default=True, alias="SEED_SAMPLE_DATA")

    # Pagination
    default_page_size: int = Field(default=20, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=100, alias="MAX_PAGE_SIZE")

    # API Server Configuration
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8080, alias="API_PORT")
    api_workers: int = Field(default=1, alias="API_WORKERS")

    # Application Configuration
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once,
    improving performance for repeated access.
    """
    return Settings()


def configure_logging(level: str) -> None:
    """Replace loguru's default sink with a single stderr sink at `level`."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function} - {message}",
    )


# Reference data - doctors and patients are not created through the API
SAMPLE_DOCTORS: List[dict] = [
    {"id": 1, "first_name": "John", "last_name": "Doe", "timezone": "America/New_York"},
    {"id": 2, "first_name": "Alice", "last_name": "Smith", "timezone": "Europe/London"},
    {"id": 3, "first_name": "Bob", "last_name": "Johnson", "timezone": "Asia/Tokyo"},
]

SAMPLE_PATIENTS: List[dict] = [
    {"id": 1, "first_name": "Jane", "last_name": "Doe"},
    {"id": 2, "first_name": "Michael", "last_name": "Brown"},
    {"id": 3, "first_name": "Emily", "last_name": "Davis"},
    {"id": 4, "first_name": "David", "last_name": "Wilson"},
    {"id": 5, "first_name": "Sarah", "last_name": "Miller"},
]

# Each doctor sees a mix of patients; Sarah Miller has no visits yet
SAMPLE_VISITS: List[dict] = [
    {"doctor_id": 1, "patient_id": 1, "start": "2024-06-01T10:00:00-04:00", "end": "2024-06-01T11:00:00-04:00"},
    {"doctor_id": 1, "patient_id": 2, "start": "2024-06-02T10:00:00-04:00", "end": "2024-06-02T11:00:00-04:00"},
    {"doctor_id": 1, "patient_id": 3, "start": "2024-06-03T10:00:00-04:00", "end": "2024-06-03T11:00:00-04:00"},
    {"doctor_id": 2, "patient_id": 1, "start": "2024-06-01T15:00:00+01:00", "end": "2024-06-01T16:00:00+01:00"},
    {"doctor_id": 2, "patient_id": 3, "start": "2024-06-02T15:00:00+01:00", "end": "2024-06-02T16:00:00+01:00"},
    {"doctor_id": 2, "patient_id": 4, "start": "2024-06-03T15:00:00+01:00", "end": "2024-06-03T16:00:00+01:00"},
    {"doctor_id": 3, "patient_id": 2, "start": "2024-06-01T18:00:00+09:00", "end": "2024-06-01T19:00:00+09:00"},
    {"doctor_id": 3, "patient_id": 4, "start": "2024-06-02T18:00:00+09:00", "end": "2024-06-02T19:00:00+09:00"},
]

