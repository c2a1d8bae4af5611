"""
FITCOUNT Configuration

Environment variables and application settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    APP_NAME: str = "FITCOUNT"
    DEBUG: bool = True

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Rep counter
    COUNTER_SMOOTHING_WINDOW: int = 5
    COUNTER_DEBOUNCE_MS: int = 500
    COUNTER_DEFAULT_VIDEO_HEIGHT: int = 720
    COUNTER_LOG_EVERY: int = 60  # frames between sampled debug dumps, 0 disables

    # Sessions
    SESSION_DEFAULT_SETS: int = 3
    SESSION_DEFAULT_REPS: int = 10
    SESSION_REST_SECONDS: int = 10


settings = Settings()
