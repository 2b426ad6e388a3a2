"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str

    # Gemini API
    GEMINI_API_KEY: str
    GEMINI_MODEL: str = "gemini-pro"

    # Redis (user profile store, holds xp)
    REDIS_URL: str = "redis://redis:6379/0"

    # Application
    APP_NAME: str = "Course Quiz Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Quiz Settings
    QUIZ_LENGTH: int = 5
    MAX_QUIZ_ATTEMPTS: int = 3
    REQUIRE_EXPLANATION: bool = False
    REPAIR_ANSWER_MEMBERSHIP: bool = True
    QUIZ_FALLBACK_ON_FAILURE: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
