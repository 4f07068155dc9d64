"""Application configuration.

Defines `Settings` populated from environment variables and the `.env` file.
"""
# app/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "SurveyHub"
    DEBUG: bool = False
    LOG_PATH: str = "logging"
    LOG_FILENAME: str = "surveyhub.log"
    SECRET_KEY: str = "change-me-in-env"
    TOKEN_TTL: int = 60 * 60 * 24  # 24h

    DATABASE_URL: str = "sqlite:///./surveyhub.db"
    DB_BUSY_TIMEOUT: float = 5.0  # seconds

    RECOMMENDATION_LIMIT: int = 10
    RECOMMENDATION_MAX_LIMIT: int = 50
    RATING_SCALE_MIN: int = 1
    RATING_SCALE_MAX: int = 5


settings = Settings()
