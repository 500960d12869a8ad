# backend/config.py
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite+aiosqlite:///./scheduler.db"
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    GOOGLE_REDIRECT_URI: Optional[str] = None
    GOOGLE_AI_API_KEY: Optional[str] = None
    PLANNING_MODEL: str = "gemini-2.5-pro"
    SUMMARY_MODEL: str = "gemini-1.5-flash"
    # Without an X-Google-Id header, fall back to the first stored user
    SINGLE_TENANT_MODE: bool = False
    TIMEZONE: str = "UTC"
    SLACK_WEBHOOK_URL: Optional[str] = None
    EMAIL_USER: Optional[str] = None
    EMAIL_PASS: Optional[str] = None
    EMAIL_TO: Optional[str] = None
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SESSION_SECRET: Optional[str] = None
    CLIENT_URL: str = "*"
    LOG_LEVEL: str = "INFO"
    PORT: int = 3000

    @field_validator("TIMEZONE")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {value}") from e
        return value

    @property
    def oauth_configured(self) -> bool:
        return bool(self.GOOGLE_CLIENT_ID and self.GOOGLE_CLIENT_SECRET)

    @property
    def email_configured(self) -> bool:
        return bool(self.EMAIL_USER and self.EMAIL_PASS)

@lru_cache
def get_settings() -> Settings:
    """Settings from the environment and .env. Call ``get_settings.cache_clear()`` after changing env vars."""
    return Settings()
