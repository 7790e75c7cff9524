"""
Vision Calling – Application configuration.
Reads environment variables from a .env file via pydantic-settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── App ──
    APP_NAME: str = "Vision Calling"
    DEBUG: bool = False
    HOSTNAME: str = "http://127.0.0.1:8000"

    # ── Database ──
    DATABASE_URL: str = "sqlite+aiosqlite:///./vision_calling.db"

    # ── JWT ──
    SECRET_KEY: str = "change-me-to-a-random-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # ── Credentials ──
    BCRYPT_ROUNDS: int = 12
    TOKEN_ALLOCATION_RETRIES: int = 3

    # ── Mail (SMTP) ──
    SMTP_SERVER: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    MAIL_SENDER: str = ""

    # ── Push (FCM HTTP v1) ──
    FCM_PROJECT_ID: str = ""
    FCM_ACCESS_TOKEN: str = ""

    # ── Real-time media ──
    MEDIA_APP_ID: str = "vision-calling"
    MEDIA_TOKEN_TTL_SECONDS: int = 3600


settings = Settings()
