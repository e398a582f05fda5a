# backend/app/core/config.py
"""
BreachWatch configuration (pydantic-settings).

Provider credentials (HIBP, SMTP, Twilio) come only from env / .env.
"""
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    BreachWatch settings. Environment variables win over .env, which wins
    over the defaults below (the defaults only make sense for local dev).
    """

    # ─────────────────────────────────────────────────────────────
    # Application metadata
    # ─────────────────────────────────────────────────────────────
    PROJECT_NAME: str = "BreachWatch"
    PROJECT_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # ─────────────────────────────────────────────────────────────
    # Database
    # Local dev and tests fall back to a SQLite file
    # ─────────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./breachwatch.db"
    DATABASE_ECHO: bool = False

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """
        Force async drivers, whatever URL form the deployment hands us:
        - postgres://     → postgresql+asyncpg://
        - postgresql://   → postgresql+asyncpg://
        - sqlite:///      → sqlite+aiosqlite:///
        """
        if v is None:
            return "sqlite+aiosqlite:///./breachwatch.db"

        url = v.strip()

        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+asyncpg://", 1)

        if url.startswith("postgresql://") and "+asyncpg" not in url:
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)

        if url.startswith("sqlite:///") and "+aiosqlite" not in url:
            return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)

        return url

    # ─────────────────────────────────────────────────────────────
    # Breach corpus (Pwned Passwords range API, k-anonymity)
    # Only the 5-char hash prefix is ever sent.
    # ─────────────────────────────────────────────────────────────
    PWNED_PASSWORDS_API_URL: str = "https://api.pwnedpasswords.com/range"
    HIBP_API_KEY: Optional[str] = None
    BREACH_LOOKUP_USER_AGENT: str = "BreachWatch-Password-Monitor"
    BREACH_LOOKUP_TIMEOUT_SECONDS: float = 10.0
    BREACH_SOURCE_NAME: str = "HaveIBeenPwned"

    # ─────────────────────────────────────────────────────────────
    # Email (SMTP, STARTTLS)
    # ─────────────────────────────────────────────────────────────
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_TIMEOUT_SECONDS: float = 15.0
    EMAIL_FROM_NAME: str = "BreachWatch Alerts"
    EMAIL_FROM_ADDRESS: Optional[str] = None
    APP_URL: str = "http://localhost:3000"

    # ─────────────────────────────────────────────────────────────
    # SMS (Twilio Messages API)
    # ─────────────────────────────────────────────────────────────
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_PHONE_NUMBER: Optional[str] = None
    TWILIO_API_URL: str = "https://api.twilio.com/2010-04-01"
    SMS_TIMEOUT_SECONDS: float = 10.0
    USE_MOCK_SMS: bool = False
    DEFAULT_COUNTRY_CODE: str = "+1"

    # ─────────────────────────────────────────────────────────────
    # History / pagination
    # ─────────────────────────────────────────────────────────────
    HISTORY_MAX_PAGE_SIZE: int = 100

    # ─────────────────────────────────────────────────────────────
    # Loading
    # ─────────────────────────────────────────────────────────────
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in self.DATABASE_URL.lower()

    @property
    def smtp_configured(self) -> bool:
        return all(
            [self.SMTP_HOST, self.SMTP_USERNAME, self.SMTP_PASSWORD, self.EMAIL_FROM_ADDRESS]
        )

    @property
    def twilio_configured(self) -> bool:
        return all(
            [self.TWILIO_ACCOUNT_SID, self.TWILIO_AUTH_TOKEN, self.TWILIO_PHONE_NUMBER]
        )


@lru_cache()
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()


settings = get_settings()
