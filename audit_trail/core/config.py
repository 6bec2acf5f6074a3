"""Application configuration."""

from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the audit trail engine."""

    app_name: str = "audit-trail API"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    database_url: str = getenv("DATABASE_URL", "sqlite:///./audit_trail.db")
    version_conflict_retries: int = int(getenv("AUDIT_VERSION_CONFLICT_RETRIES", "3"))
    log_level: str = getenv("LOG_LEVEL", "INFO")


settings: Settings = Settings()
