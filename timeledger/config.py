"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./timeledger.db"
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Business-local timezone used for default reporting windows
    LOCAL_TIMEZONE: str = "America/Sao_Paulo"

    # Platform-wide roles that make an actor global across companies
    PRIVILEGED_ROLES: str = "administrator,developer"

    # Write-time plausibility bounds for a clock-in/clock-out pair
    MAX_SHIFT_MINUTES: int = 18 * 60
    MIN_SHIFT_MINUTES: int = 1

    IMPORT_BATCH_LIMIT: int = 5000
    AUDIT_QUERY_LIMIT: int = 500

    class Config:
        env_file = ".env"

    @property
    def privileged_roles(self) -> set[str]:
        return {r.strip().lower() for r in self.PRIVILEGED_ROLES.split(",") if r.strip()}


settings = Settings()
