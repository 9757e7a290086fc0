import os
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


def _get_version() -> str:
    """Read version from pyproject.toml or environment variable."""
    # First check environment variable (for Docker/CI overrides)
    if env_version := os.getenv("HEALTHAUTH_VERSION"):
        return env_version

    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        for line in pyproject_path.read_text().split("\n"):
            if line.startswith("version"):
                # Parse: version = "0.1.0"
                return line.split("=")[1].strip().strip('"').strip("'")

    return "0.0.0-dev"


APP_VERSION = _get_version()


class Settings(BaseSettings):
    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "healthauth"
    POSTGRES_PASSWORD: str = "devpassword"
    POSTGRES_DB: str = "healthauth"

    # Overrides the POSTGRES_* parts when set (e.g. sqlite+aiosqlite for local runs)
    DATABASE_URL_OVERRIDE: str | None = None

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # Sessions
    SESSION_TTL_HOURS: int = 4
    SIGNUP_SESSION_TTL_HOURS: int = 24
    SESSION_INACTIVITY_MINUTES: int = 30

    # One-time codes
    OTP_EXPIRE_MINUTES: int = 10
    OTP_ATTEMPT_WINDOW_MINUTES: int = 60
    OTP_MAX_FAILED_ATTEMPTS: int = 5
    REQUIRE_LOGIN_OTP: bool = True

    # Lockout
    LOCKOUT_THRESHOLD: int = 5
    LOCKOUT_MINUTES: int = 30

    # Passwords
    BCRYPT_ROUNDS: int = 12
    PASSWORD_HISTORY_DEPTH: int = 5
    RESET_TOKEN_EXPIRE_MINUTES: int = 60
    REVOKE_SESSIONS_ON_PASSWORD_RESET: bool = True

    # App
    APP_NAME: str = "healthauth"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    @field_validator("BCRYPT_ROUNDS")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        """bcrypt accepts cost factors 4..31; anything under 10 is test-only."""
        if v < 4 or v > 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        if v < 10:
            debug_mode = os.environ.get("DEBUG", "").lower() in ("true", "1", "yes")
            if not debug_mode:
                import logging
                logging.getLogger(__name__).warning(
                    f"BCRYPT_ROUNDS={v} is below the production minimum of 10. "
                    f"This is acceptable for tests but MUST be raised in production!"
                )
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"LOG_LEVEL must be a standard logging level, got '{v}'")
        return level

    @field_validator("LOCKOUT_THRESHOLD", "PASSWORD_HISTORY_DEPTH", "OTP_MAX_FAILED_ATTEMPTS")
    @classmethod
    def validate_positive(cls, v: int, info) -> int:
        if v < 1:
            raise ValueError(f"{info.field_name} must be at least 1")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
