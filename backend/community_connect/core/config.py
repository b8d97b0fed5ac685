import logging
import os
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_version() -> str:
    """Read version from pyproject.toml or environment variable."""
    if env_version := os.getenv("COMMUNITY_CONNECT_VERSION"):
        return env_version

    try:
        pyproject_path = Path(__file__).parent.parent.parent.parent / "pyproject.toml"
        if pyproject_path.exists():
            for line in pyproject_path.read_text().split("\n"):
                if line.startswith("version"):
                    # Parse: version = "0.1.0"
                    return line.split("=")[1].strip().strip('"').strip("'")
    except OSError:
        pass

    return "0.0.0-dev"


APP_VERSION = _get_version()

INSECURE_SECRET_DEFAULTS = {
    "dev-secret-key-change-in-prod",
    "fallback-secret",
    "secret",
    "changeme",
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App
    APP_NAME: str = "Community Connect"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Public origin used in verification links
    APP_URL: str = "http://localhost:3000"

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "community"
    POSTGRES_PASSWORD: str = "devpassword"
    POSTGRES_DB: str = "community_connect"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    @property
    def DATABASE_URL(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # Session tokens
    JWT_SECRET_KEY: str = "dev-secret-key-change-in-prod"  # In production, ALWAYS override via env var
    JWT_ALGORITHM: str = "HS256"
    SESSION_TTL_SECONDS: int = 2 * 60 * 60
    REGISTRATION_CSRF_TTL_SECONDS: int = 24 * 60 * 60

    # CAPTCHA
    CAPTCHA_TTL_SECONDS: int = 5 * 60

    # Passwords and lockout
    BCRYPT_ROUNDS: int = 14
    MAX_LOGIN_ATTEMPTS: int = 5
    LOCKOUT_MINUTES: int = 120

    # Email verification
    EMAIL_VERIFICATION_TTL_HOURS: int = 24

    # Rate limiting
    RATE_LIMIT_BACKEND: str = "memory"  # "memory" (single instance) or "redis"
    REDIS_URL: str = "redis://localhost:6379"
    LOGIN_RATE_LIMIT: int = 5
    LOGIN_RATE_WINDOW_SECONDS: int = 15 * 60
    REGISTER_RATE_LIMIT: int = 3
    REGISTER_RATE_WINDOW_SECONDS: int = 15 * 60

    # Requests
    MAX_REQUEST_SIZE: int = 1024 * 1024

    # SMTP (without SMTP_HOST, verification links are logged outside production)
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM_EMAIL: str = "noreply@community-connect.local"
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: int = 15

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v.lower() not in ("development", "production", "test"):
            raise ValueError("ENVIRONMENT must be one of: development, production, test")
        return v.lower()

    @field_validator("RATE_LIMIT_BACKEND")
    @classmethod
    def validate_rate_limit_backend(cls, v: str) -> str:
        if v.lower() not in ("memory", "redis"):
            raise ValueError("RATE_LIMIT_BACKEND must be 'memory' or 'redis'")
        return v.lower()

    @field_validator("BCRYPT_ROUNDS")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        if not 4 <= v <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        return v

    @field_validator("JWT_SECRET_KEY")
    @classmethod
    def validate_secret(cls, v: str, info) -> str:
        """Reject empty, default and short signing secrets outside DEBUG."""
        if not v or v.strip() == "":
            raise ValueError(
                f"{info.field_name} must be set in environment variables. "
                f"Generate a secure random key using: openssl rand -base64 32"
            )

        if v.lower() in INSECURE_SECRET_DEFAULTS:
            # DEBUG is read from the environment because field order is not guaranteed here
            debug_mode = os.environ.get("DEBUG", "").lower() in ("true", "1", "yes")
            if not debug_mode:
                raise ValueError(
                    f"{info.field_name} is using an insecure default value. "
                    f"Generate a secure key using: openssl rand -base64 32"
                )
            logging.getLogger(__name__).warning(
                f"{info.field_name} is using an insecure default value in DEBUG mode. "
                f"This MUST be changed in production!"
            )
        elif len(v) < 32:
            raise ValueError(
                f"{info.field_name} must be at least 32 characters long for security. "
                f"Generate a secure key using: openssl rand -base64 32"
            )

        return v


settings = Settings()
