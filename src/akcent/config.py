"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with AKCENT_ prefix.
No YAML files, no file-based config — just env vars (12-factor app style).

Learn: pydantic-settings auto-loads from environment, validates types,
provides defaults. SQLite is the development default so the app starts
without any services; production points database_url at PostgreSQL.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via AKCENT_* env vars."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./akcent.db"

    # Redis (rate limiting only — optional)
    redis_url: str = "redis://localhost:6379/0"

    # Session cookie
    session_secret: str = "change-me-in-production"
    session_algorithm: str = "HS256"
    session_cookie_name: str = "akcent_session"
    session_max_age_days: int = 7
    session_cookie_secure: bool = False
    bcrypt_rounds: int = 12

    # Blob storage
    upload_dir: str = "uploads"
    max_upload_bytes: int = 500 * 1024 * 1024  # 500 MB

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 5000

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:5000",
    ]

    # Rate limiting
    rate_limit_rpm: int = 300  # requests per minute per IP
    rate_limit_auth_rpm: int = 10  # stricter limit for login/register

    # Outgoing webhooks
    webhook_timeout_seconds: float = 10.0

    model_config = {"env_prefix": "AKCENT_"}

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure sensitive defaults are changed in non-development environments."""
        if (
            self.environment != "development"
            and self.session_secret == "change-me-in-production"
        ):
            raise ValueError(
                "AKCENT_SESSION_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        return self


# Singleton — import this everywhere
settings = Settings()
