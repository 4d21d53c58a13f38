"""
Centralized Configuration Module
HealthMate API

Loads all settings from environment variables with validation.
Secrets are never hardcoded - production refuses to start without them.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator, computed_field
from functools import lru_cache
from typing import List, Optional
import secrets


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Pydantic validates all fields at startup - fails fast on misconfiguration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ────────────────────────────────────────────────
    app_name: str = "HealthMate API"
    app_version: str = "1.0.0"
    app_env: str = "development"
    debug: bool = False

    # ── Server ─────────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8000

    # ── Database ───────────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./healthmate.db"
    database_sync_url: str = "sqlite:///./healthmate.db"

    # ── Credentials ────────────────────────────────────────────────
    jwt_secret_key: str = ""
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 7 * 24 * 60
    refresh_token_expire_days: int = 30
    bcrypt_rounds: int = 12

    # ── AI Configuration ───────────────────────────────────────────
    gemini_api_key: str = ""
    ai_model: str = "gemini-2.5-flash"
    ai_temperature: float = 0.1
    ai_top_k: int = 32
    ai_top_p: float = 1.0
    ai_max_tokens: int = 4096
    ai_timeout_seconds: float = 120.0

    # ── Object Storage (S3-compatible) ─────────────────────────────
    s3_bucket_name: str = ""
    aws_region: str = "us-east-1"
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    s3_endpoint_url: Optional[str] = None
    storage_folder: str = "healthmate/reports"
    signed_url_expiry_seconds: int = 3600

    # ── Rate Limiting ──────────────────────────────────────────────
    rate_limit_requests: int = 5
    rate_limit_window: int = 15 * 60  # seconds
    rate_limited_paths: str = "/api/auth/login,/api/auth/register,/api/files/upload,/api/user/account"

    # ── File Upload ────────────────────────────────────────────────
    max_file_size_mb: int = 10
    max_files_per_upload: int = 5
    allowed_mime_types: str = "application/pdf,image/jpeg,image/jpg,image/png"
    upload_temp_dir: Optional[str] = None

    # ── CORS ───────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    # ── Logging ────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "json"

    # ── System Disclaimer (immutable) ─────────────────────────────
    disclaimer: str = (
        "This system is for informational purposes only and does not "
        "provide medical diagnosis."
    )

    # Set when a per-process JWT secret had to be generated
    jwt_secret_generated: bool = False

    # ── Computed Properties ────────────────────────────────────────
    @computed_field
    @property
    def allowed_mime_types_list(self) -> List[str]:
        return [mt.strip().lower() for mt in self.allowed_mime_types.split(",") if mt.strip()]

    @computed_field
    @property
    def rate_limited_paths_list(self) -> List[str]:
        return [p.strip() for p in self.rate_limited_paths.split(",") if p.strip()]

    @computed_field
    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @computed_field
    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    # ── Validators ─────────────────────────────────────────────────
    @field_validator("ai_temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("AI temperature must be between 0.0 and 1.0")
        return v

    @field_validator("max_files_per_upload")
    @classmethod
    def validate_max_files(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_files_per_upload must be at least 1")
        return v

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """
        Production must be fully configured or the process does not start.
        Outside production an ephemeral JWT secret is generated per process.
        """
        if self.is_production():
            missing = self.missing_secrets()
            if missing:
                raise ValueError(
                    "Missing required configuration for production: "
                    + ", ".join(missing)
                )
        elif not self.jwt_secret_key:
            self.jwt_secret_key = secrets.token_urlsafe(48)
            self.jwt_secret_generated = True
        return self

    def missing_secrets(self) -> List[str]:
        required = {
            "JWT_SECRET_KEY": self.jwt_secret_key,
            "GEMINI_API_KEY": self.gemini_api_key,
            "S3_BUCKET_NAME": self.s3_bucket_name,
            "AWS_ACCESS_KEY_ID": self.aws_access_key_id,
            "AWS_SECRET_ACCESS_KEY": self.aws_secret_access_key,
        }
        return [name for name, value in required.items() if not value]

    def get_ai_api_key(self) -> str:
        """Get API key with explicit error if not configured."""
        if not self.gemini_api_key:
            raise ValueError(
                "GEMINI_API_KEY environment variable is not set. "
                "Please configure your Gemini API key in the .env file."
            )
        return self.gemini_api_key

    def storage_configured(self) -> bool:
        return bool(self.s3_bucket_name)

    def is_production(self) -> bool:
        return self.app_env.lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Cached settings instance.
    Called once at startup, cached for lifetime of application.
    """
    return Settings()


# Module-level convenience access
settings = get_settings()
