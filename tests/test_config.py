import pytest
from pydantic import ValidationError

from app.core.config import Settings

PRODUCTION_SECRETS = {
    "jwt_secret_key": "prod-secret",
    "gemini_api_key": "prod-gemini",
    "s3_bucket_name": "prod-bucket",
    "aws_access_key_id": "AKIA-prod",
    "aws_secret_access_key": "prod-aws-secret",
}


def test_production_refuses_to_start_without_jwt_secret():
    with pytest.raises(ValidationError, match="JWT_SECRET_KEY"):
        Settings(_env_file=None, app_env="production", **{**PRODUCTION_SECRETS, "jwt_secret_key": ""})


def test_production_lists_every_missing_secret():
    with pytest.raises(ValidationError) as excinfo:
        Settings(
            _env_file=None,
            app_env="production",
            **{**PRODUCTION_SECRETS, "gemini_api_key": "", "s3_bucket_name": ""},
        )
    message = str(excinfo.value)
    assert "GEMINI_API_KEY" in message
    assert "S3_BUCKET_NAME" in message


def test_fully_configured_production_starts():
    settings = Settings(_env_file=None, app_env="production", **PRODUCTION_SECRETS)
    assert settings.is_production()
    assert settings.missing_secrets() == []
    assert settings.jwt_secret_generated is False


def test_development_generates_an_ephemeral_secret():
    first = Settings(_env_file=None, app_env="development", jwt_secret_key="")
    second = Settings(_env_file=None, app_env="development", jwt_secret_key="")
    assert first.jwt_secret_generated is True
    assert len(first.jwt_secret_key) >= 32
    assert first.jwt_secret_key != second.jwt_secret_key


def test_list_settings_are_split():
    settings = Settings(
        _env_file=None,
        allowed_mime_types="application/pdf, IMAGE/PNG ,",
        rate_limited_paths="/api/auth/login,/api/files/upload",
        max_file_size_mb=2,
    )
    assert settings.allowed_mime_types_list == ["application/pdf", "image/png"]
    assert settings.rate_limited_paths_list == ["/api/auth/login", "/api/files/upload"]
    assert settings.max_file_size_bytes == 2 * 1024 * 1024


def test_temperature_out_of_range_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, ai_temperature=1.5)
