# src/stack_diagnoser/config/settings.py
from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single source of truth for diagnoser settings.

    Configuration precedence:
    1. Values passed to the constructor (highest priority)
    2. Environment variables
    3. .env file (if exists)
    4. Default values in this class (lowest priority)

    Usage:
        from stack_diagnoser.config.settings import get_settings
        settings = get_settings()
        region = settings.aws_region
    """

    # AWS Core Settings
    aws_region: str = Field(
        default="us-east-2",
        alias="AWS_DEFAULT_REGION"
    )

    aws_profile: Optional[str] = Field(
        default=None,
        alias="AWS_PROFILE",
        description="Named profile; takes precedence over static keys"
    )

    aws_access_key_id: Optional[str] = Field(
        default=None,
        alias="AWS_ACCESS_KEY_ID"
    )

    aws_secret_access_key: Optional[str] = Field(
        default=None,
        alias="AWS_SECRET_ACCESS_KEY"
    )

    aws_session_token: Optional[str] = Field(
        default=None,
        alias="AWS_SESSION_TOKEN"
    )

    aws_endpoint_url: Optional[str] = Field(
        default=None,
        alias="AWS_ENDPOINT_URL",
        description="Override endpoint, e.g. a moto server or LocalStack"
    )

    # botocore client behaviour
    max_attempts: int = Field(
        default=3,
        alias="AWS_MAX_ATTEMPTS",
        description="Total attempts per API call, handled by botocore"
    )

    retry_mode: str = Field(
        default="standard",
        alias="AWS_RETRY_MODE"
    )

    connect_timeout: float = Field(
        default=10.0,
        alias="STACK_DIAGNOSER_CONNECT_TIMEOUT"
    )

    read_timeout: float = Field(
        default=30.0,
        alias="STACK_DIAGNOSER_READ_TIMEOUT"
    )

    # Diagnosis
    window_buffer_seconds: int = Field(
        default=300,
        alias="STACK_DIAGNOSER_WINDOW_BUFFER_SECONDS",
        description="Seconds before the last status transition to include events from"
    )

    output_format: str = Field(
        default="table",
        alias="STACK_DIAGNOSER_OUTPUT",
        description="Report format: table, text or json"
    )

    github_actions: bool = Field(
        default=False,
        alias="GITHUB_ACTIONS",
        description="Wrap reports in ::group:: markers"
    )

    github_repository: Optional[str] = Field(
        default=None,
        alias="GITHUB_REPOSITORY"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level"
    )

    @field_validator('retry_mode')
    @classmethod
    def validate_retry_mode(cls, v):
        """Validate retry mode is one botocore understands."""
        valid_modes = ["legacy", "standard", "adaptive"]
        if v not in valid_modes:
            raise ValueError(f"Invalid retry_mode: {v}. Must be one of {valid_modes}")
        return v

    @field_validator('output_format')
    @classmethod
    def validate_output_format(cls, v):
        """Validate the report format."""
        v = v.lower()
        valid_formats = ["table", "text", "json"]
        if v not in valid_formats:
            raise ValueError(f"Invalid output_format: {v}. Must be one of {valid_formats}")
        return v

    @field_validator('max_attempts', 'window_buffer_seconds')
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("must be non-negative")
        return v

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper()

    @property
    def credential_source(self) -> str:
        """Describe where boto3 will get credentials from."""
        if self.aws_profile:
            return f"profile:{self.aws_profile}"
        if self.aws_access_key_id and self.aws_secret_access_key:
            return "static-keys"
        return "default-chain"

    def get_display_dict(self) -> Dict[str, Any]:
        """Settings as a dictionary with secrets masked, for show-config."""
        return {
            'AWS_DEFAULT_REGION': self.aws_region,
            'AWS_PROFILE': self.aws_profile or '',
            'AWS_ACCESS_KEY_ID': _mask(self.aws_access_key_id),
            'AWS_SECRET_ACCESS_KEY': _mask(self.aws_secret_access_key),
            'AWS_SESSION_TOKEN': _mask(self.aws_session_token),
            'AWS_ENDPOINT_URL': self.aws_endpoint_url or '',
            'CREDENTIAL_SOURCE': self.credential_source,
            'AWS_MAX_ATTEMPTS': self.max_attempts,
            'AWS_RETRY_MODE': self.retry_mode,
            'CONNECT_TIMEOUT': self.connect_timeout,
            'READ_TIMEOUT': self.read_timeout,
            'WINDOW_BUFFER_SECONDS': self.window_buffer_seconds,
            'OUTPUT': self.output_format,
            'GITHUB_ACTIONS': self.github_actions,
            'LOG_LEVEL': self.log_level,
        }

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


def _mask(value: Optional[str]) -> str:
    if not value:
        return ''
    return f"****{value[-4:]}" if len(value) > 8 else "****"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
