"""Runtime settings, overridable through ``TUNNELDASH_*`` environment variables."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_BASE_URL = "https://api.cloudflare.com/client/v4"
DEFAULT_AGENT_BINARY = "cloudflared"


class DashSettings(BaseSettings):
    """Settings shared by the process supervisor and the API client."""

    model_config = SettingsConfigDict(
        env_prefix="TUNNELDASH_",
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="ignore",
    )

    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL, description="Cloudflare v4 API root"
    )
    agent_binary: str = Field(
        default=DEFAULT_AGENT_BINARY,
        min_length=1,
        description="Name or path of the cloudflared executable",
    )
    request_timeout: float | None = Field(
        default=None,
        gt=0,
        description="HTTP timeout in seconds; None leaves requests unbounded",
    )
    stop_wait_timeout: float = Field(
        default=2.0,
        ge=0,
        le=30.0,
        description="Seconds to wait for a killed agent to be reaped",
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    json_logs: bool = Field(default=False, description="Render logs as JSON")

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash"""
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize to an upper-case stdlib level name"""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level
