"""
Shared configuration management for the StudyMate gateway.
"""

from typing import List, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.errors import ConfigurationError


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:5173", "http://localhost:8080"])

    # Upstream services
    course_generation_url: str = Field(default="http://localhost:8001")
    interview_coach_url: str = Field(default="http://localhost:8002")
    resume_analyzer_url: str = Field(default="http://localhost:8003")
    profile_service_url: str = Field(default="http://localhost:8004")

    # Per-service timeouts: generation is long running, chat is interactive
    course_service_timeout_ms: int = Field(default=30000, gt=0)
    dsa_service_timeout_ms: int = Field(default=5000, gt=0)
    resume_analyzer_timeout_ms: int = Field(default=15000, gt=0)
    profile_service_timeout_ms: int = Field(default=5000, gt=0)

    course_service_max_retries: int = Field(default=2, ge=0)
    dsa_service_max_retries: int = Field(default=2, ge=0)
    resume_analyzer_max_retries: int = Field(default=2, ge=0)
    profile_service_max_retries: int = Field(default=2, ge=0)

    # API keys: default plus per-service overrides
    default_api_key: Optional[str] = Field(default=None)
    course_service_api_key: Optional[str] = Field(default=None)
    dsa_service_api_key: Optional[str] = Field(default=None)
    resume_analyzer_api_key: Optional[str] = Field(default=None)
    profile_service_api_key: Optional[str] = Field(default=None)

    # Security
    jwt_secret: str = Field(min_length=1)
    jwt_algorithm: str = Field(default="HS256")
    service_token_ttl_seconds: int = Field(default=300, gt=0)

    # Shared with the backend services; the gateway itself opens no connection
    database_url: Optional[str] = Field(default=None)

    # Resilience
    circuit_failure_threshold: int = Field(default=3, ge=1)
    circuit_failure_window_seconds: float = Field(default=60.0, gt=0)
    circuit_cooldown_seconds: float = Field(default=30.0, ge=0)
    retry_base_delay_seconds: float = Field(default=0.2, ge=0)
    retry_max_delay_seconds: float = Field(default=2.0, ge=0)
    health_probe_interval_seconds: float = Field(default=0.0, ge=0)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str = "gateway"
    port: int = 8000
    host: str = "0.0.0.0"


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service.

    Raises ConfigurationError when a mandatory value is missing or invalid.
    """
    try:
        return ServiceConfig(service_name=service_name, port=port, **overrides)
    except ValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        raise ConfigurationError(
            f"Invalid configuration for {service_name}",
            details={"fields": fields}
        ) from e
