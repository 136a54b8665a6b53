"""
Shared configuration management for the FeedBacks services.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FEEDBACKS_",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local", description="Deployment environment")
    log_level: str = Field(default="info", description="Root log level")

    # Authentication (tokens are verified here, never issued)
    auth_jwt_secret: str = Field(default="local-dev-secret", description="Shared secret for HS* tokens")
    auth_jwt_algorithm: str = Field(default="HS256")
    auth_jwt_audience: Optional[str] = Field(default=None)

    # AI flow server
    ai_service_url: str = Field(default="http://localhost:3400", description="Base URL of the AI flow server")
    ai_request_timeout: float = Field(default=20.0)
    ai_failure_threshold: int = Field(default=3)
    ai_recovery_timeout: float = Field(default=30.0)
    ai_max_attempts: int = Field(default=2)

    # Policy
    feedback_strip_whitespace: bool = Field(
        default=False,
        description="Reject whitespace-only feedback text when true"
    )

    # Real-time chat
    chat_subscriber_queue_size: int = Field(default=100)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
