"""Pydantic models for client configuration."""

from pydantic import BaseModel, Field

DEFAULT_SESSION_FILE = ".db-builder-session.json"


class ClientProfile(BaseModel):
    """Backend connection profile from db-builder.toml."""

    base_url: str
    description: str = ""
    timeout: float = Field(default=30.0, gt=0)  # seconds, per attempt
    retry_count: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)  # seconds, backoff base


class ClientConfig(BaseModel):
    """Complete client configuration from db-builder.toml."""

    profiles: dict[str, ClientProfile]
    session_file: str = DEFAULT_SESSION_FILE
