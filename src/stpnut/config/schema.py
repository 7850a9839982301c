"""Pydantic schema models for client configuration.

- Config: Top-level configuration container
- ClientConfig: App credentials and HTTP settings
- RealtimeConfig: WebSocket keepalive settings
- LoggingConfig: Host logging preferences
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_BASE_URL = "https://api.pnut.io/v0"


class ClientConfig(BaseModel):
    """App credentials and HTTP settings.

    Attributes:
        client_id: App client id
        client_secret: App client secret
        token: Pre-issued app access token (skips authentication)
        base_url: API base URL
        timeout: HTTP timeout in seconds
    """

    model_config = ConfigDict(extra="forbid")

    client_id: str | None = None
    client_secret: str | None = None
    token: str | None = None
    base_url: str = DEFAULT_BASE_URL
    timeout: Annotated[float, Field(gt=0)] = 30.0

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        if not v.startswith(("https://", "http://")):
            msg = "base_url must start with https:// or http://"
            raise ValueError(msg)
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_credentials(self) -> ClientConfig:
        """Require either a token or both halves of the client credentials."""
        if self.token:
            return self
        if not self.client_id or not self.client_secret:
            msg = "Provide either token or both client_id and client_secret"
            raise ValueError(msg)
        return self


class RealtimeConfig(BaseModel):
    """WebSocket monitor settings.

    Attributes:
        url: Stream endpoint to monitor (optional; hosts may pass it directly)
        ping_interval: Seconds between keepalive frames
        ping_payload: Text frame sent as keepalive
    """

    model_config = ConfigDict(extra="forbid")

    url: str | None = None
    ping_interval: Annotated[float, Field(gt=0)] = 30.0
    ping_payload: Annotated[str, Field(min_length=1)] = "ping"

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Require a WebSocket URL when one is given."""
        if v is not None and not v.startswith(("wss://", "ws://")):
            msg = "realtime url must start with wss:// or ws://"
            raise ValueError(msg)
        return v


class LoggingConfig(BaseModel):
    """Logging preferences passed to configure_logging()."""

    model_config = ConfigDict(extra="forbid")

    verbose: bool = False
    json_output: bool = True


class Config(BaseModel):
    """Top-level configuration loaded from YAML.

    Attributes:
        version: Schema version (must be 1)
        client: App credentials and HTTP settings
        realtime: WebSocket monitor settings
        logging: Logging preferences
    """

    model_config = ConfigDict(extra="forbid")

    version: Literal[1]
    client: ClientConfig
    realtime: RealtimeConfig = Field(default_factory=RealtimeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
