"""Configuration models for external security-tool connectors."""

import os
from datetime import datetime

import httpx
from pydantic import BaseModel, ConfigDict, Field

from secpulse.models.enums import AuthType, ConnectorStatus, ConnectorType


class AuthConfig(BaseModel):
    """Authentication config. Stores env var NAMES, never actual secrets."""

    model_config = ConfigDict(extra="forbid")

    auth_type: AuthType = AuthType.NONE
    bearer_token_env: str | None = None
    username_env: str | None = None
    password_env: str | None = None

    def resolve_bearer_token(self) -> str | None:
        """Resolve bearer token from environment variable."""
        if self.bearer_token_env:
            return os.environ.get(self.bearer_token_env)
        return None

    def resolve_basic_auth(self) -> tuple[str, str] | None:
        """Resolve basic auth credentials from environment variables."""
        if self.username_env and self.password_env:
            username = os.environ.get(self.username_env)
            password = os.environ.get(self.password_env)
            if username and password:
                return (username, password)
        return None

    def get_headers(self) -> dict[str, str]:
        """Build HTTP headers for token authentication."""
        headers: dict[str, str] = {}
        if self.auth_type == AuthType.BEARER:
            token = self.resolve_bearer_token()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    def get_httpx_auth(self) -> httpx.BasicAuth | None:
        """Return an httpx auth object for basic auth, or None."""
        if self.auth_type == AuthType.BASIC:
            creds = self.resolve_basic_auth()
            if creds:
                return httpx.BasicAuth(*creds)
        return None


class ConnectorConfig(BaseModel):
    """A configured connection to one external security system."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    type: ConnectorType
    implementation: str | None = None
    base_url: str
    auth: AuthConfig = Field(default_factory=AuthConfig)
    enabled: bool = True
    sync_interval: int = 15  # minutes
    last_sync: datetime | None = None
    status: ConnectorStatus = ConnectorStatus.PENDING
    last_error: str | None = None
    config: dict = Field(default_factory=dict)

    @classmethod
    def from_row(cls, row) -> "ConnectorConfig":
        """Build a config from a ``ConnectorConfigRow``."""
        return cls(
            id=row.connector_id,
            name=row.name,
            type=row.connector_type,
            implementation=row.implementation,
            base_url=row.base_url,
            auth=AuthConfig(**(row.auth_config or {})),
            enabled=row.enabled,
            sync_interval=row.sync_interval,
            last_sync=row.last_sync,
            status=row.status,
            last_error=row.last_error,
            config=row.config or {},
        )
