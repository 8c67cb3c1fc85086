"""Confluence connection configuration model."""

from typing import Optional

from pydantic import BaseModel, Field


class ConfluenceConfig(BaseModel):
    """Configuration for the Confluence connection.

    Attributes:
        base_url: Instance URL (None = from CONFLUENCE_BASE_URL env)
        username: Username for basic auth (None = bearer token auth)
        password: Password, API token or personal access token
        cloud: Force cloud/server API behaviour (None = detect from host)
        timeout: Per-request timeout in seconds
    """

    base_url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    cloud: Optional[bool] = None
    timeout: float = Field(60.0, gt=0.0)
