"""Configuration models with Pydantic validation."""

from pagewright.domain.config.app import AppConfig
from pagewright.domain.config.confluence import ConfluenceConfig
from pagewright.domain.config.retry import RetryConfig

__all__ = [
    "AppConfig",
    "ConfluenceConfig",
    "RetryConfig",
]
