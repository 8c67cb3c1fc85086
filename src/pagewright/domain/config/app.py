"""Main application configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from pagewright.domain.config.confluence import ConfluenceConfig
from pagewright.domain.config.retry import RetryConfig


class AppConfig(BaseModel):
    """Main application configuration.

    Root model aggregating all sections. Validation happens at load time to
    fail fast on configuration errors.

    Attributes:
        confluence: Connection configuration
        retry: Rate-limit retry configuration
    """

    confluence: ConfluenceConfig = Field(default_factory=ConfluenceConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",  # Reject unknown sections
        json_schema_extra={
            "example": {
                "confluence": {
                    "base_url": "https://example.atlassian.net/wiki",
                    "username": "someone@example.com",
                    "password": None,
                    "cloud": None,
                    "timeout": 60.0,
                },
                "retry": {
                    "max_attempts": 5,
                    "initial_delay": 1.0,
                    "backoff_multiplier": 2.0,
                    "jitter": 0.25,
                    "rate_limit_delay": 1.0,
                    "max_rate_limit_rounds": None,
                },
            }
        },
    )
