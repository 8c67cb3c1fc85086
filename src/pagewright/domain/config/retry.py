"""Retry configuration model."""

from typing import Optional

from pydantic import BaseModel, Field


class RetryConfig(BaseModel):
    """Configuration for rate-limit (429) retries.

    Attributes:
        max_attempts: Attempts per request before starting the operation over
        initial_delay: Delay before the second attempt, in seconds
        backoff_multiplier: Exponential backoff multiplier
        jitter: Random spread around each delay, as a fraction of it (0.0-1.0)
        rate_limit_delay: Pause before starting an operation over, in seconds
        max_rate_limit_rounds: How many times an operation may start over
            (None = until cancelled)
    """

    max_attempts: int = Field(5, gt=0, le=20)
    initial_delay: float = Field(1.0, ge=0.0)  # Allow 0 for tests
    backoff_multiplier: float = Field(2.0, ge=1.0, le=10.0)
    jitter: float = Field(0.25, ge=0.0, le=1.0)
    rate_limit_delay: float = Field(1.0, ge=0.0)
    max_rate_limit_rounds: Optional[int] = Field(None, ge=1)
