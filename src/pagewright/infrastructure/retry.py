"""Rate-limit retry utilities using tenacity.

Two tiers of backoff around every Confluence call:

* ``execute_with_retry`` re-sends one request while the server answers 429,
  sleeping with exponential backoff and jitter between attempts.
* ``run_with_rate_limit_rounds`` re-runs a whole operation from scratch after
  a fixed pause when the first tier gives up.

Only 429 drives retries. Every sleep waits on a ``CancelToken`` so callers can
abort or bound the total latency.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

import requests
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_result,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from pagewright.domain.config.retry import RetryConfig
from pagewright.infrastructure.confluence.errors import (
    OperationCancelledError,
    RateLimitExhaustedError,
    TransportError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TOO_MANY_REQUESTS = 429


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    initial_delay: float = 1.0
    backoff_multiplier: float = 2.0
    jitter: float = 0.25  # total spread around the current delay: +/-12.5%
    rate_limit_delay: float = 1.0
    max_rate_limit_rounds: Optional[int] = None  # None = keep going until cancelled

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")


def retry_policy_from_config(config: RetryConfig) -> RetryPolicy:
    """Build the runtime policy from the validated configuration model."""
    return RetryPolicy(**config.model_dump())


class CancelToken:
    """Cancellation signal with an optional deadline.

    ``wait`` is the only way the client sleeps, so firing the token (or
    reaching the deadline) interrupts any pending backoff immediately.
    """

    def __init__(self, timeout: Optional[float] = None):
        """Create a token

        Args:
            timeout: Seconds from now after which the token counts as cancelled
                (None = no deadline)
        """
        self._event = threading.Event()
        self._reason: Optional[str] = None
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self, reason: str = "cancelled by caller") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("deadline exceeded")
            return True
        return False

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def wait(self, seconds: float) -> bool:
        """Sleep for up to ``seconds``.

        Returns:
            True if the token was cancelled before the time elapsed
        """
        if self._deadline is not None:
            remaining = self._deadline - time.monotonic()
            if remaining < seconds:
                if self._event.wait(max(remaining, 0.0)):
                    return True
                self.cancel("deadline exceeded")
                return True
        return self._event.wait(seconds)


def sleep_or_cancel(
    cancel: CancelToken,
    seconds: float,
    *,
    operation: Optional[str] = None,
    target: Optional[str] = None,
) -> None:
    """Sleep on the token, raising OperationCancelledError if it fires."""
    if cancel.wait(seconds):
        raise OperationCancelledError(
            cancel.reason or "cancelled",
            operation=operation,
            target=target,
        )


class wait_jittered_exponential(wait_base):
    """Exponential wait whose jitter is relative to the current delay.

    Before attempt ``n + 1`` the delay is ``initial * multiplier ** (n - 1)``,
    shifted by a uniform draw from ``[-delay * jitter / 2, +delay * jitter / 2]``.
    """

    def __init__(self, initial: float = 1.0, multiplier: float = 2.0, jitter: float = 0.25) -> None:
        self.initial = initial
        self.multiplier = multiplier
        self.jitter = jitter

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = self.initial * self.multiplier ** (retry_state.attempt_number - 1)
        if self.jitter <= 0:
            return delay
        spread = delay * self.jitter / 2
        return max(0.0, delay + random.uniform(-spread, spread))


def _is_rate_limited(response: requests.Response) -> bool:
    return response.status_code == TOO_MANY_REQUESTS


def discard_response(response: requests.Response) -> None:
    """Read and drop the body so the connection can be re-used."""
    try:
        _ = response.content
    except (requests.RequestException, RuntimeError) as e:
        # RuntimeError: stream already consumed elsewhere
        logger.debug(f"Could not drain discarded response body: {e}")
    finally:
        response.close()


def execute_with_retry(
    attempt: Callable[[], requests.Response],
    *,
    policy: RetryPolicy,
    cancel: Optional[CancelToken] = None,
    operation: Optional[str] = None,
    target: Optional[str] = None,
) -> requests.Response:
    """Call ``attempt`` until it stops answering 429.

    Any non-429 response is returned as-is, error statuses included; their
    classification is up to the caller.

    Args:
        attempt: Zero-argument callable performing one request
        policy: Retry policy (attempt budget and backoff)
        cancel: Token aborting the backoff sleeps
        operation: Operation name for error messages
        target: Target identifier for error messages

    Returns:
        First non-429 response

    Raises:
        TransportError: If ``attempt`` raised a requests exception (not retried)
        OperationCancelledError: If the token fired during a backoff sleep
        RateLimitExhaustedError: If every attempt was rate limited; the last
            429 response is attached
    """
    cancel = cancel or CancelToken()

    def _sleep(seconds: float) -> None:
        sleep_or_cancel(cancel, seconds, operation=operation, target=target)

    def _before_sleep(retry_state: RetryCallState) -> None:
        if retry_state.outcome is None:
            return
        discard_response(retry_state.outcome.result())
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"Confluence API rate limited {operation or 'request'} "
            f"(attempt {retry_state.attempt_number}/{policy.max_attempts}). "
            f"Retrying in {delay:.2f}s..."
        )

    retrying = Retrying(
        sleep=_sleep,
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_jittered_exponential(
            initial=policy.initial_delay,
            multiplier=policy.backoff_multiplier,
            jitter=policy.jitter,
        ),
        retry=retry_if_result(_is_rate_limited),
        before_sleep=_before_sleep,
    )

    try:
        return retrying(attempt)
    except RetryError as e:
        raise RateLimitExhaustedError(
            policy.max_attempts,
            e.last_attempt.result(),
            operation=operation,
            target=target,
        ) from None
    except requests.RequestException as e:
        raise TransportError(str(e), operation=operation, target=target) from e


def run_with_rate_limit_rounds(
    operation: Callable[[], T],
    *,
    policy: RetryPolicy,
    cancel: Optional[CancelToken] = None,
    label: Optional[str] = None,
) -> T:
    """Run a whole operation, starting over while it stays rate limited.

    Each round calls ``operation`` from scratch, so request payloads and any
    lookups it depends on are rebuilt. Between rounds the loop pauses for
    ``policy.rate_limit_delay``. With ``max_rate_limit_rounds`` unset there is
    no cap; the cancel token is then the only bound on latency.

    Raises:
        RateLimitExhaustedError: After ``max_rate_limit_rounds`` rounds
        OperationCancelledError: If the token fired during the pause
    """
    cancel = cancel or CancelToken()
    rounds = 0
    while True:
        rounds += 1
        try:
            return operation()
        except RateLimitExhaustedError as e:
            discard_response(e.response)
            limit = policy.max_rate_limit_rounds
            if limit is not None and rounds >= limit:
                logger.error(f"{label or 'Confluence call'} still rate limited after {rounds} rounds, giving up")
                raise
            logger.warning(
                f"{label or 'Confluence call'} still rate limited after {e.attempts} attempts "
                f"(round {rounds}). Starting over in {policy.rate_limit_delay:.2f}s..."
            )
            sleep_or_cancel(cancel, policy.rate_limit_delay, operation=e.operation, target=e.target)
