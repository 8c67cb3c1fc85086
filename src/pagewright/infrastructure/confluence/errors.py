"""Confluence API errors and the error classifier.

Every error carries the operation name and target identifier it was raised
for, so a message is enough to diagnose a failure without verbose tracing.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)


class ConfluenceError(Exception):
    """Base class for all Confluence client errors."""

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        target: Optional[str] = None,
    ) -> None:
        self.message = message
        self.operation = operation
        self.target = target
        super().__init__(self._format())

    def _format(self) -> str:
        if self.operation and self.target:
            return f"{self.operation} {self.target}: {self.message}"
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class TransportError(ConfluenceError):
    """Network-level failure; fatal to the call, never retried."""


class OperationCancelledError(ConfluenceError):
    """Caller cancelled the operation (or its deadline passed) during a wait."""

    def __init__(self, reason: str, **kwargs) -> None:
        self.reason = reason
        super().__init__(f"operation cancelled: {reason}", **kwargs)


class RateLimitExhaustedError(ConfluenceError):
    """Still receiving 429 after the whole attempt budget was spent.

    The last 429 response travels with the error.
    """

    def __init__(self, attempts: int, response: requests.Response, **kwargs) -> None:
        self.attempts = attempts
        self.response = response
        super().__init__(
            f"exceeded max retries for 429 (Too Many Requests) status code (attempts: {attempts})",
            **kwargs,
        )


class UnauthorizedError(ConfluenceError):
    """401 from the API."""

    def __init__(self, **kwargs) -> None:
        super().__init__("the Confluence API returned 401 (Unauthorized)", **kwargs)


class NotFoundError(ConfluenceError):
    """404 from the API, or an explicit lookup that found nothing."""

    def __init__(self, message: str = "the Confluence API returned 404 (Not Found)", **kwargs) -> None:
        super().__init__(message, **kwargs)


class UserNotFoundError(NotFoundError):
    """User search returned no results."""

    def __init__(self, name: str, **kwargs) -> None:
        self.name = name
        super().__init__(f"user with given name is not found (name: {name!r})", **kwargs)


class DecodeError(ConfluenceError):
    """Response body does not match the expected schema."""

    def __init__(self, schema: str, body: str, cause: Optional[Exception] = None, **kwargs) -> None:
        self.schema = schema
        self.body = body
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"unable to decode JSON response as {schema} format{detail}; body: {body}",
            **kwargs,
        )


class HTTPStatusError(ConfluenceError):
    """Any other non-success status. Carries status and raw body."""

    def __init__(self, status_code: int, reason: str, body: str, **kwargs) -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"the Confluence API returned {status_code} {reason}: {body}", **kwargs)


class UnexpectedResponseError(ConfluenceError):
    """Success status, but the payload is not what the endpoint promises."""


def _drain(response: requests.Response) -> str:
    try:
        return response.text
    finally:
        response.close()


def classify_error_response(
    response: requests.Response,
    *,
    operation: Optional[str] = None,
    target: Optional[str] = None,
) -> ConfluenceError:
    """Convert a non-success response into a categorized error.

    The body is always read and the response closed, whatever the status.

    Args:
        response: Response with a non-2xx, non-429 status
        operation: Operation name for the error message
        target: Target identifier (page id, space key, ...)

    Returns:
        Error instance (not raised)

    Raises:
        ValueError: If called for a success or rate-limited response
    """
    status = response.status_code
    if 200 <= status < 300 or status == 429:
        raise ValueError(f"status {status} must not be classified as an error response")

    body = _drain(response)

    if status == 401:
        return UnauthorizedError(operation=operation, target=target)
    if status == 404:
        return NotFoundError(operation=operation, target=target)
    return HTTPStatusError(
        status,
        response.reason or "",
        body,
        operation=operation,
        target=target,
    )
