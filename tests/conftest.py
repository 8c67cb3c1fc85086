"""Shared test helpers: canned responses, a fake session and a sleep-free cancel token"""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, List

import pytest
import requests

from pagewright.infrastructure.retry import CancelToken

_REASONS = {
    200: "OK",
    204: "No Content",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    429: "Too Many Requests",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


class TrackedResponse(requests.Response):
    """Response that records whether it was closed"""

    def __init__(self):
        super().__init__()
        self.closed = False

    def close(self):
        self.closed = True


def _make_response(status_code: int, payload: Any = None, *, text: str | None = None) -> TrackedResponse:
    r = TrackedResponse()
    r.status_code = status_code
    r.reason = _REASONS.get(status_code, "")
    r.url = "https://confluence.test/rest/api/"
    if text is None:
        text = json.dumps(payload) if payload is not None else ""
    r._content = text.encode("utf-8")  # type: ignore[attr-defined]
    r.encoding = "utf-8"
    r.headers["Content-Type"] = "application/json"
    return r


class RecordingCancelToken(CancelToken):
    """Cancel token that records waits instead of sleeping

    Args:
        cancel_on_wait: Fire the token during the n-th wait (1-based)
    """

    def __init__(self, cancel_on_wait: int | None = None):
        super().__init__()
        self.waits: List[float] = []
        self.cancel_on_wait = cancel_on_wait

    def wait(self, seconds: float) -> bool:
        self.waits.append(seconds)
        if self.cancel_on_wait is not None and len(self.waits) >= self.cancel_on_wait:
            self.cancel("stop requested")
        return self.cancelled


class FakeSession:
    """Stands in for requests.Session, replaying queued responses"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: List[SimpleNamespace] = []

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    def request(self, method, url, **kwargs):
        self.calls.append(SimpleNamespace(method=method, url=url, **kwargs))
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def make_response():
    return _make_response


@pytest.fixture
def token():
    return RecordingCancelToken()


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def make_token():
    return RecordingCancelToken
