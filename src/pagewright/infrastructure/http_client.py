"""HTTP transport for the Confluence REST and JSON-RPC endpoints.

Requests are immutable ``ApiRequest`` values built once per call, so sending
the same value again (on retry) sends exactly the same bytes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple
from urllib.parse import urlparse

import requests

logger = logging.getLogger(__name__)

REST_API = "rest"
JSON_RPC_API = "rpc"

_API_ROOTS = {
    REST_API: "/rest/api",
    # Deprecated upstream, but still the only way to set permissions on server
    JSON_RPC_API: "/rpc/json-rpc/confluenceservice-v2",
}

_EMPTY: Mapping[str, str] = MappingProxyType({})


def _freeze(mapping: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    if not mapping:
        return _EMPTY
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class MultipartFile:
    """File part of a multipart upload, fully materialized in memory"""

    field_name: str
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass(frozen=True)
class ApiRequest:
    """One Confluence request, as sent on the wire

    Mappings are copied into read-only views; None stands for empty.
    """

    method: str
    path: str
    api: str = REST_API
    params: Optional[Mapping[str, str]] = None
    json: Any = None
    files: Tuple[MultipartFile, ...] = ()
    form: Optional[Mapping[str, str]] = None
    headers: Optional[Mapping[str, str]] = None

    def __post_init__(self):
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "params", _freeze(self.params))
        object.__setattr__(self, "form", _freeze(self.form))
        object.__setattr__(self, "headers", _freeze(self.headers))
        if self.api not in _API_ROOTS:
            raise ValueError(f"Unknown API root: {self.api}")

    @property
    def is_multipart(self) -> bool:
        return bool(self.files)


class ConfluenceTransport:
    """Sends ``ApiRequest`` values to a Confluence instance"""

    def __init__(
        self,
        base_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        *,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        """Initialize transport

        With a username, basic auth is used. Without one, ``password`` is sent
        as a bearer token (personal access token).

        Args:
            base_url: Instance URL (e.g. "https://example.atlassian.net/wiki")
            username: Username for basic auth (None/empty = bearer token auth)
            password: Password, API token or personal access token
            timeout: Per-request timeout in seconds
            session: requests session to use (default: a new one)
        """
        if not base_url:
            raise ValueError("Confluence base URL is required")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

        self._auth: Optional[Tuple[str, str]] = None
        self._auth_headers: Mapping[str, str] = _EMPTY
        if username:
            self._auth = (username, password or "")
        elif password:
            self._auth_headers = _freeze({"Authorization": f"Bearer {password}"})

    @property
    def uses_basic_auth(self) -> bool:
        return self._auth is not None

    @property
    def host(self) -> str:
        return urlparse(self.base_url).hostname or ""

    def url_for(self, request: ApiRequest) -> str:
        path = request.path.lstrip("/")
        return f"{self.base_url}{_API_ROOTS[request.api]}/{path}"

    def send(self, request: ApiRequest) -> requests.Response:
        """Perform one HTTP call

        Raises:
            requests.RequestException: On network-level failure
        """
        url = self.url_for(request)
        headers = {"Accept": "application/json"}
        headers.update(self._auth_headers)
        headers.update(request.headers)

        kwargs: dict = {
            "params": dict(request.params) or None,
            "headers": headers,
            "auth": self._auth,
            "timeout": self.timeout,
        }
        if request.is_multipart:
            kwargs["files"] = [
                (part.field_name, (part.filename, part.content, part.content_type))
                for part in request.files
            ]
            kwargs["data"] = dict(request.form)
        elif request.json is not None:
            kwargs["json"] = request.json

        logger.debug(f"HTTP {request.method} {url}")
        return self.session.request(request.method, url, **kwargs)
