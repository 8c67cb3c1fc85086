"""Confluence API client"""

from __future__ import annotations

import functools
import logging
import os
from typing import BinaryIO, Callable, Iterable, List, Optional, TextIO, TypeVar, Union

import requests

from pagewright.domain.models.attachment import AttachmentInfo, AttachmentListResponse
from pagewright.domain.models.label import LabelInfo
from pagewright.domain.models.page import PageInfo, PageSearchResponse, SpaceInfo
from pagewright.domain.models.user import User, UserSearchResponse
from pagewright.infrastructure.confluence import endpoints
from pagewright.infrastructure.confluence.errors import (
    DecodeError,
    NotFoundError,
    UnexpectedResponseError,
    UserNotFoundError,
)
from pagewright.infrastructure.confluence.responses import (
    decode_attachment_payload,
    decode_model,
    decode_optional,
    ensure_status,
    load_json,
)
from pagewright.infrastructure.http_client import ApiRequest, ConfluenceTransport
from pagewright.infrastructure.retry import (
    CancelToken,
    RetryPolicy,
    execute_with_retry,
    run_with_rate_limit_rounds,
)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable)

CLOUD_HOST_SUFFIXES = ("jira.com", "atlassian.net")


def _rate_limit_rounds(label: str) -> Callable[[F], F]:
    """Run the decorated operation under the outer rate-limit loop.

    The wrapped method gets a concrete ``cancel`` token and is re-invoked from
    scratch each round.
    """

    def decorator(method: F) -> F:
        @functools.wraps(method)
        def wrapper(self: "ConfluenceClient", *args, cancel: Optional[CancelToken] = None, **kwargs):
            token = cancel or self.cancel_token
            return run_with_rate_limit_rounds(
                lambda: method(self, *args, cancel=token, **kwargs),
                policy=self.retry_policy,
                cancel=token,
                label=label,
            )

        return wrapper  # type: ignore[return-value]

    return decorator


class ConfluenceClient:
    """Client for Confluence REST and JSON-RPC operations"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        cancel_token: Optional[CancelToken] = None,
        cloud: Optional[bool] = None,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        """Initialize Confluence client

        Args:
            base_url: Instance URL (default: from CONFLUENCE_BASE_URL env)
            username: Username for basic auth (default: from CONFLUENCE_USERNAME env);
                without one, the password is sent as a bearer token
            password: Password or token (default: from CONFLUENCE_PASSWORD or
                CONFLUENCE_API_TOKEN env)
            retry_policy: Rate-limit retry policy (default: RetryPolicy())
            cancel_token: Token used by calls that do not pass their own
            cloud: Force cloud/server behaviour (None = detect from host)
            timeout: Per-request timeout in seconds
            session: requests session (mainly for tests)
        """
        base_url = base_url or os.getenv("CONFLUENCE_BASE_URL")
        username = username if username is not None else os.getenv("CONFLUENCE_USERNAME")
        password = password or os.getenv("CONFLUENCE_PASSWORD") or os.getenv("CONFLUENCE_API_TOKEN")

        if not base_url:
            raise ValueError(
                "Confluence base URL is required. "
                "Set CONFLUENCE_BASE_URL environment variable or provide in config."
            )

        self.transport = ConfluenceTransport(
            base_url, username, password, timeout=timeout, session=session
        )
        self.retry_policy = retry_policy or RetryPolicy()
        self.cancel_token = cancel_token or CancelToken()
        self._cloud = cloud

        logger.info(f"Confluence client initialized for {self.base_url}")

    @property
    def base_url(self) -> str:
        return self.transport.base_url

    @property
    def is_cloud(self) -> bool:
        if self._cloud is not None:
            return self._cloud
        return self.transport.host.endswith(CLOUD_HOST_SUFFIXES)

    def _send(
        self,
        request: ApiRequest,
        cancel: CancelToken,
        *,
        operation: str,
        target: Optional[str] = None,
    ) -> requests.Response:
        return execute_with_retry(
            lambda: self.transport.send(request),
            policy=self.retry_policy,
            cancel=cancel,
            operation=operation,
            target=target,
        )

    # Pages

    def find_root_page(self, space: str, *, cancel: Optional[CancelToken] = None) -> PageInfo:
        """Find the top-level page of a space

        Returns:
            Root page (id and title only)

        Raises:
            NotFoundError: If the space has no pages
        """
        page = self.find_page(space, "", "page", cancel=cancel)
        if page is None:
            raise NotFoundError("no such space", operation="find root page", target=f"in space {space!r}")

        if not page.ancestors:
            return PageInfo(id=page.id, title=page.title)

        root = page.ancestors[0]
        return PageInfo(id=root.id, title=root.title)

    @_rate_limit_rounds("find home page")
    def find_home_page(self, space: str, *, cancel: CancelToken) -> PageInfo:
        """Get the home page of a space

        Raises:
            NotFoundError: If the space does not exist
        """
        operation, target = "find home page", f"of space {space!r}"
        response = self._send(endpoints.space_homepage(space), cancel, operation=operation, target=target)
        ensure_status(response, operation=operation, target=target)
        return decode_model(response, SpaceInfo, operation=operation, target=target).homepage

    @_rate_limit_rounds("find page")
    def find_page(
        self,
        space: str,
        title: str,
        page_type: str = "page",
        *,
        cancel: CancelToken,
    ) -> Optional[PageInfo]:
        """Find a page by title in a space

        Args:
            space: Space key
            title: Page title (empty = any page of the type)
            page_type: "page" or "blogpost"

        Returns:
            First matching page, or None if there is none
        """
        operation, target = "find page", f"{title!r} in space {space!r}"
        response = self._send(
            endpoints.find_page(space, title, page_type), cancel, operation=operation, target=target
        )

        result = decode_optional(response, PageSearchResponse, operation=operation, target=target)
        if result is None or not result.results:
            logger.debug(f"No {page_type} {target}")
            return None
        return result.results[0]

    @_rate_limit_rounds("get page")
    def get_page_by_id(self, page_id: str, *, cancel: CancelToken) -> PageInfo:
        """Get a page by ID

        Raises:
            NotFoundError: If no page has that ID
        """
        operation, target = "get page", page_id
        response = self._send(endpoints.page_by_id(page_id), cancel, operation=operation, target=target)
        ensure_status(response, operation=operation, target=target)
        return decode_model(response, PageInfo, operation=operation, target=target)

    @_rate_limit_rounds("create page")
    def create_page(
        self,
        space: str,
        page_type: str,
        parent: Optional[PageInfo],
        title: str,
        body: str,
        *,
        cancel: CancelToken,
    ) -> PageInfo:
        """Create a page (or blog post) with storage-format body"""
        operation, target = "create page", f"{title!r} in space {space!r}"
        request = endpoints.create_page(space, page_type, parent, title, body)
        response = self._send(request, cancel, operation=operation, target=target)
        ensure_status(response, operation=operation, target=target)
        page = decode_model(response, PageInfo, operation=operation, target=target)
        logger.info(f"Created {page_type} {title!r} ({page.id}) in space {space}")
        return page

    @_rate_limit_rounds("update page")
    def update_page(
        self,
        page: PageInfo,
        content: str,
        *,
        minor_edit: bool = False,
        version_message: str = "",
        appearance: str = "full-width",
        emoji: str = "",
        cancel: CancelToken,
    ) -> None:
        """Publish a new version of a page

        Args:
            page: Current page (its version number is incremented)
            content: New storage-format body
            minor_edit: Do not notify watchers
            version_message: Version comment
            appearance: Published content appearance ("full-width" or "fixed-width")
            emoji: Title emoji (first character is used)
        """
        operation, target = "update page", page.id
        request = endpoints.update_page(
            page,
            content,
            minor_edit=minor_edit,
            version_message=version_message,
            appearance=appearance,
            emoji=emoji,
        )
        response = self._send(request, cancel, operation=operation, target=target)
        ensure_status(response, operation=operation, target=target)
        response.close()
        logger.info(f"Updated page {page.title!r} ({page.id}) to version {page.version.number + 1}")

    # Attachments

    def create_attachment(
        self,
        page_id: str,
        name: str,
        comment: str,
        stream: Union[bytes, str, BinaryIO, TextIO],
        *,
        cancel: Optional[CancelToken] = None,
    ) -> AttachmentInfo:
        """Upload a new attachment to a page"""
        content = endpoints.read_stream(stream)
        return self._create_attachment(page_id, name, comment, content, cancel=cancel)

    @_rate_limit_rounds("create attachment")
    def _create_attachment(
        self, page_id: str, name: str, comment: str, content: bytes, *, cancel: CancelToken
    ) -> AttachmentInfo:
        operation, target = "create attachment", f"{name!r} on page {page_id}"
        request = endpoints.create_attachment(page_id, name, comment, content)
        response = self._send(request, cancel, operation=operation, target=target)
        ensure_status(response, operation=operation, target=target)
        result = decode_model(response, AttachmentListResponse, operation=operation, target=target)

        attachments = result.attachments()
        if not attachments:
            raise DecodeError(
                "extended response",
                result.model_dump_json(by_alias=True),
                ValueError("returned 0 json objects, expected at least 1"),
                operation=operation,
                target=target,
            )
        return attachments[0]

    def update_attachment(
        self,
        page_id: str,
        attachment_id: str,
        name: str,
        comment: str,
        stream: Union[bytes, str, BinaryIO, TextIO],
        *,
        cancel: Optional[CancelToken] = None,
    ) -> AttachmentInfo:
        """Upload a new version of an existing attachment

        Servers answer this either with the extended results envelope or with
        a bare attachment object; both are accepted.
        """
        content = endpoints.read_stream(stream)
        return self._update_attachment(page_id, attachment_id, name, comment, content, cancel=cancel)

    @_rate_limit_rounds("update attachment")
    def _update_attachment(
        self,
        page_id: str,
        attachment_id: str,
        name: str,
        comment: str,
        content: bytes,
        *,
        cancel: CancelToken,
    ) -> AttachmentInfo:
        operation, target = "update attachment", f"{attachment_id} ({name!r}) on page {page_id}"
        request = endpoints.update_attachment(page_id, attachment_id, name, comment, content)
        response = self._send(request, cancel, operation=operation, target=target)
        ensure_status(response, operation=operation, target=target)
        return decode_attachment_payload(response, operation=operation, target=target)

    @_rate_limit_rounds("get attachments")
    def get_attachments(self, page_id: str, *, cancel: CancelToken) -> List[AttachmentInfo]:
        """List attachments of a page (empty list if there are none)"""
        operation, target = "get attachments", f"of page {page_id}"
        response = self._send(endpoints.list_attachments(page_id), cancel, operation=operation, target=target)
        ensure_status(response, operation=operation, target=target)
        return decode_model(response, AttachmentListResponse, operation=operation, target=target).attachments()

    # Labels

    @_rate_limit_rounds("add page labels")
    def add_page_labels(self, page: PageInfo, labels: Iterable[str], *, cancel: CancelToken) -> LabelInfo:
        """Add global labels to a page; empty names are skipped"""
        operation, target = "add page labels", page.id
        response = self._send(endpoints.add_labels(page.id, labels), cancel, operation=operation, target=target)
        ensure_status(response, operation=operation, target=target)
        return decode_model(response, LabelInfo, operation=operation, target=target)

    @_rate_limit_rounds("delete page label")
    def delete_page_label(self, page: PageInfo, label: str, *, cancel: CancelToken) -> LabelInfo:
        """Remove a label from a page"""
        operation, target = "delete page label", f"{label!r} from page {page.id}"
        response = self._send(endpoints.delete_label(page.id, label), cancel, operation=operation, target=target)
        ensure_status(response, (200, 204), operation=operation, target=target)
        return decode_model(response, LabelInfo, operation=operation, target=target)

    @_rate_limit_rounds("get page labels")
    def get_page_labels(self, page: PageInfo, prefix: str = "global", *, cancel: CancelToken) -> LabelInfo:
        """List labels of a page with the given prefix"""
        operation, target = "get page labels", page.id
        response = self._send(endpoints.page_labels(page.id, prefix), cancel, operation=operation, target=target)
        ensure_status(response, operation=operation, target=target)
        return decode_model(response, LabelInfo, operation=operation, target=target)

    # Users

    @_rate_limit_rounds("get user by name")
    def get_user_by_name(self, name: str, *, cancel: CancelToken) -> User:
        """Find a user by full name

        Tries the user search endpoint first, then the generic search that
        older servers use.

        Raises:
            UserNotFoundError: If neither search finds the user
        """
        operation, target = "get user by name", repr(name)

        response = self._send(endpoints.search_users(name), cancel, operation=operation, target=target)
        found = decode_optional(response, UserSearchResponse, operation=operation, target=target)

        if found is None or not found.results:
            response = self._send(endpoints.search_users_legacy(name), cancel, operation=operation, target=target)
            found = decode_optional(response, UserSearchResponse, operation=operation, target=target)

        if found is None or not found.results:
            raise UserNotFoundError(name, operation=operation)

        return found.results[0].user

    @_rate_limit_rounds("get current user")
    def get_current_user(self, *, cancel: CancelToken) -> User:
        return self._get_current_user(cancel)

    def _get_current_user(self, cancel: CancelToken) -> User:
        operation = "get current user"
        response = self._send(endpoints.current_user(), cancel, operation=operation)
        ensure_status(response, operation=operation)
        return decode_model(response, User, operation=operation)

    # Restrictions

    def restrict_page_updates(
        self, page: PageInfo, allowed_user: str, *, cancel: Optional[CancelToken] = None
    ) -> None:
        """Allow only ``allowed_user`` to edit the page"""
        if self.is_cloud:
            self.restrict_page_updates_cloud(page, allowed_user, cancel=cancel)
        else:
            self.restrict_page_updates_server(page, allowed_user, cancel=cancel)

    @_rate_limit_rounds("restrict page updates")
    def restrict_page_updates_cloud(self, page: PageInfo, allowed_user: str, *, cancel: CancelToken) -> None:
        """Restrict edits to the authenticated user (cloud has no user names)"""
        operation, target = "restrict page updates", page.id
        # Undecorated lookup: this method's own rounds already cover it
        user = self._get_current_user(cancel)

        request = endpoints.restrict_updates_cloud(page.id, user.account_id)
        response = self._send(request, cancel, operation=operation, target=target)
        ensure_status(response, operation=operation, target=target)
        response.close()
        logger.info(f"Restricted updates of page {page.id} to account {user.account_id}")

    @_rate_limit_rounds("restrict page updates")
    def restrict_page_updates_server(self, page: PageInfo, allowed_user: str, *, cancel: CancelToken) -> None:
        """Restrict edits through the JSON-RPC permissions call"""
        operation, target = "restrict page updates", page.id
        request = endpoints.restrict_updates_server(page.id, allowed_user)
        response = self._send(request, cancel, operation=operation, target=target)
        ensure_status(response, operation=operation, target=target)

        raw = response.text
        response.close()
        result = load_json(raw, schema="boolean", operation=operation, target=target)
        if result is not True:
            raise UnexpectedResponseError(
                f"'true' response expected, but {raw.strip()!r} encountered",
                operation=operation,
                target=target,
            )
        logger.info(f"Restricted updates of page {page.id} to {allowed_user}")
