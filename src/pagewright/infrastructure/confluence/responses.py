"""Turn Confluence responses into typed results.

Statuses are sorted into success, "absence is a valid answer" (404 on
lookups) and hard errors, which go to ``classify_error_response``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Collection, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from pagewright.domain.models.attachment import (
    AttachmentInfo,
    AttachmentListResponse,
    AttachmentPayload,
    ExtendedAttachmentPayload,
    ShortAttachmentPayload,
)
from pagewright.infrastructure.confluence.errors import (
    DecodeError,
    HTTPStatusError,
    classify_error_response,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

OK = (200,)


def ensure_status(
    response: requests.Response,
    accepted: Collection[int] = OK,
    *,
    operation: Optional[str] = None,
    target: Optional[str] = None,
) -> requests.Response:
    """Return the response if its status is accepted, else raise the classified error.

    A success status the endpoint does not answer with (201 where 200 is
    expected, say) is reported as ``HTTPStatusError`` too.
    """
    status = response.status_code
    if status in accepted:
        return response
    if 200 <= status < 300:
        raise HTTPStatusError(
            status,
            response.reason or "",
            _body_text(response),
            operation=operation,
            target=target,
        )
    raise classify_error_response(response, operation=operation, target=target)


def _body_text(response: requests.Response) -> str:
    try:
        return response.text
    finally:
        response.close()


def load_json(
    raw: str,
    *,
    schema: str,
    operation: Optional[str] = None,
    target: Optional[str] = None,
) -> Any:
    """Parse a JSON body; an empty body parses as None."""
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        raise DecodeError(schema, raw, e, operation=operation, target=target) from e


def decode_model(
    response: requests.Response,
    model: Type[M],
    *,
    operation: Optional[str] = None,
    target: Optional[str] = None,
) -> M:
    """Decode a successful response body into ``model``.

    An empty body decodes as the model's defaults, so list endpoints
    answering with nothing yield an empty result.
    """
    raw = _body_text(response)
    data = load_json(raw, schema=model.__name__, operation=operation, target=target)
    try:
        return model.model_validate(data if data is not None else {})
    except ValidationError as e:
        raise DecodeError(model.__name__, raw, e, operation=operation, target=target) from e


def decode_optional(
    response: requests.Response,
    model: Type[M],
    *,
    operation: Optional[str] = None,
    target: Optional[str] = None,
) -> Optional[M]:
    """Like ``decode_model``, but a 404 means "no result" rather than an error."""
    if response.status_code == 404:
        _body_text(response)
        logger.debug(f"{operation or 'lookup'} {target or ''}: 404, treating as not found")
        return None
    ensure_status(response, operation=operation, target=target)
    return decode_model(response, model, operation=operation, target=target)


def resolve_attachment_payload(
    raw: str,
    *,
    operation: Optional[str] = None,
    target: Optional[str] = None,
) -> AttachmentPayload:
    """Decide which of the two upload response shapes ``raw`` is.

    The extended envelope is tried first. If it does not fit, or fits with no
    results, the same body is decoded as a short (bare attachment) object.

    Raises:
        DecodeError: If neither shape fits, or the short shape decodes to an
            attachment with neither id nor title
    """
    data = load_json(raw, schema="extended response", operation=operation, target=target)

    try:
        extended = AttachmentListResponse.model_validate(data)
    except ValidationError as e:
        logger.debug(f"Attachment response is not in extended format: {e}")
    else:
        if extended.results:
            return ExtendedAttachmentPayload(extended)

    try:
        short = AttachmentInfo.model_validate(data)
    except ValidationError as e:
        raise DecodeError("short response", raw, e, operation=operation, target=target) from e

    if short.is_empty:
        raise DecodeError(
            "short response",
            raw,
            ValueError("attachment has neither id nor title"),
            operation=operation,
            target=target,
        )
    return ShortAttachmentPayload(short)


def decode_attachment_payload(
    response: requests.Response,
    *,
    operation: Optional[str] = None,
    target: Optional[str] = None,
) -> AttachmentInfo:
    """Decode an attachment upload response of either shape."""
    raw = _body_text(response)
    payload = resolve_attachment_payload(raw, operation=operation, target=target)
    if isinstance(payload, ShortAttachmentPayload):
        logger.debug(f"{operation or 'attachment upload'} answered with short response format")
    return payload.attachment
