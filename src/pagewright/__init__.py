"""pagewright - Confluence REST/JSON-RPC client with rate-limit resilience"""

from pagewright.domain.models import (
    AttachmentInfo,
    Label,
    LabelInfo,
    PageInfo,
    SpaceInfo,
    User,
)
from pagewright.infrastructure.confluence.client import ConfluenceClient
from pagewright.infrastructure.confluence.errors import (
    ConfluenceError,
    DecodeError,
    HTTPStatusError,
    NotFoundError,
    OperationCancelledError,
    RateLimitExhaustedError,
    TransportError,
    UnauthorizedError,
    UnexpectedResponseError,
    UserNotFoundError,
)
from pagewright.infrastructure.retry import CancelToken, RetryPolicy

__version__ = "0.1.0"

__all__ = [
    "AttachmentInfo",
    "CancelToken",
    "ConfluenceClient",
    "ConfluenceError",
    "DecodeError",
    "HTTPStatusError",
    "Label",
    "LabelInfo",
    "NotFoundError",
    "OperationCancelledError",
    "PageInfo",
    "RateLimitExhaustedError",
    "RetryPolicy",
    "SpaceInfo",
    "TransportError",
    "UnauthorizedError",
    "UnexpectedResponseError",
    "User",
    "UserNotFoundError",
]
