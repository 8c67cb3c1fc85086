"""Domain models for Confluence content."""

from pagewright.domain.models.attachment import (
    AttachmentInfo,
    AttachmentListResponse,
    AttachmentPayload,
    ExtendedAttachmentPayload,
    ShortAttachmentPayload,
)
from pagewright.domain.models.label import Label, LabelInfo
from pagewright.domain.models.page import (
    PageAncestor,
    PageInfo,
    PageSearchResponse,
    PageVersion,
    SpaceInfo,
)
from pagewright.domain.models.user import User, UserSearchResponse

__all__ = [
    "AttachmentInfo",
    "AttachmentListResponse",
    "AttachmentPayload",
    "ExtendedAttachmentPayload",
    "ShortAttachmentPayload",
    "Label",
    "LabelInfo",
    "PageAncestor",
    "PageInfo",
    "PageSearchResponse",
    "PageVersion",
    "SpaceInfo",
    "User",
    "UserSearchResponse",
]
