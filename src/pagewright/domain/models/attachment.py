"""Attachment models, including the two shapes of the upload response.

The attachment upload endpoints answer either with an "extended" envelope
(a ``results`` list plus shared ``_links``) or with a "short" bare attachment
object, depending on server version. Both are modeled here; which one a body
is gets decided by trial decode in the response interpreter.
"""

from dataclasses import dataclass
from typing import List, Union

from pydantic import BaseModel, ConfigDict, Field


class AttachmentMetadata(BaseModel):
    comment: str = ""


class AttachmentLinks(BaseModel):
    context: str = ""
    download: str = ""


class AttachmentInfo(BaseModel):
    """Attachment on a page"""

    model_config = ConfigDict(populate_by_name=True)

    filename: str = Field("", alias="title")
    id: str = ""
    metadata: AttachmentMetadata = Field(default_factory=AttachmentMetadata)
    links: AttachmentLinks = Field(default_factory=AttachmentLinks, alias="_links")

    def with_context(self, context: str) -> "AttachmentInfo":
        """Copy with `_links.context` filled in when it is missing"""
        if self.links.context or not context:
            return self
        links = self.links.model_copy(update={"context": context})
        return self.model_copy(update={"links": links})

    @property
    def is_empty(self) -> bool:
        """True when nothing identifying was decoded"""
        return not self.id and not self.filename


class SharedLinks(BaseModel):
    context: str = ""


class AttachmentListResponse(BaseModel):
    """Extended response body: results plus shared links"""

    model_config = ConfigDict(populate_by_name=True)

    results: List[AttachmentInfo] = Field(default_factory=list)
    links: SharedLinks = Field(default_factory=SharedLinks, alias="_links")

    def attachments(self) -> List[AttachmentInfo]:
        """Results with the shared context back-filled"""
        return [info.with_context(self.links.context) for info in self.results]


@dataclass(frozen=True)
class ExtendedAttachmentPayload:
    """Upload answered with the extended envelope"""

    response: AttachmentListResponse

    @property
    def attachment(self) -> AttachmentInfo:
        return self.response.attachments()[0]


@dataclass(frozen=True)
class ShortAttachmentPayload:
    """Upload answered with a bare attachment object"""

    attachment: AttachmentInfo


AttachmentPayload = Union[ExtendedAttachmentPayload, ShortAttachmentPayload]
