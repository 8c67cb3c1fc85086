"""Page and space models - mirror the Confluence content JSON"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class PageVersion(BaseModel):
    """Version block of a page"""

    number: int = 0
    message: str = ""


class PageAncestor(BaseModel):
    """Ancestor reference (root first)"""

    id: str = ""
    title: str = ""


class WebLinks(BaseModel):
    """`_links` block with the web UI path"""

    model_config = ConfigDict(populate_by_name=True)

    full: str = Field("", alias="webui")


class PageInfo(BaseModel):
    """Page or blog post"""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    title: str = ""
    type: str = ""
    version: PageVersion = Field(default_factory=PageVersion)
    ancestors: List[PageAncestor] = Field(default_factory=list)
    links: WebLinks = Field(default_factory=WebLinks, alias="_links")

    @property
    def parent(self) -> "PageAncestor | None":
        """Direct parent (last ancestor), if any"""
        return self.ancestors[-1] if self.ancestors else None


class SpaceInfo(BaseModel):
    """Space with its home page expanded"""

    model_config = ConfigDict(populate_by_name=True)

    id: int = 0
    key: str = ""
    name: str = ""
    homepage: PageInfo = Field(default_factory=PageInfo)
    links: WebLinks = Field(default_factory=WebLinks, alias="_links")


class PageSearchResponse(BaseModel):
    """Content search result listing"""

    results: List[PageInfo] = Field(default_factory=list)
