"""User models"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """Confluence user (cloud uses accountId, server uses userKey)"""

    model_config = ConfigDict(populate_by_name=True)

    account_id: str = Field("", alias="accountId")
    user_key: str = Field("", alias="userKey")


class UserSearchResult(BaseModel):
    user: User = Field(default_factory=User)


class UserSearchResponse(BaseModel):
    results: List[UserSearchResult] = Field(default_factory=list)
