"""Label models"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class Label(BaseModel):
    id: str = ""
    prefix: str = ""
    name: str = ""


class LabelInfo(BaseModel):
    """Label listing returned by the label endpoints"""

    model_config = ConfigDict(populate_by_name=True)

    labels: List[Label] = Field(default_factory=list, alias="results")
    size: int = 0

    @property
    def names(self) -> List[str]:
        return [label.name for label in self.labels]
