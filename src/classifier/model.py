# src/classifier/model.py (Classification Layer)
from typing import List

from pydantic import BaseModel, ConfigDict, Field, model_validator

UNKNOWN_TYPE = "Unknown"
UNKNOWN_PATTERN = "/*"


class PageTypePattern(BaseModel):
    """A URL path glob (`*` = any characters) mapped to a page-type label."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    pattern: str
    type: str = Field(alias="name")

    @property
    def specificity(self) -> int:
        # '/artists/*' -> ['', 'artists', '*'] -> 3
        return len(self.pattern.split("/"))


class ClassifiedUrl(BaseModel):
    model_config = ConfigDict(frozen=True)

    loc: str
    type: str
    pattern: str


class PageTypeGroup(BaseModel):
    """
    All sitemap URLs of one page type, in sitemap order.
    `total_count` always equals `len(urls)`.
    """
    type: str
    pattern: str
    urls: List[str] = Field(default_factory=list)
    total_count: int = 0

    @model_validator(mode="before")
    @classmethod
    def _fill_total_count(cls, data):
        if isinstance(data, dict) and "total_count" not in data:
            data = {**data, "total_count": len(data.get("urls") or [])}
        return data

    @model_validator(mode="after")
    def _check_total_count(self) -> "PageTypeGroup":
        if self.total_count != len(self.urls):
            raise ValueError(
                f"total_count ({self.total_count}) does not match number of urls ({len(self.urls)})"
            )
        return self
