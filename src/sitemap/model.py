# src/sitemap/model.py (Sitemap Layer)
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class SitemapUrl(BaseModel):
    """One <url> entry of a sitemap. Only `loc` is used by classification."""
    model_config = ConfigDict(frozen=True)

    loc: str
    lastmod: Optional[str] = None
    priority: Optional[str] = None
    changefreq: Optional[str] = None

    @field_validator("loc", mode="before")
    @classmethod
    def _strip_loc(cls, v) -> str:
        if v is None:
            raise ValueError("loc is required")
        s = str(v).strip()
        if not s:
            raise ValueError("loc cannot be empty")
        return s
