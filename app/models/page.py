from typing import List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PageEntry(BaseModel):
    """One row of a market's content index."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    path: str
    last_modified: Optional[str] = Field(default=None, alias="lastModified")
    title: Optional[str] = None

    @field_validator("last_modified", mode="before")
    @classmethod
    def _coerce_last_modified(cls, value):
        # Some indexes report epoch seconds instead of a date string
        if value is None or isinstance(value, str):
            return value
        return str(value)


class ExplicitEntry(BaseModel):
    """A hand-authored sitemap entry; *loc* is a fully-qualified URL."""

    loc: Optional[str] = None
    changefreq: Optional[str] = None
    priority: Optional[str] = None

    @field_validator("loc", "changefreq", "priority", mode="before")
    @classmethod
    def _coerce_to_str(cls, value):
        if value is None or isinstance(value, str):
            return value
        return str(value)


class SitemapConfig(BaseModel):
    """Authored include/exclude policy and explicit entries for one market."""

    model_config = ConfigDict(populate_by_name=True)

    include: List[str] = []
    exclude: List[str] = []
    site_map: List[ExplicitEntry] = Field(default=[], alias="siteMap")


class UrlEntry(NamedTuple):
    loc: str
    lastmod: Optional[str] = None
    changefreq: Optional[str] = None
    priority: Optional[str] = None
