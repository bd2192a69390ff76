from typing import Literal, Optional

from pydantic import BaseModel


class SitemapResponse(BaseModel):
    result: Literal["ok"] = "ok"
    market: str
    eds_host: str
    page_count: int
    pushed: bool
    sitemap_url: Optional[str] = None
    byte_count: int
    state: str = "done"
