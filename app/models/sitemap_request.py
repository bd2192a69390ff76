from typing import Any, Optional

from pydantic import BaseModel, Field

from app.core.config import settings


class SitemapRequest(BaseModel):
    market: str = Field(
        default_factory=lambda: settings.DEFAULT_MARKET,
        description="Market code (us, uk, jp). Unknown codes fall back to the default market.",
    )
    eds_token: Optional[str] = Field(
        default=None,
        description="Admin API token. Falls back to the EDS_TOKEN setting; required unless push is disabled.",
    )
    push: Any = True
    """Whether to stage and publish the generated sitemap.

    Any value textually equal to ``"false"`` (or the boolean ``false``)
    turns the run into a dry-run: the sitemap is built and measured but
    nothing is written to the CDN.  Every other value, including ``0`` and
    ``null``, keeps publishing on; the raw value is passed through unchanged.
    """
