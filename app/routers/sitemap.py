import logging

import httpx
from fastapi import APIRouter, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings
from app.models.sitemap_request import SitemapRequest
from app.models.sitemap_response import SitemapResponse
from app.services.datalog import log_request
from app.services.generator import MissingCredentialError, SitemapGenerator

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@router.post(
    "/sitemap-generator",
    response_model=SitemapResponse,
    summary="Generate and publish a market's sitemap.xml",
    description=(
        "Fetches every published page from the market's query index, applies the "
        "include/exclude patterns from its `sitemap.json`, merges the authored "
        "`siteMap` entries, and pushes the resulting `/sitemap.xml` to the CDN "
        "through the Admin API.  Pass `push=false` for a dry-run."
    ),
)
@limiter.limit(settings.SITEMAP_RATE_LIMIT)
async def generate_sitemap_endpoint(request: Request, body: SitemapRequest) -> SitemapResponse:
    """Build the sitemap for *market* and, unless dry-running, publish it."""
    log_request("sitemap-generator", method=request.method, market=body.market)

    generator = SitemapGenerator(
        body.market,
        eds_token=body.eds_token or settings.EDS_TOKEN,
        push=body.push,
    )

    try:
        result = await generator.run()
    except MissingCredentialError as exc:
        logger.warning("Sitemap request rejected: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except (httpx.HTTPError, RuntimeError) as exc:
        logger.error("sitemap-generator error for market %s: %s", generator.market, exc)
        raise HTTPException(status_code=500, detail=str(exc))

    return SitemapResponse(
        market=result.market,
        eds_host=result.eds_host,
        page_count=result.page_count,
        pushed=result.pushed,
        sitemap_url=result.sitemap_url,
        byte_count=result.byte_count,
        state=result.state.value,
    )
