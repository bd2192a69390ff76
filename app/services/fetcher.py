"""Content-index and sitemap-config retrieval from a market's EDS host."""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from app.models.page import PageEntry, SitemapConfig

logger = logging.getLogger(__name__)

QUERY_INDEX_PAGE_SIZE = 256


class UpstreamFetchError(RuntimeError):
    """Raised when the content index or sitemap config cannot be retrieved.

    Covers non-success statuses as well as bodies that are not JSON or do not
    have the expected shape.
    """

    def __init__(
        self,
        resource: str,
        status_code: int,
        url: str,
        reason: Optional[str] = None,
    ) -> None:
        if reason:
            message = f"{resource} returned an invalid response ({status_code}, {reason}): {url}"
        else:
            message = f"{resource} fetch failed ({status_code}): {url}"
        super().__init__(message)
        self.resource = resource
        self.status_code = status_code
        self.url = url
        self.reason = reason


async def _get_json(
    client: httpx.AsyncClient,
    resource: str,
    url: str,
    params: Optional[Dict[str, Any]] = None,
) -> tuple[Any, httpx.Response]:
    """GET *url* and decode the JSON body.

    Returns the decoded body together with the response it came from.

    Raises:
        UpstreamFetchError: on any non-2xx status or a body that is not JSON.
        httpx.HTTPError: on network errors.
    """
    resp = await client.get(url, params=params)
    if not resp.is_success:
        raise UpstreamFetchError(resource, resp.status_code, str(resp.request.url))
    try:
        return resp.json(), resp
    except ValueError as exc:
        raise UpstreamFetchError(
            resource, resp.status_code, str(resp.request.url), reason="body is not JSON"
        ) from exc


async def fetch_page_index(
    client: httpx.AsyncClient,
    eds_host: str,
    page_size: int = QUERY_INDEX_PAGE_SIZE,
) -> List[PageEntry]:
    """Fetch every published page from the EDS query index.

    Pages are requested sequentially with ``limit``/``offset`` until either an
    empty page comes back or the accumulated row count reaches the reported
    ``total``.  Any failing page aborts the whole fetch.  Rows without a
    string ``path`` can never match a glob, so they are dropped here.
    """
    if page_size <= 0:
        raise ValueError("page_size must be positive.")

    url = f"https://{eds_host}/query-index.json"
    pages: List[PageEntry] = []
    offset = 0

    while True:
        payload, resp = await _get_json(
            client, "Query index", url, params={"limit": page_size, "offset": offset}
        )
        data = payload.get("data") if isinstance(payload, dict) else None
        rows = data if isinstance(data, list) else []
        if not rows:
            break

        for row in rows:
            if not isinstance(row, dict) or not isinstance(row.get("path"), str):
                logger.debug("Query index: skipping row without a path: %r", row)
                continue
            try:
                pages.append(PageEntry.model_validate(row))
            except ValidationError as exc:
                raise UpstreamFetchError(
                    "Query index", resp.status_code, str(resp.request.url), reason="malformed row"
                ) from exc

        # Offset follows the rows the index returned, including skipped ones
        offset += len(rows)
        logger.debug("Query index: fetched %d rows (offset=%d)", len(rows), offset)

        # A missing or zero total means the index did not report one; stop here
        try:
            total = int(payload.get("total") or 0) or offset
        except (TypeError, ValueError) as exc:
            raise UpstreamFetchError(
                "Query index", resp.status_code, str(resp.request.url), reason="invalid total"
            ) from exc
        if offset >= total:
            break

    return pages


async def fetch_sitemap_config(client: httpx.AsyncClient, eds_host: str) -> SitemapConfig:
    """Fetch the market's ``sitemap.json`` include/exclude/siteMap configuration."""
    url = f"https://{eds_host}/sitemap.json"
    payload, resp = await _get_json(client, "sitemap.json", url)
    try:
        return SitemapConfig.model_validate(payload)
    except ValidationError as exc:
        raise UpstreamFetchError(
            "sitemap.json", resp.status_code, str(resp.request.url), reason="unexpected shape"
        ) from exc
