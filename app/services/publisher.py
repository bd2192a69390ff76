"""Two-phase push of the generated sitemap to the EDS CDN via the Admin API."""

import logging

import httpx

from app.services.markets import HostDescriptor

logger = logging.getLogger(__name__)

ADMIN_API_BASE = "https://admin.hlx.page"
SITEMAP_PATH = "/sitemap.xml"


class PublishError(RuntimeError):
    """Raised when either Admin API step returns a non-success status."""

    def __init__(self, step: str, status_code: int, url: str) -> None:
        super().__init__(f"Admin API {step} failed ({status_code}): {url}")
        self.step = step
        self.status_code = status_code
        self.url = url


def _admin_url(admin_base: str, operation: str, host: HostDescriptor) -> str:
    return f"{admin_base.rstrip('/')}/{operation}/{host.org}/{host.repo}/{host.branch}{SITEMAP_PATH}"


async def push_sitemap_to_cdn(
    client: httpx.AsyncClient,
    host: HostDescriptor,
    xml: str,
    eds_token: str,
    admin_base: str = ADMIN_API_BASE,
) -> None:
    """Stage *xml* as the source of ``/sitemap.xml`` and publish it.

    1. ``PUT /source/...``    – upload the XML (replaces any staged copy).
    2. ``POST /publish/...``  – promote the staged copy to the live CDN.

    The publish step is skipped when staging fails.  A failed publish leaves
    the staged content in place; re-running the whole push is safe.

    Raises:
        PublishError: if either step returns a non-success status.
        httpx.HTTPError: on network errors.
    """
    auth_header = {"Authorization": f"token {eds_token}"}

    source_url = _admin_url(admin_base, "source", host)
    source_resp = await client.put(
        source_url,
        content=xml.encode("utf-8"),
        headers={**auth_header, "Content-Type": "text/xml; charset=utf-8"},
    )
    if not source_resp.is_success:
        raise PublishError("source PUT", source_resp.status_code, source_url)
    logger.debug("Staged sitemap at %s", source_url)

    publish_url = _admin_url(admin_base, "publish", host)
    publish_resp = await client.post(publish_url, headers=auth_header)
    if not publish_resp.is_success:
        raise PublishError("publish POST", publish_resp.status_code, publish_url)
    logger.debug("Published sitemap at %s", publish_url)
