"""Sitemap generation run: fetch → filter → build → publish (or dry-run)."""

import asyncio
import enum
import logging
from typing import List, NamedTuple, Optional, Tuple

import httpx

from app.core.config import Settings, settings as default_settings
from app.models.page import PageEntry, SitemapConfig
from app.services.fetcher import fetch_page_index, fetch_sitemap_config
from app.services.globs import filter_pages
from app.services.markets import get_market_config, parse_eds_host
from app.services.publisher import push_sitemap_to_cdn
from app.services.sitemap import build_sitemap_xml, derive_site_base

logger = logging.getLogger(__name__)


class MissingCredentialError(ValueError):
    """Raised before any network activity when publishing without a token."""


class RunState(str, enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    FILTERING = "filtering"
    BUILDING = "building"
    PUBLISHING = "publishing"
    DRY_RUN_COMPLETE = "dry-run-complete"
    DONE = "done"
    FAILED = "failed"


class SitemapRunResult(NamedTuple):
    market: str
    eds_host: str
    page_count: int
    pushed: bool
    sitemap_url: Optional[str]
    byte_count: int
    state: RunState
    xml: str


def is_push_enabled(value: object = True) -> bool:
    """Return *False* only for ``False`` or a value whose text is exactly ``"false"``."""
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    return str(value) != "false"


class SitemapGenerator:
    """One sitemap generation run for a single market.

    Instances are single-use and hold no state shared with other runs.
    """

    def __init__(
        self,
        market: str,
        eds_token: Optional[str] = None,
        push: object = True,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or default_settings
        self.market = market or self.settings.DEFAULT_MARKET
        self.eds_token = eds_token
        self.push = is_push_enabled(push)
        self.eds_host = get_market_config(self.market).eds_host
        self.host = parse_eds_host(self.eds_host)
        self.state = RunState.IDLE

    def _transition(self, state: RunState) -> None:
        logger.debug("sitemap-generator: %s -> %s", self.state.value, state.value)
        self.state = state

    async def run(self, client: Optional[httpx.AsyncClient] = None) -> SitemapRunResult:
        """Execute the run, opening an HTTP client unless one is supplied.

        Raises:
            MissingCredentialError: publishing requested without a token.
            UpstreamFetchError: content index or sitemap config failed.
            PublishError: staging or publishing failed.
            httpx.HTTPError: on network errors.
        """
        if self.push and not self.eds_token:
            self._transition(RunState.FAILED)
            raise MissingCredentialError(
                "EDS_TOKEN is required when push=true. Pass push=false for a dry-run."
            )

        logger.info(
            "sitemap-generator: market=%s, host=%s, push=%s",
            self.market,
            self.eds_host,
            self.push,
        )

        try:
            if client is not None:
                result = await self._execute(client)
            else:
                async with httpx.AsyncClient(timeout=self.settings.HTTP_TIMEOUT) as own_client:
                    result = await self._execute(own_client)
        except Exception:
            self._transition(RunState.FAILED)
            raise

        self._transition(RunState.DONE)
        return result._replace(state=self.state)

    async def _fetch(self, client: httpx.AsyncClient) -> Tuple[List[PageEntry], SitemapConfig]:
        """Fetch the content index and sitemap config concurrently.

        The first failure cancels the other fetch before it is re-raised.
        """
        index_task = asyncio.create_task(
            fetch_page_index(client, self.eds_host, self.settings.QUERY_INDEX_PAGE_SIZE)
        )
        config_task = asyncio.create_task(fetch_sitemap_config(client, self.eds_host))

        done, pending = await asyncio.wait(
            {index_task, config_task}, return_when=asyncio.FIRST_EXCEPTION
        )
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        for task in done:
            if task.exception() is not None:
                raise task.exception()
        return index_task.result(), config_task.result()

    async def _execute(self, client: httpx.AsyncClient) -> SitemapRunResult:
        self._transition(RunState.FETCHING)
        pages, config = await self._fetch(client)

        self._transition(RunState.FILTERING)
        filtered = filter_pages(pages, config.include, config.exclude)

        self._transition(RunState.BUILDING)
        site_base = derive_site_base(self.eds_host, config.site_map)
        xml = build_sitemap_xml(site_base, filtered, config.site_map)
        byte_count = len(xml.encode("utf-8"))
        logger.info(
            "sitemap-generator: %d pages -> sitemap.xml (%d bytes)",
            len(filtered),
            byte_count,
            extra={"market": self.market, "site_base": site_base},
        )

        if self.push:
            self._transition(RunState.PUBLISHING)
            await push_sitemap_to_cdn(
                client,
                self.host,
                xml,
                self.eds_token,
                admin_base=self.settings.ADMIN_API_BASE,
            )
            logger.info(
                "sitemap-generator: pushed sitemap.xml to CDN (%s/%s/%s)",
                self.host.org,
                self.host.repo,
                self.host.branch,
            )
        else:
            self._transition(RunState.DRY_RUN_COMPLETE)

        return SitemapRunResult(
            market=self.market,
            eds_host=self.eds_host,
            page_count=len(filtered),
            pushed=self.push,
            sitemap_url=f"https://{self.eds_host}/sitemap.xml" if self.push else None,
            byte_count=byte_count,
            state=self.state,
            xml=xml,
        )

