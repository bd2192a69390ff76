"""Tests for app.services.generator orchestration.

The content index, sitemap config and Admin API are all served by a single
``httpx.MockTransport`` routing on host and path.
"""

import asyncio
from xml.etree import ElementTree

import httpx
import pytest

from app.core.config import Settings
from app.services.fetcher import UpstreamFetchError
from app.services.generator import (
    MissingCredentialError,
    RunState,
    SitemapGenerator,
    is_push_enabled,
)
from app.services.publisher import PublishError

_US_HOST = "main--qsr-us--org.aem.live"

_SITEMAP_CONFIG = {
    "include": ["/", "/menu/**"],
    "exclude": ["/drafts/**", "/**?*"],
    "siteMap": [{"loc": "https://www.qsr.com/", "changefreq": "daily", "priority": "1.0"}],
}

_INDEX_ROWS = [
    {"path": "/", "lastModified": "2025-01-01"},
    {"path": "/menu/a", "lastModified": "2025-02-01"},
    {"path": "/menu/a?x=1"},
    {"path": "/drafts/b"},
]


class FakeUpstream:
    """Routes requests to canned responses and records every call."""

    def __init__(self, index_status=200, config_status=200, source_status=200, publish_status=200):
        self.index_status = index_status
        self.config_status = config_status
        self.source_status = source_status
        self.publish_status = publish_status
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.host, request.url.path))
        if request.url.path == "/query-index.json":
            offset = int(request.url.params["offset"])
            limit = int(request.url.params["limit"])
            rows = _INDEX_ROWS[offset : offset + limit]
            return httpx.Response(self.index_status, json={"data": rows, "total": len(_INDEX_ROWS)})
        if request.url.path == "/sitemap.json":
            return httpx.Response(self.config_status, json=_SITEMAP_CONFIG)
        if request.url.path.startswith("/source/"):
            return httpx.Response(self.source_status)
        if request.url.path.startswith("/publish/"):
            return httpx.Response(self.publish_status)
        return httpx.Response(404)

    @property
    def admin_calls(self):
        return [c for c in self.calls if c[1] == "admin.hlx.page"]


def _run(generator: SitemapGenerator, upstream: FakeUpstream):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
            return await generator.run(client)

    return asyncio.run(go())


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **{"QUERY_INDEX_PAGE_SIZE": 2, **overrides})


# ---------------------------------------------------------------------------
# is_push_enabled
# ---------------------------------------------------------------------------

class TestIsPushEnabled:
    @pytest.mark.parametrize("value", [True, "true", "True", "FALSE", "0", "no", "", None, 1])
    def test_enabled(self, value):
        assert is_push_enabled(value) is True

    @pytest.mark.parametrize("value", [False, "false"])
    def test_disabled(self, value):
        assert is_push_enabled(value) is False


# ---------------------------------------------------------------------------
# Successful runs
# ---------------------------------------------------------------------------

class TestSitemapGeneratorRun:
    def test_dry_run_builds_without_publishing(self):
        upstream = FakeUpstream()
        generator = SitemapGenerator("us", push="false", settings=_settings())
        result = _run(generator, upstream)

        assert result.market == "us"
        assert result.eds_host == _US_HOST
        assert result.page_count == 2
        assert result.pushed is False
        assert result.sitemap_url is None
        assert result.byte_count == len(result.xml.encode("utf-8"))
        assert upstream.admin_calls == []
        assert generator.state is RunState.DONE
        assert result.state is RunState.DONE

    def test_dry_run_xml_merges_explicit_and_filtered_pages(self):
        result = _run(SitemapGenerator("us", push=False, settings=_settings()), FakeUpstream())

        root = ElementTree.fromstring(result.xml)
        ns = {"sm": "http://www.sitemaps.org/schemas/sitemap/0.9"}
        locs = [el.text for el in root.iterfind("sm:url/sm:loc", ns)]
        assert locs == ["https://www.qsr.com/", "https://www.qsr.com/menu/a"]
        # The root page is shadowed by the authored entry: no lastmod carried over
        assert "2025-01-01" not in result.xml
        assert "<lastmod>2025-02-01</lastmod>" in result.xml

    def test_publish_run_pushes_to_cdn(self):
        upstream = FakeUpstream()
        generator = SitemapGenerator("uk", eds_token="secret", settings=_settings())
        result = _run(generator, upstream)

        assert result.pushed is True
        assert result.sitemap_url == "https://main--qsr-uk--org.aem.live/sitemap.xml"
        assert upstream.admin_calls == [
            ("PUT", "admin.hlx.page", "/source/org/qsr-uk/main/sitemap.xml"),
            ("POST", "admin.hlx.page", "/publish/org/qsr-uk/main/sitemap.xml"),
        ]
        assert generator.state is RunState.DONE
        assert result.state is RunState.DONE

    def test_unknown_market_uses_baseline_host(self):
        result = _run(SitemapGenerator("zz", push=False, settings=_settings()), FakeUpstream())
        assert result.eds_host == _US_HOST

    def test_empty_market_uses_default_market(self):
        generator = SitemapGenerator("", push=False, settings=_settings(DEFAULT_MARKET="jp"))
        assert generator.market == "jp"
        assert generator.eds_host == "main--qsr-jp--org.aem.live"


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestSitemapGeneratorFailures:
    def test_missing_token_fails_before_any_request(self):
        upstream = FakeUpstream()
        generator = SitemapGenerator("us", eds_token=None, push=True, settings=_settings())

        with pytest.raises(MissingCredentialError):
            _run(generator, upstream)

        assert upstream.calls == []
        assert generator.state is RunState.FAILED

    def test_missing_token_allowed_for_dry_run(self):
        result = _run(SitemapGenerator("us", push="false", settings=_settings()), FakeUpstream())
        assert result.pushed is False

    def test_index_failure_aborts_run(self):
        upstream = FakeUpstream(index_status=500)
        generator = SitemapGenerator("us", eds_token="secret", settings=_settings())

        with pytest.raises(UpstreamFetchError):
            _run(generator, upstream)

        assert upstream.admin_calls == []
        assert generator.state is RunState.FAILED

    def test_config_failure_aborts_run(self):
        upstream = FakeUpstream(config_status=404)
        generator = SitemapGenerator("us", eds_token="secret", settings=_settings())

        with pytest.raises(UpstreamFetchError, match="sitemap.json fetch failed"):
            _run(generator, upstream)

        assert upstream.admin_calls == []

    def test_stage_failure_does_not_publish(self):
        upstream = FakeUpstream(source_status=403)
        generator = SitemapGenerator("us", eds_token="secret", settings=_settings())

        with pytest.raises(PublishError):
            _run(generator, upstream)

        assert [c[0] for c in upstream.admin_calls] == ["PUT"]
        assert generator.state is RunState.FAILED

    def test_publish_failure_is_reported(self):
        upstream = FakeUpstream(publish_status=502)

        with pytest.raises(PublishError, match=r"publish POST failed \(502\)"):
            _run(SitemapGenerator("us", eds_token="secret", settings=_settings()), upstream)


# ---------------------------------------------------------------------------
# Upstream edge cases
# ---------------------------------------------------------------------------

class TestSitemapGeneratorUpstreamEdgeCases:
    def test_index_row_without_path_is_ignored(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/query-index.json":
                return httpx.Response(200, json={"data": [{"path": "/"}, {"title": "no path"}], "total": 2})
            return httpx.Response(200, json={"include": ["/"], "exclude": []})

        async def go():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await SitemapGenerator("us", push=False, settings=_settings()).run(client)

        result = asyncio.run(go())
        assert result.page_count == 1
        assert result.state is RunState.DONE

    def test_failed_fetch_cancels_the_other_fetch(self):
        cancelled = []

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/query-index.json":
                return httpx.Response(500)
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.append(request.url.path)
                raise
            return httpx.Response(200, json=_SITEMAP_CONFIG)

        async def go():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                await SitemapGenerator("us", push=False, settings=_settings()).run(client)

        with pytest.raises(UpstreamFetchError, match=r"Query index fetch failed \(500\)"):
            asyncio.run(asyncio.wait_for(go(), timeout=5))

        assert cancelled == ["/sitemap.json"]
