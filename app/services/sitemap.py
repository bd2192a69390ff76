"""Sitemap XML generation.

Explicit entries authored in a market's ``sitemap.json`` are merged with the
pages discovered in its content index.  Authored entries come first and keep
their ``changefreq``/``priority``; a discovered page whose path is already
covered by an authored entry is dropped entirely (its ``lastModified`` is not
carried over).

See https://www.sitemaps.org/protocol.html
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence
from urllib.parse import ParseResult, urlparse

from app.models.page import ExplicitEntry, PageEntry, UrlEntry

logger = logging.getLogger(__name__)

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"

_XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

# Ampersand must be replaced first so later entities are not double-escaped
_XML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)

_DEFAULT_PORTS = {"http": 80, "https": 443}


def escape_xml(value: object) -> str:
    """Escape XML special characters in *value* (coerced to ``str``)."""
    text = str(value)
    for char, entity in _XML_ESCAPES:
        text = text.replace(char, entity)
    return text


def _parse_absolute_url(loc: Optional[str]) -> ParseResult:
    """Parse *loc* as an absolute URL.

    Raises:
        ValueError: if *loc* is not a string or lacks a scheme or host.
    """
    if not isinstance(loc, str):
        raise ValueError(f"URL must be a string, got {type(loc).__name__}.")
    parsed = urlparse(loc.strip())
    if not parsed.scheme or not parsed.hostname:
        raise ValueError(f"Not an absolute URL: {loc!r}")
    return parsed


def _origin(parsed: ParseResult) -> str:
    """Return ``scheme://host[:port]`` for *parsed*, omitting default ports."""
    scheme = parsed.scheme.lower()
    origin = f"{scheme}://{parsed.hostname}"
    port = parsed.port
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        origin = f"{origin}:{port}"
    return origin


def derive_site_base(eds_host: str, site_map: Optional[Sequence[ExplicitEntry]]) -> str:
    """Return the public origin used to build absolute sitemap locations.

    The origin of the first authored entry wins, so a vanity domain can
    override the internal EDS host.  Falls back to ``https://<eds_host>``.
    """
    if site_map:
        try:
            return _origin(_parse_absolute_url(site_map[0].loc))
        except ValueError:
            pass
    return f"https://{eds_host}"


def merge_url_entries(
    site_base: str,
    pages: Iterable[PageEntry],
    explicit_entries: Iterable[ExplicitEntry] = (),
) -> List[UrlEntry]:
    """Merge authored entries and discovered pages into one entry per path."""
    explicit_by_path: Dict[str, ExplicitEntry] = {}
    for entry in explicit_entries:
        try:
            parsed = _parse_absolute_url(entry.loc)
        except ValueError as exc:
            logger.warning("Skipping sitemap entry with invalid loc: %s", exc)
            continue
        explicit_by_path[parsed.path or "/"] = entry

    entries: List[UrlEntry] = [
        UrlEntry(
            loc=entry.loc,
            changefreq=entry.changefreq or None,
            priority=entry.priority or None,
        )
        for entry in explicit_by_path.values()
    ]

    seen = set(explicit_by_path)
    for page in pages:
        if page.path in seen:
            continue
        seen.add(page.path)
        entries.append(UrlEntry(loc=f"{site_base}{page.path}", lastmod=page.last_modified or None))

    return entries


def render_urlset(entries: Iterable[UrlEntry]) -> str:
    """Serialize *entries* as a ``<urlset>`` document."""
    lines = [_XML_DECLARATION, f'<urlset xmlns="{SITEMAP_NAMESPACE}">']
    for entry in entries:
        lines.append("  <url>")
        lines.append(f"    <loc>{escape_xml(entry.loc)}</loc>")
        if entry.lastmod:
            lines.append(f"    <lastmod>{escape_xml(entry.lastmod)}</lastmod>")
        if entry.changefreq:
            lines.append(f"    <changefreq>{escape_xml(entry.changefreq)}</changefreq>")
        if entry.priority:
            lines.append(f"    <priority>{escape_xml(entry.priority)}</priority>")
        lines.append("  </url>")
    lines.append("</urlset>")
    return "\n".join(lines)


def build_sitemap_xml(
    site_base: str,
    pages: Iterable[PageEntry],
    explicit_entries: Iterable[ExplicitEntry] = (),
) -> str:
    """Build the sitemap XML for *pages* (already filtered) and authored entries."""
    return render_urlset(merge_url_entries(site_base, pages, explicit_entries))
