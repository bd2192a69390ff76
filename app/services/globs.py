"""Include/exclude glob policy for sitemap candidates.

Only four pattern shapes are understood:

* ``/``            – the site root (exact match)
* ``/some/path``   – exact match
* ``/prefix/**``   – the prefix itself and everything below it
* ``/**?*``        – any path carrying a query string
"""

from typing import Iterable, List, Optional

from app.models.page import PageEntry

_QUERY_PATTERN = "/**?*"
_SUBTREE_SUFFIX = "/**"


def matches_glob(path: Optional[str], pattern: Optional[str]) -> bool:
    """Return *True* when *path* matches *pattern*."""
    if not pattern or not path:
        return False
    if pattern == _QUERY_PATTERN:
        return "?" in path
    if pattern.endswith(_SUBTREE_SUFFIX):
        prefix = pattern[: -len(_SUBTREE_SUFFIX)]
        return path == prefix or path.startswith(prefix + "/")
    return path == pattern


def should_include(path: Optional[str], include: Iterable[str], exclude: Iterable[str]) -> bool:
    """Return *True* when *path* matches an include pattern and no exclude pattern.

    Exclusion always wins, and an empty *include* list publishes nothing.
    """
    if any(matches_glob(path, p) for p in exclude):
        return False
    return any(matches_glob(path, p) for p in include)


def filter_pages(
    pages: Iterable[PageEntry],
    include: List[str],
    exclude: List[str],
) -> List[PageEntry]:
    """Keep the pages allowed by the include/exclude policy, preserving order."""
    return [page for page in pages if should_include(page.path, include, exclude)]
