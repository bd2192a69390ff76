"""Market registry and EDS host parsing."""

import re
from typing import Dict, NamedTuple


class MarketConfig(NamedTuple):
    eds_host: str
    locale: str
    currency: str
    timezone: str


class HostDescriptor(NamedTuple):
    branch: str
    repo: str
    org: str


BASELINE_MARKET = "us"

MARKET_CONFIG: Dict[str, MarketConfig] = {
    "us": MarketConfig(
        eds_host="main--qsr-us--org.aem.live",
        locale="en-US",
        currency="USD",
        timezone="America/Los_Angeles",
    ),
    "uk": MarketConfig(
        eds_host="main--qsr-uk--org.aem.live",
        locale="en-GB",
        currency="GBP",
        timezone="Europe/London",
    ),
    "jp": MarketConfig(
        eds_host="main--qsr-jp--org.aem.live",
        locale="ja-JP",
        currency="JPY",
        timezone="Asia/Tokyo",
    ),
}

# {branch}--{repo}--{org}.<suffix-domain>, e.g. main--qsr-us--org.aem.live
_EDS_HOST_PATTERN = re.compile(r"^([^.]+)--([^.]+)--([^.]+)\.[^.]+(?:\.[^.]+)*$")

_FALLBACK_HOST = HostDescriptor(branch="main", repo="qsr-us", org="org")


def get_market_config(market: str) -> MarketConfig:
    """Return the configuration for *market*, falling back to the baseline market."""
    return MARKET_CONFIG.get(market, MARKET_CONFIG[BASELINE_MARKET])


def parse_eds_host(eds_host: str) -> HostDescriptor:
    """Extract branch, repo and org from an EDS host name.

    Hosts that do not follow the ``{branch}--{repo}--{org}.<domain>``
    convention yield a fixed fallback descriptor instead of raising, so the
    returned value is not guaranteed to reflect *eds_host*.
    """
    match = _EDS_HOST_PATTERN.match(str(eds_host))
    if match:
        return HostDescriptor(branch=match.group(1), repo=match.group(2), org=match.group(3))
    return _FALLBACK_HOST
