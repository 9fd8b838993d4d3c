"""
Route matching engine.

Resolves a page URL to the handler of the first matching route of the first
matching site.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from pagehook.routing.rules import Handler, HostMatch, MatchType, RouteRule, SiteEntry
from pagehook.url import ParsedUrl, parse_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteMatch:
    """Result of a successful match."""

    site: SiteEntry
    rule: RouteRule
    url: ParsedUrl
    host_strategy: HostMatch

    @property
    def handler(self) -> Handler:
        return self.rule.handler


def match_host(site: SiteEntry, hostname: str) -> Optional[HostMatch]:
    """Return the first host strategy of ``site`` that accepts ``hostname``."""
    host = site.host_match
    for strategy in site.host_strategies:
        if strategy is HostMatch.EXACT and hostname == host:
            return strategy
        if strategy is HostMatch.SUBDOMAIN and hostname.endswith("." + host):
            return strategy
        if strategy is HostMatch.SUBSTRING and host in hostname:
            return strategy
    return None


def _segments(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def _strip_trailing_slash(path: str) -> str:
    return path[:-1] if path.endswith("/") else path


def _hash_prefix_matches(pattern: str, url: ParsedUrl) -> bool:
    """Prefix match of a ``path#hash`` pattern against the page location.

    A pattern ending in ``/`` must prefix pathname + hash. Otherwise the
    pathname must start with the part before ``#``, and a non-empty hash
    must start with the part after it.
    """
    if pattern.endswith("/"):
        return url.location_path.startswith(pattern)

    pathname, _, hash_ = url.location
    route_path, _, route_hash = pattern.partition("#")
    if not pathname.startswith(route_path):
        return False
    return not (hash_ and route_hash) or hash_.startswith("#" + route_hash)


def rule_matches(rule: RouteRule, url: ParsedUrl) -> bool:
    """Apply the predicate selected by ``rule.match_type`` to ``url``."""
    match_type = rule.match_type

    if match_type is MatchType.ALL:
        return True

    if match_type is MatchType.EXACT:
        return rule.pattern == url.normalized_full_path

    if match_type is MatchType.PATH_EXACT:
        return _strip_trailing_slash(rule.pattern) == _strip_trailing_slash(url.path)

    if match_type is MatchType.PATH_PREFIX:
        expected = _segments(rule.pattern)
        actual = _segments(url.path)
        if len(expected) > len(actual):
            return False
        return all(e == a for e, a in zip(expected, actual))

    if match_type is MatchType.HASH_PREFIX:
        return _hash_prefix_matches(rule.pattern, url)

    if match_type is MatchType.WILDCARD:
        return url.location_path.startswith(rule.pattern.replace("*", "", 1))

    if match_type is MatchType.REGEX:
        if rule.regex is None:
            return False
        return rule.regex.search(url.full_path) is not None

    raise ValueError(f"Unknown match type: {match_type}")


class RouteMatcher:
    """Ordered registry of sites resolving URLs to handlers.

    Sites are tried in registry order and the first whose host matches is
    used; routes inside it are tried in order and the first match wins.

    Example:
        matcher = RouteMatcher([
            SiteEntry("example.com", [
                RouteRule("/orders", show_orders),
                RouteRule("/", fallback),
            ]),
        ])
        handler = matcher.find_handler("https://www.example.com/orders/7")
    """

    def __init__(self, sites: Optional[Iterable[SiteEntry]] = None) -> None:
        self._sites: list[SiteEntry] = list(sites or [])

    @property
    def sites(self) -> tuple[SiteEntry, ...]:
        return tuple(self._sites)

    def add_site(self, site: SiteEntry) -> "RouteMatcher":
        """Append a site entry. Returns self for chaining."""
        self._sites.append(site)
        return self

    def find_site(self, hostname: str) -> Optional[tuple[SiteEntry, HostMatch]]:
        """Find the first site entry accepting ``hostname``."""
        for site in self._sites:
            strategy = match_host(site, hostname)
            if strategy is not None:
                return site, strategy
        return None

    def match(self, url: str) -> Optional[RouteMatch]:
        """Resolve ``url`` to the matching site and rule.

        Never raises; malformed URLs and unexpected errors are logged and
        reported as no match.
        """
        try:
            parsed = parse_url(url)
            found = self.find_site(parsed.hostname)
            if found is None:
                logger.debug(f"No site registered for {parsed.hostname}")
                return None

            site, strategy = found
            for rule in site.routes:
                if rule_matches(rule, parsed):
                    logger.info(
                        f"Route matched: {url} -> {rule.label} "
                        f"(host {strategy.value}, path {rule.match_type.value})"
                    )
                    return RouteMatch(site=site, rule=rule, url=parsed, host_strategy=strategy)

            logger.debug(f"No route of {site.host_match} matched {url}")
            return None
        except Exception as e:
            logger.warning(f"Route lookup failed for {url!r}: {e}")
            return None

    def find_handler(self, url: str) -> Optional[Handler]:
        """Resolve ``url`` to a handler, or None when nothing matches."""
        result = self.match(url)
        return result.handler if result else None

    def __len__(self) -> int:
        return len(self._sites)


__all__ = [
    "RouteMatch",
    "RouteMatcher",
    "match_host",
    "rule_matches",
]
