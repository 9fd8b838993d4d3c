"""
Routing module for pagehook.

- SiteEntry / RouteRule: the registry data model
- RouteMatcher: resolves a URL to a handler
- build_matcher / build_sites: build the registry from configuration

Example:
    ```python
    from pagehook.routing import MatchType, RouteMatcher, RouteRule, SiteEntry

    matcher = RouteMatcher([
        SiteEntry("shop.example.com", [
            RouteRule("/cart", on_cart, MatchType.PATH_EXACT),
            RouteRule(r"/^\\/app\\/#\\/orders\\/\\d+$/", on_order),
            RouteRule("/", on_any_page),
        ]),
    ])
    handler = matcher.find_handler("https://shop.example.com/app/#/orders/42")
    ```
"""

from pagehook.routing.matcher import (
    RouteMatch,
    RouteMatcher,
    match_host,
    rule_matches,
)
from pagehook.routing.registry import (
    HandlerResolver,
    build_matcher,
    build_route,
    build_site,
    build_sites,
)
from pagehook.routing.rules import (
    DEFAULT_HOST_STRATEGIES,
    Handler,
    HostMatch,
    MatchType,
    RouteRule,
    SiteEntry,
    compile_route_regex,
    infer_match_type,
    is_regex_pattern,
)

__all__ = [
    # Rules
    "DEFAULT_HOST_STRATEGIES",
    "Handler",
    "HostMatch",
    "MatchType",
    "RouteRule",
    "SiteEntry",
    "compile_route_regex",
    "infer_match_type",
    "is_regex_pattern",
    # Matching
    "RouteMatch",
    "RouteMatcher",
    "match_host",
    "rule_matches",
    # Registry
    "HandlerResolver",
    "build_matcher",
    "build_route",
    "build_site",
    "build_sites",
]
