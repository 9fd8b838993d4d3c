"""
pagehook: navigation-driven page augmentation over the Chrome DevTools Protocol.

Detects navigation in browser pages, including single-page application
route changes that never load a new document, and runs the handler
registered for the current URL once the navigation has settled.

Basic usage:
    from pagehook import BrowserAugmenter, PageContext, PagehookConfig

    def on_orders(context: PageContext) -> None:
        print("orders page", context.url, context.title)

    config = PagehookConfig(
        sites=[{
            "url": "shop.example.com",
            "routes": [
                {"path": "/orders", "handler": "orders"},
                {"path": "/^\\\\/item\\\\/\\\\d+$/", "handler": "myhooks.shop:on_item"},
            ],
        }],
    )
    async with BrowserAugmenter(config, handlers={"orders": on_orders}):
        await asyncio.Event().wait()

Routing only:
    from pagehook import RouteMatcher, RouteRule, SiteEntry

    matcher = RouteMatcher([SiteEntry("example.com", [RouteRule("/", on_any_page)])])
    handler = matcher.find_handler("https://www.example.com/anything")
"""

__version__ = "0.1.0"

from pagehook.errors import (
    DependencyUnavailableError,
    DetectorAlreadyStartedError,
    InvalidRoutePatternError,
    MalformedUrlError,
    PagehookError,
)

from pagehook.models import (
    DocumentReadyState,
    HostMatch,
    MatchType,
    PageContext,
)

from pagehook.url import (
    ParsedUrl,
    parse_url,
    split_path,
)

from pagehook.routing import (
    Handler,
    HandlerResolver,
    RouteMatch,
    RouteMatcher,
    RouteRule,
    SiteEntry,
    build_matcher,
    build_sites,
)

from pagehook.config import (
    ConfigurationError,
    PagehookConfig,
    load_config,
    load_config_with_profile,
)

from pagehook.cdp import (
    CDPConnection,
    CDPError,
    CDPSession,
    TargetManager,
)

from pagehook.detection import (
    HistoryHookDetector,
    ManualNotifier,
    NavigationNotifier,
)

from pagehook.dispatch import (
    CDPContextProvider,
    DispatchCoordinator,
    DispatchState,
    StaticContextProvider,
)

from pagehook.bridge import (
    NavigationBridge,
    TabLoadRelay,
)

from pagehook.augmenter import (
    AugmenterState,
    BrowserAugmenter,
    PageAugmenter,
    attach,
)

__all__ = [
    "__version__",
    # Errors
    "PagehookError",
    "MalformedUrlError",
    "InvalidRoutePatternError",
    "DependencyUnavailableError",
    "DetectorAlreadyStartedError",
    # Models
    "DocumentReadyState",
    "HostMatch",
    "MatchType",
    "PageContext",
    # URL
    "ParsedUrl",
    "parse_url",
    "split_path",
    # Routing
    "Handler",
    "HandlerResolver",
    "RouteMatch",
    "RouteMatcher",
    "RouteRule",
    "SiteEntry",
    "build_matcher",
    "build_sites",
    # Config
    "ConfigurationError",
    "PagehookConfig",
    "load_config",
    "load_config_with_profile",
    # CDP
    "CDPConnection",
    "CDPError",
    "CDPSession",
    "TargetManager",
    # Detection
    "HistoryHookDetector",
    "ManualNotifier",
    "NavigationNotifier",
    # Dispatch
    "CDPContextProvider",
    "DispatchCoordinator",
    "DispatchState",
    "StaticContextProvider",
    # Bridge
    "NavigationBridge",
    "TabLoadRelay",
    # Augmenter
    "AugmenterState",
    "BrowserAugmenter",
    "PageAugmenter",
    "attach",
]
