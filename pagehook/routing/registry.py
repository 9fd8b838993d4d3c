"""
Site registry loading.

Builds SiteEntry objects from configuration data. Handlers are referenced
as ``"package.module:function"`` strings (or given directly as callables)
and resolved with importlib. Site coverage is additive: a reference that
cannot be resolved disables only its own route.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from pagehook.config.options import RouteConfig, SiteConfig
from pagehook.errors import DependencyUnavailableError
from pagehook.routing.matcher import RouteMatcher
from pagehook.routing.rules import Handler, RouteRule, SiteEntry

logger = logging.getLogger(__name__)

HandlerRef = Union[str, Callable[..., Any]]


class HandlerResolver:
    """Resolves handler references to callables.

    Each unresolvable reference is logged once per resolver.
    """

    def __init__(self, handlers: Optional[Mapping[str, Handler]] = None) -> None:
        """Initialize resolver.

        Args:
            handlers: Named handlers checked before importing, e.g.
                ``{"orders": handle_orders}``.
        """
        self._handlers: dict[str, Handler] = dict(handlers or {})
        self._cache: dict[str, Handler] = {}
        self._reported: set[str] = set()

    def register(self, name: str, handler: Handler) -> None:
        """Register a named handler."""
        self._handlers[name] = handler

    @property
    def missing(self) -> frozenset[str]:
        """References that failed to resolve so far."""
        return frozenset(self._reported)

    def resolve(self, ref: HandlerRef) -> Handler:
        """Resolve a reference.

        Raises:
            DependencyUnavailableError: If the reference cannot be resolved
                to a callable.
        """
        if callable(ref):
            return ref

        if ref in self._handlers:
            return self._handlers[ref]
        if ref in self._cache:
            return self._cache[ref]

        handler = self._import(ref)
        self._cache[ref] = handler
        return handler

    def _import(self, ref: str) -> Handler:
        module_name, sep, attr_path = ref.partition(":")
        if not sep or not module_name or not attr_path:
            raise DependencyUnavailableError(ref, ValueError("expected 'module:attribute'"))

        try:
            target: Any = importlib.import_module(module_name)
            for attr in attr_path.split("."):
                target = getattr(target, attr)
        except (ImportError, AttributeError) as e:
            raise DependencyUnavailableError(ref, e) from e

        if not callable(target):
            raise DependencyUnavailableError(ref, TypeError("not callable"))
        return target

    def report(self, error: DependencyUnavailableError) -> None:
        """Log a resolution failure unless it was already logged."""
        if error.reference in self._reported:
            return
        self._reported.add(error.reference)
        logger.warning(f"{error}; continuing without it")


def build_route(
    config: Union[RouteConfig, Mapping[str, Any]],
    resolver: HandlerResolver,
    *,
    strict: bool = False,
) -> Optional[RouteRule]:
    """Build one RouteRule, or None if it has to be skipped."""
    if not isinstance(config, RouteConfig):
        config = RouteConfig.model_validate(config)

    try:
        handler = resolver.resolve(config.handler)
    except DependencyUnavailableError as e:
        if strict:
            raise
        resolver.report(e)
        return None

    # A non-strict rule with a bad pattern stays in place but never matches
    return RouteRule(
        config.path,
        handler,
        config.match,
        name=config.name,
        strict=strict,
    )


def build_site(
    config: Union[SiteConfig, Mapping[str, Any]],
    resolver: Optional[HandlerResolver] = None,
    *,
    strict: bool = False,
) -> SiteEntry:
    """Build a SiteEntry from configuration."""
    if not isinstance(config, SiteConfig):
        config = SiteConfig.model_validate(config)
    resolver = resolver or HandlerResolver()

    routes = []
    for route_config in config.routes:
        rule = build_route(route_config, resolver, strict=strict)
        if rule is not None:
            routes.append(rule)

    return SiteEntry(config.url, routes, config.host_strategies)


def build_sites(
    configs: Iterable[Union[SiteConfig, Mapping[str, Any]]],
    resolver: Optional[HandlerResolver] = None,
    *,
    strict: bool = False,
) -> list[SiteEntry]:
    """Build all site entries, sharing one resolver."""
    resolver = resolver or HandlerResolver()
    sites = [build_site(c, resolver, strict=strict) for c in configs]

    if resolver.missing:
        logger.warning(
            f"Registry loaded with {len(resolver.missing)} unavailable handler(s): "
            + ", ".join(sorted(resolver.missing))
        )
    else:
        logger.debug(f"Registry loaded: {len(sites)} site(s)")
    return sites


def build_matcher(
    configs: Iterable[Union[SiteConfig, Mapping[str, Any]]],
    handlers: Optional[Mapping[str, Handler]] = None,
    *,
    strict: bool = False,
) -> RouteMatcher:
    """Build a RouteMatcher from site configuration."""
    resolver = HandlerResolver(handlers)
    return RouteMatcher(build_sites(configs, resolver, strict=strict))


__all__ = [
    "HandlerRef",
    "HandlerResolver",
    "build_matcher",
    "build_route",
    "build_site",
    "build_sites",
]
