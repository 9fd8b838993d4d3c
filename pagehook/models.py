"""
Core data models for pagehook.

This module defines the enums shared by routing and configuration, and the
PageContext snapshot handed to route handlers.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MatchType(str, Enum):
    """How a route pattern is compared against a URL."""

    ALL = "all"
    """Matches every URL of the site."""

    EXACT = "exact"
    """Pattern equals path + query + fragment."""

    PATH_EXACT = "path_exact"
    """Pattern equals the path, ignoring one trailing slash."""

    PATH_PREFIX = "path_prefix"
    """Pattern segments are a positional prefix of the path segments."""

    HASH_PREFIX = "hash_prefix"
    """Pattern containing ``#`` is a prefix of the location path + hash.

    Used for hash-router pages such as ``/app/#/orders/``.
    """

    WILDCARD = "wildcard"
    """Pattern with its ``*`` removed is a prefix of the location path + hash."""

    REGEX = "regex"
    """Pattern written as ``/^...$/`` is searched in path + fragment."""


class HostMatch(str, Enum):
    """How a site entry's host is compared against a URL hostname."""

    EXACT = "exact"
    SUBDOMAIN = "subdomain"
    SUBSTRING = "substring"
    """Loose containment check. Over-matches: ``ab.com`` accepts ``xab.comy``."""


DEFAULT_HOST_STRATEGIES: tuple[HostMatch, ...] = (
    HostMatch.EXACT,
    HostMatch.SUBDOMAIN,
    HostMatch.SUBSTRING,
)


class DocumentReadyState(str, Enum):
    """Values of ``document.readyState``."""

    LOADING = "loading"
    INTERACTIVE = "interactive"
    COMPLETE = "complete"


class PageContext(BaseModel):
    """Snapshot of page and environment facts taken at dispatch time.

    Field aliases follow the names used inside the page, so the object
    returned by the in-page snapshot script validates directly.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str
    title: str = ""
    referrer: str = ""
    hostname: str = ""
    pathname: str = "/"
    hash: str = ""
    search: str = ""
    user_agent: str = Field("", alias="userAgent")
    language: str = ""
    platform: str = ""
    window_width: int = Field(0, ge=0, alias="windowWidth")
    window_height: int = Field(0, ge=0, alias="windowHeight")
    screen_width: int = Field(0, ge=0, alias="screenWidth")
    screen_height: int = Field(0, ge=0, alias="screenHeight")
    timestamp: float = Field(0.0, description="Monotonic dispatch time in ms")
    document_ready: DocumentReadyState = Field(
        DocumentReadyState.LOADING, alias="documentReady"
    )

    @property
    def viewport(self) -> tuple[int, int]:
        return self.window_width, self.window_height

    @property
    def screen(self) -> tuple[int, int]:
        return self.screen_width, self.screen_height


__all__ = [
    "DEFAULT_HOST_STRATEGIES",
    "DocumentReadyState",
    "HostMatch",
    "MatchType",
    "PageContext",
]
