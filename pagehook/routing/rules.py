"""
Site and route rule definitions.

A registry is an ordered list of SiteEntry objects. Each entry scopes an
ordered list of RouteRule objects to a hostname. A RouteRule is a tagged
union: its MatchType selects which predicate RouteMatcher applies to the
pattern.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Pattern, Sequence

from pagehook.errors import InvalidRoutePatternError
from pagehook.models import DEFAULT_HOST_STRATEGIES, HostMatch, MatchType, PageContext

logger = logging.getLogger(__name__)

Handler = Callable[[PageContext], Any]


def is_regex_pattern(pattern: str) -> bool:
    """Check whether a pattern uses the ``/^...$/`` delimiter convention."""
    return len(pattern) >= 4 and pattern.startswith("/^") and pattern.endswith("$/")


def infer_match_type(pattern: str) -> MatchType:
    """Pick the match type for a pattern that did not specify one."""
    if pattern == "/":
        return MatchType.ALL
    if is_regex_pattern(pattern):
        return MatchType.REGEX
    if "*" in pattern:
        return MatchType.WILDCARD
    if "#" in pattern:
        return MatchType.HASH_PREFIX
    return MatchType.PATH_PREFIX


def compile_route_regex(pattern: str) -> Pattern[str]:
    """Compile a ``/^...$/`` pattern.

    The outermost slashes are removed and the remainder compiled
    case-sensitively.

    Raises:
        InvalidRoutePatternError: If the pattern is not delimited or does
            not compile.
    """
    if not is_regex_pattern(pattern):
        raise InvalidRoutePatternError(pattern, "expected /^...$/ delimiters")
    try:
        return re.compile(pattern[1:-1])
    except re.error as e:
        raise InvalidRoutePatternError(pattern, str(e)) from e


@dataclass(frozen=True)
class RouteRule:
    """A pattern, a match strategy and the handler to run on a match.

    ``match_type`` defaults to ALL for ``"/"``, REGEX for ``/^...$/``
    patterns, WILDCARD for patterns with ``*``, HASH_PREFIX for patterns
    with ``#`` and PATH_PREFIX otherwise. REGEX patterns are compiled here;
    with ``strict=False`` a pattern that fails to compile makes the rule
    never match instead of raising.
    """

    pattern: str
    handler: Handler
    match_type: Optional[MatchType] = None
    name: Optional[str] = None
    strict: bool = field(default=True, repr=False, compare=False)
    regex: Optional[Pattern[str]] = field(default=None, init=False, repr=False, compare=False)
    invalid: bool = field(default=False, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        match_type = self.match_type
        if match_type is None:
            match_type = infer_match_type(self.pattern)
        elif not isinstance(match_type, MatchType):
            match_type = MatchType(match_type)
        object.__setattr__(self, "match_type", match_type)

        if match_type is MatchType.REGEX:
            try:
                object.__setattr__(self, "regex", compile_route_regex(self.pattern))
            except InvalidRoutePatternError as e:
                if self.strict:
                    raise
                logger.warning(f"Route disabled, {e}")
                object.__setattr__(self, "invalid", True)

    @property
    def label(self) -> str:
        """Human-readable identifier for logs."""
        return self.name or self.pattern


@dataclass(frozen=True)
class SiteEntry:
    """Route rules scoped to a host."""

    host_match: str
    routes: Sequence[RouteRule] = ()
    host_strategies: Sequence[HostMatch] = DEFAULT_HOST_STRATEGIES

    def __post_init__(self) -> None:
        object.__setattr__(self, "host_match", self.host_match.strip().lower())
        object.__setattr__(self, "routes", tuple(self.routes))
        object.__setattr__(
            self,
            "host_strategies",
            tuple(HostMatch(s) for s in self.host_strategies),
        )

    def add_route(
        self,
        pattern: str,
        handler: Handler,
        match_type: Optional[MatchType] = None,
        *,
        name: Optional[str] = None,
    ) -> "SiteEntry":
        """Return a copy of this entry with one more route appended."""
        rule = RouteRule(pattern, handler, match_type, name=name)
        return SiteEntry(self.host_match, (*self.routes, rule), self.host_strategies)


__all__ = [
    "DEFAULT_HOST_STRATEGIES",
    "Handler",
    "HostMatch",
    "MatchType",
    "RouteRule",
    "SiteEntry",
    "compile_route_regex",
    "infer_match_type",
    "is_regex_pattern",
]
