"""
Exception types for pagehook.

Every failure inside the core is contained at a component boundary; these
types exist so that the boundaries can tell the failure kinds apart.
"""

from typing import Optional


class PagehookError(Exception):
    """Base class for all pagehook errors."""

    pass


class MalformedUrlError(PagehookError, ValueError):
    """A URL could not be parsed."""

    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        self.reason = reason
        message = f"Malformed URL: {url!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class InvalidRoutePatternError(PagehookError, ValueError):
    """A route pattern could not be compiled."""

    def __init__(self, pattern: str, reason: str = "") -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid route pattern {pattern!r}: {reason}")


class DependencyUnavailableError(PagehookError, LookupError):
    """A collaborator referenced by the registry could not be resolved."""

    def __init__(self, reference: str, cause: Optional[BaseException] = None) -> None:
        self.reference = reference
        self.cause = cause
        message = f"Dependency unavailable: {reference}"
        if cause is not None:
            message += f" ({cause})"
        super().__init__(message)


class DetectorAlreadyStartedError(PagehookError, RuntimeError):
    """A navigation notifier was started twice."""

    pass
