"""
Page context snapshot providers.

A context provider is called with the dispatched URL and the dispatch
timestamp (monotonic, ms) and returns a PageContext, either directly or as
an awaitable.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import ValidationError

from pagehook.cdp.connection import CDPError
from pagehook.models import DocumentReadyState, PageContext
from pagehook.url import parse_url

logger = logging.getLogger(__name__)

ContextProvider = Callable[[str, float], Union[PageContext, Awaitable[PageContext]]]


# Field names match the PageContext aliases.
SNAPSHOT_SCRIPT = """
(() => ({
    url: location.href,
    title: document.title,
    referrer: document.referrer,
    hostname: location.hostname,
    pathname: location.pathname,
    hash: location.hash,
    search: location.search,
    userAgent: navigator.userAgent,
    language: navigator.language,
    platform: navigator.platform,
    windowWidth: window.innerWidth,
    windowHeight: window.innerHeight,
    screenWidth: screen.width,
    screenHeight: screen.height,
    documentReady: document.readyState,
}))()
"""


class StaticContextProvider:
    """Builds contexts from the URL alone plus fixed environment values.

    Used where no live page is available, e.g. headless pipelines and tests.
    """

    def __init__(
        self,
        *,
        title: str = "",
        referrer: str = "",
        user_agent: str = "",
        language: str = "",
        platform: str = "",
        window_size: tuple[int, int] = (0, 0),
        screen_size: tuple[int, int] = (0, 0),
        document_ready: DocumentReadyState = DocumentReadyState.COMPLETE,
    ) -> None:
        self.title = title
        self.referrer = referrer
        self.user_agent = user_agent
        self.language = language
        self.platform = platform
        self.window_size = window_size
        self.screen_size = screen_size
        self.document_ready = document_ready

    def __call__(self, url: str, timestamp: float) -> PageContext:
        parsed = parse_url(url)
        pathname, search, hash_ = parsed.location
        return PageContext(
            url=url,
            title=self.title,
            referrer=self.referrer,
            hostname=parsed.hostname,
            pathname=pathname,
            hash=hash_,
            search=search,
            user_agent=self.user_agent,
            language=self.language,
            platform=self.platform,
            window_width=self.window_size[0],
            window_height=self.window_size[1],
            screen_width=self.screen_size[0],
            screen_height=self.screen_size[1],
            timestamp=timestamp,
            document_ready=self.document_ready,
        )


class CDPContextProvider:
    """Reads the context from the live page with a single Runtime.evaluate.

    If the page cannot be evaluated (navigating away, detached target) the
    context is derived from the URL with ``fallback`` instead.
    """

    def __init__(
        self,
        session: Any,
        *,
        fallback: Optional[Callable[[str, float], PageContext]] = None,
    ) -> None:
        self._session = session
        self._fallback = fallback or StaticContextProvider(
            document_ready=DocumentReadyState.LOADING
        )

    async def __call__(self, url: str, timestamp: float) -> PageContext:
        try:
            result = await self._session.send(
                "Runtime.evaluate",
                {"expression": SNAPSHOT_SCRIPT, "returnByValue": True},
            )
        except (CDPError, RuntimeError) as e:
            logger.warning(f"Page snapshot failed for {url}: {e}")
            return self._fallback(url, timestamp)

        if "exceptionDetails" in result:
            details = result["exceptionDetails"]
            logger.warning(f"Page snapshot script raised for {url}: {details.get('text', '')}")
            return self._fallback(url, timestamp)

        values = dict(result.get("result", {}).get("value") or {})
        values["url"] = url
        values["timestamp"] = timestamp
        try:
            return PageContext.model_validate(values)
        except ValidationError as e:
            logger.warning(f"Unexpected page snapshot for {url}: {e}")
            return self._fallback(url, timestamp)
