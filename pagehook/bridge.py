"""
Cross-context navigation channel.

The browser side reports finished tab loads as messages of the form
``{"action": "urlChanged", "url": ...}``. NavigationBridge receives them on
the page side and feeds the dispatch pipeline; TabLoadRelay produces them
from CDP load events.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from pagehook.cdp.connection import CDPError
from pagehook.config.defaults import URL_CHANGED_ACTION

logger = logging.getLogger(__name__)


class NavigationBridge:
    """Receives navigation messages and forwards their URL.

    Example:
        bridge = NavigationBridge(coordinator.on_raw_url_signal)
        reply = await bridge.handle_message({"action": "urlChanged", "url": url})
        # {"status": "received"}
    """

    def __init__(self, on_url: Callable[[str], Any]) -> None:
        self._on_url = on_url
        self._received = 0

    @property
    def received_count(self) -> int:
        return self._received

    async def handle_message(self, message: Any) -> dict[str, Any]:
        """Handle one inbound message.

        Returns:
            ``{"status": "received"}`` when the URL was accepted,
            ``{"status": "error", "message": ...}`` when forwarding it failed,
            ``{"status": "ignored"}`` for messages with another action.
        """
        if not isinstance(message, dict) or message.get("action") != URL_CHANGED_ACTION:
            return {"status": "ignored"}

        url = message.get("url")
        try:
            if not isinstance(url, str) or not url:
                raise ValueError(f"Message has no url: {message!r}")
            self._on_url(url)
        except Exception as e:
            logger.error(f"Navigation message rejected: {e}")
            return {"status": "error", "message": str(e)}

        self._received += 1
        return {"status": "received"}


class TabLoadRelay:
    """Sends a ``urlChanged`` message to a bridge whenever a page finishes loading.

    Delivery failures are expected while a page is still starting up and
    are only logged at debug level.
    """

    def __init__(self, session: Any, bridge: NavigationBridge) -> None:
        self._session = session
        self._bridge = bridge
        self._started = False
        self._last_reply: Optional[dict[str, Any]] = None

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def last_reply(self) -> Optional[dict[str, Any]]:
        return self._last_reply

    async def start(self) -> None:
        if self._started:
            return
        self._session.on("Page.loadEventFired", self._on_load_event)
        await self._session.send("Page.enable")
        self._started = True

    async def stop(self) -> None:
        if not self._started:
            return
        self._session.off("Page.loadEventFired", self._on_load_event)
        self._started = False

    async def current_url(self) -> str:
        """Return the URL of the current navigation history entry."""
        history = await self._session.send("Page.getNavigationHistory")
        entries = history.get("entries", [])
        index = history.get("currentIndex", len(entries) - 1)
        if 0 <= index < len(entries):
            return entries[index].get("url", "")
        return ""

    async def _on_load_event(self, params: dict[str, Any]) -> None:
        try:
            url = await self.current_url()
            if not url:
                return
            self._last_reply = await self._bridge.handle_message(
                {"action": URL_CHANGED_ACTION, "url": url}
            )
        except (CDPError, RuntimeError, asyncio.TimeoutError) as e:
            logger.debug(f"Tab load notification not delivered: {e}")
