"""
Page augmentation wiring.

PageAugmenter connects the pieces for one page: the history hook detector
and the tab load relay both feed a DispatchCoordinator, which resolves
handlers through a RouteMatcher. BrowserAugmenter attaches a PageAugmenter
to every page of a running browser.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional

from pagehook.bridge import NavigationBridge, TabLoadRelay
from pagehook.cdp.connection import CDPConnection, CDPError, resolve_ws_endpoint
from pagehook.cdp.session import TargetManager
from pagehook.config.loader import load_config
from pagehook.config.options import PagehookConfig
from pagehook.detection.base import NavigationNotifier
from pagehook.detection.history import HistoryHookDetector
from pagehook.dispatch.context import CDPContextProvider, ContextProvider
from pagehook.dispatch.coordinator import DispatchCoordinator
from pagehook.dispatch.state import DispatchState
from pagehook.routing.matcher import RouteMatcher
from pagehook.routing.registry import build_matcher
from pagehook.routing.rules import Handler

logger = logging.getLogger(__name__)


def apply_log_level(config: PagehookConfig) -> None:
    """Set the ``pagehook`` logger level from the config, when one is given."""
    if config.log_level:
        logging.getLogger("pagehook").setLevel(config.log_level)


class PageAugmenter:
    """Navigation-driven handler dispatch for one page.

    Example:
        augmenter = PageAugmenter(session, matcher)
        await augmenter.start()
        ...
        await augmenter.stop()
    """

    def __init__(
        self,
        session: Any,
        matcher: RouteMatcher,
        config: Optional[PagehookConfig] = None,
        *,
        context_provider: Optional[ContextProvider] = None,
        detector: Optional[NavigationNotifier] = None,
    ) -> None:
        """Initialize page augmenter.

        Args:
            session: CDP session of the page.
            matcher: Route registry to resolve handlers from.
            config: Options; defaults when omitted.
            context_provider: PageContext builder; reads the live page by default.
            detector: Change source; a HistoryHookDetector by default.
        """
        self._session = session
        self._matcher = matcher
        self._config = config or PagehookConfig()
        self._loaded = False

        dispatch = self._config.dispatch
        self._coordinator = DispatchCoordinator(
            matcher,
            context_provider or CDPContextProvider(session),
            state=DispatchState(),
            delay_ms=dispatch.delay_ms,
            repeat_threshold_ms=dispatch.repeat_threshold_ms,
        )
        self._bridge = NavigationBridge(self._coordinator.on_raw_url_signal)

        detection = self._config.detection
        self._detector: Optional[NavigationNotifier] = None
        if detector is not None:
            self._detector = detector
        elif detection.enabled:
            self._detector = HistoryHookDetector(session, binding_name=detection.binding_name)

        self._relay: Optional[TabLoadRelay] = None
        if self._config.bridge.relay_tab_loads:
            self._relay = TabLoadRelay(session, self._bridge)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def session(self) -> Any:
        return self._session

    @property
    def coordinator(self) -> DispatchCoordinator:
        return self._coordinator

    @property
    def bridge(self) -> NavigationBridge:
        return self._bridge

    @property
    def detector(self) -> Optional[NavigationNotifier]:
        return self._detector

    @property
    def relay(self) -> Optional[TabLoadRelay]:
        return self._relay

    async def start(self) -> None:
        """Install the detector and the load relay."""
        if self._loaded:
            return
        apply_log_level(self._config)

        if self._relay is not None:
            await self._relay.start()
        if self._detector is not None:
            await self._detector.start(
                self._coordinator.on_raw_url_signal,
                check_immediately=self._config.detection.check_immediately,
            )

        self._loaded = True
        logger.debug(f"Page augmenter started ({len(self._matcher)} sites)")

    async def stop(self) -> None:
        """Remove hooks, drop the pending dispatch and wait for running handlers."""
        if not self._loaded:
            return
        self._loaded = False

        if self._detector is not None:
            await self._detector.stop()
        if self._relay is not None:
            await self._relay.stop()

        self._coordinator.cancel()
        await self._coordinator.flush()
        logger.debug("Page augmenter stopped")

    async def __aenter__(self) -> "PageAugmenter":
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.stop()


class AugmenterState(str, Enum):
    """BrowserAugmenter lifecycle states."""

    DETACHED = "detached"
    ATTACHING = "attaching"
    ATTACHED = "attached"
    CLOSING = "closing"


class BrowserAugmenter:
    """Augments every page of a running Chrome/Chromium.

    Pages that exist when attaching and pages opened later each get their
    own PageAugmenter and DispatchState.

    Example:
        async with BrowserAugmenter(config, handlers={"orders": on_orders}) as hub:
            await asyncio.Event().wait()
    """

    def __init__(
        self,
        config: Optional[PagehookConfig] = None,
        *,
        matcher: Optional[RouteMatcher] = None,
        handlers: Optional[dict[str, Handler]] = None,
        context_provider_factory: Optional[Callable[[Any], ContextProvider]] = None,
    ) -> None:
        """Initialize browser augmenter.

        Args:
            config: Options including the site registry; loaded from the
                default config file and environment when omitted.
            matcher: Prebuilt route registry; built from ``config.sites`` otherwise.
            handlers: Named handlers that route ``handler`` references may use.
            context_provider_factory: Builds a context provider for a session.
        """
        self._config = config if config is not None else load_config()
        self._matcher = matcher or build_matcher(
            self._config.sites,
            handlers,
            strict=self._config.strict_registry,
        )
        self._context_provider_factory = context_provider_factory

        self._connection: Optional[CDPConnection] = None
        self._targets: Optional[TargetManager] = None
        self._pages: dict[str, PageAugmenter] = {}
        self._state = AugmenterState.DETACHED

    @property
    def state(self) -> AugmenterState:
        return self._state

    @property
    def matcher(self) -> RouteMatcher:
        return self._matcher

    @property
    def pages(self) -> dict[str, PageAugmenter]:
        return dict(self._pages)

    @property
    def connection(self) -> Optional[CDPConnection]:
        return self._connection

    async def attach(self) -> None:
        """Connect to the browser and augment all of its pages."""
        if self._state is not AugmenterState.DETACHED:
            return
        self._state = AugmenterState.ATTACHING
        apply_log_level(self._config)

        cdp = self._config.cdp
        ws_url = await resolve_ws_endpoint(cdp.endpoint, timeout=cdp.timeout)
        self._connection = CDPConnection(ws_url, timeout=cdp.timeout)
        await self._connection.connect()
        self._targets = TargetManager(self._connection)

        for info in await self._targets.get_pages():
            await self.augment_target(info["targetId"])
        await self._targets.watch_pages(self._on_page_created, self._on_page_closed)

        self._state = AugmenterState.ATTACHED
        logger.info(f"Attached to {ws_url} ({len(self._pages)} pages)")

    async def augment_target(self, target_id: str) -> Optional[PageAugmenter]:
        """Attach to a page target and start its augmenter.

        Returns:
            The page augmenter, or None if the page could not be set up.
        """
        if target_id in self._pages:
            return self._pages[target_id]
        if self._targets is None:
            raise RuntimeError("Not attached to a browser")

        try:
            session = await self._targets.attach(target_id)
            provider = (
                self._context_provider_factory(session)
                if self._context_provider_factory
                else None
            )
            page = PageAugmenter(
                session,
                self._matcher,
                self._config,
                context_provider=provider,
            )
            await page.start()
        except (CDPError, RuntimeError, asyncio.TimeoutError) as e:
            logger.warning(f"Cannot augment page {target_id}: {e}")
            return None

        self._pages[target_id] = page
        return page

    async def _on_page_created(self, info: dict[str, Any]) -> None:
        await self.augment_target(info["targetId"])

    async def _on_page_closed(self, target_id: str) -> None:
        """Stop and forget the augmenter of a closed page."""
        page = self._pages.pop(target_id, None)
        if page is None:
            return

        # The page is gone, so nothing pending may dispatch for it
        page.coordinator.cancel()
        try:
            await page.stop()
        except (CDPError, RuntimeError, asyncio.TimeoutError) as e:
            logger.debug(f"Stopping augmenter of closed page {target_id}: {e}")
        if self._targets is not None:
            await self._targets.detach(target_id)
        logger.debug(f"Page closed: {target_id}")

    async def detach(self) -> None:
        """Stop every page augmenter and close the connection."""
        if self._state is AugmenterState.DETACHED:
            return
        self._state = AugmenterState.CLOSING

        for page in list(self._pages.values()):
            try:
                await page.stop()
            except (CDPError, RuntimeError) as e:
                logger.debug(f"Page augmenter stop failed: {e}")
        self._pages.clear()

        if self._targets is not None:
            await self._targets.close()
            self._targets = None
        if self._connection is not None:
            await self._connection.disconnect()
            self._connection = None

        self._state = AugmenterState.DETACHED
        logger.info("Detached from browser")

    async def __aenter__(self) -> "BrowserAugmenter":
        await self.attach()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.detach()

    def __repr__(self) -> str:
        return f"BrowserAugmenter(state={self._state.value}, pages={len(self._pages)})"


async def attach(
    config: Optional[PagehookConfig] = None,
    *,
    handlers: Optional[dict[str, Handler]] = None,
) -> BrowserAugmenter:
    """Attach to a running browser and augment its pages.

    Example:
        augmenter = await attach(handlers={"orders": on_orders})
        ...
        await augmenter.detach()
    """
    augmenter = BrowserAugmenter(config, handlers=handlers)
    await augmenter.attach()
    return augmenter
