"""
Navigation notifier interface.

A notifier is a pure event source: it reports every URL change it observes
to its subscribers synchronously, without delaying or deduplicating.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Optional

from pagehook.errors import DetectorAlreadyStartedError

logger = logging.getLogger(__name__)

UrlCallback = Callable[[str], Any]


class NotifierState(str, Enum):
    """Notifier lifecycle state."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class NavigationNotifier(ABC):
    """Base class for navigation change sources.

    A notifier can be started once. Starting it again, even after
    ``stop()``, raises DetectorAlreadyStartedError.
    """

    def __init__(self) -> None:
        self._subscribers: list[UrlCallback] = []
        self._state = NotifierState.IDLE

    @property
    def state(self) -> NotifierState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is NotifierState.RUNNING

    def subscribe(self, callback: UrlCallback) -> Callable[[], None]:
        """Register a callback receiving each changed URL.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: UrlCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    async def start(
        self,
        on_change: Optional[UrlCallback] = None,
        check_immediately: bool = False,
    ) -> None:
        """Install the navigation hooks.

        Args:
            on_change: Optional callback subscribed before the hooks go live.
            check_immediately: Report the current URL once during start.

        Raises:
            DetectorAlreadyStartedError: If this notifier was started before.
        """
        if self._state is not NotifierState.IDLE:
            raise DetectorAlreadyStartedError(
                f"{type(self).__name__} was already started ({self._state.value})"
            )

        if on_change is not None:
            self.subscribe(on_change)

        await self._install()
        self._state = NotifierState.RUNNING
        logger.debug(f"{type(self).__name__} started")

        if check_immediately:
            self._emit(await self.current_url())

    async def stop(self) -> None:
        """Remove the navigation hooks and all subscribers."""
        if self._state is not NotifierState.RUNNING:
            return
        self._state = NotifierState.STOPPED
        self._subscribers.clear()
        await self._uninstall()
        logger.debug(f"{type(self).__name__} stopped")

    def _emit(self, url: str) -> None:
        if not self.is_running:
            return
        for callback in list(self._subscribers):
            try:
                callback(url)
            except Exception:
                logger.exception(f"URL change subscriber failed for {url}")

    @abstractmethod
    async def current_url(self) -> str:
        """Return the URL the page is on right now."""
        ...

    @abstractmethod
    async def _install(self) -> None:
        ...

    @abstractmethod
    async def _uninstall(self) -> None:
        ...


class ManualNotifier(NavigationNotifier):
    """Notifier driven by explicit ``notify()`` calls.

    Useful where navigation is observed by other means, e.g. a test or an
    embedding application that already tracks its own routes.
    """

    def __init__(self, initial_url: str = "") -> None:
        super().__init__()
        self._url = initial_url

    async def current_url(self) -> str:
        return self._url

    def notify(self, url: str) -> None:
        """Report a URL change."""
        self._url = url
        self._emit(url)

    async def _install(self) -> None:
        pass

    async def _uninstall(self) -> None:
        pass
