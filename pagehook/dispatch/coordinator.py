"""
Debounced navigation dispatch.

Raw URL signals from the change detector and the navigation bridge funnel
into one DispatchCoordinator per page. A burst of signals is coalesced into
a single dispatch of the last URL once the page has been quiet for the
debounce delay; a repeat of the last dispatched URL inside the repeat
threshold is dropped.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, Optional

from pagehook.config.defaults import (
    DEFAULT_DISPATCH_DELAY_MS,
    DEFAULT_REPEAT_THRESHOLD_MS,
)
from pagehook.dispatch.context import ContextProvider
from pagehook.dispatch.state import DispatchState
from pagehook.routing.matcher import RouteMatcher
from pagehook.routing.rules import Handler

logger = logging.getLogger(__name__)


class DispatchCoordinator:
    """Debounces URL signals and invokes the matching route handler.

    Deduplication and matching run inside the timer callback. Building the
    context and calling the handler do not: they always run in a task
    created by that callback, even when the provider and the handler are
    both synchronous, so they happen one loop iteration after the timer
    fires. ``flush()`` waits for those tasks.

    Example:
        coordinator = DispatchCoordinator(matcher, StaticContextProvider())
        coordinator.on_raw_url_signal("https://example.com/orders")
        await asyncio.sleep(2.1)
        await coordinator.flush()
    """

    def __init__(
        self,
        matcher: RouteMatcher,
        context_provider: ContextProvider,
        *,
        state: Optional[DispatchState] = None,
        delay_ms: int = DEFAULT_DISPATCH_DELAY_MS,
        repeat_threshold_ms: int = DEFAULT_REPEAT_THRESHOLD_MS,
        clock: Callable[[], float] = time.monotonic,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """Initialize coordinator.

        Args:
            matcher: Resolves URLs to handlers.
            context_provider: Builds the PageContext for a dispatch.
            state: Dispatch state; a fresh one is created if omitted.
            delay_ms: Quiet period after the last signal before dispatching.
            repeat_threshold_ms: Window in which a repeat of the last URL is dropped.
            clock: Monotonic clock in seconds.
            loop: Event loop for timers; the running loop if omitted.
        """
        self._matcher = matcher
        self._context_provider = context_provider
        self._state = state if state is not None else DispatchState()
        self._delay_ms = delay_ms
        self._repeat_threshold_ms = repeat_threshold_ms
        self._clock = clock
        self._loop = loop
        self._tasks: set[asyncio.Task[None]] = set()
        self._dispatch_count = 0

    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def delay_ms(self) -> int:
        return self._delay_ms

    @property
    def repeat_threshold_ms(self) -> int:
        return self._repeat_threshold_ms

    @property
    def is_pending(self) -> bool:
        """Whether a debounce timer is waiting to fire."""
        return self._state.is_debouncing

    @property
    def dispatch_count(self) -> int:
        """Number of handler invocations that completed without raising."""
        return self._dispatch_count

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def on_raw_url_signal(self, url: str) -> None:
        """Record a URL change and restart the debounce window.

        Only the most recent URL of a burst is ever dispatched.
        """
        state = self._state
        state.pending_url = url
        state.clear_timer()
        state.timer = self._get_loop().call_later(self._delay_ms / 1000, self._on_timer)
        logger.debug(f"URL signal: {url} (dispatch in {self._delay_ms}ms)")

    def cancel(self) -> None:
        """Drop the pending dispatch, if any."""
        if self._state.is_debouncing:
            logger.debug(f"Pending dispatch cancelled: {self._state.pending_url}")
        self._state.clear_timer()

    async def flush(self) -> None:
        """Wait for every dispatch already started to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_timer(self) -> None:
        state = self._state
        state.timer = None
        url = state.pending_url
        if url is None:
            return

        now = self._clock()
        if url == state.last_processed_url:
            elapsed_ms = (now - state.last_process_time) * 1000
            if elapsed_ms < self._repeat_threshold_ms:
                logger.debug(f"Duplicate URL suppressed: {url} ({elapsed_ms:.0f}ms since last)")
                return

        state.last_processed_url = url
        state.last_process_time = now

        handler = self._matcher.find_handler(url)
        if handler is None:
            logger.debug(f"No handler for {url}")
            return

        task = self._get_loop().create_task(self._dispatch(handler, url, now * 1000))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _dispatch(self, handler: Handler, url: str, timestamp: float) -> None:
        name = getattr(handler, "__name__", repr(handler))
        try:
            context: Any = self._context_provider(url, timestamp)
            if inspect.isawaitable(context):
                context = await context

            result = handler(context)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.exception(f"Handler {name} failed for {url}: {e}")
            return

        self._dispatch_count += 1
        logger.debug(f"Handler {name} completed for {url}")
