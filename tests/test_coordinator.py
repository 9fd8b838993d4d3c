"""
Tests for pagehook.dispatch module.
"""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from pagehook.cdp import CDPError
from pagehook.dispatch import (
    CDPContextProvider,
    DispatchCoordinator,
    DispatchState,
    StaticContextProvider,
)
from pagehook.models import DocumentReadyState, PageContext
from pagehook.routing import RouteMatcher, RouteRule, SiteEntry

DELAY_MS = 20
SETTLE = 0.08


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


class Recorder:
    """Handler that records the contexts it receives."""

    def __init__(self) -> None:
        self.contexts: list[PageContext] = []

    def __call__(self, context: PageContext) -> None:
        self.contexts.append(context)

    @property
    def urls(self) -> list[str]:
        return [c.url for c in self.contexts]


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def matcher(recorder):
    return RouteMatcher([SiteEntry("example.com", [RouteRule("/", recorder)])])


@pytest.fixture
def coordinator(matcher, clock):
    return DispatchCoordinator(
        matcher,
        StaticContextProvider(title="Example"),
        delay_ms=DELAY_MS,
        clock=clock,
    )


async def settle(coordinator: DispatchCoordinator) -> None:
    await asyncio.sleep(SETTLE)
    await coordinator.flush()


class TestDebounce:
    """Tests for signal coalescing."""

    @pytest.mark.asyncio
    async def test_burst_dispatches_last_url_only(self, coordinator, recorder):
        coordinator.on_raw_url_signal("https://example.com/u1")
        await asyncio.sleep(0.005)
        coordinator.on_raw_url_signal("https://example.com/u2")
        await settle(coordinator)

        assert recorder.urls == ["https://example.com/u2"]
        assert coordinator.dispatch_count == 1

    @pytest.mark.asyncio
    async def test_new_signal_replaces_timer(self, coordinator):
        coordinator.on_raw_url_signal("https://example.com/u1")
        first = coordinator.state.timer
        coordinator.on_raw_url_signal("https://example.com/u2")

        assert first.cancelled()
        assert coordinator.state.timer is not first
        assert coordinator.state.pending_url == "https://example.com/u2"
        coordinator.cancel()

    @pytest.mark.asyncio
    async def test_nothing_dispatched_before_delay(self, coordinator, recorder):
        coordinator.on_raw_url_signal("https://example.com/u1")
        assert coordinator.is_pending
        assert recorder.urls == []

        await settle(coordinator)
        assert not coordinator.is_pending
        assert coordinator.state.timer is None
        assert recorder.urls == ["https://example.com/u1"]

    @pytest.mark.asyncio
    async def test_cancel(self, coordinator, recorder):
        coordinator.on_raw_url_signal("https://example.com/u1")
        coordinator.cancel()
        await settle(coordinator)

        assert not coordinator.is_pending
        assert recorder.urls == []


class TestDuplicateSuppression:
    """Tests for the repeat threshold."""

    @pytest.mark.asyncio
    async def test_repeat_below_threshold_suppressed(self, coordinator, recorder, clock):
        coordinator.on_raw_url_signal("https://example.com/u")
        await settle(coordinator)

        clock.advance_ms(500)
        coordinator.on_raw_url_signal("https://example.com/u")
        await settle(coordinator)

        assert len(recorder.contexts) == 1

    @pytest.mark.asyncio
    async def test_repeat_above_threshold_dispatched(self, coordinator, recorder, clock):
        coordinator.on_raw_url_signal("https://example.com/u")
        await settle(coordinator)

        clock.advance_ms(2500)
        coordinator.on_raw_url_signal("https://example.com/u")
        await settle(coordinator)

        assert len(recorder.contexts) == 2

    @pytest.mark.asyncio
    async def test_different_url_not_suppressed(self, coordinator, recorder, clock):
        coordinator.on_raw_url_signal("https://example.com/a")
        await settle(coordinator)

        clock.advance_ms(100)
        coordinator.on_raw_url_signal("https://example.com/b")
        await settle(coordinator)

        assert recorder.urls == ["https://example.com/a", "https://example.com/b"]

    @pytest.mark.asyncio
    async def test_suppressed_before_routing(self, clock):
        matcher = MagicMock()
        matcher.find_handler.return_value = None
        coordinator = DispatchCoordinator(
            matcher, StaticContextProvider(), delay_ms=DELAY_MS, clock=clock
        )

        coordinator.on_raw_url_signal("https://example.com/u")
        await settle(coordinator)
        clock.advance_ms(100)
        coordinator.on_raw_url_signal("https://example.com/u")
        await settle(coordinator)

        matcher.find_handler.assert_called_once_with("https://example.com/u")

    @pytest.mark.asyncio
    async def test_state_updated_without_handler(self, coordinator, recorder, clock):
        coordinator.on_raw_url_signal("https://unknown.org/u")
        await settle(coordinator)

        assert coordinator.state.last_processed_url == "https://unknown.org/u"
        assert coordinator.state.last_process_time == clock.now
        assert recorder.urls == []
        assert coordinator.dispatch_count == 0

    @pytest.mark.asyncio
    async def test_injected_state(self, matcher, clock):
        state = DispatchState(last_processed_url="https://example.com/u", last_process_time=clock.now)
        coordinator = DispatchCoordinator(
            matcher, StaticContextProvider(), state=state, delay_ms=DELAY_MS, clock=clock
        )

        coordinator.on_raw_url_signal("https://example.com/u")
        await settle(coordinator)

        assert coordinator.state is state
        assert coordinator.dispatch_count == 0


class TestHandlerInvocation:
    """Tests for context building and the handler boundary."""

    @pytest.mark.asyncio
    async def test_context_snapshot(self, coordinator, recorder, clock):
        coordinator.on_raw_url_signal("https://www.example.com/shop?q=1#top")
        await settle(coordinator)

        context = recorder.contexts[0]
        assert context.url == "https://www.example.com/shop?q=1#top"
        assert context.title == "Example"
        assert context.hostname == "www.example.com"
        assert context.pathname == "/shop"
        assert context.search == "?q=1"
        assert context.hash == "#top"
        assert context.timestamp == clock.now * 1000
        assert context.document_ready == DocumentReadyState.COMPLETE

    @pytest.mark.asyncio
    async def test_sync_handler_runs_in_task(self, coordinator, recorder):
        coordinator.on_raw_url_signal("https://example.com/a")
        coordinator.cancel()

        coordinator._on_timer()
        assert recorder.urls == []

        await coordinator.flush()
        assert recorder.urls == ["https://example.com/a"]

    @pytest.mark.asyncio
    async def test_failing_handler_contained(self, clock, caplog):
        calls = []

        def broken(context):
            calls.append(context.url)
            raise RuntimeError("handler exploded")

        matcher = RouteMatcher([SiteEntry("example.com", [RouteRule("/", broken)])])
        coordinator = DispatchCoordinator(
            matcher, StaticContextProvider(), delay_ms=DELAY_MS, clock=clock
        )

        with caplog.at_level(logging.ERROR):
            coordinator.on_raw_url_signal("https://example.com/a")
            await settle(coordinator)
            coordinator.on_raw_url_signal("https://example.com/b")
            await settle(coordinator)

        assert calls == ["https://example.com/a", "https://example.com/b"]
        assert coordinator.dispatch_count == 0
        assert "handler exploded" in caplog.text

    @pytest.mark.asyncio
    async def test_async_handler_and_provider(self, clock):
        done = asyncio.Event()
        seen = []

        async def handler(context):
            await asyncio.sleep(0)
            seen.append(context.url)
            done.set()

        async def provider(url, timestamp):
            return PageContext(url=url, timestamp=timestamp)

        matcher = RouteMatcher([SiteEntry("example.com", [RouteRule("/", handler)])])
        coordinator = DispatchCoordinator(matcher, provider, delay_ms=DELAY_MS, clock=clock)

        coordinator.on_raw_url_signal("https://example.com/x")
        await asyncio.wait_for(done.wait(), timeout=1)
        await coordinator.flush()

        assert seen == ["https://example.com/x"]
        assert coordinator.dispatch_count == 1

    @pytest.mark.asyncio
    async def test_flush_waits_for_slow_handler(self, clock):
        finished = []

        async def slow(context):
            await asyncio.sleep(0.05)
            finished.append(context.url)

        matcher = RouteMatcher([SiteEntry("example.com", [RouteRule("/", slow)])])
        coordinator = DispatchCoordinator(
            matcher, StaticContextProvider(), delay_ms=DELAY_MS, clock=clock
        )

        coordinator.on_raw_url_signal("https://example.com/x")
        while coordinator.is_pending:
            await asyncio.sleep(0.005)
        assert finished == []
        await coordinator.flush()

        assert finished == ["https://example.com/x"]


class TestStaticContextProvider:
    """Tests for StaticContextProvider."""

    def test_location_fields(self):
        context = StaticContextProvider(title="Shop")("https://x.com/shop?q=1#top", 5.0)
        assert context.hostname == "x.com"
        assert context.pathname == "/shop"
        assert context.search == "?q=1"
        assert context.hash == "#top"
        assert context.title == "Shop"
        assert context.timestamp == 5.0

    def test_query_inside_fragment_belongs_to_hash(self):
        context = StaticContextProvider()("https://x.com/app#/list?page=2", 0.0)
        assert context.pathname == "/app"
        assert context.hash == "#/list?page=2"
        assert context.search == ""


class TestCDPContextProvider:
    """Tests for CDPContextProvider."""

    @pytest.fixture
    def mock_session(self):
        session = AsyncMock()
        session.send = AsyncMock(return_value={})
        return session

    @pytest.mark.asyncio
    async def test_reads_page_snapshot(self, mock_session):
        mock_session.send.return_value = {
            "result": {
                "type": "object",
                "value": {
                    "url": "https://example.com/old",
                    "title": "Orders",
                    "hostname": "example.com",
                    "pathname": "/orders",
                    "userAgent": "Mozilla/5.0",
                    "language": "en-US",
                    "windowWidth": 1280,
                    "windowHeight": 720,
                    "screenWidth": 1920,
                    "screenHeight": 1080,
                    "documentReady": "interactive",
                },
            }
        }
        provider = CDPContextProvider(mock_session)
        context = await provider("https://example.com/orders", 42.0)

        assert context.url == "https://example.com/orders"
        assert context.title == "Orders"
        assert context.user_agent == "Mozilla/5.0"
        assert context.viewport == (1280, 720)
        assert context.screen == (1920, 1080)
        assert context.timestamp == 42.0
        assert context.document_ready == DocumentReadyState.INTERACTIVE

        method, params = mock_session.send.call_args[0]
        assert method == "Runtime.evaluate"
        assert params["returnByValue"] is True

    @pytest.mark.asyncio
    async def test_falls_back_on_cdp_error(self, mock_session):
        mock_session.send.side_effect = CDPError(-32000, "Execution context was destroyed")
        context = await CDPContextProvider(mock_session)("https://example.com/a?b=1", 1.0)

        assert context.pathname == "/a"
        assert context.search == "?b=1"
        assert context.document_ready == DocumentReadyState.LOADING

    @pytest.mark.asyncio
    async def test_falls_back_on_script_exception(self, mock_session):
        mock_session.send.return_value = {
            "result": {"type": "object"},
            "exceptionDetails": {"text": "Uncaught"},
        }
        context = await CDPContextProvider(mock_session)("https://example.com/", 1.0)
        assert context.hostname == "example.com"
