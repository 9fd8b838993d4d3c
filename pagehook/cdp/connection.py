"""
Browser-level DevTools Protocol connection.

One websocket carries the commands and events of every attached page. Each
command gets an id whose response completes a pending future; events are
fanned out to the listeners of the page session they belong to, and to
browser-wide listeners.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any, Callable, Optional

import httpx
import websockets

logger = logging.getLogger(__name__)

EventCallback = Callable[[dict[str, Any]], Any]

# Listener key for events that carry no sessionId
BROWSER_SCOPE = ""


class CDPError(Exception):
    """Error reply to a DevTools command."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"CDP Error {code}: {message}")


async def resolve_ws_endpoint(endpoint: str, *, timeout: float = 10.0) -> str:
    """Resolve a debugger address to the browser WebSocket URL.

    ``ws://`` and ``wss://`` URLs are returned unchanged. For an
    ``http://host:port`` address the URL is read from ``/json/version``.

    Raises:
        RuntimeError: If the debugger does not report a WebSocket URL.
    """
    if endpoint.startswith(("ws://", "wss://")):
        return endpoint

    url = endpoint.rstrip("/") + "/json/version"
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(url, timeout=timeout)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            raise RuntimeError(f"Cannot query debugger at {url}: {e}") from e

    ws_url = data.get("webSocketDebuggerUrl")
    if not ws_url:
        raise RuntimeError(f"No webSocketDebuggerUrl reported by {url}")
    return ws_url


class CDPConnection:
    """WebSocket connection to a running browser.

    Example:
        async with CDPConnection("ws://127.0.0.1:9222/devtools/browser/abc") as conn:
            targets = await conn.send("Target.getTargets")
    """

    def __init__(self, ws_url: str, *, timeout: float = 30.0) -> None:
        """Initialize connection.

        Args:
            ws_url: Browser WebSocket URL (see ``resolve_ws_endpoint``).
            timeout: Default command timeout in seconds.
        """
        self._ws_url = ws_url
        self._timeout = timeout
        self._ws: Any = None
        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._listeners: dict[str, dict[str, list[EventCallback]]] = {}
        self._reader: Optional[asyncio.Task[None]] = None
        self._listener_tasks: set[asyncio.Task[Any]] = set()
        self._open = False
        self._finished = False

    @property
    def ws_url(self) -> str:
        return self._ws_url

    @property
    def is_connected(self) -> bool:
        return self._open and self._ws is not None

    async def connect(self) -> None:
        """Open the websocket and start reading messages."""
        if self._open:
            return
        if self._finished:
            raise RuntimeError("Connection was closed and cannot be reused")

        logger.debug(f"Opening DevTools websocket {self._ws_url}")
        self._ws = await websockets.connect(
            self._ws_url,
            max_size=None,
            ping_interval=30,
            ping_timeout=10,
        )
        self._open = True
        self._reader = asyncio.create_task(self._read_messages())
        logger.debug("DevTools websocket open")

    async def disconnect(self) -> None:
        """Close the websocket; commands still waiting fail with RuntimeError."""
        if self._finished:
            return
        self._finished = True
        self._open = False

        if self._reader is not None and not self._reader.done():
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass

        self._fail_pending(RuntimeError("Connection closed"))
        self._listeners.clear()

        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        logger.debug("DevTools websocket closed")

    async def send(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        *,
        session_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Send a command and wait for its result.

        Raises:
            CDPError: If the browser answers with an error.
            asyncio.TimeoutError: If no answer arrives in time.
            RuntimeError: If the connection is not open.
        """
        if not self.is_connected:
            raise RuntimeError("Not connected to CDP")

        command_id = next(self._ids)
        payload: dict[str, Any] = {"id": command_id, "method": method, "params": params or {}}
        if session_id:
            payload["sessionId"] = session_id

        waiter: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[command_id] = waiter
        try:
            await self._ws.send(json.dumps(payload))
            return await asyncio.wait_for(waiter, timeout=timeout or self._timeout)
        finally:
            self._pending.pop(command_id, None)

    def on(
        self,
        event: str,
        handler: EventCallback,
        *,
        session_id: Optional[str] = None,
    ) -> None:
        """Listen to an event, optionally only for one page session."""
        scope = self._listeners.setdefault(session_id or BROWSER_SCOPE, {})
        scope.setdefault(event, []).append(handler)

    def off(
        self,
        event: str,
        handler: EventCallback,
        *,
        session_id: Optional[str] = None,
    ) -> None:
        handlers = self._listeners.get(session_id or BROWSER_SCOPE, {}).get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def remove_session_handlers(self, session_id: str) -> None:
        """Drop every listener of a detached session."""
        self._listeners.pop(session_id, None)

    def _fail_pending(self, error: BaseException) -> None:
        for waiter in self._pending.values():
            if not waiter.done():
                waiter.set_exception(error)
        self._pending.clear()

    async def _read_messages(self) -> None:
        try:
            async for raw in self._ws:
                try:
                    message = json.loads(raw)
                except json.JSONDecodeError:
                    logger.warning(f"Unparseable DevTools message: {raw[:100]}")
                    continue
                self._handle_message(message)
        except websockets.exceptions.ConnectionClosed as e:
            logger.info(f"Browser closed the DevTools connection: {e}")
        except asyncio.CancelledError:
            pass
        finally:
            self._open = False
            self._fail_pending(RuntimeError("Connection lost"))

    def _handle_message(self, message: dict[str, Any]) -> None:
        if "id" in message:
            self._resolve(message)
        elif "method" in message:
            self._dispatch_event(
                message["method"],
                message.get("params", {}),
                message.get("sessionId"),
            )

    def _resolve(self, message: dict[str, Any]) -> None:
        waiter = self._pending.pop(message["id"], None)
        if waiter is None or waiter.done():
            return

        error = message.get("error")
        if error is not None:
            waiter.set_exception(
                CDPError(error.get("code", -1), error.get("message", "Unknown error"), error.get("data"))
            )
        else:
            waiter.set_result(message.get("result", {}))

    def _dispatch_event(self, event: str, params: dict[str, Any], session_id: Optional[str]) -> None:
        handlers: list[EventCallback] = []
        if session_id:
            handlers.extend(self._listeners.get(session_id, {}).get(event, []))
        handlers.extend(self._listeners.get(BROWSER_SCOPE, {}).get(event, []))

        for handler in handlers:
            try:
                result = handler(params)
                if asyncio.iscoroutine(result):
                    task = asyncio.create_task(result)
                    self._listener_tasks.add(task)
                    task.add_done_callback(self._listener_done)
            except Exception as e:
                logger.exception(f"Listener for {event} failed: {e}")

    def _listener_done(self, task: asyncio.Task[Any]) -> None:
        self._listener_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Async listener failed: {task.exception()!r}")

    async def __aenter__(self) -> "CDPConnection":
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()
