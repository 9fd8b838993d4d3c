"""
Page sessions over a shared browser connection.

Sessions are attached in flattened mode, so every page session multiplexes
over the browser websocket and is addressed by its ``sessionId``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from pagehook.cdp.connection import CDPConnection, CDPError, EventCallback

logger = logging.getLogger(__name__)


class CDPSession:
    """Commands and events scoped to one page target.

    Example:
        session = await CDPSession.create(connection, target_id)
        session.on("Page.loadEventFired", on_load)
        await session.send("Page.enable")
    """

    def __init__(self, connection: CDPConnection, target_id: str, session_id: str) -> None:
        self._connection = connection
        self._target_id = target_id
        self._session_id = session_id
        self._closed = False

    @classmethod
    async def create(cls, connection: CDPConnection, target_id: str) -> "CDPSession":
        """Attach to ``target_id`` and wrap the new session."""
        reply = await connection.send(
            "Target.attachToTarget",
            {"targetId": target_id, "flatten": True},
        )
        logger.debug(f"Attached to target {target_id} as {reply['sessionId']}")
        return cls(connection, target_id, reply["sessionId"])

    @property
    def target_id(self) -> str:
        return self._target_id

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def is_connected(self) -> bool:
        return not self._closed and self._connection.is_connected

    async def send(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """Send a command to the page.

        Raises:
            CDPError: If the page answers with an error.
            RuntimeError: If the session was detached.
        """
        if self._closed:
            raise RuntimeError(f"Session {self._session_id} is detached")
        return await self._connection.send(method, params, session_id=self._session_id, timeout=timeout)

    def on(self, event: str, handler: EventCallback) -> None:
        self._connection.on(event, handler, session_id=self._session_id)

    def off(self, event: str, handler: EventCallback) -> None:
        self._connection.off(event, handler, session_id=self._session_id)

    async def detach(self) -> None:
        """Detach from the page and drop this session's listeners."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._connection.send("Target.detachFromTarget", {"sessionId": self._session_id})
        except (CDPError, RuntimeError) as e:
            # The page may already be gone
            logger.debug(f"Detaching {self._session_id}: {e}")
        self._connection.remove_session_handlers(self._session_id)

    async def __aenter__(self) -> "CDPSession":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.detach()


class TargetManager:
    """Tracks the page targets of a browser and their sessions."""

    def __init__(self, connection: CDPConnection) -> None:
        self._connection = connection
        self._sessions: dict[str, CDPSession] = {}
        self._watchers: list[tuple[str, EventCallback]] = []

    @property
    def sessions(self) -> dict[str, CDPSession]:
        return dict(self._sessions)

    async def get_pages(self) -> list[dict[str, Any]]:
        """Target infos of all open pages."""
        reply = await self._connection.send("Target.getTargets")
        return [info for info in reply.get("targetInfos", []) if info.get("type") == "page"]

    async def attach(self, target_id: str) -> CDPSession:
        """Return the live session of a page, attaching if there is none."""
        existing = self._sessions.get(target_id)
        if existing is not None and existing.is_connected:
            return existing

        self._sessions[target_id] = await CDPSession.create(self._connection, target_id)
        return self._sessions[target_id]

    async def detach(self, target_id: str) -> None:
        session = self._sessions.pop(target_id, None)
        if session is not None:
            await session.detach()

    async def watch_pages(
        self,
        callback: Callable[[dict[str, Any]], Any],
        on_closed: Optional[Callable[[str], Any]] = None,
    ) -> None:
        """Call ``callback`` with the target info of every page opened from now on.

        ``on_closed`` is called with the id of every target that goes away.
        """

        def on_target_created(params: dict[str, Any]) -> Any:
            info = params.get("targetInfo", {})
            if info.get("type") != "page":
                return None
            return callback(info)

        def on_target_destroyed(params: dict[str, Any]) -> Any:
            return on_closed(params.get("targetId", ""))

        watchers: list[tuple[str, EventCallback]] = [("Target.targetCreated", on_target_created)]
        if on_closed is not None:
            watchers.append(("Target.targetDestroyed", on_target_destroyed))
        for event, handler in watchers:
            self._connection.on(event, handler)
        self._watchers.extend(watchers)
        await self._connection.send("Target.setDiscoverTargets", {"discover": True})

    async def close(self) -> None:
        """Stop watching for pages and detach all sessions."""
        for event, handler in self._watchers:
            self._connection.off(event, handler)
        self._watchers.clear()
        for target_id in list(self._sessions):
            await self.detach(target_id)
