"""
Chrome DevTools Protocol (CDP) transport for pagehook.

- CDPConnection: WebSocket connection to a running Chrome/Chromium
- CDPSession: session for one page target
- TargetManager: discovers page targets and attaches sessions
- resolve_ws_endpoint: turns ``http://host:port`` into the browser WebSocket URL

Example usage:
    ```python
    from pagehook.cdp import CDPConnection, TargetManager, resolve_ws_endpoint

    ws_url = await resolve_ws_endpoint("http://127.0.0.1:9222")
    async with CDPConnection(ws_url) as connection:
        targets = TargetManager(connection)
        for info in await targets.get_pages():
            session = await targets.attach(info["targetId"])
            await session.send("Page.enable")
    ```
"""

from pagehook.cdp.connection import (
    CDPConnection,
    CDPError,
    EventCallback,
    resolve_ws_endpoint,
)
from pagehook.cdp.session import (
    CDPSession,
    TargetManager,
)

__all__ = [
    # Connection
    "CDPConnection",
    "CDPError",
    "EventCallback",
    "resolve_ws_endpoint",
    # Session
    "CDPSession",
    "TargetManager",
]
