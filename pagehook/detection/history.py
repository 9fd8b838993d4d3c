"""
History API change detection over CDP.

Single-page applications change routes through ``history.pushState`` /
``history.replaceState`` and react to ``popstate`` without ever loading a
new document. A hook script wraps those entry points inside the page and
reports ``location.href`` back through a Runtime binding.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pagehook.cdp.connection import CDPError
from pagehook.config.defaults import DEFAULT_BINDING_NAME
from pagehook.detection.base import NavigationNotifier

logger = logging.getLogger(__name__)


# Installed once per document; frames other than the top one are ignored.
HISTORY_HOOK_SCRIPT = """
(() => {
    if (window !== window.top) return;
    const flag = '__{binding}Installed';
    if (window[flag]) return;
    Object.defineProperty(window, flag, { value: true });

    const notify = () => {
        try {
            window['{binding}'](location.href);
        } catch (e) {}
    };

    for (const name of ['pushState', 'replaceState']) {
        const original = history[name];
        history[name] = function () {
            const result = original.apply(this, arguments);
            notify();
            return result;
        };
    }

    window.addEventListener('popstate', notify);
})();
"""


def build_hook_script(binding_name: str = DEFAULT_BINDING_NAME) -> str:
    """Render the hook script for a binding name."""
    return HISTORY_HOOK_SCRIPT.replace("{binding}", binding_name)


class HistoryHookDetector(NavigationNotifier):
    """Reports pushState, replaceState and popstate navigation of a page.

    Example:
        detector = HistoryHookDetector(session)
        await detector.start(coordinator.on_raw_url_signal)
    """

    def __init__(
        self,
        session: Any,
        *,
        binding_name: str = DEFAULT_BINDING_NAME,
    ) -> None:
        """Initialize detector.

        Args:
            session: CDP session of the page (``send``/``on``/``off``).
            binding_name: Name of the Runtime binding the hooks call.
        """
        super().__init__()
        self._session = session
        self._binding_name = binding_name
        self._script = build_hook_script(binding_name)
        self._script_id: Optional[str] = None

    @property
    def binding_name(self) -> str:
        return self._binding_name

    async def current_url(self) -> str:
        result = await self._session.send(
            "Runtime.evaluate",
            {"expression": "location.href", "returnByValue": True},
        )
        return result.get("result", {}).get("value", "")

    def _on_binding_called(self, params: dict[str, Any]) -> None:
        if params.get("name") != self._binding_name:
            return
        url = params.get("payload", "")
        if url:
            self._emit(url)

    async def _install(self) -> None:
        self._session.on("Runtime.bindingCalled", self._on_binding_called)
        await self._session.send("Runtime.enable")
        await self._session.send("Runtime.addBinding", {"name": self._binding_name})

        result = await self._session.send(
            "Page.addScriptToEvaluateOnNewDocument",
            {"source": self._script},
        )
        self._script_id = result.get("identifier")

        # Hook the document that is already loaded
        await self._session.send(
            "Runtime.evaluate",
            {"expression": self._script, "returnByValue": True},
        )

    async def _uninstall(self) -> None:
        self._session.off("Runtime.bindingCalled", self._on_binding_called)
        try:
            if self._script_id is not None:
                await self._session.send(
                    "Page.removeScriptToEvaluateOnNewDocument",
                    {"identifier": self._script_id},
                )
            await self._session.send("Runtime.removeBinding", {"name": self._binding_name})
        except (CDPError, RuntimeError) as e:
            logger.debug(f"History hook cleanup incomplete: {e}")
        finally:
            self._script_id = None
