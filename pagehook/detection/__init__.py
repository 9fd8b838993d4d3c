"""
Navigation change detection.

- NavigationNotifier: subscribe/start/stop interface of a change source
- HistoryHookDetector: pushState/replaceState/popstate hooks over CDP
- ManualNotifier: change source driven by explicit ``notify()`` calls
"""

from pagehook.detection.base import (
    ManualNotifier,
    NavigationNotifier,
    NotifierState,
    UrlCallback,
)
from pagehook.detection.history import (
    HISTORY_HOOK_SCRIPT,
    HistoryHookDetector,
    build_hook_script,
)

__all__ = [
    # Base
    "NavigationNotifier",
    "NotifierState",
    "ManualNotifier",
    "UrlCallback",
    # CDP
    "HistoryHookDetector",
    "HISTORY_HOOK_SCRIPT",
    "build_hook_script",
]
