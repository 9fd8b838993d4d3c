"""
Debounced handler dispatch.

- DispatchCoordinator: coalesces URL signals and invokes the matching handler
- DispatchState: per-page debounce and duplicate-suppression bookkeeping
- CDPContextProvider / StaticContextProvider: build the PageContext snapshot
"""

from pagehook.dispatch.context import (
    SNAPSHOT_SCRIPT,
    CDPContextProvider,
    ContextProvider,
    StaticContextProvider,
)
from pagehook.dispatch.coordinator import DispatchCoordinator
from pagehook.dispatch.state import DispatchState

__all__ = [
    "DispatchCoordinator",
    "DispatchState",
    # Context
    "ContextProvider",
    "CDPContextProvider",
    "StaticContextProvider",
    "SNAPSHOT_SCRIPT",
]
