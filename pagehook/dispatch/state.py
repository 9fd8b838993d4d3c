"""Dispatch state owned by one coordinator."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional


@dataclass
class DispatchState:
    """Debounce and duplicate-suppression bookkeeping for one page.

    Attributes:
        last_processed_url: URL of the last dispatch attempt.
        last_process_time: Clock reading (seconds) of that attempt.
        pending_url: Most recently signaled URL awaiting the timer.
        timer: Live debounce timer, at most one at a time.
    """

    last_processed_url: Optional[str] = None
    last_process_time: float = 0.0
    pending_url: Optional[str] = None
    timer: Optional[asyncio.TimerHandle] = None

    @property
    def is_debouncing(self) -> bool:
        return self.timer is not None

    def clear_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None
