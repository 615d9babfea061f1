"""Flush timer scheduling for batch buckets."""

import threading
from typing import Callable, Protocol


class ScheduledHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs a callback once after a delay without blocking the caller."""

    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> ScheduledHandle: ...


class ThreadingTimerScheduler:
    """Scheduler backed by daemon ``threading.Timer`` threads."""

    def schedule(
        self, delay_seconds: float, callback: Callable[[], None]
    ) -> threading.Timer:
        timer = threading.Timer(delay_seconds, callback)
        timer.daemon = True
        timer.start()
        return timer
