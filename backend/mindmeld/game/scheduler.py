"""Cancellable one-shot timers for round submission deadlines."""

from __future__ import annotations

import threading
from typing import Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def schedule(self, delay_sec: float, callback: Callable[[], None]) -> TimerHandle: ...


class ThreadingTimerHandle:
    def __init__(self, timer: threading.Timer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        # Safe after the timer fired or was already cancelled.
        self._timer.cancel()


class ThreadingScheduler:
    """Runs callbacks on daemon timers so an armed round never blocks process exit.

    Under eventlet monkey patching these are green threads.
    """

    def schedule(self, delay_sec: float, callback: Callable[[], None]) -> ThreadingTimerHandle:
        timer = threading.Timer(delay_sec, callback)
        timer.daemon = True
        timer.start()
        return ThreadingTimerHandle(timer)
