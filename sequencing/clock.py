import threading, time
from typing import Callable, Protocol


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """
    Time source plus one-shot timed callbacks. Voice lifecycle transitions
    are scheduled against it instead of being polled.
    """
    def now(self) -> float: ...
    def call_later(self, delay: float, fn: Callable[[], None]) -> Handle: ...


class TimerScheduler:
    """
    Wall-clock scheduler: perf_counter time base, one daemon
    threading.Timer per callback.
    """

    def __init__(self, name: str = "VoiceTimer"):
        self.name = name
        self._timers: "set[threading.Timer]" = set()
        self._lock = threading.Lock()

    def now(self) -> float:
        return time.perf_counter()

    def call_later(self, delay: float, fn: Callable[[], None]) -> threading.Timer:
        def run():
            with self._lock:
                self._timers.discard(timer)
            fn()

        timer = threading.Timer(max(0.0, float(delay)), run)
        timer.name = self.name
        timer.daemon = True
        with self._lock:
            self._timers.add(timer)
        timer.start()
        return timer

    def pending(self) -> int:
        with self._lock:
            return len(self._timers)

    def cancel_all(self) -> None:
        with self._lock:
            timers = list(self._timers)
            self._timers.clear()
        for t in timers:
            t.cancel()
