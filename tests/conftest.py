"""Shared fixtures: a hand-driven timeline so voice lifecycles are deterministic."""

import heapq
import itertools

import matplotlib
matplotlib.use("Agg")

import pytest

from audio.sink import OfflineSink
from instruments.polyphonic import VoiceManager
from instruments.settings import Settings


class ManualHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Clock and scheduler in one; time only moves through advance()."""

    def __init__(self, start: float = 100.0):
        self.t = float(start)
        self._queue = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self.t

    def call_later(self, delay, fn):
        handle = ManualHandle()
        heapq.heappush(self._queue, (self.t + max(0.0, delay), next(self._seq), fn, handle))
        return handle

    def pending(self) -> int:
        return sum(1 for *_, h in self._queue if not h.cancelled)

    def advance(self, dt: float) -> None:
        """Move time forward by dt, firing due callbacks in order."""
        end = self.t + dt
        while self._queue and self._queue[0][0] <= end + 1e-12:
            when, _, fn, handle = heapq.heappop(self._queue)
            self.t = max(self.t, when)
            if not handle.cancelled:
                fn()
        self.t = end

    def fire_cancelled(self) -> int:
        """Run callbacks that were cancelled, as a platform timer that ignores cancel() would."""
        fired = 0
        for _, _, fn, handle in list(self._queue):
            if handle.cancelled:
                fn()
                fired += 1
        return fired


@pytest.fixture
def timeline():
    return ManualScheduler()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def sink(timeline):
    return OfflineSink(timeline.now)


@pytest.fixture
def manager(sink, settings, timeline):
    mgr = VoiceManager(sink, settings, timeline)
    yield mgr
    mgr.shutdown()
