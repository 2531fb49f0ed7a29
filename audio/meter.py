import threading, math
from dataclasses import dataclass

_EPS = 1e-12

def lin_to_dbfs(x: float) -> float:
    return 20.0 * math.log10(max(_EPS, x))


@dataclass(frozen=True)
class MeterSnapshot:
    frames: int
    peak_pre: float
    peak_post: float
    rms: float
    limited_blocks: int
    max_voices: int

    @property
    def peak_pre_db(self) -> float:
        return lin_to_dbfs(self.peak_pre)

    @property
    def peak_post_db(self) -> float:
        return lin_to_dbfs(self.peak_post)

    @property
    def rms_db(self) -> float:
        return lin_to_dbfs(self.rms)


class AudioMeter:
    """
    Real-time meter with ~1s windows.
    Called from audio callback (update) and from a logger thread (snapshot).
    """
    def __init__(self, window_sec: float = 1.0):
        self.window_sec = window_sec
        self.lock = threading.Lock()
        self._reset_locked()

    def _reset_locked(self):
        # accumulators for current window
        self.frames = 0
        self.sum_sq = 0.0
        self.peak_post = 0.0       # post-limiter peak in this window
        self.peak_pre = 0.0        # pre-limiter peak in this window
        self.limiter_engaged = 0   # how many blocks had limiting
        self.max_voices = 0

    def update(self, pre_peak: float, post_peak: float, block_rms: float,
               limited: bool, frames: int, voices: int = 0):
        with self.lock:
            self.frames += frames
            self.sum_sq += (block_rms * block_rms) * frames
            self.peak_post = max(self.peak_post, post_peak)
            self.peak_pre = max(self.peak_pre, pre_peak)
            self.max_voices = max(self.max_voices, voices)
            if limited:
                self.limiter_engaged += 1

    def snapshot_and_reset(self) -> MeterSnapshot:
        with self.lock:
            rms = math.sqrt(self.sum_sq / self.frames) if self.frames > 0 else 0.0
            snap = MeterSnapshot(frames=self.frames,
                                 peak_pre=self.peak_pre,
                                 peak_post=self.peak_post,
                                 rms=rms,
                                 limited_blocks=self.limiter_engaged,
                                 max_voices=self.max_voices)
            self._reset_locked()
            return snap
