from typing import Callable, Optional, Protocol
import numpy as np

from audio.mixer import VoiceMixer, Renderable


class SinkUnavailableError(RuntimeError):
    """The audio output cannot accept voices right now (device missing, stream failed...)."""


class AudioSink(Protocol):
    """Shared audio output voices are connected to while they sound."""
    def connect(self, voice: Renderable) -> None:
        """Start rendering `voice`. Raises SinkUnavailableError."""
        ...

    def disconnect(self, voice: Renderable) -> None:
        """Stop rendering `voice`. Idempotent."""
        ...


class OfflineSink:
    """
    Device-less sink: voices are mixed on demand into numpy buffers.
    `available` can be switched off to emulate a failing output.
    """

    def __init__(self, clock: Callable[[], float], sr: int = 44100,
                 channels: int = 1, master: float = 1.0):
        self.clock = clock
        self.sr = int(sr)
        self.channels = int(channels)
        self.mixer = VoiceMixer(master=master)
        self.available = True

    def connect(self, voice: Renderable) -> None:
        if not self.available:
            raise SinkUnavailableError("offline sink disabled")
        self.mixer.add(voice)

    def disconnect(self, voice: Renderable) -> None:
        self.mixer.remove(voice)

    @property
    def num_connected(self) -> int:
        return len(self.mixer)

    def render(self, frames: int, t0: Optional[float] = None) -> np.ndarray:
        t = self.clock() if t0 is None else float(t0)
        return self.mixer.render(frames, self.sr, t, channels=self.channels)
