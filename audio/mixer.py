from __future__ import annotations
from typing import List, Protocol
import numpy as np
import threading


class Renderable(Protocol):
    def render(self, frames: int, sr: int, t0: float) -> np.ndarray: ...


class VoiceMixer:
    """
    Thread-safe voice sum. Voices are connected/disconnected from control
    threads and rendered from the audio thread.
    1/sqrt(N) gain comp + master, where N = nb of connected voices
    """
    def __init__(self, master: float = 1.0, alpha: float = 0.25):
        self._voices: List[Renderable] = []
        self._lock = threading.Lock()
        self.master = float(master)
        self.alpha = float(alpha)
        self._last_gain = self.master


    ###########################################################################
    ##                        VOICE MANAGEMENT                               ##
    ###########################################################################

    def add(self, voice: Renderable) -> None:
        with self._lock:
            if not any(v is voice for v in self._voices):
                self._voices.append(voice)

    def remove(self, voice: Renderable) -> bool:
        with self._lock:
            for i, v in enumerate(self._voices):
                if v is voice:
                    del self._voices[i]
                    return True
            return False

    def clear(self) -> None:
        with self._lock:
            self._voices.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._voices)

    def __contains__(self, voice: object) -> bool:
        with self._lock:
            return any(v is voice for v in self._voices)


    ###########################################################################
    ##                             RENDERING                                 ##
    ###########################################################################

    def _smoothing_gain(self, target_gain: float) -> float:
        """
        Smoothes gain changes
        """
        return (1 - self.alpha) * self._last_gain + self.alpha * target_gain

    def render(self, frames: int, sr: int, t0: float, channels: int = 1) -> np.ndarray:
        """
        Sum all voices into mono (channels==1) or dual-mono (channels==2).
        """
        if channels not in (1, 2):
            raise ValueError("Only mono or stereo mixing supported currently.")

        # snapshot outside of audio work
        with self._lock:
            voices = list(self._voices)

        mix = np.zeros(frames, dtype=np.float32)
        for v in voices:
            mix += v.render(frames, sr, t0)

        gain = self._smoothing_gain(self.master / np.sqrt(max(1, len(voices))))
        self._last_gain = gain
        mix *= gain

        if channels == 1:
            return mix
        return np.repeat(mix[:, None], 2, axis=1)
