import numpy as np
from enum import Enum
from .base import Signal


class Waveform(Enum):
    SINE = "sine"
    SQUARE = "square"
    SAWTOOTH = "sawtooth"
    TRIANGLE = "triangle"


class Oscillator(Signal):
    """
    Naive (aliased) periodic oscillator. Phase is kept in [0,1) cycles and
    carried over between blocks so consecutive renders join without clicks.
    """

    def __init__(self, phase: float = 0.0, gain: float = 1.0):
        self.gain = float(gain)
        self.phase = float(phase) % 1.0

    def _shape(self, ph: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def render(self, freq: float, frames: int, sr: int = 44100) -> np.ndarray:
        if frames <= 0:
            return np.zeros(0, dtype=np.float32)
        inc = float(freq) / float(sr)
        # phase of each sample in the block, then wrapped
        ph = (self.phase + inc * np.arange(frames, dtype=np.float64)) % 1.0
        self.phase = (self.phase + inc * frames) % 1.0
        return (self._shape(ph) * self.gain).astype(np.float32)

    def reset(self) -> None:
        self.phase = 0.0


class Sine(Oscillator):
    def _shape(self, ph):
        return np.sin(2.0 * np.pi * ph)


class Square(Oscillator):
    def _shape(self, ph):
        return np.where(ph < 0.5, 1.0, -1.0)


class Sawtooth(Oscillator):
    def _shape(self, ph):
        # rising ramp, zero crossing at half period
        return 2.0 * ((ph + 0.5) % 1.0) - 1.0


class Triangle(Oscillator):
    def _shape(self, ph):
        # starts at 0 going up, like the sine
        return 4.0 * np.abs(((ph + 0.75) % 1.0) - 0.5) - 1.0


OSCILLATORS = {
    Waveform.SINE: Sine,
    Waveform.SQUARE: Square,
    Waveform.SAWTOOTH: Sawtooth,
    Waveform.TRIANGLE: Triangle,
}


def make_oscillator(waveform: Waveform) -> Oscillator:
    # fresh instance per voice: phase is per-voice state
    return OSCILLATORS[Waveform(waveform)]()
