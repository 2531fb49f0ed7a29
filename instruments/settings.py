import threading
from typing import Union

from .envelopes.base import EnvelopeParameters
from .signals.osc import Waveform
from .tuning import REFERENCE_OCTAVE, MIN_OCTAVE, MAX_OCTAVE

MAX_ATTACK = 1.0
MAX_RELEASE = 2.0


def _clamp(x: float, lo: float, hi: float) -> float:
    return float(max(lo, min(hi, x)))


class Settings:
    """
    Performance settings shared by the controls and the voice manager.
    Setters clamp to the allowed range, so the engine never sees invalid
    values. Voices read a snapshot (`envelope()`) when triggered.
    """

    def __init__(self, waveform: Union[Waveform, str] = Waveform.SINE,
                 octave: int = REFERENCE_OCTAVE,
                 peak: float = 0.3, attack: float = 0.01, release: float = 0.3):
        self._lock = threading.Lock()
        self._waveform = Waveform.SINE
        self._octave = REFERENCE_OCTAVE
        self._peak = self._attack = self._release = 0.0
        self.waveform = waveform
        self.octave = octave
        self.peak = peak
        self.attack = attack
        self.release = release

    @property
    def waveform(self) -> Waveform:
        return self._waveform

    @waveform.setter
    def waveform(self, value: Union[Waveform, str]) -> None:
        # Waveform("bogus") raises ValueError
        wf = Waveform(value.lower() if isinstance(value, str) else value)
        with self._lock:
            self._waveform = wf

    @property
    def octave(self) -> int:
        return self._octave

    @octave.setter
    def octave(self, value: int) -> None:
        with self._lock:
            self._octave = int(_clamp(int(round(value)), MIN_OCTAVE, MAX_OCTAVE))

    def octave_up(self) -> int:
        self.octave = self.octave + 1
        return self.octave

    def octave_down(self) -> int:
        self.octave = self.octave - 1
        return self.octave

    @property
    def peak(self) -> float:
        return self._peak

    @peak.setter
    def peak(self, value: float) -> None:
        with self._lock:
            self._peak = _clamp(value, 0.0, 1.0)

    @property
    def attack(self) -> float:
        return self._attack

    @attack.setter
    def attack(self, value: float) -> None:
        with self._lock:
            self._attack = _clamp(value, 0.0, MAX_ATTACK)

    @property
    def release(self) -> float:
        return self._release

    @release.setter
    def release(self, value: float) -> None:
        with self._lock:
            self._release = _clamp(value, 0.0, MAX_RELEASE)

    def envelope(self) -> EnvelopeParameters:
        with self._lock:
            return EnvelopeParameters(attack=self._attack, release=self._release, peak=self._peak)

    def __repr__(self) -> str:
        return (f"Settings(waveform={self.waveform.value}, octave={self.octave}, "
                f"peak={self.peak:.2f}, attack={self.attack:.2f}s, release={self.release:.2f}s)")
