import numpy as np
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Union

from .envelopes.ar import attack_level, release_level
from .envelopes.base import EnvelopeParameters
from .signals.osc import Oscillator, Waveform, make_oscillator
from .tuning import Note


class VoiceState(Enum):
    ATTACKING = auto()   # ramping up to peak
    SUSTAINING = auto()  # holding peak until released
    RELEASING = auto()   # ramping down to silence
    RETIRED = auto()     # disconnected, resources released


@dataclass(eq=False)
class Voice:
    """
    One sounding note: an oscillator shaped by an attack/sustain/release
    envelope. Timing is absolute (scheduler clock seconds); the envelope is
    evaluated at whatever times the sink asks for.
    """
    note: Note
    freq: float
    waveform: Waveform
    params: EnvelopeParameters
    start_time: float
    state: VoiceState = VoiceState.ATTACKING
    release_time: Optional[float] = None
    release_start: float = 0.0
    release_secs: float = 0.0
    osc: Oscillator = field(init=False, repr=False)

    def __post_init__(self):
        self.osc = make_oscillator(self.waveform)

    # ---- lifecycle ----
    @property
    def is_live(self) -> bool:
        return self.state in (VoiceState.ATTACKING, VoiceState.SUSTAINING)

    def attack_done(self) -> None:
        if self.state == VoiceState.ATTACKING:
            self.state = VoiceState.SUSTAINING

    def begin_release(self, t: float, release: float) -> float:
        """
        Start the release ramp at time `t` from the level reached at `t`.
        Returns that level. No-op once releasing or retired.
        """
        if not self.is_live:
            return self.release_start
        self.release_start = float(self.amplitude_at(t))
        self.release_secs = max(0.0, float(release))
        # release_time last: the audio thread keys off it
        self.release_time = float(t)
        self.state = VoiceState.RELEASING
        return self.release_start

    def retire(self) -> None:
        self.state = VoiceState.RETIRED

    def release_end(self) -> Optional[float]:
        if self.release_time is None:
            return None
        return self.release_time + self.release_secs

    # ---- envelope ----
    def amplitude_at(self, t: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        if self.state == VoiceState.RETIRED:
            return np.zeros_like(t, dtype=np.float64) if isinstance(t, np.ndarray) else 0.0

        # times before start_time happen when a block began just before the trigger
        since_start = np.maximum(np.asarray(t, dtype=np.float64) - self.start_time, 0.0)
        level = attack_level(self.params, since_start)

        rel_t = self.release_time
        if rel_t is not None:
            since_rel = np.asarray(t, dtype=np.float64) - rel_t
            released = release_level(self.release_start, self.release_secs,
                                     np.maximum(since_rel, 0.0))
            level = np.where(since_rel >= 0.0, released, level)

        if isinstance(t, np.ndarray):
            return np.asarray(level, dtype=np.float64)
        return float(level)

    # ---- render ----
    def render(self, frames: int, sr: int, t0: float) -> np.ndarray:
        """Return `frames` samples starting at clock time `t0`."""
        times = t0 + np.arange(frames, dtype=np.float64) / float(sr)
        env = self.amplitude_at(times)
        raw = self.osc.render(self.freq, frames, sr)
        return (raw * env).astype(np.float32)
