import numpy as np
from typing import Union
from .base import EnvelopeParameters

Time = Union[float, np.ndarray]


def _elapsed(t: Time) -> Time:
    # negative time is a caller bug; with -O it is clamped instead
    assert np.all(np.asarray(t) >= 0.0), f"negative elapsed time: {t}"
    if isinstance(t, np.ndarray):
        return np.maximum(t, 0.0)
    return max(0.0, float(t))


def attack_level(params: EnvelopeParameters, elapsed: Time) -> Time:
    """
    Amplitude `elapsed` seconds after gate-on: linear 0 -> peak over
    `params.attack`, then held at peak (sustain) until released.
    """
    t = _elapsed(elapsed)
    if params.attack <= 0.0:
        if isinstance(t, np.ndarray):
            return np.full(t.shape, params.peak, dtype=np.float64)
        return params.peak
    ramp = np.minimum(t / params.attack, 1.0) * params.peak
    return ramp if isinstance(t, np.ndarray) else float(ramp)


def release_level(start_level: float, release: float, elapsed: Time) -> Time:
    """
    Amplitude `elapsed` seconds after gate-off: linear start_level -> 0 over
    `release` seconds. The ramp starts from whatever level was reached, so an
    early release is as long as a late one but starts lower.
    """
    t = _elapsed(elapsed)
    if release <= 0.0:
        if isinstance(t, np.ndarray):
            return np.zeros(t.shape, dtype=np.float64)
        return 0.0
    ramp = start_level * (1.0 - np.minimum(t / release, 1.0))
    return ramp if isinstance(t, np.ndarray) else float(ramp)
