from dataclasses import dataclass
from typing import Optional
import matplotlib.pyplot as plt
import numpy as np


@dataclass(frozen=True)
class EnvelopeParameters:
    """
    Attack/sustain/release envelope settings.
    Times are in seconds; peak is a linear level in [0,1].
    """
    attack: float = 0.01
    release: float = 0.3
    peak: float = 0.3


def plot_envelope(params: EnvelopeParameters, t_total: float,
                  t_release: Optional[float] = None, sr: int = 44100):
    """Plot from gate-on for `t_total` seconds, with optional gate-off at `t_release`."""
    from .ar import attack_level, release_level

    seconds = float(t_total)
    assert seconds > 0.0
    t = np.arange(int(seconds * sr)) / sr

    if t_release is None:
        y = attack_level(params, t)
    else:
        # clamp gate-off to the window
        t_off = min(max(0.0, float(t_release)), seconds)
        y = attack_level(params, t)
        after = t >= t_off
        start_level = attack_level(params, t_off)
        y[after] = release_level(start_level, params.release, t[after] - t_off)

    fig, ax = plt.subplots(figsize=(8, 3))
    ax.plot(t, y, lw=1.2)
    ax.set_ylim(-0.05, 1.05)
    ax.set_xlabel("Time [s]")
    ax.set_ylabel("Envelope")
    title = f"attack {params.attack:.3f}s, peak {params.peak:.2f}"
    if t_release is not None:
        title += f", gate-off @{t_release:.3f}s, release {params.release:.3f}s"
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig, ax
