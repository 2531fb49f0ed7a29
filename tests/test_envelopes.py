import numpy as np
import pytest

from instruments.envelopes.ar import attack_level, release_level
from instruments.envelopes.base import EnvelopeParameters, plot_envelope


class TestAttack:

    def test_starts_silent(self):
        assert attack_level(EnvelopeParameters(attack=0.1, peak=0.8), 0.0) == 0.0

    def test_monotonic_and_reaches_peak_at_attack(self):
        params = EnvelopeParameters(attack=0.2, peak=0.6)
        t = np.linspace(0.0, 0.2, 101)
        y = attack_level(params, t)
        assert np.all(np.diff(y) >= 0.0)
        assert y[-1] == pytest.approx(0.6)
        assert np.all(y[:-1] < 0.6)

    def test_linear_midpoint(self):
        params = EnvelopeParameters(attack=0.2, peak=0.6)
        assert attack_level(params, 0.1) == pytest.approx(0.3)

    def test_sustains_indefinitely(self):
        params = EnvelopeParameters(attack=0.01, peak=0.3)
        assert attack_level(params, 3600.0) == pytest.approx(0.3)

    def test_zero_attack_jumps_to_peak(self):
        params = EnvelopeParameters(attack=0.0, peak=0.5)
        assert attack_level(params, 0.0) == 0.5
        assert np.all(attack_level(params, np.zeros(4)) == 0.5)

    def test_negative_time_is_a_contract_violation(self):
        with pytest.raises(AssertionError):
            attack_level(EnvelopeParameters(), -0.01)


class TestRelease:

    def test_ramps_from_start_level(self):
        assert release_level(0.15, 0.3, 0.0) == pytest.approx(0.15)
        assert release_level(0.15, 0.3, 0.15) == pytest.approx(0.075)
        assert release_level(0.15, 0.3, 0.3) == pytest.approx(0.0)

    def test_monotonic_non_increasing(self):
        y = release_level(0.4, 0.5, np.linspace(0.0, 1.0, 200))
        assert np.all(np.diff(y) <= 0.0)
        assert y[-1] == 0.0

    def test_zero_release_is_immediate(self):
        assert release_level(0.3, 0.0, 0.0) == 0.0

    def test_stays_silent_after_ramp(self):
        assert release_level(0.3, 0.3, 10.0) == 0.0


def test_plot_envelope_with_gate_off():
    fig, ax = plot_envelope(EnvelopeParameters(attack=0.1, release=0.2, peak=0.5),
                            t_total=0.5, t_release=0.05, sr=1000)
    y = ax.lines[0].get_ydata()
    assert len(y) == 500
    # released mid-attack: never gets above the level reached at 50 ms
    assert y.max() == pytest.approx(0.25, abs=0.01)
    assert y[-1] == 0.0
