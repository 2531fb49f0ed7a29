"""Pytest test suite for the frequency table."""

import pytest

from instruments.tuning import (
    Note, PITCH_CLASSES, frequency_of, midi_to_freq, note_for_midi,
)

# published octave-4 key frequencies, 2 decimals
REFERENCE = {
    'C': 261.63, 'C#': 277.18, 'D': 293.66, 'D#': 311.13, 'E': 329.63, 'F': 349.23,
    'F#': 369.99, 'G': 392.00, 'G#': 415.30, 'A': 440.00, 'A#': 466.16, 'B': 493.88,
}


class TestFrequencyOf:

    def test_a4_is_440hz(self):
        assert frequency_of(Note('A'), 4) == pytest.approx(440.0, abs=0.01)

    def test_c4_is_middle_c(self):
        assert frequency_of(Note('C'), 4) == pytest.approx(261.63, abs=0.01)

    def test_a5_doubles(self):
        assert frequency_of(Note('A'), 5) == pytest.approx(880.0, abs=0.01)

    @pytest.mark.parametrize("pitch", PITCH_CLASSES)
    def test_matches_reference_table(self, pitch):
        assert frequency_of(Note(pitch), 4) == pytest.approx(REFERENCE[pitch], abs=0.01)

    def test_top_c_of_the_span_is_one_octave_up(self):
        assert frequency_of(Note('C', 1), 4) == pytest.approx(523.25, abs=0.01)
        assert frequency_of(Note('C', 1), 3) == pytest.approx(frequency_of(Note('C'), 4))

    def test_octave_range_extremes(self):
        assert frequency_of(Note('A'), 1) == pytest.approx(55.0)
        assert frequency_of(Note('A'), 7) == pytest.approx(3520.0)


class TestNote:

    def test_hashable_and_equal_by_value(self):
        assert Note('C') == Note('C', 0)
        assert len({Note('C'), Note('C'), Note('C', 1)}) == 2

    def test_unknown_pitch_rejected(self):
        with pytest.raises(ValueError):
            Note('H')

    @pytest.mark.parametrize("name, expected", [
        ("C", Note('C')), ("c#", Note('C#')), ("C+1", Note('C', 1)), ("A-1", Note('A', -1)),
    ])
    def test_from_name(self, name, expected):
        assert Note.from_name(name) == expected

    def test_str(self):
        assert str(Note('D#')) == 'D#'
        assert str(Note('C', 1)) == 'C+1'


class TestMidi:

    def test_note_for_midi_sounds_the_midi_frequency(self):
        for number in (48, 60, 61, 69, 72, 83):
            for octave in (3, 4, 5):
                note = note_for_midi(number, octave)
                assert frequency_of(note, octave) == pytest.approx(midi_to_freq(number))

    def test_middle_c(self):
        assert note_for_midi(60, 4) == Note('C')
        assert note_for_midi(72, 4) == Note('C', 1)
