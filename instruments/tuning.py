from dataclasses import dataclass
from typing import Tuple

PITCH_CLASSES: Tuple[str, ...] = ("C", "C#", "D", "D#", "E", "F",
                                  "F#", "G", "G#", "A", "A#", "B")

REFERENCE_OCTAVE = 4
MIN_OCTAVE = 1
MAX_OCTAVE = 7


def equal_tempered(semitones: float, base_freq: float = 440.0,
                   n_tones: int = 12) -> float:
    """
    Equal-tempered tuning, `semitones` away from the reference (A4 by default)
    """
    return base_freq * (2 ** (semitones / n_tones))


# octave-4 fundamentals, C4 = 261.63 ... B4 = 493.88
BASE_FREQUENCIES = {name: equal_tempered(i - PITCH_CLASSES.index("A"))
                    for i, name in enumerate(PITCH_CLASSES)}


@dataclass(frozen=True)
class Note:
    """
    A key of the keyboard: pitch class plus its octave offset inside the
    visible span. The sounding octave is only applied at trigger time.
    """
    pitch: str
    shift: int = 0

    def __post_init__(self):
        if self.pitch not in BASE_FREQUENCIES:
            raise ValueError(f"unknown pitch class: {self.pitch!r}")

    @classmethod
    def from_name(cls, name: str) -> "Note":
        """Parse 'C#', 'C+1' or 'A-1'."""
        for sep in ("+", "-"):
            pitch, found, shift = name.partition(sep)
            if found and pitch:
                return cls(pitch.upper(), int(sep + shift))
        return cls(name.upper())

    @property
    def semitone(self) -> int:
        return PITCH_CLASSES.index(self.pitch)

    def __str__(self) -> str:
        if self.shift == 0:
            return self.pitch
        return f"{self.pitch}{self.shift:+d}"


def frequency_of(note: Note, octave: int) -> float:
    return BASE_FREQUENCIES[note.pitch] * (2 ** (octave + note.shift - REFERENCE_OCTAVE))


def midi_to_freq(number: int) -> float:
    return equal_tempered(int(number) - 69)


def note_for_midi(number: int, octave: int = REFERENCE_OCTAVE) -> Note:
    """
    The Note which, played at `octave`, sounds MIDI note `number`
    (MIDI 60 = C4).
    """
    number = int(number)
    return Note(PITCH_CLASSES[number % 12], number // 12 - 1 - int(octave))
