from dataclasses import dataclass
from typing import Optional, Union

import mido

@dataclass(frozen=True)
class NoteOn:
    note: int
    velocity: int
    channel: int = 0

@dataclass(frozen=True)
class NoteOff:
    note: int
    velocity: int = 0
    channel: int = 0

Event = Union[NoteOn, NoteOff]


def from_mido(msg: mido.Message) -> Optional[Event]:
    """Translate a mido message; anything but note on/off gives None."""
    channel = getattr(msg, 'channel', 0)
    if msg.type == 'note_on' and msg.velocity > 0:
        return NoteOn(msg.note, msg.velocity, channel)
    if msg.type == 'note_off' or (msg.type == 'note_on' and msg.velocity == 0):
        return NoteOff(msg.note, 0, channel)
    return None
