import logging
import threading
from typing import Dict, List, Optional

import mido

from instruments.polyphonic import VoiceManager
from instruments.tuning import REFERENCE_OCTAVE, Note, note_for_midi
from midi.messages import Event, NoteOn, NoteOff, from_mido

_LOG = logging.getLogger("synth80.midi")


class MidiBinding:
    """
    Routes MIDI note events to the voice manager. MIDI numbers are
    absolute pitches: each maps to a Note played at the reference octave,
    whatever the octave setting, so two held MIDI notes never share a voice.
    """

    def __init__(self, manager: VoiceManager, channel: Optional[int] = None):
        self.manager = manager
        self.channel = channel   # None = omni
        self._held: Dict[int, Note] = {}
        self._lock = threading.Lock()

    def handle(self, e: Optional[Event]) -> None:
        if e is None:
            return
        if self.channel is not None and e.channel != self.channel:
            return
        if isinstance(e, NoteOn):
            note = note_for_midi(e.note)
            with self._lock:
                if e.note in self._held:
                    return
                self._held[e.note] = note
            self.manager.trigger(note, octave=REFERENCE_OCTAVE)
        elif isinstance(e, NoteOff):
            with self._lock:
                note = self._held.pop(e.note, None)
            if note is not None:
                self.manager.release(note)

    def handle_message(self, msg: mido.Message) -> None:
        self.handle(from_mido(msg))


def list_midi_inputs() -> List[str]:
    return mido.get_input_names()


def start_midi_listener(binding: MidiBinding, port_name_substr="MIDI",
                        stop_evt: Optional[threading.Event] = None) -> Optional[threading.Thread]:
    names = list_midi_inputs()
    inp = None
    for n in names:
        if port_name_substr in n:
            inp = n; break
    if not inp and names: inp = names[0]
    if not inp:
        _LOG.warning("no MIDI inputs found")
        return None
    _LOG.info("MIDI in: %s", inp)

    if stop_evt is None:
        stop_evt = threading.Event()

    def run():
        try:
            with mido.open_input(inp) as port:
                while not stop_evt.is_set():
                    for msg in port.iter_pending():
                        binding.handle_message(msg)
                    stop_evt.wait(0.001)
        except OSError as e:
            _LOG.error("MIDI input %s failed: %s", inp, e)

    th = threading.Thread(target=run, name="MidiInputThread", daemon=True); th.start()
    return th
