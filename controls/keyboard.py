import logging
import threading
from typing import Dict, Optional, Set

from instruments.polyphonic import VoiceManager
from instruments.tuning import Note

_LOG = logging.getLogger("synth80.input")

# one visible octave plus the top C, home row = white keys
KEYMAP: Dict[str, Note] = {
    'a': Note('C'),  'w': Note('C#'), 's': Note('D'),  'e': Note('D#'),
    'd': Note('E'),  'f': Note('F'),  't': Note('F#'), 'g': Note('G'),
    'y': Note('G#'), 'h': Note('A'),  'u': Note('A#'), 'j': Note('B'),
    'k': Note('C', 1),
}
OCTAVE_DOWN_KEY = 'z'
OCTAVE_UP_KEY = 'x'


class KeyboardBinding:
    """
    Thin adapter from key and pointer events to VoiceManager calls.
    Any front end (pynput, a GUI toolkit, a test) feeds it raw events.
    """

    def __init__(self, manager: VoiceManager, keymap: Optional[Dict[str, Note]] = None):
        self.manager = manager
        self.keymap = dict(KEYMAP if keymap is None else keymap)
        self._held_keys: Set[str] = set()
        self._pointer_notes: Set[Note] = set()
        self._lock = threading.Lock()

    def note_for_key(self, key: str) -> Optional[Note]:
        return self.keymap.get(key.lower()) if key else None

    # ---- keyboard ----
    def key_down(self, key: str, repeat: bool = False) -> Optional[Note]:
        """
        Handle a key press. Auto-repeat is ignored, whether flagged by the
        caller or detected as a press of a key that is already down.
        """
        if not key:
            return None
        key = key.lower()
        with self._lock:
            if repeat or key in self._held_keys:
                return None
            self._held_keys.add(key)

        if key == OCTAVE_DOWN_KEY:
            _LOG.info("octave %d", self.manager.settings.octave_down())
            return None
        if key == OCTAVE_UP_KEY:
            _LOG.info("octave %d", self.manager.settings.octave_up())
            return None

        note = self.keymap.get(key)
        if note is not None:
            self.manager.trigger(note)
        return note

    def key_up(self, key: str) -> Optional[Note]:
        if not key:
            return None
        key = key.lower()
        with self._lock:
            self._held_keys.discard(key)
        note = self.keymap.get(key)
        if note is not None:
            self.manager.release(note)
        return note

    # ---- pointer ----
    def pointer_down(self, note: Note) -> None:
        with self._lock:
            self._pointer_notes.add(note)
        self.manager.trigger(note)

    def pointer_up(self, note: Note) -> None:
        with self._lock:
            self._pointer_notes.discard(note)
        self.manager.release(note)

    def pointer_leave(self, note: Note) -> None:
        # leaving a key region only matters if the pointer was pressing it
        with self._lock:
            if note not in self._pointer_notes:
                return
            self._pointer_notes.discard(note)
        self.manager.release(note)

    def release_all(self) -> None:
        with self._lock:
            keys = list(self._held_keys)
            notes = list(self._pointer_notes)
            self._held_keys.clear()
            self._pointer_notes.clear()
        for key in keys:
            note = self.keymap.get(key)
            if note is not None:
                self.manager.release(note)
        for note in notes:
            self.manager.release(note)
