import logging
import threading
from typing import Dict, FrozenSet, Optional, Union

from audio.sink import AudioSink, SinkUnavailableError
from sequencing.clock import Handle, Scheduler, TimerScheduler
from .settings import Settings
from .signals.osc import Waveform
from .tuning import Note, frequency_of
from .voice import Voice, VoiceState

_LOG = logging.getLogger("synth80.voices")

# extra time after a release ramp before the voice is torn down
TEARDOWN_MARGIN = 0.1


class VoiceManager:
    """
    One voice per note. Voices are built from a settings snapshot at
    trigger time, connected to the shared sink, and retired by a scheduled
    callback once their release ramp is over.

    The registry is the authoritative set of sounding notes. It is only
    touched under `_lock`; lifecycle callbacks check they still own their
    registry entry before acting, so a late callback is a no-op.
    """

    def __init__(self, sink: AudioSink, settings: Optional[Settings] = None,
                 scheduler: Optional[Scheduler] = None,
                 teardown_margin: float = TEARDOWN_MARGIN):
        self.sink = sink
        self.settings = settings if settings is not None else Settings()
        self.scheduler = scheduler if scheduler is not None else TimerScheduler()
        self.teardown_margin = float(teardown_margin)
        self._voices: Dict[Note, Voice] = {}
        self._timers: Dict[int, Handle] = {}   # id(voice) -> pending callback
        self._lock = threading.Lock()

    ###########################################################################
    ##                              NOTE API                                 ##
    ###########################################################################

    def trigger(self, note: Note, waveform: Union[Waveform, str, None] = None,
                octave: Optional[int] = None) -> bool:
        """
        Start `note` unless it is already sounding. Returns False if the
        sink refused the voice (nothing is registered in that case).

        `octave` overrides the settings octave for this voice only; MIDI
        input uses it to sound absolute pitches.
        """
        with self._lock:
            current = self._voices.get(note)
            if current is not None:
                if current.is_live:
                    return True
                # re-press during release: the fading voice makes room
                _LOG.debug("retrigger %s during release", note)
                self._teardown_locked(note, current)

            wf = Waveform(waveform) if waveform is not None else self.settings.waveform
            if octave is None:
                octave = self.settings.octave
            voice = Voice(note=note,
                          freq=frequency_of(note, octave),
                          waveform=wf,
                          params=self.settings.envelope(),
                          start_time=self.scheduler.now())

        # connecting may open the output device; keep the registry free meanwhile
        try:
            self.sink.connect(voice)
        except SinkUnavailableError as e:
            _LOG.warning("note %s did not sound: %s", note, e)
            return False

        with self._lock:
            current = self._voices.get(note)
            taken = current is not None and current.is_live
            if not taken:
                if current is not None:
                    self._teardown_locked(note, current)
                self._voices[note] = voice
                if voice.params.attack > 0.0:
                    self._schedule_locked(voice, voice.params.attack, self._on_attack_done)
                else:
                    voice.attack_done()
        if taken:
            # a concurrent trigger registered the note first
            voice.retire()
            self.sink.disconnect(voice)
            return True
        _LOG.debug("trigger %s (%.2f Hz, %s, octave %d)", note, voice.freq, wf.value, octave)
        return True

    def release(self, note: Note) -> None:
        """Begin the release ramp of `note`; no-op if it is not live."""
        with self._lock:
            voice = self._voices.get(note)
            if voice is None or not voice.is_live:
                return
            self._cancel_locked(voice)
            release = self.settings.release
            level = voice.begin_release(self.scheduler.now(), release)
            self._schedule_locked(voice, release + self.teardown_margin, self._on_retire)
            _LOG.debug("release %s from %.3f over %.3fs", note, level, release)

    def shutdown(self) -> None:
        """Stop and disconnect every voice, whatever its phase."""
        with self._lock:
            voices = list(self._voices.items())
            for note, voice in voices:
                self._teardown_locked(note, voice)
        if voices:
            _LOG.info("shutdown: stopped %d voice(s)", len(voices))

    def active_notes(self) -> FrozenSet[Note]:
        with self._lock:
            return frozenset(self._voices)

    def voice_for(self, note: Note) -> Optional[Voice]:
        with self._lock:
            return self._voices.get(note)

    def __len__(self) -> int:
        with self._lock:
            return len(self._voices)

    def __enter__(self) -> "VoiceManager":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()

    ###########################################################################
    ##                          LIFECYCLE CALLBACKS                          ##
    ###########################################################################

    def _on_attack_done(self, voice: Voice, handle: Handle) -> None:
        with self._lock:
            # a release may already have stored its retire handle here
            if self._timers.get(id(voice)) is handle:
                del self._timers[id(voice)]
            if self._voices.get(voice.note) is voice:
                voice.attack_done()

    def _on_retire(self, voice: Voice, handle: Handle) -> None:
        with self._lock:
            # a shutdown or retrigger may have beaten us here
            if self._voices.get(voice.note) is not voice:
                return
            self._teardown_locked(voice.note, voice)
        _LOG.debug("retired %s", voice.note)

    ###########################################################################
    ##                               INTERNALS                               ##
    ###########################################################################

    def _schedule_locked(self, voice: Voice, delay: float, fn) -> None:
        handle = None

        def fire():
            fn(voice, handle)

        handle = self.scheduler.call_later(delay, fire)
        self._timers[id(voice)] = handle

    def _cancel_locked(self, voice: Voice) -> None:
        handle = self._timers.pop(id(voice), None)
        if handle is not None:
            handle.cancel()

    def _teardown_locked(self, note: Note, voice: Voice) -> None:
        self._cancel_locked(voice)
        if self._voices.get(note) is voice:
            del self._voices[note]
        if voice.state != VoiceState.RETIRED:
            voice.retire()
            self.sink.disconnect(voice)
