import mido
import pytest

from controls.keyboard import KEYMAP, KeyboardBinding
from instruments.tuning import Note, midi_to_freq
from midi.input import MidiBinding
from midi.messages import NoteOff, NoteOn, from_mido


@pytest.fixture
def keys(manager):
    return KeyboardBinding(manager)


class TestKeyboard:

    def test_layout_covers_one_octave_plus_top_c(self):
        assert len(KEYMAP) == 13
        assert KEYMAP['a'] == Note('C')
        assert KEYMAP['h'] == Note('A')
        assert KEYMAP['k'] == Note('C', 1)

    def test_key_down_up(self, keys, manager, timeline):
        assert keys.key_down('a') == Note('C')
        assert manager.active_notes() == {Note('C')}
        keys.key_up('a')
        timeline.advance(1.0)
        assert manager.active_notes() == frozenset()

    def test_case_insensitive(self, keys, manager):
        keys.key_down('H')
        assert manager.active_notes() == {Note('A')}

    def test_auto_repeat_ignored(self, keys, manager, timeline):
        keys.key_down('a')
        voice = manager.voice_for(Note('C'))
        keys.key_up('a')
        timeline.advance(0.05)
        # a flagged repeat must not re-press a releasing note
        assert keys.key_down('a', repeat=True) is None
        assert manager.voice_for(Note('C')) is voice

    def test_repeated_press_without_flag_ignored(self, keys, manager):
        keys.key_down('s')
        voice = manager.voice_for(Note('D'))
        assert keys.key_down('s') is None
        assert manager.voice_for(Note('D')) is voice

    def test_unmapped_keys_do_nothing(self, keys, manager):
        assert keys.key_down('q') is None
        assert keys.key_up('q') is None
        assert keys.key_down('') is None
        assert manager.active_notes() == frozenset()

    def test_octave_keys(self, keys, manager):
        keys.key_down('x'); keys.key_up('x')
        keys.key_down('x'); keys.key_up('x')
        assert manager.settings.octave == 6
        keys.key_down('z')
        assert manager.settings.octave == 5

    def test_octave_change_while_held_releases_same_key(self, keys, manager, timeline):
        keys.key_down('h')
        assert manager.voice_for(Note('A')).freq == pytest.approx(440.0)
        keys.key_down('x')
        keys.key_up('h')
        assert manager.voice_for(Note('A')).state.name == 'RELEASING'

    def test_release_all(self, keys, manager, timeline):
        keys.key_down('a'); keys.key_down('d')
        keys.pointer_down(Note('G'))
        keys.release_all()
        timeline.advance(1.0)
        assert manager.active_notes() == frozenset()


class TestPointer:

    def test_down_up(self, keys, manager, timeline):
        keys.pointer_down(Note('E'))
        assert manager.active_notes() == {Note('E')}
        keys.pointer_up(Note('E'))
        timeline.advance(1.0)
        assert manager.active_notes() == frozenset()

    def test_leave_releases_engaged_key(self, keys, manager):
        keys.pointer_down(Note('E'))
        keys.pointer_leave(Note('E'))
        assert manager.voice_for(Note('E')).state.name == 'RELEASING'

    def test_leave_ignores_key_held_from_keyboard(self, keys, manager):
        keys.key_down('d')
        keys.pointer_leave(Note('E'))
        assert manager.voice_for(Note('E')).is_live


class TestMidi:

    def test_from_mido(self):
        assert from_mido(mido.Message('note_on', note=60, velocity=100, channel=2)) == NoteOn(60, 100, 2)
        assert from_mido(mido.Message('note_on', note=60, velocity=0)) == NoteOff(60)
        assert from_mido(mido.Message('note_off', note=61)) == NoteOff(61)
        assert from_mido(mido.Message('control_change', control=64, value=127)) is None

    def test_note_on_off(self, manager, timeline):
        binding = MidiBinding(manager)
        binding.handle_message(mido.Message('note_on', note=69, velocity=90))
        assert manager.voice_for(Note('A')).freq == pytest.approx(440.0)
        binding.handle_message(mido.Message('note_off', note=69))
        timeline.advance(1.0)
        assert manager.active_notes() == frozenset()

    def test_note_off_after_octave_change(self, manager):
        binding = MidiBinding(manager)
        binding.handle(NoteOn(60, 100))
        manager.settings.octave = 6
        binding.handle(NoteOff(60))
        assert manager.voice_for(Note('C')).state.name == 'RELEASING'

    def test_notes_held_across_an_octave_change_keep_their_own_voices(self, manager, sink):
        binding = MidiBinding(manager)
        binding.handle(NoteOn(60, 100))
        manager.settings.octave = 3
        binding.handle(NoteOn(48, 100))
        assert sink.num_connected == 2
        assert manager.voice_for(Note('C')).freq == pytest.approx(midi_to_freq(60))
        assert manager.voice_for(Note('C', -1)).freq == pytest.approx(midi_to_freq(48))

        binding.handle(NoteOff(48))
        assert manager.voice_for(Note('C')).is_live
        assert not manager.voice_for(Note('C', -1)).is_live

    def test_sounds_midi_pitch_whatever_the_octave(self, manager):
        manager.settings.octave = 6
        MidiBinding(manager).handle(NoteOn(69, 100))
        assert manager.voice_for(Note('A')).freq == pytest.approx(440.0)

    def test_channel_filter(self, manager):
        binding = MidiBinding(manager, channel=1)
        binding.handle(NoteOn(60, 100, channel=0))
        assert manager.active_notes() == frozenset()
        binding.handle(NoteOn(60, 100, channel=1))
        assert manager.active_notes() == {Note('C')}

    def test_stray_note_off_is_harmless(self, manager):
        MidiBinding(manager).handle(NoteOff(64))
        assert manager.active_notes() == frozenset()
