import argparse
import logging
import os
import threading

from audio.engine import AudioEngine, BLOCK, SR
from audio.sink import SinkUnavailableError
from controls.keyboard import KeyboardBinding
from instruments.polyphonic import VoiceManager
from instruments.settings import Settings
from instruments.signals.osc import Waveform
from instruments.tuning import MAX_OCTAVE, MIN_OCTAVE
from sequencing.clock import TimerScheduler

_LOG = logging.getLogger("synth80")


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="[%(asctime)s] %(levelname)s:%(name)s: %(message)s",
    )


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Play a polyphonic synth from the QWERTY or a MIDI keyboard'
    )
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(
        '--list-midi-inputs', action='store_true', help='list available MIDI inputs'
    )
    group.add_argument(
        '--midi', metavar='PORT_SUBSTRING', help='play via the first MIDI input whose name contains this'
    )
    group.add_argument(
        '--qwerty', action='store_true', help='play via QWERTY keyboard (a..k, z/x change octave)'
    )
    parser.add_argument(
        '--waveform', choices=[w.value for w in Waveform], default=Waveform.SINE.value
    )
    parser.add_argument('--octave', type=int, default=4, help=f'{MIN_OCTAVE}..{MAX_OCTAVE}')
    parser.add_argument('--volume', type=float, default=0.3, help='peak level 0..1')
    parser.add_argument('--attack', type=float, default=0.01, help='seconds, 0..1')
    parser.add_argument('--release', type=float, default=0.3, help='seconds, 0..2')
    parser.add_argument('--blocksize', type=int, default=BLOCK)
    parser.add_argument('--record', metavar='WAV_PATH', help='also record the output')
    return parser.parse_args(args)


def run(parsed: argparse.Namespace) -> None:
    settings = Settings(waveform=parsed.waveform, octave=parsed.octave,
                        peak=parsed.volume, attack=parsed.attack, release=parsed.release)
    scheduler = TimerScheduler()
    engine = AudioEngine(scheduler.now, sr=SR, blocksize=parsed.blocksize,
                         record_to=parsed.record)
    try:
        engine.start()
    except SinkUnavailableError:
        _LOG.warning("starting without audio output; notes will retry the device")

    stop_evt = threading.Event()
    with engine, VoiceManager(engine, settings, scheduler) as manager:
        _LOG.info("%r", settings)
        if parsed.midi is not None:
            from midi.input import MidiBinding, start_midi_listener
            start_midi_listener(MidiBinding(manager), parsed.midi, stop_evt)
            _LOG.info("Ctrl+C to quit.")
            try:
                stop_evt.wait()
            except KeyboardInterrupt:
                stop_evt.set()
        else:
            from controls.qwerty import QwertyListener
            listener = QwertyListener(KeyboardBinding(manager))
            with listener.listen():
                _LOG.info("Ctrl+C to quit.")
                try:
                    listener.listener.join()
                except KeyboardInterrupt:
                    pass
    scheduler.cancel_all()
    _LOG.info("That's all, folks!")


def main(args: list[str] | None = None) -> None:
    configure_logging()
    parsed = parse_args(args)
    if parsed.list_midi_inputs:
        from midi.input import list_midi_inputs
        for name in list_midi_inputs():
            print(name)
        return
    run(parsed)


if __name__ == "__main__":
    main()
