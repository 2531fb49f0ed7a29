# audio/engine.py
import logging
import sounddevice as sd
import numpy as np
import threading
import wave, queue
from typing import Callable, Optional

from audio.dsp import peak, rms, soft_clip
from audio.meter import AudioMeter
from audio.mixer import VoiceMixer, Renderable
from audio.sink import SinkUnavailableError

SR = 44100
BLOCK = 256

_LOG = logging.getLogger("synth80.engine")


class AudioEngine:
    """
    Sounddevice output implementing the voice sink. The stream is opened
    lazily by start() or by the first connect(); if the device cannot be
    opened, connect() raises SinkUnavailableError and the next call tries again.
    """
    def __init__(self, clock: Callable[[], float], sr=SR, blocksize=BLOCK, channels=1,
                 pre_gain=1.0, limiter_drive=1.3, master=1.0, meter_period=1.0,
                 device=None, record_to: Optional[str] = None):
        self.clock = clock
        self.mixer = VoiceMixer(master=master)
        self.sr = int(sr)
        self.blocksize = int(blocksize)
        self.channels = int(channels)
        self.device = device

        # processing
        self.pre_gain = float(pre_gain)
        self.limiter_drive = float(limiter_drive)

        # metering
        self.meter = AudioMeter(window_sec=meter_period)
        self._meter_period = float(meter_period)
        self._meter_thread: Optional[threading.Thread] = None

        # coordinated shutdown
        self._stop_evt = threading.Event()
        self._start_lock = threading.Lock()

        # recording
        self._record_path = record_to
        self._rec_queue: "queue.Queue[bytes]" = queue.Queue(maxsize=64)
        self._rec_run = False
        self._rec_thread: Optional[threading.Thread] = None
        self._wav: Optional[wave.Wave_write] = None

        # audio stream, opened by start()
        self.stream: Optional[sd.OutputStream] = None

    ###########################################################################
    ##                              SINK API                                 ##
    ###########################################################################

    def connect(self, voice: Renderable) -> None:
        if not self.running:
            self.start()
        self.mixer.add(voice)

    def disconnect(self, voice: Renderable) -> None:
        self.mixer.remove(voice)

    @property
    def running(self) -> bool:
        return (self.stream is not None and self.stream.active
                and not self._stop_evt.is_set())

    ###########################################################################
    ##                              LIFECYCLE                                ##
    ###########################################################################
    def start(self):
        with self._start_lock:
            if self.running:
                return
            self._stop_evt.clear()
            if self.stream is not None:
                # device went away under a started stream; reopen it
                _LOG.warning("output stream is no longer active, reopening")
                self._close_stream()
            try:
                stream = sd.OutputStream(
                    channels=self.channels,
                    samplerate=self.sr,
                    blocksize=self.blocksize,
                    device=self.device,
                    callback=self._cb,
                    latency='low'
                )
                stream.start()
            except sd.PortAudioError as e:
                _LOG.warning("audio output unavailable: %s", e)
                raise SinkUnavailableError(str(e)) from e
            self.stream = stream

            # meter thread (non-daemon: we join it)
            if self._meter_thread is None:
                self._meter_thread = threading.Thread(target=self._meter_logger, name="AudioMeterThread")
                self._meter_thread.start()

            # recording
            if self._record_path and not self._rec_run:
                self._start_recording()
            _LOG.info("output stream started: %d Hz, block %d, %d ch", self.sr, self.blocksize, self.channels)

    def stop(self):
        # tell threads to stop
        self._stop_evt.set()

        self._close_stream()

        # join meter
        if self._meter_thread:
            self._meter_thread.join(timeout=2.0)
            if self._meter_thread.is_alive():
                _LOG.warning("meter thread still alive after join()")
            self._meter_thread = None

        # stop recording
        if self._record_path:
            self._stop_recording()
        self.mixer.clear()
        _LOG.info("stop() called")

    def _close_stream(self):
        # abort() is immediate; stop() drains. abort kills the callback loop promptly
        stream, self.stream = self.stream, None
        if stream is None:
            return
        for action in (stream.abort, stream.stop, stream.close):
            try:
                action()
            except sd.PortAudioError as e:
                _LOG.debug("stream %s: %s", action.__name__, e)

    def __enter__(self) -> "AudioEngine":
        return self

    def __exit__(self, *exc) -> None:
        self.stop()


    ###########################################################################
    ##                           AUDIO CALL BACK                             ##
    ###########################################################################

    def process(self, frames: int, t0: float) -> np.ndarray:
        """Mix, gain and limit one block. Returns (frames,) or (frames, 2) float32."""
        mix = self.mixer.render(frames, self.sr, t0, channels=self.channels).astype(np.float32)

        # pre-gain
        if self.pre_gain != 1.0:
            mix *= self.pre_gain

        # limiter
        pre_peak = peak(mix)
        mix_lim = soft_clip(mix, drive=self.limiter_drive)

        post_peak = peak(mix_lim)
        if post_peak > 1.0:
            mix_lim /= post_peak
            post_peak = 1.0

        # meter (after limiting)
        limited = bool(np.any(np.abs(mix_lim - mix) > 1e-7))
        self.meter.update(pre_peak=pre_peak, post_peak=post_peak, block_rms=rms(mix_lim),
                          limited=limited, frames=frames, voices=len(self.mixer))
        return mix_lim.astype(np.float32)

    def _cb(self, outdata, frames, time_info, status):
        # if we are stopping, output silence and return, do not do work
        if self._stop_evt.is_set():
            outdata.fill(0)
            return
        if status:
            _LOG.debug("stream status: %s", status)

        mix_lim = self.process(frames, self.clock())

        # write to device
        if self.channels == 1:
            outdata[:, 0] = mix_lim
            if outdata.shape[1] > 1:
                outdata[:, 1] = mix_lim
        else:
            outdata[:, :2] = mix_lim[:, :2]

        # enqueue for recording (non-blocking)
        if self._record_path and self._rec_run and not self._stop_evt.is_set():
            blk = np.clip(mix_lim, -1.0, 1.0)
            pcm16 = (blk * 32767.0).astype(np.int16).ravel(order='C').tobytes()
            try:
                self._rec_queue.put_nowait(pcm16)
            except queue.Full:
                # drop; never block audio
                pass

    ###########################################################################
    ##                           METERING THREAD                             ##
    ###########################################################################
    def _meter_logger(self):
        period = self._meter_period

        while True:
            # wait() returns True if event was set during timeout: exit promptly
            if self._stop_evt.wait(timeout=period):
                break

            snap = self.meter.snapshot_and_reset()
            if snap.frames == 0:
                continue
            bar = self._bar(snap.peak_post_db)
            lim = " LIM" if snap.limited_blocks > 0 else ""
            _LOG.info("peak(pre/post): %+6.1f dBFS / %+6.1f dBFS | rms: %+6.1f dBFS | "
                      "voices:%2d | blocks_limited:%2d%s%s",
                      snap.peak_pre_db, snap.peak_post_db, snap.rms_db,
                      snap.max_voices, snap.limited_blocks, bar, lim)

    @staticmethod
    def _bar(db, floor=-60.0, ceil=0.0, width=20):
        db = max(floor, min(ceil, db))
        fill = int((db - floor) / (ceil - floor) * width + 0.5)
        return " [" + ("#" * fill).ljust(width, ".") + "]"


    ###########################################################################
    ##                              RECORDING                                ##
    ###########################################################################

    def _start_recording(self):
        self._wav = wave.open(self._record_path, mode='wb')
        self._wav.setnchannels(self.channels)
        self._wav.setsampwidth(2)  # 16-bit
        self._wav.setframerate(self.sr)

        self._rec_run = True
        self._rec_thread = threading.Thread(target=self._rec_writer, name="WavWriterThread")
        self._rec_thread.start()
        _LOG.info("recording to %s", self._record_path)

    def _stop_recording(self):
        self._rec_run = False
        if self._rec_thread:
            self._rec_thread.join()
            self._rec_thread = None
        if self._wav:
            try:
                self._wav.close()
            finally:
                self._wav = None

    def _rec_writer(self):
        # drain until told to stop AND queue is empty
        while self._rec_run or not self._rec_queue.empty():
            try:
                data = self._rec_queue.get(timeout=0.25)
            except queue.Empty:
                # also exit promptly if engine is stopping and no data
                if self._stop_evt.is_set():
                    break
                continue
            try:
                self._wav.writeframes(data)
            except (OSError, wave.Error) as e:
                _LOG.error("write error: %s", e)
                self._rec_run = False
