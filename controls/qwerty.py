import contextlib
import logging
from typing import Generator, Optional

import pynput

from .keyboard import KeyboardBinding

_LOG = logging.getLogger("synth80.input")


def _char(key) -> Optional[str]:
    if not isinstance(key, pynput.keyboard.KeyCode):
        return None
    return key.char


class QwertyListener:
    """
    Feeds global QWERTY key events into a KeyboardBinding.
    pynput reports auto-repeat as extra presses; the binding drops them.
    """

    def __init__(self, binding: KeyboardBinding):
        self.binding = binding
        self.listener: Optional[pynput.keyboard.Listener] = None

    def on_press(self, key) -> None:
        char = _char(key)
        if char is not None:
            self.binding.key_down(char)

    def on_release(self, key) -> None:
        char = _char(key)
        if char is not None:
            self.binding.key_up(char)

    @contextlib.contextmanager
    def listen(self) -> Generator[None, None, None]:
        self.listener = pynput.keyboard.Listener(on_press=self.on_press,
                                                 on_release=self.on_release)
        self.listener.start()
        _LOG.info("listening for QWERTY keyboard events")
        try:
            yield
        finally:
            self.listener.stop()
            self.binding.release_all()
