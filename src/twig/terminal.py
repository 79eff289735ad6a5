"""Terminal handling for the interactive selector."""

import os
import select
import sys
import termios
import tty
from typing import Optional, TextIO

from rich.console import Console
from rich.live import Live

from twig.logger import get_logger
from twig.render import branch_list
from twig.selector import Key, KeyEvent, SelectionState

logger = get_logger(__name__)

ESCAPE_TIMEOUT = 0.05  # seconds to wait for the rest of an escape sequence

ESCAPE_SEQUENCES = {
    b"\x1b[A": Key.UP,
    b"\x1bOA": Key.UP,
    b"\x1b[B": Key.DOWN,
    b"\x1bOB": Key.DOWN,
    b"\x1b[5~": Key.PAGE_UP,
    b"\x1b[6~": Key.PAGE_DOWN,
    b"\x1b[H": Key.HOME,
    b"\x1bOH": Key.HOME,
    b"\x1b[1~": Key.HOME,
    b"\x1b[F": Key.END,
    b"\x1bOF": Key.END,
    b"\x1b[4~": Key.END,
    b"\x1b": Key.ESCAPE,
}

# Longest first, without the lone ESC
SEQUENCE_LENGTHS = sorted({len(sequence) for sequence in ESCAPE_SEQUENCES if len(sequence) > 1}, reverse=True)

CONTROL_KEYS = {
    b"\r": Key.ENTER,
    b"\n": Key.ENTER,
    b"\x7f": Key.BACKSPACE,
    b"\x08": Key.BACKSPACE,
    b"\x03": Key.INTERRUPT,
    b"\x04": Key.INTERRUPT,
    b"\x0e": Key.DOWN,  # Ctrl-N
    b"\x10": Key.UP,  # Ctrl-P
}


class TerminalError(Exception):
    """The terminal cannot be used interactively."""


def decode_key(data: bytes) -> KeyEvent:
    """Decode the bytes of one key press."""
    if data in CONTROL_KEYS:
        return KeyEvent(CONTROL_KEYS[data])
    if data.startswith(b"\x1b"):
        return KeyEvent(ESCAPE_SEQUENCES.get(data, Key.UNKNOWN))
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return KeyEvent(Key.UNKNOWN)
    if len(text) == 1 and text.isprintable():
        return KeyEvent(Key.CHAR, text)
    return KeyEvent(Key.UNKNOWN)


def _utf8_length(lead: int) -> int:
    if 0xC0 <= lead <= 0xDF:
        return 2
    if 0xE0 <= lead <= 0xEF:
        return 3
    if 0xF0 <= lead <= 0xF7:
        return 4
    return 1


def _csi_end(data: bytes) -> Optional[int]:
    """Index just past the final byte of a CSI sequence, or None if it hasn't arrived."""
    for index in range(2, len(data)):
        if 0x40 <= data[index] <= 0x7E:
            return index + 1
    return None


def key_incomplete(data: bytes) -> bool:
    """Whether more bytes may still belong to the first key in data."""
    if not data:
        return True
    if data[:1] == b"\x1b":
        if data in (b"\x1b", b"\x1bO"):
            return True
        return data.startswith(b"\x1b[") and _csi_end(data) is None
    return len(data) < _utf8_length(data[0])


def split_key(data: bytes) -> tuple[bytes, bytes]:
    """Split the bytes of the first key press off a burst of input.

    Known escape sequences are matched longest first. Any other CSI sequence
    runs to its final byte so it is dropped whole rather than leaking
    characters. A lone ESC followed by anything else is the Escape key.
    """
    if data.startswith(b"\x1b"):
        for size in SEQUENCE_LENGTHS:
            if data[:size] in ESCAPE_SEQUENCES:
                return data[:size], data[size:]
        if data.startswith(b"\x1b["):
            end = _csi_end(data) or len(data)
            return data[:end], data[end:]
        if data.startswith(b"\x1bO") and len(data) >= 3:
            return data[:3], data[3:]
        return data[:1], data[1:]
    size = _utf8_length(data[0])
    return data[:size], data[size:]


class RawTerminal:
    """Owns the terminal while the selector runs.

    Entering switches stdin to cbreak mode (no echo, no line buffering,
    Ctrl-C still raises KeyboardInterrupt) and starts a transient inline
    display. Exiting stops the display and restores the saved settings.
    """

    def __init__(self, console: Optional[Console] = None, stdin: Optional[TextIO] = None) -> None:
        self.console = console or Console()
        self.stdin = stdin or sys.stdin
        self.original_settings: Optional[list] = None
        self.live: Optional[Live] = None
        self.buffer = b""

    def __enter__(self) -> "RawTerminal":
        if not self.stdin.isatty():
            raise TerminalError("twig needs an interactive terminal")
        self.fd = self.stdin.fileno()
        self.original_settings = termios.tcgetattr(self.fd)
        try:
            tty.setcbreak(self.fd)
            self.live = Live(console=self.console, auto_refresh=False, transient=True)
            self.live.start()
        except BaseException:
            self._restore()
            raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            if self.live is not None:
                self.live.stop()
                self.live = None
        finally:
            self._restore()

    def _restore(self) -> None:
        if self.original_settings is not None:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, self.original_settings)
            self.original_settings = None

    def render(self, state: SelectionState) -> None:
        if self.live is not None:
            self.live.update(branch_list(state), refresh=True)

    def _pending(self) -> bool:
        ready, _, _ = select.select([self.fd], [], [], ESCAPE_TIMEOUT)
        return bool(ready)

    def read_key(self) -> KeyEvent:
        """Block until a key is pressed.

        Escape sequences and multi-byte characters arrive as a burst, and a
        held or fast-typed key can put several presses in one burst. Only the
        first key is decoded; the rest stays buffered for the next call.
        """
        if not self.buffer:
            self.buffer = os.read(self.fd, 1)
            if not self.buffer:
                # stdin closed
                return KeyEvent(Key.INTERRUPT)
        while key_incomplete(self.buffer) and self._pending():
            chunk = os.read(self.fd, 16)
            if not chunk:
                break
            self.buffer += chunk
        data, self.buffer = split_key(self.buffer)
        event = decode_key(data)
        if event.key is Key.UNKNOWN:
            logger.debug("Ignoring unknown key %r", data)
        return event
