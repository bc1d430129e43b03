"""Cross-platform keyboard input handling for the terminal UI."""

import sys
import threading
import time
from typing import Optional, Callable, Iterable
import logging

logger = logging.getLogger(__name__)

SPACE = " "
ESCAPE = "\x1b"
ENTER_KEYS = ("\r", "\n")


def _get_key_windows(timeout: float) -> Optional[str]:
    """Get key on Windows."""
    import msvcrt
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if msvcrt.kbhit():
            return msvcrt.getwch().lower()
        time.sleep(0.01)
    return None


def _get_key_unix(timeout: float) -> Optional[str]:
    """Get key on Unix/Linux/macOS."""
    import select
    import tty
    import termios

    fd = sys.stdin.fileno()
    try:
        old_settings = termios.tcgetattr(fd)
    except termios.error as e:
        raise OSError(f"stdin is not a terminal: {e}") from e
    try:
        # cbreak keeps Ctrl+C working while delivering single characters
        tty.setcbreak(fd)
        if select.select([sys.stdin], [], [], timeout)[0]:
            key = sys.stdin.read(1)
            logger.debug(f"Raw key read: {key!r}")
            return key.lower()
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
    return None


def get_key(timeout: float = 0.1) -> Optional[str]:
    """Get a single keypress in a cross-platform way, or None after timeout."""
    if sys.platform == "win32":
        return _get_key_windows(timeout)
    return _get_key_unix(timeout)


def wait_for_key(keys: Iterable[str], key_reader: Callable[[float], Optional[str]] = get_key) -> str:
    """Block until one of keys is pressed and return it."""
    wanted = set(keys)
    while True:
        key = key_reader(0.1)
        if key in wanted:
            return key


class KeyboardInputHandler:
    """Reads keys on a background thread and hands them to a callback."""

    def __init__(self,
                 callback: Callable[[str], bool],
                 debounce_seconds: float = 0.0,
                 key_reader: Callable[[float], Optional[str]] = get_key):
        """Initialize keyboard handler.

        Args:
            callback: Function that takes a key and returns True to continue, False to stop listening
            debounce_seconds: Ignore keys for this long after start()
            key_reader: Function returning one key or None after a timeout
        """
        self.callback = callback
        self.debounce_seconds = debounce_seconds
        self.key_reader = key_reader
        self.running = False
        self.thread: Optional[threading.Thread] = None
        self._started_at = 0.0

    def start(self) -> None:
        """Start the keyboard input handler."""
        if self.running:
            return

        self.running = True
        self._started_at = time.monotonic()
        self.thread = threading.Thread(target=self._input_loop, daemon=True)
        self.thread.name = "KeyboardInputThread"
        self.thread.start()
        logger.debug("Keyboard input handler started")

    def stop(self) -> None:
        """Stop the keyboard input handler."""
        self.running = False
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=1.0)
        logger.debug("Keyboard input handler stopped")

    def _input_loop(self) -> None:
        """Main input handling loop."""
        while self.running:
            try:
                key = self.key_reader(0.05)
            except (OSError, ValueError) as e:
                # stdin is not a terminal; nothing more can be read
                logger.error(f"Keyboard input unavailable: {e}")
                break
            if not key:
                continue
            if time.monotonic() - self._started_at < self.debounce_seconds:
                logger.debug(f"Debounced key {key!r}")
                continue
            if not self.callback(key):
                break
        self.running = False


def recording_key_handler(controller,
                          debounce_seconds: float = 0.15,
                          key_reader: Callable[[float], Optional[str]] = get_key) -> KeyboardInputHandler:
    """Keyboard handler for an active recording: SPACE/Enter stops, ESC cancels."""
    def on_key(key: str) -> bool:
        if key == ESCAPE:
            controller.cancel()
            return False
        if key == SPACE or key in ENTER_KEYS:
            controller.request_stop()
            return False
        return True

    return KeyboardInputHandler(on_key, debounce_seconds=debounce_seconds, key_reader=key_reader)
