"""Single-winner stop trigger shared by capture, keyboard and timer threads."""

import logging
import threading
from typing import Callable, List, Optional

from ..models.session import StopReason

logger = logging.getLogger(__name__)


class ControlSignal:
    """Holds the one StopReason of a recording session.

    Any thread may call trigger(); only the first call sets the reason and
    runs the listeners, every later call is ignored.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._reason: Optional[StopReason] = None
        self._listeners: List[Callable[[StopReason], None]] = []
        self._timer: Optional[threading.Timer] = None

    @property
    def reason(self) -> Optional[StopReason]:
        return self._reason

    def is_set(self) -> bool:
        return self._event.is_set()

    def trigger(self, reason: StopReason) -> bool:
        """Record reason if nothing has won yet.

        Returns:
            True if this call won, False if a reason was already set
        """
        with self._lock:
            if self._reason is not None:
                logger.debug(f"Ignoring {reason.value}: already stopped by {self._reason.value}")
                return False
            self._reason = reason
            listeners = list(self._listeners)
            self._event.set()

        logger.info(f"Stop triggered: {reason.value}")
        for listener in listeners:
            listener(reason)
        return True

    def trigger_first(self, *reasons: StopReason) -> bool:
        """Trigger the highest-precedence of several conditions met in the same check."""
        candidates = [r for r in reasons if r is not None]
        if not candidates:
            return False
        return self.trigger(min(candidates, key=lambda r: r.precedence))

    def wait(self, timeout: Optional[float] = None) -> Optional[StopReason]:
        """Block until a reason is set or timeout expires; return the reason, if any."""
        self._event.wait(timeout)
        return self._reason

    def add_listener(self, listener: Callable[[StopReason], None]) -> None:
        """Call listener(reason) once, from the winning trigger.

        A listener added after the reason was set is called immediately.
        """
        with self._lock:
            reason = self._reason
            if reason is None:
                self._listeners.append(listener)
                return
        listener(reason)

    def arm_timer(self, seconds: float, reason: StopReason = StopReason.HARD_CAP) -> None:
        """Fire trigger(reason) after seconds, unless something else wins first."""
        self.disarm_timer()
        timer = threading.Timer(seconds, self.trigger, args=(reason,))
        timer.daemon = True
        timer.name = f"ControlSignalTimer-{reason.value}"
        self._timer = timer
        timer.start()

    def disarm_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
