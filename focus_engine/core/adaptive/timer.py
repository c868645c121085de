"""
Periodic countdown timer owned by a section session.

Runs the session's tick callback on a daemon thread at a fixed interval until
cancelled. The session cancels it exactly once, when it completes or is torn
down; ``cancel()`` is idempotent so a late double-cancel is harmless.
"""
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], "SectionTimer"]


class SectionTimer:
    """
    Fires ``callback`` every ``interval`` seconds on a background thread.

    The callback runs on the timer thread; the session it drives must guard
    its own state. Exceptions from the callback are logged and stop the
    timer, since a failing tick means the session can no longer count down.
    """

    def __init__(self, interval: float, callback: Callable[[], None]):
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")
        self.interval = interval
        self._callback = callback
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._cancelled = False

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> None:
        """
        Start ticking.

        Raises:
            RuntimeError: If the timer was already started or cancelled.
        """
        with self._lock:
            if self._cancelled:
                raise RuntimeError("Cannot start a cancelled timer")
            if self._thread is not None:
                raise RuntimeError("Timer already started")
            self._thread = threading.Thread(
                target=self._run,
                name="section-timer",
                daemon=True,
            )
            self._thread.start()

    def cancel(self) -> bool:
        """
        Stop ticking.

        Returns:
            True if this call cancelled the timer, False if it was already
            cancelled.
        """
        with self._lock:
            if self._cancelled:
                return False
            self._cancelled = True
            self._stop_event.set()
            thread = self._thread

        # The callback itself may cancel (session completes on the last tick);
        # a thread cannot join itself.
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.interval * 2)
        return True

    def _run(self) -> None:
        # Event.wait returns True once cancel() sets the event
        while not self._stop_event.wait(self.interval):
            try:
                self._callback()
            except Exception:
                logger.exception("Section timer callback failed; stopping timer")
                with self._lock:
                    self._cancelled = True
                    self._stop_event.set()
                return
