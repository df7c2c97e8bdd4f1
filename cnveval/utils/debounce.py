"""Cancelable single-shot delayed trigger."""

from typing import Any, Callable, Optional
import logging
import threading

logger = logging.getLogger(__name__)

DEFAULT_QUIET_PERIOD = 2.0


class DebouncedTrigger:
    """Run a callback once parameters stop changing for a quiet period.

    Each ``schedule()`` cancels the pending run, if any, and starts a new
    timer. Only the last scheduled run fires.
    """

    def __init__(
        self,
        callback: Callable[[], Any],
        delay: float = DEFAULT_QUIET_PERIOD,
        timer_factory: Callable[..., Any] = threading.Timer
    ):
        """Initialize trigger.

        Args:
            callback: Function run when the quiet period elapses.
            delay: Quiet period in seconds.
            timer_factory: Builds a timer from ``(delay, function)``; must
                return an object with ``start()`` and ``cancel()``.
        """
        if delay < 0:
            raise ValueError(f"Delay must be non-negative: {delay}")
        self.callback = callback
        self.delay = delay
        self.timer_factory = timer_factory
        self._timer: Optional[Any] = None
        self._lock = threading.RLock()

    @property
    def pending(self) -> bool:
        """Check if a run is scheduled and has not fired yet."""
        return self._timer is not None

    def schedule(self) -> None:
        """Cancel any pending run and schedule a new one."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                logger.debug("Cancelled pending recomputation")
            timer = self.timer_factory(self.delay, lambda: self._fire(timer))
            if hasattr(timer, "daemon"):
                timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> None:
        """Cancel the pending run, if any."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def flush(self) -> bool:
        """Run the pending callback now instead of waiting.

        Returns:
            True if a pending run was executed.
        """
        with self._lock:
            if self._timer is None:
                return False
            self._timer.cancel()
            self._timer = None
        self.callback()
        return True

    def _fire(self, timer: Any) -> None:
        with self._lock:
            # a superseded timer may fire after losing the race with cancel()
            if self._timer is not timer:
                return
            self._timer = None
        self.callback()
