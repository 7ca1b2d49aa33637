"""
Single-shot timers for preview scheduling.

The preview scheduler only needs one primitive: "call this back once after N
milliseconds, unless restarted or cancelled first". Two implementations are
provided:

- CooperativeTimer: driven by an explicit clock. Nothing happens until the
  owner calls advance(), which makes it suitable for headless use and tests.
- QtSingleShotTimer (in qt_timer.py): backed by a PyQt5 QTimer and driven by
  the Qt event loop.
"""

from typing import Callable, Optional

TimerCallback = Callable[[], None]


class PreviewTimer:
    """Interface for single-shot timers used by the PreviewScheduler."""

    def start(self, delay_ms: int, callback: TimerCallback) -> None:
        """(Re)start the timer; any earlier countdown is discarded."""
        raise NotImplementedError

    def cancel(self) -> None:
        """Stop the timer without firing."""
        raise NotImplementedError

    @property
    def is_active(self) -> bool:
        raise NotImplementedError


class CooperativeTimer(PreviewTimer):
    """
    Single-shot timer on a manually advanced clock.

    Example:
        >>> timer = CooperativeTimer()
        >>> timer.start(50, callback)
        >>> timer.advance(49)   # nothing yet
        >>> timer.advance(1)    # callback runs
    """

    MAX_FIRES_PER_ADVANCE = 1000

    def __init__(self) -> None:
        self.now_ms = 0
        self._deadline: Optional[int] = None
        self._callback: Optional[TimerCallback] = None
        self.fire_count = 0

    def start(self, delay_ms: int, callback: TimerCallback) -> None:
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0, got {delay_ms}")
        self._deadline = self.now_ms + int(delay_ms)
        self._callback = callback

    def cancel(self) -> None:
        self._deadline = None
        self._callback = None

    @property
    def is_active(self) -> bool:
        return self._deadline is not None

    @property
    def remaining_ms(self) -> Optional[int]:
        if self._deadline is None:
            return None
        return max(0, self._deadline - self.now_ms)

    def advance(self, elapsed_ms: int) -> int:
        """
        Move the clock forward and fire the callback if its deadline passed.

        A callback may restart the timer; a restarted timer fires again within
        the same call when its new deadline has also passed.

        Returns:
            Number of callbacks fired
        """
        if elapsed_ms < 0:
            raise ValueError(f"elapsed_ms must be >= 0, got {elapsed_ms}")
        self.now_ms += int(elapsed_ms)
        return self._fire_due()

    def run_until_idle(self) -> int:
        """Jump the clock to each pending deadline until the timer is inactive."""
        fired = 0
        while self._deadline is not None and fired < self.MAX_FIRES_PER_ADVANCE:
            self.now_ms = max(self.now_ms, self._deadline)
            fired += self._fire_due()
        return fired

    def _fire_due(self) -> int:
        fired = 0
        while (
            self._deadline is not None
            and self._deadline <= self.now_ms
            and fired < self.MAX_FIRES_PER_ADVANCE
        ):
            callback = self._callback
            self._deadline = None
            self._callback = None
            fired += 1
            self.fire_count += 1
            callback()
        return fired
