"""
Preview Scheduler.

Coalesces rapid parameter changes (a user dragging a slider) into a single
preview computation once the changes have settled.

State machine:

    IDLE --request--> PENDING --timer--> COMPUTING --done--> IDLE
                      PENDING --request--> PENDING (timer restarted)
                      COMPUTING --request--> queued, re-requested when done

At most one computation is ever in flight, and the displayed result always
reflects the most recently settled parameters. A superseded PENDING state is
simply never computed.

Example:
    >>> scheduler = PreviewScheduler(render, display, CooperativeTimer())
    >>> scheduler.request(params_a)
    >>> scheduler.request(params_b)
    >>> timer.advance(50)   # render(params_b) runs once
"""

from enum import Enum
from typing import Any, Callable, Optional
import logging

from OC_Libs.constants import DEFAULT_QUIESCENCE_MS
from OC_Libs.errors import ImageEngineError
from OC_Libs.SessionLib.preview_timers import PreviewTimer

logger = logging.getLogger(__name__)

RenderFunction = Callable[[Any], Any]
DisplayFunction = Callable[[Any], None]
ErrorFunction = Callable[[ImageEngineError], None]


class SchedulerState(Enum):
    IDLE = "idle"
    PENDING = "pending"
    COMPUTING = "computing"


class PreviewScheduler:
    """
    Debounces preview requests and runs them one at a time.

    Args:
        render: Computes a preview from a parameter snapshot
        display: Receives each finished preview
        timer: Single-shot timer providing the quiescence window
        quiescence_ms: Idle time required after the last request (default: 50)
        on_error: Optional callback for engine errors raised by ``render``
    """

    def __init__(
        self,
        render: RenderFunction,
        display: DisplayFunction,
        timer: PreviewTimer,
        quiescence_ms: int = DEFAULT_QUIESCENCE_MS,
        on_error: Optional[ErrorFunction] = None,
    ) -> None:
        if not callable(render) or not callable(display):
            raise ValueError("render and display must be callable")
        if quiescence_ms < 0:
            raise ValueError(f"quiescence_ms must be >= 0, got {quiescence_ms}")

        self._render = render
        self._display = display
        self._timer = timer
        self.quiescence_ms = int(quiescence_ms)
        self._on_error = on_error

        self._state = SchedulerState.IDLE
        self._pending: Any = None
        self._computing: Any = None
        self._queued: Any = None
        self._has_queued = False

        self.computation_count = 0
        self.last_error: Optional[ImageEngineError] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def pending_params(self) -> Any:
        """Parameters waiting for the timer, or None when not PENDING."""
        return self._pending if self._state is SchedulerState.PENDING else None

    @property
    def computing_params(self) -> Any:
        """Parameters of the computation in flight, or None."""
        return self._computing

    @property
    def is_busy(self) -> bool:
        return self._state is not SchedulerState.IDLE or self._has_queued

    def request(self, params: Any) -> None:
        """Record a parameter change and (re)start the quiescence window."""
        if self._state is SchedulerState.COMPUTING:
            self._queued = params
            self._has_queued = True
            logger.debug("Preview request queued behind running computation")
            return

        # A newer request supersedes anything left queued.
        self._queued = None
        self._has_queued = False
        self._pending = params
        self._state = SchedulerState.PENDING
        self._timer.start(self.quiescence_ms, self._on_timeout)

    def flush(self) -> bool:
        """
        Run a pending computation now instead of waiting for the timer.

        Returns:
            True if a computation ran, False if nothing was pending
        """
        if self._state is not SchedulerState.PENDING:
            return False
        self._timer.cancel()
        self._run_pending()
        return True

    def cancel(self) -> None:
        """Drop pending and queued requests and stop the timer."""
        self._timer.cancel()
        self._queued = None
        self._has_queued = False
        if self._state is SchedulerState.PENDING:
            self._pending = None
            self._state = SchedulerState.IDLE

    def _on_timeout(self) -> None:
        if self._state is not SchedulerState.PENDING:
            return
        self._run_pending()

    def _run_pending(self) -> None:
        params = self._pending
        self._pending = None
        self._computing = params
        self._state = SchedulerState.COMPUTING

        try:
            result = self._render(params)
        except ImageEngineError as exc:
            self.last_error = exc
            logger.error(f"Preview computation failed: {exc}")
            if self._on_error is not None:
                self._on_error(exc)
        else:
            self.computation_count += 1
            self.last_error = None
            self._display(result)
        finally:
            self._computing = None
            self._state = SchedulerState.IDLE
            # Hand queued params on even when render or display raised.
            if self._has_queued:
                queued = self._queued
                self._queued = None
                self._has_queued = False
                self.request(queued)
