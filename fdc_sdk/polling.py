"""
Cancellable waiting for the polling stages of the attestation workflow.

Both the finalization wait and the DA proof polling sleep between queries.
They go through a `Poller` so tests can inject a fake clock and sleeper and
callers can enforce deadlines or cancel a wait from another thread.
"""
import threading
import time
from typing import Callable, Optional

from .exceptions import OperationCancelled

Sleeper = Callable[[float], None]
Clock = Callable[[], float]


class Poller:
    """
    Sleep/deadline/cancellation helper shared by the polling stages.

    Args:
        sleep: Function used to wait, defaults to time.sleep (or the
            cancellation event's wait when one is given)
        clock: Monotonic clock used for deadlines
        cancel_event: Event that aborts the wait when set
        stage: Stage name reported by OperationCancelled
    """

    def __init__(
        self,
        sleep: Optional[Sleeper] = None,
        clock: Optional[Clock] = None,
        cancel_event: Optional[threading.Event] = None,
        stage: str = "unknown"
    ):
        self._sleep = sleep
        self._clock = clock or time.monotonic
        self.cancel_event = cancel_event
        self.stage = stage

    def now(self) -> float:
        return self._clock()

    def deadline(self, timeout: Optional[float]) -> Optional[float]:
        """Absolute deadline for a timeout in seconds, or None for no deadline."""
        if timeout is None:
            return None
        return self.now() + timeout

    def expired(self, deadline: Optional[float]) -> bool:
        return deadline is not None and self.now() >= deadline

    def remaining(self, deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        return max(0.0, deadline - self.now())

    def check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise OperationCancelled("Operation was cancelled", stage=self.stage)

    def pause(self, seconds: float, deadline: Optional[float] = None) -> None:
        """
        Wait for `seconds`, never past `deadline`.

        Raises:
            OperationCancelled: If the cancellation event is set before or
                during the wait
        """
        self.check_cancelled()
        remaining = self.remaining(deadline)
        if remaining is not None:
            seconds = min(seconds, remaining)
        if seconds > 0:
            if self._sleep is not None:
                self._sleep(seconds)
            elif self.cancel_event is not None:
                self.cancel_event.wait(seconds)
            else:
                time.sleep(seconds)
        self.check_cancelled()
