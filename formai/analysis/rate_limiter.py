import threading
import time
from collections.abc import Callable


class RateLimiter:
    """Process-wide minimum spacing between outbound API requests.

    Construct one per process and share it by reference. The check, the
    sleep and the timestamp update run under one lock, so concurrent callers
    queue up behind each other instead of sleeping a too-short interval.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request_at: float | None = None

    @property
    def last_request_at(self) -> float | None:
        return self._last_request_at

    def wait(self, interval_seconds: float) -> float:
        """Block until ``interval_seconds`` have passed since the last request.

        Records "now" as the new last-request time before returning, so the
        caller should issue its request immediately afterwards.

        Returns:
            Seconds slept (0.0 when no wait was needed).
        """
        slept = 0.0
        with self._lock:
            if interval_seconds > 0 and self._last_request_at is not None:
                elapsed = self._clock() - self._last_request_at
                if elapsed < interval_seconds:
                    slept = interval_seconds - elapsed
                    self._sleep(slept)
            self._last_request_at = self._clock()
        return slept
