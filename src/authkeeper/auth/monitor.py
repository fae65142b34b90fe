"""Background liveness check.

:class:`LivenessMonitor` calls a function at a fixed interval on a daemon
thread until it is stopped.  The session manager uses it to log idle
sessions out even when the application sends no traffic.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class LivenessMonitor:
    """Run *check* every *interval* seconds until :meth:`stop` is called.

    The interval is measured from the end of one tick to the start of the
    next, so ticks never overlap.  An exception raised by *check* is logged
    and the monitor keeps running.

    Args:
        check: Zero-argument callable invoked on each tick.
        interval: Seconds between ticks.
        name: Thread name, useful in thread dumps.
    """

    def __init__(
        self,
        check: Callable[[], None],
        interval: float,
        name: str = "authkeeper-liveness",
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._check = check
        self._interval = interval
        self._name = name
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        """Whether the monitor thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start ticking.  Calling it on a running monitor does nothing."""
        if self.running:
            return
        self._stopped.clear()
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        logger.debug("Liveness monitor started (every %ss)", self._interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop ticking and wait up to *timeout* seconds for the thread to exit.

        A tick already in progress is allowed to finish.  Stopping a monitor
        that is not running is a no-op.
        """
        self._stopped.set()
        thread = self._thread
        if thread is None:
            return
        if thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None
        logger.debug("Liveness monitor stopped")

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            try:
                self._check()
            except Exception:
                logger.exception("Liveness check failed")
