"""Signal handling for the ``Service.run`` wait phase."""

import functools
import signal
import threading
from typing import Any, Callable

from loguru import logger

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class ShutdownSignal:
    """
    One-shot shutdown notification.

    ``wait()`` blocks until ``notify()`` is called, either directly or by
    one of the subscribed OS signals. Only the first notification counts.
    """

    def __init__(self, signals: tuple[signal.Signals, ...] = SHUTDOWN_SIGNALS):
        self.signals = signals
        self.received: signal.Signals | None = None
        self._event = threading.Event()
        self._lock = threading.RLock()
        self._previous: dict[signal.Signals, Any] = {}

    @property
    def is_set(self) -> bool:
        return self._event.is_set()

    def notify(self, signum: signal.Signals | None = None) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self.received = signum
            self._event.set()

    def _signal_handler(self, signum: int, frame: Any) -> None:
        sig = signal.Signals(signum)
        logger.info(f"Received {sig.name}, shutting down")
        self.notify(sig)

    def install_handlers(self) -> None:
        """Subscribe to the shutdown signals. Call from the main thread."""
        for sig in self.signals:
            self._previous[sig] = signal.signal(sig, self._signal_handler)
        logger.debug(f"Signal handlers registered ({', '.join(s.name for s in self.signals)})")

    def restore_handlers(self) -> None:
        while self._previous:
            sig, handler = self._previous.popitem()
            signal.signal(sig, handler)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until notified. Returns False if *timeout* elapsed first."""
        return self._event.wait(timeout)


def wait_for_signal(shutdown: ShutdownSignal | None = None) -> None:
    """Default run wait: block until SIGTERM or SIGINT arrives."""
    shutdown = shutdown or ShutdownSignal()
    shutdown.install_handlers()
    try:
        shutdown.wait()
    finally:
        shutdown.restore_handlers()


def once(fn: Callable[[], None]) -> Callable[[], None]:
    """Wrap *fn* so that only the first call runs it."""
    lock = threading.Lock()
    done = False

    @functools.wraps(fn)
    def wrapper() -> None:
        nonlocal done
        with lock:
            if done:
                return
            done = True
        fn()

    return wrapper
