# Vault - Idle Auto-Lock
#
# Background thread that locks the vault after a period with no activity.
# Callers touch() on every user action; the watcher polls and calls
# controller.lock(), which is serialized against in-flight operations by
# the controller's own lock.

import logging
import threading
import time
from typing import Callable, Optional

from ..core import EventSeverity, EventType, get_audit_logger

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0  # seconds


class IdleLocker:
    """Locks a VaultController after ``timeout_seconds`` of inactivity.

    Usage::

        locker = IdleLocker(controller, timeout_seconds=300)
        locker.start()
        ...
        locker.touch()   # on each command
        ...
        locker.stop()
    """

    def __init__(
        self,
        controller,
        timeout_seconds: float,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        on_lock: Optional[Callable[[], None]] = None,
    ):
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.controller = controller
        self.timeout = timeout_seconds
        self.poll_interval = poll_interval
        self._clock = clock
        self._on_lock = on_lock

        self._last_activity = clock()
        self._activity_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def touch(self) -> None:
        """Record user activity, resetting the idle timer."""
        with self._activity_lock:
            self._last_activity = self._clock()

    def idle_seconds(self) -> float:
        with self._activity_lock:
            return self._clock() - self._last_activity

    def seconds_remaining(self) -> float:
        return max(0.0, self.timeout - self.idle_seconds())

    def check(self) -> bool:
        """Lock the vault if the idle timeout has passed. Returns True if it locked."""
        if self.idle_seconds() < self.timeout or self.controller.is_locked():
            return False

        self.controller.lock()
        logger.info("Vault auto-locked after %.0fs idle", self.idle_seconds())
        get_audit_logger().log_event(
            event_type=EventType.VAULT_AUTOLOCKED,
            severity=EventSeverity.INFO,
            message="Vault auto-locked due to inactivity",
            details={"timeout_seconds": self.timeout},
        )
        if self._on_lock is not None:
            self._on_lock()
        return True

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self.touch()
        self._thread = threading.Thread(
            target=self._run, name="strongbox-autolock", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop_event.wait(self.poll_interval):
            try:
                self.check()
            except Exception:
                logger.exception("Auto-lock check failed")
