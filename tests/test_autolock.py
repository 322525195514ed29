"""Tests for the idle auto-lock watcher."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from strongbox.vault.autolock import IdleLocker

MASTER = "CorrectHorse1!"


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def unlocked(controller):
    controller.initialize_vault(MASTER)
    return controller


class TestIdleLocker:
    def test_rejects_non_positive_timeout(self, controller):
        with pytest.raises(ValueError):
            IdleLocker(controller, timeout_seconds=0)

    def test_no_lock_before_timeout(self, unlocked, clock):
        locker = IdleLocker(unlocked, timeout_seconds=60, clock=clock)
        clock.advance(59)
        assert locker.check() is False
        assert unlocked.is_locked() is False

    def test_locks_after_timeout(self, unlocked, clock):
        locker = IdleLocker(unlocked, timeout_seconds=60, clock=clock)
        clock.advance(60)
        assert locker.check() is True
        assert unlocked.is_locked() is True
        assert unlocked.get_services() == []

    def test_touch_resets_timer(self, unlocked, clock):
        locker = IdleLocker(unlocked, timeout_seconds=60, clock=clock)
        clock.advance(50)
        locker.touch()
        clock.advance(50)
        assert locker.check() is False
        assert locker.seconds_remaining() == 10

    def test_seconds_remaining_floors_at_zero(self, unlocked, clock):
        locker = IdleLocker(unlocked, timeout_seconds=60, clock=clock)
        clock.advance(500)
        assert locker.seconds_remaining() == 0

    def test_already_locked_is_noop(self, unlocked, clock):
        unlocked.lock()
        callback = MagicMock()
        locker = IdleLocker(unlocked, timeout_seconds=1, clock=clock, on_lock=callback)
        clock.advance(5)
        assert locker.check() is False
        callback.assert_not_called()

    def test_on_lock_callback(self, unlocked, clock):
        callback = MagicMock()
        locker = IdleLocker(unlocked, timeout_seconds=1, clock=clock, on_lock=callback)
        clock.advance(2)
        locker.check()
        callback.assert_called_once_with()

    def test_audit_event_logged(self, unlocked, clock):
        from strongbox.core import get_audit_logger

        locker = IdleLocker(unlocked, timeout_seconds=1, clock=clock)
        clock.advance(2)
        locker.check()
        log_text = get_audit_logger().log_file.read_text(encoding="utf-8")
        assert "vault.autolocked" in log_text


class TestBackgroundThread:
    def test_thread_locks_vault(self, unlocked):
        locked = threading.Event()
        locker = IdleLocker(unlocked, timeout_seconds=0.05, poll_interval=0.01, on_lock=locked.set)
        locker.start()
        try:
            assert locked.wait(5)
        finally:
            locker.stop(timeout=5)
        assert unlocked.is_locked() is True
        assert locker.running is False

    def test_stop_without_start(self, controller):
        IdleLocker(controller, timeout_seconds=10).stop()

    def test_start_is_idempotent(self, unlocked):
        locker = IdleLocker(unlocked, timeout_seconds=60, poll_interval=0.01)
        locker.start()
        first = locker._thread
        locker.start()
        try:
            assert locker._thread is first
            assert locker.running is True
        finally:
            locker.stop(timeout=5)

    def test_activity_keeps_vault_unlocked(self, unlocked):
        locker = IdleLocker(unlocked, timeout_seconds=0.5, poll_interval=0.01)
        locker.start()
        try:
            for _ in range(10):
                locker.touch()
                time.sleep(0.02)
            assert unlocked.is_locked() is False
        finally:
            locker.stop(timeout=5)
