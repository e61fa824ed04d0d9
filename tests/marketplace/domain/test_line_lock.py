"""Tests for per-order-line locking."""

import threading
import time

import pytest
from marketplace.shared import locks
from marketplace.shared.errors import LineBusyError
from marketplace.shared.locks import line_lock, order_lock


class TestLineLock:
    def test_lock_is_released_after_use(self):
        with line_lock("OD-LOCK-1"):
            pass
        with line_lock("OD-LOCK-1", blocking=False):
            pass

    def test_lock_is_released_on_error(self):
        with pytest.raises(RuntimeError):
            with line_lock("OD-LOCK-2"):
                raise RuntimeError("boom")
        with line_lock("OD-LOCK-2", blocking=False):
            pass

    def test_non_blocking_acquire_fails_when_held(self):
        with line_lock("OD-LOCK-3"):
            with pytest.raises(LineBusyError) as exc:
                with line_lock("OD-LOCK-3", blocking=False):
                    pass
        assert exc.value.secret_order_id == "OD-LOCK-3"

    def test_timeout_acquire_fails_when_held_elsewhere(self):
        held = threading.Event()
        release = threading.Event()

        def holder():
            with line_lock("OD-LOCK-4"):
                held.set()
                release.wait(timeout=5)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(timeout=5)
        try:
            with pytest.raises(LineBusyError):
                with line_lock("OD-LOCK-4", timeout=0.05):
                    pass
        finally:
            release.set()
            thread.join()

    def test_different_lines_do_not_block_each_other(self):
        with line_lock("OD-LOCK-5"):
            with line_lock("OD-LOCK-6", blocking=False):
                pass


class TestLockRegistry:
    def test_registry_is_empty_after_release(self):
        with line_lock("OD-REG-1"):
            assert "OD-REG-1" in locks._line_locks
        assert "OD-REG-1" not in locks._line_locks

    def test_registry_is_empty_after_busy_attempt(self):
        with line_lock("OD-REG-2"):
            with pytest.raises(LineBusyError):
                with line_lock("OD-REG-2", blocking=False):
                    pass
            assert locks._line_locks["OD-REG-2"].users == 1
        assert "OD-REG-2" not in locks._line_locks

    def test_entry_survives_while_a_waiter_remains(self):
        held = threading.Event()
        acquired = []

        def waiter():
            held.wait(timeout=5)
            with line_lock("OD-REG-3", timeout=5):
                acquired.append(True)

        thread = threading.Thread(target=waiter)
        with line_lock("OD-REG-3"):
            thread.start()
            held.set()
            for _ in range(500):
                if locks._line_locks["OD-REG-3"].users == 2:
                    break
                time.sleep(0.01)
            assert locks._line_locks["OD-REG-3"].users == 2
        thread.join()

        assert acquired == [True]
        assert "OD-REG-3" not in locks._line_locks

    def test_many_lines_leave_no_entries(self):
        for i in range(50):
            with line_lock(f"OD-REG-MANY-{i}"):
                pass
        assert not any(key.startswith("OD-REG-MANY-") for key in locks._line_locks)


class TestOrderLock:
    def test_order_lock_times_out_when_held_elsewhere(self):
        held = threading.Event()
        release = threading.Event()

        def holder():
            with order_lock("OD-ORDER-1"):
                held.set()
                release.wait(timeout=5)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(timeout=5)
        try:
            with pytest.raises(LineBusyError):
                with order_lock("OD-ORDER-1", timeout=0.05):
                    pass
        finally:
            release.set()
            thread.join()
        assert "OD-ORDER-1" not in locks._order_locks

    def test_order_and_line_locks_are_separate(self):
        with line_lock("OD-SAME-KEY"):
            with order_lock("OD-SAME-KEY", timeout=0.05):
                pass
