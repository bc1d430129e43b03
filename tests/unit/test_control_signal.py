"""Unit tests for ControlSignal."""

import threading
import time

import pytest

from speak2me.models.session import StopReason
from speak2me.recording.control import ControlSignal


@pytest.mark.unit
class TestControlSignal:
    """Test cases for the single-winner stop trigger."""

    def test_initially_unset(self):
        signal = ControlSignal()
        assert signal.reason is None
        assert not signal.is_set()
        assert signal.wait(timeout=0.01) is None

    def test_first_trigger_wins(self):
        signal = ControlSignal()
        assert signal.trigger(StopReason.SILENCE_TIMEOUT) is True
        assert signal.trigger(StopReason.CANCEL) is False
        assert signal.reason is StopReason.SILENCE_TIMEOUT
        assert signal.is_set()

    def test_trigger_first_uses_precedence(self):
        signal = ControlSignal()
        assert signal.trigger_first(StopReason.HARD_CAP, None, StopReason.SILENCE_TIMEOUT)
        assert signal.reason is StopReason.SILENCE_TIMEOUT

    def test_trigger_first_without_candidates(self):
        signal = ControlSignal()
        assert signal.trigger_first(None, None) is False
        assert not signal.is_set()

    def test_precedence_order(self):
        ordered = sorted(StopReason, key=lambda r: r.precedence)
        assert ordered == [StopReason.CANCEL, StopReason.MANUAL_STOP,
                           StopReason.SILENCE_TIMEOUT, StopReason.HARD_CAP]

    def test_concurrent_triggers_have_one_winner(self):
        """Many threads racing: exactly one trigger() returns True, listeners run once."""
        signal = ControlSignal()
        calls = []
        signal.add_listener(calls.append)
        barrier = threading.Barrier(32)
        results = []
        results_lock = threading.Lock()
        reasons = list(StopReason)

        def worker(i):
            barrier.wait()
            won = signal.trigger(reasons[i % len(reasons)])
            with results_lock:
                results.append((won, reasons[i % len(reasons)]))

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(32)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5.0)

        winners = [reason for won, reason in results if won]
        assert len(results) == 32
        assert len(winners) == 1
        assert signal.reason is winners[0]
        assert calls == winners

    def test_listener_added_late_is_called_immediately(self):
        signal = ControlSignal()
        signal.trigger(StopReason.MANUAL_STOP)
        calls = []
        signal.add_listener(calls.append)
        assert calls == [StopReason.MANUAL_STOP]

    def test_wait_returns_reason_set_from_another_thread(self):
        signal = ControlSignal()
        threading.Timer(0.02, signal.trigger, args=(StopReason.CANCEL,)).start()
        assert signal.wait(timeout=2.0) is StopReason.CANCEL

    def test_timer_fires_hard_cap(self):
        signal = ControlSignal()
        signal.arm_timer(0.02)
        assert signal.wait(timeout=2.0) is StopReason.HARD_CAP

    def test_disarmed_timer_does_not_fire(self):
        signal = ControlSignal()
        signal.arm_timer(0.05)
        signal.disarm_timer()
        time.sleep(0.15)
        assert signal.reason is None

    def test_timer_loses_to_earlier_trigger(self):
        signal = ControlSignal()
        signal.arm_timer(0.02)
        signal.trigger(StopReason.MANUAL_STOP)
        time.sleep(0.1)
        assert signal.reason is StopReason.MANUAL_STOP
        signal.disarm_timer()
