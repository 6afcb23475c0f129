"""Tests for the consecutive failure tracker."""

import pytest

from app.services.search_gate import CircuitState, FailureTracker


@pytest.fixture
def tracker(clock):
    return FailureTracker(max_failures=3, base_delay=1.0, max_cooldown=2.5, recovery_timeout=60.0, clock=clock)


class TestFailureTracker:
    """Tests for FailureTracker."""

    def test_initial_state(self, tracker):
        assert tracker.is_blocked() is False
        assert tracker.current_cooldown() == 0
        assert tracker.state == CircuitState.CLOSED

    def test_cooldown_grows_and_is_capped(self, tracker):
        cooldowns = []
        for _ in range(4):
            tracker.on_failure()
            cooldowns.append(tracker.current_cooldown())

        assert cooldowns == [1.0, 2.0, 2.5, 2.5]

    def test_blocks_after_max_failures(self, tracker):
        tracker.on_failure()
        tracker.on_failure()
        assert tracker.is_blocked() is False

        tracker.on_failure()
        assert tracker.is_blocked() is True
        assert tracker.state == CircuitState.OPEN

    def test_success_resets_everything(self, tracker):
        for _ in range(3):
            tracker.on_failure()

        tracker.on_success()

        assert tracker.is_blocked() is False
        assert tracker.current_cooldown() == 0
        assert tracker.consecutive_failures == 0

    def test_blocked_for_counts_down(self, tracker, clock):
        for _ in range(3):
            tracker.on_failure()
        clock.advance(20)

        assert tracker.blocked_for() == pytest.approx(40.0)

    def test_half_open_allows_single_probe(self, tracker, clock):
        for _ in range(3):
            tracker.on_failure()
        clock.advance(60)

        assert tracker.is_blocked() is False
        assert tracker.state == CircuitState.HALF_OPEN

        tracker.mark_dispatch()
        assert tracker.is_blocked() is True

    def test_probe_failure_reopens(self, tracker, clock):
        for _ in range(3):
            tracker.on_failure()
        clock.advance(60)
        tracker.is_blocked()
        tracker.mark_dispatch()

        tracker.on_failure()

        assert tracker.state == CircuitState.OPEN
        assert tracker.is_blocked() is True
        assert tracker.consecutive_failures == 4

    def test_probe_success_closes(self, tracker, clock):
        for _ in range(3):
            tracker.on_failure()
        clock.advance(60)
        tracker.is_blocked()
        tracker.mark_dispatch()

        tracker.on_success()

        assert tracker.state == CircuitState.CLOSED
        assert tracker.is_blocked() is False

    def test_status(self, tracker):
        tracker.on_failure()
        status = tracker.get_status()

        assert status["state"] == "closed"
        assert status["consecutive_failures"] == 1
        assert status["extra_cooldown_s"] == 1.0
