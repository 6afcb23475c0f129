"""Tests for the global admission gate."""

import pytest

from app.services.search_gate import AdmissionGate


@pytest.fixture
def gate(clock):
    return AdmissionGate(min_spacing=5.0, clock=clock)


class TestAdmissionGate:
    """Tests for AdmissionGate."""

    def test_first_call_admitted(self, gate, clock):
        admission = gate.try_admit()

        assert admission.admitted is True
        assert gate.last_call_at == clock.now()

    def test_call_too_soon_gets_remaining_wait(self, gate, clock):
        gate.try_admit()
        gate.release()
        clock.advance(2.0)

        admission = gate.try_admit()

        assert admission.admitted is False
        assert admission.wait_seconds == pytest.approx(3.0)

    def test_rejection_does_not_move_last_call_at(self, gate, clock):
        gate.try_admit()
        stamped = gate.last_call_at
        clock.advance(1.0)
        gate.try_admit()

        assert gate.last_call_at == stamped

    def test_admitted_after_full_spacing(self, gate, clock):
        gate.try_admit()
        gate.release()
        clock.advance(5.0)

        assert gate.try_admit().admitted is True

    def test_cooldown_extends_spacing(self, gate, clock):
        gate.try_admit()
        gate.release()
        clock.advance(6.0)

        admission = gate.try_admit(cooldown=2.0)

        assert admission.admitted is False
        assert admission.wait_seconds == pytest.approx(1.0)

    def test_mark_dispatch_restamps(self, gate, clock):
        gate.try_admit()
        clock.advance(4.0)
        gate.mark_dispatch()
        gate.release()
        clock.advance(4.0)

        admission = gate.try_admit()
        assert admission.admitted is False
        assert admission.wait_seconds == pytest.approx(1.0)

    def test_unreleased_dispatch_blocks_after_spacing(self, gate, clock):
        gate.try_admit()
        clock.advance(30.0)

        admission = gate.try_admit()

        assert admission.admitted is False
        assert admission.wait_seconds == pytest.approx(5.0)
        assert gate.busy is True
        assert gate.get_status()["metrics"]["total_rejected_busy"] == 1

    def test_release_reopens_gate(self, gate, clock):
        gate.try_admit()
        clock.advance(30.0)
        gate.release()

        assert gate.busy is False
        assert gate.try_admit().admitted is True

    def test_defer_pushes_next_admission(self, gate, clock):
        gate.try_admit()
        gate.release()
        gate.defer(8.0)
        clock.advance(6.0)

        admission = gate.try_admit()

        assert admission.admitted is False
        assert admission.wait_seconds == pytest.approx(2.0)

    def test_shorter_defer_does_not_shrink_wait(self, gate, clock):
        gate.defer(8.0)
        gate.defer(1.0)

        assert gate.remaining() == pytest.approx(8.0)

    def test_status_and_reset(self, gate, clock):
        gate.try_admit()
        gate.try_admit()
        status = gate.get_status()

        assert status["metrics"]["total_admitted"] == 1
        assert status["metrics"]["total_rejected"] == 1
        assert status["wait_s"] == pytest.approx(5.0)
        assert status["busy"] is True

        gate.reset()
        assert gate.last_call_at is None
        assert gate.busy is False
        assert gate.try_admit().admitted is True
