"""
Tests for the shot timer state machine.

Tests cover:
- Phase transitions (start, first drop, stop, reset)
- Emission of the extraction seconds exactly once per stop
- Wall-clock based elapsed time (no drift from tick counting)
- Rejected events in the wrong phase
"""

import pytest

from services.shot_timer import ShotTimer, TimerPhase, TimerSnapshot


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def emitted():
    return []


@pytest.fixture
def timer(clock, emitted):
    return ShotTimer(on_stop=emitted.append, clock=clock)


class TestTransitions:
    """Tests for the phase transitions."""

    def test_initial_state_is_idle(self, timer):
        snapshot = timer.tick()
        assert snapshot == TimerSnapshot(TimerPhase.IDLE, 0, 0)

    def test_start_moves_to_pumping(self, timer, clock):
        assert timer.start() is True
        clock.advance(3.4)
        snapshot = timer.tick()
        assert snapshot.phase is TimerPhase.PUMPING
        assert snapshot.pump_seconds == 3
        assert snapshot.extraction_seconds == 0

    def test_first_drop_freezes_pump_counter(self, timer, clock):
        timer.start()
        clock.advance(5.7)
        assert timer.first_drop() is True
        clock.advance(12.2)
        snapshot = timer.tick()
        assert snapshot.phase is TimerPhase.EXTRACTING
        assert snapshot.pump_seconds == 5
        assert snapshot.extraction_seconds == 12

    def test_stop_emits_extraction_seconds_once(self, timer, clock, emitted):
        timer.start()
        clock.advance(4)
        timer.first_drop()
        clock.advance(27.9)

        assert timer.stop() == 27
        assert emitted == [27]

        # Second stop is not valid from IDLE
        assert timer.stop() is None
        assert emitted == [27]

    def test_stop_resets_counters(self, timer, clock):
        timer.start()
        clock.advance(2)
        timer.first_drop()
        clock.advance(25)
        timer.stop()
        assert timer.tick() == TimerSnapshot(TimerPhase.IDLE, 0, 0)

    def test_stop_ignored_while_pumping(self, timer, clock, emitted):
        timer.start()
        clock.advance(8)
        assert timer.stop() is None
        assert timer.phase is TimerPhase.PUMPING
        assert emitted == []

    def test_first_drop_ignored_from_idle(self, timer, emitted):
        assert timer.first_drop() is False
        assert timer.phase is TimerPhase.IDLE
        assert emitted == []

    def test_start_ignored_while_running(self, timer, clock):
        timer.start()
        clock.advance(3)
        assert timer.start() is False
        assert timer.tick().pump_seconds == 3

    @pytest.mark.parametrize("setup", ["idle", "pumping", "extracting"])
    def test_reset_from_any_state(self, timer, clock, emitted, setup):
        if setup in ("pumping", "extracting"):
            timer.start()
            clock.advance(4)
        if setup == "extracting":
            timer.first_drop()
            clock.advance(10)

        timer.reset()

        assert timer.tick() == TimerSnapshot(TimerPhase.IDLE, 0, 0)
        assert emitted == []

    def test_new_cycle_starts_from_zero(self, timer, clock, emitted):
        timer.start()
        clock.advance(3)
        timer.first_drop()
        clock.advance(20)
        timer.stop()

        timer.start()
        clock.advance(1)
        timer.first_drop()
        clock.advance(30.5)
        assert timer.stop() == 30
        assert emitted == [20, 30]

    def test_stop_without_callback(self, clock):
        timer = ShotTimer(clock=clock)
        timer.start()
        timer.first_drop()
        clock.advance(9)
        assert timer.stop() == 9


class TestWallClockElapsed:
    """Elapsed time comes from the start instant, not from tick counts."""

    def test_irregular_ticks_do_not_drift(self, timer, clock):
        timer.start()
        timer.first_drop()
        # Jittery ticks, far from the nominal 100 ms
        for step in (0.13, 0.29, 0.07, 0.5, 0.01) * 10:
            clock.advance(step)
            timer.tick()
        # 10.0 s of ticks, nudged past any float rounding
        clock.advance(0.05)
        assert timer.tick().extraction_seconds == 10

    def test_stop_uses_time_at_stop_not_last_tick(self, timer, clock, emitted):
        timer.start()
        timer.first_drop()
        clock.advance(24.9)
        assert timer.tick().extraction_seconds == 24
        clock.advance(0.2)
        timer.stop()
        assert emitted == [25]

    def test_no_ticks_needed_for_correct_value(self, timer, clock):
        timer.start()
        clock.advance(6)
        timer.first_drop()
        clock.advance(31)
        assert timer.stop() == 31


class TestApplyEvent:
    """Tests for dispatching events by name."""

    def test_apply_full_cycle(self, timer, clock, emitted):
        assert timer.apply("start") is True
        assert timer.apply("first-drop") is True
        clock.advance(22)
        assert timer.apply("stop") is True
        assert emitted == [22]

    def test_apply_rejected_stop(self, timer):
        assert timer.apply("stop") is False

    def test_apply_reset_always_accepted(self, timer):
        assert timer.apply("reset") is True

    def test_apply_unknown_event(self, timer):
        with pytest.raises(ValueError):
            timer.apply("explode")


class TestSnapshot:
    """Tests for the snapshot payload."""

    def test_snapshot_to_dict(self):
        snapshot = TimerSnapshot(TimerPhase.PUMPING, 4, 0)
        assert snapshot.to_dict() == {"phase": "pumping", "pump_seconds": 4, "extraction_seconds": 0}
