from datetime import datetime

from worktime.breaks import BreakLedger
from worktime.calculator import (
    break_minutes_within,
    compute_end_time,
    compute_worked_minutes,
    minutes_of_day,
)
from worktime.models import CompleteBreak, PartialBreak, PlannedBreak, Status

START = datetime(2026, 10, 19, 8, 0)


def at(hour, minute=0, second=0):
    return START.replace(hour=hour, minute=minute, second=second)


class TestWorkedMinutes:
    def test_zero_without_start(self):
        assert compute_worked_minutes(None, BreakLedger(), Status.STOPPED, at(12), 99) == 0
        assert compute_worked_minutes(None, BreakLedger(), Status.RUNNING, at(12)) == 0

    def test_stopped_session_stays_frozen(self):
        worked = compute_worked_minutes(START, BreakLedger(), Status.STOPPED, at(20), 123)
        assert worked == 123

    def test_elapsed_is_floored(self):
        assert compute_worked_minutes(START, BreakLedger(), Status.RUNNING, at(9, 0, 59)) == 60

    def test_breaks_inside_the_span_are_deducted(self):
        breaks = BreakLedger([CompleteBreak(at(9), at(9, 15))])
        assert compute_worked_minutes(START, breaks, Status.RUNNING, at(10)) == 105

    def test_future_breaks_are_not_deducted_yet(self):
        breaks = BreakLedger([CompleteBreak(at(12), at(12, 30))])
        assert compute_worked_minutes(START, breaks, Status.RUNNING, at(10)) == 120

    def test_break_in_progress_counts_up_to_now(self):
        breaks = BreakLedger([CompleteBreak(at(12), at(12, 30))])
        assert compute_worked_minutes(START, breaks, Status.RUNNING, at(12, 10)) == 240

    def test_duration_only_breaks_are_deducted_in_full(self):
        breaks = BreakLedger([PlannedBreak(30), PartialBreak(start=at(11), duration=10)])
        assert compute_worked_minutes(START, breaks, Status.RUNNING, at(10)) == 80

    def test_open_pause_freezes_worked_time(self):
        breaks = BreakLedger([PartialBreak(start=at(10))])
        assert compute_worked_minutes(START, breaks, Status.PAUSED, at(10, 5)) == 120
        assert compute_worked_minutes(START, breaks, Status.PAUSED, at(10, 40)) == 120

    def test_never_negative(self):
        breaks = BreakLedger([PlannedBreak(600)])
        assert compute_worked_minutes(START, breaks, Status.RUNNING, at(9)) == 0

    def test_break_minutes_within(self):
        breaks = BreakLedger(
            [CompleteBreak(at(7), at(8, 30)), PlannedBreak(5), PartialBreak(start=at(11))]
        )
        assert break_minutes_within(breaks, START, at(11, 20), Status.PAUSED) == 30 + 5 + 20


class TestEndTime:
    def test_not_started(self):
        assert compute_end_time(None, BreakLedger(), 480) is None

    def test_planned_plus_breaks(self):
        breaks = BreakLedger([PlannedBreak(30), CompleteBreak(at(9), at(9, 15))])
        assert compute_end_time(START, breaks, 480) == at(16, 45)

    def test_fixed_target_ignores_overtime(self):
        # Nothing but planned work and breaks feeds the projection.
        assert compute_end_time(START, BreakLedger(), 240) == at(12)


def test_minutes_of_day():
    assert minutes_of_day(at(17, 30)) == 1050
    assert minutes_of_day(datetime(2026, 10, 20, 1, 0), START) == 25 * 60
