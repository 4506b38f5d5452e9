"""Tests for school-local time helpers."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone

from schoolbook.scheduling.timewindow import TimeWindow, to_school_time, today_window

UTC3 = timezone(timedelta(hours=3))


class TestToSchoolTime:
    def test_aware_value_converted_then_made_naive(self):
        value = datetime(2026, 3, 10, 22, 30, tzinfo=timezone.utc)
        assert to_school_time(value, UTC3) == datetime(2026, 3, 11, 1, 30)

    def test_naive_value_taken_as_local(self):
        assert to_school_time(datetime(2026, 3, 10, 9, 0), UTC3) == datetime(2026, 3, 10, 9, 0)

    def test_microseconds_dropped(self):
        value = datetime(2026, 3, 10, 9, 0, 5, 123456)
        assert to_school_time(value, UTC3).microsecond == 0


class TestTodayWindow:
    def test_uses_school_offset_not_utc(self):
        # 22:00 UTC on the 10th is already the 11th at UTC+3
        window = today_window(UTC3, datetime(2026, 3, 10, 22, 0, tzinfo=timezone.utc))
        assert window.start == datetime(2026, 3, 11, 0, 0)
        assert window.end == datetime.combine(datetime(2026, 3, 11).date(), time.max)

    def test_naive_now_is_local(self):
        window = today_window(UTC3, datetime(2026, 3, 10, 23, 59))
        assert window.start.date() == datetime(2026, 3, 10).date()

    def test_bounds_inclusive(self):
        window = today_window(UTC3, datetime(2026, 3, 10, 12, 0))
        assert window.start in window
        assert window.end in window
        assert datetime(2026, 3, 11, 0, 0) not in window
        assert datetime(2026, 3, 9, 23, 59, 59) not in window

    def test_non_datetime_not_contained(self):
        window = TimeWindow(datetime(2026, 3, 10), datetime(2026, 3, 11))
        assert "2026-03-10" not in window
