"""Tests for multi-day span projection and bar lane packing."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from schedulr.events.models import DisplayEvent, MultiDaySpanSegment
from schedulr.events.spans import assign_lanes, chunk_weeks, project_segments
from tests.support import WEEK_START, at, raw_event

pytestmark = pytest.mark.unit

WEEK = [WEEK_START.date() + timedelta(days=offset) for offset in range(7)]


def _display(start: datetime, end: datetime, **overrides) -> DisplayEvent:
    return DisplayEvent.from_representative(raw_event(start_at=start, end_at=end, **overrides))


def _segment(start_index: int, end_index: int) -> MultiDaySpanSegment:
    return MultiDaySpanSegment(
        event=_display(at(0, 9), at(2, 9)),
        week_start=WEEK[0],
        start_index=start_index,
        end_index=end_index,
        continues_from_previous=False,
        continues_to_next=False,
    )


class TestDisplayEventDays:
    def test_midnight_end_is_single_day(self):
        display = _display(at(0, 23), at(1))
        assert display.end_day_inclusive == WEEK[0]
        assert not display.is_multi_day

    def test_overnight_event_is_multi_day(self):
        display = _display(at(0, 23), at(1, 1))
        assert display.is_multi_day


class TestProjectSegments:
    def test_tuesday_to_thursday_within_week(self):
        display = _display(at(1, 9), at(3, 17))
        [segment] = project_segments([display], WEEK)
        assert (segment.start_index, segment.end_index) == (1, 3)
        assert not segment.continues_from_previous
        assert not segment.continues_to_next
        assert segment.week_start == WEEK[0]
        assert segment.length == 3

    def test_prior_friday_to_following_monday(self):
        display = _display(at(-3, 9), at(7, 17))
        [segment] = project_segments([display], WEEK)
        assert (segment.start_index, segment.end_index) == (0, 6)
        assert segment.continues_from_previous
        assert segment.continues_to_next

    def test_starts_before_week_ends_inside(self):
        display = _display(at(-2, 9), at(2, 9))
        [segment] = project_segments([display], WEEK)
        assert (segment.start_index, segment.end_index) == (0, 2)
        assert segment.continues_from_previous
        assert not segment.continues_to_next

    def test_ends_on_last_day_does_not_continue(self):
        display = _display(at(5, 9), at(6, 9))
        [segment] = project_segments([display], WEEK)
        assert (segment.start_index, segment.end_index) == (5, 6)
        assert not segment.continues_to_next

    def test_single_day_events_are_skipped(self):
        assert project_segments([_display(at(1, 9), at(1, 10))], WEEK) == []

    def test_events_outside_week_are_skipped(self):
        before = _display(at(-5, 9), at(-1, 9))
        after = _display(at(7, 9), at(9, 9))
        assert project_segments([before, after], WEEK) == []

    def test_multi_day_all_day_event(self):
        display = _display(at(2), at(4), is_all_day=True)
        [segment] = project_segments([display], WEEK)
        assert (segment.start_index, segment.end_index) == (2, 4)

    @pytest.mark.parametrize("length", [0, 6, 8])
    def test_wrong_week_length_returns_empty(self, length):
        days = [WEEK[0] + timedelta(days=offset) for offset in range(length)]
        assert project_segments([_display(at(1, 9), at(3, 17))], days) == []

    def test_preserves_input_order(self):
        later = _display(at(3, 9), at(5, 9), id="later")
        earlier = _display(at(0, 9), at(2, 9), id="earlier")
        segments = project_segments([later, earlier], WEEK)
        assert [segment.event.id for segment in segments] == ["later", "earlier"]

    def test_accepts_datetime_week_days(self):
        tz = ZoneInfo("Europe/London")
        week = [datetime.combine(day, datetime.min.time(), tzinfo=tz) for day in WEEK]
        [segment] = project_segments([_display(at(1, 9), at(3, 17))], week, tz=tz)
        assert (segment.start_index, segment.end_index) == (1, 3)

    def test_non_contiguous_days_fall_back_to_edges(self):
        # Thursday is missing, so the end lookup falls back to the last column.
        days = [*WEEK[:3], WEEK[4], WEEK[5], WEEK[6], WEEK[6] + timedelta(days=1)]
        [segment] = project_segments([_display(at(1, 9), at(3, 17))], days)
        assert (segment.start_index, segment.end_index) == (1, 6)


class TestAssignLanes:
    def test_non_overlapping_segments_share_a_row(self):
        lanes = assign_lanes([_segment(0, 1), _segment(3, 5)])
        assert [lane.row for lane in lanes] == [0, 0]

    def test_overlapping_segments_get_new_rows(self):
        lanes = assign_lanes([_segment(0, 3), _segment(2, 4), _segment(3, 6)])
        assert [(lane.segment.start_index, lane.row) for lane in lanes] == [(0, 0), (2, 1), (3, 2)]

    def test_touching_segments_do_not_share_a_row(self):
        lanes = assign_lanes([_segment(0, 2), _segment(2, 4)])
        assert [lane.row for lane in lanes] == [0, 1]

    def test_longer_bar_placed_first_on_same_start(self):
        short = _segment(1, 2)
        long = _segment(1, 5)
        lanes = assign_lanes([short, long])
        assert lanes[0].segment is long
        assert [lane.row for lane in lanes] == [0, 1]

    def test_reuses_freed_row(self):
        lanes = assign_lanes([_segment(0, 1), _segment(0, 4), _segment(2, 3)])
        rows = {(lane.segment.start_index, lane.segment.end_index): lane.row for lane in lanes}
        assert rows == {(0, 4): 0, (0, 1): 1, (2, 3): 1}

    def test_empty(self):
        assert assign_lanes([]) == []


class TestChunkWeeks:
    def test_splits_into_rows_of_seven(self):
        days = [date(2025, 3, 1) + timedelta(days=offset) for offset in range(35)]
        rows = chunk_weeks(days)
        assert len(rows) == 5
        assert all(len(row) == 7 for row in rows)

    def test_last_row_may_be_short(self):
        assert [len(row) for row in chunk_weeks(list(range(10)))] == [7, 3]

    def test_empty(self):
        assert chunk_weeks([]) == []
