"""Project multi-day display events onto a 7-column week grid."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, tzinfo
from typing import TypeVar

from schedulr.events.models import DisplayEvent, MultiDaySpanSegment, SegmentLane
from schedulr.events.normalize import local_day

DAYS_PER_WEEK = 7
_LAST_COLUMN = DAYS_PER_WEEK - 1

T = TypeVar("T")


def _as_day(value: date | datetime, tz: tzinfo) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return local_day(value, tz=tz)
    return value


def _index_of(days: list[date], day: date, default: int) -> int:
    try:
        return days.index(day)
    except ValueError:
        return default


def project_segments(
    displays: Iterable[DisplayEvent],
    week_days: Sequence[date | datetime],
    *,
    tz: tzinfo = UTC,
) -> list[MultiDaySpanSegment]:
    """Compute the bar segment each multi-day event occupies in one week.

    ``week_days`` must hold exactly seven ascending calendar days; any other
    length yields an empty list. Single-day events and events that do not
    touch the week are skipped. Input order is preserved.
    """
    days = [_as_day(day, tz) for day in week_days]
    if len(days) != DAYS_PER_WEEK:
        return []

    week_start, week_end = days[0], days[_LAST_COLUMN]
    segments: list[MultiDaySpanSegment] = []
    for display in displays:
        if not display.is_multi_day:
            continue
        start_day, end_day = display.start_day, display.end_day_inclusive
        if end_day < week_start or start_day > week_end:
            continue

        start_index = 0 if start_day <= week_start else _index_of(days, start_day, 0)
        end_index = _LAST_COLUMN if end_day >= week_end else _index_of(days, end_day, _LAST_COLUMN)
        if end_index < start_index:
            end_index = start_index

        segments.append(
            MultiDaySpanSegment(
                event=display,
                week_start=week_start,
                start_index=start_index,
                end_index=end_index,
                continues_from_previous=start_day < week_start,
                continues_to_next=end_day > week_end,
            )
        )
    return segments


def assign_lanes(segments: Iterable[MultiDaySpanSegment]) -> list[SegmentLane]:
    """Pack segments into the fewest bar rows without overlap.

    Longer bars starting on the same column are placed first; each segment
    takes the first row whose last bar ends strictly before it starts.
    """
    ordered = sorted(segments, key=lambda seg: (seg.start_index, -seg.end_index))
    row_ends: list[int] = []
    lanes: list[SegmentLane] = []
    for segment in ordered:
        for row, end_index in enumerate(row_ends):
            if segment.start_index > end_index:
                row_ends[row] = segment.end_index
                break
        else:
            row_ends.append(segment.end_index)
            row = len(row_ends) - 1
        lanes.append(SegmentLane(segment=segment, row=row))
    return lanes


def chunk_weeks(days: Sequence[T]) -> list[list[T]]:
    """Split a month grid's days into week rows; the last row may be short."""
    return [list(days[i : i + DAYS_PER_WEEK]) for i in range(0, len(days), DAYS_PER_WEEK)]
