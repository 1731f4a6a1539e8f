"""Group calendar reconciliation: normalization, deduplication, week spans."""

from __future__ import annotations

from schedulr.events.agenda import (
    events_for_day,
    group_by_day,
    single_day_events_for_day,
    upcoming_for_viewer,
)
from schedulr.events.dedup import (
    build_display_events,
    present_display_events,
    present_event,
    slice_to_first_month,
)
from schedulr.events.models import (
    CalendarFilters,
    DisplayEvent,
    EventType,
    MultiDaySpanSegment,
    PresentedEvent,
    RawEvent,
    SegmentLane,
)
from schedulr.events.normalize import normalization_key
from schedulr.events.spans import assign_lanes, chunk_weeks, project_segments

__all__ = [
    "CalendarFilters",
    "DisplayEvent",
    "EventType",
    "MultiDaySpanSegment",
    "PresentedEvent",
    "RawEvent",
    "SegmentLane",
    "assign_lanes",
    "build_display_events",
    "chunk_weeks",
    "events_for_day",
    "group_by_day",
    "normalization_key",
    "present_display_events",
    "present_event",
    "project_segments",
    "single_day_events_for_day",
    "slice_to_first_month",
    "upcoming_for_viewer",
]
