"""Day-oriented views over display events: agenda sections, day cells, up-next feed."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta, tzinfo

from schedulr.events.dedup import coerce_now, passes_filters
from schedulr.events.models import CalendarFilters, DisplayEvent, EventType, RawEvent
from schedulr.events.normalize import local_day, start_of_day

DEFAULT_LOOKAHEAD_DAYS = 30


def occurs_on_day(display: DisplayEvent, day: date, *, tz: tzinfo = UTC) -> bool:
    """Whether *display* belongs in the cell for *day*.

    All-day events cover their local start through end day inclusive. Timed
    events must overlap the local day's half-open ``[00:00, 24:00)`` range.
    """
    event = display.representative
    if event.is_all_day:
        first = local_day(event.start_at, tz=tz)
        last = local_day(event.effective_end_at, tz=tz)
        return first <= day <= last
    day_start = start_of_day(day, tz=tz)
    day_end = start_of_day(day + timedelta(days=1), tz=tz)
    return event.start_at < day_end and event.effective_end_at > day_start


def events_for_day(
    displays: Iterable[DisplayEvent], day: date, *, tz: tzinfo = UTC
) -> list[DisplayEvent]:
    return [display for display in displays if occurs_on_day(display, day, tz=tz)]


def single_day_events_for_day(
    displays: Iterable[DisplayEvent], day: date, *, tz: tzinfo = UTC
) -> list[DisplayEvent]:
    """Events for a day cell, leaving multi-day events to the span bars."""
    return [display for display in events_for_day(displays, day, tz=tz) if not display.is_multi_day]


def group_by_day(
    displays: Iterable[DisplayEvent], *, tz: tzinfo = UTC
) -> dict[date, list[DisplayEvent]]:
    """Agenda sections keyed by local start day, days ascending."""
    sections: dict[date, list[DisplayEvent]] = {}
    for display in displays:
        sections.setdefault(local_day(display.representative.start_at, tz=tz), []).append(display)
    return {day: sections[day] for day in sorted(sections)}


def is_relevant_to(event: RawEvent, viewer_id: str) -> bool:
    """Group events the viewer owns or attends, and the viewer's own personal events."""
    if event.event_type == EventType.group:
        return event.owner_id == viewer_id or viewer_id in event.attendee_ids
    return event.owner_id == viewer_id


def upcoming_for_viewer(
    events: Iterable[RawEvent],
    viewer_id: str,
    now: datetime,
    *,
    filters: CalendarFilters | None = None,
    lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS,
) -> list[RawEvent]:
    """Chronological "up next" feed for one viewer.

    Keeps events still in progress or starting within *lookahead_days*.
    Unlike the group list, events ending exactly at ``now`` are dropped.
    """
    filters = filters or CalendarFilters()
    now = coerce_now(now)
    horizon = now + timedelta(days=lookahead_days)
    feed = [
        event
        for event in events
        if passes_filters(event, filters)
        and is_relevant_to(event, viewer_id)
        and event.effective_end_at > now
        and event.start_at < horizon
    ]
    feed.sort(key=lambda event: (event.start_at, event.effective_end_at, event.id))
    return feed
