"""Group event reconciliation: collapse members' synced calendars into one list.

Each refresh hands ``build_display_events`` a snapshot of raw events from
every member of a group. The pipeline is:

1. Drop events that already ended before ``now``.
2. Drop holiday/birthday feed entries and out-of-category events when the
   viewer's filters ask for it.
3. Collapse literal re-deliveries of the same record (same ``id``).
4. Cluster the survivors by ``normalization_key``. A cluster counts as
   *shared* only when it holds several distinct records from several
   distinct owners; one member's repeated entries are shown once, unshared.
5. Order by ``(start, end, id)`` with input position as the final tie-break.

Representatives are always the first event of their group in input order,
so re-running over the same snapshot yields the same output. Malformed
records (end before start, missing id) are clamped and kept.

Privacy redaction is not part of the computed result; callers map each
``DisplayEvent`` through ``present_event`` for a given viewer.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime, tzinfo

from schedulr.events.models import (
    BUSY_PLACEHOLDER_TITLE,
    CalendarFilters,
    DisplayEvent,
    EventType,
    PresentedEvent,
    RawEvent,
)
from schedulr.events.normalize import is_holiday_or_birthday, local_day, normalization_key

logger = logging.getLogger(__name__)

# Records without an id are keyed by input position and never merged by identity.
_Identity = tuple[str, int]
_Indexed = tuple[int, RawEvent]


def _identity(index: int, event: RawEvent) -> _Identity:
    if event.id:
        return (event.id, -1)
    return ("", index)


def coerce_now(now: datetime) -> datetime:
    if now.tzinfo is None or now.utcoffset() is None:
        return now.replace(tzinfo=UTC)
    return now


def passes_filters(event: RawEvent, filters: CalendarFilters) -> bool:
    """Whether *event* survives the viewer's holiday and category filters."""
    if filters.hide_holidays and is_holiday_or_birthday(event):
        return False
    if filters.category_ids is not None and event.category_id not in filters.category_ids:
        return False
    return True


def _fuzzy_key(index: int, event: RawEvent, filters: CalendarFilters, tz: tzinfo) -> str:
    if event.is_all_day and not filters.dedup_all_day:
        return f"record:{index}"
    return normalization_key(event, tz=tz)


def build_display_events(
    events: Iterable[RawEvent],
    viewer_id: str,
    now: datetime,
    filters: CalendarFilters | None = None,
    *,
    tz: tzinfo = UTC,
) -> list[DisplayEvent]:
    """Deduplicate a group's raw events into an ordered display list.

    Parameters
    ----------
    events:
        Raw events from all contributing members. Consumed once as a snapshot.
    viewer_id:
        The member the list is computed for. Only used for diagnostics here;
        redaction happens in ``present_event``.
    now:
        Events whose (clamped) end precedes this instant are dropped. An end
        equal to ``now`` is kept.
    filters:
        Viewer preferences; defaults to ``CalendarFilters()``.
    tz:
        The viewer's local time zone for day-granular keys and bounds.
    """
    filters = filters or CalendarFilters()
    now = coerce_now(now)
    snapshot: list[_Indexed] = list(enumerate(events))

    malformed = sum(1 for _, event in snapshot if event.is_malformed)
    if malformed:
        logger.debug("Clamping %d malformed event record(s)", malformed)

    upcoming = [(i, ev) for i, ev in snapshot if ev.effective_end_at >= now]
    visible = [(i, ev) for i, ev in upcoming if passes_filters(ev, filters)]

    # Exact-identity pass: first delivery of each record wins.
    by_identity: dict[_Identity, _Indexed] = {}
    for index, event in visible:
        by_identity.setdefault(_identity(index, event), (index, event))
    survivors = sorted(by_identity.values(), key=lambda item: item[0])

    # Fuzzy pass over distinct records.
    clusters: dict[str, list[_Indexed]] = {}
    for index, event in survivors:
        clusters.setdefault(_fuzzy_key(index, event, filters, tz), []).append((index, event))

    ranked: list[tuple[int, DisplayEvent]] = []
    shared_clusters = 0
    for members in clusters.values():
        first_index, representative = members[0]
        unique_ids = {_identity(index, event) for index, event in members}
        unique_owners = {event.owner_id for _, event in members}
        if len(unique_ids) > 1 and len(unique_owners) > 1:
            shared_count = len(unique_ids)
            shared_clusters += 1
        else:
            shared_count = 1
        ranked.append(
            (first_index, DisplayEvent.from_representative(representative, shared_count, tz=tz))
        )

    ranked.sort(
        key=lambda item: (
            item[1].representative.start_at,
            item[1].representative.effective_end_at,
            item[1].representative.id,
            item[0],
        )
    )

    logger.debug(
        "Built %d display event(s) for viewer %s: %d received, %d past, %d filtered, "
        "%d re-delivered, %d shared cluster(s)",
        len(ranked),
        viewer_id,
        len(snapshot),
        len(snapshot) - len(upcoming),
        len(upcoming) - len(visible),
        len(visible) - len(survivors),
        shared_clusters,
    )
    return [display for _, display in ranked]


def is_private_for(event: RawEvent, viewer_id: str) -> bool:
    """Personal events belonging to someone else are private to the viewer."""
    return event.event_type == EventType.personal and event.owner_id != viewer_id


def present_event(display: DisplayEvent, viewer_id: str) -> PresentedEvent:
    """Apply read-time redaction for *viewer_id* without touching *display*."""
    representative = display.representative
    private = is_private_for(representative, viewer_id)
    if private or not representative.title.strip():
        title = BUSY_PLACEHOLDER_TITLE
    else:
        title = representative.title
    return PresentedEvent(
        event=display,
        title=title,
        location=None if private else representative.location,
        is_private=private,
    )


def present_display_events(
    displays: Iterable[DisplayEvent], viewer_id: str
) -> list[PresentedEvent]:
    return [present_event(display, viewer_id) for display in displays]


def slice_to_first_month(
    displays: list[DisplayEvent], *, tz: tzinfo = UTC
) -> list[DisplayEvent]:
    """Keep only events starting in the same local month as the first one.

    A presentation policy for month-scoped lists; expects the ordered output
    of ``build_display_events``.
    """
    if not displays:
        return []

    def month_of(display: DisplayEvent) -> tuple[int, int]:
        day = local_day(display.representative.start_at, tz=tz)
        return day.year, day.month

    first_month = month_of(displays[0])
    return [display for display in displays if month_of(display) == first_month]
