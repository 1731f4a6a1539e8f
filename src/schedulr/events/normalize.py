"""Canonical keys and calendar-day helpers for raw events.

Independently synced copies of the same real-world event rarely agree to
the second, so timed events are compared on minute-rounded boundaries and
all-day events on their local start day. Titles are compared trimmed and
lower-cased.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta, tzinfo

from schedulr.events.models import RawEvent

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MICROS_PER_MINUTE = 60_000_000
_ONE_DAY = timedelta(days=1)

# Case-insensitive substrings that mark holiday/birthday feed entries.
EXCLUDED_CALENDAR_MARKERS = ("holiday", "birthday")

ALL_DAY_KEY_PREFIX = "allday"
TIMED_KEY_PREFIX = "timed"


def normalize_title(title: str | None) -> str:
    return (title or "").strip().lower()


def local_day(instant: datetime, *, tz: tzinfo = UTC) -> date:
    """Calendar day of *instant* in the viewer's time zone."""
    return instant.astimezone(tz).date()


def start_of_day(day: date, *, tz: tzinfo = UTC) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def day_epoch(instant: datetime, *, tz: tzinfo = UTC) -> int:
    """Epoch seconds of local midnight on the day containing *instant*."""
    return int(start_of_day(local_day(instant, tz=tz), tz=tz).timestamp())


def round_to_minute_epoch(instant: datetime) -> int:
    """Epoch seconds of *instant* rounded to the nearest minute, half up.

    Integer microsecond arithmetic keeps the rounding exact for any input.
    """
    micros = (instant - _EPOCH) // timedelta(microseconds=1)
    return (micros + _MICROS_PER_MINUTE // 2) // _MICROS_PER_MINUTE * 60


def normalization_key(event: RawEvent, *, tz: tzinfo = UTC) -> str:
    """Grouping key under which likely-duplicate events collide.

    ``allday:<local day epoch>:<title>`` for all-day events and
    ``timed:<start minute epoch>:<end minute epoch>:<title>`` otherwise.
    An empty title is a valid component.
    """
    title = normalize_title(event.title)
    if event.is_all_day:
        return f"{ALL_DAY_KEY_PREFIX}:{day_epoch(event.start_at, tz=tz)}:{title}"
    start = round_to_minute_epoch(event.start_at)
    end = round_to_minute_epoch(event.effective_end_at)
    return f"{TIMED_KEY_PREFIX}:{start}:{end}:{title}"


def is_holiday_or_birthday(event: RawEvent) -> bool:
    """True when the title or source calendar name looks like a holiday/birthday feed."""
    haystacks = (normalize_title(event.title), (event.calendar_name or "").lower())
    return any(marker in text for text in haystacks for marker in EXCLUDED_CALENDAR_MARKERS)


def event_day_bounds(event: RawEvent, *, tz: tzinfo = UTC) -> tuple[date, date]:
    """Return ``(start_day, end_day_inclusive)`` for *event* in *tz*.

    A timed event with positive duration that ends exactly at local midnight
    does not occupy the following day. The end day never precedes the start
    day.
    """
    start_day = local_day(event.start_at, tz=tz)
    end_at = event.effective_end_at
    local_end = end_at.astimezone(tz)
    end_day = local_end.date()

    if not event.is_all_day and end_at > event.start_at and local_end.time() == time.min:
        end_day -= _ONE_DAY

    if end_day < start_day:
        end_day = start_day
    return start_day, end_day
