"""Value types for group calendar reconciliation.

This module defines:
- ``RawEvent``: one calendar entry as delivered by a sync source
- ``CalendarFilters``: viewer-level filtering preferences
- ``DisplayEvent``: a deduplicated cluster of raw events
- ``MultiDaySpanSegment`` / ``SegmentLane``: week-grid bar projections
- ``PresentedEvent``: read-time view of a display event for one viewer

Raw events are parsed leniently (unknown fields ignored, naive datetimes
read as UTC); everything derived from them is an immutable dataclass that
is recomputed on every refresh.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, tzinfo
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

BUSY_PLACEHOLDER_TITLE = "Busy"


class EventType(StrEnum):
    """Whether an entry was synced from a personal calendar or created in a group."""

    personal = "personal"
    group = "group"


class RawEvent(BaseModel):
    """Canonical raw event shape accepted from any event source.

    Field aliases mirror the backend column names so rows can be passed in
    unchanged; either spelling is accepted.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    id: str = ""
    owner_id: str = Field(default="", alias="user_id")
    group_id: str | None = None
    title: str = ""
    start_at: datetime = Field(alias="start_date")
    end_at: datetime = Field(alias="end_date")
    is_all_day: bool = False
    location: str | None = None
    calendar_name: str | None = None
    event_type: EventType = EventType.personal
    category_id: str | None = None
    attendee_ids: tuple[str, ...] = ()

    @field_validator("id", "owner_id", "title", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        return str(value)

    @field_validator("group_id", "category_id", mode="before")
    @classmethod
    def _coerce_optional_id(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("start_at", "end_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.utcoffset() is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_validator("event_type", mode="before")
    @classmethod
    def _normalize_event_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("attendee_ids", mode="before")
    @classmethod
    def _normalize_attendees(cls, value: Any) -> Any:
        if value is None:
            return ()
        return tuple(str(item) for item in value)

    @property
    def effective_end_at(self) -> datetime:
        """End instant clamped so the duration is never negative."""
        return max(self.start_at, self.end_at)

    @property
    def is_malformed(self) -> bool:
        return self.end_at < self.start_at or not self.id


class CalendarFilters(BaseModel):
    """Viewer preferences applied before deduplication."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    hide_holidays: bool = True
    dedup_all_day: bool = True
    category_ids: frozenset[str] | None = None

    @field_validator("category_ids")
    @classmethod
    def _empty_selection_means_all(cls, value: frozenset[str] | None) -> frozenset[str] | None:
        return value or None


@dataclass(frozen=True)
class DisplayEvent:
    """A deduplicated cluster of one or more raw events.

    ``start_day`` and ``end_day_inclusive`` are calendar days in the viewer's
    time zone, fixed at construction time.
    """

    representative: RawEvent
    shared_count: int
    start_day: date
    end_day_inclusive: date

    @classmethod
    def from_representative(
        cls, representative: RawEvent, shared_count: int = 1, *, tz: tzinfo = UTC
    ) -> DisplayEvent:
        # Local import: normalize depends on this module's RawEvent.
        from schedulr.events.normalize import event_day_bounds

        start_day, end_day = event_day_bounds(representative, tz=tz)
        return cls(
            representative=representative,
            shared_count=shared_count,
            start_day=start_day,
            end_day_inclusive=end_day,
        )

    @property
    def id(self) -> str:
        return self.representative.id

    @property
    def is_multi_day(self) -> bool:
        return self.start_day != self.end_day_inclusive


@dataclass(frozen=True)
class MultiDaySpanSegment:
    """The part of a multi-day event that falls inside one displayed week."""

    event: DisplayEvent
    week_start: date
    start_index: int
    end_index: int
    continues_from_previous: bool
    continues_to_next: bool

    @property
    def length(self) -> int:
        return self.end_index - self.start_index + 1


@dataclass(frozen=True)
class SegmentLane:
    """A span segment placed on a bar row within its week."""

    segment: MultiDaySpanSegment
    row: int


@dataclass(frozen=True)
class PresentedEvent:
    """What a particular viewer is allowed to see of a display event."""

    event: DisplayEvent
    title: str
    location: str | None
    is_private: bool

    @property
    def shared_count(self) -> int:
        return self.event.shared_count

    @property
    def shared_label(self) -> str | None:
        if self.is_private or self.event.shared_count <= 1:
            return None
        return f"shared by {self.event.shared_count}"
