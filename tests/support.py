"""Test helpers shared across the schedulr suite."""

from __future__ import annotations

import itertools
from datetime import UTC, datetime, timedelta
from typing import Any

from schedulr.events.models import RawEvent

# Monday 2025-03-10 .. Sunday 2025-03-16 is the reference week across the suite.
WEEK_START = datetime(2025, 3, 10, tzinfo=UTC)
NOW = datetime(2025, 3, 10, 8, 0, tzinfo=UTC)

_ids = itertools.count(1)


def at(day_offset: int, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    """Instant relative to the reference Monday, UTC."""
    return WEEK_START + timedelta(days=day_offset, hours=hour, minutes=minute, seconds=second)


def raw_event(**overrides: Any) -> RawEvent:
    """RawEvent with a fresh id and a Tuesday 09:00-10:00 group slot by default."""
    fields: dict[str, Any] = {
        "id": f"evt-{next(_ids)}",
        "owner_id": "alice",
        "group_id": "g1",
        "title": "Standup",
        "start_at": at(1, 9),
        "end_at": at(1, 10),
        "event_type": "group",
    }
    fields.update(overrides)
    return RawEvent(**fields)
