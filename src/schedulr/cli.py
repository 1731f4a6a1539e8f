"""CLI for Schedulr — run the reconciliation engine over JSON event dumps."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from schedulr import __version__
from schedulr.config import CONFIG_FILENAME, ConfigError, SchedulrConfig, load_config
from schedulr.core.logging import configure_logging
from schedulr.events import (
    RawEvent,
    assign_lanes,
    build_display_events,
    present_event,
    project_segments,
    slice_to_first_month,
)
from schedulr.events.normalize import start_of_day
from schedulr.events.spans import DAYS_PER_WEEK

logger = logging.getLogger(__name__)


def _load_settings(config_path: Path | None) -> SchedulrConfig:
    """Load config from *config_path*, ./schedulr.toml, or defaults; exit 1 on errors."""
    if config_path is None:
        default_path = Path.cwd() / CONFIG_FILENAME
        if not default_path.exists():
            settings = SchedulrConfig()
            configure_logging(settings.logging.level, settings.logging.format)
            return settings
        config_path = default_path
    try:
        settings = load_config(config_path)
    except ConfigError as exc:
        click.echo(f"Config error: {exc}", err=True)
        sys.exit(1)
    configure_logging(settings.logging.level, settings.logging.format)
    return settings


def _parse_now(value: str | None, default: datetime) -> datetime:
    if value is None:
        return default
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise click.BadParameter(f"not an ISO-8601 timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def read_events(path: Path) -> list[RawEvent]:
    """Parse a JSON list of event rows (or ``{"events": [...]}``).

    Rows that fail validation are logged and skipped.
    """
    try:
        payload = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Invalid JSON in {path}: {exc}") from exc
    if isinstance(payload, dict):
        payload = payload.get("events", [])
    if not isinstance(payload, list):
        raise click.ClickException(f"Expected a list of events in {path}")

    events: list[RawEvent] = []
    for position, row in enumerate(payload):
        try:
            events.append(RawEvent.model_validate(row))
        except ValidationError as exc:
            logger.warning(
                "Skipping event #%d in %s: %d validation error(s)",
                position,
                path,
                exc.error_count(),
            )
    return events


def _emit(rows: Iterable[dict[str, Any]]) -> None:
    for row in rows:
        click.echo(json.dumps(row, sort_keys=True))


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """Schedulr — group calendar reconciliation tools."""


@cli.command()
@click.argument("events_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--viewer", "viewer_id", required=True, help="Member id the list is built for")
@click.option("--now", "now_value", default=None, help="ISO-8601 instant (default: current time)")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help=f"Path to {CONFIG_FILENAME} or its directory",
)
@click.option("--month-only", is_flag=True, help="Keep only the first result's month")
def dedupe(
    events_path: Path,
    viewer_id: str,
    now_value: str | None,
    config_path: Path | None,
    month_only: bool,
) -> None:
    """Print the deduplicated, redacted display list as JSON lines."""
    settings = _load_settings(config_path)
    tz = settings.tzinfo
    now = _parse_now(now_value, datetime.now(UTC))

    displays = build_display_events(
        read_events(events_path), viewer_id, now, settings.filters, tz=tz
    )
    if month_only:
        displays = slice_to_first_month(displays, tz=tz)

    rows = []
    for display in displays:
        presented = present_event(display, viewer_id)
        event = display.representative
        rows.append(
            {
                "id": event.id,
                "owner_id": event.owner_id,
                "title": presented.title,
                "location": presented.location,
                "start_at": event.start_at.isoformat(),
                "end_at": event.effective_end_at.isoformat(),
                "all_day": event.is_all_day,
                "is_private": presented.is_private,
                "shared_count": presented.shared_count,
                "shared_label": presented.shared_label,
            }
        )
    _emit(rows)


def _week_days(week_start: date) -> list[date]:
    return [week_start + timedelta(days=offset) for offset in range(DAYS_PER_WEEK)]


@cli.command()
@click.argument("events_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--week-start",
    required=True,
    type=click.DateTime(formats=["%Y-%m-%d"]),
    help="First day of the displayed week (YYYY-MM-DD)",
)
@click.option("--viewer", "viewer_id", default="", help="Member id used for title redaction")
@click.option("--now", "now_value", default=None, help="ISO-8601 instant (default: week start)")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help=f"Path to {CONFIG_FILENAME} or its directory",
)
def spans(
    events_path: Path,
    week_start: datetime,
    viewer_id: str,
    now_value: str | None,
    config_path: Path | None,
) -> None:
    """Print multi-day bar segments for one week as JSON lines."""
    settings = _load_settings(config_path)
    tz = settings.tzinfo
    first_day = week_start.date()
    now = _parse_now(now_value, start_of_day(first_day, tz=tz))

    displays = build_display_events(
        read_events(events_path), viewer_id, now, settings.filters, tz=tz
    )
    lanes = assign_lanes(project_segments(displays, _week_days(first_day), tz=tz))
    _emit(
        {
            "id": lane.segment.event.id,
            "title": present_event(lane.segment.event, viewer_id).title,
            "week_start": lane.segment.week_start.isoformat(),
            "start_index": lane.segment.start_index,
            "end_index": lane.segment.end_index,
            "row": lane.row,
            "continues_from_previous": lane.segment.continues_from_previous,
            "continues_to_next": lane.segment.continues_to_next,
        }
        for lane in lanes
    )
