"""Schedulr configuration loading and validation.

Reads schedulr.toml, resolves ``${VAR}`` references from the environment,
and returns a validated SchedulrConfig dataclass.
"""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from schedulr.events.models import CalendarFilters

CONFIG_FILENAME = "schedulr.toml"
DEFAULT_TIMEZONE = "UTC"

# Pattern matching ${VAR_NAME} — supports alphanumeric + underscore variable names.
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_LOG_FORMATS = ("text", "json")


class ConfigError(Exception):
    """Raised when schedulr configuration is missing, malformed, or invalid."""


@dataclass
class LoggingConfig:
    """Logging configuration from [schedulr.logging] section."""

    level: str = "INFO"
    format: str = "text"  # "text" or "json"


@dataclass
class SchedulrConfig:
    """Parsed schedulr.toml."""

    timezone: str = DEFAULT_TIMEZONE
    filters: CalendarFilters = field(default_factory=CalendarFilters)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${VAR_NAME}`` references in config values.

    Walks dicts, lists, and strings. Non-string leaf values are returned
    unchanged.

    Raises
    ------
    ConfigError
        If a referenced environment variable is not set.
    """
    if isinstance(value, dict):
        return {k: resolve_env_vars(v) for k, v in value.items()}

    if isinstance(value, list):
        return [resolve_env_vars(item) for item in value]

    if isinstance(value, str):
        return _resolve_string(value)

    return value


def _resolve_string(s: str) -> str:
    missing: list[str] = []

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            missing.append(var_name)
            return match.group(0)
        return env_value

    result = _ENV_VAR_PATTERN.sub(_replace, s)

    if missing:
        vars_str = ", ".join(missing)
        raise ConfigError(
            f"Unresolved environment variable(s) in config value: {vars_str} (original: {s!r})"
        )

    return result


def _parse_bool(section: dict, key: str, default: bool, *, prefix: str) -> bool:
    value = section.get(key, default)
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        # Env-substituted values arrive as strings.
        return value.strip().lower() == "true"
    raise ConfigError(f"{prefix}.{key} must be a boolean, got {value!r}")


def _parse_filters(schedulr_section: dict) -> CalendarFilters:
    filters_section = schedulr_section.get("filters", {})
    if not isinstance(filters_section, dict):
        raise ConfigError("[schedulr.filters] must be a table")

    prefix = "schedulr.filters"
    category_ids: frozenset[str] | None = None
    raw_categories = filters_section.get("category_ids")
    if raw_categories is not None:
        if not isinstance(raw_categories, list) or not all(
            isinstance(item, str) for item in raw_categories
        ):
            raise ConfigError(f"{prefix}.category_ids must be a list of strings")
        # An empty selection means "all categories", not "none".
        category_ids = frozenset(item.strip() for item in raw_categories if item.strip()) or None

    return CalendarFilters(
        hide_holidays=_parse_bool(filters_section, "hide_holidays", True, prefix=prefix),
        dedup_all_day=_parse_bool(filters_section, "dedup_all_day", True, prefix=prefix),
        category_ids=category_ids,
    )


def _parse_logging(schedulr_section: dict) -> LoggingConfig:
    logging_section = schedulr_section.get("logging", {})
    if not isinstance(logging_section, dict):
        raise ConfigError("[schedulr.logging] must be a table")
    log_level = str(logging_section.get("level", "INFO")).upper()
    log_format = str(logging_section.get("format", "text")).lower()
    if log_format not in _LOG_FORMATS:
        raise ConfigError(
            f"Invalid schedulr.logging.format: {log_format!r}. Expected 'text' or 'json'."
        )
    return LoggingConfig(level=log_level, format=log_format)


def _parse_timezone(schedulr_section: dict) -> str:
    raw = schedulr_section.get("timezone", DEFAULT_TIMEZONE)
    if not isinstance(raw, str) or not raw.strip():
        raise ConfigError("schedulr.timezone must be a non-empty string")
    timezone = raw.strip()
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"schedulr.timezone must be a valid IANA timezone: {timezone}") from exc
    return timezone


def parse_config(data: dict[str, Any]) -> SchedulrConfig:
    """Validate an already-decoded TOML document."""
    data = resolve_env_vars(data)

    schedulr_section = data.get("schedulr", {})
    if not isinstance(schedulr_section, dict):
        raise ConfigError("[schedulr] must be a table")

    return SchedulrConfig(
        timezone=_parse_timezone(schedulr_section),
        filters=_parse_filters(schedulr_section),
        logging=_parse_logging(schedulr_section),
    )


def load_config(path: Path) -> SchedulrConfig:
    """Load and validate schedulr configuration.

    Parameters
    ----------
    path:
        Either a ``schedulr.toml`` file or a directory containing one.

    Raises
    ------
    ConfigError
        If the file is missing, contains invalid TOML, or holds invalid values.
    """
    toml_path = path / CONFIG_FILENAME if path.is_dir() else path

    if not toml_path.exists():
        raise ConfigError(f"Config file not found: {toml_path}")

    try:
        data = tomllib.loads(toml_path.read_bytes().decode())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {toml_path}: {exc}") from exc

    return parse_config(data)
