"""Structured logging for the schedulr CLI and engine.

The engine modules log through plain ``logging.getLogger(__name__)``; this
module routes those records through structlog's ProcessorFormatter.

Output formats (``[schedulr.logging].format``):
- ``text``: colored console lines for interactive runs
- ``json``: one JSON object per line, for piping alongside JSON-lines output

Every record is stamped with the ``schedulr`` version, plus the host's OTel
trace ids when the engine runs inside a traced process.
"""

from __future__ import annotations

import logging
import sys

import structlog
from opentelemetry import trace

from schedulr import __version__

LOG_FORMATS = ("text", "json")

# Third-party loggers held at WARNING whatever the configured level.
_NOISY_LOGGERS = ("opentelemetry",)


def add_schedulr_version(
    logger: logging.Logger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict,
) -> dict:
    event_dict.setdefault("schedulr_version", __version__)
    return event_dict


def add_otel_context(
    logger: logging.Logger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict,
) -> dict:
    """Inject ``trace_id`` and ``span_id`` from the current OTel span, if any."""
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def _shared_processors(fmt: str) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
    ]
    if fmt == "json":
        processors += [structlog.processors.TimeStamper(fmt="iso"), add_schedulr_version]
    else:
        processors.append(structlog.processors.TimeStamper(fmt="%H:%M:%S"))
    processors += [add_otel_context, structlog.stdlib.ExtraAdder()]
    return processors


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Send all log records to stderr in *fmt*, at *level* and above.

    stdout is left to command output. Calling this again replaces the
    previous handler.

    Raises
    ------
    ValueError
        If *fmt* is not one of ``LOG_FORMATS``.
    """
    if fmt not in LOG_FORMATS:
        raise ValueError(f"Unknown log format {fmt!r}; expected one of {LOG_FORMATS}")

    processors = _shared_processors(fmt)
    if fmt == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=processors,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
