"""
Structured logging configuration using structlog.

Provides JSON-formatted logs for production and pretty console
logs for development. Supports contextual logging with bound
fields (e.g., source, operation).

Error-level events are additionally appended to an error log file, one
``key=value`` line per event, timestamped in the configured timezone.
"""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from src.config.settings import get_settings

ERROR_LOG_TIME_FORMAT = "%Y-%m-%d %H:%M:%S %Z"

# Set on handlers installed by setup_logging so a later call can replace them
_HANDLER_MARKER = "_webhook_mirror_handler"


def resolve_timezone(name: str) -> ZoneInfo:
    """
    Look up an IANA timezone.

    Raises:
        ValueError: If the name is unknown
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name!r}") from e


def local_timestamper(tz: ZoneInfo) -> Processor:
    """Build a processor that stamps events with the record time in ``tz``."""

    def processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        record = event_dict.get("_record")
        created = record.created if record is not None else time.time()
        event_dict["timestamp"] = datetime.fromtimestamp(created, tz).strftime(
            ERROR_LOG_TIME_FORMAT
        )
        return event_dict

    return processor


def build_error_log_handler(path: str | Path, tz: ZoneInfo) -> logging.Handler:
    """
    Create the append-only error log handler.

    Args:
        path: Error log file path (parent directories are created)
        tz: Timezone for the timestamp field

    Returns:
        File handler at ERROR level
    """
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    handler.setLevel(logging.ERROR)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=[
                local_timestamper(tz),
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                structlog.processors.KeyValueRenderer(
                    key_order=["timestamp", "level", "logger", "event"],
                    drop_missing=True,
                ),
            ],
        )
    )
    return handler


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(
    timezone: str | None = None,
    error_log_path: str | Path | None = None,
    log_level: str | None = None,
    error_log: bool = True,
) -> None:
    """
    Configure structured logging for the application.

    In production: JSON-formatted logs (easy to parse in log aggregators)
    In development: Pretty console output with colors

    Safe to call more than once; handlers installed by a previous call are
    replaced (the CLI reconfigures once the sources file has been read).

    Args:
        timezone: Timezone for error log timestamps (default from settings)
        error_log_path: Error log file (default from settings)
        log_level: Console log level (default from settings)
        error_log: Install the error log file handler. Read-only commands
            pass False so no file or directory is created.

    Usage:
        setup_logging()
        logger = structlog.get_logger()
        logger.info("Message updated", source="rules")
    """
    settings = get_settings()
    tz = resolve_timezone(timezone or settings.timezone)
    level = log_level or settings.log_level

    shared_processors = _shared_processors()

    if settings.is_production:
        # Production: JSON output
        renderer: Processor = structlog.processors.JSONRenderer()
        console_processors = [structlog.processors.format_exc_info, renderer]
    else:
        # Development: Pretty console output
        renderer = structlog.dev.ConsoleRenderer(colors=True)
        console_processors = [renderer]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta]
            + console_processors,
        )
    )

    handlers: list[logging.Handler] = [console]
    if error_log:
        handlers.append(build_error_log_handler(error_log_path or settings.error_log_path, tz))

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        setattr(handler, _HANDLER_MARKER, True)
        root.addHandler(handler)
    root.setLevel(getattr(logging, level))

    # Set log levels for noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
