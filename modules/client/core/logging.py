"""
Logging.

structlog on top of stdlib logging, configured from
config/settings/logging.yaml. Console output goes to stderr; the optional
JSONL file at logs/system.jsonl receives every record.

Usage:
    from modules.client.core.logging import get_logger, log_with_source

    logger = get_logger(__name__)
    logger.info("Deleting notes", extra={"count": 2})
    log_with_source(logger, "sync", "info", "Refresh applied", token=3)
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.typing import Processor

from modules.client.core.config import find_project_root, load_yaml_config

VALID_SOURCES = frozenset({
    "mobile",
    "cli",
    "sync",
    "realtime",
    "media",
    "internal",
})
"""Values callers pass as `source` to log_with_source."""

_logging_config: dict[str, Any] | None = None

_QUIET_LOGGERS = ("httpx", "httpcore")


def _load_logging_config() -> dict[str, Any]:
    """Read logging.yaml once and keep it for later setup calls."""
    global _logging_config
    if _logging_config is None:
        _logging_config = load_yaml_config("logging.yaml")
    return _logging_config


def _resolve_log_path(configured_path: str) -> Path:
    """Log file paths in logging.yaml are relative to the project root."""
    return find_project_root() / configured_path


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
        ),
    ]


def _formatter(renderer: Processor, processors: list[Processor]) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=processors,
    )


def _file_handler(file_config: dict[str, Any], formatter: logging.Formatter) -> logging.Handler:
    log_path = _resolve_log_path(file_config["path"])
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(log_path),
        maxBytes=file_config["max_bytes"],
        backupCount=file_config["backup_count"],
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: str | None = None,
    format_type: str | None = None,
    enable_console: bool | None = None,
    enable_file_logging: bool | None = None,
) -> None:
    """
    Configure structlog and the root logger.

    Arguments left as None fall back to logging.yaml. Any handlers already
    on the root logger are replaced.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        format_type: 'console' for coloured key/value lines, 'json' otherwise
        enable_console: Write records to stderr
        enable_file_logging: Write JSON records to the rotating log file
    """
    config = _load_logging_config()
    handlers_config = config["handlers"]

    level = level if level is not None else config["level"]
    format_type = format_type if format_type is not None else config["format"]
    if enable_console is None:
        enable_console = handlers_config["console"]["enabled"]
    if enable_file_logging is None:
        enable_file_logging = handlers_config["file"]["enabled"]

    processors = _shared_processors()
    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    json_formatter = _formatter(structlog.processors.JSONRenderer(), processors)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        if format_type == "console":
            console_handler.setFormatter(
                _formatter(structlog.dev.ConsoleRenderer(colors=True), processors),
            )
        else:
            console_handler.setFormatter(json_formatter)
        root_logger.addHandler(console_handler)

    if enable_file_logging:
        root_logger.addHandler(_file_handler(handlers_config["file"], json_formatter))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    """Return a structlog logger, usually called with __name__."""
    return structlog.get_logger(name)


def log_with_source(logger: Any, source: str, level: str, message: str, **kwargs: Any) -> None:
    """
    Log with an explicit `source` field (one of VALID_SOURCES).

    Raises:
        AttributeError: If level is not a logger method name
    """
    getattr(logger, level.lower())(message, source=source, **kwargs)
