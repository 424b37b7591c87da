"""structlog configuration and named channel loggers."""

import logging
import sys
from pathlib import Path
from typing import Any, Optional

import structlog

_CONFIGURED = False


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    log_file: Optional[Path] = None,
    force: bool = False,
) -> None:
    """Configure structlog on top of the standard library logging.

    The first call wins; later calls are ignored unless ``force`` is set.

    Args:
        log_level: Logging level name.
        log_format: ``"json"`` or ``"console"``.
        log_file: Log to this file instead of stdout.
        force: Replace an earlier configuration.
    """
    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(str(log_file), mode="a")
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    shared_processors = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.contextvars.merge_contextvars,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[structlog.stdlib.filter_by_level, *shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = structlog.processors.JSONRenderer() if log_format == "json" else structlog.dev.ConsoleRenderer(colors=False)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared_processors))

    logging.basicConfig(level=level, handlers=[handler], force=True)
    _CONFIGURED = True


def create_channel_logger(channel: str, **context: Any) -> Any:
    """Logger for a named channel (``debug``, ``errors``, ``mail``, ``query``).

    Extend the corresponding service and ``bind`` to add context to every entry.
    """
    return structlog.get_logger(f"appwire.{channel}").bind(channel=channel, **context)
