"""Structured logging for voxpipe.

structlog renders through a stdlib handler so records from the HTTP and
model libraries share one format. Two renderers:
- console: human-readable, for the CLI and development (default)
- json: one object per line, for services that embed the pipelines
"""

from __future__ import annotations

import logging
import os

import structlog

# Libraries that log every request or model load at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "faster_whisper")

_configured = False


def configure_logging(
    log_format: str | None = None,
    level: str | None = None,
    *,
    force: bool = False,
) -> None:
    """Install the structlog pipeline on the root logger.

    Only the first call takes effect unless ``force`` is set; the CLI
    forces a reconfigure when ``--log-level``/``--log-format`` are given.

    Args:
        log_format: "json" or "console". Falls back to VOXPIPE_LOG_FORMAT, then "console".
        level: Root level name. Falls back to VOXPIPE_LOG_LEVEL, then "INFO".
        force: Reconfigure even when logging is already set up.
    """
    global _configured
    if _configured and not force:
        return

    resolved_format = (log_format or os.environ.get("VOXPIPE_LOG_FORMAT", "console")).lower()
    resolved_level = getattr(
        logging, (level or os.environ.get("VOXPIPE_LOG_LEVEL", "INFO")).upper(), logging.INFO
    )

    renderer: structlog.types.Processor
    if resolved_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(resolved_level)

    chatty_level = logging.NOTSET if resolved_level <= logging.DEBUG else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)

    _configured = True


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Logger with ``component`` bound (e.g. "pipeline.executor", "benchmark").

    Components receive their logger by injection (``logger=`` argument or
    the BuildContext); this is the default used when the caller passes none.
    """
    configure_logging()
    return structlog.get_logger().bind(component=component)  # type: ignore[no-any-return]
