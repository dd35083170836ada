"""
Structured logging configuration using structlog.

JSON lines in production, colored console output at DEBUG. Library modules
log through ``logging.getLogger(__name__)``; those records go through the
same processor chain, and fields passed with ``extra=`` (the feed metrics,
for instance) come out as top-level keys.
"""

import logging
import sys
from typing import List, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from .config import settings

SERVICE_NAME = "feedrank"

# Third-party loggers kept at WARNING
NOISY_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


def add_service_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _shared_processors(use_json: bool) -> List[Processor]:
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if use_json:
        processors.append(structlog.processors.format_exc_info)
    return processors


def setup_logging(log_level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Configure structlog and hand stdlib logging to it.

    Args:
        log_level: Override log level (default: from settings.log_level)
        json_logs: Force JSON (True) or console (False) rendering; by
            default console is used only at DEBUG
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    use_json = level != logging.DEBUG if json_logs is None else json_logs

    shared = _shared_processors(use_json)
    renderer: Processor = (
        structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared + [structlog.stdlib.ExtraAdder()],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
