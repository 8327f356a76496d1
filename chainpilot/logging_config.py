"""
Structured logging configuration using structlog.

JSON lines by default, colored console output when running at DEBUG.
Stdlib loggers (every module here logs through ``logging.getLogger``) go through
the same processor chain, so their ``extra=`` flow fields and the bound wallet
session appear as top-level keys in each line.
"""

import logging
import sys
from typing import List, Optional

import structlog

from .config import settings


# stdlib ``extra=`` keys lifted into the rendered event
FLOW_FIELDS = ("scope", "kind", "latency_ms", "ok")


def _shared_processors(is_dev: bool) -> List[structlog.types.Processor]:
    processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if not is_dev:
        processors.append(structlog.processors.format_exc_info)
    return processors


def build_formatter(is_dev: bool = False) -> structlog.stdlib.ProcessorFormatter:
    """Formatter rendering both structlog and stdlib records."""
    renderer = structlog.dev.ConsoleRenderer() if is_dev else structlog.processors.JSONRenderer()
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            *_shared_processors(is_dev),
            structlog.stdlib.ExtraAdder(allow=FLOW_FIELDS),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def setup_logging(log_level: Optional[str] = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Override log level (default: from settings.log_level)
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    is_dev = level == logging.DEBUG

    structlog.configure(
        processors=[
            *_shared_processors(is_dev),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(is_dev))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Receipt polling is chatty at INFO
    for name in ("uvicorn.access", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_session(account: Optional[str], chain_id: Optional[int]) -> None:
    """Attach the active wallet session to every subsequent log line."""
    structlog.contextvars.bind_contextvars(account=account, chain_id=chain_id)
