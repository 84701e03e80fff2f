"""Structured logging for search and indexing.

Log lines are rendered by ``structlog`` as JSON (``FM_LOG_FORMAT=json``) or
for the console. Every line carries the process ``service`` name plus any
search context bound with ``search_context``: the ranker binds the document
type and strategy of a search, the indexer binds the document type being
validated, so store and cache logs emitted underneath are attributable
without threading those values through every call.

Typical usage
- ``configure_from_config(config, "reindex_all")`` in an entrypoint
- ``with search_context(document_type="Product", strategy="cosine"): ...``
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, List

import structlog
from structlog.stdlib import LoggerFactory, add_logger_name

from .config import FuzzyMatchConfig

LOG_FORMATS = ("json", "console")


def _level(log_level: str) -> int:
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")
    return level


def configure_logging(
    service_name: str,
    log_level: str = "INFO",
    log_format: str = "json",
) -> None:
    """Configure structlog and the stdlib root logger for a process.

    Parameters
    - service_name: Bound as ``service`` on every line
    - log_level: ``DEBUG``, ``INFO``, ``WARNING``, ``ERROR`` (case-insensitive)
    - log_format: ``json`` or ``console``
    """
    if log_format not in LOG_FORMATS:
        raise ValueError(f"Unknown log format: {log_format}")

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=_level(log_level))

    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_logger_name,
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name)


def configure_from_config(config: FuzzyMatchConfig, service_name: str) -> None:
    """Configure logging from ``FM_LOG_LEVEL`` / ``FM_LOG_FORMAT`` and bind ``FM_ENV``."""
    configure_logging(service_name, config.fm_log_level, config.fm_log_format)
    structlog.contextvars.bind_contextvars(env=config.fm_env)


@contextmanager
def search_context(**context: Any) -> Iterator[None]:
    """Bind ``context`` to every log line emitted inside the block.

    ``None`` values are left out. Bindings are per task (contextvars), so
    concurrent searches never see each other's context.
    """
    bound = {key: value for key, value in context.items() if value is not None}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def log_performance(operation: str, duration_ms: float, **kwargs: Any) -> None:
    """Log a timed unit of work (``duration_ms`` in milliseconds)."""
    get_logger("performance").info(
        "Operation completed",
        operation=operation,
        duration_ms=duration_ms,
        **kwargs
    )
