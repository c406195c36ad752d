from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator

import structlog


def setup_structlog(level: str = "INFO") -> None:
    """Configure structlog for JSON logs on stdout."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.EventRenamer(to="message"),
        structlog.processors.dict_tracebacks,
        # Lithuanian labels stay readable in the log stream
        structlog.processors.JSONRenderer(ensure_ascii=False),
    ]

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level, force=True)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def document_context(family: str, **fields: Any) -> Iterator[None]:
    """Tag every log line emitted while one document is processed."""
    bound = {k: v for k, v in fields.items() if v is not None}
    with structlog.contextvars.bound_contextvars(family=family, **bound):
        yield
