"""
structlog setup for the sync engine.

Production writes one JSON object per line, development a colored console.
Library modules keep using stdlib `logging` on the same stdout handler.
Every sync run is wrapped in `sync_context`, so structlog lines emitted
during the run (orchestrator, API routes) carry `source` and `run_id`
without passing them around.

Values logged under secret-looking keys (cookie, api_key, secret_value and
the like) are masked before rendering.
"""

import logging
import sys
import uuid
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import Processor

from src.config.settings import get_settings

# httpx logs every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "asyncpg", "uvicorn.access")

_SECRET_KEYS = frozenset({"api_key", "authorization", "cookie", "secret_value", "token"})


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask values logged under secret-looking keys, keeping 4 leading characters."""
    for key, value in event_dict.items():
        if key.lower() in _SECRET_KEYS and value:
            text = str(value)
            event_dict[key] = f"{text[:4]}***" if len(text) > 8 else "***"
    return event_dict


def setup_logging() -> None:
    """
    Configure structlog and route stdlib logging to stdout.

    Called once by the CLI entry point, before `serve` starts uvicorn:

        setup_logging()
        logger = structlog.get_logger(__name__)
        logger.info("Sync finished", synced=12, errors=0)
    """
    settings = get_settings()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        redact_secrets,
    ]

    if settings.is_production:
        # Chinese titles and keywords stay readable in JSON
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def new_run_id() -> str:
    """Short id correlating the log lines of one sync run."""
    return uuid.uuid4().hex[:12]


@contextmanager
def sync_context(source: str, run_id: str | None = None) -> Iterator[str]:
    """
    Bind `source` and `run_id` for the duration of a run and yield the run id.

    Keys bound before entry are restored on exit, so nested runs (a CLI
    loop over sources) do not leak context into each other.

    Example:
        with sync_context("bilibili") as run_id:
            logger.info("Keyword sync started", keywords=4)
    """
    run_id = run_id or new_run_id()
    with structlog.contextvars.bound_contextvars(source=source, run_id=run_id):
        yield run_id


def bind_context(**kwargs: Any) -> None:
    """Bind request-scoped keys (e.g. request_id) to all later log lines."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
