"""structlog setup for quote engine and provider logs."""

import logging
import sys
from typing import IO, Optional

import structlog

from .config import settings


_QUIET_LOGGERS = ("httpcore", "httpx")


def _renderer(use_json: bool) -> structlog.types.Processor:
    if use_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(
    log_level: Optional[str] = None,
    *,
    json_logs: Optional[bool] = None,
    stream: Optional[IO[str]] = None,
) -> None:
    """Route stdlib and structlog output through one formatter.

    DEBUG always renders to the console so fetch traces stay readable.
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    use_json = (settings.log_json if json_logs is None else json_logs) and level != logging.DEBUG

    # Quote key and refresh flag are bound per fetch task
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if use_json:
        pre_chain.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(use_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_quote_context(**values: object) -> None:
    """Attach quote identifiers (key, refresh flag) to subsequent log lines."""
    structlog.contextvars.bind_contextvars(**values)
