"""structlog setup for the invoicing engine.

Services log snake_case events and pass ``Money`` values straight through as
keyword context; the renderers below turn them into ``CAD 112.00`` on the
console and ``{"amount": 11200, "currency": "CAD"}`` in JSON, so log lines
carry the same minor-unit form as stored and serialized amounts.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any
from uuid import UUID

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from dojo_invoicing.config import Settings, get_settings
from dojo_invoicing.domain.value_objects import Money


def format_money_values(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    for key, value in event_dict.items():
        if isinstance(value, Money):
            event_dict[key] = value.format()
    return event_dict


def serialize_money_values(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    for key, value in event_dict.items():
        if isinstance(value, Money):
            event_dict[key] = value.to_dict()
    return event_dict


def _add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    settings = get_settings()
    event_dict["app"] = settings.app_name
    event_dict["environment"] = settings.environment.value
    return event_dict


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def get_console_processors() -> list[Processor]:
    return [
        *_shared_processors(),
        format_money_values,
        structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        ),
    ]


def get_json_processors() -> list[Processor]:
    return [
        *_shared_processors(),
        _add_app_context,
        serialize_money_values,
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog and the stdlib root logger from settings.

    Call once at startup. JSON output is used when ``log_format`` is
    ``json`` (the default in production).
    """
    if settings is None:
        settings = get_settings()

    log_level = getattr(logging, settings.log_level.value)
    processors = (
        get_json_processors() if settings.log_format == "json" else get_console_processors()
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    if settings.log_file:
        _add_file_handler(settings.log_file, log_level)


def _add_file_handler(log_file: Path, level: int) -> None:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
    logging.getLogger().addHandler(handler)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.stdlib.get_logger(name)


@contextmanager
def invoice_log_context(invoice_id: UUID, **extra: Any) -> Iterator[None]:
    """Tag every event logged inside the block with the invoice it concerns."""
    with structlog.contextvars.bound_contextvars(invoice_id=str(invoice_id), **extra):
        yield
