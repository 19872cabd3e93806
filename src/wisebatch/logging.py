import logging
import typing as t
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

_DROP_LOG_FIELDS = frozenset(
    {
        "auth",
        "body",
        "headers",
        "api_key",
        "password",
        "payload",
    }
)


def _drop_sensitive_fields(
    logger: logging.Logger, method_name: str, event_dict: t.MutableMapping[str, t.Any]
) -> t.MutableMapping[str, t.Any]:
    for field in _DROP_LOG_FIELDS.intersection(event_dict):
        event_dict.pop(field)
    return event_dict


def setup_logging(level: int = logging.WARNING) -> None:
    """
    Configure structlog on top of the stdlib ``wisebatch`` logger.

    Parameters
    ----------
    level : int
        Level applied to the ``wisebatch`` logger.
    """
    logging.basicConfig(format="%(message)s")
    logging.getLogger("wisebatch").setLevel(level)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            _drop_sensitive_fields,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(colors=True),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


@contextmanager
def logging_context(**required_context) -> Iterator[None]:
    current = structlog.contextvars.get_contextvars()
    to_bind = {k: v for k, v in required_context.items() if k not in current}

    if to_bind:
        with structlog.contextvars.bound_contextvars(**to_bind):
            yield
    else:
        yield
