"""Logging setup for the catalog service.

Modules log through ``logging.getLogger(__name__)`` and pass structured
context with ``extra=``. :class:`ExtraFormatter` renders those extra
attributes as ``key=value`` pairs after the message so they are visible
without a structured log backend.
"""

import logging
from typing import Any

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class ExtraFormatter(logging.Formatter):
    """Formatter appending ``extra=`` attributes to the rendered message."""

    def format(self, record: logging.LogRecord) -> str:
        rendered = super().format(record)
        extras = extra_fields(record)
        if not extras:
            return rendered
        pairs = " ".join(f"{key}={value}" for key, value in sorted(extras.items()))
        return f"{rendered} [{pairs}]"


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the attributes that were attached to ``record`` via ``extra=``."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED and not key.startswith("_")
    }


def configure_logging(level: str = "INFO", fmt: str = DEFAULT_FORMAT) -> logging.Handler:
    """Install a single stream handler on the ``catalogsync`` logger.

    Calling this again replaces the handler installed by a previous call.

    Args:
        level: Case-insensitive level name, e.g. ``"info"``.
        fmt: Format string for the message part of each record.

    Returns:
        The installed handler.
    """
    logger = logging.getLogger("catalogsync")
    for handler in list(logger.handlers):
        if getattr(handler, "_catalogsync_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(ExtraFormatter(fmt))
    handler._catalogsync_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    return handler
