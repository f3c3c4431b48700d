"""
Observability Layer

RESPONSIBILITY: Logging setup shared by the API server and the CLI

WHAT THIS LAYER MUST NOT DO:
============================
- Modify system behavior
- Leak credentials (bearer tokens are masked before formatting)
"""

from __future__ import annotations
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Union


FARMAP_LOGGER = "farmap"

_BEARER = re.compile(r"Bearer\s+[A-Za-z0-9._~+/=-]+")


class TokenMaskingFilter(logging.Filter):
    """Replaces bearer tokens in log messages and arguments with ***."""

    def __init__(self) -> None:
        super().__init__(name="TokenMaskingFilter")

    @staticmethod
    def _mask(value: object) -> object:
        if isinstance(value, str):
            return _BEARER.sub("Bearer ***", value)
        if isinstance(value, tuple):
            return tuple(TokenMaskingFilter._mask(v) for v in value)
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self._mask(record.msg)
        if isinstance(record.args, tuple):
            record.args = self._mask(record.args)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data)


def resolve_level(level: Union[str, int, None]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level or "INFO").upper())
    if isinstance(resolved, str):  # unknown name returns string
        return logging.INFO
    return resolved


def configure_logging(
    level: Union[str, int, None] = None,
    json_output: bool = False,
    stream=None,
) -> logging.Logger:
    """
    Attach one stream handler to the "farmap" logger.

    Safe to call repeatedly; the previous farmap handler is replaced.
    """
    logger = logging.getLogger(FARMAP_LOGGER)
    logger.setLevel(resolve_level(level))

    for handler in list(logger.handlers):
        if getattr(handler, "_farmap_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler._farmap_handler = True
    handler.addFilter(TokenMaskingFilter())
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    return logger


__all__ = ["configure_logging", "resolve_level", "JsonFormatter", "TokenMaskingFilter"]
