"""Process-wide logger, silent until initialised with a level."""

from __future__ import annotations

import json
import logging

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "dpanic": logging.CRITICAL,
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}

_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}


class _JSONFormatter(logging.Formatter):
    """Writes each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "level": _LEVEL_NAMES.get(record.levelno, record.levelname.lower()),
            "ts": record.created,
            "caller": f"{record.filename}:{record.lineno}",
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _nop_logger() -> logging.Logger:
    logger = logging.getLogger("metricd.nop")
    logger.addHandler(logging.NullHandler())
    logger.propagate = False
    logger.disabled = True
    return logger


_log: logging.Logger = _nop_logger()


def _parse_level(level: str) -> int:
    if level in _LEVELS or level.lower() == level and level in _LEVELS:
        return _LEVELS[level]
    if level.isupper() and level.lower() in _LEVELS:
        return _LEVELS[level.lower()]
    raise ValueError(f"unrecognized level: {level!r}")


def initialize(level: str) -> logging.Logger:
    """Configure the shared logger at ``level``; raise ValueError for unknown levels."""
    global _log
    numeric = _parse_level(level)
    logger = logging.getLogger("metricd")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(_JSONFormatter())
    logger.addHandler(handler)
    logger.setLevel(numeric)
    logger.propagate = False
    _log = logger
    return logger


def get_logger() -> logging.Logger:
    """Return the shared logger."""
    return _log