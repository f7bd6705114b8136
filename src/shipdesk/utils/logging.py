"""Logging helpers shared by the shipdesk modules."""

from __future__ import annotations

import json
import logging
import os

from ..config import JSON_LOGS_ENV_VAR

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_ROOT_NAME = "shipdesk"
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per record: level, logger name, message and extras."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "level": record.levelname.lower(),
            "name": record.name,
            "msg": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED and not key.startswith("_"):
                data[key] = value
        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "0").lower() in ("1", "true", "yes")


def configure_logging(level: str | int = "INFO", json_logs: bool | None = None) -> logging.Logger:
    """Attach a single stream handler to the package logger."""

    if json_logs is None:
        json_logs = _env_flag(JSON_LOGS_ENV_VAR)
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter() if json_logs else logging.Formatter(_FORMAT))

    logger = logging.getLogger(_ROOT_NAME)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level if isinstance(level, int) else level.upper())
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the package logger, or a child of it."""

    if not name:
        return logging.getLogger(_ROOT_NAME)
    if name == _ROOT_NAME or name.startswith(_ROOT_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT_NAME}.{name}")


__all__ = ["JsonFormatter", "configure_logging", "get_logger"]
