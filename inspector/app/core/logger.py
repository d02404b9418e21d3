from __future__ import annotations

import logging
from typing import Any

from colorlog import ColoredFormatter

from inspector.env import ENV


_HANDLER_MARKER = "_inspector_colored_handler"
_LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


def _resolve_log_level(level_name: str) -> int:
    value = (level_name or "INFO").strip().upper()
    return getattr(logging, value, logging.INFO)


def configure_logging(level_name: str | None = None) -> None:
    """Attach the colored inspector handler to the root logger, once."""
    root_logger = logging.getLogger()
    root_logger.setLevel(_resolve_log_level(level_name or ENV.log_level))

    if any(getattr(handler, _HANDLER_MARKER, False) for handler in root_logger.handlers):
        return

    # uvicorn and pytest install their own handlers; don't double every line.
    if root_logger.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        ColoredFormatter(
            "%(log_color)s%(asctime)s %(levelname)-8s%(reset)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
            log_colors=_LOG_COLORS,
        )
    )
    setattr(handler, _HANDLER_MARKER, True)
    root_logger.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def payload_keys(payload: dict[str, Any] | None) -> str:
    """Render only the argument names of a payload for INFO-level lines."""
    if not payload:
        return "-"
    return ",".join(sorted(str(key) for key in payload))
