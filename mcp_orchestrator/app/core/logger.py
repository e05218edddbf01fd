from __future__ import annotations

import logging

from colorlog import ColoredFormatter

from mcp_orchestrator.env import ENV


_HANDLER_MARKER = "_mcp_orchestrator_colored_handler"

# Per-request chatter from the MCP transport stack; kept at WARNING unless DEBUG is on.
_NOISY_LOGGERS = ("httpx", "httpcore", "mcp", "mcp_use")


def _resolve_log_level(level_name: str) -> int:
    value = (level_name or "INFO").strip().upper()
    return getattr(logging, value, logging.INFO)


def configure_logging(level_name: str | None = None) -> None:
    """Configure root logging once with env-driven log level."""
    level = _resolve_log_level(level_name or ENV.log_level)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for noisy_name in _NOISY_LOGGERS:
        logging.getLogger(noisy_name).setLevel(level if level <= logging.DEBUG else logging.WARNING)

    has_custom_handler = any(getattr(handler, _HANDLER_MARKER, False) for handler in root_logger.handlers)
    if has_custom_handler:
        return

    # Leave handlers alone when uvicorn or pytest already installed theirs.
    if root_logger.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        ColoredFormatter(
            "%(log_color)s%(asctime)s %(levelname)-8s%(reset)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
    )
    setattr(handler, _HANDLER_MARKER, True)
    root_logger.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
