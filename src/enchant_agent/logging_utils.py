"""Logging setup for the agent and helpers for one-line log values.

The console driver owns stdout for the conversation, so logs go to stderr
or, preferably, to a file (``--log-file`` or ``ENCHANT_LOG_FILE``).
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_LEVEL_ENV = "ENCHANT_LOG_LEVEL"
LOG_FILE_ENV = "ENCHANT_LOG_FILE"
PACKAGE_LOGGER = "enchant_agent"


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {name}")
    return level


def _build_handler(log_file: str | None) -> logging.Handler:
    if not log_file:
        return logging.StreamHandler()
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, encoding="utf-8")


def configure_logging(log_level: str | None = None, log_file: str | None = None) -> None:
    """Attach one handler to the enchant_agent logger tree.

    Arguments win over ENCHANT_LOG_LEVEL and ENCHANT_LOG_FILE. With neither a
    level nor a file nothing is configured; a file alone logs at WARNING.
    The root logger stays at WARNING so SDK chatter (httpx, anthropic) is
    not pulled in.

    Raises:
        ValueError: If the level name is unknown.
    """
    level_name = log_level or os.getenv(LOG_LEVEL_ENV) or ""
    log_file = log_file or os.getenv(LOG_FILE_ENV) or None
    if not level_name and not log_file:
        return
    level = _resolve_level(level_name) if level_name else logging.WARNING

    handler = _build_handler(log_file)
    handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))

    logging.getLogger().setLevel(logging.WARNING)
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers = [handler]


def abbreviate(value: Any, limit: int = 200) -> str:
    """Render a log value on one line, cut to `limit` characters.

    Strings are used as they are; tool arguments and other structures are
    rendered as compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        text = value
    else:
        try:
            text = json.dumps(value, sort_keys=True, default=repr)
        except (TypeError, ValueError):
            text = repr(value)
    text = text.replace("\n", "\\n")
    if len(text) <= limit:
        return text
    return f"{text[:limit]}...(+{len(text) - limit} chars)"
