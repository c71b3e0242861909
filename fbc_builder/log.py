"""Logging setup shared by the library and the CLI."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "FBC_LOG_LEVEL"
LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:  # lightweight, idempotent
    """Configure root logging once.

    An explicit ``level`` wins over ``FBC_LOG_LEVEL``; unknown names fall back
    to WARNING. Later calls with an explicit level only adjust the level.
    """
    if getattr(configure_logging, "_done", False):  # type: ignore[attr-defined]
        if level is not None:
            logging.getLogger().setLevel(_resolve_level(level))
        return
    level_name = level or os.getenv(LOG_LEVEL_ENV, "WARNING")
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(_resolve_level(level_name))
    configure_logging._done = True  # type: ignore[attr-defined]


def _resolve_level(name: str) -> int:
    level = getattr(logging, name.upper(), None)
    return level if isinstance(level, int) else logging.WARNING


__all__ = ["configure_logging", "LOG_LEVEL_ENV"]
