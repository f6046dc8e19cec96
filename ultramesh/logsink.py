"""Adapters from the `logger(level, payload)` callables onto stdlib logging."""
from __future__ import annotations

import logging
from typing import Callable

_LEVELS = {
    "debug": logging.DEBUG,
    "metric": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def std_logger(name: str = "ultramesh") -> Callable[[str, object], None]:
    log = logging.getLogger(name)

    def emit(level: str, payload: object) -> None:
        lvl = _LEVELS.get(str(level).lower(), logging.INFO)
        if isinstance(payload, dict):
            log.log(lvl, "%s %s", level, payload)
        else:
            log.log(lvl, "%s", payload)

    return emit


def configure_logging(level: str = "info") -> None:
    logging.basicConfig(
        level=_LEVELS.get(level.lower(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
