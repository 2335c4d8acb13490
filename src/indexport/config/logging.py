"""Logging setup for indexing runs."""

from __future__ import annotations

import logging

NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Configure the root logger for an indexing run.

    Every chunk logs its progress and the resume cursor at INFO, so the format keeps
    the logger name next to the message. The HTTP stack logs one line per bulk request
    at INFO; it is held at WARNING unless ``level`` asks for DEBUG output.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    http_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(http_level)
