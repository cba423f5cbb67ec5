"""Logger hierarchy for the CLI, the HTTP service and the commit pipeline."""

from __future__ import annotations

import logging
from pathlib import Path

ROOT_LOGGER = "harmonizer"
CONSOLE_FORMAT = "[harmonizer] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(component: str | None = None) -> logging.Logger:
    """Return ``harmonizer.<component>``, or the root harmonizer logger."""
    return logging.getLogger(f"{ROOT_LOGGER}.{component}" if component else ROOT_LOGGER)


def configure_logging(*, verbose: bool = False, log_file: Path | None = None) -> logging.Logger:
    """Send harmonizer records to stderr and, when ``log_file`` is given, append them there.

    Handlers installed by an earlier call are closed and replaced, so ``serve``
    and repeated CLI runs in one process never emit duplicates.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    sinks: list[tuple[logging.Handler, str]] = [(logging.StreamHandler(), CONSOLE_FORMAT)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        sinks.append((logging.FileHandler(log_file, mode="a", encoding="utf-8"), FILE_FORMAT))
    for handler, fmt in sinks:
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(fmt))
        logger.addHandler(handler)
    return logger


__all__ = ["configure_logging", "get_logger"]
