"""Logging setup shared by the server and the seed script."""

from __future__ import annotations

import logging
import os

from . import config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: str | None = None, log_dir: str | None = None) -> None:
    """Attach console and optional file handlers to the root logger.

    With a log directory, everything at ``level`` and above goes to
    ``combined.log`` and errors additionally go to ``error.log``.
    """

    global _configured
    if _configured:
        return

    root = logging.getLogger()
    root.setLevel(level or config.LOG_LEVEL)
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    directory = log_dir or config.LOG_DIR
    if directory:
        os.makedirs(directory, exist_ok=True)

        combined = logging.FileHandler(os.path.join(directory, "combined.log"), encoding="utf-8")
        combined.setFormatter(formatter)
        root.addHandler(combined)

        errors = logging.FileHandler(os.path.join(directory, "error.log"), encoding="utf-8")
        errors.setLevel(logging.ERROR)
        errors.setFormatter(formatter)
        root.addHandler(errors)

    _configured = True


__all__ = ["configure_logging"]
