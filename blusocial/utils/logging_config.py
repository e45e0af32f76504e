"""Logging setup for the matching service."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_FILE_PATH = "logs/service.log"

# Firebase pulls in google-auth, grpc and urllib3, all chatty at DEBUG.
QUIET_LOGGERS = ("google", "grpc", "urllib3")


def setup_logging(*, debug: bool = False, log_file: Optional[str] = LOG_FILE_PATH) -> None:
    """Configure the root logger once per process.

    Console gets INFO+ (DEBUG+ with ``debug``). When ``log_file`` is set, a
    rotating file also receives DEBUG+; pass ``None`` where the filesystem is
    read-only.
    """

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = []

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG if debug else logging.INFO)
    handlers.append(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        rotating = RotatingFileHandler(log_file, maxBytes=2_000_000, backupCount=5)
        rotating.setLevel(logging.DEBUG)
        handlers.append(rotating)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    # uvicorn --reload re-imports the app; replace rather than stack handlers.
    root.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


logger = logging.getLogger("blusocial")
