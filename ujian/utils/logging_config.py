"""Konfigurasi logging untuk runtime ujian."""

from __future__ import annotations

import logging
import os
from logging import Logger
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> Logger:
    """Configure logging untuk aplikasi dan return logger 'ujian'."""
    handlers = [logging.StreamHandler()]
    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )
    return logging.getLogger("ujian")
