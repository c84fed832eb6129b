# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import logging
import os

import structlog

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Set up JSON logging once; ``SMILEDESIGN_LOG_LEVEL`` picks the threshold."""
    global _configured
    name = (level or os.getenv("SMILEDESIGN_LOG_LEVEL", "INFO")).upper()
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, name, logging.INFO)),
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(name: str = __name__):
    """Return a structlog logger tagged with the calling module."""
    if not _configured:
        configure_logging()
    return structlog.get_logger(name, component=name.rsplit(".", 1)[-1])
