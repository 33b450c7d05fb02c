"""Logging setup for the service and scripts."""

from __future__ import annotations

import logging

from landledger.core.config import Settings

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings | None = None) -> None:
    """Configure the root logger from settings.

    Safe to call more than once; an already-configured root logger only
    has its level updated.
    """
    if settings is None:
        settings = Settings()

    level = logging.DEBUG if settings.debug else getattr(
        logging, settings.log_level.upper(), logging.INFO
    )
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return
    logging.basicConfig(level=level, format=_FORMAT)

    # httpx logs every request at INFO; keep it quiet unless debugging.
    logging.getLogger("httpx").setLevel(logging.DEBUG if settings.debug else logging.WARNING)
