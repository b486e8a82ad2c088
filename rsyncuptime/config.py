"""Runtime settings for the monitoring server, read from the environment."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_RSYNC_URL = "rsync://sagres.c3sl.ufpr.br/"
DEFAULT_POLLING_INTERVAL = 300.0
DEFAULT_PORT = "8080"

_INTEGER = re.compile(r"[+-]?[0-9]+")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Where to poll, how often (in seconds) and which port to serve on."""

    rsync_url: str = DEFAULT_RSYNC_URL
    polling_interval: float = DEFAULT_POLLING_INTERVAL
    port: str = DEFAULT_PORT


def _parse_interval(text: str) -> int | None:
    if not _INTEGER.fullmatch(text):
        return None
    value = int(text)
    return value if value > 0 else None


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build settings from RSYNC_URL, POLLING_INTERVAL_SECONDS and PORT."""
    env = os.environ if environ is None else environ
    settings = Settings()

    rsync_url = env.get("RSYNC_URL", "")
    if rsync_url:
        logger.info("Using custom rsync URL from environment: %s", rsync_url)
    else:
        rsync_url = settings.rsync_url

    polling_interval = settings.polling_interval
    interval_text = env.get("POLLING_INTERVAL_SECONDS", "")
    if interval_text:
        seconds = _parse_interval(interval_text)
        if seconds is None:
            logger.warning(
                "Invalid POLLING_INTERVAL_SECONDS value '%s'. Using default.", interval_text
            )
        else:
            polling_interval = float(seconds)
            logger.info("Using custom polling interval from environment: %ss", seconds)

    port = env.get("PORT", "")
    if port:
        logger.info("Using custom server port from environment: %s", port)
    else:
        port = settings.port

    return Settings(rsync_url=rsync_url, polling_interval=polling_interval, port=port)