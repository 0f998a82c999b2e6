from __future__ import annotations

import logging

from brand_studio.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        format=LOG_FORMAT,
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
    )
    # The SDK's HTTP client is chatty at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
