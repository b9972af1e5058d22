"""Process-wide logging setup."""
import logging
from typing import Optional

from kanflow.config import settings


def configure_logging(level: Optional[str] = None) -> None:
    resolved = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(level=resolved, format=settings.LOG_FORMAT)
    logging.getLogger("kanflow").setLevel(resolved)
