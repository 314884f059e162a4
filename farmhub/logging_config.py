"""
Process-wide logging setup.
"""

import logging
from typing import Optional

from farmhub.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging at the configured level and quiet noisy libraries."""
    level = level or get_settings().log_level
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT)

    # Reduce verbosity of third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
