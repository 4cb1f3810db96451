"""
Logging setup. Every module logs through logging.getLogger(__name__);
this configures the root handler once at startup.
"""

import logging

from samrambhak.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = None) -> None:
    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)

    # SQL echo is noisy; only surface it in debug mode
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )
