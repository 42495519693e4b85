"""Process-wide logging setup."""

import logging

from orgmanage.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Apply ``settings.LOG_LEVEL`` (or *level*) to the root logger."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
    # SQL echo is controlled by the engine, not the log level.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
