import logging

from ascend_backend.core.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging once for the API process and seed scripts."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # SQL statements are controlled by ASCEND_SQL_ECHO, not the app log level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
