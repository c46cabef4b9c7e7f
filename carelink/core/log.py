# carelink/core/log.py
import logging
from logging.config import dictConfig

from carelink.core.config import settings


def setup_logging(level: str | None = None) -> None:
    """Configura el logging raíz una sola vez al arrancar la app."""
    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "root": {
            "handlers": ["console"],
            "level": (level or settings.LOG_LEVEL).upper(),
        },
        "loggers": {
            # el echo de SQLAlchemy ya se controla con DB_ECHO
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    })
    logging.getLogger(__name__).debug("logging configured")
