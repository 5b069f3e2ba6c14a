import logging
from logging.config import dictConfig


def configure_logging(level: str = "INFO") -> None:
    """Route application loggers to stderr with a uniform format."""

    dictConfig(
        {
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
            "loggers": {
                "duty_scheduler": {
                    "handlers": ["console"],
                    "level": level.upper(),
                    "propagate": False,
                },
            },
        }
    )
    logging.getLogger("duty_scheduler").debug("Logging configured at %s", level.upper())
