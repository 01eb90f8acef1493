import logging
from logging.config import dictConfig
from typing import Optional


def configure_logging(log_level: str = "INFO", framework_log_level: Optional[str] = None) -> None:
    """Configure logging for the application, the framework and the ASGI server.

    ``carrier.*`` loggers get ``framework_log_level`` (defaults to
    ``log_level``) and still propagate to the root handler.
    """
    framework_level = (framework_log_level or log_level).upper()
    level = log_level.upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "events": {
                    "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "events",
                    "stream": "ext://sys.stderr",
                },
            },
            "root": {"handlers": ["console"], "level": level},
            "loggers": {
                "carrier": {"level": framework_level, "propagate": True},
                "uvicorn.error": {"handlers": ["console"], "level": level, "propagate": False},
                "uvicorn.access": {"handlers": ["console"], "level": level, "propagate": False},
            },
        }
    )

    logging.getLogger("carrier").debug(
        "logging_configured", extra={"level": level, "framework_level": framework_level}
    )
